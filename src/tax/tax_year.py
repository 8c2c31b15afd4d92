"""UK tax year keys and date arithmetic.

A tax year runs from 6 April to 5 April and is keyed as "YYYY-YY", where
the second part is the last two digits of the following calendar year.

Example:
    >>> from datetime import date
    >>> current_tax_year(date(2025, 4, 5))
    '2024-25'
    >>> next_tax_year("2099-00")
    '2100-01'
"""

from __future__ import annotations

from calendar import monthrange
from collections.abc import Iterable
from datetime import date

from src.core.config import TAX_YEAR_PATTERN
from src.tax.errors import InvalidTaxYear

TAX_YEAR_START_MONTH = 4
TAX_YEAR_START_DAY = 6


def parse_tax_year(tax_year: str) -> int:
    """Return the starting calendar year of a tax year key.

    Raises:
        InvalidTaxYear: If the key is malformed or the years are not consecutive.
    """
    match = TAX_YEAR_PATTERN.fullmatch(tax_year.strip()) if tax_year else None
    if match is None:
        raise InvalidTaxYear(f"Tax year must look like 2024-25, got {tax_year!r}")
    start = int(match.group(1))
    if (start + 1) % 100 != int(match.group(2)):
        raise InvalidTaxYear(
            f"Tax year {tax_year!r} must span consecutive years, e.g. {format_tax_year(start)}"
        )
    return start


def format_tax_year(start_year: int) -> str:
    """Build the key for the tax year starting in start_year."""
    return f"{start_year:04d}-{(start_year + 1) % 100:02d}"


def next_tax_year(tax_year: str) -> str:
    """Key of the tax year following tax_year."""
    return format_tax_year(parse_tax_year(tax_year) + 1)


def tax_year_bounds(tax_year: str) -> tuple[date, date]:
    """First and last day of a tax year (6 April to 5 April)."""
    start = parse_tax_year(tax_year)
    return (
        date(start, TAX_YEAR_START_MONTH, TAX_YEAR_START_DAY),
        date(start + 1, TAX_YEAR_START_MONTH, TAX_YEAR_START_DAY - 1),
    )


def current_tax_year(today: date | None = None) -> str:
    """Key of the tax year containing today."""
    today = today or date.today()
    if (today.month, today.day) < (TAX_YEAR_START_MONTH, TAX_YEAR_START_DAY):
        return format_tax_year(today.year - 1)
    return format_tax_year(today.year)


def sort_tax_years(tax_years: Iterable[str]) -> list[str]:
    """Distinct tax years, most recent first."""
    return sorted(set(tax_years), key=parse_tax_year, reverse=True)


def add_months(day: date, months: int) -> date:
    """Shift a date by whole calendar months, clamping to the month's last day.

    Example:
        >>> add_months(date(2024, 5, 31), 9)
        datetime.date(2025, 2, 28)
        >>> add_months(date(2025, 3, 31), -1)
        datetime.date(2025, 2, 28)
    """
    month_index = day.year * 12 + day.month - 1 + months
    year, month = divmod(month_index, 12)
    return date(year, month + 1, min(day.day, monthrange(year, month + 1)[1]))


def latest_tax_year_until(tax_years: Iterable[str], tax_year: str) -> str | None:
    """Most recent of tax_years that is not later than tax_year, or None.

    Example:
        >>> latest_tax_year_until(["2024-25", "2025-26"], "2026-27")
        '2025-26'
    """
    limit = parse_tax_year(tax_year)
    earlier = [year for year in tax_years if parse_tax_year(year) <= limit]
    if not earlier:
        return None
    return max(earlier, key=parse_tax_year)
