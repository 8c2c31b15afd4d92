"""Corporation Tax with the small profits rate, main rate and marginal relief.

Both limits are divided by 1 + the number of associated companies and
scaled by period_days over the length of the year (365, or 366 when it
contains 29 February) for a short accounting period. The band is
chosen on augmented profits (taxable profit plus exempt distributions):

- augmented <= lower limit: small profits rate on the whole profit.
- augmented >= upper limit: main rate on the whole profit.
- otherwise: main rate less marginal relief of
  (upper - augmented) x (profit / augmented) x fraction.

The fraction is the marginal_relief_fraction rate row (150 = 3/200), so it
changes with the tax year like any other rate.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from fractions import Fraction

from src.core.logging import get_logger
from src.models.tax_rate import TaxCategory
from src.tax import catalog as c
from src.tax.errors import InvalidPeriod, NegativeIncome
from src.tax.money import apply_rate, percentage_of, prorate, rate_fraction, round_half_up
from src.tax.repository import RateRepository, RateSnapshot
from src.tax.tax_year import add_months

logger = get_logger(__name__)

_CT = TaxCategory.CORPORATION_TAX

DAYS_IN_YEAR = 365
MAX_PERIOD_DAYS = 366

PAYMENT_DUE_MONTHS = 9
FILING_DUE_MONTHS = 12
FINANCIAL_YEAR_START = (4, 1)


class CorporationTaxBand(enum.Enum):
    NO_TAX = "no_tax"
    SMALL_PROFITS = "small_profits"
    MARGINAL_RELIEF = "marginal_relief"
    MAIN_RATE = "main_rate"


@dataclass(frozen=True)
class CorporationTaxResult:
    """Corporation Tax for one accounting period (pence).

    Attributes:
        profit: Taxable profit.
        augmented_profits: Profit plus exempt distributions.
        band: Which rate applied.
        tax_before_relief: Tax at the applicable rate.
        marginal_relief: Relief deducted, zero outside the marginal band.
        tax: Tax payable.
        effective_rate: tax / profit as a percentage, 2 d.p.
        lower_limit: Small profits limit after adjustment.
        upper_limit: Marginal relief limit after adjustment.
    """

    profit: int
    augmented_profits: int
    band: CorporationTaxBand
    tax_before_relief: int
    marginal_relief: int
    tax: int
    effective_rate: Decimal
    lower_limit: int
    upper_limit: int


def period_days_between(start: date, end: date) -> int:
    """Days in an accounting period, counting both ends.

    Raises:
        InvalidPeriod: If start is not before end.
    """
    if start >= end:
        raise InvalidPeriod(f"Period start {start} must be before period end {end}")
    return (end - start).days + 1


def _financial_year_length(day: date) -> int:
    first = day.year if (day.month, day.day) >= FINANCIAL_YEAR_START else day.year - 1
    return (date(first + 1, *FINANCIAL_YEAR_START) - date(first, *FINANCIAL_YEAR_START)).days


def financial_year_days(start: date, end: date) -> int:
    """Length of the longest financial year (1 April to 31 March) the period touches.

    366 when that year contains 29 February, so a full leap-year period
    keeps its whole limits.

    Example:
        >>> financial_year_days(date(2023, 4, 1), date(2024, 3, 31))
        366
        >>> financial_year_days(date(2024, 4, 1), date(2024, 9, 30))
        365
    """
    return max(_financial_year_length(start), _financial_year_length(end))


@dataclass(frozen=True)
class CorporationTaxDeadlines:
    """Payment is due 9 months and 1 day after the period ends; the return 12 months after."""

    payment: date
    filing: date


def corporation_tax_deadlines(period_end: date) -> CorporationTaxDeadlines:
    """Payment and filing deadlines for an accounting period.

    Months are calendar months; a day missing from the target month moves
    back to that month's last day.

    Example:
        >>> corporation_tax_deadlines(date(2025, 3, 31)).payment
        datetime.date(2026, 1, 1)
    """
    return CorporationTaxDeadlines(
        payment=add_months(period_end, PAYMENT_DUE_MONTHS) + timedelta(days=1),
        filing=add_months(period_end, FILING_DUE_MONTHS),
    )


def adjusted_limits(
    snapshot: RateSnapshot,
    period_days: int = DAYS_IN_YEAR,
    associated_companies: int = 0,
    year_days: int = DAYS_IN_YEAR,
) -> tuple[int, int]:
    """Small profits and marginal relief limits for a period and group size.

    Limits are scaled by period_days / year_days, so a full 366-day year
    keeps the whole limit.
    """
    companies = 1 + associated_companies
    lower = snapshot.threshold(_CT, c.SMALL_PROFITS_LIMIT)
    upper = snapshot.threshold(_CT, c.MARGINAL_RELIEF_LIMIT)
    return (
        prorate(lower, period_days, year_days * companies),
        prorate(upper, period_days, year_days * companies),
    )


def marginal_relief(profit: int, augmented: int, upper_limit: int, fraction: Fraction) -> int:
    """Marginal relief in pence, rounded half-up and never negative."""
    if profit <= 0 or augmented <= 0:
        return 0
    relief = (upper_limit - augmented) * Fraction(profit, augmented) * fraction
    return max(0, round_half_up(relief))


def compute_corporation_tax(
    profit: int,
    snapshot: RateSnapshot,
    period_days: int = DAYS_IN_YEAR,
    associated_companies: int = 0,
    distributions: int = 0,
    year_days: int | None = None,
) -> CorporationTaxResult:
    """Compute Corporation Tax on a period's taxable profit.

    Args:
        profit: Taxable profit in pence.
        snapshot: Rates for the financial year.
        period_days: Length of the accounting period (1 to 366).
        associated_companies: Number of associated companies.
        distributions: Exempt distributions received, in pence.
        year_days: Length of the year the limits are scaled against, 365
            or 366. Defaults to 366 for a 366-day period, else 365.

    Raises:
        NegativeIncome: If profit, distributions or associated_companies
            is negative.
        InvalidPeriod: If period_days is outside 1 to 366 or longer than
            year_days.
        RateNotFound: If a corporation tax row is missing.

    Example:
        Profit GBP 100,000, limits GBP 50,000 / GBP 250,000, 19% / 25%, 3/200:
        25,000 - (250,000 - 100,000) x 3/200 = GBP 22,750.
    """
    if profit < 0:
        raise NegativeIncome("profit", profit)
    if distributions < 0:
        raise NegativeIncome("distributions", distributions)
    if associated_companies < 0:
        raise NegativeIncome("associated_companies", associated_companies)
    if not 1 <= period_days <= MAX_PERIOD_DAYS:
        raise InvalidPeriod(
            f"period_days must be between 1 and {MAX_PERIOD_DAYS}, got {period_days}"
        )
    if year_days is None:
        year_days = max(DAYS_IN_YEAR, period_days)
    if year_days not in (DAYS_IN_YEAR, MAX_PERIOD_DAYS) or period_days > year_days:
        raise InvalidPeriod(
            f"A {period_days}-day period does not fit a {year_days}-day year"
        )

    lower, upper = adjusted_limits(snapshot, period_days, associated_companies, year_days)
    augmented = profit + distributions
    relief = 0

    if profit == 0:
        band = CorporationTaxBand.NO_TAX
        before = 0
    elif augmented <= lower:
        band = CorporationTaxBand.SMALL_PROFITS
        before = apply_rate(profit, snapshot.rate(_CT, c.SMALL_PROFITS))
    elif augmented >= upper:
        band = CorporationTaxBand.MAIN_RATE
        before = apply_rate(profit, snapshot.rate(_CT, c.MAIN))
    else:
        band = CorporationTaxBand.MARGINAL_RELIEF
        before = apply_rate(profit, snapshot.rate(_CT, c.MAIN))
        fraction = rate_fraction(snapshot.rate(_CT, c.MARGINAL_RELIEF_FRACTION))
        relief = marginal_relief(profit, augmented, upper, fraction)

    tax = max(0, before - relief)
    return CorporationTaxResult(
        profit=profit,
        augmented_profits=augmented,
        band=band,
        tax_before_relief=before,
        marginal_relief=relief,
        tax=tax,
        effective_rate=percentage_of(tax, profit),
        lower_limit=lower,
        upper_limit=upper,
    )


class CorporationTaxCalculator:
    """Corporation Tax for a tax year, reading rates from the repository."""

    def __init__(self, repository: RateRepository):
        self._repository = repository

    async def calculate(
        self,
        profit: int,
        tax_year: str,
        period_days: int = DAYS_IN_YEAR,
        associated_companies: int = 0,
        distributions: int = 0,
        year_days: int | None = None,
    ) -> CorporationTaxResult:
        """Compute Corporation Tax on a period's profit.

        Raises:
            NegativeIncome: If profit or distributions is negative.
            TaxYearNotFound: If the year has no rates.
        """
        if profit < 0:
            raise NegativeIncome("profit", profit)
        snapshot = await self._repository.get_snapshot(tax_year)
        result = compute_corporation_tax(
            profit, snapshot, period_days, associated_companies, distributions, year_days
        )
        logger.debug(
            "corporation_tax_calculated",
            tax_year=tax_year,
            profit=profit,
            band=result.band.value,
            tax=result.tax,
        )
        return result
