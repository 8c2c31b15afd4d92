"""Tax year lifecycle: listing known years and copying a year forward.

Each April an administrator bootstraps the new year by cloning the
previous year's rates and then editing whatever changed. Rows of the old
year are never touched, so calculations already made under them stay
reproducible.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from src.models.tax_rate import TaxRate
from src.tax.errors import TaxYearNotFound
from src.tax.repository import RateRepository
from src.tax.tax_year import (
    current_tax_year,
    next_tax_year,
    parse_tax_year,
    sort_tax_years,
    tax_year_bounds,
)


@dataclass
class TaxYearListing:
    """Known years and the years that could be created next.

    Attributes:
        tax_years: Years with rate rows, most recent first.
        available_years: Years not yet present that may be created by a
            copy: the successor of the latest year, and the current tax
            year if it is missing.
    """

    tax_years: list[str]
    available_years: list[str]


class TaxYearManager:
    """Creates and lists tax years on top of a RateRepository."""

    def __init__(self, repository: RateRepository):
        self._repository = repository

    async def known_years(self) -> list[str]:
        return await self._repository.list_tax_years()

    async def listing(self, today: date | None = None) -> TaxYearListing:
        known = await self.known_years()
        candidates = {current_tax_year(today)}
        if known:
            candidates.add(next_tax_year(known[0]))
        available = sort_tax_years(year for year in candidates if year not in known)
        return TaxYearListing(tax_years=known, available_years=available)

    async def copy_year(
        self,
        from_year: str,
        to_year: str,
        effective_from: date | None = None,
        effective_to: date | None = None,
    ) -> list[TaxRate]:
        """Clone from_year into to_year.

        Missing effective dates default to to_year's 6 April - 5 April bounds.

        Raises:
            DuplicateTaxYear: If to_year already has rows.
            TaxYearNotFound: If from_year has no rows.
        """
        default_from, default_to = tax_year_bounds(to_year)
        return await self._repository.copy_year(
            from_year,
            to_year,
            effective_from or default_from,
            effective_to or default_to,
        )

    async def copy_forward(self, from_year: str | None = None) -> list[TaxRate]:
        """Create the year after from_year (default: the latest known year).

        Raises:
            TaxYearNotFound: If there is no year to copy from.
            DuplicateTaxYear: If the following year already exists.
        """
        if from_year is None:
            known = await self.known_years()
            if not known:
                raise TaxYearNotFound(current_tax_year())
            from_year = known[0]
        parse_tax_year(from_year)
        return await self.copy_year(from_year, next_tax_year(from_year))
