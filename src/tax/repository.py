"""Persistent store of versioned tax rates.

RateRepository is the only writer of tax_rates. It works inside the
caller's AsyncSession: every write is flushed but only becomes visible to
other sessions when the caller commits, so a multi-row write such as a
year copy is all-or-nothing.

Calculators never touch the ORM. They read a RateSnapshot, an immutable
copy of every row of one tax year taken in a single query, which gives a
calculation a consistent view even if an administrator edits a rate while
it runs.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.logging import get_logger
from src.models.tax_rate import RateType, TaxCategory, TaxRate
from src.tax.catalog import RateKey, validate_rate_key, validate_value
from src.tax.errors import (
    DuplicateTaxYear,
    InvalidRateValue,
    RateNotFound,
    TaxYearNotFound,
)
from src.tax.tax_year import parse_tax_year, sort_tax_years

logger = get_logger(__name__)


# =============================================================================
# Snapshot
# =============================================================================


@dataclass(frozen=True)
class RateRow:
    """Detached, immutable copy of a TaxRate row."""

    id: int | None
    category: TaxCategory
    name: str
    rate_type: RateType
    value: int
    tax_year: str
    effective_from: date
    effective_to: date
    description: str | None = None

    @classmethod
    def from_model(cls, rate: TaxRate) -> RateRow:
        return cls(
            id=rate.id,
            category=rate.category,
            name=rate.name,
            rate_type=rate.rate_type,
            value=rate.value,
            tax_year=rate.tax_year,
            effective_from=rate.effective_from,
            effective_to=rate.effective_to,
            description=rate.description,
        )

    @property
    def key(self) -> RateKey:
        return RateKey(self.category, self.rate_type, self.name)


@dataclass(frozen=True)
class RateSnapshot:
    """Every rate row of one tax year, read together.

    Attributes:
        tax_year: The tax year the rows belong to.
        rows: Rows keyed by (category, rate_type, name).
    """

    tax_year: str
    rows: dict[RateKey, RateRow]

    @classmethod
    def from_rows(cls, tax_year: str, rows: Iterable[RateRow]) -> RateSnapshot:
        return cls(tax_year=tax_year, rows={row.key: row for row in rows})

    def _get(self, key: RateKey) -> int:
        row = self.rows.get(key)
        if row is None:
            raise RateNotFound(f"Tax year {self.tax_year} has no {key} row")
        return row.value

    def threshold(self, category: TaxCategory, name: str) -> int:
        """Threshold value in pence. Raises RateNotFound if absent."""
        return self._get(RateKey(category, RateType.THRESHOLD, name))

    def rate(self, category: TaxCategory, name: str) -> int:
        """Rate value in basis points. Raises RateNotFound if absent."""
        return self._get(RateKey(category, RateType.RATE, name))

    def optional_threshold(self, category: TaxCategory, name: str) -> int | None:
        row = self.rows.get(RateKey(category, RateType.THRESHOLD, name))
        return row.value if row else None

    def optional_rate(self, category: TaxCategory, name: str) -> int | None:
        row = self.rows.get(RateKey(category, RateType.RATE, name))
        return row.value if row else None

    def rows_for(self, category: TaxCategory, rate_type: RateType) -> list[RateRow]:
        """Rows of one category and type, ordered by name."""
        return sorted(
            (
                row
                for key, row in self.rows.items()
                if key.category is category and key.rate_type is rate_type
            ),
            key=lambda row: row.name,
        )


# =============================================================================
# Repository
# =============================================================================


def _check_effective_dates(effective_from: date, effective_to: date) -> None:
    if effective_from >= effective_to:
        raise InvalidRateValue(
            f"effective_from ({effective_from}) must be before effective_to ({effective_to})"
        )


class RateRepository:
    """Async repository over the tax_rates table."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_tax_years(self) -> list[str]:
        """Distinct tax years with at least one row, most recent first."""
        result = await self._session.execute(select(TaxRate.tax_year).distinct())
        return sort_tax_years(result.scalars().all())

    async def has_year(self, tax_year: str) -> bool:
        result = await self._session.execute(
            select(TaxRate.id).where(TaxRate.tax_year == tax_year).limit(1)
        )
        return result.first() is not None

    async def get_rates(self, tax_year: str) -> list[TaxRate]:
        """All rows for a tax year ordered by category, name and type.

        Raises:
            TaxYearNotFound: If the year has never been seeded.
        """
        result = await self._session.execute(
            select(TaxRate)
            .where(TaxRate.tax_year == tax_year)
            .order_by(TaxRate.category, TaxRate.name, TaxRate.rate_type)
        )
        rates = list(result.scalars().all())
        if not rates:
            raise TaxYearNotFound(tax_year)
        return rates

    async def get_snapshot(self, tax_year: str) -> RateSnapshot:
        """Read every row of a year in one query for a calculation."""
        rates = await self.get_rates(tax_year)
        return RateSnapshot.from_rows(tax_year, (RateRow.from_model(r) for r in rates))

    async def get_rate(
        self,
        tax_year: str,
        category: TaxCategory,
        name: str,
        rate_type: RateType,
    ) -> TaxRate | None:
        """Look up a single row by its identity, or None."""
        result = await self._session.execute(
            select(TaxRate).where(
                TaxRate.tax_year == tax_year,
                TaxRate.category == category,
                TaxRate.name == name,
                TaxRate.rate_type == rate_type,
            )
        )
        return result.scalar_one_or_none()

    async def get_rate_by_id(self, rate_id: int) -> TaxRate:
        rate = await self._session.get(TaxRate, rate_id)
        if rate is None:
            raise RateNotFound(f"Tax rate {rate_id} not found")
        return rate

    async def grouped(self, tax_year: str) -> dict[str, dict[str, dict[str, int]]]:
        """Rates for a year grouped as {category: {thresholds: {}, rates: {}}}."""
        grouped: dict[str, dict[str, dict[str, int]]] = {}
        for rate in await self.get_rates(tax_year):
            bucket = grouped.setdefault(
                rate.category.value, {"thresholds": {}, "rates": {}}
            )
            section = "thresholds" if rate.rate_type is RateType.THRESHOLD else "rates"
            bucket[section][rate.name] = rate.value
        return grouped

    async def create_rate(
        self,
        *,
        tax_year: str,
        category: TaxCategory,
        name: str,
        rate_type: RateType,
        value: int,
        effective_from: date,
        effective_to: date,
        description: str | None = None,
    ) -> TaxRate:
        """Insert one row after validating its identity, value and dates.

        Raises:
            InvalidRateValue: On an invalid name, value or date range, or
                if the identity already exists for that year.
            InvalidTaxYear: On a malformed tax year.
        """
        parse_tax_year(tax_year)
        validate_rate_key(RateKey(category, rate_type, name))
        validate_value(rate_type, value)
        _check_effective_dates(effective_from, effective_to)

        if await self.get_rate(tax_year, category, name, rate_type) is not None:
            raise InvalidRateValue(
                f"{category.value}/{rate_type.value}/{name} already exists for {tax_year}"
            )

        rate = TaxRate(
            tax_year=tax_year,
            category=category,
            name=name,
            rate_type=rate_type,
            value=value,
            effective_from=effective_from,
            effective_to=effective_to,
            description=description,
        )
        self._session.add(rate)
        await self._session.flush()
        return rate

    async def update_rate_value(self, rate_id: int, new_value: int) -> TaxRate:
        """Change the value of one row; nothing else about a row is mutable.

        The row is locked for the rest of the caller's transaction where the
        database supports it.

        Raises:
            RateNotFound: If no row has that id.
            InvalidRateValue: If the value breaks the row's constraints.
        """
        result = await self._session.execute(
            select(TaxRate).where(TaxRate.id == rate_id).with_for_update()
        )
        rate = result.scalar_one_or_none()
        if rate is None:
            raise RateNotFound(f"Tax rate {rate_id} not found")

        validate_value(rate.rate_type, new_value)
        old_value = rate.value
        rate.value = new_value
        await self._session.flush()

        logger.info(
            "rate_value_updated",
            rate_id=rate.id,
            tax_year=rate.tax_year,
            category=rate.category.value,
            name=rate.name,
            rate_type=rate.rate_type.value,
            old_value=old_value,
            new_value=new_value,
        )
        return rate

    async def copy_year(
        self,
        from_year: str,
        to_year: str,
        effective_from: date,
        effective_to: date,
    ) -> list[TaxRate]:
        """Clone every row of from_year into to_year with new date bounds.

        The clones are added as one batch; if any insert fails nothing is
        written once the caller's transaction rolls back.

        Raises:
            InvalidTaxYear: If either key is malformed.
            InvalidRateValue: If effective_from is not before effective_to.
            DuplicateTaxYear: If to_year already has rows.
            TaxYearNotFound: If from_year has no rows.
        """
        parse_tax_year(from_year)
        parse_tax_year(to_year)
        _check_effective_dates(effective_from, effective_to)

        if await self.has_year(to_year):
            raise DuplicateTaxYear(to_year)
        source = await self.get_rates(from_year)

        clones = [
            TaxRate(
                tax_year=to_year,
                category=rate.category,
                name=rate.name,
                rate_type=rate.rate_type,
                value=rate.value,
                description=rate.description,
                effective_from=effective_from,
                effective_to=effective_to,
            )
            for rate in source
        ]
        self._session.add_all(clones)
        try:
            await self._session.flush()
        except IntegrityError as exc:
            # Another writer created the year between the check and the insert.
            raise DuplicateTaxYear(to_year) from exc

        logger.info(
            "tax_year_copied",
            from_year=from_year,
            to_year=to_year,
            effective_from=effective_from.isoformat(),
            effective_to=effective_to.isoformat(),
            count=len(clones),
        )
        return clones
