"""Default UK rate table used to bootstrap an empty database.

Values are HMRC published figures for England, Wales and Northern Ireland.
Thresholds are annual pence; rates are basis points (2000 = 20%).

Example:
    >>> rows = DEFAULT_RATE_TABLES["2024-25"]
    >>> next(r.value for r in rows if r.name == "personal_allowance")
    1257000
"""

from __future__ import annotations

from dataclasses import dataclass

from src.core.logging import get_logger
from src.models.tax_rate import RateType, TaxCategory
from src.tax import catalog as c
from src.tax.repository import RateRepository
from src.tax.tax_year import tax_year_bounds

logger = get_logger(__name__)

_T = RateType.THRESHOLD
_R = RateType.RATE


@dataclass(frozen=True)
class SeedRate:
    """One default rate row, without year or dates."""

    category: TaxCategory
    rate_type: RateType
    name: str
    value: int
    description: str


def _vat(registration: int, deregistration: int) -> list[SeedRate]:
    vat = TaxCategory.VAT
    return [
        SeedRate(vat, _T, c.VAT_REGISTRATION, registration, "VAT registration threshold"),
        SeedRate(vat, _T, c.VAT_DEREGISTRATION, deregistration, "VAT deregistration threshold"),
        SeedRate(vat, _R, c.VAT_STANDARD, 2000, "Standard VAT rate"),
        SeedRate(vat, _R, c.VAT_REDUCED, 500, "Reduced VAT rate"),
        SeedRate(vat, _R, c.VAT_ZERO, 0, "Zero VAT rate"),
    ]


def _income_tax() -> list[SeedRate]:
    it = TaxCategory.INCOME_TAX
    return [
        SeedRate(it, _T, c.PERSONAL_ALLOWANCE, 1257000, "Personal allowance"),
        SeedRate(
            it, _T, c.ALLOWANCE_TAPER_THRESHOLD, 10000000,
            "Income above which the personal allowance is withdrawn",
        ),
        SeedRate(
            it, _T, c.band_limit_name(c.BASIC_BAND), 3770000,
            "Basic rate band limit (taxable income above the allowance)",
        ),
        SeedRate(
            it, _T, c.band_limit_name(c.HIGHER_BAND), 12514000,
            "Higher rate band limit (taxable income above the allowance)",
        ),
        SeedRate(it, _R, c.BASIC_BAND, 2000, "Basic rate"),
        SeedRate(it, _R, c.HIGHER_BAND, 4000, "Higher rate"),
        SeedRate(it, _R, c.ADDITIONAL_BAND, 4500, "Additional rate"),
    ]


def _national_insurance(
    lower_earnings_limit: int, secondary_threshold: int, employer_rate: int
) -> list[SeedRate]:
    ni = TaxCategory.NATIONAL_INSURANCE
    return [
        SeedRate(ni, _T, c.LOWER_EARNINGS_LIMIT, lower_earnings_limit, "Lower earnings limit"),
        SeedRate(ni, _T, c.PRIMARY_THRESHOLD, 1257000, "Primary threshold"),
        SeedRate(ni, _T, c.UPPER_EARNINGS_LIMIT, 5027000, "Upper earnings limit"),
        SeedRate(ni, _T, c.SECONDARY_THRESHOLD, secondary_threshold, "Secondary threshold"),
        SeedRate(ni, _R, c.EMPLOYEE_MAIN, 800, "Employee main rate"),
        SeedRate(ni, _R, c.EMPLOYEE_UPPER, 200, "Employee rate above the UEL"),
        SeedRate(ni, _R, c.EMPLOYER, employer_rate, "Employer rate"),
    ]


def _corporation_tax() -> list[SeedRate]:
    ct = TaxCategory.CORPORATION_TAX
    return [
        SeedRate(ct, _R, c.SMALL_PROFITS, 1900, "Small profits rate"),
        SeedRate(ct, _R, c.MAIN, 2500, "Main rate"),
        SeedRate(ct, _R, c.MARGINAL_RELIEF_FRACTION, 150, "Marginal relief fraction (3/200)"),
        SeedRate(ct, _T, c.SMALL_PROFITS_LIMIT, 5000000, "Small profits lower limit"),
        SeedRate(ct, _T, c.MARGINAL_RELIEF_LIMIT, 25000000, "Marginal relief upper limit"),
    ]


DEFAULT_RATE_TABLES: dict[str, list[SeedRate]] = {
    "2024-25": [
        *_vat(9000000, 8800000),
        *_income_tax(),
        *_national_insurance(639600, 910000, 1380),
        *_corporation_tax(),
    ],
    "2025-26": [
        *_vat(9000000, 8800000),
        *_income_tax(),
        *_national_insurance(654200, 500000, 1500),
        *_corporation_tax(),
    ],
}


async def seed_default_rates(
    repository: RateRepository,
    tables: dict[str, list[SeedRate]] | None = None,
) -> list[str]:
    """Insert the default table for every year not already present.

    Years that already have rows are left untouched, so seeding never
    overwrites an administrator's edits.

    Returns:
        The tax years that were seeded, oldest first.
    """
    tables = tables if tables is not None else DEFAULT_RATE_TABLES
    seeded: list[str] = []
    for tax_year, rows in sorted(tables.items()):
        if await repository.has_year(tax_year):
            continue
        effective_from, effective_to = tax_year_bounds(tax_year)
        for row in rows:
            await repository.create_rate(
                tax_year=tax_year,
                category=row.category,
                name=row.name,
                rate_type=row.rate_type,
                value=row.value,
                effective_from=effective_from,
                effective_to=effective_to,
                description=row.description,
            )
        seeded.append(tax_year)
        logger.info("tax_rates_seeded", tax_year=tax_year, count=len(rows))
    return seeded
