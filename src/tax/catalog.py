"""Closed catalogue of the rate rows each regime understands.

Rows are identified by (category, rate_type, name). Fixed regimes accept a
known set of names; income tax bands are open-ended so a year can add a
band (e.g. "starter") without a code change, but band names and their
limit thresholds must follow the naming scheme below.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from src.models.tax_rate import RateType, TaxCategory
from src.tax.errors import InvalidRateValue

# VAT
VAT_REGISTRATION = "registration"
VAT_DEREGISTRATION = "deregistration"
VAT_STANDARD = "standard"
VAT_REDUCED = "reduced"
VAT_ZERO = "zero"

# Income tax
PERSONAL_ALLOWANCE = "personal_allowance"
ALLOWANCE_TAPER_THRESHOLD = "allowance_taper_threshold"
BAND_LIMIT_SUFFIX = "_rate_limit"
BASIC_BAND = "basic"
HIGHER_BAND = "higher"
ADDITIONAL_BAND = "additional"

# National insurance
LOWER_EARNINGS_LIMIT = "lower_earnings_limit"
PRIMARY_THRESHOLD = "primary_threshold"
UPPER_EARNINGS_LIMIT = "upper_earnings_limit"
SECONDARY_THRESHOLD = "secondary_threshold"
EMPLOYEE_MAIN = "employee_main"
EMPLOYEE_UPPER = "employee_upper"
EMPLOYER = "employer"

# Corporation tax
SMALL_PROFITS = "small_profits"
MAIN = "main"
MARGINAL_RELIEF_FRACTION = "marginal_relief_fraction"
SMALL_PROFITS_LIMIT = "small_profits_limit"
MARGINAL_RELIEF_LIMIT = "marginal_relief_limit"

_BAND_NAME_RE = re.compile(r"[a-z][a-z0-9_]*")

FIXED_NAMES: dict[tuple[TaxCategory, RateType], frozenset[str]] = {
    (TaxCategory.VAT, RateType.THRESHOLD): frozenset(
        {VAT_REGISTRATION, VAT_DEREGISTRATION}
    ),
    (TaxCategory.VAT, RateType.RATE): frozenset({VAT_STANDARD, VAT_REDUCED, VAT_ZERO}),
    (TaxCategory.NATIONAL_INSURANCE, RateType.THRESHOLD): frozenset(
        {
            LOWER_EARNINGS_LIMIT,
            PRIMARY_THRESHOLD,
            UPPER_EARNINGS_LIMIT,
            SECONDARY_THRESHOLD,
        }
    ),
    (TaxCategory.NATIONAL_INSURANCE, RateType.RATE): frozenset(
        {EMPLOYEE_MAIN, EMPLOYEE_UPPER, EMPLOYER}
    ),
    (TaxCategory.CORPORATION_TAX, RateType.THRESHOLD): frozenset(
        {SMALL_PROFITS_LIMIT, MARGINAL_RELIEF_LIMIT}
    ),
    (TaxCategory.CORPORATION_TAX, RateType.RATE): frozenset(
        {SMALL_PROFITS, MAIN, MARGINAL_RELIEF_FRACTION}
    ),
}


@dataclass(frozen=True)
class RateKey:
    """Identity of a rate row within one tax year."""

    category: TaxCategory
    rate_type: RateType
    name: str

    def __str__(self) -> str:
        return f"{self.category.value}/{self.rate_type.value}/{self.name}"


def band_limit_name(band: str) -> str:
    """Threshold name holding the upper limit of an income tax band."""
    return f"{band}{BAND_LIMIT_SUFFIX}"


def validate_rate_key(key: RateKey) -> RateKey:
    """Check a (category, rate_type, name) combination is meaningful.

    Raises:
        InvalidRateValue: If the name is not valid for the category/type.
    """
    name = key.name
    if key.category is TaxCategory.INCOME_TAX:
        if key.rate_type is RateType.THRESHOLD:
            if name in (PERSONAL_ALLOWANCE, ALLOWANCE_TAPER_THRESHOLD):
                return key
            band = name.removesuffix(BAND_LIMIT_SUFFIX)
            if band != name and _BAND_NAME_RE.fullmatch(band):
                return key
        elif _BAND_NAME_RE.fullmatch(name) and not name.endswith(BAND_LIMIT_SUFFIX):
            return key
        raise InvalidRateValue(f"Invalid income tax {key.rate_type.value} name {name!r}")

    allowed = FIXED_NAMES[(key.category, key.rate_type)]
    if name not in allowed:
        raise InvalidRateValue(
            f"Unknown {key.category.value} {key.rate_type.value} {name!r}; "
            f"expected one of {sorted(allowed)}"
        )
    return key


def validate_value(rate_type: RateType, value: object) -> int:
    """Check a stored value against the fixed-point constraints.

    Thresholds are non-negative integer pence; rates are integer basis
    points between 0 and 10000 inclusive.

    Raises:
        InvalidRateValue: If the value is not an integer or out of range.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidRateValue(f"Value must be an integer, got {value!r}")
    if value < 0:
        raise InvalidRateValue(f"Value must be non-negative, got {value}")
    if rate_type is RateType.RATE and value > 10000:
        raise InvalidRateValue(f"Rate must be between 0 and 10000, got {value}")
    return value
