"""Fixed-point money and percentage helpers.

Money is integer pence. Percentages are integer basis points of a percent
(rate x 100), so 2000 is 20.00% and 10000 is 100%. Intermediate products
use Decimal and are rounded half-up to the penny exactly once.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from fractions import Fraction

RATE_SCALE = 10000
"""Basis points representing 100%."""

PENCE_PER_POUND = 100

_PENNY = Decimal("1")


def round_half_up(value: Decimal | Fraction) -> int:
    """Round a pence amount to the nearest penny, halves away from zero.

    Example:
        >>> round_half_up(Decimal("10.5"))
        11
        >>> round_half_up(Decimal("-10.5"))
        -11
    """
    if isinstance(value, Fraction):
        value = Decimal(value.numerator) / Decimal(value.denominator)
    return int(value.quantize(_PENNY, rounding=ROUND_HALF_UP))


def apply_rate(amount: int, rate: int) -> int:
    """Return amount x rate, rounded half-up to the penny.

    Args:
        amount: Amount in pence.
        rate: Rate in basis points (2000 = 20%).

    Example:
        >>> apply_rate(3770000, 2000)
        754000
    """
    return round_half_up(Fraction(amount * rate, RATE_SCALE))


def rate_fraction(rate: int) -> Fraction:
    """Exact fractional form of a basis-point rate (150 -> 3/200)."""
    return Fraction(rate, RATE_SCALE)


def prorate(amount: int, numerator: int, denominator: int) -> int:
    """Scale an amount by numerator/denominator, rounded half-up to the penny."""
    return round_half_up(Fraction(amount * numerator, denominator))


def prorate_to_pound(amount: int, divisor: int) -> int:
    """Divide a pence amount and round half-up to the nearest whole pound.

    Used for pay-period thresholds: 1,257,000p / 52 -> 24,200p (GBP 242).
    """
    pounds = round_half_up(Fraction(amount, divisor * PENCE_PER_POUND))
    return pounds * PENCE_PER_POUND


def percentage_of(part: int, whole: int) -> Decimal:
    """Return part / whole as a percentage with two decimal places."""
    if whole <= 0:
        return Decimal("0.00")
    return (Decimal(part) * 100 / Decimal(whole)).quantize(
        Decimal("0.01"), rounding=ROUND_HALF_UP
    )


def format_pounds(amount: int) -> str:
    """Render pence as a pound string for log lines and messages."""
    sign = "-" if amount < 0 else ""
    pounds, pence = divmod(abs(amount), PENCE_PER_POUND)
    return f"{sign}£{pounds:,}.{pence:02d}"
