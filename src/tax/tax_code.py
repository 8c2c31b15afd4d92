"""PAYE tax code parsing.

Supported forms:
- Standard codes such as 1257L: the digits times GBP 10 are the allowance.
- K codes such as K475: the amount is added to taxable pay instead.
- BR, D0, D1: all pay taxed at the basic, higher or additional rate.
- NT: no tax. 0T: no allowance, normal bands.
- A C prefix (Wales) uses the same rates; W1, M1 and X emergency suffixes
  are accepted and ignored because every calculation here is
  non-cumulative.

Scottish (S) codes are rejected: Scottish bands are not part of the
rate table.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from src.tax.errors import InvalidTaxCode

SPECIAL_CODES = ("BR", "D0", "D1", "NT", "0T")

# Pence of allowance per tax code unit (1257L -> GBP 12,570).
_PENCE_PER_CODE_UNIT = 1000

_EMERGENCY_RE = re.compile(r"(W1|M1|X)$")
_STANDARD_RE = re.compile(r"(\d{1,5})[LMNT]")
_K_CODE_RE = re.compile(r"K(\d{1,5})")


@dataclass(frozen=True)
class TaxCode:
    """Parsed tax code.

    Attributes:
        raw: Normalized code as supplied.
        allowance: Annual allowance in pence; negative for K codes.
        special: One of SPECIAL_CODES, or None for a numeric code.
        is_welsh: Whether the code had a C prefix.
        is_emergency: Whether the code had a W1/M1/X suffix.
    """

    raw: str
    allowance: int = 0
    special: str | None = None
    is_welsh: bool = False
    is_emergency: bool = False

    @property
    def is_k_code(self) -> bool:
        return self.allowance < 0


def parse_tax_code(code: str) -> TaxCode:
    """Parse a PAYE tax code.

    Raises:
        InvalidTaxCode: If the code is empty, Scottish, or not recognised.

    Example:
        >>> parse_tax_code("1257L").allowance
        1257000
        >>> parse_tax_code("K475").allowance
        -475000
    """
    raw = re.sub(r"\s+", "", code or "").upper()
    if not raw:
        raise InvalidTaxCode("Tax code must not be empty")

    body = raw
    is_emergency = False
    if raw not in SPECIAL_CODES and _EMERGENCY_RE.search(raw):
        is_emergency = True
        body = _EMERGENCY_RE.sub("", raw)

    if body.startswith("S"):
        raise InvalidTaxCode(f"Scottish tax code {raw!r} is not supported")

    is_welsh = body.startswith("C")
    if is_welsh:
        body = body[1:]

    if body in SPECIAL_CODES:
        return TaxCode(
            raw=raw, special=body, is_welsh=is_welsh, is_emergency=is_emergency
        )

    if match := _K_CODE_RE.fullmatch(body):
        allowance = -int(match.group(1)) * _PENCE_PER_CODE_UNIT
    elif match := _STANDARD_RE.fullmatch(body):
        allowance = int(match.group(1)) * _PENCE_PER_CODE_UNIT
    else:
        raise InvalidTaxCode(f"Unrecognised tax code {raw!r}")

    return TaxCode(
        raw=raw, allowance=allowance, is_welsh=is_welsh, is_emergency=is_emergency
    )
