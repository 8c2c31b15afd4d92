"""Income Tax calculation using progressive marginal bands.

Band rates are income_tax rate rows; each band's upper limit is the
threshold row "<band>_rate_limit", measured in taxable income above the
personal allowance. A band without a limit row is unbounded. Bands are
applied in ascending order of limit.

Each band's slice of tax is rounded half-up to the penny and the rounded
slices are summed, so tax on income split at a band boundary equals the
sum of the per-slice taxes exactly.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from src.core.logging import get_logger
from src.models.tax_rate import RateType, TaxCategory
from src.tax import catalog as c
from src.tax.errors import NegativeIncome, RateNotFound
from src.tax.money import apply_rate, prorate
from src.tax.repository import RateRepository, RateSnapshot
from src.tax.tax_code import TaxCode

logger = get_logger(__name__)

DEFAULT_TAPER_THRESHOLD = 10000000
"""GBP 100,000 in pence, used when the year has no taper threshold row."""

_TAPER_STEP = 200  # GBP 1 of allowance lost per GBP 2 of income
_SPECIAL_CODE_BANDS = {"BR": c.BASIC_BAND, "D0": c.HIGHER_BAND, "D1": c.ADDITIONAL_BAND}


@dataclass(frozen=True)
class TaxBand:
    """A marginal band: rate in basis points, upper limit in pence or None."""

    name: str
    rate: int
    upper: int | None


@dataclass
class BandSlice:
    """Tax charged on the part of taxable income falling in one band."""

    band: str
    rate: int
    taxable_amount: int
    tax: int


@dataclass
class IncomeTaxResult:
    """Result of an annual Income Tax calculation (all amounts in pence).

    Attributes:
        income: Gross annual income.
        personal_allowance: Allowance actually given after taper or tax code.
        taxable_income: Income charged to tax.
        tax: Total tax due.
        bands: Per-band breakdown, lowest band first.
    """

    income: int
    personal_allowance: int
    taxable_income: int
    tax: int
    bands: list[BandSlice] = field(default_factory=list)


def tapered_allowance(income: int, allowance: int, taper_threshold: int) -> int:
    """Reduce the allowance by GBP 1 for every full GBP 2 of income over the threshold.

    Never negative.

    Example:
        >>> tapered_allowance(11000000, 1257000, 10000000)
        757000
    """
    if income <= taper_threshold:
        return allowance
    reduction = (income - taper_threshold) // _TAPER_STEP * 100
    return max(0, allowance - reduction)


def income_tax_bands(snapshot: RateSnapshot) -> list[TaxBand]:
    """Bands of a tax year in the order they are filled.

    Raises:
        RateNotFound: If the year has no income tax rate rows.
    """
    bands = [
        TaxBand(
            name=row.name,
            rate=row.value,
            upper=snapshot.optional_threshold(
                TaxCategory.INCOME_TAX, c.band_limit_name(row.name)
            ),
        )
        for row in snapshot.rows_for(TaxCategory.INCOME_TAX, RateType.RATE)
    ]
    if not bands:
        raise RateNotFound(f"Tax year {snapshot.tax_year} has no income tax bands")
    return sorted(bands, key=lambda b: (b.upper is None, b.upper or 0, b.rate))


def apply_bands(taxable_income: int, bands: list[TaxBand]) -> list[BandSlice]:
    """Split taxable income across bands and tax each slice."""
    slices: list[BandSlice] = []
    remaining = taxable_income
    lower = 0
    for band in bands:
        if remaining <= 0:
            break
        if band.upper is None:
            amount = remaining
        else:
            amount = min(remaining, max(0, band.upper - lower))
            lower = max(lower, band.upper)
        if amount <= 0:
            continue
        slices.append(
            BandSlice(
                band=band.name,
                rate=band.rate,
                taxable_amount=amount,
                tax=apply_rate(amount, band.rate),
            )
        )
        remaining -= amount
    return slices


def _flat_rate_band(snapshot: RateSnapshot, band_name: str) -> TaxBand:
    rate = snapshot.rate(TaxCategory.INCOME_TAX, band_name)
    return TaxBand(name=band_name, rate=rate, upper=None)


def _result(income: int, allowance: int, taxable: int, bands: list[TaxBand]) -> IncomeTaxResult:
    slices = apply_bands(taxable, bands)
    return IncomeTaxResult(
        income=income,
        personal_allowance=max(0, allowance),
        taxable_income=taxable,
        tax=sum(s.tax for s in slices),
        bands=slices,
    )


def compute_income_tax(
    income: int,
    snapshot: RateSnapshot,
    tax_code: TaxCode | None = None,
) -> IncomeTaxResult:
    """Compute annual Income Tax from a rate snapshot.

    Without a tax code the personal allowance is tapered above the taper
    threshold. A numeric tax code replaces the allowance outright.

    Args:
        income: Annual taxable income in pence.
        snapshot: Rates for the tax year.
        tax_code: Optional PAYE code overriding the standard allowance.

    Returns:
        IncomeTaxResult with a per-band breakdown.

    Raises:
        NegativeIncome: If income is negative.
        RateNotFound: If the year lacks the personal allowance or bands.

    Example:
        Allowance GBP 12,570, basic 20% to GBP 50,270, income GBP 60,000:
        37,700 x 20% + 9,730 x 40% = GBP 11,432.00 (1,143,200 pence).
    """
    if income < 0:
        raise NegativeIncome("income", income)

    if tax_code is not None and tax_code.special == "NT":
        return IncomeTaxResult(income=income, personal_allowance=0, taxable_income=0, tax=0)

    if tax_code is not None and tax_code.special in _SPECIAL_CODE_BANDS:
        bands = [_flat_rate_band(snapshot, _SPECIAL_CODE_BANDS[tax_code.special])]
        return _result(income, 0, income, bands)

    bands = income_tax_bands(snapshot)
    if tax_code is None:
        base_allowance = snapshot.threshold(TaxCategory.INCOME_TAX, c.PERSONAL_ALLOWANCE)
        taper_threshold = snapshot.optional_threshold(
            TaxCategory.INCOME_TAX, c.ALLOWANCE_TAPER_THRESHOLD
        )
        allowance = tapered_allowance(
            income,
            base_allowance,
            DEFAULT_TAPER_THRESHOLD if taper_threshold is None else taper_threshold,
        )
    else:
        allowance = tax_code.allowance
    # A K code's negative allowance adds to taxable income.
    return _result(income, allowance, max(0, income - allowance), bands)


def compute_cumulative_income_tax(
    ytd_pay: int,
    snapshot: RateSnapshot,
    period_number: int,
    periods: int,
    tax_code: TaxCode | None = None,
) -> IncomeTaxResult:
    """Tax due on pay to date under the PAYE cumulative basis.

    The allowance and every band limit are scaled to period_number /
    periods of their annual value before the bands are applied to the
    year-to-date pay. Subtracting the tax already paid in the year from
    the result gives the tax due this period.

    Without a tax code the untapered personal allowance is used, as for a
    standard code; PAYE leaves the taper to code changes.

    Raises:
        NegativeIncome: If ytd_pay is negative.
        RateNotFound: If the year lacks the personal allowance or bands.

    Example:
        Month 3, GBP 5,000 a month, standard allowance: to date the
        allowance is 3,142.50 and the basic band 9,425.00, so tax to date
        is 9,425 x 20% + 2,432.50 x 40% = GBP 2,858.00.
    """
    if ytd_pay < 0:
        raise NegativeIncome("ytd_pay", ytd_pay)

    if tax_code is not None and tax_code.special == "NT":
        return IncomeTaxResult(income=ytd_pay, personal_allowance=0, taxable_income=0, tax=0)

    if tax_code is not None and tax_code.special in _SPECIAL_CODE_BANDS:
        bands = [_flat_rate_band(snapshot, _SPECIAL_CODE_BANDS[tax_code.special])]
        return _result(ytd_pay, 0, ytd_pay, bands)

    if tax_code is None:
        annual_allowance = snapshot.threshold(TaxCategory.INCOME_TAX, c.PERSONAL_ALLOWANCE)
    else:
        annual_allowance = tax_code.allowance
    allowance = prorate(annual_allowance, period_number, periods)
    bands = [
        TaxBand(
            name=band.name,
            rate=band.rate,
            upper=None if band.upper is None else prorate(band.upper, period_number, periods),
        )
        for band in income_tax_bands(snapshot)
    ]
    return _result(ytd_pay, allowance, max(0, ytd_pay - allowance), bands)


class IncomeTaxCalculator:
    """Income Tax for a tax year, reading rates from the repository."""

    def __init__(self, repository: RateRepository):
        self._repository = repository

    async def calculate(
        self,
        income: int,
        tax_year: str,
        tax_code: TaxCode | None = None,
    ) -> IncomeTaxResult:
        """Compute annual Income Tax due.

        Raises:
            NegativeIncome: If income is negative.
            TaxYearNotFound: If the year has no rates.
        """
        if income < 0:
            raise NegativeIncome("income", income)
        snapshot = await self._repository.get_snapshot(tax_year)
        result = compute_income_tax(income, snapshot, tax_code)
        logger.debug(
            "income_tax_calculated",
            tax_year=tax_year,
            income=income,
            allowance=result.personal_allowance,
            tax=result.tax,
        )
        return result
