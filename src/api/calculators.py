"""Standalone calculator endpoints: Income Tax, National Insurance, Corporation Tax."""

from datetime import date

from fastapi import APIRouter, Depends
from pydantic import Field, StrictInt

from src.api.deps import get_rate_repository, resolve_tax_year
from src.api.schemas import CamelModel
from src.tax.corporation_tax import (
    DAYS_IN_YEAR,
    CorporationTaxBand,
    CorporationTaxCalculator,
    corporation_tax_deadlines,
    financial_year_days,
    period_days_between,
)
from src.tax.income_tax import IncomeTaxCalculator
from src.tax.national_insurance import NationalInsuranceCalculator, NiCategory, PayFrequency
from src.tax.repository import RateRepository
from src.tax.tax_code import parse_tax_code

router = APIRouter(tags=["calculators"])


# =============================================================================
# Income Tax
# =============================================================================


class IncomeTaxRequest(CamelModel):
    income: StrictInt
    tax_year: str | None = None
    tax_code: str | None = None


class BandSliceResponse(CamelModel):
    band: str
    rate: int
    taxable_amount: int
    tax: int


class IncomeTaxResponse(CamelModel):
    """Annual Income Tax with a per-band breakdown (pence)."""

    tax_year: str
    income: int
    personal_allowance: int
    taxable_income: int
    tax: int
    bands: list[BandSliceResponse]


@router.post("/income-tax/calculate", response_model=IncomeTaxResponse)
async def calculate_income_tax(
    payload: IncomeTaxRequest,
    repository: RateRepository = Depends(get_rate_repository),
) -> IncomeTaxResponse:
    """Compute annual Income Tax on an income."""
    tax_year = await resolve_tax_year(repository, payload.tax_year)
    tax_code = parse_tax_code(payload.tax_code) if payload.tax_code else None
    result = await IncomeTaxCalculator(repository).calculate(
        payload.income, tax_year, tax_code
    )
    return IncomeTaxResponse(
        tax_year=tax_year,
        income=result.income,
        personal_allowance=result.personal_allowance,
        taxable_income=result.taxable_income,
        tax=result.tax,
        bands=[
            BandSliceResponse(
                band=s.band, rate=s.rate, taxable_amount=s.taxable_amount, tax=s.tax
            )
            for s in result.bands
        ],
    )


# =============================================================================
# National Insurance
# =============================================================================


class NationalInsuranceRequest(CamelModel):
    gross_pay: StrictInt
    tax_year: str | None = None
    pay_frequency: PayFrequency = PayFrequency.ANNUAL
    ni_category: NiCategory = NiCategory.A


class NationalInsuranceResponse(CamelModel):
    """Employee and employer NI for one period (pence)."""

    tax_year: str
    gross_pay: int
    pay_frequency: PayFrequency
    ni_category: NiCategory
    employee_ni: int = Field(alias="employeeNI")
    employer_ni: int = Field(alias="employerNI")
    primary_threshold: int
    upper_earnings_limit: int
    secondary_threshold: int
    earnings_at_main_rate: int
    earnings_above_uel: int


@router.post("/national-insurance/calculate", response_model=NationalInsuranceResponse)
async def calculate_national_insurance(
    payload: NationalInsuranceRequest,
    repository: RateRepository = Depends(get_rate_repository),
) -> NationalInsuranceResponse:
    """Compute Class 1 NI on one period's gross pay."""
    tax_year = await resolve_tax_year(repository, payload.tax_year)
    result = await NationalInsuranceCalculator(repository).calculate(
        payload.gross_pay, tax_year, payload.pay_frequency, payload.ni_category
    )
    return NationalInsuranceResponse(
        tax_year=tax_year,
        gross_pay=payload.gross_pay,
        pay_frequency=payload.pay_frequency,
        ni_category=payload.ni_category,
        employee_ni=result.employee_ni,
        employer_ni=result.employer_ni,
        primary_threshold=result.thresholds.primary_threshold,
        upper_earnings_limit=result.thresholds.upper_earnings_limit,
        secondary_threshold=result.thresholds.secondary_threshold,
        earnings_at_main_rate=result.earnings_at_main_rate,
        earnings_above_uel=result.earnings_above_uel,
    )


# =============================================================================
# Corporation Tax
# =============================================================================


class CorporationTaxRequest(CamelModel):
    """Payload for a Corporation Tax estimate.

    Supplying periodStart and periodEnd sets periodDays and the year length
    from the dates and adds the payment and filing deadlines.
    """

    profit: StrictInt
    tax_year: str | None = None
    period_days: StrictInt = DAYS_IN_YEAR
    period_start: date | None = None
    period_end: date | None = None
    associated_companies: StrictInt = 0
    distributions: StrictInt = 0


class CorporationTaxResponse(CamelModel):
    """Corporation Tax for an accounting period (pence).

    Deadlines are only given when the period dates are known.
    """

    tax_year: str
    profit: int
    augmented_profits: int
    band: CorporationTaxBand
    tax_before_relief: int
    marginal_relief: int
    tax: int
    effective_rate: float
    lower_limit: int
    upper_limit: int
    period_days: int
    year_days: int
    payment_deadline: date | None = None
    filing_deadline: date | None = None


@router.post("/corporation-tax/calculate", response_model=CorporationTaxResponse)
async def calculate_corporation_tax(
    payload: CorporationTaxRequest,
    repository: RateRepository = Depends(get_rate_repository),
) -> CorporationTaxResponse:
    """Compute Corporation Tax with marginal relief."""
    tax_year = await resolve_tax_year(repository, payload.tax_year)
    period_days = payload.period_days
    year_days = max(DAYS_IN_YEAR, period_days)
    deadlines = None
    if payload.period_start is not None and payload.period_end is not None:
        period_days = period_days_between(payload.period_start, payload.period_end)
        year_days = financial_year_days(payload.period_start, payload.period_end)
        deadlines = corporation_tax_deadlines(payload.period_end)

    result = await CorporationTaxCalculator(repository).calculate(
        payload.profit,
        tax_year,
        period_days=period_days,
        associated_companies=payload.associated_companies,
        distributions=payload.distributions,
        year_days=year_days,
    )
    return CorporationTaxResponse(
        tax_year=tax_year,
        profit=result.profit,
        augmented_profits=result.augmented_profits,
        band=result.band,
        tax_before_relief=result.tax_before_relief,
        marginal_relief=result.marginal_relief,
        tax=result.tax,
        effective_rate=float(result.effective_rate),
        lower_limit=result.lower_limit,
        upper_limit=result.upper_limit,
        period_days=period_days,
        year_days=year_days,
        payment_deadline=deadlines.payment if deadlines else None,
        filing_deadline=deadlines.filing if deadlines else None,
    )
