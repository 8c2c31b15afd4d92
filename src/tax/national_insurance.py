"""Class 1 National Insurance for employees and employers.

Thresholds are stored as annual figures. For a shorter pay period they are
divided by the number of periods in a year and rounded half-up to the
whole pound, which reproduces HMRC's published weekly and monthly figures
(e.g. primary threshold GBP 12,570 -> GBP 242 weekly, GBP 1,048 monthly).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from src.core.logging import get_logger
from src.models.tax_rate import TaxCategory
from src.tax import catalog as c
from src.tax.errors import NegativeIncome
from src.tax.money import apply_rate, prorate_to_pound
from src.tax.repository import RateRepository, RateSnapshot

logger = get_logger(__name__)

_NI = TaxCategory.NATIONAL_INSURANCE


class PayFrequency(enum.Enum):
    """How often an employee is paid."""

    WEEKLY = "weekly"
    FORTNIGHTLY = "fortnightly"
    FOUR_WEEKLY = "four_weekly"
    MONTHLY = "monthly"
    ANNUAL = "annual"

    @property
    def periods_per_year(self) -> int:
        return _PERIODS_PER_YEAR[self]


_PERIODS_PER_YEAR = {
    PayFrequency.WEEKLY: 52,
    PayFrequency.FORTNIGHTLY: 26,
    PayFrequency.FOUR_WEEKLY: 13,
    PayFrequency.MONTHLY: 12,
    PayFrequency.ANNUAL: 1,
}


class NiCategory(enum.Enum):
    """NI category letters that change the standard calculation."""

    A = "A"  # standard
    C = "C"  # over state pension age: no employee NI
    H = "H"  # apprentice under 25: employer NI only above the UEL
    M = "M"  # under 21: employer NI only above the UEL
    Z = "Z"  # under 21, deferred: employer NI only above the UEL


_EMPLOYER_RELIEF_CATEGORIES = frozenset({NiCategory.H, NiCategory.M, NiCategory.Z})


@dataclass(frozen=True)
class PeriodThresholds:
    """Thresholds for one pay period, in pence."""

    primary_threshold: int
    upper_earnings_limit: int
    secondary_threshold: int


@dataclass
class NationalInsuranceResult:
    """Employee and employer NI for one period (pence).

    Attributes:
        employee_ni: Employee contribution, never negative.
        employer_ni: Employer contribution, never negative.
        thresholds: Period thresholds used.
        earnings_at_main_rate: Pay between primary threshold and UEL.
        earnings_above_uel: Pay above the UEL.
        employer_earnings: Pay the employer rate was charged on.
    """

    employee_ni: int
    employer_ni: int
    thresholds: PeriodThresholds
    earnings_at_main_rate: int
    earnings_above_uel: int
    employer_earnings: int


def period_thresholds(snapshot: RateSnapshot, frequency: PayFrequency) -> PeriodThresholds:
    """Annual thresholds scaled to a pay period.

    The employer threshold is the secondary threshold when the year has
    one, otherwise the primary threshold.
    """
    primary = snapshot.threshold(_NI, c.PRIMARY_THRESHOLD)
    upper = snapshot.threshold(_NI, c.UPPER_EARNINGS_LIMIT)
    secondary = snapshot.optional_threshold(_NI, c.SECONDARY_THRESHOLD)
    if secondary is None:
        secondary = primary

    if frequency is PayFrequency.ANNUAL:
        return PeriodThresholds(primary, upper, secondary)

    periods = frequency.periods_per_year
    return PeriodThresholds(
        primary_threshold=prorate_to_pound(primary, periods),
        upper_earnings_limit=prorate_to_pound(upper, periods),
        secondary_threshold=prorate_to_pound(secondary, periods),
    )


def compute_national_insurance(
    pay: int,
    snapshot: RateSnapshot,
    frequency: PayFrequency = PayFrequency.ANNUAL,
    category: NiCategory = NiCategory.A,
) -> NationalInsuranceResult:
    """Compute Class 1 NI on pay for one period.

    Employee NI is the main rate on pay between the primary threshold and
    the UEL, plus the upper rate on pay above the UEL (the main rate when
    the year has no upper rate row). Employer NI is the employer rate on
    pay above the employer threshold.

    Raises:
        NegativeIncome: If pay is negative.
        RateNotFound: If a required threshold or rate is missing.
    """
    if pay < 0:
        raise NegativeIncome("gross_pay", pay)

    thresholds = period_thresholds(snapshot, frequency)
    pt = thresholds.primary_threshold
    uel = max(thresholds.upper_earnings_limit, pt)

    main_rate = snapshot.rate(_NI, c.EMPLOYEE_MAIN)
    upper_rate = snapshot.optional_rate(_NI, c.EMPLOYEE_UPPER)
    if upper_rate is None:
        upper_rate = main_rate
    employer_rate = snapshot.rate(_NI, c.EMPLOYER)

    at_main = max(0, min(pay, uel) - pt)
    above_uel = max(0, pay - uel)
    if category is NiCategory.C:
        employee_ni = 0
    else:
        employee_ni = apply_rate(at_main, main_rate) + apply_rate(above_uel, upper_rate)

    employer_floor = thresholds.secondary_threshold
    if category in _EMPLOYER_RELIEF_CATEGORIES:
        employer_floor = max(employer_floor, uel)
    employer_earnings = max(0, pay - employer_floor)
    employer_ni = apply_rate(employer_earnings, employer_rate)

    return NationalInsuranceResult(
        employee_ni=employee_ni,
        employer_ni=employer_ni,
        thresholds=thresholds,
        earnings_at_main_rate=at_main,
        earnings_above_uel=above_uel,
        employer_earnings=employer_earnings,
    )


class NationalInsuranceCalculator:
    """Class 1 NI for a tax year, reading rates from the repository."""

    def __init__(self, repository: RateRepository):
        self._repository = repository

    async def calculate(
        self,
        pay: int,
        tax_year: str,
        frequency: PayFrequency = PayFrequency.ANNUAL,
        category: NiCategory = NiCategory.A,
    ) -> NationalInsuranceResult:
        """Compute employee and employer NI on one period's pay.

        Raises:
            NegativeIncome: If pay is negative.
            TaxYearNotFound: If the year has no rates.
        """
        if pay < 0:
            raise NegativeIncome("gross_pay", pay)
        snapshot = await self._repository.get_snapshot(tax_year)
        result = compute_national_insurance(pay, snapshot, frequency, category)
        logger.debug(
            "national_insurance_calculated",
            tax_year=tax_year,
            pay=pay,
            frequency=frequency.value,
            employee_ni=result.employee_ni,
            employer_ni=result.employer_ni,
        )
        return result
