"""Student loan and workplace pension deductions for a pay run.

These sit beside Income Tax and NI in the payslip but do not change net
pay as the payroll result defines it; callers subtract them to get take
home pay.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from src.tax.errors import InvalidRateValue
from src.tax.money import RATE_SCALE, apply_rate, prorate


class StudentLoanPlan(enum.Enum):
    PLAN_1 = "plan1"
    PLAN_2 = "plan2"
    PLAN_4 = "plan4"
    PLAN_5 = "plan5"
    POSTGRADUATE = "postgrad"


@dataclass(frozen=True)
class StudentLoanTerms:
    """Annual repayment threshold (pence) and rate (basis points)."""

    threshold: int
    rate: int


STUDENT_LOAN_TERMS: dict[StudentLoanPlan, StudentLoanTerms] = {
    StudentLoanPlan.PLAN_1: StudentLoanTerms(threshold=2499000, rate=900),
    StudentLoanPlan.PLAN_2: StudentLoanTerms(threshold=2729500, rate=900),
    StudentLoanPlan.PLAN_4: StudentLoanTerms(threshold=3139500, rate=900),
    StudentLoanPlan.PLAN_5: StudentLoanTerms(threshold=2500000, rate=900),
    StudentLoanPlan.POSTGRADUATE: StudentLoanTerms(threshold=2100000, rate=600),
}


def student_loan_deduction(pay: int, plan: StudentLoanPlan | None, periods: int) -> int:
    """Repayment on period pay above the plan's period threshold.

    The period threshold is the annual threshold divided by the number of
    periods, rounded half-up to the penny. Pay at or below it repays
    nothing.

    Example:
        >>> student_loan_deduction(2509000, StudentLoanPlan.PLAN_1, 1)
        900
    """
    if plan is None:
        return 0
    terms = STUDENT_LOAN_TERMS[plan]
    period_threshold = prorate(terms.threshold, 1, periods)
    if pay <= period_threshold:
        return 0
    return apply_rate(pay - period_threshold, terms.rate)


@dataclass(frozen=True)
class PensionContributions:
    employee: int = 0
    employer: int = 0


def check_pension_rate(rate: int, field: str) -> None:
    if not 0 <= rate <= RATE_SCALE:
        raise InvalidRateValue(f"{field} must be between 0 and {RATE_SCALE}, got {rate}")


def pension_contributions(
    pay: int, employee_rate: int, employer_rate: int
) -> PensionContributions:
    """Employee and employer contributions as percentages of period pay.

    Raises:
        InvalidRateValue: If a rate is outside 0..10000 basis points.
    """
    check_pension_rate(employee_rate, "pension_employee_rate")
    check_pension_rate(employer_rate, "pension_employer_rate")
    return PensionContributions(
        employee=apply_rate(pay, employee_rate),
        employer=apply_rate(pay, employer_rate),
    )
