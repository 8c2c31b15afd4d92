"""Payroll: gross pay to Income Tax, NI and net pay for one pay run.

Tax is worked out on one of two PAYE bases:

- Non-cumulative (the default, and always for W1/M1/X codes): period pay
  is annualised, taxed with the full-year bands, and the annual figure
  divided back to the period.
- Cumulative, when the caller passes the period number: tax is worked out
  on pay to date against allowance and bands scaled to the periods
  elapsed, less tax already paid in the year. A period that follows
  under-taxed periods therefore collects the shortfall. Over-payments are
  not refunded through the run; tax due never drops below zero.

NI is computed on the period pay with period thresholds.

Nothing here is persisted. Calling PayrollEngine.calculate twice with the
same arguments against unchanged rates returns equal results.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Protocol

from src.core.logging import get_logger
from src.tax.deductions import StudentLoanPlan, pension_contributions, student_loan_deduction
from src.tax.errors import InvalidPeriod, NegativeIncome, UnknownEmployee
from src.tax.income_tax import compute_cumulative_income_tax, compute_income_tax
from src.tax.money import prorate
from src.tax.national_insurance import NiCategory, PayFrequency, compute_national_insurance
from src.tax.repository import RateRepository, RateSnapshot
from src.tax.tax_code import TaxCode, parse_tax_code

logger = get_logger(__name__)


# =============================================================================
# Employee overrides
# =============================================================================


@dataclass(frozen=True)
class EmployeeOverrides:
    """Per-employee settings that change the standard arithmetic.

    Attributes:
        tax_code: PAYE tax code, or None for the standard allowance.
        ni_category: NI category letter.
        student_loan_plan: Repayment plan, or None.
        pension_employee_rate: Employee contribution in basis points of pay.
        pension_employer_rate: Employer contribution in basis points of pay.
    """

    tax_code: str | None = None
    ni_category: NiCategory = NiCategory.A
    student_loan_plan: StudentLoanPlan | None = None
    pension_employee_rate: int = 0
    pension_employer_rate: int = 0


class EmployeeDirectory(Protocol):
    """Source of employee overrides, owned by the employee records system."""

    async def get_overrides(self, employee_id: str) -> EmployeeOverrides | None: ...


class InMemoryEmployeeDirectory:
    """EmployeeDirectory backed by a dict, for local runs and tests."""

    def __init__(self, employees: dict[str, EmployeeOverrides] | None = None):
        self._employees = dict(employees or {})

    def add(self, employee_id: str, overrides: EmployeeOverrides) -> None:
        self._employees[employee_id] = overrides

    async def get_overrides(self, employee_id: str) -> EmployeeOverrides | None:
        return self._employees.get(employee_id)


# =============================================================================
# Result
# =============================================================================


class TaxBasis(enum.Enum):
    CUMULATIVE = "cumulative"
    NON_CUMULATIVE = "non_cumulative"


@dataclass(frozen=True)
class PayrollCalculationResult:
    """Outcome of one pay run for one employee (pence).

    net_pay is gross_pay + bonus - income_tax - employee_ni. Student loan
    and pension deductions are reported separately and left out of it;
    take_home_pay subtracts them too.

    cumulative_taxable_pay and cumulative_tax_paid are the year-to-date
    totals including this period, ready to pass to the next run.
    """

    employee_id: str
    tax_year: str
    pay_frequency: PayFrequency
    gross_pay: int
    bonus: int
    income_tax: int
    employee_ni: int
    employer_ni: int
    net_pay: int
    tax_basis: TaxBasis = TaxBasis.NON_CUMULATIVE
    period_number: int | None = None
    cumulative_taxable_pay: int = 0
    cumulative_tax_paid: int = 0
    student_loan_plan: StudentLoanPlan | None = None
    student_loan_deduction: int = 0
    pension_employee_contribution: int = 0
    pension_employer_contribution: int = 0

    @property
    def total_pay(self) -> int:
        return self.gross_pay + self.bonus

    @property
    def take_home_pay(self) -> int:
        return self.net_pay - self.student_loan_deduction - self.pension_employee_contribution


# =============================================================================
# Engine
# =============================================================================


def _check_period_number(period_number: int, pay_frequency: PayFrequency) -> None:
    periods = pay_frequency.periods_per_year
    if not 1 <= period_number <= periods:
        raise InvalidPeriod(
            f"Period number for {pay_frequency.value} pay must be between 1 and "
            f"{periods}, got {period_number}"
        )


class PayrollEngine:
    """Combines the Income Tax and NI calculations for a pay run."""

    def __init__(
        self,
        repository: RateRepository,
        directory: EmployeeDirectory | None = None,
    ):
        self._repository = repository
        self._directory = directory

    async def _overrides(self, employee_id: str) -> EmployeeOverrides:
        if self._directory is None:
            return EmployeeOverrides()
        overrides = await self._directory.get_overrides(employee_id)
        if overrides is None:
            raise UnknownEmployee(employee_id)
        return overrides

    @staticmethod
    def _period_tax(
        pay: int,
        snapshot: RateSnapshot,
        pay_frequency: PayFrequency,
        tax_code: TaxCode | None,
        period_number: int | None,
        cumulative_taxable_pay: int,
        cumulative_tax_paid: int,
    ) -> tuple[TaxBasis, int]:
        periods = pay_frequency.periods_per_year
        if period_number is None or (tax_code is not None and tax_code.is_emergency):
            annual_tax = compute_income_tax(pay * periods, snapshot, tax_code).tax
            return TaxBasis.NON_CUMULATIVE, prorate(annual_tax, 1, periods)

        to_date = compute_cumulative_income_tax(
            cumulative_taxable_pay + pay, snapshot, period_number, periods, tax_code
        )
        return TaxBasis.CUMULATIVE, max(0, to_date.tax - cumulative_tax_paid)

    async def calculate(
        self,
        employee_id: str,
        gross_pay: int,
        bonus: int,
        tax_year: str,
        pay_frequency: PayFrequency = PayFrequency.ANNUAL,
        period_number: int | None = None,
        cumulative_taxable_pay: int = 0,
        cumulative_tax_paid: int = 0,
        student_loan_plan: StudentLoanPlan | None = None,
        pension_employee_rate: int | None = None,
        pension_employer_rate: int | None = None,
    ) -> PayrollCalculationResult:
        """Calculate Income Tax, NI and net pay for one period.

        Args:
            employee_id: Employee identifier, used to look up overrides.
            gross_pay: Period gross pay in pence.
            bonus: Period bonus in pence, taxed together with gross pay.
            tax_year: Tax year key.
            pay_frequency: Length of the pay period.
            period_number: Period of the tax year (1-based). Selects the
                cumulative basis unless the tax code is W1/M1/X.
            cumulative_taxable_pay: Taxable pay earlier in the tax year.
            cumulative_tax_paid: Tax deducted earlier in the tax year.
            student_loan_plan: Overrides the employee's plan when given.
            pension_employee_rate: Overrides the employee's rate when given.
            pension_employer_rate: Overrides the employer's rate when given.

        Raises:
            NegativeIncome: If pay, bonus or a year-to-date figure is negative.
            InvalidPeriod: If period_number is outside the pay frequency's year.
            InvalidRateValue: If a pension rate is outside 0..10000.
            UnknownEmployee: If a directory is configured without this employee.
            InvalidTaxCode: If the employee's tax code cannot be used.
            TaxYearNotFound: If the year has no rates.
        """
        if gross_pay < 0:
            raise NegativeIncome("gross_pay", gross_pay)
        if bonus < 0:
            raise NegativeIncome("bonus", bonus)
        if cumulative_taxable_pay < 0:
            raise NegativeIncome("cumulative_taxable_pay", cumulative_taxable_pay)
        if cumulative_tax_paid < 0:
            raise NegativeIncome("cumulative_tax_paid", cumulative_tax_paid)
        if period_number is not None:
            _check_period_number(period_number, pay_frequency)

        overrides = await self._overrides(employee_id)
        tax_code: TaxCode | None = None
        if overrides.tax_code:
            tax_code = parse_tax_code(overrides.tax_code)
        plan = student_loan_plan or overrides.student_loan_plan
        if pension_employee_rate is None:
            pension_employee_rate = overrides.pension_employee_rate
        if pension_employer_rate is None:
            pension_employer_rate = overrides.pension_employer_rate

        pay = gross_pay + bonus
        periods = pay_frequency.periods_per_year
        pension = pension_contributions(pay, pension_employee_rate, pension_employer_rate)

        snapshot = await self._repository.get_snapshot(tax_year)

        basis, income_tax = self._period_tax(
            pay,
            snapshot,
            pay_frequency,
            tax_code,
            period_number,
            cumulative_taxable_pay,
            cumulative_tax_paid,
        )
        ni = compute_national_insurance(pay, snapshot, pay_frequency, overrides.ni_category)

        result = PayrollCalculationResult(
            employee_id=employee_id,
            tax_year=tax_year,
            pay_frequency=pay_frequency,
            gross_pay=gross_pay,
            bonus=bonus,
            income_tax=income_tax,
            employee_ni=ni.employee_ni,
            employer_ni=ni.employer_ni,
            net_pay=pay - income_tax - ni.employee_ni,
            tax_basis=basis,
            period_number=period_number,
            cumulative_taxable_pay=cumulative_taxable_pay + pay,
            cumulative_tax_paid=cumulative_tax_paid + income_tax,
            student_loan_plan=plan,
            student_loan_deduction=student_loan_deduction(pay, plan, periods),
            pension_employee_contribution=pension.employee,
            pension_employer_contribution=pension.employer,
        )
        logger.debug(
            "payroll_calculated",
            employee_id=employee_id,
            tax_year=tax_year,
            pay_frequency=pay_frequency.value,
            tax_basis=basis.value,
            period_number=period_number,
            gross_pay=gross_pay,
            bonus=bonus,
            income_tax=income_tax,
            employee_ni=ni.employee_ni,
            net_pay=result.net_pay,
        )
        return result
