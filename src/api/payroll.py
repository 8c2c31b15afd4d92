"""Payroll calculation endpoint."""

from fastapi import APIRouter, Depends
from pydantic import Field, StrictInt

from src.api.deps import get_employee_directory, get_rate_repository, resolve_tax_year
from src.api.schemas import CamelModel
from src.tax.deductions import StudentLoanPlan
from src.tax.national_insurance import PayFrequency
from src.tax.payroll import EmployeeDirectory, PayrollEngine, TaxBasis
from src.tax.repository import RateRepository

router = APIRouter(prefix="/payroll", tags=["payroll"])


class PayrollCalculateRequest(CamelModel):
    """Payload for a single employee pay run.

    periodNumber selects the cumulative tax basis; the cumulative figures
    are the employee's taxable pay and tax paid earlier in the tax year.
    Student loan and pension fields override the employee's records.
    """

    employee_id: str = Field(min_length=1)
    gross_pay: StrictInt
    bonus: StrictInt = 0
    tax_year: str | None = None
    pay_frequency: PayFrequency = PayFrequency.ANNUAL
    period_number: StrictInt | None = None
    cumulative_taxable_pay: StrictInt = 0
    cumulative_tax_paid: StrictInt = 0
    student_loan_plan: StudentLoanPlan | None = None
    pension_employee_rate: StrictInt | None = None
    pension_employer_rate: StrictInt | None = None


class PayrollCalculateResponse(CamelModel):
    """Tax, NI, net pay and other deductions for the pay run (pence)."""

    employee_id: str
    tax_year: str
    pay_frequency: PayFrequency
    gross_pay: int
    bonus: int
    income_tax: int
    employee_ni: int = Field(alias="employeeNI")
    employer_ni: int = Field(alias="employerNI")
    net_pay: int
    tax_basis: TaxBasis
    period_number: int | None
    cumulative_taxable_pay: int
    cumulative_tax_paid: int
    student_loan_plan: StudentLoanPlan | None
    student_loan_deduction: int
    pension_employee_contribution: int
    pension_employer_contribution: int
    take_home_pay: int


@router.post("/calculate", response_model=PayrollCalculateResponse)
async def calculate_payroll(
    payload: PayrollCalculateRequest,
    repository: RateRepository = Depends(get_rate_repository),
    directory: EmployeeDirectory | None = Depends(get_employee_directory),
) -> PayrollCalculateResponse:
    """Calculate Income Tax, NI and net pay for one employee."""
    result = await PayrollEngine(repository, directory).calculate(
        employee_id=payload.employee_id,
        gross_pay=payload.gross_pay,
        bonus=payload.bonus,
        tax_year=await resolve_tax_year(repository, payload.tax_year),
        pay_frequency=payload.pay_frequency,
        period_number=payload.period_number,
        cumulative_taxable_pay=payload.cumulative_taxable_pay,
        cumulative_tax_paid=payload.cumulative_tax_paid,
        student_loan_plan=payload.student_loan_plan,
        pension_employee_rate=payload.pension_employee_rate,
        pension_employer_rate=payload.pension_employer_rate,
    )
    return PayrollCalculateResponse(
        employee_id=result.employee_id,
        tax_year=result.tax_year,
        pay_frequency=result.pay_frequency,
        gross_pay=result.gross_pay,
        bonus=result.bonus,
        income_tax=result.income_tax,
        employee_ni=result.employee_ni,
        employer_ni=result.employer_ni,
        net_pay=result.net_pay,
        tax_basis=result.tax_basis,
        period_number=result.period_number,
        cumulative_taxable_pay=result.cumulative_taxable_pay,
        cumulative_tax_paid=result.cumulative_tax_paid,
        student_loan_plan=result.student_loan_plan,
        student_loan_deduction=result.student_loan_deduction,
        pension_employee_contribution=result.pension_employee_contribution,
        pension_employer_contribution=result.pension_employer_contribution,
        take_home_pay=result.take_home_pay,
    )
