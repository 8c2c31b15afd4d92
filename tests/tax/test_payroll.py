"""Tests for the payroll engine."""

import pytest

from src.tax.deductions import StudentLoanPlan
from src.tax.errors import (
    InvalidPeriod,
    InvalidRateValue,
    InvalidTaxCode,
    NegativeIncome,
    TaxYearNotFound,
    UnknownEmployee,
)
from src.tax.national_insurance import NiCategory, PayFrequency
from src.tax.payroll import EmployeeOverrides, InMemoryEmployeeDirectory, PayrollEngine, TaxBasis
from src.tax.repository import RateRepository

POUND = 100


class TestPayrollEngine:
    """Tests for PayrollEngine.calculate without an employee directory."""

    @pytest.mark.asyncio
    async def test_annual_salary(self, seeded_repository: RateRepository) -> None:
        """GBP 60,000 a year: tax 11,432, NI 3,210.60."""
        result = await PayrollEngine(seeded_repository).calculate(
            "emp-1", 60000 * POUND, 0, "2024-25"
        )
        assert result.income_tax == 1143200
        assert result.employee_ni == 321060
        assert result.employer_ni == 702420
        assert result.net_pay == 4535740

    @pytest.mark.asyncio
    async def test_net_pay_identity(self, seeded_repository: RateRepository) -> None:
        """Net pay is gross plus bonus less tax and employee NI."""
        engine = PayrollEngine(seeded_repository)
        for frequency in PayFrequency:
            result = await engine.calculate("emp-1", 312345, 4567, "2024-25", frequency)
            assert result.net_pay == (
                result.gross_pay + result.bonus - result.income_tax - result.employee_ni
            )
            assert result.total_pay == 316912

    @pytest.mark.asyncio
    async def test_monthly_pay_is_annualised(self, seeded_repository: RateRepository) -> None:
        """A GBP 5,000 month is taxed as a twelfth of GBP 60,000."""
        result = await PayrollEngine(seeded_repository).calculate(
            "emp-1", 5000 * POUND, 0, "2024-25", PayFrequency.MONTHLY
        )
        assert result.income_tax == 95267
        assert result.employee_ni == 25128 + 1622
        assert result.employer_ni == 58540
        assert result.net_pay == 377983

    @pytest.mark.asyncio
    async def test_bonus_taxed_with_pay(self, seeded_repository: RateRepository) -> None:
        """Bonus is added to gross pay before tax and NI."""
        engine = PayrollEngine(seeded_repository)
        with_bonus = await engine.calculate("emp-1", 50000 * POUND, 10000 * POUND, "2024-25")
        plain = await engine.calculate("emp-1", 60000 * POUND, 0, "2024-25")
        assert with_bonus.income_tax == plain.income_tax
        assert with_bonus.employee_ni == plain.employee_ni
        assert with_bonus.net_pay == plain.net_pay

    @pytest.mark.asyncio
    async def test_repeatable(self, seeded_repository: RateRepository) -> None:
        """The same inputs give equal results."""
        engine = PayrollEngine(seeded_repository)
        first = await engine.calculate("emp-1", 250000, 0, "2024-25", PayFrequency.WEEKLY)
        second = await engine.calculate("emp-1", 250000, 0, "2024-25", PayFrequency.WEEKLY)
        assert first == second

    @pytest.mark.asyncio
    async def test_negative_gross(self, seeded_repository: RateRepository) -> None:
        """Negative gross pay is rejected."""
        with pytest.raises(NegativeIncome) as exc_info:
            await PayrollEngine(seeded_repository).calculate("emp-1", -1, 0, "2024-25")
        assert exc_info.value.field == "gross_pay"

    @pytest.mark.asyncio
    async def test_negative_bonus(self, seeded_repository: RateRepository) -> None:
        """Negative bonus is rejected."""
        with pytest.raises(NegativeIncome) as exc_info:
            await PayrollEngine(seeded_repository).calculate("emp-1", 100, -1, "2024-25")
        assert exc_info.value.field == "bonus"

    @pytest.mark.asyncio
    async def test_unknown_year(self, seeded_repository: RateRepository) -> None:
        """A year without rates raises TaxYearNotFound."""
        with pytest.raises(TaxYearNotFound):
            await PayrollEngine(seeded_repository).calculate("emp-1", 100, 0, "2019-20")


class TestEmployeeOverrides:
    """Tests for per-employee tax codes and NI categories."""

    @pytest.mark.asyncio
    async def test_unknown_employee(self, seeded_repository: RateRepository) -> None:
        """A configured directory must know the employee."""
        directory = InMemoryEmployeeDirectory()
        with pytest.raises(UnknownEmployee):
            await PayrollEngine(seeded_repository, directory).calculate(
                "ghost", 100, 0, "2024-25"
            )

    @pytest.mark.asyncio
    async def test_basic_rate_code(self, seeded_repository: RateRepository) -> None:
        """BR taxes all pay at 20%."""
        directory = InMemoryEmployeeDirectory({"emp-2": EmployeeOverrides(tax_code="BR")})
        result = await PayrollEngine(seeded_repository, directory).calculate(
            "emp-2", 20000 * POUND, 0, "2024-25"
        )
        assert result.income_tax == 400000
        assert result.employee_ni == 59440

    @pytest.mark.asyncio
    async def test_category_c(self, seeded_repository: RateRepository) -> None:
        """Category C employees pay no NI but the employer does."""
        directory = InMemoryEmployeeDirectory()
        directory.add("emp-3", EmployeeOverrides(ni_category=NiCategory.C))
        result = await PayrollEngine(seeded_repository, directory).calculate(
            "emp-3", 60000 * POUND, 0, "2024-25"
        )
        assert result.employee_ni == 0
        assert result.employer_ni == 702420
        assert result.net_pay == 60000 * POUND - 1143200

    @pytest.mark.asyncio
    async def test_invalid_code(self, seeded_repository: RateRepository) -> None:
        """A bad stored tax code surfaces as InvalidTaxCode."""
        directory = InMemoryEmployeeDirectory({"emp-4": EmployeeOverrides(tax_code="S1257L")})
        with pytest.raises(InvalidTaxCode):
            await PayrollEngine(seeded_repository, directory).calculate(
                "emp-4", 100, 0, "2024-25"
            )


class TestCumulativeBasis:
    """Tests for PAYE on the cumulative basis (GBP 5,000 a month, standard allowance)."""

    @pytest.mark.asyncio
    async def test_period_tax_on_track(self, seeded_repository: RateRepository) -> None:
        """Month 3 after two correctly taxed months collects only its share."""
        result = await PayrollEngine(seeded_repository).calculate(
            "emp-1",
            5000 * POUND,
            0,
            "2024-25",
            PayFrequency.MONTHLY,
            period_number=3,
            cumulative_taxable_pay=10000 * POUND,
            cumulative_tax_paid=190534,
        )
        assert result.tax_basis is TaxBasis.CUMULATIVE
        assert result.income_tax == 95266
        assert result.cumulative_taxable_pay == 15000 * POUND
        assert result.cumulative_tax_paid == 285800

    @pytest.mark.asyncio
    async def test_catches_up_under_taxed_periods(
        self, seeded_repository: RateRepository
    ) -> None:
        """Nothing deducted in months 1-2: month 3 collects all tax to date."""
        engine = PayrollEngine(seeded_repository)
        result = await engine.calculate(
            "emp-1",
            5000 * POUND,
            0,
            "2024-25",
            PayFrequency.MONTHLY,
            period_number=3,
            cumulative_taxable_pay=10000 * POUND,
            cumulative_tax_paid=0,
        )
        non_cumulative = await engine.calculate(
            "emp-1", 5000 * POUND, 0, "2024-25", PayFrequency.MONTHLY
        )
        assert result.income_tax == 285800
        assert non_cumulative.income_tax == 95267
        assert non_cumulative.tax_basis is TaxBasis.NON_CUMULATIVE

    @pytest.mark.asyncio
    async def test_final_period_matches_annual_tax(
        self, seeded_repository: RateRepository
    ) -> None:
        """Tax to date at month 12 equals the annual tax on GBP 60,000."""
        result = await PayrollEngine(seeded_repository).calculate(
            "emp-1",
            5000 * POUND,
            0,
            "2024-25",
            PayFrequency.MONTHLY,
            period_number=12,
            cumulative_taxable_pay=55000 * POUND,
            cumulative_tax_paid=1000000,
        )
        assert result.income_tax == 143200
        assert result.cumulative_tax_paid == 1143200

    @pytest.mark.asyncio
    async def test_over_taxed_gives_no_refund(self, seeded_repository: RateRepository) -> None:
        """Tax already paid above tax to date leaves nothing due, not a negative."""
        result = await PayrollEngine(seeded_repository).calculate(
            "emp-1",
            5000 * POUND,
            0,
            "2024-25",
            PayFrequency.MONTHLY,
            period_number=3,
            cumulative_taxable_pay=10000 * POUND,
            cumulative_tax_paid=400000,
        )
        assert result.income_tax == 0
        assert result.net_pay == 5000 * POUND - result.employee_ni

    @pytest.mark.asyncio
    async def test_month_one_code_stays_non_cumulative(
        self, seeded_repository: RateRepository
    ) -> None:
        """An M1 code ignores the year-to-date figures."""
        directory = InMemoryEmployeeDirectory({"emp-5": EmployeeOverrides(tax_code="1257L M1")})
        result = await PayrollEngine(seeded_repository, directory).calculate(
            "emp-5",
            5000 * POUND,
            0,
            "2024-25",
            PayFrequency.MONTHLY,
            period_number=3,
            cumulative_taxable_pay=10000 * POUND,
            cumulative_tax_paid=0,
        )
        assert result.tax_basis is TaxBasis.NON_CUMULATIVE
        assert result.income_tax == 95267
        assert result.cumulative_tax_paid == 95267

    @pytest.mark.asyncio
    @pytest.mark.parametrize("period_number", [0, 13])
    async def test_period_number_out_of_range(
        self, seeded_repository: RateRepository, period_number: int
    ) -> None:
        """Monthly periods run from 1 to 12."""
        with pytest.raises(InvalidPeriod):
            await PayrollEngine(seeded_repository).calculate(
                "emp-1",
                5000 * POUND,
                0,
                "2024-25",
                PayFrequency.MONTHLY,
                period_number=period_number,
            )

    @pytest.mark.asyncio
    async def test_negative_tax_paid(self, seeded_repository: RateRepository) -> None:
        """Negative year-to-date figures are rejected."""
        with pytest.raises(NegativeIncome) as exc_info:
            await PayrollEngine(seeded_repository).calculate(
                "emp-1", 100, 0, "2024-25", period_number=1, cumulative_tax_paid=-1
            )
        assert exc_info.value.field == "cumulative_tax_paid"


class TestDeductions:
    """Tests for student loan and pension deductions in a pay run."""

    @pytest.mark.asyncio
    async def test_overrides_drive_deductions(self, seeded_repository: RateRepository) -> None:
        """Plan 2 and a 5% / 3% pension on a GBP 5,000 month."""
        directory = InMemoryEmployeeDirectory(
            {
                "emp-6": EmployeeOverrides(
                    student_loan_plan=StudentLoanPlan.PLAN_2,
                    pension_employee_rate=500,
                    pension_employer_rate=300,
                )
            }
        )
        result = await PayrollEngine(seeded_repository, directory).calculate(
            "emp-6", 5000 * POUND, 0, "2024-25", PayFrequency.MONTHLY
        )
        assert result.student_loan_plan is StudentLoanPlan.PLAN_2
        assert result.student_loan_deduction == 24529
        assert result.pension_employee_contribution == 25000
        assert result.pension_employer_contribution == 15000
        assert result.net_pay == 377983
        assert result.take_home_pay == 377983 - 24529 - 25000

    @pytest.mark.asyncio
    async def test_arguments_override_employee(self, seeded_repository: RateRepository) -> None:
        """Explicit arguments win over the stored overrides."""
        directory = InMemoryEmployeeDirectory(
            {"emp-7": EmployeeOverrides(pension_employee_rate=500)}
        )
        result = await PayrollEngine(seeded_repository, directory).calculate(
            "emp-7",
            30000 * POUND,
            0,
            "2024-25",
            student_loan_plan=StudentLoanPlan.POSTGRADUATE,
            pension_employee_rate=0,
        )
        assert result.pension_employee_contribution == 0
        assert result.student_loan_deduction == 54000

    @pytest.mark.asyncio
    async def test_none_by_default(self, seeded_repository: RateRepository) -> None:
        result = await PayrollEngine(seeded_repository).calculate(
            "emp-1", 60000 * POUND, 0, "2024-25"
        )
        assert result.student_loan_deduction == 0
        assert result.pension_employee_contribution == 0
        assert result.take_home_pay == result.net_pay

    @pytest.mark.asyncio
    async def test_pension_rate_out_of_range(self, seeded_repository: RateRepository) -> None:
        with pytest.raises(InvalidRateValue):
            await PayrollEngine(seeded_repository).calculate(
                "emp-1", 100, 0, "2024-25", pension_employer_rate=10001
            )
