"""Tests for Class 1 National Insurance."""

from collections.abc import Callable

import pytest

from src.tax.errors import NegativeIncome, RateNotFound
from src.tax.national_insurance import (
    NationalInsuranceCalculator,
    NiCategory,
    PayFrequency,
    compute_national_insurance,
    period_thresholds,
)
from src.tax.repository import RateRepository, RateSnapshot

POUND = 100


class TestPeriodThresholds:
    """Tests for pro-rating annual thresholds."""

    def test_annual_unchanged(self, snapshot: RateSnapshot) -> None:
        """Annual pay uses the stored figures."""
        t = period_thresholds(snapshot, PayFrequency.ANNUAL)
        assert (t.primary_threshold, t.upper_earnings_limit, t.secondary_threshold) == (
            1257000,
            5027000,
            910000,
        )

    def test_monthly(self, snapshot: RateSnapshot) -> None:
        """Monthly figures are rounded to whole pounds."""
        t = period_thresholds(snapshot, PayFrequency.MONTHLY)
        assert (t.primary_threshold, t.upper_earnings_limit, t.secondary_threshold) == (
            104800,
            418900,
            75800,
        )

    def test_weekly(self, snapshot: RateSnapshot) -> None:
        """Weekly figures match HMRC's published thresholds."""
        t = period_thresholds(snapshot, PayFrequency.WEEKLY)
        assert (t.primary_threshold, t.upper_earnings_limit, t.secondary_threshold) == (
            24200,
            96700,
            17500,
        )

    def test_periods_per_year(self) -> None:
        """Each frequency knows its number of periods."""
        assert [f.periods_per_year for f in PayFrequency] == [52, 26, 13, 12, 1]


class TestComputeNationalInsurance:
    """Tests for compute_national_insurance."""

    def test_annual_above_uel(self, snapshot: RateSnapshot) -> None:
        """8% between PT and UEL, 2% above, employer 13.8% above ST."""
        result = compute_national_insurance(60000 * POUND, snapshot)
        assert result.employee_ni == 301600 + 19460
        assert result.employer_ni == 702420
        assert result.earnings_at_main_rate == 3770000
        assert result.earnings_above_uel == 973000

    def test_monthly_pay(self, snapshot: RateSnapshot) -> None:
        """GBP 3,000 a month against monthly thresholds."""
        result = compute_national_insurance(3000 * POUND, snapshot, PayFrequency.MONTHLY)
        assert result.employee_ni == 15616
        assert result.employer_ni == 30940

    def test_below_primary_threshold(self, snapshot: RateSnapshot) -> None:
        """No employee NI below the primary threshold."""
        result = compute_national_insurance(1000000, snapshot)
        assert result.employee_ni == 0
        assert result.employer_ni == 12420

    def test_zero_pay(self, snapshot: RateSnapshot) -> None:
        """Zero pay gives zero NI."""
        result = compute_national_insurance(0, snapshot, PayFrequency.WEEKLY)
        assert (result.employee_ni, result.employer_ni) == (0, 0)

    def test_negative_pay(self, snapshot: RateSnapshot) -> None:
        """Negative pay is rejected."""
        with pytest.raises(NegativeIncome):
            compute_national_insurance(-1, snapshot)

    def test_never_negative(self, snapshot: RateSnapshot) -> None:
        """Both contributions are non-negative for any pay and category."""
        for category in NiCategory:
            for frequency in PayFrequency:
                for pay in range(0, 8000000, 333333):
                    result = compute_national_insurance(pay, snapshot, frequency, category)
                    assert result.employee_ni >= 0
                    assert result.employer_ni >= 0

    def test_category_c_pays_no_employee_ni(self, snapshot: RateSnapshot) -> None:
        """Over state pension age: employer NI only."""
        result = compute_national_insurance(60000 * POUND, snapshot, category=NiCategory.C)
        assert result.employee_ni == 0
        assert result.employer_ni == 702420

    def test_under_21_employer_relief(self, snapshot: RateSnapshot) -> None:
        """Category M employers pay only above the UEL."""
        result = compute_national_insurance(60000 * POUND, snapshot, category=NiCategory.M)
        assert result.employee_ni == 321060
        assert result.employer_ni == 134274

    def test_missing_upper_rate_uses_main_rate(
        self, snapshot_factory: Callable[..., RateSnapshot]
    ) -> None:
        """Without an upper rate row the main rate continues above the UEL."""
        snapshot = snapshot_factory(employee_upper=None)
        assert compute_national_insurance(60000 * POUND, snapshot).employee_ni == 379440

    def test_missing_secondary_threshold_uses_primary(
        self, snapshot_factory: Callable[..., RateSnapshot]
    ) -> None:
        """The employer threshold falls back to the primary threshold."""
        snapshot = snapshot_factory(secondary_threshold=None)
        assert compute_national_insurance(60000 * POUND, snapshot).employer_ni == 654534

    def test_missing_main_rate(self, snapshot_factory: Callable[..., RateSnapshot]) -> None:
        """The main employee rate is required."""
        snapshot = snapshot_factory(employee_main=None)
        with pytest.raises(RateNotFound):
            compute_national_insurance(60000 * POUND, snapshot)


class TestNationalInsuranceCalculator:
    """Tests for the repository-backed calculator."""

    @pytest.mark.asyncio
    async def test_2025_26_employer_changes(self, seeded_repository: RateRepository) -> None:
        """2025-26 uses the GBP 5,000 secondary threshold and 15% employer rate."""
        result = await NationalInsuranceCalculator(seeded_repository).calculate(
            60000 * POUND, "2025-26"
        )
        assert result.employer_ni == 825000
        assert result.employee_ni == 321060
