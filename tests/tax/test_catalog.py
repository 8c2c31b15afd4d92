"""Tests for rate identity and value validation."""

import pytest

from src.models.tax_rate import RateType, TaxCategory
from src.tax.catalog import RateKey, band_limit_name, validate_rate_key, validate_value
from src.tax.errors import InvalidRateValue


class TestValidateRateKey:
    """Tests for validate_rate_key."""

    def test_known_vat_rate(self) -> None:
        """VAT standard rate is a valid key."""
        key = RateKey(TaxCategory.VAT, RateType.RATE, "standard")
        assert validate_rate_key(key) is key

    def test_unknown_fixed_name(self) -> None:
        """Names outside a fixed regime are rejected."""
        with pytest.raises(InvalidRateValue, match="Unknown vat rate"):
            validate_rate_key(RateKey(TaxCategory.VAT, RateType.RATE, "super_reduced"))

    def test_name_under_wrong_type(self) -> None:
        """A threshold name is not valid as a rate."""
        with pytest.raises(InvalidRateValue):
            validate_rate_key(
                RateKey(TaxCategory.NATIONAL_INSURANCE, RateType.RATE, "primary_threshold")
            )

    def test_income_tax_bands_are_open_ended(self) -> None:
        """A new band and its limit can be added without code changes."""
        validate_rate_key(RateKey(TaxCategory.INCOME_TAX, RateType.RATE, "starter"))
        validate_rate_key(
            RateKey(TaxCategory.INCOME_TAX, RateType.THRESHOLD, band_limit_name("starter"))
        )

    def test_income_tax_threshold_must_follow_naming(self) -> None:
        """Income tax thresholds are the allowance, taper or a band limit."""
        with pytest.raises(InvalidRateValue):
            validate_rate_key(RateKey(TaxCategory.INCOME_TAX, RateType.THRESHOLD, "basic"))

    def test_income_tax_rate_cannot_look_like_limit(self) -> None:
        """A rate row cannot be named like a band limit."""
        with pytest.raises(InvalidRateValue):
            validate_rate_key(
                RateKey(TaxCategory.INCOME_TAX, RateType.RATE, "basic_rate_limit")
            )


class TestValidateValue:
    """Tests for validate_value."""

    def test_threshold_accepts_large_values(self) -> None:
        """Thresholds have no upper bound."""
        assert validate_value(RateType.THRESHOLD, 25000000) == 25000000

    def test_rate_upper_bound_inclusive(self) -> None:
        """100% is the highest allowed rate."""
        assert validate_value(RateType.RATE, 10000) == 10000

    @pytest.mark.parametrize(
        ("rate_type", "value"),
        [
            (RateType.RATE, 10001),
            (RateType.RATE, -1),
            (RateType.THRESHOLD, -1),
            (RateType.RATE, 20.5),
            (RateType.THRESHOLD, True),
            (RateType.THRESHOLD, "100"),
        ],
    )
    def test_rejects_invalid(self, rate_type: RateType, value: object) -> None:
        """Out-of-range and non-integer values raise InvalidRateValue."""
        with pytest.raises(InvalidRateValue):
            validate_value(rate_type, value)

    def test_key_str(self) -> None:
        """Keys render as category/type/name."""
        key = RateKey(TaxCategory.CORPORATION_TAX, RateType.RATE, "main")
        assert str(key) == "corporation_tax/rate/main"
