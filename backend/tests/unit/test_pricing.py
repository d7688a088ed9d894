"""Unit tests for the pure pricing functions."""

from decimal import Decimal

import pytest

from kitchen_booking.services import pricing
from kitchen_booking.services.pricing import PriceBreakdown


class TestComputeBasePrice:
    def test_hourly_rounds_partial_hours_up(self):
        assert pricing.compute_base_price("hourly", 5000, Decimal("1.5")) == 10000

    def test_hourly_applies_minimum(self):
        assert pricing.compute_base_price("hourly", 5000, 1, minimum_duration=3) == 15000

    def test_daily_multiplies_days(self):
        assert pricing.compute_base_price("daily", 2000, 4) == 8000

    def test_daily_zero_days_charges_minimum(self):
        assert pricing.compute_base_price("daily", 2000, 0, minimum_duration=1) == 2000

    def test_monthly_flat_ignores_duration(self):
        assert pricing.compute_base_price("monthly-flat", 30000, 45) == 30000

    def test_unknown_model_rejected(self):
        with pytest.raises(ValueError):
            pricing.compute_base_price("weekly", 100, 1)

    def test_negative_rate_rejected(self):
        with pytest.raises(ValueError):
            pricing.compute_base_price("daily", -1, 1)


def test_kitchen_price_for_two_hours():
    assert pricing.calculate_kitchen_price(5000, Decimal("2.00")) == 10000


def test_billable_hours():
    assert pricing.billable_hours(Decimal("0.5"), 1) == 1
    assert pricing.billable_hours(Decimal("2.25"), 1) == 3
    assert pricing.billable_hours(Decimal("2"), 4) == 4


class TestPlatformFee:
    def test_rounds_half_up(self):
        # 1010 * 0.05 = 50.5
        assert pricing.calculate_platform_fee(1010, Decimal("0.05")) == 51

    def test_zero_rate(self):
        assert pricing.calculate_platform_fee(12000, 0) == 0

    def test_float_rate_uses_decimal_string(self):
        assert pricing.calculate_platform_fee(12000, 0.05) == 600

    def test_negative_rate_rejected(self):
        with pytest.raises(ValueError):
            pricing.calculate_platform_fee(100, Decimal("-0.01"))


class TestDailyRate:
    def test_daily_is_unit_price(self):
        assert pricing.daily_rate_cents("daily", 1000) == 1000

    def test_hourly_is_24_hours(self):
        assert pricing.daily_rate_cents("hourly", 100) == 2400

    def test_monthly_flat_divides_by_thirty(self):
        assert pricing.daily_rate_cents("monthly-flat", 30000) == 1000
        assert pricing.daily_rate_cents("monthly-flat", 1000) == 33


def test_overstay_penalty_is_double_daily_rate():
    assert pricing.calculate_overstay_penalty(1000, 3, 2) == 6000
    assert pricing.calculate_overstay_penalty(1000, 0, 2) == 0


class TestPriceBreakdown:
    def test_end_to_end_example(self):
        breakdown = PriceBreakdown(
            kitchen_cents=10000, storage_cents=[2000], equipment_cents=[], fee_rate=Decimal("0.05")
        )
        assert breakdown.subtotal_cents == 12000
        assert breakdown.service_fee_cents == 600
        assert breakdown.total_cents == 12600

    def test_fee_computed_once_on_grand_subtotal(self):
        # Per-component rounding would give 1 + 1 = 2
        breakdown = PriceBreakdown(kitchen_cents=10, storage_cents=[10], fee_rate=Decimal("0.05"))
        assert breakdown.service_fee_cents == 1
        assert breakdown.total_cents == 21
