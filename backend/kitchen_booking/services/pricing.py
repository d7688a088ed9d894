"""
Centralized pricing calculations for bookings.

Pure functions only: every input and output amount is an integer number of
cents, and rounding happens exactly once per derived amount.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal
from typing import Iterable, List, Union

from ..models.listing import PricingModel

Number = Union[int, float, Decimal]


def round_to_int(value: Decimal) -> int:
    """Round half-up to a whole number of cents."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _to_decimal(value: Number) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _ceil(value: Number) -> int:
    return int(_to_decimal(value).to_integral_value(rounding=ROUND_CEILING))


def compute_base_price(
    model: Union[PricingModel, str],
    rate_cents: int,
    duration_units: Number,
    minimum_duration: int = 1,
) -> int:
    """
    Price a rate over a duration according to a pricing model.

    ``hourly``: rate x max(ceil(hours), minimum).
    ``daily``: rate x max(days, minimum).
    ``monthly-flat``: the rate itself, regardless of duration.
    """
    if rate_cents < 0:
        raise ValueError("rate_cents must be non-negative")
    if _to_decimal(duration_units) < 0:
        raise ValueError("duration_units must be non-negative")

    model_value = PricingModel(model)
    minimum = max(0, int(minimum_duration))
    if model_value in (PricingModel.HOURLY, PricingModel.DAILY):
        return rate_cents * max(_ceil(duration_units), minimum)
    return rate_cents


def calculate_kitchen_price(hourly_rate_cents: int, duration_hours: Number, minimum_hours: int = 1) -> int:
    return compute_base_price(PricingModel.HOURLY, hourly_rate_cents, duration_hours, minimum_hours)


def billable_hours(duration_hours: Number, minimum_hours: int = 1) -> int:
    return max(_ceil(duration_hours), max(0, int(minimum_hours)))


def calculate_platform_fee(subtotal_cents: int, fee_rate: Number) -> int:
    """Service fee for a subtotal, rounded to the nearest cent."""
    rate = _to_decimal(fee_rate)
    if rate < 0:
        raise ValueError("fee_rate must be non-negative")
    return round_to_int(Decimal(subtotal_cents) * rate)


def sum_addons(amounts: Iterable[int]) -> int:
    return sum(int(a) for a in amounts)


DAYS_PER_MONTH = 30


def daily_rate_cents(model: Union[PricingModel, str], unit_price_cents: int) -> int:
    """Per-day equivalent of a storage unit price, used for extensions and overstays."""
    model_value = PricingModel(model)
    if model_value == PricingModel.HOURLY:
        return unit_price_cents * 24
    if model_value == PricingModel.MONTHLY_FLAT:
        return round_to_int(Decimal(unit_price_cents) / Decimal(DAYS_PER_MONTH))
    return unit_price_cents


def calculate_overstay_penalty(daily_rate_cents: int, days_charged: int, multiplier: int = 2) -> int:
    """Punitive overstay charge: the daily rate times a multiplier per charged day."""
    if days_charged <= 0:
        return 0
    return daily_rate_cents * multiplier * days_charged


@dataclass(frozen=True)
class PriceBreakdown:
    """
    Totals for one kitchen booking.

    ``service_fee_cents`` is derived once from the grand subtotal, never summed
    from per-component fees, so repeated recomputation cannot drift.
    """

    kitchen_cents: int
    storage_cents: List[int] = field(default_factory=list)
    equipment_cents: List[int] = field(default_factory=list)
    fee_rate: Decimal = Decimal("0")

    @property
    def subtotal_cents(self) -> int:
        return self.kitchen_cents + sum_addons(self.storage_cents) + sum_addons(self.equipment_cents)

    @property
    def service_fee_cents(self) -> int:
        return calculate_platform_fee(self.subtotal_cents, self.fee_rate)

    @property
    def total_cents(self) -> int:
        return self.subtotal_cents + self.service_fee_cents

