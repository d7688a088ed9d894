# backend/kitchen_booking/services/availability_service.py
"""
Availability Service

Resolves the effective open window of a kitchen for a date, expands it into
hourly slots annotated with remaining capacity, and validates requested
booking ranges against that grid.

A date override always supersedes the weekly window for its date. Weekly
windows are keyed by day of week with Sunday = 0.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundException, ValidationException
from ..core.time_utils import (
    SlotRange,
    TimeLike,
    day_of_week,
    format_hhmm,
    minutes_of,
    parse_hhmm,
    parse_iso_date,
    slot_bounds,
)
from ..models.booking import KitchenBooking
from ..models.location import Kitchen
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

DateLike = Union[str, date]
Interval = Tuple[int, int]

# Validation error codes
INVALID_TIME_RANGE = "INVALID_TIME_RANGE"
KITCHEN_CLOSED = "KITCHEN_CLOSED"
OUTSIDE_WINDOW = "OUTSIDE_WINDOW"
MISALIGNED_SLOT = "MISALIGNED_SLOT"


@dataclass(frozen=True)
class EffectiveWindow:
    start_time: time
    end_time: time
    capacity: int
    source: str  # "override" or "weekly"

    @property
    def start_hour(self) -> int:
        return self.start_time.hour

    @property
    def end_hour(self) -> int:
        return self.end_time.hour

    def contains(self, start_minutes: int, end_minutes: int) -> bool:
        return minutes_of(self.start_time) <= start_minutes and end_minutes <= minutes_of(self.end_time)


@dataclass(frozen=True)
class AvailabilityCheck:
    """Outcome of a booking range validation."""

    valid: bool
    error: Optional[str] = None
    code: Optional[str] = None
    window: Optional[EffectiveWindow] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"valid": self.valid}
        if not self.valid:
            result["error"] = self.error
            result["code"] = self.code
        return result

    def raise_for_error(self) -> EffectiveWindow:
        if not self.valid or self.window is None:
            raise ValidationException(self.error or "Invalid booking time", code=self.code)
        return self.window


def booking_intervals(booking: KitchenBooking) -> List[Interval]:
    """Minute intervals a booking occupies: its selected slots, else its whole range."""
    slots = booking.selected_slots or []
    if slots:
        return [slot_bounds(slot) for slot in slots]
    return [(minutes_of(booking.start_time), minutes_of(booking.end_time))]


def _overlaps(a: Interval, b: Interval) -> bool:
    return a[0] < b[1] and b[0] < a[1]


def count_overlapping(bookings: Iterable[KitchenBooking], interval: Interval) -> int:
    """Number of bookings with at least one occupied interval intersecting ``interval``."""
    return sum(
        1 for booking in bookings if any(_overlaps(interval, occupied) for occupied in booking_intervals(booking))
    )


class AvailabilityService(BaseService):
    """Slot listing and booking-range validation for kitchens."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.kitchen_repository = RepositoryFactory.create_kitchen_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)

    def _get_kitchen(self, kitchen_id: str) -> Kitchen:
        kitchen = self.kitchen_repository.get_by_id(kitchen_id)
        if not kitchen:
            raise NotFoundException(
                f"Kitchen {kitchen_id} not found",
                code="KITCHEN_NOT_FOUND",
                details={"kitchen_id": kitchen_id},
            )
        return kitchen

    def resolve_effective_window(self, kitchen_id: str, on_date: DateLike) -> Optional[EffectiveWindow]:
        """
        Effective open window of a kitchen for a date, or None when closed.

        An override for the exact date replaces the weekly window entirely; an
        unavailable override (or one without hours) closes the date.
        """
        target = parse_iso_date(on_date)

        override = self.kitchen_repository.get_date_override(kitchen_id, target)
        if override is not None:
            if not override.is_available or override.start_time is None or override.end_time is None:
                return None
            return EffectiveWindow(
                start_time=override.start_time,
                end_time=override.end_time,
                capacity=override.max_concurrent_bookings or 1,
                source="override",
            )

        weekly = self.kitchen_repository.get_window_for_day(kitchen_id, day_of_week(target))
        if weekly is None or not weekly.is_available:
            return None
        return EffectiveWindow(
            start_time=weekly.start_time,
            end_time=weekly.end_time,
            capacity=weekly.max_concurrent_bookings or 1,
            source="weekly",
        )

    def _resolve_for_kitchen(self, kitchen: Kitchen, on_date: date) -> Optional[EffectiveWindow]:
        if not kitchen.is_active:
            return None
        return self.resolve_effective_window(kitchen.id, on_date)

    @BaseService.measure_operation("get_all_time_slots_with_booking_info")
    def get_all_time_slots_with_booking_info(self, kitchen_id: str, on_date: DateLike) -> List[Dict[str, Any]]:
        """
        Hourly buckets of the effective window with capacity accounting.

        Returns:
            ``[{time, capacity, booked_count, available, is_fully_booked}]``;
            empty when the kitchen is closed on that date.
        """
        target = parse_iso_date(on_date)
        kitchen = self._get_kitchen(kitchen_id)
        window = self._resolve_for_kitchen(kitchen, target)
        if window is None:
            return []

        bookings = self.booking_repository.get_active_bookings_for_date(kitchen_id, target)
        slots: List[Dict[str, Any]] = []
        for hour in range(window.start_hour, window.end_hour):
            bucket = (hour * 60, hour * 60 + 60)
            booked = count_overlapping(bookings, bucket)
            available = max(0, window.capacity - booked)
            slots.append(
                {
                    "time": f"{hour:02d}:00",
                    "capacity": window.capacity,
                    "booked_count": booked,
                    "available": available,
                    "is_fully_booked": available == 0,
                }
            )
        return slots

    def list_slots(self, kitchen_id: str, on_date: DateLike) -> List[Dict[str, Any]]:
        return self.get_all_time_slots_with_booking_info(kitchen_id, on_date)

    def get_available_slots(self, kitchen_id: str, date_str: DateLike) -> List[Dict[str, Any]]:
        """Slot start times that still have capacity left."""
        return [
            {"time": slot["time"], "available": True}
            for slot in self.get_all_time_slots_with_booking_info(kitchen_id, date_str)
            if slot["available"] > 0
        ]

    @BaseService.measure_operation("validate_booking_availability")
    def validate_booking_availability(
        self,
        kitchen_id: str,
        on_date: DateLike,
        start_time: TimeLike,
        end_time: TimeLike,
    ) -> AvailabilityCheck:
        """
        Check that ``[start_time, end_time)`` is bookable on the kitchen's grid.

        Raises:
            NotFoundException: If the kitchen does not exist
            ValueError: If a date or time string is malformed
        """
        target = parse_iso_date(on_date)
        start = parse_hhmm(start_time)
        end = parse_hhmm(end_time)
        kitchen = self._get_kitchen(kitchen_id)

        start_minutes, end_minutes = minutes_of(start), minutes_of(end)
        if start_minutes >= end_minutes:
            return AvailabilityCheck(
                valid=False,
                error="Start time must be before end time",
                code=INVALID_TIME_RANGE,
            )

        window = self._resolve_for_kitchen(kitchen, target)
        if window is None:
            return AvailabilityCheck(
                valid=False,
                error=f"Kitchen is closed on {target.isoformat()}",
                code=KITCHEN_CLOSED,
            )

        if not window.contains(start_minutes, end_minutes):
            return AvailabilityCheck(
                valid=False,
                error=(
                    f"Requested time {format_hhmm(start)}-{format_hhmm(end)} is outside "
                    f"the open window {format_hhmm(window.start_time)}-{format_hhmm(window.end_time)}"
                ),
                code=OUTSIDE_WINDOW,
                window=window,
            )

        if start.minute != 0 or not (window.start_hour <= start.hour < window.end_hour):
            return AvailabilityCheck(
                valid=False,
                error=f"Bookings must start on an hourly slot, got {format_hhmm(start)}",
                code=MISALIGNED_SLOT,
                window=window,
            )

        return AvailabilityCheck(valid=True, window=window)

    def validate_selected_slots(self, window: EffectiveWindow, slots: Sequence[SlotRange]) -> None:
        """Every explicit slot must be an hourly bucket inside the window."""
        for slot in slots:
            start_minutes, end_minutes = slot_bounds(slot)
            if start_minutes >= end_minutes:
                raise ValidationException(
                    f"Invalid slot {slot['startTime']}-{slot['endTime']}", code=INVALID_TIME_RANGE
                )
            if not window.contains(start_minutes, end_minutes):
                raise ValidationException(
                    f"Slot {slot['startTime']}-{slot['endTime']} is outside the open window",
                    code=OUTSIDE_WINDOW,
                )
            if start_minutes % 60 != 0:
                raise ValidationException(
                    f"Slot {slot['startTime']} does not start on the hour", code=MISALIGNED_SLOT
                )

    def find_full_slots(
        self,
        kitchen_id: str,
        on_date: date,
        slots: Sequence[SlotRange],
        capacity: int,
    ) -> List[str]:
        """
        Start times of requested slots that are already at capacity.

        Callers that write afterwards must hold the kitchen booking lock so
        the count cannot change before their insert.
        """
        bookings = self.booking_repository.get_active_bookings_for_date(kitchen_id, on_date)
        full: List[str] = []
        for slot in slots:
            if count_overlapping(bookings, slot_bounds(slot)) >= capacity:
                full.append(slot["startTime"])
        return full
