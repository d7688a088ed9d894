"""HH:MM and ISO date helpers for the booking boundary."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import List, Tuple, TypedDict, Union

TimeLike = Union[str, time]


class SlotRange(TypedDict):
    startTime: str
    endTime: str


def parse_hhmm(value: TimeLike) -> time:
    """Parse a 24-hour ``HH:MM`` string (a ``time`` passes through)."""
    if isinstance(value, time):
        return value
    try:
        return datetime.strptime(value.strip(), "%H:%M").time()
    except (ValueError, AttributeError) as exc:
        raise ValueError(f"Invalid time '{value}'. Expected HH:MM") from exc


def format_hhmm(value: time) -> str:
    return value.strftime("%H:%M")


def parse_iso_date(value: Union[str, date]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip()[:10])
    except (ValueError, AttributeError) as exc:
        raise ValueError(f"Invalid date '{value}'. Expected YYYY-MM-DD") from exc


def minutes_of(value: time) -> int:
    return value.hour * 60 + value.minute


def duration_hours(start: time, end: time) -> Decimal:
    """Decimal hours between two times on the same day, never negative."""
    minutes = max(0, minutes_of(end) - minutes_of(start))
    return (Decimal(minutes) / Decimal(60)).quantize(Decimal("0.01"))


def day_of_week(on_date: date) -> int:
    """Day of week with Sunday = 0, matching the stored weekly schedule."""
    return (on_date.weekday() + 1) % 7


def hourly_slots(start: time, end: time) -> List[SlotRange]:
    """Contiguous one-hour slots covering ``[start, end)``; the last one may be shorter."""
    slots: List[SlotRange] = []
    current = minutes_of(start)
    end_minutes = minutes_of(end)
    while current < end_minutes:
        slot_end = min(current + 60, end_minutes)
        slots.append(
            {
                "startTime": f"{current // 60:02d}:{current % 60:02d}",
                "endTime": f"{slot_end // 60:02d}:{slot_end % 60:02d}",
            }
        )
        current = slot_end
    return slots


def slot_bounds(slot: SlotRange) -> Tuple[int, int]:
    return minutes_of(parse_hhmm(slot["startTime"])), minutes_of(parse_hhmm(slot["endTime"]))
