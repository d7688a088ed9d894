"""Availability schemas."""

from datetime import date, time
from typing import List, Optional

from pydantic import Field, field_validator

from .base import StandardizedModel, StrictRequestModel, ensure_date_only, ensure_hhmm


class SlotInfo(StandardizedModel):
    time: str = Field(..., description="Slot start, HH:MM")
    capacity: int
    booked_count: int
    available: int
    is_fully_booked: bool


class AvailableSlot(StandardizedModel):
    time: str
    available: bool


class SlotListResponse(StandardizedModel):
    kitchen_id: str
    booking_date: date
    slots: List[SlotInfo] = Field(default_factory=list)


class AvailabilityCheckRequest(StrictRequestModel):
    kitchen_id: str = Field(..., min_length=1)
    booking_date: date
    start_time: time
    end_time: time

    @field_validator("booking_date", mode="before")
    @classmethod
    def _enforce_date_only(cls, v: object) -> object:
        return ensure_date_only(v, "booking_date")

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_time(cls, v: object) -> object:
        return ensure_hhmm(v, "time")


class AvailabilityCheckResponse(StandardizedModel):
    valid: bool
    error: Optional[str] = None
    code: Optional[str] = None
