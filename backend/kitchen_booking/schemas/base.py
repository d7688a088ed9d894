"""
Base schemas shared by request and response DTOs.
"""

from datetime import date, time
import re
from typing import Optional

from pydantic import BaseModel, ConfigDict

DATE_ONLY_REGEX = re.compile(r"^\d{4}-\d{2}-\d{2}$")
HHMM_REGEX = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class StandardizedModel(BaseModel):
    """Response base: reads ORM attributes and emits enum values."""

    model_config = ConfigDict(from_attributes=True, use_enum_values=True, populate_by_name=True)


class StrictRequestModel(BaseModel):
    """Request DTO base that always forbids unexpected fields."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True, populate_by_name=True)


def ensure_date_only(value: object, field_name: str) -> object:
    if isinstance(value, str):
        candidate = value.strip()
        if not DATE_ONLY_REGEX.fullmatch(candidate):
            raise ValueError(f"{field_name} must be a YYYY-MM-DD date-only string")
        return candidate
    return value


def ensure_hhmm(value: object, field_name: str) -> object:
    """Accept only 24-hour ``HH:MM`` strings for time fields."""
    if isinstance(value, str):
        candidate = value.strip()
        if not HHMM_REGEX.fullmatch(candidate):
            raise ValueError(f"Invalid {field_name} '{value}'. Expected HH:MM format.")
        hour, minute = candidate.split(":")
        return time(int(hour), int(minute))
    return value


def format_time(value: Optional[time]) -> Optional[str]:
    return value.strftime("%H:%M") if value is not None else None


def format_date(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None
