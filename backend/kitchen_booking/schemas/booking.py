# backend/kitchen_booking/schemas/booking.py
"""
Booking schemas.

Requests are a closed union discriminated on ``kind`` so the orchestrator
never has to guess which optional fields were supplied:

- ``kitchen_only``: a kitchen reservation
- ``with_storage``: kitchen plus at least one storage unit (equipment optional)
- ``with_equipment``: kitchen plus at least one equipment rental
- ``portal``: manager/portal booking with an external contact, no chef
"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import Field, RootModel, field_serializer, field_validator, model_validator

from ..models.booking import BookingType
from .base import StandardizedModel, StrictRequestModel, ensure_date_only, ensure_hhmm


class SlotSelection(StrictRequestModel):
    """One discrete reserved interval, normally one hour."""

    start_time: time = Field(..., alias="startTime")
    end_time: time = Field(..., alias="endTime")

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_time(cls, v: object) -> object:
        return ensure_hhmm(v, "slot time")

    @model_validator(mode="after")
    def _ordered(self) -> "SlotSelection":
        if self.start_time >= self.end_time:
            raise ValueError("Slot start must be before its end")
        return self

    def to_range(self) -> dict:
        return {
            "startTime": self.start_time.strftime("%H:%M"),
            "endTime": self.end_time.strftime("%H:%M"),
        }


class StorageSelection(StrictRequestModel):
    """
    Storage unit to attach to a booking.

    Without explicit dates the unit is booked for the kitchen booking's date.
    """

    storage_listing_id: str = Field(..., min_length=1)
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _enforce_date_only(cls, v: object) -> object:
        return ensure_date_only(v, "storage date")

    @model_validator(mode="after")
    def _dates_together(self) -> "StorageSelection":
        if (self.start_date is None) != (self.end_date is None):
            raise ValueError("start_date and end_date must be provided together")
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


def _coerce_storage_items(value: Any) -> Any:
    # Bare listing ids are accepted for backward compatibility.
    if isinstance(value, list):
        return [{"storage_listing_id": item} if isinstance(item, str) else item for item in value]
    return value


class _KitchenReservation(StrictRequestModel):
    kitchen_id: str = Field(..., min_length=1)
    booking_date: date
    start_time: time
    end_time: time
    selected_slots: Optional[List[SlotSelection]] = None
    special_notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("booking_date", mode="before")
    @classmethod
    def _enforce_booking_date(cls, v: object) -> object:
        return ensure_date_only(v, "booking_date")

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_time(cls, v: object) -> object:
        return ensure_hhmm(v, "time")

    @field_validator("special_notes")
    @classmethod
    def _clean_notes(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v

    def storage_selections(self) -> List[StorageSelection]:
        return []

    def equipment_listing_ids(self) -> List[str]:
        return []


class _ChefReservation(_KitchenReservation):
    # Optional here so the service can answer with CHEF_ID_REQUIRED.
    chef_id: Optional[str] = None


class KitchenOnlyBookingRequest(_ChefReservation):
    kind: Literal["kitchen_only"] = "kitchen_only"


class WithStorageBookingRequest(_ChefReservation):
    kind: Literal["with_storage"] = "with_storage"
    storage: List[StorageSelection] = Field(..., min_length=1)
    equipment: List[str] = Field(default_factory=list)

    @field_validator("storage", mode="before")
    @classmethod
    def _coerce_storage(cls, v: Any) -> Any:
        return _coerce_storage_items(v)

    def storage_selections(self) -> List[StorageSelection]:
        return list(self.storage)

    def equipment_listing_ids(self) -> List[str]:
        return list(self.equipment)


class WithEquipmentBookingRequest(_ChefReservation):
    kind: Literal["with_equipment"] = "with_equipment"
    equipment: List[str] = Field(..., min_length=1)

    def equipment_listing_ids(self) -> List[str]:
        return list(self.equipment)


class ExternalContact(StrictRequestModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = Field(None, max_length=320)
    phone: Optional[str] = Field(None, max_length=50)
    company: Optional[str] = Field(None, max_length=200)


class PortalBookingRequest(_KitchenReservation):
    kind: Literal["portal"] = "portal"
    booking_type: Literal["portal", "external", "manager_blocked"] = BookingType.PORTAL.value
    external_contact: Optional[ExternalContact] = None
    created_by: Optional[str] = None

    @model_validator(mode="after")
    def _contact_required(self) -> "PortalBookingRequest":
        if self.booking_type != BookingType.MANAGER_BLOCKED.value and self.external_contact is None:
            raise ValueError("external_contact is required for portal and external bookings")
        return self


ChefBookingRequest = Annotated[
    Union[KitchenOnlyBookingRequest, WithStorageBookingRequest, WithEquipmentBookingRequest],
    Field(discriminator="kind"),
]

BookingRequest = Annotated[
    Union[
        KitchenOnlyBookingRequest,
        WithStorageBookingRequest,
        WithEquipmentBookingRequest,
        PortalBookingRequest,
    ],
    Field(discriminator="kind"),
]


class ChefBookingPayload(RootModel[ChefBookingRequest]):
    """Request body wrapper for the chef booking union."""


class CancelBookingRequest(StrictRequestModel):
    reason: Optional[str] = Field(None, max_length=1000)


# ----- responses -----


class StorageItemSummary(StandardizedModel):
    id: str
    storage_listing_id: str
    name: Optional[str] = None
    pricing_model: Optional[str] = None
    total_price_cents: int
    start_date: str
    end_date: str


class EquipmentItemSummary(StandardizedModel):
    id: str
    equipment_listing_id: str
    name: Optional[str] = None
    total_price_cents: int
    damage_deposit_cents: int = 0
    start_date: str
    end_date: str


class KitchenBookingResponse(StandardizedModel):
    id: str
    kitchen_id: str
    chef_id: Optional[str] = None
    booking_date: date
    start_time: time
    end_time: time
    selected_slots: List[dict] = Field(default_factory=list)
    status: str
    booking_type: str
    special_notes: Optional[str] = None
    created_by: Optional[str] = None
    external_contact_name: Optional[str] = None
    external_contact_email: Optional[str] = None
    external_contact_phone: Optional[str] = None
    external_contact_company: Optional[str] = None
    hourly_rate_cents: int
    duration_hours: Decimal
    kitchen_price_cents: int
    subtotal_cents: int
    service_fee_cents: int
    total_price_cents: int
    currency: str
    payment_status: str
    storage_items: List[StorageItemSummary] = Field(default_factory=list)
    equipment_items: List[EquipmentItemSummary] = Field(default_factory=list)
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    @field_serializer("start_time", "end_time")
    def _hhmm(self, value: time) -> str:
        return value.strftime("%H:%M")

    @field_serializer("duration_hours")
    def _hours(self, value: Decimal) -> float:
        return float(value)


class AddonSuccessResponse(StandardizedModel):
    addon_type: str
    id: str
    listing_id: str
    total_price_cents: int


class AddonFailureResponse(StandardizedModel):
    addon_type: str
    listing_id: str
    code: str
    reason: str


class BookingCreateResponse(StandardizedModel):
    booking: KitchenBookingResponse
    succeeded: List[AddonSuccessResponse] = Field(default_factory=list)
    failed: List[AddonFailureResponse] = Field(default_factory=list)
