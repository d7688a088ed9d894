"""Storage booking and extension schemas."""

from datetime import date, datetime
from typing import Optional

from pydantic import Field, field_validator

from .base import StandardizedModel, StrictRequestModel, ensure_date_only


class _NewEndDate(StrictRequestModel):
    new_end_date: date

    @field_validator("new_end_date", mode="before")
    @classmethod
    def _enforce_date_only(cls, v: object) -> object:
        return ensure_date_only(v, "new_end_date")


class StorageExtensionRequest(_NewEndDate):
    pass


class PendingExtensionCreateRequest(_NewEndDate):
    payment_session_id: str = Field(..., min_length=1, max_length=255)
    payment_intent_id: Optional[str] = Field(None, max_length=255)


class PendingExtensionCompleteRequest(StrictRequestModel):
    payment_intent_id: Optional[str] = Field(None, max_length=255)


class StorageBookingResponse(StandardizedModel):
    id: str
    storage_listing_id: str
    kitchen_booking_id: Optional[str] = None
    chef_id: Optional[str] = None
    start_date: date
    end_date: date
    status: str
    pricing_model: str
    unit_price_cents: int
    minimum_booking_duration: int
    total_price_cents: int
    service_fee_cents: int
    currency: str


class ExtensionQuoteResponse(StandardizedModel):
    storage_booking_id: str
    current_end_date: date
    new_end_date: date
    extension_days: int
    daily_rate_cents: int
    extension_base_price_cents: int
    extension_service_fee_cents: int
    extension_total_price_cents: int


class StorageExtensionResponse(StandardizedModel):
    storage_booking: StorageBookingResponse
    extension: ExtensionQuoteResponse
    summary_synced: bool


class PendingExtensionResponse(StandardizedModel):
    id: str
    storage_booking_id: str
    new_end_date: date
    extension_days: int
    extension_base_price_cents: int
    extension_service_fee_cents: int
    extension_total_price_cents: int
    payment_session_id: str
    payment_intent_id: Optional[str] = None
    status: str
    completed_at: Optional[datetime] = None
