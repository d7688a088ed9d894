# backend/kitchen_booking/routes/bookings.py
"""
Kitchen booking routes.

All business logic delegated to BookingService.

Endpoints:
    POST / - Create a chef booking (kitchen only, with storage, with equipment)
    POST /portal - Create a portal/external/manager-blocked booking
    GET /{booking_id} - Booking details
    POST /{booking_id}/confirm - Confirm after payment
    POST /{booking_id}/cancel - Cancel a booking
"""

from dataclasses import asdict
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, status

from ..api.dependencies import get_booking_service
from ..core.exceptions import DomainException
from ..errors import handle_domain_exception
from ..schemas.booking import (
    AddonFailureResponse,
    AddonSuccessResponse,
    BookingCreateResponse,
    CancelBookingRequest,
    ChefBookingPayload,
    KitchenBookingResponse,
    PortalBookingRequest,
)
from ..services.booking_service import BookingResult, BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bookings", tags=["bookings"])


def _to_create_response(result: BookingResult) -> BookingCreateResponse:
    return BookingCreateResponse(
        booking=KitchenBookingResponse.model_validate(result.booking),
        succeeded=[AddonSuccessResponse(**asdict(item)) for item in result.succeeded],
        failed=[AddonFailureResponse(**asdict(item)) for item in result.failed],
    )


@router.post("", response_model=BookingCreateResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: ChefBookingPayload,
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingCreateResponse:
    """
    Create a chef booking with optional addons.

    Addons that could not be booked are listed under ``failed``; the booking
    itself is still created.
    """
    try:
        return _to_create_response(booking_service.create_kitchen_booking(payload.root))
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/portal", response_model=BookingCreateResponse, status_code=status.HTTP_201_CREATED)
def create_portal_booking(
    payload: PortalBookingRequest,
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingCreateResponse:
    try:
        return _to_create_response(booking_service.create_portal_booking(payload))
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{booking_id}", response_model=KitchenBookingResponse)
def get_booking(
    booking_id: str,
    booking_service: BookingService = Depends(get_booking_service),
) -> KitchenBookingResponse:
    try:
        return KitchenBookingResponse.model_validate(booking_service.get_booking(booking_id))
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/confirm", response_model=KitchenBookingResponse)
def confirm_booking(
    booking_id: str,
    booking_service: BookingService = Depends(get_booking_service),
) -> KitchenBookingResponse:
    try:
        return KitchenBookingResponse.model_validate(booking_service.confirm_booking(booking_id))
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/cancel", response_model=KitchenBookingResponse)
def cancel_booking(
    booking_id: str,
    payload: Optional[CancelBookingRequest] = Body(None),
    booking_service: BookingService = Depends(get_booking_service),
) -> KitchenBookingResponse:
    try:
        reason = payload.reason if payload else None
        return KitchenBookingResponse.model_validate(booking_service.cancel_booking(booking_id, reason))
    except DomainException as e:
        handle_domain_exception(e)
