# backend/kitchen_booking/routes/availability.py
"""
Kitchen availability routes.

Endpoints:
    GET /kitchens/{kitchen_id}/slots - All slots with capacity accounting
    GET /kitchens/{kitchen_id}/available-slots - Slots with capacity left
    POST /availability/validate - Validate a requested booking range
"""

from datetime import date
import logging
from typing import List

from fastapi import APIRouter, Depends, Query

from ..api.dependencies import get_availability_service
from ..core.exceptions import DomainException
from ..errors import handle_domain_exception
from ..schemas.availability import (
    AvailabilityCheckRequest,
    AvailabilityCheckResponse,
    AvailableSlot,
    SlotInfo,
    SlotListResponse,
)
from ..services.availability_service import AvailabilityService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["availability"])


@router.get("/kitchens/{kitchen_id}/slots", response_model=SlotListResponse)
def list_kitchen_slots(
    kitchen_id: str,
    booking_date: date = Query(..., alias="date"),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> SlotListResponse:
    """Every hourly slot of the effective window, with booked and remaining capacity."""
    try:
        slots = availability_service.get_all_time_slots_with_booking_info(kitchen_id, booking_date)
        return SlotListResponse(
            kitchen_id=kitchen_id,
            booking_date=booking_date,
            slots=[SlotInfo(**slot) for slot in slots],
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/kitchens/{kitchen_id}/available-slots", response_model=List[AvailableSlot])
def list_available_slots(
    kitchen_id: str,
    booking_date: date = Query(..., alias="date"),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> List[AvailableSlot]:
    try:
        return [AvailableSlot(**slot) for slot in availability_service.get_available_slots(kitchen_id, booking_date)]
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/availability/validate", response_model=AvailabilityCheckResponse)
def validate_booking_availability(
    payload: AvailabilityCheckRequest,
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityCheckResponse:
    try:
        check = availability_service.validate_booking_availability(
            payload.kitchen_id, payload.booking_date, payload.start_time, payload.end_time
        )
        return AvailabilityCheckResponse(**check.to_dict())
    except DomainException as e:
        handle_domain_exception(e)
