# backend/kitchen_booking/routes/storage_extensions.py
"""
Storage booking extension routes.

Endpoints:
    POST /{storage_booking_id}/extend - Extend immediately
    GET /{storage_booking_id}/extension-quote - Price an extension without writing
    POST /{storage_booking_id}/pending-extensions - Record an extension awaiting payment
    POST /pending-extensions/{payment_session_id}/complete - Apply a paid extension
    POST /pending-extensions/{payment_session_id}/fail - Mark a payment as failed
"""

from datetime import date
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status

from ..api.dependencies import get_storage_extension_service
from ..core.exceptions import DomainException
from ..errors import handle_domain_exception
from ..schemas.storage_extension import (
    ExtensionQuoteResponse,
    PendingExtensionCompleteRequest,
    PendingExtensionCreateRequest,
    PendingExtensionResponse,
    StorageBookingResponse,
    StorageExtensionRequest,
    StorageExtensionResponse,
)
from ..services.storage_extension_service import StorageExtensionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/storage-bookings", tags=["storage-extensions"])


@router.post("/{storage_booking_id}/extend", response_model=StorageExtensionResponse)
def extend_storage_booking(
    storage_booking_id: str,
    payload: StorageExtensionRequest,
    extension_service: StorageExtensionService = Depends(get_storage_extension_service),
) -> StorageExtensionResponse:
    try:
        result = extension_service.extend_storage_booking(storage_booking_id, payload.new_end_date)
        return StorageExtensionResponse(
            storage_booking=StorageBookingResponse.model_validate(result.storage_booking),
            extension=ExtensionQuoteResponse(**result.extension.to_dict()),
            summary_synced=result.summary_synced,
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{storage_booking_id}/extension-quote", response_model=ExtensionQuoteResponse)
def quote_storage_extension(
    storage_booking_id: str,
    new_end_date: date = Query(...),
    extension_service: StorageExtensionService = Depends(get_storage_extension_service),
) -> ExtensionQuoteResponse:
    try:
        quote = extension_service.quote_storage_extension(storage_booking_id, new_end_date)
        return ExtensionQuoteResponse(**quote.to_dict())
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/{storage_booking_id}/pending-extensions",
    response_model=PendingExtensionResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_pending_extension(
    storage_booking_id: str,
    payload: PendingExtensionCreateRequest,
    extension_service: StorageExtensionService = Depends(get_storage_extension_service),
) -> PendingExtensionResponse:
    try:
        pending = extension_service.create_pending_storage_extension(
            storage_booking_id,
            payload.new_end_date,
            payload.payment_session_id,
            payload.payment_intent_id,
        )
        return PendingExtensionResponse.model_validate(pending)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/pending-extensions/{payment_session_id}/complete", response_model=PendingExtensionResponse)
def complete_pending_extension(
    payment_session_id: str,
    payload: Optional[PendingExtensionCompleteRequest] = Body(None),
    extension_service: StorageExtensionService = Depends(get_storage_extension_service),
) -> PendingExtensionResponse:
    try:
        pending = extension_service.complete_pending_storage_extension(
            payment_session_id, payload.payment_intent_id if payload else None
        )
        return PendingExtensionResponse.model_validate(pending)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/pending-extensions/{payment_session_id}/fail", response_model=PendingExtensionResponse)
def fail_pending_extension(
    payment_session_id: str,
    extension_service: StorageExtensionService = Depends(get_storage_extension_service),
) -> PendingExtensionResponse:
    try:
        return PendingExtensionResponse.model_validate(
            extension_service.fail_pending_storage_extension(payment_session_id)
        )
    except DomainException as e:
        handle_domain_exception(e)
