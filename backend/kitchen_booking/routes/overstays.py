# backend/kitchen_booking/routes/overstays.py
"""
Storage overstay review routes.

Endpoints:
    POST /detect - Run a detection sweep
    GET / - List overstay records, optionally by status
    POST /{record_id}/decision - Approve, adjust or waive a penalty
    POST /{record_id}/apply - Charge an approved penalty
    GET /{record_id}/history - Status transition audit trail
    GET /chefs/{chef_id}/unpaid - Unresolved penalties blocking a chef
"""

from dataclasses import asdict
import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query

from ..api.dependencies import get_access_gate, get_overstay_service
from ..core.exceptions import DomainException
from ..errors import handle_domain_exception
from ..schemas.overstay import (
    ManagerDecisionRequest,
    OverstayDetectRequest,
    OverstayFailureResponse,
    OverstayHistoryResponse,
    OverstayRecordResponse,
    OverstaySweepResponse,
    UnpaidPenaltiesResponse,
    UnpaidPenaltyResponse,
)
from ..services.access_gate import AccessGate
from ..services.overstay_service import OverstayService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/overstays", tags=["overstays"])


@router.post("/detect", response_model=OverstaySweepResponse)
def detect_overstays(
    payload: Optional[OverstayDetectRequest] = Body(None),
    overstay_service: OverstayService = Depends(get_overstay_service),
) -> OverstaySweepResponse:
    """Create or refresh overstay records for review. Never charges anything."""
    payload = payload or OverstayDetectRequest()
    try:
        result = overstay_service.detect_overstays(
            today=payload.today, max_days_to_charge=payload.max_days_to_charge
        )
        return OverstaySweepResponse(
            succeeded=[OverstayRecordResponse.model_validate(record) for record in result.succeeded],
            failed=[OverstayFailureResponse(**asdict(failure)) for failure in result.failed],
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.get("", response_model=List[OverstayRecordResponse])
def list_overstays(
    status: Optional[str] = Query(None),
    overstay_service: OverstayService = Depends(get_overstay_service),
) -> List[OverstayRecordResponse]:
    return [OverstayRecordResponse.model_validate(r) for r in overstay_service.list_records(status)]


@router.post("/{record_id}/decision", response_model=OverstayRecordResponse)
def decide_overstay(
    record_id: str,
    payload: ManagerDecisionRequest,
    overstay_service: OverstayService = Depends(get_overstay_service),
) -> OverstayRecordResponse:
    try:
        record = overstay_service.process_manager_decision(
            record_id,
            manager_id=payload.manager_id,
            action=payload.action,
            final_penalty_cents=payload.final_penalty_cents,
            waive_reason=payload.waive_reason,
            manager_notes=payload.manager_notes,
        )
        return OverstayRecordResponse.model_validate(record)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{record_id}/apply", response_model=OverstayRecordResponse)
def apply_overstay_penalty(
    record_id: str,
    overstay_service: OverstayService = Depends(get_overstay_service),
) -> OverstayRecordResponse:
    try:
        return OverstayRecordResponse.model_validate(overstay_service.apply_approved_penalty(record_id))
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{record_id}/history", response_model=List[OverstayHistoryResponse])
def get_overstay_history(
    record_id: str,
    overstay_service: OverstayService = Depends(get_overstay_service),
) -> List[OverstayHistoryResponse]:
    try:
        return [OverstayHistoryResponse.model_validate(e) for e in overstay_service.get_overstay_history(record_id)]
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/chefs/{chef_id}/unpaid", response_model=UnpaidPenaltiesResponse)
def get_unpaid_penalties(
    chef_id: str,
    access_gate: AccessGate = Depends(get_access_gate),
) -> UnpaidPenaltiesResponse:
    """Penalties that block the chef from booking until charged or waived."""
    penalties = access_gate.get_unpaid_penalties(chef_id)
    return UnpaidPenaltiesResponse(
        chef_id=chef_id,
        has_unpaid_penalties=bool(penalties),
        total_count=len(penalties),
        total_owed_cents=sum(p.penalty_amount_cents for p in penalties),
        items=[UnpaidPenaltyResponse(**p.to_dict()) for p in penalties],
    )
