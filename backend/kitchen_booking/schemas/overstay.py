"""Overstay review schemas."""

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, model_validator

from .base import StandardizedModel, StrictRequestModel


class OverstayDetectRequest(StrictRequestModel):
    today: Optional[date] = None
    max_days_to_charge: Optional[int] = Field(None, ge=1, le=365)


class ManagerDecisionRequest(StrictRequestModel):
    manager_id: str = Field(..., min_length=1)
    action: Literal["approve", "adjust", "waive"]
    final_penalty_cents: Optional[int] = Field(None, ge=0)
    waive_reason: Optional[str] = Field(None, max_length=1000)
    manager_notes: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="after")
    def _action_fields(self) -> "ManagerDecisionRequest":
        if self.action == "adjust" and self.final_penalty_cents is None:
            raise ValueError("final_penalty_cents is required to adjust a penalty")
        if self.action == "waive" and not (self.waive_reason and self.waive_reason.strip()):
            raise ValueError("waive_reason is required to waive a penalty")
        return self


class OverstayRecordResponse(StandardizedModel):
    id: str
    storage_booking_id: str
    end_date: date
    days_overdue: int
    days_charged: int
    daily_rate_cents: int
    penalty_multiplier: int
    calculated_penalty_cents: int
    final_penalty_cents: Optional[int] = None
    proposed_end_date: date
    status: str
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    waive_reason: Optional[str] = None
    manager_notes: Optional[str] = None
    applied_at: Optional[datetime] = None


class OverstayFailureResponse(StandardizedModel):
    storage_booking_id: str
    reason: str


class OverstaySweepResponse(StandardizedModel):
    succeeded: List[OverstayRecordResponse] = Field(default_factory=list)
    failed: List[OverstayFailureResponse] = Field(default_factory=list)


class OverstayHistoryResponse(StandardizedModel):
    id: str
    overstay_record_id: str
    previous_status: Optional[str] = None
    new_status: str
    event_type: str
    event_source: str
    description: Optional[str] = None
    event_metadata: Dict[str, Any] = Field(default_factory=dict)
    created_by: Optional[str] = None
    created_at: datetime


class UnpaidPenaltyResponse(StandardizedModel):
    overstay_id: str
    storage_booking_id: str
    status: str
    days_overdue: int
    penalty_amount_cents: int
    requires_immediate_payment: bool


class UnpaidPenaltiesResponse(StandardizedModel):
    chef_id: str
    has_unpaid_penalties: bool
    total_count: int
    total_owed_cents: int
    items: List[UnpaidPenaltyResponse] = Field(default_factory=list)
