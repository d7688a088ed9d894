# backend/kitchen_booking/services/overstay_service.py
"""
Overstay Service

Storage bookings whose end date has passed are turned into reviewable
overstay records. Detection never moves money: a manager approves, adjusts or
waives each record, and only an approved record is applied to the booking.

Lifecycle:
    grace_period -> pending_review -> penalty_approved -> charged
                                   -> penalty_waived
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
import logging
from typing import Any, Dict, List, Literal, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import (
    BusinessRuleException,
    ConflictException,
    NotFoundException,
    ValidationException,
)
from ..models.booking import StorageBooking
from ..models.overstay import (
    OPEN_OVERSTAY_STATUSES,
    OverstayEventSource,
    OverstayStatus,
    StorageOverstayHistory,
    StorageOverstayRecord,
)
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from . import pricing
from .base import BaseService
from .config_service import ConfigService, OverstayPenaltyConfig
from .storage_extension_service import StorageExtensionService

logger = logging.getLogger(__name__)

DecisionAction = Literal["approve", "adjust", "waive"]


@dataclass
class OverstayFailure:
    storage_booking_id: str
    reason: str


@dataclass
class OverstaySweepResult:
    succeeded: List[StorageOverstayRecord] = field(default_factory=list)
    failed: List[OverstayFailure] = field(default_factory=list)


def overstay_idempotency_key(storage_booking_id: str, end_date: date) -> str:
    return f"storage_{storage_booking_id}_overstay_{end_date.isoformat()}"


class OverstayService(BaseService):
    """Detection and manager-approved charging of storage overstays."""

    def __init__(
        self,
        db: Session,
        extension_service: Optional[StorageExtensionService] = None,
        config_service: Optional[ConfigService] = None,
    ):
        super().__init__(db)
        self.config_service = config_service or ConfigService(db)
        self.extension_service = extension_service or StorageExtensionService(db, config_service=self.config_service)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.kitchen_repository = RepositoryFactory.create_kitchen_repository(db)
        self.listing_repository = RepositoryFactory.create_listing_repository(db)
        self.repository = RepositoryFactory.create_overstay_repository(db)

    # ----- configuration -----

    def get_effective_penalty_config(self, storage: StorageBooking) -> OverstayPenaltyConfig:
        """
        Penalty settings for one storage booking.

        Resolution order, highest priority first: the storage listing, the
        kitchen's location, then the platform defaults. Unset (NULL) values
        fall through to the next level.
        """
        platform = self.config_service.get_overstay_defaults()
        values = {
            "grace_period_days": platform.grace_period_days,
            "penalty_multiplier": platform.penalty_multiplier,
            "max_penalty_days": platform.max_penalty_days,
        }

        listing = self.listing_repository.get_storage_listing(storage.storage_listing_id)
        location = None
        if listing is not None:
            kitchen = self.kitchen_repository.get_by_id(listing.kitchen_id)
            location = kitchen.location if kitchen is not None else None

        for level in (location, listing):
            if level is None:
                continue
            if level.overstay_grace_period_days is not None:
                values["grace_period_days"] = level.overstay_grace_period_days
            if level.overstay_penalty_multiplier is not None:
                values["penalty_multiplier"] = level.overstay_penalty_multiplier
            if level.overstay_max_penalty_days is not None:
                values["max_penalty_days"] = level.overstay_max_penalty_days
        return OverstayPenaltyConfig(**values)

    # ----- detection -----

    @BaseService.measure_operation("detect_overstays")
    def detect_overstays(
        self,
        today: Optional[date] = None,
        max_days_to_charge: Optional[int] = None,
        event_source: str = OverstayEventSource.SYSTEM.value,
    ) -> OverstaySweepResult:
        """
        Create or refresh one overstay record per overdue confirmed storage booking.

        ``max_days_to_charge`` overrides the configured cap for every booking
        in the sweep. Each booking is committed on its own; a failing row is
        logged and reported in ``failed`` without stopping the sweep.
        """
        today = today or datetime.now(timezone.utc).date()
        if max_days_to_charge is not None and max_days_to_charge < 1:
            raise ValidationException("max_days_to_charge must be at least 1", code="INVALID_PENALTY_AMOUNT")

        candidates = self.booking_repository.get_overdue_storage_bookings(today)
        self.log_operation("detect_overstays", today=today.isoformat(), candidates=len(candidates))

        result = OverstaySweepResult()
        for storage_id in [storage.id for storage in candidates]:
            try:
                storage = self.booking_repository.get_storage_booking(storage_id)
                record = self._detect_one(storage, today, max_days_to_charge, event_source)
                self.db.commit()
                prometheus_metrics.record_overstay(record.status)
                result.succeeded.append(record)
            except Exception as exc:
                self.db.rollback()
                self.logger.error(
                    f"Overstay detection failed for storage booking {storage_id}: {str(exc)}",
                    extra={"storage_booking_id": storage_id},
                )
                result.failed.append(OverstayFailure(storage_booking_id=storage_id, reason=str(exc)))

        self.log_operation(
            "detect_overstays_completed",
            detected=len(result.succeeded),
            failed=len(result.failed),
        )
        return result

    def process_overstayer_penalties(
        self,
        max_days_to_charge: Optional[int] = None,
        today: Optional[date] = None,
    ) -> OverstaySweepResult:
        """Deprecated: penalties are no longer charged automatically. Use detect_overstays."""
        self.logger.warning(
            "process_overstayer_penalties is deprecated; detecting overstays for manager review instead"
        )
        return self.detect_overstays(today=today, max_days_to_charge=max_days_to_charge)

    def _detect_one(
        self,
        storage: StorageBooking,
        today: date,
        max_days_override: Optional[int],
        event_source: str,
    ) -> StorageOverstayRecord:
        config = self.get_effective_penalty_config(storage)
        grace_days = config.grace_period_days
        max_days = max_days_override or config.max_penalty_days
        multiplier = config.penalty_multiplier

        days_overdue = (today - storage.end_date).days
        in_grace = days_overdue <= grace_days
        days_charged = 0 if in_grace else min(days_overdue - grace_days, max_days)
        daily_rate = pricing.daily_rate_cents(storage.pricing_model, storage.unit_price_cents)
        penalty = pricing.calculate_overstay_penalty(daily_rate, days_charged, multiplier)
        status = OverstayStatus.GRACE_PERIOD.value if in_grace else OverstayStatus.PENDING_REVIEW.value

        values = {
            "days_overdue": days_overdue,
            "days_charged": days_charged,
            "daily_rate_cents": daily_rate,
            "penalty_multiplier": multiplier,
            "calculated_penalty_cents": penalty,
            "proposed_end_date": storage.end_date + timedelta(days=days_charged),
        }

        key = overstay_idempotency_key(storage.id, storage.end_date)
        record = self.repository.get_by_idempotency_key(key)
        if record is None:
            record = self.repository.create(
                storage_booking_id=storage.id,
                idempotency_key=key,
                end_date=storage.end_date,
                status=status,
                **values,
            )
            self._record_history(
                record,
                None,
                event_type="status_change",
                event_source=event_source,
                description=f"Overstay detected. Days overdue: {days_overdue}",
                metadata={"calculated_penalty_cents": penalty, "grace_period_days": grace_days},
            )
            return record

        # Decided records are frozen.
        if record.status in OPEN_OVERSTAY_STATUSES:
            previous = record.status
            for name, value in values.items():
                setattr(record, name, value)
            record.status = status
            self.db.flush()
            if previous != status:
                self._record_history(
                    record,
                    previous,
                    event_type="status_change",
                    event_source=event_source,
                    description=f"Days overdue: {days_overdue}",
                    metadata={"calculated_penalty_cents": penalty},
                )
        return record

    # ----- history -----

    def _record_history(
        self,
        record: StorageOverstayRecord,
        previous_status: Optional[str],
        *,
        event_type: str,
        event_source: str,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        created_by: Optional[str] = None,
    ) -> StorageOverstayHistory:
        return self.repository.create_history_entry(
            overstay_record_id=record.id,
            previous_status=previous_status,
            new_status=record.status,
            event_type=event_type,
            event_source=event_source,
            description=description,
            event_metadata=metadata or {},
            created_by=created_by,
        )

    def get_overstay_history(self, record_id: str) -> List[StorageOverstayHistory]:
        """Audit trail of an overstay record, newest first."""
        self.get_record(record_id)
        return self.repository.get_history(record_id)

    # ----- review -----

    def get_record(self, record_id: str) -> StorageOverstayRecord:
        record = self.repository.get_by_id(record_id)
        if not record:
            raise NotFoundException(f"Overstay record {record_id} not found", code="OVERSTAY_NOT_FOUND")
        return record

    def list_records(self, status: Optional[str] = None) -> List[StorageOverstayRecord]:
        if status:
            return self.repository.list_by_status(status)
        return self.repository.list_by_status()

    @BaseService.measure_operation("process_manager_decision")
    def process_manager_decision(
        self,
        record_id: str,
        manager_id: str,
        action: DecisionAction,
        final_penalty_cents: Optional[int] = None,
        waive_reason: Optional[str] = None,
        manager_notes: Optional[str] = None,
    ) -> StorageOverstayRecord:
        """
        Record a manager's decision on an overstay awaiting review.

        ``approve`` keeps the calculated penalty, ``adjust`` sets a lower or
        equal amount, ``waive`` cancels it and needs a reason.
        """
        self.log_operation("process_manager_decision", record_id=record_id, manager_id=manager_id, action=action)
        with self.transaction():
            record = self.repository.get_by_id(record_id, for_update=True)
            if not record:
                raise NotFoundException(f"Overstay record {record_id} not found", code="OVERSTAY_NOT_FOUND")
            if record.status != OverstayStatus.PENDING_REVIEW.value:
                raise BusinessRuleException(
                    f"Cannot process decision for record in status: {record.status}",
                    code="INVALID_STATUS_TRANSITION",
                    details={"record_id": record_id, "status": record.status},
                )
            previous = record.status

            if action == "approve":
                record.final_penalty_cents = record.calculated_penalty_cents
                record.status = OverstayStatus.PENALTY_APPROVED.value
            elif action == "adjust":
                if final_penalty_cents is None or not (0 <= final_penalty_cents <= record.calculated_penalty_cents):
                    raise ValidationException(
                        "Adjusted penalty must be between 0 and the calculated penalty",
                        code="INVALID_PENALTY_AMOUNT",
                        details={
                            "final_penalty_cents": final_penalty_cents,
                            "calculated_penalty_cents": record.calculated_penalty_cents,
                        },
                    )
                record.final_penalty_cents = final_penalty_cents
                record.status = OverstayStatus.PENALTY_APPROVED.value
            elif action == "waive":
                if not waive_reason or not waive_reason.strip():
                    raise ValidationException("A reason is required to waive a penalty", code="WAIVE_REASON_REQUIRED")
                record.final_penalty_cents = 0
                record.waive_reason = waive_reason.strip()
                record.status = OverstayStatus.PENALTY_WAIVED.value
            else:
                raise ValidationException(f"Unknown decision '{action}'", code="INVALID_DECISION")

            record.reviewed_by = manager_id
            record.reviewed_at = datetime.now(timezone.utc)
            record.manager_notes = manager_notes
            self.db.flush()
            self._record_history(
                record,
                previous,
                event_type="manager_decision",
                event_source=OverstayEventSource.MANAGER.value,
                description=manager_notes or f"Manager decision: {action}",
                metadata={
                    "action": action,
                    "final_penalty_cents": record.final_penalty_cents,
                    "waive_reason": record.waive_reason,
                },
                created_by=manager_id,
            )
        self.db.refresh(record)
        return record

    @BaseService.measure_operation("apply_approved_penalty")
    def apply_approved_penalty(self, record_id: str) -> StorageOverstayRecord:
        """
        Charge an approved penalty to its storage booking.

        Extends the end date by the charged days and adds the final penalty to
        the booking's total with no service fee, then mirrors the same delta
        into the kitchen booking summary.
        """
        self.log_operation("apply_approved_penalty", record_id=record_id)
        with self.transaction():
            record = self.repository.get_by_id(record_id, for_update=True)
            if not record:
                raise NotFoundException(f"Overstay record {record_id} not found", code="OVERSTAY_NOT_FOUND")
            if record.status != OverstayStatus.PENALTY_APPROVED.value:
                raise BusinessRuleException(
                    f"Only approved penalties can be applied, record is {record.status}",
                    code="INVALID_STATUS_TRANSITION",
                    details={"record_id": record_id, "status": record.status},
                )

            storage = self.booking_repository.get_storage_booking(record.storage_booking_id, for_update=True)
            if storage is None:
                raise NotFoundException(
                    f"Storage booking {record.storage_booking_id} not found", code="STORAGE_BOOKING_NOT_FOUND"
                )
            if storage.end_date != record.end_date:
                raise ConflictException(
                    "Storage booking end date changed since the overstay was detected",
                    code="OVERSTAY_RECORD_STALE",
                    details={
                        "record_end_date": record.end_date.isoformat(),
                        "current_end_date": storage.end_date.isoformat(),
                    },
                )

            penalty = record.final_penalty_cents or 0
            self.extension_service.apply_additive_change(storage, record.proposed_end_date, penalty, 0)
            record.status = OverstayStatus.CHARGED.value
            record.applied_at = datetime.now(timezone.utc)
            self.db.flush()
            self._record_history(
                record,
                OverstayStatus.PENALTY_APPROVED.value,
                event_type="penalty_charged",
                event_source=OverstayEventSource.SYSTEM.value,
                description=f"Penalty of {penalty} cents added to storage booking",
                metadata={"final_penalty_cents": penalty, "new_end_date": record.proposed_end_date.isoformat()},
            )

        self.extension_service.sync_kitchen_booking_summary(storage, penalty, 0)
        self.db.refresh(record)
        return record
