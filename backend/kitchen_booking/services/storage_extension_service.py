# backend/kitchen_booking/services/storage_extension_service.py
"""
Storage Extension Service

Extends storage bookings past their end date. Extensions are additive: the
incremental price is added to the persisted totals so the already paid
portion is never repriced.

The storage booking row is the source of truth. The owning kitchen booking's
``storage_items`` summary and totals are mirrored afterwards in a separate
transaction that may fail without undoing the extension.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
import logging
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from ..core.exceptions import (
    BusinessRuleException,
    ConflictException,
    NotFoundException,
    RepositoryException,
    ServiceException,
    ValidationException,
)
from ..core.time_utils import parse_iso_date
from ..models.booking import (
    BookingStatus,
    KitchenBooking,
    PendingExtensionStatus,
    PendingStorageExtension,
    StorageBooking,
)
from ..repositories.factory import RepositoryFactory
from . import pricing
from .base import BaseService
from .config_service import ConfigService

logger = logging.getLogger(__name__)

DateLike = Union[str, date]


@dataclass(frozen=True)
class ExtensionQuote:
    storage_booking_id: str
    current_end_date: date
    new_end_date: date
    extension_days: int
    daily_rate_cents: int
    extension_base_price_cents: int
    extension_service_fee_cents: int

    @property
    def extension_total_price_cents(self) -> int:
        return self.extension_base_price_cents + self.extension_service_fee_cents

    def to_dict(self) -> Dict[str, Any]:
        return {
            "storage_booking_id": self.storage_booking_id,
            "current_end_date": self.current_end_date.isoformat(),
            "new_end_date": self.new_end_date.isoformat(),
            "extension_days": self.extension_days,
            "daily_rate_cents": self.daily_rate_cents,
            "extension_base_price_cents": self.extension_base_price_cents,
            "extension_service_fee_cents": self.extension_service_fee_cents,
            "extension_total_price_cents": self.extension_total_price_cents,
        }


@dataclass
class ExtendedStorageBooking:
    storage_booking: StorageBooking
    extension: ExtensionQuote
    summary_synced: bool


class StorageExtensionService(BaseService):
    """Direct and payment-backed extensions of storage bookings."""

    def __init__(self, db: Session, config_service: Optional[ConfigService] = None):
        super().__init__(db)
        self.config_service = config_service or ConfigService(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.pending_repository = RepositoryFactory.create_pending_extension_repository(db)

    def _get_storage_booking(self, storage_booking_id: str, for_update: bool = False) -> StorageBooking:
        storage = self.booking_repository.get_storage_booking(storage_booking_id, for_update=for_update)
        if not storage:
            raise NotFoundException(
                f"Storage booking {storage_booking_id} not found",
                code="STORAGE_BOOKING_NOT_FOUND",
                details={"storage_booking_id": storage_booking_id},
            )
        return storage

    def _build_quote(self, storage: StorageBooking, new_end_date: date, fee_rate: Decimal) -> ExtensionQuote:
        if storage.status == BookingStatus.CANCELLED.value:
            raise BusinessRuleException(
                "Cancelled storage bookings cannot be extended",
                code="INVALID_STATUS_TRANSITION",
                details={"storage_booking_id": storage.id},
            )
        if new_end_date <= storage.end_date:
            raise ValidationException(
                "New end date must be after the current end date",
                code="INVALID_EXTENSION",
                details={
                    "current_end_date": storage.end_date.isoformat(),
                    "new_end_date": new_end_date.isoformat(),
                },
            )

        extension_days = (new_end_date - storage.end_date).days
        minimum = storage.minimum_booking_duration or 1
        if extension_days < minimum:
            raise ValidationException(
                f"Extension must be at least {minimum} day{'s' if minimum > 1 else ''}",
                code="BELOW_MINIMUM_DURATION",
                details={"extension_days": extension_days, "minimum_booking_duration": minimum},
            )

        daily_rate = pricing.daily_rate_cents(storage.pricing_model, storage.unit_price_cents)
        base = daily_rate * extension_days
        return ExtensionQuote(
            storage_booking_id=storage.id,
            current_end_date=storage.end_date,
            new_end_date=new_end_date,
            extension_days=extension_days,
            daily_rate_cents=daily_rate,
            extension_base_price_cents=base,
            extension_service_fee_cents=pricing.calculate_platform_fee(base, fee_rate),
        )

    @staticmethod
    def apply_additive_change(storage: StorageBooking, new_end_date: date, base_cents: int, fee_cents: int) -> None:
        """Move the end date and add to the persisted totals; never recomputes from scratch."""
        storage.end_date = new_end_date
        storage.total_price_cents = (storage.total_price_cents or 0) + base_cents
        storage.service_fee_cents = (storage.service_fee_cents or 0) + fee_cents

    @BaseService.measure_operation("quote_storage_extension")
    def quote_storage_extension(self, storage_booking_id: str, new_end_date: DateLike) -> ExtensionQuote:
        """Incremental price of an extension. Writes nothing."""
        storage = self._get_storage_booking(storage_booking_id)
        return self._build_quote(storage, parse_iso_date(new_end_date), self.config_service.get_service_fee_rate())

    @BaseService.measure_operation("extend_storage_booking")
    def extend_storage_booking(self, storage_booking_id: str, new_end_date: DateLike) -> ExtendedStorageBooking:
        """
        Extend a storage booking to ``new_end_date``.

        Raises:
            NotFoundException: If the storage booking does not exist
            ValidationException: INVALID_EXTENSION or BELOW_MINIMUM_DURATION;
                the booking is left untouched
        """
        target = parse_iso_date(new_end_date)
        self.log_operation(
            "extend_storage_booking", storage_booking_id=storage_booking_id, new_end_date=target.isoformat()
        )
        fee_rate = self.config_service.get_service_fee_rate()

        with self.transaction():
            storage = self._get_storage_booking(storage_booking_id, for_update=True)
            quote = self._build_quote(storage, target, fee_rate)
            self.apply_additive_change(
                storage, target, quote.extension_base_price_cents, quote.extension_service_fee_cents
            )
            self.db.flush()

        synced = self.sync_kitchen_booking_summary(
            storage, quote.extension_base_price_cents, quote.extension_service_fee_cents
        )
        self.db.refresh(storage)
        return ExtendedStorageBooking(storage_booking=storage, extension=quote, summary_synced=synced)

    # ----- denormalized summary -----

    def sync_kitchen_booking_summary(self, storage: StorageBooking, base_cents: int, fee_cents: int) -> bool:
        """
        Mirror a storage change into its kitchen booking's summary and totals.

        The kitchen booking receives the same deltas as the storage row:
        ``base_cents`` onto the subtotal, ``fee_cents`` onto the service fee
        and their sum onto the total. Already paid amounts are never repriced.

        Returns False (after logging) when the mirror could not be written.
        """
        kitchen_booking_id = storage.kitchen_booking_id
        if not kitchen_booking_id:
            return False
        try:
            with self.transaction():
                booking = self.booking_repository.get_by_id(kitchen_booking_id, for_update=True)
                if booking is None:
                    self.logger.warning(
                        f"Kitchen booking {kitchen_booking_id} missing for storage booking {storage.id}"
                    )
                    return False
                booking.storage_items = self._mirrored_items(booking, storage)
                self.apply_total_deltas(booking, base_cents, fee_cents)
                self.db.flush()
        except (ServiceException, RepositoryException) as exc:
            self.logger.warning(
                f"Failed to mirror storage booking {storage.id} into kitchen booking summary: {str(exc)}",
                extra={"storage_booking_id": storage.id, "kitchen_booking_id": kitchen_booking_id},
            )
            return False
        self.logger.info(
            "Updated storage summary after storage change",
            extra={
                "storage_booking_id": storage.id,
                "kitchen_booking_id": kitchen_booking_id,
                "base_delta_cents": base_cents,
                "fee_delta_cents": fee_cents,
            },
        )
        return True

    @staticmethod
    def _mirrored_items(booking: KitchenBooking, storage: StorageBooking) -> List[Dict[str, Any]]:
        # New list so the JSON column change is detected.
        items: List[Dict[str, Any]] = []
        for item in booking.storage_items or []:
            if item.get("id") == storage.id:
                item = {
                    **item,
                    "end_date": storage.end_date.isoformat(),
                    "total_price_cents": storage.total_price_cents,
                }
            items.append(item)
        return items

    @staticmethod
    def apply_total_deltas(booking: KitchenBooking, base_cents: int, fee_cents: int) -> None:
        booking.subtotal_cents = (booking.subtotal_cents or 0) + base_cents
        booking.service_fee_cents = (booking.service_fee_cents or 0) + fee_cents
        booking.total_price_cents = (booking.total_price_cents or 0) + base_cents + fee_cents

    # ----- payment-backed extensions -----

    @BaseService.measure_operation("create_pending_storage_extension")
    def create_pending_storage_extension(
        self,
        storage_booking_id: str,
        new_end_date: DateLike,
        payment_session_id: str,
        payment_intent_id: Optional[str] = None,
    ) -> PendingStorageExtension:
        """Record a quoted extension awaiting payment. The storage booking is not touched."""
        target = parse_iso_date(new_end_date)
        self.log_operation(
            "create_pending_storage_extension",
            storage_booking_id=storage_booking_id,
            payment_session_id=payment_session_id,
        )
        if self.pending_repository.get_by_payment_session(payment_session_id):
            raise ConflictException(
                "A pending extension already exists for this payment session",
                code="DUPLICATE_PAYMENT_SESSION",
                details={"payment_session_id": payment_session_id},
            )

        quote = self.quote_storage_extension(storage_booking_id, target)
        with self.transaction():
            pending = self.pending_repository.create(
                storage_booking_id=storage_booking_id,
                new_end_date=quote.new_end_date,
                extension_days=quote.extension_days,
                extension_base_price_cents=quote.extension_base_price_cents,
                extension_service_fee_cents=quote.extension_service_fee_cents,
                extension_total_price_cents=quote.extension_total_price_cents,
                payment_session_id=payment_session_id,
                payment_intent_id=payment_intent_id,
                status=PendingExtensionStatus.PENDING.value,
            )
        return pending

    def _get_pending(self, payment_session_id: str, for_update: bool = False) -> PendingStorageExtension:
        pending = self.pending_repository.get_by_payment_session(payment_session_id, for_update=for_update)
        if not pending:
            raise NotFoundException(
                f"No pending extension for payment session {payment_session_id}",
                code="PENDING_EXTENSION_NOT_FOUND",
            )
        return pending

    @BaseService.measure_operation("complete_pending_storage_extension")
    def complete_pending_storage_extension(
        self, payment_session_id: str, payment_intent_id: Optional[str] = None
    ) -> PendingStorageExtension:
        """
        Apply a paid extension at its quoted price and mark it completed.

        Completing an already completed record is a no-op.
        """
        self.log_operation("complete_pending_storage_extension", payment_session_id=payment_session_id)
        with self.transaction():
            pending = self._get_pending(payment_session_id, for_update=True)
            if pending.status == PendingExtensionStatus.COMPLETED.value:
                return pending
            if pending.status == PendingExtensionStatus.FAILED.value:
                raise BusinessRuleException(
                    "Failed extensions cannot be completed",
                    code="INVALID_STATUS_TRANSITION",
                    details={"payment_session_id": payment_session_id},
                )

            storage = self._get_storage_booking(pending.storage_booking_id, for_update=True)
            if pending.new_end_date <= storage.end_date:
                raise ValidationException(
                    "Storage booking already ends on or after the requested date",
                    code="INVALID_EXTENSION",
                    details={"current_end_date": storage.end_date.isoformat()},
                )
            self.apply_additive_change(
                storage,
                pending.new_end_date,
                pending.extension_base_price_cents,
                pending.extension_service_fee_cents,
            )
            pending.status = PendingExtensionStatus.COMPLETED.value
            pending.completed_at = datetime.now(timezone.utc)
            if payment_intent_id:
                pending.payment_intent_id = payment_intent_id
            self.db.flush()

        self.sync_kitchen_booking_summary(
            storage, pending.extension_base_price_cents, pending.extension_service_fee_cents
        )
        self.db.refresh(pending)
        return pending

    @BaseService.measure_operation("fail_pending_storage_extension")
    def fail_pending_storage_extension(self, payment_session_id: str) -> PendingStorageExtension:
        self.log_operation("fail_pending_storage_extension", payment_session_id=payment_session_id)
        with self.transaction():
            pending = self._get_pending(payment_session_id, for_update=True)
            if pending.status == PendingExtensionStatus.COMPLETED.value:
                raise BusinessRuleException(
                    "Completed extensions cannot be failed",
                    code="INVALID_STATUS_TRANSITION",
                    details={"payment_session_id": payment_session_id},
                )
            pending.status = PendingExtensionStatus.FAILED.value
            self.db.flush()
        self.db.refresh(pending)
        return pending
