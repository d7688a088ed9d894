# backend/kitchen_booking/services/booking_service.py
"""
Booking Service for the kitchen booking engine.

Creates kitchen bookings together with their storage and equipment addons as
one transactional unit, and handles the booking lifecycle.

Creation flow:
1. Hard preconditions (kitchen exists, chef id present, access, time range)
   are checked before any write.
2. Inside one transaction the kitchen is locked, slot capacity re-counted,
   the booking row written with a provisional total, addons priced and
   written, and the final totals and addon summary stored.
3. Addon items that cannot be resolved or priced are skipped and reported in
   the result's ``failed`` list; the booking itself still succeeds.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
import logging
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from ..core.exceptions import (
    BusinessRuleException,
    CapacityConflictException,
    NotFoundException,
    RepositoryException,
    ServiceException,
    ValidationException,
)
from ..core.time_utils import SlotRange, duration_hours, hourly_slots, minutes_of, slot_bounds
from ..models.booking import BookingStatus, BookingType, KitchenBooking, PaymentStatus
from ..models.listing import EquipmentAvailabilityType, PricingModel
from ..models.location import Kitchen
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..schemas.booking import (
    KitchenOnlyBookingRequest,
    PortalBookingRequest,
    StorageSelection,
    WithEquipmentBookingRequest,
    WithStorageBookingRequest,
)
from . import pricing
from .access_gate import AccessGate
from .availability_service import AvailabilityService, EffectiveWindow
from .base import BaseService
from .config_service import ConfigService

logger = logging.getLogger(__name__)

ChefBookingRequestType = Union[
    KitchenOnlyBookingRequest, WithStorageBookingRequest, WithEquipmentBookingRequest
]

STORAGE = "storage"
EQUIPMENT = "equipment"


@dataclass
class AddonSuccess:
    addon_type: str
    id: str
    listing_id: str
    total_price_cents: int


@dataclass
class AddonFailure:
    """An addon item skipped during booking creation."""

    addon_type: str
    listing_id: str
    code: str
    reason: str


@dataclass
class BookingResult:
    booking: KitchenBooking
    succeeded: List[AddonSuccess] = field(default_factory=list)
    failed: List[AddonFailure] = field(default_factory=list)


class AddonError(Exception):
    """Addon item cannot be booked; recorded as an AddonFailure."""

    def __init__(self, code: str, reason: str):
        self.code = code
        self.reason = reason
        super().__init__(reason)


class BookingService(BaseService):
    """
    Service layer for kitchen booking operations.

    Orchestrates access checks, availability validation, pricing and the
    transactional write of a booking with its addons.
    """

    def __init__(
        self,
        db: Session,
        availability_service: Optional[AvailabilityService] = None,
        access_gate: Optional[AccessGate] = None,
        config_service: Optional[ConfigService] = None,
    ):
        """
        Initialize booking service.

        Args:
            db: Database session
            availability_service: Optional AvailabilityService instance
            access_gate: Optional AccessGate instance
            config_service: Optional ConfigService instance
        """
        super().__init__(db)
        self.availability_service = availability_service or AvailabilityService(db)
        self.access_gate = access_gate or AccessGate(db)
        self.config_service = config_service or ConfigService(db)
        self.repository = RepositoryFactory.create_booking_repository(db)
        self.kitchen_repository = RepositoryFactory.create_kitchen_repository(db)
        self.listing_repository = RepositoryFactory.create_listing_repository(db)

    # ----- creation -----

    @BaseService.measure_operation("create_kitchen_booking")
    def create_kitchen_booking(self, request: ChefBookingRequestType) -> BookingResult:
        """
        Create a chef booking with optional storage and equipment addons.

        Args:
            request: One of the chef booking request kinds

        Returns:
            BookingResult with the persisted booking and per-addon outcomes

        Raises:
            NotFoundException: If the kitchen does not exist
            ValidationException: If chef id is missing or the time range is invalid
            AccessDeniedException: If the chef lacks location access
            UnpaidOverstayPenaltiesException: If the chef has unresolved overstay penalties
            CapacityConflictException: If a slot filled up before the write
        """
        self.log_operation(
            "create_kitchen_booking",
            kitchen_id=request.kitchen_id,
            chef_id=request.chef_id,
            kind=request.kind,
            booking_date=str(request.booking_date),
        )

        kitchen = self._get_kitchen(request.kitchen_id)
        if not request.chef_id:
            raise ValidationException("chef_id is required for chef bookings", code="CHEF_ID_REQUIRED")

        # Runs before any booking write; may commit a materialized grant.
        self.access_gate.require_booking_access(request.chef_id, kitchen.location_id)
        self.access_gate.require_no_unpaid_penalties(request.chef_id)

        window = self._validate_time_range(kitchen, request)
        slots = self._resolve_selected_slots(window, request)

        hours = duration_hours(request.start_time, request.end_time)
        billable = pricing.billable_hours(hours, kitchen.minimum_booking_hours)
        kitchen_price = pricing.calculate_kitchen_price(
            kitchen.hourly_rate_cents, hours, kitchen.minimum_booking_hours
        )
        fee_rate = self.config_service.get_service_fee_rate()

        result = self._write_booking(
            kitchen=kitchen,
            window=window,
            slots=slots,
            booking_type=BookingType.CHEF.value,
            fields={
                "chef_id": request.chef_id,
                "booking_date": request.booking_date,
                "start_time": request.start_time,
                "end_time": request.end_time,
                "special_notes": request.special_notes,
                "status": BookingStatus.PENDING.value,
                "hourly_rate_cents": kitchen.hourly_rate_cents,
                "duration_hours": Decimal(billable),
                "kitchen_price_cents": kitchen_price,
            },
            kitchen_price=kitchen_price,
            fee_rate=fee_rate,
            storage=request.storage_selections(),
            equipment=request.equipment_listing_ids(),
        )

        self.log_operation(
            "create_kitchen_booking_completed",
            booking_id=result.booking.id,
            total_price_cents=result.booking.total_price_cents,
            failed_addons=len(result.failed),
        )
        return result

    @BaseService.measure_operation("create_portal_booking")
    def create_portal_booking(self, request: PortalBookingRequest) -> BookingResult:
        """
        Create a manager/portal booking for an external party.

        Skips the access gate; the time range and capacity rules still apply.
        Manager blocks carry no price.
        """
        self.log_operation(
            "create_portal_booking",
            kitchen_id=request.kitchen_id,
            booking_type=request.booking_type,
            created_by=request.created_by,
        )

        kitchen = self._get_kitchen(request.kitchen_id)
        window = self._validate_time_range(kitchen, request)
        slots = self._resolve_selected_slots(window, request)

        hours = duration_hours(request.start_time, request.end_time)
        if request.booking_type == BookingType.MANAGER_BLOCKED.value:
            kitchen_price = 0
            fee_rate = Decimal("0")
        else:
            kitchen_price = pricing.calculate_kitchen_price(
                kitchen.hourly_rate_cents, hours, kitchen.minimum_booking_hours
            )
            fee_rate = self.config_service.get_service_fee_rate()

        contact = request.external_contact
        return self._write_booking(
            kitchen=kitchen,
            window=window,
            slots=slots,
            booking_type=request.booking_type,
            fields={
                "chef_id": None,
                "booking_date": request.booking_date,
                "start_time": request.start_time,
                "end_time": request.end_time,
                "special_notes": request.special_notes,
                "status": BookingStatus.CONFIRMED.value,
                "confirmed_at": datetime.now(timezone.utc),
                "created_by": request.created_by,
                "external_contact_name": contact.name if contact else None,
                "external_contact_email": contact.email if contact else None,
                "external_contact_phone": contact.phone if contact else None,
                "external_contact_company": contact.company if contact else None,
                "hourly_rate_cents": kitchen.hourly_rate_cents,
                "duration_hours": Decimal(pricing.billable_hours(hours, kitchen.minimum_booking_hours)),
                "kitchen_price_cents": kitchen_price,
            },
            kitchen_price=kitchen_price,
            fee_rate=fee_rate,
            storage=[],
            equipment=[],
        )

    def _write_booking(
        self,
        *,
        kitchen: Kitchen,
        window: EffectiveWindow,
        slots: List[SlotRange],
        booking_type: str,
        fields: Dict[str, Any],
        kitchen_price: int,
        fee_rate: Decimal,
        storage: List[StorageSelection],
        equipment: List[str],
    ) -> BookingResult:
        booking_date: date = fields["booking_date"]
        succeeded: List[AddonSuccess] = []
        failed: List[AddonFailure] = []

        try:
            with self.transaction():
                self.kitchen_repository.lock_for_booking(kitchen.id)
                full = self.availability_service.find_full_slots(
                    kitchen.id, booking_date, slots, window.capacity
                )
                if full:
                    raise CapacityConflictException(
                        details={
                            "kitchen_id": kitchen.id,
                            "booking_date": booking_date.isoformat(),
                            "full_slots": full,
                        }
                    )

                # Provisional totals; final values are written once addons are known.
                booking = self.repository.create(
                    kitchen_id=kitchen.id,
                    booking_type=booking_type,
                    selected_slots=slots,
                    currency=kitchen.currency,
                    payment_status=PaymentStatus.PENDING.value,
                    subtotal_cents=0,
                    service_fee_cents=0,
                    total_price_cents=0,
                    storage_items=[],
                    equipment_items=[],
                    **fields,
                )

                storage_items: List[Dict[str, Any]] = []
                storage_prices: List[int] = []
                for selection in storage:
                    item = self._book_storage(kitchen, booking, selection, fee_rate, failed)
                    if item is not None:
                        storage_items.append(item)
                        storage_prices.append(item["total_price_cents"])
                        succeeded.append(
                            AddonSuccess(STORAGE, item["id"], item["storage_listing_id"], item["total_price_cents"])
                        )

                equipment_items: List[Dict[str, Any]] = []
                equipment_prices: List[int] = []
                for listing_id in equipment:
                    item = self._book_equipment(kitchen, booking, listing_id, fee_rate, failed)
                    if item is not None:
                        equipment_items.append(item)
                        equipment_prices.append(item["total_price_cents"])
                        succeeded.append(
                            AddonSuccess(EQUIPMENT, item["id"], item["equipment_listing_id"], item["total_price_cents"])
                        )

                breakdown = pricing.PriceBreakdown(
                    kitchen_cents=kitchen_price,
                    storage_cents=storage_prices,
                    equipment_cents=equipment_prices,
                    fee_rate=fee_rate,
                )
                booking.subtotal_cents = breakdown.subtotal_cents
                booking.service_fee_cents = breakdown.service_fee_cents
                booking.total_price_cents = breakdown.total_cents
                booking.storage_items = storage_items
                booking.equipment_items = equipment_items
                self.db.flush()
        except CapacityConflictException:
            prometheus_metrics.record_booking_outcome(booking_type, "capacity_conflict")
            self.logger.info(
                "Booking rejected, slots full",
                extra={"kitchen_id": kitchen.id, "booking_date": str(booking_date)},
            )
            raise
        except RepositoryException as exc:
            prometheus_metrics.record_booking_outcome(booking_type, "error")
            if _is_lock_contention(exc):
                raise CapacityConflictException(
                    "The kitchen is being booked by someone else, please retry",
                    details={"kitchen_id": kitchen.id, "booking_date": booking_date.isoformat()},
                ) from exc
            raise ServiceException(f"Failed to create booking: {str(exc)}") from exc
        except ServiceException as exc:
            # Commit-time lock timeouts surface here rather than from the repository.
            prometheus_metrics.record_booking_outcome(booking_type, "error")
            if _is_lock_contention(exc):
                raise CapacityConflictException(
                    "The kitchen is being booked by someone else, please retry",
                    details={"kitchen_id": kitchen.id, "booking_date": booking_date.isoformat()},
                ) from exc
            raise

        self.db.refresh(booking)
        prometheus_metrics.record_booking_outcome(booking_type, "created")
        for failure in failed:
            prometheus_metrics.record_addon_failure(failure.addon_type)
        return BookingResult(booking=booking, succeeded=succeeded, failed=failed)

    def _book_storage(
        self,
        kitchen: Kitchen,
        booking: KitchenBooking,
        selection: StorageSelection,
        fee_rate: Decimal,
        failed: List[AddonFailure],
    ) -> Optional[Dict[str, Any]]:
        listing_id = selection.storage_listing_id
        start_date = selection.start_date or booking.booking_date
        end_date = selection.end_date or booking.booking_date
        try:
            listing = self.listing_repository.get_storage_listing(listing_id)
            if listing is None or not listing.is_active:
                raise AddonError("STORAGE_LISTING_NOT_FOUND", f"Storage listing {listing_id} not found")
            if listing.kitchen_id != kitchen.id:
                raise AddonError(
                    "LISTING_NOT_AT_KITCHEN", f"Storage listing {listing_id} belongs to another kitchen"
                )
            price = self._price_storage(
                listing.pricing_model,
                listing.base_price_cents,
                listing.minimum_booking_duration,
                booking,
                start_date,
                end_date,
            )
        except (AddonError, ValueError, RepositoryException) as exc:
            self._record_addon_failure(failed, STORAGE, listing_id, booking, exc)
            return None

        try:
            with self.db.begin_nested():
                row = self.repository.create_storage_booking(
                    storage_listing_id=listing.id,
                    kitchen_booking_id=booking.id,
                    chef_id=booking.chef_id,
                    start_date=start_date,
                    end_date=end_date,
                    status=BookingStatus.CONFIRMED.value,
                    pricing_model=listing.pricing_model,
                    unit_price_cents=listing.base_price_cents,
                    minimum_booking_duration=listing.minimum_booking_duration,
                    total_price_cents=price,
                    service_fee_cents=pricing.calculate_platform_fee(price, fee_rate),
                    currency=listing.currency,
                )
        except RepositoryException as exc:
            self._record_addon_failure(failed, STORAGE, listing_id, booking, exc)
            return None
        return {
            "id": row.id,
            "storage_listing_id": listing.id,
            "name": listing.name,
            "pricing_model": listing.pricing_model,
            "total_price_cents": price,
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
        }

    @staticmethod
    def _price_storage(
        model: str,
        rate_cents: int,
        minimum_duration: int,
        booking: KitchenBooking,
        start_date: date,
        end_date: date,
    ) -> int:
        if model == PricingModel.HOURLY.value:
            units: Any = duration_hours(booking.start_time, booking.end_time)
        else:
            units = (end_date - start_date).days
        return pricing.compute_base_price(model, rate_cents, units, minimum_duration)

    def _book_equipment(
        self,
        kitchen: Kitchen,
        booking: KitchenBooking,
        listing_id: str,
        fee_rate: Decimal,
        failed: List[AddonFailure],
    ) -> Optional[Dict[str, Any]]:
        try:
            listing = self.listing_repository.get_equipment_listing(listing_id)
            if listing is None or not listing.is_active:
                raise AddonError("EQUIPMENT_LISTING_NOT_FOUND", f"Equipment listing {listing_id} not found")
            if listing.kitchen_id != kitchen.id:
                raise AddonError(
                    "LISTING_NOT_AT_KITCHEN", f"Equipment listing {listing_id} belongs to another kitchen"
                )
        except (AddonError, RepositoryException) as exc:
            self._record_addon_failure(failed, EQUIPMENT, listing_id, booking, exc)
            return None

        if listing.availability_type == EquipmentAvailabilityType.INCLUDED.value:
            # Comes with the kitchen
            return None

        price = listing.session_rate_cents
        try:
            with self.db.begin_nested():
                row = self.repository.create_equipment_booking(
                    equipment_listing_id=listing.id,
                    kitchen_booking_id=booking.id,
                    chef_id=booking.chef_id,
                    start_date=booking.booking_date,
                    end_date=booking.booking_date,
                    status=BookingStatus.CONFIRMED.value,
                    pricing_model="session",
                    total_price_cents=price,
                    damage_deposit_cents=listing.damage_deposit_cents,
                    service_fee_cents=pricing.calculate_platform_fee(price, fee_rate),
                    currency=listing.currency,
                )
        except RepositoryException as exc:
            self._record_addon_failure(failed, EQUIPMENT, listing_id, booking, exc)
            return None
        return {
            "id": row.id,
            "equipment_listing_id": listing.id,
            "name": listing.equipment_type,
            "total_price_cents": price,
            "damage_deposit_cents": listing.damage_deposit_cents,
            "start_date": booking.booking_date.isoformat(),
            "end_date": booking.booking_date.isoformat(),
        }

    def _record_addon_failure(
        self,
        failed: List[AddonFailure],
        addon_type: str,
        listing_id: str,
        booking: KitchenBooking,
        exc: Exception,
    ) -> None:
        code = exc.code if isinstance(exc, AddonError) else type(exc).__name__
        self.logger.warning(
            f"Skipping {addon_type} addon {listing_id}: {str(exc)}",
            extra={"listing_id": listing_id, "booking_id": booking.id, "addon_type": addon_type},
        )
        failed.append(AddonFailure(addon_type=addon_type, listing_id=listing_id, code=code, reason=str(exc)))

    # ----- validation helpers -----

    def _get_kitchen(self, kitchen_id: str) -> Kitchen:
        kitchen = self.kitchen_repository.get_by_id(kitchen_id)
        if not kitchen:
            raise NotFoundException(
                f"Kitchen {kitchen_id} not found",
                code="KITCHEN_NOT_FOUND",
                details={"kitchen_id": kitchen_id},
            )
        return kitchen

    def _validate_time_range(self, kitchen: Kitchen, request: Any) -> EffectiveWindow:
        check = self.availability_service.validate_booking_availability(
            kitchen.id, request.booking_date, request.start_time, request.end_time
        )
        return check.raise_for_error()

    def _resolve_selected_slots(self, window: EffectiveWindow, request: Any) -> List[SlotRange]:
        if not request.selected_slots:
            return hourly_slots(request.start_time, request.end_time)

        slots: List[SlotRange] = [slot.to_range() for slot in request.selected_slots]
        self.availability_service.validate_selected_slots(window, slots)
        start, end = minutes_of(request.start_time), minutes_of(request.end_time)
        for slot in slots:
            slot_start, slot_end = slot_bounds(slot)
            if slot_start < start or slot_end > end:
                raise ValidationException(
                    f"Slot {slot['startTime']}-{slot['endTime']} is outside the booked range",
                    code="INVALID_TIME_RANGE",
                )
        return sorted(slots, key=lambda s: s["startTime"])

    # ----- lifecycle -----

    @BaseService.measure_operation("get_booking")
    def get_booking(self, booking_id: str) -> KitchenBooking:
        booking = self.repository.get_by_id(booking_id)
        if not booking:
            raise NotFoundException(f"Booking {booking_id} not found", code="BOOKING_NOT_FOUND")
        return booking

    def get_bookings_for_chef(self, chef_id: str) -> List[KitchenBooking]:
        return self.repository.get_bookings_by_chef(chef_id)

    @BaseService.measure_operation("confirm_booking")
    def confirm_booking(self, booking_id: str) -> KitchenBooking:
        """
        Mark a pending booking confirmed once payment has been captured.

        Confirming an already confirmed booking is a no-op.
        """
        self.log_operation("confirm_booking", booking_id=booking_id)
        with self.transaction():
            booking = self.get_booking(booking_id)
            if booking.status == BookingStatus.CANCELLED.value:
                raise BusinessRuleException(
                    "Cancelled bookings cannot be confirmed",
                    code="INVALID_STATUS_TRANSITION",
                    details={"booking_id": booking_id, "status": booking.status},
                )
            if booking.status == BookingStatus.PENDING.value:
                booking.status = BookingStatus.CONFIRMED.value
                booking.payment_status = PaymentStatus.PAID.value
                booking.confirmed_at = datetime.now(timezone.utc)
                self.db.flush()
        self.db.refresh(booking)
        return booking

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(self, booking_id: str, reason: Optional[str] = None) -> KitchenBooking:
        """
        Cancel a booking and its addon rows. Cancellation is terminal.

        Raises:
            NotFoundException: If the booking does not exist
            BusinessRuleException: If the booking is already cancelled
        """
        self.log_operation("cancel_booking", booking_id=booking_id, reason=reason)
        with self.transaction():
            booking = self.get_booking(booking_id)
            if booking.status == BookingStatus.CANCELLED.value:
                raise BusinessRuleException(
                    "Booking is already cancelled",
                    code="INVALID_STATUS_TRANSITION",
                    details={"booking_id": booking_id},
                )
            booking.status = BookingStatus.CANCELLED.value
            booking.cancelled_at = datetime.now(timezone.utc)
            for row in self.repository.get_storage_bookings_for_kitchen_booking(booking.id):
                row.status = BookingStatus.CANCELLED.value
            for row in self.repository.get_equipment_bookings_for_kitchen_booking(booking.id):
                row.status = BookingStatus.CANCELLED.value
            self.db.flush()
        self.db.refresh(booking)
        return booking


def _is_lock_contention(exc: Exception) -> bool:
    message = str(exc).lower()
    return "database is locked" in message or "deadlock detected" in message or "could not obtain lock" in message
