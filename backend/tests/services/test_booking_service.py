# backend/tests/services/test_booking_service.py
"""
Tests for BookingService: pricing of the composite booking, addon failure
reporting, atomic writes and lifecycle transitions.
"""

from datetime import time, timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest

from kitchen_booking.core.exceptions import (
    AccessDeniedException,
    BusinessRuleException,
    CapacityConflictException,
    NotFoundException,
    RepositoryException,
    ServiceException,
    UnpaidOverstayPenaltiesException,
    ValidationException,
)
from kitchen_booking.models.booking import EquipmentBooking, KitchenBooking, StorageBooking
from kitchen_booking.models.listing import StorageListing
from kitchen_booking.schemas.booking import (
    KitchenOnlyBookingRequest,
    PortalBookingRequest,
    WithEquipmentBookingRequest,
    WithStorageBookingRequest,
)
from kitchen_booking.services.booking_service import BookingService
from kitchen_booking.services.config_service import ConfigService
from kitchen_booking.services.overstay_service import OverstayService
from tests.utils.booking_builders import BOOKING_DATE, add_kitchen_booking, add_storage_booking


def _request(kitchen, chef_id, cls=KitchenOnlyBookingRequest, **overrides):
    data = {
        "kitchen_id": kitchen.id,
        "chef_id": chef_id,
        "booking_date": BOOKING_DATE.isoformat(),
        "start_time": "09:00",
        "end_time": "11:00",
    }
    data.update(overrides)
    return cls.model_validate(data)


class TestCreateKitchenBooking:
    def test_kitchen_only_pricing(self, db, kitchen, granted_chef):
        result = BookingService(db).create_kitchen_booking(_request(kitchen, granted_chef))

        booking = result.booking
        assert booking.status == "pending"
        assert booking.payment_status == "pending"
        assert booking.kitchen_price_cents == 10000
        assert booking.subtotal_cents == 10000
        assert booking.service_fee_cents == 500
        assert booking.total_price_cents == 10500
        assert booking.duration_hours == Decimal("2")
        assert booking.selected_slots == [
            {"startTime": "09:00", "endTime": "10:00"},
            {"startTime": "10:00", "endTime": "11:00"},
        ]
        assert result.succeeded == [] and result.failed == []

    def test_end_to_end_with_one_day_of_storage(self, db, kitchen, storage_listing, granted_chef):
        request = _request(
            kitchen,
            granted_chef,
            WithStorageBookingRequest,
            storage=[
                {
                    "storage_listing_id": storage_listing.id,
                    "start_date": BOOKING_DATE.isoformat(),
                    "end_date": (BOOKING_DATE + timedelta(days=1)).isoformat(),
                }
            ],
        )

        result = BookingService(db).create_kitchen_booking(request)

        booking = result.booking
        assert booking.kitchen_price_cents == 10000
        assert booking.subtotal_cents == 12000
        assert booking.service_fee_cents == 600
        assert booking.total_price_cents == 12600
        assert len(result.succeeded) == 1
        assert result.succeeded[0].total_price_cents == 2000

        storage = db.query(StorageBooking).filter(StorageBooking.kitchen_booking_id == booking.id).one()
        assert storage.status == "confirmed"
        assert storage.total_price_cents == 2000
        assert storage.unit_price_cents == 2000
        assert storage.pricing_model == "daily"
        assert booking.storage_items[0]["id"] == storage.id
        assert booking.storage_items[0]["total_price_cents"] == 2000

    def test_bare_storage_id_books_the_booking_date(self, db, kitchen, storage_listing, granted_chef):
        request = _request(kitchen, granted_chef, WithStorageBookingRequest, storage=[storage_listing.id])

        result = BookingService(db).create_kitchen_booking(request)

        storage = db.query(StorageBooking).one()
        assert storage.start_date == BOOKING_DATE
        assert storage.end_date == BOOKING_DATE
        # Minimum duration of one day applies
        assert storage.total_price_cents == 2000
        assert result.booking.total_price_cents == 12600

    def test_equipment_rental_and_included_items(
        self, db, kitchen, equipment_listing, included_equipment, granted_chef
    ):
        request = _request(
            kitchen,
            granted_chef,
            WithEquipmentBookingRequest,
            equipment=[equipment_listing.id, included_equipment.id],
        )

        result = BookingService(db).create_kitchen_booking(request)

        rows = db.query(EquipmentBooking).all()
        assert len(rows) == 1
        assert rows[0].damage_deposit_cents == 10000
        assert result.booking.subtotal_cents == 11500
        # Deposit is held separately and not part of the total
        assert result.booking.total_price_cents == 11500 + 575
        assert result.booking.equipment_items[0]["equipment_listing_id"] == equipment_listing.id
        assert result.failed == []

    def test_missing_addons_reported_without_failing_booking(
        self, db, kitchen, other_kitchen, storage_listing, granted_chef
    ):
        foreign = StorageListing(
            kitchen_id=other_kitchen.id, name="Elsewhere", pricing_model="daily", base_price_cents=500
        )
        db.add(foreign)
        db.commit()

        request = _request(
            kitchen,
            granted_chef,
            WithStorageBookingRequest,
            storage=[storage_listing.id, "missing-listing", foreign.id],
            equipment=["missing-equipment"],
        )

        result = BookingService(db).create_kitchen_booking(request)

        assert [s.listing_id for s in result.succeeded] == [storage_listing.id]
        failures = {(f.addon_type, f.listing_id): f.code for f in result.failed}
        assert failures == {
            ("storage", "missing-listing"): "STORAGE_LISTING_NOT_FOUND",
            ("storage", foreign.id): "LISTING_NOT_AT_KITCHEN",
            ("equipment", "missing-equipment"): "EQUIPMENT_LISTING_NOT_FOUND",
        }
        assert result.booking.total_price_cents == 12600
        assert db.query(StorageBooking).count() == 1

    def test_addon_insert_failure_keeps_booking_and_other_addons(
        self, db, session_factory, kitchen, storage_listing, equipment_listing, granted_chef
    ):
        service = BookingService(db)
        request = _request(
            kitchen,
            granted_chef,
            WithStorageBookingRequest,
            storage=[storage_listing.id],
            equipment=[equipment_listing.id],
        )

        with patch.object(
            service.repository,
            "create_equipment_booking",
            side_effect=RepositoryException("Failed to create equipment booking: constraint failed"),
        ):
            result = service.create_kitchen_booking(request)

        assert [(f.addon_type, f.listing_id, f.code) for f in result.failed] == [
            ("equipment", equipment_listing.id, "RepositoryException")
        ]
        assert [s.listing_id for s in result.succeeded] == [storage_listing.id]
        assert result.booking.equipment_items == []
        assert result.booking.total_price_cents == 12600

        other = session_factory()
        try:
            assert other.query(KitchenBooking).count() == 1
            assert other.query(StorageBooking).count() == 1
            assert other.query(EquipmentBooking).count() == 0
        finally:
            other.close()

    def test_fee_rate_from_platform_settings(self, db, kitchen, granted_chef):
        ConfigService(db).set_service_fee_rate("0.10")

        result = BookingService(db).create_kitchen_booking(_request(kitchen, granted_chef))

        assert result.booking.service_fee_cents == 1000
        assert result.booking.total_price_cents == 11000

    def test_minimum_booking_hours(self, db, kitchen, granted_chef):
        kitchen.minimum_booking_hours = 3
        db.commit()

        result = BookingService(db).create_kitchen_booking(_request(kitchen, granted_chef, end_time="10:00"))

        assert result.booking.kitchen_price_cents == 15000
        assert result.booking.duration_hours == Decimal("3")

    def test_explicit_selected_slots(self, db, kitchen, granted_chef):
        request = _request(
            kitchen,
            granted_chef,
            end_time="12:00",
            selected_slots=[{"startTime": "11:00", "endTime": "12:00"}, {"startTime": "09:00", "endTime": "10:00"}],
        )

        result = BookingService(db).create_kitchen_booking(request)

        assert result.booking.selected_slots == [
            {"startTime": "09:00", "endTime": "10:00"},
            {"startTime": "11:00", "endTime": "12:00"},
        ]

    def test_selected_slot_outside_range_rejected(self, db, kitchen, granted_chef):
        request = _request(kitchen, granted_chef, selected_slots=[{"startTime": "14:00", "endTime": "15:00"}])

        with pytest.raises(ValidationException) as exc_info:
            BookingService(db).create_kitchen_booking(request)
        assert exc_info.value.code == "INVALID_TIME_RANGE"


class TestHardFailures:
    def test_chef_id_required(self, db, kitchen):
        with pytest.raises(ValidationException) as exc_info:
            BookingService(db).create_kitchen_booking(_request(kitchen, None))
        assert exc_info.value.code == "CHEF_ID_REQUIRED"

    def test_unknown_kitchen(self, db, kitchen, granted_chef):
        request = _request(kitchen, granted_chef, kitchen_id="does-not-exist")
        with pytest.raises(NotFoundException) as exc_info:
            BookingService(db).create_kitchen_booking(request)
        assert exc_info.value.code == "KITCHEN_NOT_FOUND"

    def test_access_denied_writes_nothing(self, db, kitchen, chef_id):
        with pytest.raises(AccessDeniedException):
            BookingService(db).create_kitchen_booking(_request(kitchen, chef_id))
        assert db.query(KitchenBooking).count() == 0

    def test_unpaid_overstay_blocks_before_any_write(self, db, kitchen, storage_listing, granted_chef):
        end_date = BOOKING_DATE - timedelta(days=10)
        add_storage_booking(db, storage_listing.id, end_date - timedelta(days=5), end_date, chef_id=granted_chef)
        OverstayService(db).detect_overstays(today=BOOKING_DATE - timedelta(days=7))

        with pytest.raises(UnpaidOverstayPenaltiesException) as exc_info:
            BookingService(db).create_kitchen_booking(_request(kitchen, granted_chef))

        assert exc_info.value.code == "UNPAID_OVERSTAY_PENALTIES"
        assert exc_info.value.details["total_owed_cents"] == 6000
        assert db.query(KitchenBooking).count() == 0

    def test_waived_overstay_no_longer_blocks(self, db, kitchen, storage_listing, granted_chef):
        end_date = BOOKING_DATE - timedelta(days=10)
        add_storage_booking(db, storage_listing.id, end_date - timedelta(days=5), end_date, chef_id=granted_chef)
        overstays = OverstayService(db)
        record = overstays.detect_overstays(today=BOOKING_DATE - timedelta(days=7)).succeeded[0]
        overstays.process_manager_decision(record.id, "manager-1", "waive", waive_reason="Power outage")

        result = BookingService(db).create_kitchen_booking(_request(kitchen, granted_chef))

        assert result.booking.total_price_cents == 10500

    def test_misaligned_start(self, db, kitchen, granted_chef):
        with pytest.raises(ValidationException) as exc_info:
            BookingService(db).create_kitchen_booking(_request(kitchen, granted_chef, start_time="09:30"))
        assert exc_info.value.code == "MISALIGNED_SLOT"
        assert db.query(KitchenBooking).count() == 0

    def test_full_slot_raises_capacity_conflict(self, db, kitchen, granted_chef):
        add_kitchen_booking(db, kitchen, time(10), time(11))
        add_kitchen_booking(db, kitchen, time(10), time(11))

        with pytest.raises(CapacityConflictException) as exc_info:
            BookingService(db).create_kitchen_booking(_request(kitchen, granted_chef))

        assert exc_info.value.code == "SLOT_NO_LONGER_AVAILABLE"
        assert exc_info.value.details["full_slots"] == ["10:00"]
        assert exc_info.value.details["retryable"] is True
        assert db.query(KitchenBooking).count() == 2

    def test_failure_after_addons_rolls_back_everything(self, db, kitchen, storage_listing, granted_chef):
        service = BookingService(db)
        request = _request(kitchen, granted_chef, WithStorageBookingRequest, storage=[storage_listing.id])

        # Fails after the booking and storage rows were flushed
        with patch(
            "kitchen_booking.services.booking_service.pricing.PriceBreakdown",
            side_effect=RepositoryException("boom"),
        ):
            with pytest.raises(ServiceException):
                service.create_kitchen_booking(request)

        assert db.query(KitchenBooking).count() == 0
        assert db.query(StorageBooking).count() == 0

    def test_lock_contention_is_retryable_conflict(self, db, kitchen, granted_chef):
        service = BookingService(db)

        with patch.object(
            service.kitchen_repository,
            "lock_for_booking",
            side_effect=RepositoryException("Failed to lock kitchen for booking: database is locked"),
        ):
            with pytest.raises(CapacityConflictException) as exc_info:
                service.create_kitchen_booking(_request(kitchen, granted_chef))
        assert exc_info.value.details["retryable"] is True


class TestPortalBooking:
    def _portal(self, kitchen, **overrides):
        data = {
            "kitchen_id": kitchen.id,
            "booking_date": BOOKING_DATE.isoformat(),
            "start_time": "13:00",
            "end_time": "15:00",
            "booking_type": "external",
            "external_contact": {"name": "Pop-up Co", "email": "ops@popup.test"},
            "created_by": "manager-1",
        }
        data.update(overrides)
        return PortalBookingRequest.model_validate(data)

    def test_external_booking_is_confirmed_without_access_check(self, db, kitchen):
        result = BookingService(db).create_portal_booking(self._portal(kitchen))

        booking = result.booking
        assert booking.chef_id is None
        assert booking.status == "confirmed"
        assert booking.booking_type == "external"
        assert booking.external_contact_name == "Pop-up Co"
        assert booking.external_contact_email == "ops@popup.test"
        assert booking.total_price_cents == 10500

    def test_manager_block_is_free_and_consumes_capacity(self, db, kitchen):
        service = BookingService(db)
        request = self._portal(kitchen, booking_type="manager_blocked", external_contact=None)

        first = service.create_portal_booking(request)
        service.create_portal_booking(request)

        assert first.booking.total_price_cents == 0
        assert first.booking.service_fee_cents == 0
        with pytest.raises(CapacityConflictException):
            service.create_portal_booking(request)


class TestLifecycle:
    def test_confirm_pending_booking(self, db, kitchen, granted_chef):
        service = BookingService(db)
        booking = service.create_kitchen_booking(_request(kitchen, granted_chef)).booking

        confirmed = service.confirm_booking(booking.id)

        assert confirmed.status == "confirmed"
        assert confirmed.payment_status == "paid"
        assert confirmed.confirmed_at is not None
        # Idempotent
        assert service.confirm_booking(booking.id).status == "confirmed"

    def test_cancel_cascades_to_addons_and_frees_capacity(
        self, db, kitchen, storage_listing, equipment_listing, granted_chef
    ):
        service = BookingService(db)
        request = _request(
            kitchen,
            granted_chef,
            WithStorageBookingRequest,
            storage=[storage_listing.id],
            equipment=[equipment_listing.id],
        )
        booking = service.create_kitchen_booking(request).booking

        cancelled = service.cancel_booking(booking.id, reason="Chef unavailable")

        assert cancelled.status == "cancelled"
        assert cancelled.cancelled_at is not None
        assert {row.status for row in db.query(StorageBooking).all()} == {"cancelled"}
        assert {row.status for row in db.query(EquipmentBooking).all()} == {"cancelled"}
        slots = {s["time"]: s for s in service.availability_service.list_slots(kitchen.id, BOOKING_DATE)}
        assert slots["09:00"]["booked_count"] == 0

    def test_cancel_twice_rejected(self, db, kitchen, granted_chef):
        service = BookingService(db)
        booking = service.create_kitchen_booking(_request(kitchen, granted_chef)).booking
        service.cancel_booking(booking.id)

        with pytest.raises(BusinessRuleException):
            service.cancel_booking(booking.id)
        with pytest.raises(BusinessRuleException) as exc_info:
            service.confirm_booking(booking.id)
        assert exc_info.value.code == "INVALID_STATUS_TRANSITION"

    def test_unknown_booking(self, db):
        with pytest.raises(NotFoundException) as exc_info:
            BookingService(db).get_booking("missing")
        assert exc_info.value.code == "BOOKING_NOT_FOUND"

    def test_bookings_for_chef(self, db, kitchen, granted_chef):
        service = BookingService(db)
        service.create_kitchen_booking(_request(kitchen, granted_chef))
        service.create_kitchen_booking(_request(kitchen, granted_chef, start_time="13:00", end_time="14:00"))

        assert len(service.get_bookings_for_chef(granted_chef)) == 2

