# backend/tests/services/test_storage_extension_service.py
"""
Tests for StorageExtensionService: additive extensions, rejection without
side effects, the best-effort kitchen booking mirror and payment-backed
pending extensions.
"""

from datetime import timedelta
from unittest.mock import patch

import pytest

from kitchen_booking.core.exceptions import (
    BusinessRuleException,
    ConflictException,
    NotFoundException,
    RepositoryException,
    ValidationException,
)
from kitchen_booking.models.booking import KitchenBooking, StorageBooking
from kitchen_booking.schemas.booking import WithStorageBookingRequest
from kitchen_booking.services.booking_service import BookingService
from kitchen_booking.services.config_service import ConfigService
from kitchen_booking.services.storage_extension_service import StorageExtensionService
from tests.utils.booking_builders import BOOKING_DATE, add_storage_booking

END_DATE = BOOKING_DATE + timedelta(days=1)


@pytest.fixture
def booked_storage(db, kitchen, storage_listing, granted_chef):
    """Kitchen booking 09-11 with one day of storage: total 12600."""
    request = WithStorageBookingRequest.model_validate(
        {
            "kitchen_id": kitchen.id,
            "chef_id": granted_chef,
            "booking_date": BOOKING_DATE.isoformat(),
            "start_time": "09:00",
            "end_time": "11:00",
            "storage": [
                {
                    "storage_listing_id": storage_listing.id,
                    "start_date": BOOKING_DATE.isoformat(),
                    "end_date": END_DATE.isoformat(),
                }
            ],
        }
    )
    result = BookingService(db).create_kitchen_booking(request)
    return db.query(StorageBooking).filter(StorageBooking.kitchen_booking_id == result.booking.id).one()


def _snapshot(storage):
    return (storage.end_date, storage.total_price_cents, storage.service_fee_cents, storage.status)


class TestExtendStorageBooking:
    def test_extension_is_additive(self, db, booked_storage):
        service = StorageExtensionService(db)

        result = service.extend_storage_booking(booked_storage.id, END_DATE + timedelta(days=3))

        storage = result.storage_booking
        assert storage.end_date == END_DATE + timedelta(days=3)
        assert result.extension.extension_days == 3
        assert result.extension.extension_base_price_cents == 6000
        assert result.extension.extension_service_fee_cents == 300
        assert storage.total_price_cents == 2000 + 6000
        assert storage.service_fee_cents == 100 + 300
        assert result.summary_synced is True

    def test_kitchen_booking_summary_mirrors_extension(self, db, booked_storage):
        StorageExtensionService(db).extend_storage_booking(booked_storage.id, END_DATE + timedelta(days=3))

        booking = db.get(KitchenBooking, booked_storage.kitchen_booking_id)
        db.refresh(booking)
        item = booking.storage_items[0]
        assert item["end_date"] == (END_DATE + timedelta(days=3)).isoformat()
        assert item["total_price_cents"] == 8000
        assert booking.subtotal_cents == 18000
        assert booking.service_fee_cents == 900
        assert booking.total_price_cents == 18900

    def test_repeated_extensions_do_not_drift(self, db, booked_storage):
        service = StorageExtensionService(db)
        for days in (1, 2, 3):
            service.extend_storage_booking(booked_storage.id, END_DATE + timedelta(days=days))

        booking = db.get(KitchenBooking, booked_storage.kitchen_booking_id)
        db.refresh(booking)
        assert booking.subtotal_cents == 10000 + 2000 + 3 * 2000
        assert booking.service_fee_cents == 600 + 3 * 100
        assert booking.total_price_cents == booking.subtotal_cents + booking.service_fee_cents

    def test_fee_rate_change_does_not_reprice_paid_portion(self, db, booked_storage):
        ConfigService(db).set_service_fee_rate("0.10")

        result = StorageExtensionService(db).extend_storage_booking(booked_storage.id, END_DATE + timedelta(days=1))

        assert result.extension.extension_service_fee_cents == 200
        assert result.storage_booking.service_fee_cents == 100 + 200
        booking = db.get(KitchenBooking, booked_storage.kitchen_booking_id)
        db.refresh(booking)
        assert booking.subtotal_cents == 12000 + 2000
        assert booking.service_fee_cents == 600 + 200
        assert booking.total_price_cents == 12600 + 2200

    def test_not_after_current_end_rejected(self, db, booked_storage):
        before = _snapshot(booked_storage)

        with pytest.raises(ValidationException) as exc_info:
            StorageExtensionService(db).extend_storage_booking(booked_storage.id, END_DATE)

        assert exc_info.value.code == "INVALID_EXTENSION"
        db.refresh(booked_storage)
        assert _snapshot(booked_storage) == before

    def test_below_minimum_duration_leaves_booking_unchanged(self, db, storage_listing):
        storage = add_storage_booking(
            db, storage_listing.id, BOOKING_DATE, END_DATE, minimum_booking_duration=3, total_price_cents=3000
        )
        before = _snapshot(storage)

        with pytest.raises(ValidationException) as exc_info:
            StorageExtensionService(db).extend_storage_booking(storage.id, END_DATE + timedelta(days=2))

        assert exc_info.value.code == "BELOW_MINIMUM_DURATION"
        db.expire_all()
        assert _snapshot(db.get(StorageBooking, storage.id)) == before

    def test_unknown_storage_booking(self, db):
        with pytest.raises(NotFoundException) as exc_info:
            StorageExtensionService(db).extend_storage_booking("missing", END_DATE)
        assert exc_info.value.code == "STORAGE_BOOKING_NOT_FOUND"

    def test_cancelled_storage_cannot_be_extended(self, db, storage_listing):
        storage = add_storage_booking(db, storage_listing.id, BOOKING_DATE, END_DATE, status="cancelled")
        with pytest.raises(BusinessRuleException):
            StorageExtensionService(db).extend_storage_booking(storage.id, END_DATE + timedelta(days=1))

    def test_mirror_failure_keeps_extension(self, db, booked_storage):
        service = StorageExtensionService(db)

        with patch.object(
            service.booking_repository, "get_by_id", side_effect=RepositoryException("mirror unavailable")
        ):
            result = service.extend_storage_booking(booked_storage.id, END_DATE + timedelta(days=2))

        assert result.summary_synced is False
        db.expire_all()
        assert db.get(StorageBooking, booked_storage.id).end_date == END_DATE + timedelta(days=2)
        booking = db.get(KitchenBooking, booked_storage.kitchen_booking_id)
        assert booking.storage_items[0]["end_date"] == END_DATE.isoformat()
        assert booking.total_price_cents == 12600

    def test_standalone_storage_has_nothing_to_mirror(self, db, storage_listing):
        storage = add_storage_booking(db, storage_listing.id, BOOKING_DATE, END_DATE)
        result = StorageExtensionService(db).extend_storage_booking(storage.id, END_DATE + timedelta(days=1))
        assert result.summary_synced is False
        assert result.storage_booking.total_price_cents == 2000

    def test_quote_writes_nothing(self, db, booked_storage):
        before = _snapshot(booked_storage)
        quote = StorageExtensionService(db).quote_storage_extension(
            booked_storage.id, (END_DATE + timedelta(days=2)).isoformat()
        )
        assert quote.extension_total_price_cents == 4200
        assert quote.to_dict()["new_end_date"] == (END_DATE + timedelta(days=2)).isoformat()
        db.refresh(booked_storage)
        assert _snapshot(booked_storage) == before


class TestPendingExtensions:
    def test_complete_applies_quoted_amounts(self, db, booked_storage):
        service = StorageExtensionService(db)
        pending = service.create_pending_storage_extension(
            booked_storage.id, END_DATE + timedelta(days=2), "cs_test_1"
        )

        assert pending.status == "pending"
        assert pending.extension_total_price_cents == 4200
        db.refresh(booked_storage)
        assert booked_storage.end_date == END_DATE

        completed = service.complete_pending_storage_extension("cs_test_1", payment_intent_id="pi_1")

        assert completed.status == "completed"
        assert completed.payment_intent_id == "pi_1"
        assert completed.completed_at is not None
        db.refresh(booked_storage)
        assert booked_storage.end_date == END_DATE + timedelta(days=2)
        assert booked_storage.total_price_cents == 6000

    def test_complete_mirrors_quoted_amounts_after_rate_change(self, db, booked_storage):
        service = StorageExtensionService(db)
        service.create_pending_storage_extension(booked_storage.id, END_DATE + timedelta(days=2), "cs_test_rate")
        ConfigService(db).set_service_fee_rate("0.10")

        service.complete_pending_storage_extension("cs_test_rate")

        booking = db.get(KitchenBooking, booked_storage.kitchen_booking_id)
        db.refresh(booking)
        assert booking.subtotal_cents == 12000 + 4000
        assert booking.service_fee_cents == 600 + 200
        assert booking.total_price_cents == 12600 + 4200

    def test_complete_is_idempotent(self, db, booked_storage):
        service = StorageExtensionService(db)
        service.create_pending_storage_extension(booked_storage.id, END_DATE + timedelta(days=1), "cs_test_2")

        service.complete_pending_storage_extension("cs_test_2")
        service.complete_pending_storage_extension("cs_test_2")

        db.refresh(booked_storage)
        assert booked_storage.total_price_cents == 4000

    def test_duplicate_session_rejected(self, db, booked_storage):
        service = StorageExtensionService(db)
        service.create_pending_storage_extension(booked_storage.id, END_DATE + timedelta(days=1), "cs_dup")

        with pytest.raises(ConflictException) as exc_info:
            service.create_pending_storage_extension(booked_storage.id, END_DATE + timedelta(days=2), "cs_dup")
        assert exc_info.value.code == "DUPLICATE_PAYMENT_SESSION"

    def test_failed_extension_cannot_complete(self, db, booked_storage):
        service = StorageExtensionService(db)
        service.create_pending_storage_extension(booked_storage.id, END_DATE + timedelta(days=1), "cs_fail")

        assert service.fail_pending_storage_extension("cs_fail").status == "failed"
        with pytest.raises(BusinessRuleException):
            service.complete_pending_storage_extension("cs_fail")
        db.refresh(booked_storage)
        assert booked_storage.end_date == END_DATE

    def test_invalid_pending_extension_rejected_up_front(self, db, booked_storage):
        with pytest.raises(ValidationException):
            StorageExtensionService(db).create_pending_storage_extension(booked_storage.id, END_DATE, "cs_bad")

    def test_unknown_session(self, db):
        with pytest.raises(NotFoundException) as exc_info:
            StorageExtensionService(db).complete_pending_storage_extension("cs_missing")
        assert exc_info.value.code == "PENDING_EXTENSION_NOT_FOUND"
