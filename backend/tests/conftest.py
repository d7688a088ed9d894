# backend/tests/conftest.py
"""
Pytest configuration for the kitchen booking engine.

Every test gets its own SQLite database file so that tests which spawn
threads (concurrency stress tests) can open independent sessions against the
same data.
"""

import os

# Set test configuration BEFORE any kitchen_booking imports
os.environ["is_testing"] = "true"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SERVICE_FEE_RATE"] = "0.05"
os.environ["OVERSTAY_GRACE_PERIOD_DAYS"] = "0"
os.environ["OVERSTAY_MAX_DAYS_TO_CHARGE"] = "7"
os.environ["OVERSTAY_PENALTY_MULTIPLIER"] = "2"

from datetime import time

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.orm import Session, sessionmaker

from kitchen_booking.api.dependencies.database import get_db
from kitchen_booking.core.ulid_helper import generate_ulid
from kitchen_booking.database import Base, build_engine
from kitchen_booking.main import app
import kitchen_booking.models  # noqa: F401  registers all tables
from kitchen_booking.models.access import ChefKitchenApplication, ChefLocationAccess
from kitchen_booking.models.listing import EquipmentListing, StorageListing
from kitchen_booking.models.location import Kitchen, KitchenAvailability, Location
from tests.utils.booking_builders import KITCHEN_HOURLY_RATE_CENTS, WINDOW_CAPACITY


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'kitchen_booking_test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def client(session_factory):
    """TestClient whose requests each get a session on the test database."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ============================================================================
# Seed data
# ============================================================================


@pytest.fixture
def location(db: Session) -> Location:
    location = Location(name="Test Commissary", address="1 Test St")
    db.add(location)
    db.commit()
    return location


@pytest.fixture
def kitchen(db: Session, location: Location) -> Kitchen:
    """Kitchen open 09:00-17:00 every day with two concurrent bookings per slot."""
    kitchen = Kitchen(
        location_id=location.id,
        name="Kitchen A",
        hourly_rate_cents=KITCHEN_HOURLY_RATE_CENTS,
        currency="CAD",
        minimum_booking_hours=1,
    )
    db.add(kitchen)
    db.flush()
    for day in range(7):
        db.add(
            KitchenAvailability(
                kitchen_id=kitchen.id,
                day_of_week=day,
                start_time=time(9, 0),
                end_time=time(17, 0),
                is_available=True,
                max_concurrent_bookings=WINDOW_CAPACITY,
            )
        )
    db.commit()
    return kitchen


@pytest.fixture
def other_kitchen(db: Session, location: Location) -> Kitchen:
    kitchen = Kitchen(location_id=location.id, name="Kitchen B", hourly_rate_cents=4000)
    db.add(kitchen)
    db.commit()
    return kitchen


@pytest.fixture
def storage_listing(db: Session, kitchen: Kitchen) -> StorageListing:
    listing = StorageListing(
        kitchen_id=kitchen.id,
        name="Walk-in cooler shelf",
        storage_type="cold",
        pricing_model="daily",
        base_price_cents=2000,
        minimum_booking_duration=1,
    )
    db.add(listing)
    db.commit()
    return listing


@pytest.fixture
def equipment_listing(db: Session, kitchen: Kitchen) -> EquipmentListing:
    listing = EquipmentListing(
        kitchen_id=kitchen.id,
        equipment_type="Stand mixer",
        availability_type="rental",
        session_rate_cents=1500,
        damage_deposit_cents=10000,
    )
    db.add(listing)
    db.commit()
    return listing


@pytest.fixture
def included_equipment(db: Session, kitchen: Kitchen) -> EquipmentListing:
    listing = EquipmentListing(
        kitchen_id=kitchen.id,
        equipment_type="Range",
        availability_type="included",
        session_rate_cents=0,
    )
    db.add(listing)
    db.commit()
    return listing


@pytest.fixture
def chef_id() -> str:
    return generate_ulid()


@pytest.fixture
def granted_chef(db: Session, location: Location, chef_id: str) -> str:
    """A chef holding a location access grant."""
    db.add(ChefLocationAccess(chef_id=chef_id, location_id=location.id, granted_by="manager"))
    db.commit()
    return chef_id


@pytest.fixture
def make_application(db: Session, location: Location):
    def _make(chef_id: str, status: str = "approved", tier: int = 2) -> ChefKitchenApplication:
        application = ChefKitchenApplication(
            chef_id=chef_id,
            location_id=location.id,
            status=status,
            current_tier=tier,
            reviewed_by="manager",
        )
        db.add(application)
        db.commit()
        return application

    return _make
