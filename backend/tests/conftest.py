import os

# Must be set before the Firebase client singleton initializes
os.environ["USE_MOCK_FIREBASE"] = "true"

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from nacs_rental.api import deps
from nacs_rental.core.firebase import MockAuth, MockFirestoreClient
from nacs_rental.main import create_app
from nacs_rental.schemas.booking import BookingFormData
from nacs_rental.schemas.pricing import DriveOption
from nacs_rental.schemas.vehicle import VehicleListing
from nacs_rental.services.booking.store import FirestoreBookingStore
from nacs_rental.services.pricing.rule_engine import BookingPricingEngine


@pytest.fixture
def mock_db():
    return MockFirestoreClient()


@pytest.fixture
def store(mock_db):
    return FirestoreBookingStore(mock_db)


@pytest.fixture
def engine():
    return BookingPricingEngine(driver_fee_per_day=Decimal("750"))


@pytest.fixture
def form():
    return BookingFormData(
        destination="Tagaytay",
        pick_up_address="NAIA Terminal 3",
        pick_up_date=date(2025, 3, 1),
        pick_up_time="09:00",
        return_address="NAIA Terminal 3",
        return_date=date(2025, 3, 8),
        return_time="18:00",
        drive_option=DriveOption.SELF_DRIVE,
    )


@pytest.fixture
def sedan():
    return VehicleListing(
        id="group-e-sedan",
        name="Group E - Sedan (5 seater) A/T",
        price_per_day_raw="₱ 2,000",
        is_promotional=True,
        category="Sedan",
        passenger_capacity=5,
        bag_capacity=3,
        transmission="Automatic",
        priority_level=5,
    )


@pytest.fixture
def app(mock_db, monkeypatch):
    monkeypatch.setattr(deps, "get_db", lambda: mock_db)
    return create_app()


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def user_headers():
    return {"Authorization": "Bearer mock-user-token"}


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {MockAuth.ADMIN_TOKEN}"}
