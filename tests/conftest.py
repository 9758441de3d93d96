"""
pytest configuration and fixtures.

Loads environment variables from .env file for all tests and provides
accounts, tokens and bookings shared by the API tests.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from uuid import uuid4

import pytest
from dotenv import load_dotenv

from homster.models.account import Address, ApprovalStatus, Role, Vendor, Worker
from homster.models.alert import BookingAlert
from homster.models.booking import Booking, BookingStatus, PaymentMethod
from homster.utils.security import create_token

TEST_USER_ID = "d5314b80-4aac-4bf2-940c-0a0ceda5bff4"
TEST_VENDOR_ID = "4b1f0c3e-8d2a-4a57-9a55-54f0b2d7f0a1"
TEST_WORKER_ID = "7c9e6679-7425-40de-944b-e07fc1f90ae7"
TEST_ADMIN_ID = "a1b2c3d4-0000-4000-8000-000000000001"


def pytest_configure(config):
    """Load .env file before running tests"""
    # Find the project root (where .env is located)
    project_root = Path(__file__).parent.parent
    env_file = project_root / ".env"

    if env_file.exists():
        print(f"Loading environment from {env_file}")
        load_dotenv(env_file)
    else:
        print(f"Warning: .env file not found at {env_file}")


def auth_headers(role: Role, account_id: str) -> dict:
    return {"Authorization": f"Bearer {create_token(account_id, role)}"}


@pytest.fixture
def user_headers() -> dict:
    return auth_headers(Role.USER, TEST_USER_ID)


@pytest.fixture
def vendor_headers() -> dict:
    return auth_headers(Role.VENDOR, TEST_VENDOR_ID)


@pytest.fixture
def worker_headers() -> dict:
    return auth_headers(Role.WORKER, TEST_WORKER_ID)


@pytest.fixture
def admin_headers() -> dict:
    return auth_headers(Role.ADMIN, TEST_ADMIN_ID)


@pytest.fixture
def sample_address() -> Address:
    return Address(
        address_line1="12 MG Road",
        city="Indore",
        state="MP",
        pincode="452001",
        lat=22.7196,
        lng=75.8577,
    )


@pytest.fixture
def sample_booking(sample_address: Address) -> Booking:
    """An unclaimed booking with alerts out."""
    return Booking(
        id=str(uuid4()),
        booking_number="BK12345678042",
        user_id=TEST_USER_ID,
        service_name="AC Service",
        service_category="Appliance Repair",
        base_price=500,
        tax=90,
        final_amount=590,
        address=sample_address,
        scheduled_date=datetime(2026, 11, 2, tzinfo=timezone.utc),
        scheduled_time="10:00 AM",
        status=BookingStatus.SEARCHING,
        current_wave=1,
    )


@pytest.fixture
def held_booking(sample_booking: Booking) -> Booking:
    """The sample booking after the test vendor claimed it."""
    return sample_booking.model_copy(
        update={
            "vendor_id": TEST_VENDOR_ID,
            "status": BookingStatus.PENDING,
            "accepted_at": datetime.now(timezone.utc),
        }
    )


@pytest.fixture
def cash_job(held_booking: Booking) -> Booking:
    """A cash booking in progress with the test worker on site."""
    return held_booking.model_copy(
        update={
            "status": BookingStatus.IN_PROGRESS,
            "payment_method": PaymentMethod.CASH,
            "worker_id": TEST_WORKER_ID,
        }
    )


@pytest.fixture
def sample_vendor() -> Vendor:
    return Vendor(
        id=TEST_VENDOR_ID,
        name="Ravi Sharma",
        business_name="Sharma Home Services",
        phone="9876543210",
        approval_status=ApprovalStatus.APPROVED,
        is_online=True,
        lat=22.72,
        lng=75.86,
    )


@pytest.fixture
def sample_worker() -> Worker:
    return Worker(
        id=TEST_WORKER_ID,
        vendor_id=TEST_VENDOR_ID,
        name="Amit",
        phone="9123456780",
    )


@pytest.fixture
def sample_alert(sample_booking: Booking) -> BookingAlert:
    now = datetime.now(timezone.utc)
    return BookingAlert(
        id=str(uuid4()),
        booking_id=sample_booking.id,
        vendor_id=TEST_VENDOR_ID,
        wave=1,
        distance_km=0.3,
        offered_at=now,
        expires_at=now + timedelta(seconds=60),
    )
