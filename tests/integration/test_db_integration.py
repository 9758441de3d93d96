"""
Integration tests for database operations.

These tests require a migrated PostgreSQL database and are skipped otherwise.
Every test runs in a unit of work that is never committed, so nothing is left
behind.
Run with: pytest tests/integration/test_db_integration.py -v
"""

import os
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from dotenv import load_dotenv

from homster.models.account import Address, ApprovalStatus, User, Vendor
from homster.models.alert import AlertStatus, BookingAlert
from homster.models.booking import Booking, BookingStatus
from homster.services.pricing import generate_booking_number

# Load environment variables from .env
load_dotenv()

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        not (os.getenv("DATABASE_URL") or os.getenv("INSTANCE_CONNECTION_NAME")),
        reason="Database not configured (DATABASE_URL or INSTANCE_CONNECTION_NAME not set)",
    ),
]


def _phone() -> str:
    return "9" + str(uuid4().int)[:9]


@pytest.fixture(scope="module")
def db_connection():
    """Initialize database connection for tests."""
    from homster.db import DatabaseConnection

    DatabaseConnection.initialize()
    yield DatabaseConnection
    DatabaseConnection.close()


@pytest.fixture
def uow(db_connection):
    from homster.db import UnitOfWork

    with UnitOfWork() as unit:
        yield unit
        unit.rollback()


@pytest.fixture
def user(uow) -> User:
    return uow.users.register(
        User(id=str(uuid4()), name="Integration User", phone=_phone(), wallet_balance=200),
        password_hash="not-a-real-hash",
    )


@pytest.fixture
def vendors(uow) -> list[Vendor]:
    return [
        uow.vendors.register(
            Vendor(
                id=str(uuid4()),
                name=f"Integration Vendor {i}",
                phone=_phone(),
                approval_status=ApprovalStatus.APPROVED,
                lat=22.72,
                lng=75.86,
            ),
            password_hash="not-a-real-hash",
        )
        for i in range(2)
    ]


@pytest.fixture
def booking(uow, user) -> Booking:
    return uow.bookings.create(
        Booking(
            id=str(uuid4()),
            booking_number=generate_booking_number(),
            user_id=user.id,
            service_name="AC Service",
            base_price=500,
            tax=90,
            final_amount=590,
            address=Address(
                address_line1="12 MG Road",
                city="Indore",
                state="MP",
                pincode="452001",
                lat=22.7196,
                lng=75.8577,
            ),
            scheduled_date=datetime.now(timezone.utc) + timedelta(days=1),
            scheduled_time="10:00 AM",
            status=BookingStatus.SEARCHING,
        )
    )


def test_wallet_never_goes_negative(uow, user):
    assert float(uow.users.adjust_wallet(user.id, -150)) == 50
    assert uow.users.adjust_wallet(user.id, -100) is None
    assert float(uow.users.get_by_id(user.id).wallet_balance) == 50


def test_only_first_vendor_claims(uow, booking, vendors):
    first, second = vendors

    claimed = uow.bookings.claim_for_vendor(booking.id, first.id)
    assert claimed.vendor_id == first.id
    assert claimed.status == BookingStatus.PENDING

    assert uow.bookings.claim_for_vendor(booking.id, second.id) is None


def test_alert_lifecycle(uow, booking, vendors):
    now = datetime.now(timezone.utc)
    for vendor in vendors:
        uow.booking_alerts.create(
            BookingAlert(
                id=str(uuid4()),
                booking_id=booking.id,
                vendor_id=vendor.id,
                wave=1,
                distance_km=0.5,
                offered_at=now,
                expires_at=now + timedelta(seconds=60),
            )
        )

    assert uow.booking_alerts.count_open(booking.id, 1) == 2
    assert uow.booking_alerts.alerted_vendor_ids(booking.id) == {v.id for v in vendors}

    accepted = uow.booking_alerts.respond(booking.id, vendors[0].id, AlertStatus.ACCEPTED)
    assert accepted.status == AlertStatus.ACCEPTED

    withdrawn = uow.booking_alerts.withdraw_others(booking.id, vendors[0].id)
    assert withdrawn == [vendors[1].id]
    assert uow.booking_alerts.count_open(booking.id, 1) == 0


def test_cash_ledger_and_block(uow, vendors):
    vendor = vendors[0]

    updated = uow.vendors.record_cash_collection(vendor.id, 590, 531)
    assert updated.wallet.dues == 590
    assert updated.wallet.earnings == 531

    assert uow.vendors.block(vendor.id, "Cash limit exceeded") is True
    assert uow.vendors.block(vendor.id, "Cash limit exceeded") is False
    assert vendor.id not in [v.id for v in uow.vendors.list_dispatchable()]


def test_only_one_dispatcher_moves_a_wave(uow, booking):
    moved = uow.bookings.claim_wave(booking.id, booking.current_wave)
    assert moved.current_wave == booking.current_wave + 1

    assert uow.bookings.claim_wave(booking.id, booking.current_wave) is None
