"""Tests for booking, alert and account models."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from homster.models.account import Address, VendorWallet, WorkerStatus
from homster.models.alert import AlertStatus
from homster.models.booking import (
    BookingCreateRequest,
    BookingStatus,
    PaymentMethod,
    PaymentStatus,
    WorkerRespondRequest,
    WorkerResponse,
)
from tests.conftest import TEST_VENDOR_ID


class TestBooking:
    def test_open_until_claimed(self, sample_booking):
        assert sample_booking.is_open()

        claimed = sample_booking.model_copy(update={"vendor_id": TEST_VENDOR_ID})
        assert not claimed.is_open()

    def test_requested_booking_is_open(self, sample_booking):
        requested = sample_booking.model_copy(update={"status": BookingStatus.REQUESTED})

        assert requested.is_open()

    def test_payment_helpers(self):
        assert PaymentStatus.SUCCESS.is_paid
        assert PaymentStatus.COLLECTED_BY_VENDOR.is_paid
        assert not PaymentStatus.PENDING.is_paid
        assert PaymentMethod.PAY_AT_HOME.is_cash
        assert not PaymentMethod.WALLET.is_cash


class TestBookingCreateRequest:
    def _request(self, sample_address, **fields):
        return BookingCreateRequest(
            service_name="AC Service",
            address=sample_address,
            scheduled_date=datetime(2026, 11, 2, tzinfo=timezone.utc),
            scheduled_time="10:00 AM",
            **fields,
        )

    def test_requires_a_price(self, sample_address):
        with pytest.raises(ValidationError, match="Either amount or base_price"):
            self._request(sample_address)

    def test_amount_alone_is_enough(self, sample_address):
        request = self._request(sample_address, amount=590)

        assert request.base_price == 0
        assert request.service_category == "General"


def test_worker_reply_must_decide():
    assert WorkerRespondRequest(response="ACCEPTED").response == WorkerResponse.ACCEPTED

    with pytest.raises(ValidationError):
        WorkerRespondRequest(response="PENDING")


class TestBookingAlert:
    def test_countdown(self, sample_alert):
        now = sample_alert.offered_at + timedelta(seconds=45)

        assert sample_alert.is_open(now)
        assert sample_alert.seconds_remaining(now) == 15

    def test_lapsed_alert(self, sample_alert):
        later = sample_alert.expires_at + timedelta(seconds=1)

        assert not sample_alert.is_open(later)
        assert sample_alert.seconds_remaining(later) == 0

    def test_answered_alert_is_closed(self, sample_alert):
        rejected = sample_alert.model_copy(update={"status": AlertStatus.REJECTED})

        assert rejected.seconds_remaining(sample_alert.offered_at) == 0


class TestAccounts:
    def test_net_owed(self):
        assert VendorWallet(dues=590, earnings=531).net_owed == 59

    @pytest.mark.parametrize(
        "status,assignable",
        [
            (WorkerStatus.ACTIVE, True),
            (WorkerStatus.ONLINE, True),
            (WorkerStatus.OFFLINE, False),
            (WorkerStatus.SUSPENDED, False),
        ],
    )
    def test_worker_assignable(self, status, assignable):
        assert status.is_assignable is assignable

    def test_address_text_skips_blanks(self):
        address = Address(
            address_line1="12 MG Road",
            city="Indore",
            state="MP",
            pincode="452001",
            landmark="Near Rajwada",
        )

        assert address.as_text() == "12 MG Road, Near Rajwada, Indore, MP, 452001"
        assert not address.has_coordinates()
