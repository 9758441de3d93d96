"""
Tests for on-site cash collection endpoints.

Collection runs through the real payment service with a mocked unit of
work, so the ledger arithmetic is exercised end to end.
"""

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from homster.api.main import app
from homster.models.account import Role, VendorWallet
from homster.models.booking import BookingStatus, PaymentMethod, PaymentStatus
from homster.models.wallet import TransactionType
from tests.conftest import TEST_VENDOR_ID, TEST_WORKER_ID


@pytest.fixture
def client() -> TestClient:
    """Create a test client for the API."""
    return TestClient(app)


@pytest.fixture
def mock_db_initialized():
    """Mock DatabaseConnection.is_initialized to return True."""
    with patch("homster.api.routes.cash.DatabaseConnection") as mock_db:
        mock_db.is_initialized.return_value = True
        yield mock_db


@pytest.fixture
def mock_uow():
    with patch("homster.api.routes.cash.UnitOfWork") as mock_uow_class:
        uow = MagicMock()
        mock_uow_class.return_value.__enter__.return_value = uow
        yield uow


@pytest.fixture
def otp_issued(cash_job):
    return cash_job.model_copy(update={"payment_otp": "4821"})


class TestInitiateCash:
    """Tests for POST /api/v1/bookings/cash/{id}/initiate endpoint."""

    def test_initiate_does_not_reveal_otp(
        self, client: TestClient, vendor_headers, cash_job, mock_db_initialized, mock_uow
    ):
        mock_uow.bookings.get_by_id.return_value = cash_job
        mock_uow.bookings.update_fields.side_effect = lambda booking_id, **fields: (
            cash_job.model_copy(update=fields)
        )

        response = client.post(
            f"/api/v1/bookings/cash/{cash_job.id}/initiate", headers=vendor_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "OTP sent to customer"
        assert data["amount"] == 590
        assert "otp" not in data
        assert "payment_otp" not in data

        otp = mock_uow.bookings.update_fields.call_args.kwargs["payment_otp"]
        assert len(otp) == 4 and otp.isdigit()
        # Only the customer receives the OTP
        notification = mock_uow.notifications.create.call_args[0][0]
        assert notification.recipient_role == Role.USER
        assert notification.data["otp"] == otp

    def test_initiate_with_revised_bill(
        self, client: TestClient, worker_headers, cash_job, mock_db_initialized, mock_uow
    ):
        mock_uow.bookings.get_by_id.return_value = cash_job
        mock_uow.bookings.update_fields.side_effect = lambda booking_id, **fields: (
            cash_job.model_copy(update=fields)
        )

        response = client.post(
            f"/api/v1/bookings/cash/{cash_job.id}/initiate",
            json={"total_amount": 750},
            headers=worker_headers,
        )

        assert response.status_code == 200
        assert response.json()["amount"] == 750

    def test_initiate_online_booking(
        self, client: TestClient, vendor_headers, cash_job, mock_db_initialized, mock_uow
    ):
        mock_uow.bookings.get_by_id.return_value = cash_job.model_copy(
            update={"payment_method": PaymentMethod.RAZORPAY}
        )

        response = client.post(
            f"/api/v1/bookings/cash/{cash_job.id}/initiate", headers=vendor_headers
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Booking is not a cash booking"

    def test_initiate_paid_booking(
        self, client: TestClient, vendor_headers, cash_job, mock_db_initialized, mock_uow
    ):
        mock_uow.bookings.get_by_id.return_value = cash_job.model_copy(
            update={"payment_status": PaymentStatus.COLLECTED_BY_VENDOR}
        )

        response = client.post(
            f"/api/v1/bookings/cash/{cash_job.id}/initiate", headers=vendor_headers
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Booking is already paid"

    def test_other_vendor_cannot_collect(
        self, client: TestClient, vendor_headers, cash_job, mock_db_initialized, mock_uow
    ):
        mock_uow.bookings.get_by_id.return_value = cash_job.model_copy(
            update={"vendor_id": "another-vendor"}
        )

        response = client.post(
            f"/api/v1/bookings/cash/{cash_job.id}/initiate", headers=vendor_headers
        )

        assert response.status_code == 404

    def test_user_cannot_collect(self, client: TestClient, user_headers, cash_job):
        response = client.post(
            f"/api/v1/bookings/cash/{cash_job.id}/initiate", headers=user_headers
        )

        assert response.status_code == 403


class TestConfirmCash:
    """Tests for POST /api/v1/bookings/cash/{id}/confirm endpoint."""

    def test_confirm_records_dues_and_earnings(
        self,
        client: TestClient,
        worker_headers,
        otp_issued,
        sample_vendor,
        mock_db_initialized,
        mock_uow,
    ):
        mock_uow.bookings.get_by_id.return_value = otp_issued
        mock_uow.bookings.update_fields.side_effect = lambda booking_id, *where, **fields: (
            otp_issued.model_copy(update=fields)
        )
        mock_uow.vendors.record_cash_collection.return_value = sample_vendor.model_copy(
            update={"wallet": VendorWallet(dues=590, earnings=531, total_cash_collected=590)}
        )

        response = client.post(
            f"/api/v1/bookings/cash/{otp_issued.id}/confirm",
            json={"otp": "4821"},
            headers=worker_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "completed"
        assert data["payment_status"] == "collected_by_vendor"
        assert data["cash_collected"] is True
        assert data["cash_collector_id"] == TEST_WORKER_ID
        assert data["admin_commission"] == 59
        assert data["vendor_earnings"] == 531

        mock_uow.vendors.record_cash_collection.assert_called_once_with(
            TEST_VENDOR_ID, 590, 531
        )
        entry_types = [c[0][0].type for c in mock_uow.transactions.create.call_args_list]
        assert entry_types == [TransactionType.CASH_COLLECTED, TransactionType.EARNINGS_CREDIT]
        mock_uow.vendors.block.assert_not_called()
        mock_uow.commit.assert_called_once()

    def test_confirm_over_cash_limit_blocks_vendor(
        self,
        client: TestClient,
        vendor_headers,
        otp_issued,
        sample_vendor,
        mock_db_initialized,
        mock_uow,
    ):
        mock_uow.bookings.get_by_id.return_value = otp_issued
        mock_uow.bookings.update_fields.side_effect = lambda booking_id, *where, **fields: (
            otp_issued.model_copy(update=fields)
        )
        mock_uow.vendors.record_cash_collection.return_value = sample_vendor.model_copy(
            update={"wallet": VendorWallet(dues=12000, earnings=1000, cash_limit=10000)}
        )
        mock_uow.vendors.block.return_value = True

        response = client.post(
            f"/api/v1/bookings/cash/{otp_issued.id}/confirm",
            json={"otp": "4821"},
            headers=vendor_headers,
        )

        assert response.status_code == 200
        mock_uow.vendors.block.assert_called_once()
        assert "Cash limit exceeded" in mock_uow.vendors.block.call_args[0][1]

    def test_wrong_otp(
        self, client: TestClient, vendor_headers, otp_issued, mock_db_initialized, mock_uow
    ):
        mock_uow.bookings.get_by_id.return_value = otp_issued

        response = client.post(
            f"/api/v1/bookings/cash/{otp_issued.id}/confirm",
            json={"otp": "0000"},
            headers=vendor_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid OTP"
        mock_uow.bookings.update_fields.assert_not_called()

    def test_confirm_before_initiate(
        self, client: TestClient, vendor_headers, cash_job, mock_db_initialized, mock_uow
    ):
        mock_uow.bookings.get_by_id.return_value = cash_job

        response = client.post(
            f"/api/v1/bookings/cash/{cash_job.id}/confirm",
            json={"otp": "4821"},
            headers=vendor_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Cash collection has not been started"

    def test_confirm_race_with_other_collector(
        self, client: TestClient, vendor_headers, otp_issued, mock_db_initialized, mock_uow
    ):
        mock_uow.bookings.get_by_id.return_value = otp_issued
        mock_uow.bookings.update_fields.return_value = None

        response = client.post(
            f"/api/v1/bookings/cash/{otp_issued.id}/confirm",
            json={"otp": "4821"},
            headers=vendor_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Booking is already paid"
        mock_uow.commit.assert_not_called()

    def test_status_outside_job_is_kept(
        self,
        client: TestClient,
        vendor_headers,
        otp_issued,
        sample_vendor,
        mock_db_initialized,
        mock_uow,
    ):
        confirmed = otp_issued.model_copy(update={"status": BookingStatus.CONFIRMED})
        mock_uow.bookings.get_by_id.return_value = confirmed
        mock_uow.bookings.update_fields.side_effect = lambda booking_id, *where, **fields: (
            confirmed.model_copy(update=fields)
        )
        mock_uow.vendors.record_cash_collection.return_value = sample_vendor

        response = client.post(
            f"/api/v1/bookings/cash/{confirmed.id}/confirm",
            json={"otp": "4821"},
            headers=vendor_headers,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "confirmed"
