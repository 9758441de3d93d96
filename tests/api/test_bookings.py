"""
Tests for customer booking API endpoints.

These tests verify the booking endpoints work correctly
by mocking the database layer.
"""

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from homster.api.main import app
from homster.models.booking import Booking, BookingStatus, PaymentMethod, PaymentStatus
from homster.utils.hash import compute_hmac_sha256


@pytest.fixture
def client() -> TestClient:
    """Create a test client for the API."""
    return TestClient(app)


@pytest.fixture
def mock_db_initialized():
    """Mock DatabaseConnection.is_initialized to return True."""
    with patch("homster.api.routes.bookings.DatabaseConnection") as mock_db:
        mock_db.is_initialized.return_value = True
        yield mock_db


@pytest.fixture
def mock_uow():
    with patch("homster.api.routes.bookings.UnitOfWork") as mock_uow_class:
        uow = MagicMock()
        mock_uow_class.return_value.__enter__.return_value = uow
        yield uow


BOOKING_PAYLOAD = {
    "service_name": "AC Service",
    "service_category": "Appliance Repair",
    "base_price": 500,
    "address": {
        "address_line1": "12 MG Road",
        "city": "Indore",
        "state": "MP",
        "pincode": "452001",
        "lat": 22.7196,
        "lng": 75.8577,
    },
    "scheduled_date": "2026-11-02T00:00:00Z",
    "scheduled_time": "10:00 AM",
}


class TestAuthentication:
    def test_missing_token_returns_401(self, client: TestClient):
        response = client.get("/api/v1/bookings")

        assert response.status_code == 401
        assert "Authorization header" in response.json()["detail"]

    def test_invalid_token_returns_401(self, client: TestClient):
        response = client.get(
            "/api/v1/bookings", headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid or expired token"

    def test_vendor_token_is_rejected(self, client: TestClient, vendor_headers):
        response = client.get("/api/v1/bookings", headers=vendor_headers)

        assert response.status_code == 403
        assert response.json()["detail"] == "Access denied. User role required."


class TestCreateBooking:
    """Tests for POST /api/v1/bookings endpoint."""

    def test_create_booking_quotes_and_dispatches(
        self,
        client: TestClient,
        user_headers,
        sample_booking: Booking,
        mock_db_initialized,
        mock_uow,
    ):
        mock_uow.bookings.create.side_effect = lambda booking: booking
        mock_uow.bookings.get_by_id.return_value = sample_booking

        with patch("homster.api.routes.bookings.start_dispatch") as mock_dispatch:
            response = client.post(
                "/api/v1/bookings", json=BOOKING_PAYLOAD, headers=user_headers
            )

        assert response.status_code == 201
        assert response.json()["booking_number"] == "BK12345678042"

        created = mock_uow.bookings.create.call_args[0][0]
        assert created.base_price == 500
        assert created.tax == 90
        assert created.final_amount == 590
        assert created.booking_number.startswith("BK")
        assert created.status == BookingStatus.SEARCHING
        mock_dispatch.assert_called_once()
        mock_uow.commit.assert_called_once()

    def test_create_booking_requires_price(
        self, client: TestClient, user_headers, mock_db_initialized
    ):
        payload = {**BOOKING_PAYLOAD, "base_price": 0}

        response = client.post("/api/v1/bookings", json=payload, headers=user_headers)

        assert response.status_code == 422

    def test_create_booking_db_unavailable(self, client: TestClient, user_headers):
        with patch("homster.api.routes.bookings.DatabaseConnection") as mock_db:
            mock_db.is_initialized.return_value = False

            response = client.post(
                "/api/v1/bookings", json=BOOKING_PAYLOAD, headers=user_headers
            )

        assert response.status_code == 503


class TestListBookings:
    """Tests for GET /api/v1/bookings endpoint."""

    def test_list_bookings_success(
        self,
        client: TestClient,
        user_headers,
        sample_booking: Booking,
        mock_db_initialized,
        mock_uow,
    ):
        mock_uow.bookings.list_for_user.return_value = [sample_booking]
        mock_uow.bookings.count_for_user.return_value = 1

        response = client.get("/api/v1/bookings", headers=user_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["limit"] == 20
        assert data["offset"] == 0
        assert data["bookings"][0]["service_name"] == "AC Service"
        assert "payment_otp" not in data["bookings"][0]

    def test_list_bookings_invalid_status(
        self, client: TestClient, user_headers, mock_db_initialized
    ):
        response = client.get("/api/v1/bookings?status=bogus", headers=user_headers)

        assert response.status_code == 400
        assert "Invalid status: bogus" in response.json()["detail"]


class TestGetBooking:
    def test_get_booking_not_found(
        self, client: TestClient, user_headers, mock_db_initialized, mock_uow
    ):
        mock_uow.bookings.get_by_id_for_user.return_value = None

        response = client.get("/api/v1/bookings/missing-id", headers=user_headers)

        assert response.status_code == 404
        assert "Booking not found" in response.json()["detail"]


class TestCancelBooking:
    """Tests for POST /api/v1/bookings/{id}/cancel endpoint."""

    def test_cancel_searching_booking(
        self,
        client: TestClient,
        user_headers,
        sample_booking: Booking,
        mock_db_initialized,
        mock_uow,
    ):
        cancelled = sample_booking.model_copy(update={"status": BookingStatus.CANCELLED})
        mock_uow.bookings.get_by_id_for_user.return_value = sample_booking
        mock_uow.bookings.transition.return_value = cancelled
        mock_uow.bookings.get_by_id.return_value = cancelled
        mock_uow.booking_alerts.withdraw_others.return_value = ["vendor-a", "vendor-b"]

        response = client.post(
            f"/api/v1/bookings/{sample_booking.id}/cancel",
            json={"reason": "Changed my mind"},
            headers=user_headers,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

        kwargs = mock_uow.bookings.transition.call_args.kwargs
        assert kwargs["cancelled_by"] == "user"
        assert kwargs["cancellation_reason"] == "Changed my mind"
        mock_uow.booking_alerts.withdraw_others.assert_called_once_with(
            sample_booking.id, None
        )
        mock_uow.commit.assert_called_once()

    def test_cancel_completed_booking_rejected(
        self,
        client: TestClient,
        user_headers,
        sample_booking: Booking,
        mock_db_initialized,
        mock_uow,
    ):
        mock_uow.bookings.get_by_id_for_user.return_value = sample_booking.model_copy(
            update={"status": BookingStatus.COMPLETED}
        )

        response = client.post(
            f"/api/v1/bookings/{sample_booking.id}/cancel", headers=user_headers
        )

        assert response.status_code == 400
        mock_uow.bookings.transition.assert_not_called()

    def test_cancel_wallet_paid_booking_refunds(
        self,
        client: TestClient,
        user_headers,
        held_booking: Booking,
        mock_db_initialized,
        mock_uow,
    ):
        paid = held_booking.model_copy(
            update={
                "payment_status": PaymentStatus.SUCCESS,
                "payment_method": PaymentMethod.WALLET,
            }
        )
        mock_uow.bookings.get_by_id_for_user.return_value = paid
        mock_uow.bookings.transition.return_value = paid
        mock_uow.bookings.get_by_id.return_value = paid
        mock_uow.users.adjust_wallet.return_value = 1590.0
        mock_uow.booking_alerts.withdraw_others.return_value = []

        response = client.post(
            f"/api/v1/bookings/{paid.id}/cancel", headers=user_headers
        )

        assert response.status_code == 200
        mock_uow.users.adjust_wallet.assert_called_once_with(paid.user_id, 590)


class TestRescheduleBooking:
    def test_reschedule_confirmed_goes_back_to_pending(
        self,
        client: TestClient,
        user_headers,
        held_booking: Booking,
        mock_db_initialized,
        mock_uow,
    ):
        confirmed = held_booking.model_copy(update={"status": BookingStatus.CONFIRMED})
        mock_uow.bookings.get_by_id_for_user.return_value = confirmed
        mock_uow.bookings.update_fields.return_value = held_booking

        response = client.put(
            f"/api/v1/bookings/{confirmed.id}/reschedule",
            json={
                "scheduled_date": "2026-11-05T00:00:00Z",
                "scheduled_time": "4:00 PM",
                "time_slot": {"start": "16:00", "end": "18:00"},
            },
            headers=user_headers,
        )

        assert response.status_code == 200
        kwargs = mock_uow.bookings.update_fields.call_args.kwargs
        assert kwargs["status"] == BookingStatus.PENDING
        assert kwargs["scheduled_time"] == "4:00 PM"
        assert kwargs["time_slot"] == {"start": "16:00", "end": "18:00"}


class TestReviewBooking:
    def test_review_requires_completed(
        self,
        client: TestClient,
        user_headers,
        held_booking: Booking,
        mock_db_initialized,
        mock_uow,
    ):
        mock_uow.bookings.get_by_id_for_user.return_value = held_booking

        response = client.post(
            f"/api/v1/bookings/{held_booking.id}/review",
            json={"rating": 5},
            headers=user_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Only completed bookings can be reviewed"

    def test_review_only_once(
        self,
        client: TestClient,
        user_headers,
        held_booking: Booking,
        mock_db_initialized,
        mock_uow,
    ):
        mock_uow.bookings.get_by_id_for_user.return_value = held_booking.model_copy(
            update={"status": BookingStatus.COMPLETED, "rating": 4}
        )

        response = client.post(
            f"/api/v1/bookings/{held_booking.id}/review",
            json={"rating": 5},
            headers=user_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Booking has already been reviewed"
        mock_uow.bookings.update_fields.assert_not_called()

    def test_review_rating_out_of_range(
        self, client: TestClient, user_headers, mock_db_initialized
    ):
        response = client.post(
            "/api/v1/bookings/any-id/review", json={"rating": 6}, headers=user_headers
        )

        assert response.status_code == 422


class TestPayWithWallet:
    """Tests for POST /api/v1/bookings/{id}/pay/wallet endpoint."""

    def test_pay_before_vendor_accepts(
        self,
        client: TestClient,
        user_headers,
        sample_booking: Booking,
        mock_db_initialized,
        mock_uow,
    ):
        mock_uow.bookings.get_by_id_for_user.return_value = sample_booking

        response = client.post(
            f"/api/v1/bookings/{sample_booking.id}/pay/wallet", headers=user_headers
        )

        assert response.status_code == 400
        assert "not been accepted" in response.json()["detail"]

    def test_insufficient_balance(
        self,
        client: TestClient,
        user_headers,
        held_booking: Booking,
        mock_db_initialized,
        mock_uow,
    ):
        mock_uow.bookings.get_by_id_for_user.return_value = held_booking
        mock_uow.users.adjust_wallet.return_value = None

        response = client.post(
            f"/api/v1/bookings/{held_booking.id}/pay/wallet", headers=user_headers
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Insufficient wallet balance"
        mock_uow.commit.assert_not_called()

    def test_pay_success(
        self,
        client: TestClient,
        user_headers,
        held_booking: Booking,
        sample_vendor,
        mock_db_initialized,
        mock_uow,
    ):
        paid = held_booking.model_copy(
            update={
                "payment_status": PaymentStatus.SUCCESS,
                "payment_method": PaymentMethod.WALLET,
                "status": BookingStatus.CONFIRMED,
            }
        )
        mock_uow.bookings.get_by_id_for_user.return_value = held_booking
        mock_uow.users.adjust_wallet.return_value = 410.0
        mock_uow.transactions.create.side_effect = lambda txn: txn
        mock_uow.vendors.credit_earnings.return_value = sample_vendor
        mock_uow.bookings.update_fields.return_value = paid

        response = client.post(
            f"/api/v1/bookings/{held_booking.id}/pay/wallet", headers=user_headers
        )

        assert response.status_code == 200
        assert response.json()["payment_status"] == "success"
        mock_uow.users.adjust_wallet.assert_called_once_with(held_booking.user_id, -590)
        mock_uow.vendors.credit_earnings.assert_called_once_with(
            held_booking.vendor_id, 531.0
        )
        mock_uow.commit.assert_called_once()


class TestVerifyPayment:
    def test_invalid_signature(
        self, client: TestClient, user_headers, mock_db_initialized
    ):
        with patch("homster.api.routes.bookings.config") as mock_config:
            mock_config.RAZORPAY_KEY_SECRET = "secret"

            response = client.post(
                "/api/v1/bookings/any-id/pay/verify",
                json={
                    "razorpay_order_id": "order_1",
                    "razorpay_payment_id": "pay_1",
                    "razorpay_signature": "bad",
                },
                headers=user_headers,
            )

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid payment signature"

    def test_valid_signature_settles_booking(
        self,
        client: TestClient,
        user_headers,
        held_booking: Booking,
        sample_vendor,
        mock_db_initialized,
        mock_uow,
    ):
        paid = held_booking.model_copy(update={"payment_status": PaymentStatus.SUCCESS})
        mock_uow.bookings.get_by_id_for_user.return_value = held_booking
        mock_uow.bookings.update_fields.return_value = paid
        mock_uow.vendors.credit_earnings.return_value = sample_vendor

        with patch("homster.api.routes.bookings.config") as mock_config:
            mock_config.RAZORPAY_KEY_SECRET = "secret"

            response = client.post(
                f"/api/v1/bookings/{held_booking.id}/pay/verify",
                json={
                    "razorpay_order_id": "order_1",
                    "razorpay_payment_id": "pay_1",
                    "razorpay_signature": compute_hmac_sha256("secret", "order_1|pay_1"),
                },
                headers=user_headers,
            )

        assert response.status_code == 200
        assert response.json()["payment_status"] == "success"
        kwargs = mock_uow.bookings.update_fields.call_args.kwargs
        assert kwargs["payment_id"] == "pay_1"
        assert kwargs["payment_method"] == PaymentMethod.RAZORPAY

    def test_pay_before_vendor_accepts(
        self,
        client: TestClient,
        user_headers,
        sample_booking: Booking,
        mock_db_initialized,
        mock_uow,
    ):
        mock_uow.bookings.get_by_id_for_user.return_value = sample_booking

        with patch("homster.api.routes.bookings.config") as mock_config:
            mock_config.RAZORPAY_KEY_SECRET = "secret"

            response = client.post(
                f"/api/v1/bookings/{sample_booking.id}/pay/verify",
                json={
                    "razorpay_order_id": "order_1",
                    "razorpay_payment_id": "pay_1",
                    "razorpay_signature": compute_hmac_sha256("secret", "order_1|pay_1"),
                },
                headers=user_headers,
            )

        assert response.status_code == 400
        assert "not been accepted" in response.json()["detail"]
        mock_uow.bookings.update_fields.assert_not_called()
        mock_uow.transactions.create.assert_not_called()
        mock_uow.commit.assert_not_called()
