"""
Tests for wave-based vendor dispatch.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from homster.models.account import Role, Vendor
from homster.models.booking import BookingStatus
from homster.models.notification import NotificationType
from homster.services.dispatch import (
    NO_VENDORS_REASON,
    advance,
    alert_event,
    booking_location,
    find_candidates,
    open_wave,
    start_dispatch,
    withdraw_alerts,
)
from homster.services.notifications import Outbox

NOW = datetime(2026, 11, 1, 10, 0, tzinfo=timezone.utc)


def _vendor(vendor_id: str, lat: float | None, lng: float | None) -> Vendor:
    return Vendor(id=vendor_id, name=vendor_id, phone="9000000000", lat=lat, lng=lng)


@pytest.fixture
def nearby_vendors() -> list[Vendor]:
    # About 53, 3.3, 0.05 and 1.2 km from the sample address
    return [
        _vendor("v-far", 23.2, 75.86),
        _vendor("v-mid", 22.72, 75.89),
        _vendor("v-near", 22.72, 75.858),
        _vendor("v-close", 22.73, 75.86),
        _vendor("v-nowhere", None, None),
    ]


@pytest.fixture
def mock_uow(nearby_vendors):
    uow = MagicMock()
    uow.vendors.list_dispatchable.return_value = nearby_vendors
    uow.booking_alerts.alerted_vendor_ids.return_value = []
    uow.booking_alerts.create.side_effect = lambda alert: alert
    uow.notifications.create.side_effect = lambda notification: notification
    return uow


class TestFindCandidates:
    def test_sorted_by_distance_within_radius(self, nearby_vendors):
        candidates = find_candidates(nearby_vendors, 22.7196, 75.8577, radius_km=10)

        ids = [c.vendor.id for c in candidates]
        assert ids == ["v-near", "v-close", "v-mid"]
        assert candidates[0].distance_km < 0.2

    def test_excludes_already_alerted(self, nearby_vendors):
        candidates = find_candidates(
            nearby_vendors, 22.7196, 75.8577, radius_km=10, exclude=["v-near"]
        )

        assert "v-near" not in [c.vendor.id for c in candidates]

    def test_wider_radius_reaches_far_vendor(self, nearby_vendors):
        candidates = find_candidates(nearby_vendors, 22.7196, 75.8577, radius_km=100)

        assert candidates[-1].vendor.id == "v-far"


class TestBookingLocation:
    def test_uses_address_coordinates(self, sample_booking):
        assert booking_location(sample_booking) == (22.7196, 75.8577)

    def test_geocodes_when_missing(self, sample_booking):
        booking = sample_booking.model_copy(
            update={"address": sample_booking.address.model_copy(update={"lat": None})}
        )
        with patch(
            "homster.services.dispatch.geocode_address", return_value=(1.0, 2.0)
        ) as mock_geocode:
            assert booking_location(booking) == (1.0, 2.0)

        assert "Indore" in mock_geocode.call_args[0][0]


class TestOpenWave:
    def test_alerts_nearest_vendors(self, sample_booking, mock_uow):
        outbox = Outbox()
        booking = sample_booking.model_copy(update={"current_wave": 0})

        with patch("homster.services.dispatch.config") as mock_config:
            mock_config.VENDOR_SEARCH_RADIUS_KM = 10
            mock_config.ALERT_WAVE_SIZE = 2
            mock_config.ALERT_WINDOW_SECONDS = 60
            outcome = open_wave(mock_uow, booking, outbox, NOW)

        assert outcome.wave == 1
        assert outcome.alerted_vendor_ids == ["v-near", "v-close"]

        alerts = [c[0][0] for c in mock_uow.booking_alerts.create.call_args_list]
        assert all(a.wave == 1 for a in alerts)
        assert all((a.expires_at - NOW).total_seconds() == 60 for a in alerts)

        mock_uow.bookings.claim_wave.assert_called_once_with(booking.id, 0)
        assert outbox.alert_expiries == [(booking.id, 1)]
        assert [e[0] for e in outbox.events] == ["new_booking_request"] * 2
        assert outbox.events[0][2] == "vendor_v-near"
        assert all(n.type == NotificationType.BOOKING_REQUEST for n in outbox.notifications)

    def test_no_candidates(self, sample_booking, mock_uow):
        mock_uow.booking_alerts.alerted_vendor_ids.return_value = [
            "v-near",
            "v-close",
            "v-mid",
        ]
        outbox = Outbox()

        with patch("homster.services.dispatch.config") as mock_config:
            mock_config.VENDOR_SEARCH_RADIUS_KM = 10
            mock_config.ALERT_WAVE_SIZE = 5
            mock_config.ALERT_WINDOW_SECONDS = 60
            assert open_wave(mock_uow, sample_booking, outbox, NOW) is None

        mock_uow.booking_alerts.create.assert_not_called()
        assert outbox.alert_expiries == []
        mock_uow.bookings.claim_wave.assert_not_called()

    def test_wave_already_moved_by_another_dispatcher(self, sample_booking, mock_uow):
        mock_uow.bookings.claim_wave.return_value = None
        outbox = Outbox()

        with patch("homster.services.dispatch.config") as mock_config:
            mock_config.VENDOR_SEARCH_RADIUS_KM = 10
            mock_config.ALERT_WAVE_SIZE = 5
            mock_config.ALERT_WINDOW_SECONDS = 60
            outcome = open_wave(mock_uow, sample_booking, outbox, NOW)

        assert outcome.skipped is True
        assert outcome.wave == 1
        mock_uow.bookings.claim_wave.assert_called_once_with(sample_booking.id, 1)
        mock_uow.booking_alerts.create.assert_not_called()
        assert outbox.notifications == []
        assert outbox.events == []
        assert outbox.alert_expiries == []


class TestStartDispatch:
    def test_no_vendor_in_range_leaves_booking_open(self, sample_booking, mock_uow):
        mock_uow.vendors.list_dispatchable.return_value = []
        booking = sample_booking.model_copy(update={"current_wave": 0})

        outcome = start_dispatch(mock_uow, booking, Outbox(), NOW)

        assert outcome.exhausted is True
        mock_uow.bookings.transition.assert_called_once_with(
            booking.id, [BookingStatus.SEARCHING], BookingStatus.REQUESTED
        )


class TestAdvance:
    def test_missing_booking_is_skipped(self, mock_uow):
        mock_uow.bookings.get_by_id.return_value = None

        outcome = advance(mock_uow, "gone", 1, Outbox(), NOW)

        assert outcome.skipped is True
        mock_uow.booking_alerts.expire_wave.assert_not_called()

    def test_claimed_booking_only_expires(self, held_booking, mock_uow):
        mock_uow.bookings.get_by_id.return_value = held_booking
        mock_uow.booking_alerts.expire_wave.return_value = 3

        outcome = advance(mock_uow, held_booking.id, 1, Outbox(), NOW)

        assert outcome.skipped is True
        assert outcome.expired_alerts == 3
        mock_uow.booking_alerts.create.assert_not_called()

    def test_stale_wave_only_expires(self, sample_booking, mock_uow):
        mock_uow.bookings.get_by_id.return_value = sample_booking.model_copy(
            update={"current_wave": 2}
        )

        outcome = advance(mock_uow, sample_booking.id, 1, Outbox(), NOW)

        assert outcome.skipped is True
        assert outcome.wave == 2

    def test_opens_next_wave(self, sample_booking, mock_uow):
        mock_uow.bookings.get_by_id.return_value = sample_booking
        mock_uow.booking_alerts.expire_wave.return_value = 1
        mock_uow.booking_alerts.alerted_vendor_ids.return_value = ["v-near"]

        outcome = advance(mock_uow, sample_booking.id, 1, Outbox(), NOW)

        assert outcome.wave == 2
        assert outcome.expired_alerts == 1
        assert "v-near" not in outcome.alerted_vendor_ids

    def test_concurrent_close_of_same_wave_is_skipped(self, sample_booking, mock_uow):
        mock_uow.bookings.get_by_id.return_value = sample_booking
        mock_uow.booking_alerts.expire_wave.return_value = 0
        mock_uow.bookings.claim_wave.return_value = None
        outbox = Outbox()

        outcome = advance(mock_uow, sample_booking.id, 1, outbox, NOW)

        assert outcome.skipped is True
        assert outcome.exhausted is False
        mock_uow.booking_alerts.create.assert_not_called()
        mock_uow.bookings.update_fields.assert_not_called()
        assert outbox.alert_expiries == []

    def test_exhausted_booking_is_cancelled(self, sample_booking, mock_uow):
        mock_uow.bookings.get_by_id.return_value = sample_booking
        mock_uow.vendors.list_dispatchable.return_value = []
        mock_uow.bookings.update_fields.return_value = sample_booking.model_copy(
            update={"status": BookingStatus.CANCELLED}
        )
        outbox = Outbox()

        outcome = advance(mock_uow, sample_booking.id, 1, outbox, NOW)

        assert outcome.exhausted is True
        kwargs = mock_uow.bookings.update_fields.call_args.kwargs
        assert kwargs["status"] == BookingStatus.CANCELLED
        assert kwargs["cancelled_by"] == "system"
        assert kwargs["cancellation_reason"] == NO_VENDORS_REASON
        assert outbox.notifications[0].type == NotificationType.BOOKING_CANCELLED
        assert outbox.notifications[0].recipient_role == Role.USER


class TestWithdrawAlerts:
    def test_tells_losing_vendors(self, held_booking):
        uow = MagicMock()
        uow.booking_alerts.withdraw_others.return_value = ["v-2", "v-3"]
        outbox = Outbox()

        withdrawn = withdraw_alerts(uow, held_booking, outbox, except_vendor_id="v-1")

        assert withdrawn == ["v-2", "v-3"]
        uow.booking_alerts.withdraw_others.assert_called_once_with(held_booking.id, "v-1")
        assert [(e[0], e[2]) for e in outbox.events] == [
            ("booking_taken", "vendor_v-2"),
            ("booking_taken", "vendor_v-3"),
        ]


def test_alert_event_payload(sample_booking, sample_alert):
    event = alert_event(sample_booking, sample_alert, sample_alert.offered_at)

    assert event["booking_id"] == sample_booking.id
    assert event["seconds_remaining"] == 60
    assert event["play_sound"] is True
    assert event["message"] == "New AC Service request 0.3 km away"
