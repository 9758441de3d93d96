"""
Booking dispatch: offering new bookings to nearby vendors in waves.

Each wave alerts the nearest vendors not yet offered the booking. Alerts are
stored with an expiry time and a Cloud Task closes the wave once the window
has passed, opening the next wave or giving up when nobody is left.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable
from uuid import uuid4

from homster import config
from homster.db import UnitOfWork
from homster.db.repositories.base import utcnow
from homster.models.account import Role, Vendor
from homster.models.alert import BookingAlert, DispatchOutcome
from homster.models.booking import OPEN_STATUSES, Booking, BookingStatus
from homster.models.notification import NotificationType, RelatedType
from homster.realtime import account_room
from homster.services.notifications import Outbox
from homster.utils.geo import geocode_address, haversine_km

logger = logging.getLogger(__name__)

NO_VENDORS_REASON = "No vendors available nearby"


@dataclass(frozen=True)
class Candidate:
    vendor: Vendor
    distance_km: float


def booking_location(booking: Booking) -> tuple[float, float]:
    """Service coordinates, geocoding the address text when none were sent."""
    if booking.address.has_coordinates():
        return booking.address.lat, booking.address.lng
    return geocode_address(booking.address.as_text())


def find_candidates(
    vendors: Iterable[Vendor],
    lat: float,
    lng: float,
    radius_km: float | None = None,
    exclude: Iterable[str] = (),
) -> list[Candidate]:
    """
    Vendors within the search radius, nearest first.

    Args:
        vendors: Dispatchable vendors
        lat: Service latitude
        lng: Service longitude
        radius_km: Search radius, defaults to VENDOR_SEARCH_RADIUS_KM
        exclude: Vendor IDs to skip (already alerted)

    Returns:
        Candidates sorted by distance
    """
    radius_km = config.VENDOR_SEARCH_RADIUS_KM if radius_km is None else radius_km
    skip = set(exclude)

    candidates = []
    for vendor in vendors:
        if vendor.id in skip or vendor.lat is None or vendor.lng is None:
            continue
        distance = haversine_km(lat, lng, vendor.lat, vendor.lng)
        if distance <= radius_km:
            candidates.append(Candidate(vendor=vendor, distance_km=round(distance, 2)))

    candidates.sort(key=lambda c: c.distance_km)
    return candidates


def alert_event(booking: Booking, alert: BookingAlert, now: datetime | None = None) -> dict:
    """Payload of the `new_booking_request` socket event."""
    return {
        "alert_id": alert.id,
        "booking_id": booking.id,
        "booking_number": booking.booking_number,
        "service_name": booking.service_name,
        "service_category": booking.service_category,
        "final_amount": booking.final_amount,
        "address": booking.address.model_dump(mode="json"),
        "scheduled_date": booking.scheduled_date.isoformat(),
        "scheduled_time": booking.scheduled_time,
        "distance_km": alert.distance_km,
        "wave": alert.wave,
        "expires_at": alert.expires_at.isoformat(),
        "seconds_remaining": alert.seconds_remaining(now),
        "play_sound": True,
        "message": f"New {booking.service_name} request {alert.distance_km:.1f} km away",
    }


def open_wave(
    uow: UnitOfWork,
    booking: Booking,
    outbox: Outbox,
    now: datetime | None = None,
) -> DispatchOutcome | None:
    """
    Offer a booking to the next batch of nearest vendors.

    Args:
        uow: Active unit of work
        booking: Open booking to dispatch
        outbox: Collects alerts, notifications and the expiry task
        now: Reference time

    Returns:
        Outcome for the new wave, a skipped outcome when another dispatcher
        already moved the wave, or None when no candidate is left
    """
    now = now or utcnow()
    lat, lng = booking_location(booking)
    already_alerted = uow.booking_alerts.alerted_vendor_ids(booking.id)
    candidates = find_candidates(
        uow.vendors.list_dispatchable(), lat, lng, exclude=already_alerted
    )[: config.ALERT_WAVE_SIZE]

    if not candidates:
        return None

    claimed = uow.bookings.claim_wave(booking.id, booking.current_wave)
    if claimed is None:
        logger.info(
            "Alert wave already moved on",
            extra={
                "json_fields": {"booking_id": booking.id, "wave": booking.current_wave}
            },
        )
        return DispatchOutcome(booking_id=booking.id, wave=booking.current_wave, skipped=True)

    wave = booking.current_wave + 1
    expires_at = now + timedelta(seconds=config.ALERT_WINDOW_SECONDS)

    for candidate in candidates:
        alert = uow.booking_alerts.create(
            BookingAlert(
                id=str(uuid4()),
                booking_id=booking.id,
                vendor_id=candidate.vendor.id,
                wave=wave,
                distance_km=candidate.distance_km,
                offered_at=now,
                expires_at=expires_at,
            )
        )
        outbox.notify(
            uow,
            Role.VENDOR,
            candidate.vendor.id,
            NotificationType.BOOKING_REQUEST,
            "New booking request",
            f"{booking.service_name} request {candidate.distance_km:.1f} km away",
            related_id=booking.id,
            related_type=RelatedType.BOOKING,
            data={"alert_id": alert.id, "expires_at": expires_at.isoformat()},
        )
        outbox.emit(
            "new_booking_request",
            alert_event(booking, alert, now),
            account_room(Role.VENDOR, candidate.vendor.id),
        )

    outbox.schedule_alert_expiry(booking.id, wave)

    logger.info(
        "Opened alert wave",
        extra={
            "json_fields": {
                "booking_id": booking.id,
                "wave": wave,
                "vendors": len(candidates),
            }
        },
    )

    return DispatchOutcome(
        booking_id=booking.id,
        wave=wave,
        alerted_vendor_ids=[c.vendor.id for c in candidates],
    )


def cancel_unserved(
    uow: UnitOfWork,
    booking: Booking,
    outbox: Outbox,
    now: datetime | None = None,
) -> Booking | None:
    """
    Cancel a booking no vendor took.

    Returns:
        Cancelled booking, or None if a vendor claimed it meanwhile
    """
    now = now or utcnow()
    cancelled = uow.bookings.update_fields(
        booking.id,
        uow.bookings.table.c.vendor_id.is_(None),
        uow.bookings.table.c.status.in_([s.value for s in OPEN_STATUSES]),
        status=BookingStatus.CANCELLED,
        cancelled_at=now,
        cancelled_by="system",
        cancellation_reason=NO_VENDORS_REASON,
    )
    if cancelled is None:
        return None

    outbox.notify(
        uow,
        Role.USER,
        booking.user_id,
        NotificationType.BOOKING_CANCELLED,
        "Booking cancelled",
        f"{NO_VENDORS_REASON} for {booking.service_name}. Please try again later.",
        related_id=booking.id,
        related_type=RelatedType.BOOKING,
    )
    outbox.emit(
        "booking_updated",
        {"booking_id": booking.id, "status": BookingStatus.CANCELLED.value},
        account_room(Role.USER, booking.user_id),
    )

    logger.info(
        "Booking cancelled, no vendors left",
        extra={"json_fields": {"booking_id": booking.id}},
    )
    return cancelled


def start_dispatch(
    uow: UnitOfWork,
    booking: Booking,
    outbox: Outbox,
    now: datetime | None = None,
) -> DispatchOutcome:
    """
    Send the first wave for a new booking.

    With no vendor in range the booking stays open as `requested`, where any
    vendor browsing open bookings may still claim it.
    """
    outcome = open_wave(uow, booking, outbox, now)
    if outcome is not None:
        return outcome

    uow.bookings.transition(booking.id, [BookingStatus.SEARCHING], BookingStatus.REQUESTED)
    logger.info(
        "No vendors in range, booking left open",
        extra={"json_fields": {"booking_id": booking.id}},
    )
    return DispatchOutcome(booking_id=booking.id, wave=booking.current_wave, exhausted=True)


def advance(
    uow: UnitOfWork,
    booking_id: str,
    wave: int,
    outbox: Outbox,
    now: datetime | None = None,
) -> DispatchOutcome:
    """
    Close a wave and move the booking on.

    Expires the wave's remaining offers. If the booking is still unclaimed
    and this is its latest wave, the next wave goes out, or the booking is
    cancelled when no vendor is left. Anything else is a stale call and
    only expires the offers.

    Args:
        uow: Active unit of work
        booking_id: Booking UUID
        wave: Wave being closed
        outbox: Collects side effects
        now: Reference time

    Returns:
        What happened
    """
    now = now or utcnow()
    booking = uow.bookings.get_by_id(booking_id)
    if booking is None:
        return DispatchOutcome(booking_id=booking_id, wave=wave, skipped=True)

    expired = uow.booking_alerts.expire_wave(booking_id, wave, now)

    if not booking.is_open() or booking.current_wave != wave:
        return DispatchOutcome(
            booking_id=booking_id,
            wave=booking.current_wave,
            expired_alerts=expired,
            skipped=True,
        )

    outcome = open_wave(uow, booking, outbox, now)
    if outcome is not None:
        outcome.expired_alerts = expired
        return outcome

    cancel_unserved(uow, booking, outbox, now)
    return DispatchOutcome(
        booking_id=booking_id,
        wave=wave,
        expired_alerts=expired,
        exhausted=True,
    )


def withdraw_alerts(
    uow: UnitOfWork,
    booking: Booking,
    outbox: Outbox,
    except_vendor_id: str | None = None,
) -> list[str]:
    """
    Withdraw outstanding offers and tell those vendors the booking is gone.

    Returns:
        Vendor IDs whose offers were withdrawn
    """
    vendor_ids = uow.booking_alerts.withdraw_others(booking.id, except_vendor_id)
    for vendor_id in vendor_ids:
        outbox.emit(
            "booking_taken",
            {"booking_id": booking.id, "booking_number": booking.booking_number},
            account_room(Role.VENDOR, vendor_id),
        )
    return vendor_ids
