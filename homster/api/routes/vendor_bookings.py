"""
Vendor booking API routes.

Vendors see their booking alerts, claim bookings, hand them to workers and
move them through the job lifecycle. Claiming is first come, first served:
the first vendor to accept an open booking wins and every other alert on it
is withdrawn.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query

from homster.api.auth import Principal, require_roles
from homster.db import DatabaseConnection, UnitOfWork
from homster.db.repositories.base import utcnow
from homster.models.account import Role
from homster.models.alert import AlertStatus, VendorAlertView
from homster.models.booking import (
    CLOSED_STATUSES,
    OPEN_STATUSES,
    AssignWorkerRequest,
    Booking,
    BookingListResponse,
    BookingStatus,
    CancelRequest,
    NotesRequest,
    StatusUpdateRequest,
    WorkerResponse,
)
from homster.models.notification import NotificationType, RelatedType
from homster.realtime import account_room
from homster.services.dispatch import advance, withdraw_alerts
from homster.services.notifications import Outbox

router = APIRouter()

vendor_only = require_roles(Role.VENDOR)

# Status changes a vendor may make by hand
VENDOR_TRANSITIONS: dict[BookingStatus, tuple[BookingStatus, ...]] = {
    BookingStatus.PENDING: (BookingStatus.CONFIRMED, BookingStatus.REJECTED),
    BookingStatus.CONFIRMED: (BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED),
    BookingStatus.IN_PROGRESS: (BookingStatus.COMPLETED, BookingStatus.CANCELLED),
}

STATUS_NOTIFICATIONS: dict[BookingStatus, tuple[NotificationType, str]] = {
    BookingStatus.CONFIRMED: (NotificationType.BOOKING_CONFIRMED, "Booking confirmed"),
    BookingStatus.REJECTED: (NotificationType.BOOKING_REJECTED, "Booking rejected"),
    BookingStatus.IN_PROGRESS: (NotificationType.WORKER_STARTED, "Work started"),
    BookingStatus.COMPLETED: (NotificationType.BOOKING_COMPLETED, "Booking completed"),
    BookingStatus.CANCELLED: (NotificationType.BOOKING_CANCELLED, "Booking cancelled"),
}


def _check_db_available():
    """Check if database is available, raise 503 if not."""
    if not DatabaseConnection.is_initialized():
        raise HTTPException(
            status_code=503,
            detail="Database not available",
        )


def _parse_status(value: str | None) -> BookingStatus | None:
    if not value:
        return None
    try:
        return BookingStatus(value)
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid status: {value}. Valid values: {[s.value for s in BookingStatus]}",
        )


def _get_held_booking(uow: UnitOfWork, booking_id: str, vendor_id: str) -> Booking:
    """Booking assigned to this vendor, 404 otherwise."""
    booking = uow.bookings.get_by_id_for_vendor(booking_id, vendor_id)
    if booking is None or booking.vendor_id != vendor_id:
        raise HTTPException(
            status_code=404,
            detail=f"Booking not found: {booking_id}",
        )
    return booking


@router.get("/vendors/alerts", response_model=list[VendorAlertView])
async def list_alerts(
    principal: Principal = Depends(vendor_only),
) -> list[VendorAlertView]:
    """
    Booking offers the vendor can still accept, soonest expiry first.

    The countdown is computed from the stored expiry, so it is the same on
    every device and survives a reload.
    """
    _check_db_available()

    now = utcnow()
    with UnitOfWork() as uow:
        views = []
        for alert in uow.booking_alerts.list_open_for_vendor(principal.account_id, now):
            booking = uow.bookings.get_by_id(alert.booking_id)
            if booking is None or not booking.is_open():
                continue
            views.append(
                VendorAlertView(
                    alert_id=alert.id,
                    booking_id=booking.id,
                    booking_number=booking.booking_number,
                    service_name=booking.service_name,
                    service_category=booking.service_category,
                    final_amount=booking.final_amount,
                    address=booking.address,
                    scheduled_date=booking.scheduled_date,
                    scheduled_time=booking.scheduled_time,
                    distance_km=alert.distance_km,
                    expires_at=alert.expires_at,
                    seconds_remaining=alert.seconds_remaining(now),
                )
            )
        return views


@router.get("/vendors/bookings", response_model=BookingListResponse)
async def list_vendor_bookings(
    principal: Principal = Depends(vendor_only),
    status: str | None = Query(default=None, description="Filter by booking status"),
    start_date: datetime | None = Query(default=None, description="Scheduled on or after"),
    end_date: datetime | None = Query(default=None, description="Scheduled on or before"),
    limit: int = Query(default=20, ge=1, le=100, description="Maximum bookings to return"),
    offset: int = Query(default=0, ge=0, description="Number of bookings to skip"),
) -> BookingListResponse:
    """List bookings held by the vendor plus unclaimed open bookings."""
    _check_db_available()
    booking_status = _parse_status(status)

    with UnitOfWork() as uow:
        bookings = uow.bookings.list_for_vendor(
            principal.account_id,
            status=booking_status,
            start_date=start_date,
            end_date=end_date,
            limit=limit,
            offset=offset,
        )
        total = uow.bookings.count_for_vendor(
            principal.account_id,
            status=booking_status,
            start_date=start_date,
            end_date=end_date,
        )

        return BookingListResponse(
            bookings=bookings,
            total=total,
            limit=limit,
            offset=offset,
        )


@router.get("/vendors/bookings/{booking_id}", response_model=Booking)
async def get_vendor_booking(
    booking_id: str,
    principal: Principal = Depends(vendor_only),
) -> Booking:
    _check_db_available()

    with UnitOfWork() as uow:
        booking = uow.bookings.get_by_id_for_vendor(booking_id, principal.account_id)
        if booking is None:
            raise HTTPException(
                status_code=404,
                detail=f"Booking not found: {booking_id}",
            )
        return booking


@router.post("/vendors/bookings/{booking_id}/accept", response_model=Booking)
async def accept_booking(
    booking_id: str,
    principal: Principal = Depends(vendor_only),
) -> Booking:
    """
    Claim an open booking.

    At most one vendor can win: the claim is a single conditional update
    that only matches while the booking is unassigned and open.

    Raises:
        404: Booking not found
        400: Booking is no longer open
        409: Another vendor took it, or this vendor's alert has lapsed
    """
    _check_db_available()

    vendor_id = principal.account_id
    now = utcnow()
    outbox = Outbox()

    try:
        with UnitOfWork() as uow:
            booking = uow.bookings.get_by_id(booking_id)
            if booking is None:
                raise HTTPException(
                    status_code=404,
                    detail=f"Booking not found: {booking_id}",
                )

            if booking.vendor_id == vendor_id:
                raise HTTPException(status_code=400, detail="Booking already accepted")
            if booking.vendor_id is not None:
                raise HTTPException(
                    status_code=409,
                    detail="Booking already taken by another vendor",
                )
            if booking.status not in OPEN_STATUSES:
                raise HTTPException(
                    status_code=400,
                    detail=f"Booking is {booking.status.value} and can no longer be accepted",
                )

            alert = uow.booking_alerts.get_for_vendor(booking_id, vendor_id)
            if alert is not None and not alert.is_open(now):
                raise HTTPException(
                    status_code=409,
                    detail="Booking alert is no longer open",
                )

            claimed = uow.bookings.claim_for_vendor(booking_id, vendor_id)
            if claimed is None:
                raise HTTPException(
                    status_code=409,
                    detail="Booking already taken by another vendor",
                )

            if alert is not None:
                uow.booking_alerts.respond(booking_id, vendor_id, AlertStatus.ACCEPTED, now)
            withdraw_alerts(uow, claimed, outbox, except_vendor_id=vendor_id)

            vendor = uow.vendors.get_by_id(vendor_id)
            vendor_name = (vendor.business_name or vendor.name) if vendor else "A vendor"

            outbox.emit(
                "booking_accepted",
                {
                    "booking_id": claimed.id,
                    "booking_number": claimed.booking_number,
                    "vendor_id": vendor_id,
                    "vendor_name": vendor_name,
                    "status": claimed.status.value,
                },
                account_room(Role.USER, claimed.user_id),
            )
            outbox.notify(
                uow,
                Role.USER,
                claimed.user_id,
                NotificationType.BOOKING_CONFIRMED,
                "Booking accepted",
                f"{vendor_name} accepted your {claimed.service_name} booking.",
                related_id=claimed.id,
                related_type=RelatedType.BOOKING,
                data={"vendor_id": vendor_id},
            )

            uow.commit()

        await outbox.flush()
        return claimed

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to accept booking: {str(e)}",
        )


@router.post("/vendors/bookings/{booking_id}/reject")
async def reject_booking(
    booking_id: str,
    request: CancelRequest | None = None,
    principal: Principal = Depends(vendor_only),
) -> dict:
    """
    Reject a held pending booking, or decline an alert.

    Declining the last open alert of a wave sends the next wave right away
    instead of waiting for the countdown.

    Raises:
        404: Booking not found or not visible
        400: Booking not pending, or no open alert to decline
    """
    _check_db_available()

    vendor_id = principal.account_id
    reason = (request.reason if request else None) or "Rejected by vendor"
    now = utcnow()
    outbox = Outbox()

    try:
        with UnitOfWork() as uow:
            booking = uow.bookings.get_by_id(booking_id)
            if booking is None or booking.vendor_id not in (None, vendor_id):
                raise HTTPException(
                    status_code=404,
                    detail=f"Booking not found: {booking_id}",
                )

            if booking.vendor_id == vendor_id:
                if booking.status != BookingStatus.PENDING:
                    raise HTTPException(
                        status_code=400,
                        detail="Only pending bookings can be rejected",
                    )
                rejected = uow.bookings.transition(
                    booking_id,
                    [BookingStatus.PENDING],
                    BookingStatus.REJECTED,
                    cancelled_at=now,
                    cancelled_by="vendor",
                    cancellation_reason=reason,
                )
                if rejected is None:
                    raise HTTPException(
                        status_code=409,
                        detail="Booking changed while rejecting, please retry",
                    )
                outbox.notify(
                    uow,
                    Role.USER,
                    booking.user_id,
                    NotificationType.BOOKING_REJECTED,
                    "Booking rejected",
                    f"Your booking {booking.booking_number} was rejected: {reason}",
                    related_id=booking.id,
                    related_type=RelatedType.BOOKING,
                )
                outbox.emit(
                    "booking_updated",
                    {"booking_id": booking.id, "status": BookingStatus.REJECTED.value},
                    account_room(Role.USER, booking.user_id),
                )
                result = {
                    "message": "Booking rejected",
                    "booking_id": booking_id,
                    "status": BookingStatus.REJECTED.value,
                }
            else:
                alert = uow.booking_alerts.respond(
                    booking_id, vendor_id, AlertStatus.REJECTED, now
                )
                if alert is None:
                    raise HTTPException(
                        status_code=400,
                        detail="No open alert for this booking",
                    )
                advanced = (
                    booking.is_open()
                    and alert.wave == booking.current_wave
                    and uow.booking_alerts.count_open(booking_id, alert.wave, now) == 0
                )
                if advanced:
                    advance(uow, booking_id, alert.wave, outbox, now)
                result = {
                    "message": "Booking alert declined",
                    "booking_id": booking_id,
                    "status": AlertStatus.REJECTED.value,
                }

            uow.commit()

        await outbox.flush()
        return result

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to reject booking: {str(e)}",
        )


@router.post("/vendors/bookings/{booking_id}/assign-worker", response_model=Booking)
async def assign_worker(
    booking_id: str,
    request: AssignWorkerRequest,
    principal: Principal = Depends(vendor_only),
) -> Booking:
    """
    Hand a held booking to one of the vendor's workers.

    A confirmed booking moves to in_progress once a worker is on it.

    Raises:
        404: Booking or worker not found
        400: Booking closed or worker not available
    """
    _check_db_available()

    now = utcnow()
    outbox = Outbox()

    try:
        with UnitOfWork() as uow:
            booking = _get_held_booking(uow, booking_id, principal.account_id)
            if booking.status in CLOSED_STATUSES:
                raise HTTPException(
                    status_code=400,
                    detail=f"Cannot assign a worker to a {booking.status.value} booking",
                )

            worker = uow.workers.get_for_vendor(request.worker_id, principal.account_id)
            if worker is None:
                raise HTTPException(
                    status_code=404,
                    detail=f"Worker not found: {request.worker_id}",
                )
            if not worker.is_active or not worker.status.is_assignable:
                raise HTTPException(
                    status_code=400,
                    detail=f"Worker is {worker.status.value} and cannot be assigned",
                )

            fields: dict = {
                "worker_id": worker.id,
                "assigned_at": now,
                "worker_response": WorkerResponse.PENDING,
            }
            if booking.status == BookingStatus.CONFIRMED:
                fields["status"] = BookingStatus.IN_PROGRESS
                if booking.started_at is None:
                    fields["started_at"] = now

            updated = uow.bookings.update_fields(booking_id, **fields)

            outbox.notify(
                uow,
                Role.USER,
                booking.user_id,
                NotificationType.WORKER_ASSIGNED,
                "Professional assigned",
                f"{worker.name} will handle your {booking.service_name} booking.",
                related_id=booking.id,
                related_type=RelatedType.BOOKING,
                data={"worker_id": worker.id, "worker_name": worker.name},
            )
            outbox.notify(
                uow,
                Role.WORKER,
                worker.id,
                NotificationType.BOOKING_CREATED,
                "New job assigned",
                f"{booking.service_name} on {booking.scheduled_date:%d %b %Y} "
                f"at {booking.scheduled_time}.",
                related_id=booking.id,
                related_type=RelatedType.BOOKING,
            )
            outbox.emit(
                "new_job",
                {
                    "booking_id": updated.id,
                    "booking_number": updated.booking_number,
                    "service_name": updated.service_name,
                    "address": updated.address.model_dump(mode="json"),
                    "scheduled_date": updated.scheduled_date.isoformat(),
                    "scheduled_time": updated.scheduled_time,
                },
                account_room(Role.WORKER, worker.id),
            )

            uow.commit()

        await outbox.flush()
        return updated

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to assign worker: {str(e)}",
        )


@router.put("/vendors/bookings/{booking_id}/status", response_model=Booking)
async def update_booking_status(
    booking_id: str,
    request: StatusUpdateRequest,
    principal: Principal = Depends(vendor_only),
) -> Booking:
    """
    Move a held booking along its lifecycle.

    Allowed: pending to confirmed or rejected, confirmed to in_progress or
    cancelled, in_progress to completed or cancelled.

    Raises:
        400: Transition not allowed
    """
    _check_db_available()

    now = utcnow()
    outbox = Outbox()

    try:
        with UnitOfWork() as uow:
            booking = _get_held_booking(uow, booking_id, principal.account_id)
            new_status = request.status

            if new_status not in VENDOR_TRANSITIONS.get(booking.status, ()):
                raise HTTPException(
                    status_code=400,
                    detail=f"Cannot change status from {booking.status.value} "
                    f"to {new_status.value}",
                )

            fields: dict = {}
            if new_status == BookingStatus.IN_PROGRESS and booking.started_at is None:
                fields["started_at"] = now
            elif new_status == BookingStatus.COMPLETED:
                fields["completed_at"] = now
            elif new_status in (BookingStatus.CANCELLED, BookingStatus.REJECTED):
                fields["cancelled_at"] = now
                fields["cancelled_by"] = "vendor"

            updated = uow.bookings.transition(
                booking_id, [booking.status], new_status, **fields
            )
            if updated is None:
                raise HTTPException(
                    status_code=409,
                    detail="Booking changed while updating, please retry",
                )

            notification_type, title = STATUS_NOTIFICATIONS[new_status]
            outbox.notify(
                uow,
                Role.USER,
                booking.user_id,
                notification_type,
                title,
                f"Your booking {booking.booking_number} is now {new_status.value.replace('_', ' ')}.",
                related_id=booking.id,
                related_type=RelatedType.BOOKING,
            )
            outbox.emit(
                "booking_updated",
                {"booking_id": booking.id, "status": new_status.value},
                account_room(Role.USER, booking.user_id),
            )

            uow.commit()

        await outbox.flush()
        return updated

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to update booking status: {str(e)}",
        )


@router.post("/vendors/bookings/{booking_id}/notes", response_model=Booking)
async def add_vendor_notes(
    booking_id: str,
    request: NotesRequest,
    principal: Principal = Depends(vendor_only),
) -> Booking:
    _check_db_available()

    try:
        with UnitOfWork() as uow:
            _get_held_booking(uow, booking_id, principal.account_id)
            updated = uow.bookings.update_fields(booking_id, vendor_notes=request.notes)
            uow.commit()
            return updated

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to save notes: {str(e)}",
        )
