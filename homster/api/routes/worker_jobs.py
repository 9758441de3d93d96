"""
Worker job API routes.

Workers only ever see bookings their vendor assigned to them. They accept
or turn down an assignment, start the job on site and mark it complete.
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from homster.api.auth import Principal, require_roles
from homster.db import DatabaseConnection, UnitOfWork
from homster.db.repositories.base import as_uuid, utcnow
from homster.models.account import Role
from homster.models.booking import (
    CLOSED_STATUSES,
    Booking,
    BookingListResponse,
    BookingStatus,
    NotesRequest,
    StatusUpdateRequest,
    WorkerRespondRequest,
    WorkerResponse,
)
from homster.models.notification import NotificationType, RelatedType
from homster.realtime import account_room
from homster.services.notifications import Outbox

router = APIRouter()

worker_only = require_roles(Role.WORKER)

STARTABLE_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS)


def _check_db_available():
    """Check if database is available, raise 503 if not."""
    if not DatabaseConnection.is_initialized():
        raise HTTPException(
            status_code=503,
            detail="Database not available",
        )


def _get_job(uow: UnitOfWork, booking_id: str, worker_id: str) -> Booking:
    booking = uow.bookings.get_by_id_for_worker(booking_id, worker_id)
    if booking is None:
        raise HTTPException(
            status_code=404,
            detail=f"Job not found: {booking_id}",
        )
    return booking


def _broadcast_status(outbox: Outbox, booking: Booking):
    """Tell the customer and the vendor that the job moved."""
    payload = {"booking_id": booking.id, "status": booking.status.value}
    outbox.emit("booking_updated", payload, account_room(Role.USER, booking.user_id))
    if booking.vendor_id:
        outbox.emit("booking_updated", payload, account_room(Role.VENDOR, booking.vendor_id))


def _start_job(uow: UnitOfWork, booking: Booking, outbox: Outbox) -> Booking:
    if booking.status not in STARTABLE_STATUSES:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot start a {booking.status.value} job",
        )

    fields: dict = {}
    if booking.started_at is None:
        fields["started_at"] = utcnow()
    started = uow.bookings.transition(
        booking.id, [booking.status], BookingStatus.IN_PROGRESS, **fields
    )
    if started is None:
        raise HTTPException(
            status_code=409,
            detail="Job changed while starting, please retry",
        )

    outbox.notify(
        uow,
        Role.USER,
        booking.user_id,
        NotificationType.WORKER_STARTED,
        "Work started",
        f"Work on your {booking.service_name} booking has started.",
        related_id=booking.id,
        related_type=RelatedType.BOOKING,
    )
    _broadcast_status(outbox, started)
    return started


def _complete_job(
    uow: UnitOfWork, booking: Booking, worker_id: str, outbox: Outbox
) -> Booking:
    if booking.status != BookingStatus.IN_PROGRESS:
        raise HTTPException(
            status_code=400,
            detail="Only jobs in progress can be completed",
        )

    completed = uow.bookings.transition(
        booking.id,
        [BookingStatus.IN_PROGRESS],
        BookingStatus.COMPLETED,
        completed_at=utcnow(),
    )
    if completed is None:
        raise HTTPException(
            status_code=409,
            detail="Job changed while completing, please retry",
        )

    uow.workers.record_job(worker_id, completed=True)

    outbox.notify(
        uow,
        Role.USER,
        booking.user_id,
        NotificationType.BOOKING_COMPLETED,
        "Booking completed",
        f"Your {booking.service_name} booking is complete. Please rate the service.",
        related_id=booking.id,
        related_type=RelatedType.BOOKING,
    )
    if booking.vendor_id:
        outbox.notify(
            uow,
            Role.VENDOR,
            booking.vendor_id,
            NotificationType.WORK_COMPLETED,
            "Job completed",
            f"Job {booking.booking_number} was completed.",
            related_id=booking.id,
            related_type=RelatedType.BOOKING,
            data={"worker_id": worker_id},
        )
    _broadcast_status(outbox, completed)
    return completed


@router.get("/workers/jobs", response_model=BookingListResponse)
async def list_jobs(
    principal: Principal = Depends(worker_only),
    status: str | None = Query(default=None, description="Filter by booking status"),
    limit: int = Query(default=20, ge=1, le=100, description="Maximum jobs to return"),
    offset: int = Query(default=0, ge=0, description="Number of jobs to skip"),
) -> BookingListResponse:
    """List jobs assigned to the worker, newest first."""
    _check_db_available()

    job_status = None
    if status:
        try:
            job_status = BookingStatus(status)
        except ValueError:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid status: {status}. Valid values: {[s.value for s in BookingStatus]}",
            )

    with UnitOfWork() as uow:
        jobs = uow.bookings.list_for_worker(
            principal.account_id, status=job_status, limit=limit, offset=offset
        )
        total = uow.bookings.count_for_worker(principal.account_id, status=job_status)

        return BookingListResponse(
            bookings=jobs,
            total=total,
            limit=limit,
            offset=offset,
        )


@router.get("/workers/jobs/{booking_id}", response_model=Booking)
async def get_job(
    booking_id: str,
    principal: Principal = Depends(worker_only),
) -> Booking:
    _check_db_available()

    with UnitOfWork() as uow:
        return _get_job(uow, booking_id, principal.account_id)


@router.put("/workers/jobs/{booking_id}/respond", response_model=Booking)
async def respond_to_job(
    booking_id: str,
    request: WorkerRespondRequest,
    principal: Principal = Depends(worker_only),
) -> Booking:
    """
    Accept or turn down an assignment.

    Turning it down hands the booking back to the vendor: the worker is
    removed and an in-progress booking returns to confirmed.
    """
    _check_db_available()

    worker_id = principal.account_id
    outbox = Outbox()

    try:
        with UnitOfWork() as uow:
            booking = _get_job(uow, booking_id, worker_id)
            if booking.status in CLOSED_STATUSES:
                raise HTTPException(
                    status_code=400,
                    detail=f"Cannot respond to a {booking.status.value} job",
                )

            worker = uow.workers.get_by_id(worker_id)
            worker_name = worker.name if worker else "The worker"

            if request.response == WorkerResponse.ACCEPTED:
                updated = uow.bookings.update_fields(
                    booking_id, worker_response=WorkerResponse.ACCEPTED
                )
                notification = (
                    NotificationType.JOB_ACCEPTED,
                    "Job accepted",
                    f"{worker_name} accepted job {booking.booking_number}.",
                )
            else:
                fields: dict = {
                    "worker_id": None,
                    "assigned_at": None,
                    "worker_response": WorkerResponse.REJECTED,
                }
                if booking.status == BookingStatus.IN_PROGRESS:
                    fields["status"] = BookingStatus.CONFIRMED
                updated = uow.bookings.update_fields(
                    booking_id,
                    uow.bookings.table.c.worker_id == as_uuid(worker_id),
                    **fields,
                )
                if updated is None:
                    raise HTTPException(
                        status_code=409,
                        detail="Job changed while responding, please retry",
                    )
                notification = (
                    NotificationType.JOB_REJECTED,
                    "Job declined",
                    f"{worker_name} declined job {booking.booking_number}. "
                    "Please assign another worker.",
                )

            if booking.vendor_id:
                outbox.notify(
                    uow,
                    Role.VENDOR,
                    booking.vendor_id,
                    *notification,
                    related_id=booking.id,
                    related_type=RelatedType.BOOKING,
                    data={"worker_id": worker_id},
                )

            uow.commit()

        await outbox.flush()
        return updated

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to respond to job: {str(e)}",
        )


@router.put("/workers/jobs/{booking_id}/status", response_model=Booking)
async def update_job_status(
    booking_id: str,
    request: StatusUpdateRequest,
    principal: Principal = Depends(worker_only),
) -> Booking:
    """
    Move a job forward: confirmed to in_progress, in_progress to completed.

    Raises:
        400: Transition not allowed
    """
    _check_db_available()

    outbox = Outbox()
    try:
        with UnitOfWork() as uow:
            booking = _get_job(uow, booking_id, principal.account_id)

            if (booking.status, request.status) == (
                BookingStatus.CONFIRMED,
                BookingStatus.IN_PROGRESS,
            ):
                updated = _start_job(uow, booking, outbox)
            elif (booking.status, request.status) == (
                BookingStatus.IN_PROGRESS,
                BookingStatus.COMPLETED,
            ):
                updated = _complete_job(uow, booking, principal.account_id, outbox)
            else:
                raise HTTPException(
                    status_code=400,
                    detail=f"Cannot change status from {booking.status.value} "
                    f"to {request.status.value}",
                )

            uow.commit()

        await outbox.flush()
        return updated

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to update job status: {str(e)}",
        )


@router.post("/workers/jobs/{booking_id}/start", response_model=Booking)
async def start_job(
    booking_id: str,
    principal: Principal = Depends(worker_only),
) -> Booking:
    _check_db_available()

    outbox = Outbox()
    try:
        with UnitOfWork() as uow:
            booking = _get_job(uow, booking_id, principal.account_id)
            started = _start_job(uow, booking, outbox)
            uow.commit()

        await outbox.flush()
        return started

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to start job: {str(e)}",
        )


@router.post("/workers/jobs/{booking_id}/complete", response_model=Booking)
async def complete_job(
    booking_id: str,
    principal: Principal = Depends(worker_only),
) -> Booking:
    _check_db_available()

    outbox = Outbox()
    try:
        with UnitOfWork() as uow:
            booking = _get_job(uow, booking_id, principal.account_id)
            completed = _complete_job(uow, booking, principal.account_id, outbox)
            uow.commit()

        await outbox.flush()
        return completed

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to complete job: {str(e)}",
        )


@router.post("/workers/jobs/{booking_id}/notes", response_model=Booking)
async def add_worker_notes(
    booking_id: str,
    request: NotesRequest,
    principal: Principal = Depends(worker_only),
) -> Booking:
    _check_db_available()

    try:
        with UnitOfWork() as uow:
            _get_job(uow, booking_id, principal.account_id)
            updated = uow.bookings.update_fields(booking_id, worker_notes=request.notes)
            uow.commit()
            return updated

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to save notes: {str(e)}",
        )
