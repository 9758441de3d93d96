"""
Customer booking API routes.

Customers place bookings, follow them, pay for them and review them here.
Placing a booking starts dispatch to nearby vendors.
"""

from datetime import datetime
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Query, status

from homster import config
from homster.api.auth import Principal, require_roles
from homster.db import DatabaseConnection, UnitOfWork
from homster.db.repositories.base import utcnow
from homster.models.account import Role
from homster.models.booking import (
    Booking,
    BookingCreateRequest,
    BookingListResponse,
    BookingStatus,
    CancelRequest,
    PaymentMethod,
    RazorpayVerifyRequest,
    RescheduleRequest,
    ReviewRequest,
)
from homster.models.notification import NotificationType, RelatedType
from homster.models.wallet import TransactionType
from homster.realtime import account_room
from homster.services.dispatch import start_dispatch, withdraw_alerts
from homster.services.notifications import Outbox
from homster.services.payments import (
    record_transaction,
    refund_cancelled_booking,
    settle_online_payment,
)
from homster.services.pricing import generate_booking_number, quote
from homster.utils.hash import verify_razorpay_signature

router = APIRouter()

customer = require_roles(Role.USER)

# Statuses a customer can no longer cancel or reschedule from
FINISHED_STATUSES = (BookingStatus.CANCELLED, BookingStatus.COMPLETED)


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


def _get_own_booking(uow: UnitOfWork, booking_id: str, user_id: str) -> Booking:
    booking = uow.bookings.get_by_id_for_user(booking_id, user_id)
    if booking is None:
        raise HTTPException(
            status_code=404,
            detail=f"Booking not found: {booking_id}",
        )
    return booking


@router.post("/bookings", response_model=Booking, status_code=status.HTTP_201_CREATED)
async def create_booking(
    request: BookingCreateRequest,
    principal: Principal = Depends(customer),
) -> Booking:
    """
    Place a booking and start looking for a vendor.

    The booking starts in `searching` and the nearest vendors receive a
    time-boxed alert. With nobody in range it is left open as `requested`.
    """
    _check_db_available()

    price = quote(
        base_price=request.base_price,
        discount=request.discount,
        amount=request.amount,
    )
    outbox = Outbox()

    try:
        with UnitOfWork() as uow:
            booking = uow.bookings.create(
                Booking(
                    id=str(uuid4()),
                    booking_number=generate_booking_number(),
                    user_id=principal.account_id,
                    service_name=request.service_name,
                    service_category=request.service_category,
                    description=request.description,
                    base_price=price.base_price,
                    discount=price.discount,
                    tax=price.tax,
                    final_amount=price.final_amount,
                    payment_method=request.payment_method,
                    address=request.address,
                    scheduled_date=request.scheduled_date,
                    scheduled_time=request.scheduled_time,
                    time_slot=request.time_slot,
                    user_notes=request.user_notes,
                )
            )
            start_dispatch(uow, booking, outbox)
            outbox.notify(
                uow,
                Role.USER,
                principal.account_id,
                NotificationType.BOOKING_CREATED,
                "Booking placed",
                f"We are finding a professional for {booking.service_name}.",
                related_id=booking.id,
                related_type=RelatedType.BOOKING,
            )
            uow.commit()

            created = uow.bookings.get_by_id(booking.id)

        await outbox.flush()
        return created

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to create booking: {str(e)}",
        )


@router.get("/bookings", response_model=BookingListResponse)
async def list_bookings(
    principal: Principal = Depends(customer),
    status: str | None = Query(default=None, description="Filter by booking status"),
    start_date: datetime | None = Query(default=None, description="Scheduled on or after"),
    end_date: datetime | None = Query(default=None, description="Scheduled on or before"),
    limit: int = Query(default=20, ge=1, le=100, description="Maximum bookings to return"),
    offset: int = Query(default=0, ge=0, description="Number of bookings to skip"),
) -> BookingListResponse:
    """
    List the customer's bookings, newest first.

    Bookings still searching for a vendor are left out unless
    `status=searching` is requested.
    """
    _check_db_available()
    booking_status = _parse_status(status)

    with UnitOfWork() as uow:
        bookings = uow.bookings.list_for_user(
            principal.account_id,
            status=booking_status,
            start_date=start_date,
            end_date=end_date,
            limit=limit,
            offset=offset,
        )
        total = uow.bookings.count_for_user(
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


@router.get("/bookings/{booking_id}", response_model=Booking)
async def get_booking(
    booking_id: str,
    principal: Principal = Depends(customer),
) -> Booking:
    _check_db_available()

    with UnitOfWork() as uow:
        return _get_own_booking(uow, booking_id, principal.account_id)


@router.post("/bookings/{booking_id}/cancel", response_model=Booking)
async def cancel_booking(
    booking_id: str,
    request: CancelRequest | None = None,
    principal: Principal = Depends(customer),
) -> Booking:
    """
    Cancel a booking.

    Paid bookings are flagged refunded and wallet payments go straight back
    to the wallet. Vendors still holding an alert for it are told it is gone.

    Raises:
        404: Booking not found
        400: Booking already cancelled or completed
    """
    _check_db_available()

    reason = (request.reason if request else None) or "Cancelled by user"
    outbox = Outbox()

    try:
        with UnitOfWork() as uow:
            booking = _get_own_booking(uow, booking_id, principal.account_id)

            if booking.status in FINISHED_STATUSES:
                raise HTTPException(
                    status_code=400,
                    detail=f"Cannot cancel a {booking.status.value} booking",
                )

            cancelled = uow.bookings.transition(
                booking_id,
                [s for s in BookingStatus if s not in FINISHED_STATUSES],
                BookingStatus.CANCELLED,
                cancelled_at=utcnow(),
                cancelled_by="user",
                cancellation_reason=reason,
            )
            if cancelled is None:
                raise HTTPException(
                    status_code=409,
                    detail="Booking changed while cancelling, please retry",
                )

            refund_cancelled_booking(uow, booking, outbox)
            withdraw_alerts(uow, booking, outbox)

            outbox.notify(
                uow,
                Role.USER,
                booking.user_id,
                NotificationType.BOOKING_CANCELLED,
                "Booking cancelled",
                f"Your booking {booking.booking_number} has been cancelled.",
                related_id=booking.id,
                related_type=RelatedType.BOOKING,
            )
            if booking.vendor_id:
                outbox.notify(
                    uow,
                    Role.VENDOR,
                    booking.vendor_id,
                    NotificationType.BOOKING_CANCELLED,
                    "Booking cancelled",
                    f"Booking {booking.booking_number} was cancelled by the customer: {reason}",
                    related_id=booking.id,
                    related_type=RelatedType.BOOKING,
                )
                outbox.emit(
                    "booking_updated",
                    {"booking_id": booking.id, "status": BookingStatus.CANCELLED.value},
                    account_room(Role.VENDOR, booking.vendor_id),
                )
            if booking.worker_id:
                outbox.notify(
                    uow,
                    Role.WORKER,
                    booking.worker_id,
                    NotificationType.JOB_CANCELLED,
                    "Job cancelled",
                    f"Job {booking.booking_number} was cancelled by the customer.",
                    related_id=booking.id,
                    related_type=RelatedType.BOOKING,
                )

            uow.commit()
            updated = uow.bookings.get_by_id(booking_id)

        await outbox.flush()
        return updated

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to cancel booking: {str(e)}",
        )


@router.put("/bookings/{booking_id}/reschedule", response_model=Booking)
async def reschedule_booking(
    booking_id: str,
    request: RescheduleRequest,
    principal: Principal = Depends(customer),
) -> Booking:
    """
    Move a booking to a new date and time.

    A confirmed booking goes back to pending so the vendor can re-confirm.
    """
    _check_db_available()

    outbox = Outbox()
    try:
        with UnitOfWork() as uow:
            booking = _get_own_booking(uow, booking_id, principal.account_id)

            if booking.status in FINISHED_STATUSES:
                raise HTTPException(
                    status_code=400,
                    detail=f"Cannot reschedule a {booking.status.value} booking",
                )

            fields: dict = {
                "scheduled_date": request.scheduled_date,
                "scheduled_time": request.scheduled_time,
            }
            if request.time_slot is not None:
                fields["time_slot"] = request.time_slot.model_dump(mode="json")
            if booking.status == BookingStatus.CONFIRMED:
                fields["status"] = BookingStatus.PENDING

            updated = uow.bookings.update_fields(booking_id, **fields)

            if booking.vendor_id:
                outbox.notify(
                    uow,
                    Role.VENDOR,
                    booking.vendor_id,
                    NotificationType.BOOKING_RESCHEDULED,
                    "Booking rescheduled",
                    f"Booking {booking.booking_number} moved to "
                    f"{request.scheduled_date:%d %b %Y} at {request.scheduled_time}.",
                    related_id=booking.id,
                    related_type=RelatedType.BOOKING,
                )

            uow.commit()

        await outbox.flush()
        return updated

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to reschedule booking: {str(e)}",
        )


@router.post("/bookings/{booking_id}/review", response_model=Booking)
async def review_booking(
    booking_id: str,
    request: ReviewRequest,
    principal: Principal = Depends(customer),
) -> Booking:
    """
    Rate a completed booking, once.

    Raises:
        400: Booking not completed or already reviewed
    """
    _check_db_available()

    outbox = Outbox()
    try:
        with UnitOfWork() as uow:
            booking = _get_own_booking(uow, booking_id, principal.account_id)

            if booking.status != BookingStatus.COMPLETED:
                raise HTTPException(
                    status_code=400,
                    detail="Only completed bookings can be reviewed",
                )

            reviewed = None
            if booking.rating is None:
                reviewed = uow.bookings.update_fields(
                    booking_id,
                    uow.bookings.table.c.rating.is_(None),
                    rating=request.rating,
                    review=request.review,
                    reviewed_at=utcnow(),
                )
            if reviewed is None:
                raise HTTPException(
                    status_code=400,
                    detail="Booking has already been reviewed",
                )

            if booking.vendor_id:
                outbox.notify(
                    uow,
                    Role.VENDOR,
                    booking.vendor_id,
                    NotificationType.REVIEW_SUBMITTED,
                    "New review",
                    f"Booking {booking.booking_number} was rated {request.rating}/5.",
                    related_id=booking.id,
                    related_type=RelatedType.BOOKING,
                    data={"rating": request.rating},
                )

            uow.commit()

        await outbox.flush()
        return reviewed

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to review booking: {str(e)}",
        )


def _check_payable(booking: Booking):
    if booking.vendor_id is None:
        raise HTTPException(
            status_code=400,
            detail="Booking has not been accepted by a vendor yet",
        )
    if booking.payment_status.is_paid:
        raise HTTPException(status_code=400, detail="Booking is already paid")
    if booking.status in (BookingStatus.CANCELLED, BookingStatus.REJECTED):
        raise HTTPException(
            status_code=400,
            detail=f"Cannot pay for a {booking.status.value} booking",
        )


@router.post("/bookings/{booking_id}/pay/wallet", response_model=Booking)
async def pay_with_wallet(
    booking_id: str,
    principal: Principal = Depends(customer),
) -> Booking:
    """
    Pay for an accepted booking from the wallet balance.

    Raises:
        400: No vendor yet, already paid or insufficient balance
    """
    _check_db_available()

    outbox = Outbox()
    try:
        with UnitOfWork() as uow:
            booking = _get_own_booking(uow, booking_id, principal.account_id)

            _check_payable(booking)

            balance = uow.users.adjust_wallet(principal.account_id, -booking.final_amount)
            if balance is None:
                raise HTTPException(status_code=400, detail="Insufficient wallet balance")

            transaction = record_transaction(
                uow,
                Role.USER,
                principal.account_id,
                TransactionType.DEBIT,
                booking.final_amount,
                booking_id=booking.id,
                payment_method=PaymentMethod.WALLET.value,
                description=f"Payment for booking {booking.booking_number}",
                balance_before=round(balance + booking.final_amount, 2),
                balance_after=balance,
            )

            paid = settle_online_payment(
                uow, booking, PaymentMethod.WALLET, transaction.id, outbox
            )
            if paid is None:
                raise HTTPException(status_code=400, detail="Booking is already paid")

            uow.commit()

        await outbox.flush()
        return paid

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to pay from wallet: {str(e)}",
        )


@router.post("/bookings/{booking_id}/pay/verify", response_model=Booking)
async def verify_payment(
    booking_id: str,
    request: RazorpayVerifyRequest,
    principal: Principal = Depends(customer),
) -> Booking:
    """
    Settle a booking paid through Razorpay checkout.

    Raises:
        400: Signature mismatch, no vendor yet or booking already paid
    """
    _check_db_available()

    if not verify_razorpay_signature(
        request.razorpay_order_id,
        request.razorpay_payment_id,
        request.razorpay_signature,
        config.RAZORPAY_KEY_SECRET,
    ):
        raise HTTPException(status_code=400, detail="Invalid payment signature")

    outbox = Outbox()
    try:
        with UnitOfWork() as uow:
            booking = _get_own_booking(uow, booking_id, principal.account_id)
            _check_payable(booking)

            record_transaction(
                uow,
                Role.USER,
                principal.account_id,
                TransactionType.PAYMENT,
                booking.final_amount,
                booking_id=booking.id,
                payment_method=PaymentMethod.RAZORPAY.value,
                description=f"Payment for booking {booking.booking_number}",
                reference_id=request.razorpay_payment_id,
                details={"razorpay_order_id": request.razorpay_order_id},
            )

            paid = settle_online_payment(
                uow,
                booking,
                PaymentMethod.RAZORPAY,
                request.razorpay_payment_id,
                outbox,
            )
            if paid is None:
                raise HTTPException(status_code=400, detail="Booking is already paid")

            uow.commit()

        await outbox.flush()
        return paid

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to verify payment: {str(e)}",
        )
