"""
On-site cash collection API routes.

The vendor (or the assigned worker) starts collection, which sends the
customer an OTP. The customer pays, reads the OTP out, and confirming it
records the cash on the vendor's ledger.
"""

import hmac

from fastapi import APIRouter, Depends, HTTPException

from homster.api.auth import Principal, require_roles
from homster.db import DatabaseConnection, UnitOfWork
from homster.models.account import Role
from homster.models.booking import Booking
from homster.models.wallet import CashConfirmRequest, CashInitiateRequest
from homster.services.notifications import Outbox
from homster.services.payments import confirm_cash_collection, initiate_cash_collection

router = APIRouter()

collector = require_roles(Role.VENDOR, Role.WORKER)


def _check_db_available():
    """Check if database is available, raise 503 if not."""
    if not DatabaseConnection.is_initialized():
        raise HTTPException(
            status_code=503,
            detail="Database not available",
        )


def _get_collectable_booking(
    uow: UnitOfWork, booking_id: str, principal: Principal
) -> Booking:
    """Cash booking the caller is responsible for, unpaid."""
    booking = uow.bookings.get_by_id(booking_id)
    holder = None
    if booking is not None:
        holder = booking.vendor_id if principal.role == Role.VENDOR else booking.worker_id
    if holder != principal.account_id:
        raise HTTPException(
            status_code=404,
            detail=f"Booking not found: {booking_id}",
        )

    if booking.payment_method is None or not booking.payment_method.is_cash:
        raise HTTPException(status_code=400, detail="Booking is not a cash booking")
    if booking.payment_status.is_paid:
        raise HTTPException(status_code=400, detail="Booking is already paid")
    return booking


@router.post("/bookings/cash/{booking_id}/initiate")
async def initiate_cash(
    booking_id: str,
    request: CashInitiateRequest | None = None,
    principal: Principal = Depends(collector),
) -> dict:
    """
    Start cash collection and send the customer an OTP.

    The OTP goes only to the customer, never back to the collector.

    Raises:
        404: Booking not found or not the caller's
        400: Not a cash booking, or already paid
    """
    _check_db_available()

    total_amount = request.total_amount if request else None
    outbox = Outbox()

    try:
        with UnitOfWork() as uow:
            booking = _get_collectable_booking(uow, booking_id, principal)
            updated, _ = initiate_cash_collection(uow, booking, outbox, total_amount)
            uow.commit()

        await outbox.flush()
        return {
            "message": "OTP sent to customer",
            "booking_id": booking_id,
            "amount": updated.final_amount,
        }

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to initiate cash collection: {str(e)}",
        )


@router.post("/bookings/cash/{booking_id}/confirm", response_model=Booking)
async def confirm_cash(
    booking_id: str,
    request: CashConfirmRequest,
    principal: Principal = Depends(collector),
) -> Booking:
    """
    Confirm cash with the customer's OTP.

    Raises:
        400: Collection not started, wrong OTP, or already paid
    """
    _check_db_available()

    outbox = Outbox()
    try:
        with UnitOfWork() as uow:
            booking = _get_collectable_booking(uow, booking_id, principal)

            if not booking.payment_otp:
                raise HTTPException(
                    status_code=400,
                    detail="Cash collection has not been started",
                )
            if not hmac.compare_digest(booking.payment_otp, request.otp):
                raise HTTPException(status_code=400, detail="Invalid OTP")

            updated = confirm_cash_collection(
                uow,
                booking,
                principal.role,
                principal.account_id,
                outbox,
                amount=request.amount,
            )
            if updated is None:
                raise HTTPException(status_code=400, detail="Booking is already paid")

            uow.commit()

        await outbox.flush()
        return updated

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to confirm cash collection: {str(e)}",
        )
