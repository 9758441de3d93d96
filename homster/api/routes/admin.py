"""
Admin API routes.

Platform oversight: browsing bookings, onboarding vendors and settling
vendor payout requests.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from homster.api.auth import Principal, require_roles
from homster.db import DatabaseConnection, UnitOfWork
from homster.models.account import ApprovalStatus, Role, Vendor, VendorListResponse
from homster.models.booking import BookingListResponse, BookingStatus
from homster.models.notification import NotificationType, RelatedType
from homster.models.wallet import (
    TransactionStatus,
    Withdrawal,
    WithdrawalDecisionRequest,
    WithdrawalListResponse,
    WithdrawalStatus,
)
from homster.services.notifications import Outbox
from homster.services.pricing import tds_split

logger = logging.getLogger(__name__)

router = APIRouter()

admin_only = require_roles(Role.ADMIN)


def _check_db_available():
    """Check if database is available, raise 503 if not."""
    if not DatabaseConnection.is_initialized():
        raise HTTPException(
            status_code=503,
            detail="Database not available",
        )


def _parse_enum(enum_class, value: str | None, name: str):
    if not value:
        return None
    try:
        return enum_class(value)
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid {name}: {value}. Valid values: {[e.value for e in enum_class]}",
        )


def _get_pending_withdrawal(uow: UnitOfWork, withdrawal_id: str) -> Withdrawal:
    withdrawal = uow.withdrawals.get_by_id(withdrawal_id)
    if withdrawal is None:
        raise HTTPException(
            status_code=404,
            detail=f"Withdrawal not found: {withdrawal_id}",
        )
    if withdrawal.status != WithdrawalStatus.PENDING:
        raise HTTPException(
            status_code=400,
            detail=f"Withdrawal is already {withdrawal.status.value}",
        )
    return withdrawal


# =============================================================================
# Bookings
# =============================================================================


@router.get("/admin/bookings", response_model=BookingListResponse)
async def list_all_bookings(
    principal: Principal = Depends(admin_only),
    status: str | None = Query(default=None, description="Filter by booking status"),
    vendor_id: str | None = Query(default=None, description="Filter by vendor"),
    user_id: str | None = Query(default=None, description="Filter by user"),
    limit: int = Query(default=50, ge=1, le=100, description="Maximum bookings to return"),
    offset: int = Query(default=0, ge=0, description="Number of bookings to skip"),
) -> BookingListResponse:
    """List every booking on the platform, newest first."""
    _check_db_available()

    booking_status = _parse_enum(BookingStatus, status, "status")

    with UnitOfWork() as uow:
        bookings = uow.bookings.list_all(
            status=booking_status,
            vendor_id=vendor_id,
            user_id=user_id,
            limit=limit,
            offset=offset,
        )
        total = uow.bookings.count_all(
            status=booking_status, vendor_id=vendor_id, user_id=user_id
        )

        return BookingListResponse(
            bookings=bookings,
            total=total,
            limit=limit,
            offset=offset,
        )


# =============================================================================
# Vendors
# =============================================================================


@router.get("/admin/vendors", response_model=VendorListResponse)
async def list_vendors(
    principal: Principal = Depends(admin_only),
    approval_status: str | None = Query(default=None, description="Filter by approval status"),
    limit: int = Query(default=50, ge=1, le=100, description="Maximum vendors to return"),
    offset: int = Query(default=0, ge=0, description="Number of vendors to skip"),
) -> VendorListResponse:
    _check_db_available()

    approval = _parse_enum(ApprovalStatus, approval_status, "approval_status")

    with UnitOfWork() as uow:
        vendors = uow.vendors.list_by_approval(approval, limit=limit, offset=offset)
        total = uow.vendors.count_by_approval(approval)

        return VendorListResponse(
            vendors=vendors,
            total=total,
            limit=limit,
            offset=offset,
        )


async def _decide_vendor(vendor_id: str, approval_status: ApprovalStatus) -> Vendor:
    outbox = Outbox()

    with UnitOfWork() as uow:
        vendor = uow.vendors.set_approval(vendor_id, approval_status)
        if vendor is None:
            raise HTTPException(
                status_code=404,
                detail=f"Vendor not found: {vendor_id}",
            )

        if approval_status == ApprovalStatus.APPROVED:
            notification = (
                NotificationType.VENDOR_APPROVED,
                "Account approved",
                "Your vendor account is approved. You can now sign in and take bookings.",
            )
        else:
            notification = (
                NotificationType.VENDOR_REJECTED,
                "Account not approved",
                "Your vendor application was not approved.",
            )
        outbox.notify(
            uow,
            Role.VENDOR,
            vendor_id,
            *notification,
            related_id=vendor_id,
            related_type=RelatedType.VENDOR,
        )
        uow.commit()

    logger.info(
        "Vendor approval changed",
        extra={"json_fields": {"vendor_id": vendor_id, "approval_status": approval_status.value}},
    )
    await outbox.flush()
    return vendor


@router.post("/admin/vendors/{vendor_id}/approve", response_model=Vendor)
async def approve_vendor(
    vendor_id: str,
    principal: Principal = Depends(admin_only),
) -> Vendor:
    _check_db_available()

    try:
        return await _decide_vendor(vendor_id, ApprovalStatus.APPROVED)
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to approve vendor: {str(e)}",
        )


@router.post("/admin/vendors/{vendor_id}/reject", response_model=Vendor)
async def reject_vendor(
    vendor_id: str,
    principal: Principal = Depends(admin_only),
) -> Vendor:
    _check_db_available()

    try:
        return await _decide_vendor(vendor_id, ApprovalStatus.REJECTED)
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to reject vendor: {str(e)}",
        )


# =============================================================================
# Withdrawals
# =============================================================================


@router.get("/admin/withdrawals", response_model=WithdrawalListResponse)
async def list_withdrawals(
    principal: Principal = Depends(admin_only),
    status: str | None = Query(default=None, description="Filter by withdrawal status"),
    limit: int = Query(default=20, ge=1, le=100, description="Maximum withdrawals to return"),
    offset: int = Query(default=0, ge=0, description="Number of withdrawals to skip"),
) -> WithdrawalListResponse:
    _check_db_available()

    withdrawal_status = _parse_enum(WithdrawalStatus, status, "status")

    with UnitOfWork() as uow:
        withdrawals = uow.withdrawals.list_withdrawals(
            status=withdrawal_status, limit=limit, offset=offset
        )
        total = uow.withdrawals.count_withdrawals(status=withdrawal_status)

        return WithdrawalListResponse(
            withdrawals=withdrawals,
            total=total,
            limit=limit,
            offset=offset,
        )


@router.post("/admin/withdrawals/{withdrawal_id}/approve", response_model=Withdrawal)
async def approve_withdrawal(
    withdrawal_id: str,
    request: WithdrawalDecisionRequest | None = None,
    principal: Principal = Depends(admin_only),
) -> Withdrawal:
    """
    Approve a payout, withholding TDS.

    Raises:
        404: Withdrawal not found
        400: Withdrawal is not pending
    """
    _check_db_available()

    request = request or WithdrawalDecisionRequest()
    outbox = Outbox()

    try:
        with UnitOfWork() as uow:
            withdrawal = _get_pending_withdrawal(uow, withdrawal_id)
            tds_amount, net_amount = tds_split(withdrawal.amount)

            approved = uow.withdrawals.decide(
                withdrawal_id,
                WithdrawalStatus.APPROVED,
                principal.account_id,
                tds_amount=tds_amount,
                net_amount=net_amount,
                transaction_reference=request.transaction_reference,
                admin_notes=request.admin_notes,
            )
            if approved is None:
                raise HTTPException(
                    status_code=400,
                    detail="Withdrawal was processed concurrently",
                )

            if withdrawal.transaction_id:
                uow.transactions.set_status(
                    withdrawal.transaction_id,
                    TransactionStatus.COMPLETED,
                    reference_id=request.transaction_reference,
                    details={"tds_amount": tds_amount, "net_amount": net_amount},
                )
            uow.vendors.add_withdrawn(withdrawal.vendor_id, withdrawal.amount)

            outbox.notify(
                uow,
                Role.VENDOR,
                withdrawal.vendor_id,
                NotificationType.PAYOUT_PROCESSED,
                "Payout processed",
                f"Your payout of ₹{withdrawal.amount:.2f} was approved. "
                f"₹{net_amount:.2f} will be transferred after ₹{tds_amount:.2f} TDS.",
                related_id=withdrawal_id,
                related_type=RelatedType.PAYMENT,
                data={"tds_amount": tds_amount, "net_amount": net_amount},
            )
            uow.commit()

        await outbox.flush()
        return approved

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to approve withdrawal: {str(e)}",
        )


@router.post("/admin/withdrawals/{withdrawal_id}/reject", response_model=Withdrawal)
async def reject_withdrawal(
    withdrawal_id: str,
    request: WithdrawalDecisionRequest | None = None,
    principal: Principal = Depends(admin_only),
) -> Withdrawal:
    """
    Reject a payout and return the held amount to the vendor's earnings.

    Raises:
        404: Withdrawal not found
        400: Withdrawal is not pending
    """
    _check_db_available()

    request = request or WithdrawalDecisionRequest()
    outbox = Outbox()

    try:
        with UnitOfWork() as uow:
            withdrawal = _get_pending_withdrawal(uow, withdrawal_id)

            rejected = uow.withdrawals.decide(
                withdrawal_id,
                WithdrawalStatus.REJECTED,
                principal.account_id,
                rejection_reason=request.rejection_reason,
                admin_notes=request.admin_notes,
            )
            if rejected is None:
                raise HTTPException(
                    status_code=400,
                    detail="Withdrawal was processed concurrently",
                )

            uow.vendors.credit_earnings(withdrawal.vendor_id, withdrawal.amount)
            if withdrawal.transaction_id:
                uow.transactions.set_status(
                    withdrawal.transaction_id, TransactionStatus.CANCELLED
                )

            reason = f" Reason: {request.rejection_reason}" if request.rejection_reason else ""
            outbox.notify(
                uow,
                Role.VENDOR,
                withdrawal.vendor_id,
                NotificationType.PAYOUT_PROCESSED,
                "Payout rejected",
                f"Your payout of ₹{withdrawal.amount:.2f} was rejected and returned "
                f"to your earnings.{reason}",
                related_id=withdrawal_id,
                related_type=RelatedType.PAYMENT,
            )
            uow.commit()

        await outbox.flush()
        return rejected

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to reject withdrawal: {str(e)}",
        )
