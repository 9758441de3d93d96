"""
Wallet API routes for users, vendors and workers.

Users hold a prepaid balance topped up through Razorpay. Vendors hold a
ledger of cash dues against earnings and request payouts from earnings.
Workers are paid per job by their vendor.
"""

from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Query, status

from homster import config
from homster.api.auth import Principal, require_roles
from homster.db import DatabaseConnection, UnitOfWork
from homster.models.account import Role
from homster.models.booking import BookingStatus, PaymentMethod
from homster.models.notification import NotificationType, RelatedType
from homster.models.wallet import (
    PayWorkerRequest,
    TransactionListResponse,
    TransactionStatus,
    TransactionType,
    UserWalletResponse,
    VendorWalletResponse,
    WalletTopupRequest,
    Withdrawal,
    WithdrawalCreateRequest,
    WithdrawalListResponse,
    WithdrawalStatus,
    WorkerWalletResponse,
)
from homster.services.notifications import Outbox
from homster.services.payments import record_transaction
from homster.utils.hash import verify_razorpay_signature

router = APIRouter()

customer = require_roles(Role.USER)
vendor_only = require_roles(Role.VENDOR)
worker_only = require_roles(Role.WORKER)


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


def _list_transactions(
    role: Role,
    owner_id: str,
    type: str | None,
    status: str | None,
    limit: int,
    offset: int,
) -> TransactionListResponse:
    transaction_type = _parse_enum(TransactionType, type, "type")
    transaction_status = _parse_enum(TransactionStatus, status, "status")

    with UnitOfWork() as uow:
        transactions = uow.transactions.list_for_owner(
            role,
            owner_id,
            type=transaction_type,
            status=transaction_status,
            limit=limit,
            offset=offset,
        )
        total = uow.transactions.count_for_owner(
            role, owner_id, type=transaction_type, status=transaction_status
        )
        return TransactionListResponse(
            transactions=transactions,
            total=total,
            limit=limit,
            offset=offset,
        )


# =============================================================================
# User wallet
# =============================================================================


@router.get("/users/wallet", response_model=UserWalletResponse)
async def get_user_wallet(
    principal: Principal = Depends(customer),
) -> UserWalletResponse:
    _check_db_available()

    with UnitOfWork() as uow:
        user = uow.users.get_by_id(principal.account_id)
        if user is None:
            raise HTTPException(status_code=404, detail="User not found")
        return UserWalletResponse(balance=user.wallet_balance)


@router.post("/users/wallet/topup", response_model=UserWalletResponse)
async def topup_wallet(
    request: WalletTopupRequest,
    principal: Principal = Depends(customer),
) -> UserWalletResponse:
    """
    Credit a verified Razorpay payment to the wallet.

    Raises:
        400: Amount below the minimum top-up or signature mismatch
    """
    _check_db_available()

    if request.amount < config.MIN_WALLET_TOPUP:
        raise HTTPException(
            status_code=400,
            detail=f"Minimum top-up amount is ₹{config.MIN_WALLET_TOPUP:.0f}",
        )
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
            balance = uow.users.adjust_wallet(principal.account_id, request.amount)
            if balance is None:
                raise HTTPException(status_code=404, detail="User not found")

            record_transaction(
                uow,
                Role.USER,
                principal.account_id,
                TransactionType.CREDIT,
                request.amount,
                payment_method=PaymentMethod.RAZORPAY.value,
                description="Wallet top-up",
                reference_id=request.razorpay_payment_id,
                balance_before=round(balance - request.amount, 2),
                balance_after=balance,
                details={"razorpay_order_id": request.razorpay_order_id},
            )
            outbox.notify(
                uow,
                Role.USER,
                principal.account_id,
                NotificationType.WALLET_TOPUP,
                "Wallet topped up",
                f"₹{request.amount:.2f} added to your wallet.",
                related_type=RelatedType.PAYMENT,
                data={"balance": balance},
            )
            uow.commit()

        await outbox.flush()
        return UserWalletResponse(balance=balance)

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to top up wallet: {str(e)}",
        )


@router.get("/users/wallet/transactions", response_model=TransactionListResponse)
async def list_user_transactions(
    principal: Principal = Depends(customer),
    type: str | None = Query(default=None, description="Filter by transaction type"),
    status: str | None = Query(default=None, description="Filter by transaction status"),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> TransactionListResponse:
    _check_db_available()
    return _list_transactions(Role.USER, principal.account_id, type, status, limit, offset)


# =============================================================================
# Vendor wallet
# =============================================================================


@router.get("/vendors/wallet", response_model=VendorWalletResponse)
async def get_vendor_wallet(
    principal: Principal = Depends(vendor_only),
) -> VendorWalletResponse:
    """Dues, earnings and block state of the vendor's cash ledger."""
    _check_db_available()

    with UnitOfWork() as uow:
        vendor = uow.vendors.get_by_id(principal.account_id)
        if vendor is None:
            raise HTTPException(status_code=404, detail="Vendor not found")

        wallet = vendor.wallet
        return VendorWalletResponse(
            dues=wallet.dues,
            earnings=wallet.earnings,
            net_owed=wallet.net_owed,
            total_cash_collected=wallet.total_cash_collected,
            total_withdrawn=wallet.total_withdrawn,
            cash_limit=wallet.cash_limit,
            is_blocked=wallet.is_blocked,
            block_reason=wallet.block_reason,
        )


@router.get("/vendors/wallet/transactions", response_model=TransactionListResponse)
async def list_vendor_transactions(
    principal: Principal = Depends(vendor_only),
    type: str | None = Query(default=None, description="Filter by transaction type"),
    status: str | None = Query(default=None, description="Filter by transaction status"),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> TransactionListResponse:
    _check_db_available()
    return _list_transactions(Role.VENDOR, principal.account_id, type, status, limit, offset)


@router.post(
    "/vendors/wallet/withdraw",
    response_model=Withdrawal,
    status_code=status.HTTP_201_CREATED,
)
async def request_withdrawal(
    request: WithdrawalCreateRequest,
    principal: Principal = Depends(vendor_only),
) -> Withdrawal:
    """
    Request a payout from earnings.

    The amount is taken from earnings immediately and held until an admin
    approves or rejects the payout.

    Raises:
        400: Amount exceeds available earnings
    """
    _check_db_available()

    outbox = Outbox()
    try:
        with UnitOfWork() as uow:
            vendor = uow.vendors.debit_earnings(principal.account_id, request.amount)
            if vendor is None:
                raise HTTPException(status_code=400, detail="Insufficient earnings")

            transaction = record_transaction(
                uow,
                Role.VENDOR,
                principal.account_id,
                TransactionType.WITHDRAWAL,
                request.amount,
                status=TransactionStatus.PENDING,
                description="Payout request",
                balance_before=round(vendor.wallet.earnings + request.amount, 2),
                balance_after=vendor.wallet.earnings,
            )
            withdrawal = uow.withdrawals.create(
                Withdrawal(
                    id=str(uuid4()),
                    vendor_id=principal.account_id,
                    transaction_id=transaction.id,
                    amount=request.amount,
                    bank_details=request.bank_details,
                )
            )
            outbox.notify_admins(
                uow,
                NotificationType.PAYOUT_REQUESTED,
                "Payout requested",
                f"{vendor.business_name or vendor.name} requested a payout of "
                f"₹{request.amount:.2f}.",
                related_id=withdrawal.id,
                related_type=RelatedType.PAYMENT,
                data={"vendor_id": principal.account_id},
            )
            uow.commit()

        await outbox.flush()
        return withdrawal

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to request withdrawal: {str(e)}",
        )


@router.get("/vendors/wallet/withdrawals", response_model=WithdrawalListResponse)
async def list_vendor_withdrawals(
    principal: Principal = Depends(vendor_only),
    status: str | None = Query(default=None, description="Filter by withdrawal status"),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> WithdrawalListResponse:
    _check_db_available()
    withdrawal_status = _parse_enum(WithdrawalStatus, status, "status")

    with UnitOfWork() as uow:
        withdrawals = uow.withdrawals.list_withdrawals(
            vendor_id=principal.account_id,
            status=withdrawal_status,
            limit=limit,
            offset=offset,
        )
        total = uow.withdrawals.count_withdrawals(
            vendor_id=principal.account_id, status=withdrawal_status
        )
        return WithdrawalListResponse(
            withdrawals=withdrawals,
            total=total,
            limit=limit,
            offset=offset,
        )


@router.post("/vendors/wallet/pay-worker")
async def pay_worker(
    request: PayWorkerRequest,
    principal: Principal = Depends(vendor_only),
) -> dict:
    """
    Pay a worker for a completed job.

    Each job can be paid once.

    Raises:
        404: Booking not found or not the vendor's
        400: Job not completed, no worker, or already paid
    """
    _check_db_available()

    vendor_id = principal.account_id
    outbox = Outbox()

    try:
        with UnitOfWork() as uow:
            booking = uow.bookings.get_by_id(request.booking_id)
            if booking is None or booking.vendor_id != vendor_id:
                raise HTTPException(
                    status_code=404,
                    detail=f"Booking not found: {request.booking_id}",
                )
            if booking.status != BookingStatus.COMPLETED:
                raise HTTPException(
                    status_code=400,
                    detail="Workers can only be paid for completed jobs",
                )
            if booking.worker_id is None:
                raise HTTPException(status_code=400, detail="No worker on this booking")
            if booking.is_worker_paid:
                raise HTTPException(status_code=400, detail="Worker already paid for this job")

            if uow.bookings.mark_worker_paid(booking.id, vendor_id) is None:
                raise HTTPException(status_code=400, detail="Worker already paid for this job")

            worker = uow.workers.credit_wallet(booking.worker_id, request.amount)
            if worker is None:
                raise HTTPException(status_code=404, detail="Worker not found")

            description = f"Payment for job {booking.booking_number}"
            record_transaction(
                uow,
                Role.VENDOR,
                vendor_id,
                TransactionType.WORKER_PAYMENT,
                request.amount,
                booking_id=booking.id,
                description=description,
                details={"worker_id": worker.id},
            )
            record_transaction(
                uow,
                Role.WORKER,
                worker.id,
                TransactionType.WORKER_PAYMENT,
                request.amount,
                booking_id=booking.id,
                description=description,
                balance_before=round(worker.wallet_balance - request.amount, 2),
                balance_after=worker.wallet_balance,
                details={"vendor_id": vendor_id},
            )
            outbox.notify(
                uow,
                Role.WORKER,
                worker.id,
                NotificationType.PAYMENT_RECEIVED,
                "Payment received",
                f"₹{request.amount:.2f} received for job {booking.booking_number}.",
                related_id=booking.id,
                related_type=RelatedType.PAYMENT,
            )
            uow.commit()

        await outbox.flush()
        return {
            "message": "Worker paid",
            "booking_id": booking.id,
            "worker_id": worker.id,
            "worker_balance": worker.wallet_balance,
        }

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to pay worker: {str(e)}",
        )


# =============================================================================
# Worker wallet
# =============================================================================


@router.get("/workers/wallet", response_model=WorkerWalletResponse)
async def get_worker_wallet(
    principal: Principal = Depends(worker_only),
) -> WorkerWalletResponse:
    """Balance plus completed jobs the vendor has not paid for yet."""
    _check_db_available()

    with UnitOfWork() as uow:
        worker = uow.workers.get_by_id(principal.account_id)
        if worker is None:
            raise HTTPException(status_code=404, detail="Worker not found")

        return WorkerWalletResponse(
            balance=worker.wallet_balance,
            pending_bookings=uow.bookings.list_unpaid_for_worker(principal.account_id),
        )


@router.get("/workers/wallet/transactions", response_model=TransactionListResponse)
async def list_worker_transactions(
    principal: Principal = Depends(worker_only),
    type: str | None = Query(default=None, description="Filter by transaction type"),
    status: str | None = Query(default=None, description="Filter by transaction status"),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> TransactionListResponse:
    _check_db_available()
    return _list_transactions(Role.WORKER, principal.account_id, type, status, limit, offset)
