from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, Field

from homster.models.account import Role
from homster.models.booking import Booking, RazorpayVerifyRequest


class TransactionType(StrEnum):
    """Ledger entry type"""

    CREDIT = "credit"
    DEBIT = "debit"
    REFUND = "refund"
    WITHDRAWAL = "withdrawal"
    COMMISSION = "commission"
    CASH_COLLECTED = "cash_collected"
    SETTLEMENT = "settlement"
    WORKER_PAYMENT = "worker_payment"
    EARNINGS_CREDIT = "earnings_credit"
    TDS_DEDUCTION = "tds_deduction"
    PAYMENT = "payment"


class TransactionStatus(StrEnum):
    """Ledger entry status"""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class WithdrawalStatus(StrEnum):
    """Vendor payout request status"""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Transaction(BaseModel):
    """Wallet ledger entry owned by a user, vendor or worker"""

    id: str = Field(description="Internal transaction identifier (UUID)")
    owner_role: Role = Field(description="Role of the wallet owner")
    owner_id: str = Field(description="Wallet owner account UUID")
    booking_id: Optional[str] = Field(default=None)
    type: TransactionType
    amount: float = Field(description="Amount moved, always positive")
    status: TransactionStatus = Field(default=TransactionStatus.COMPLETED)
    payment_method: Optional[str] = Field(default=None)
    description: Optional[str] = Field(default=None)
    reference_id: Optional[str] = Field(default=None, description="Gateway or payout ref")
    balance_before: Optional[float] = Field(default=None)
    balance_after: Optional[float] = Field(default=None)
    details: dict[str, Any] = Field(default_factory=dict, description="Extra context")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class BankDetails(BaseModel):
    """Payout destination"""

    account_holder: Optional[str] = None
    account_number: Optional[str] = None
    ifsc: Optional[str] = None
    upi_id: Optional[str] = None


class Withdrawal(BaseModel):
    """Vendor payout request"""

    id: str = Field(description="Internal withdrawal identifier (UUID)")
    vendor_id: str
    transaction_id: Optional[str] = Field(default=None, description="Linked ledger entry")
    amount: float = Field(gt=0)
    status: WithdrawalStatus = Field(default=WithdrawalStatus.PENDING)
    bank_details: Optional[BankDetails] = Field(default=None)
    tds_amount: float = Field(default=0)
    net_amount: Optional[float] = Field(default=None)
    transaction_reference: Optional[str] = Field(default=None)
    admin_notes: Optional[str] = Field(default=None)
    rejection_reason: Optional[str] = Field(default=None)
    processed_by: Optional[str] = Field(default=None)
    processed_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# =============================================================================
# Request / response models
# =============================================================================


class WalletTopupRequest(RazorpayVerifyRequest):
    """Verified Razorpay payment to add to the wallet"""

    amount: float = Field(gt=0)


class WithdrawalCreateRequest(BaseModel):
    """Request body for a vendor payout"""

    amount: float = Field(gt=0)
    bank_details: Optional[BankDetails] = Field(default=None)


class WithdrawalDecisionRequest(BaseModel):
    """Admin decision on a payout"""

    transaction_reference: Optional[str] = Field(default=None)
    admin_notes: Optional[str] = Field(default=None, max_length=1000)
    rejection_reason: Optional[str] = Field(default=None, max_length=1000)


class PayWorkerRequest(BaseModel):
    """Request body for a vendor paying a worker for a job"""

    booking_id: str
    amount: float = Field(gt=0)


class CashInitiateRequest(BaseModel):
    """Request body to start on-site cash collection"""

    total_amount: Optional[float] = Field(
        default=None, gt=0, description="Final bill, replaces the booking amount"
    )


class CashConfirmRequest(BaseModel):
    """Request body to confirm cash collection"""

    otp: str = Field(min_length=4, max_length=6)
    amount: Optional[float] = Field(default=None, gt=0)


class UserWalletResponse(BaseModel):
    balance: float


class VendorWalletResponse(BaseModel):
    """Vendor wallet summary"""

    dues: float
    earnings: float
    net_owed: float
    total_cash_collected: float
    total_withdrawn: float
    cash_limit: float
    is_blocked: bool
    block_reason: Optional[str] = None


class WorkerWalletResponse(BaseModel):
    """Worker balance and jobs awaiting payout"""

    balance: float
    pending_bookings: list[Booking]


class TransactionListResponse(BaseModel):
    transactions: list[Transaction]
    total: int
    limit: int
    offset: int


class WithdrawalListResponse(BaseModel):
    withdrawals: list[Withdrawal]
    total: int
    limit: int
    offset: int
