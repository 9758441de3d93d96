from datetime import datetime, timezone
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from homster.models.account import Address, Role


class BookingStatus(StrEnum):
    """Booking lifecycle status"""

    SEARCHING = "searching"  # Alerts out to nearby vendors
    REQUESTED = "requested"  # Open request visible to vendors
    AWAITING_PAYMENT = "awaiting_payment"
    PENDING = "pending"  # Vendor accepted, awaiting confirmation
    CONFIRMED = "confirmed"
    ACCEPTED = "accepted"
    ASSIGNED = "assigned"
    JOURNEY_STARTED = "journey_started"
    VISITED = "visited"
    IN_PROGRESS = "in_progress"
    WORK_DONE = "work_done"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


# Bookings a vendor may still claim
OPEN_STATUSES = (BookingStatus.SEARCHING, BookingStatus.REQUESTED)

# Terminal states
CLOSED_STATUSES = (
    BookingStatus.COMPLETED,
    BookingStatus.CANCELLED,
    BookingStatus.REJECTED,
)


class PaymentStatus(StrEnum):
    """Booking payment status"""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    REFUNDED = "refunded"
    COLLECTED_BY_VENDOR = "collected_by_vendor"

    @property
    def is_paid(self) -> bool:
        return self in (PaymentStatus.SUCCESS, PaymentStatus.COLLECTED_BY_VENDOR)


class PaymentMethod(StrEnum):
    """How the customer pays"""

    WALLET = "wallet"
    RAZORPAY = "razorpay"
    CASH = "cash"
    PAY_AT_HOME = "pay_at_home"

    @property
    def is_cash(self) -> bool:
        return self in (PaymentMethod.CASH, PaymentMethod.PAY_AT_HOME)


class WorkerResponse(StrEnum):
    """Worker reply to an assignment"""

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class TimeSlot(BaseModel):
    """Requested service window"""

    start: str = Field(description="Window start, e.g. 10:00")
    end: str = Field(description="Window end, e.g. 12:00")


class Booking(BaseModel):
    """
    A service booking placed by a user.

    Bookings start in `searching` while alerts are out, move to `pending`
    once a vendor claims them and then follow the vendor/worker lifecycle.
    """

    # Identity
    id: str = Field(description="Internal booking identifier (UUID)")
    booking_number: str = Field(description="Human readable booking number (BK...)")
    user_id: str = Field(description="Customer who placed the booking")
    vendor_id: Optional[str] = Field(default=None, description="Vendor handling the job")
    worker_id: Optional[str] = Field(default=None, description="Worker assigned to the job")

    # Service
    service_name: str = Field(description="Service requested")
    service_category: str = Field(default="General", description="Service category")
    description: Optional[str] = Field(default=None, description="Problem description")

    # Pricing
    base_price: float = Field(default=0, description="Price before tax")
    discount: float = Field(default=0, description="Discount applied")
    tax: float = Field(default=0, description="GST amount")
    final_amount: float = Field(description="Amount payable")
    admin_commission: float = Field(default=0, description="Platform commission")
    vendor_earnings: float = Field(default=0, description="Vendor share after commission")

    # Payment
    payment_status: PaymentStatus = Field(
        default=PaymentStatus.PENDING, description="Payment status"
    )
    payment_method: Optional[PaymentMethod] = Field(
        default=None, description="Payment method"
    )
    payment_id: Optional[str] = Field(default=None, description="Gateway payment ID")
    payment_otp: Optional[str] = Field(
        default=None, exclude=True, description="Cash collection OTP"
    )
    cash_collected: bool = Field(default=False, description="Cash collected on site")
    cash_collected_at: Optional[datetime] = Field(default=None)
    cash_collected_by: Optional[Role] = Field(
        default=None, description="Role of the collector"
    )
    cash_collector_id: Optional[str] = Field(default=None, description="Collector account")

    # Schedule
    address: Address = Field(description="Service address")
    scheduled_date: datetime = Field(description="Service date")
    scheduled_time: str = Field(description="Service time")
    time_slot: Optional[TimeSlot] = Field(default=None, description="Service window")

    # Lifecycle
    status: BookingStatus = Field(default=BookingStatus.SEARCHING)
    worker_response: Optional[WorkerResponse] = Field(default=None)
    current_wave: int = Field(default=0, description="Latest alert wave sent")
    accepted_at: Optional[datetime] = Field(default=None)
    assigned_at: Optional[datetime] = Field(default=None)
    started_at: Optional[datetime] = Field(default=None)
    completed_at: Optional[datetime] = Field(default=None)
    cancelled_at: Optional[datetime] = Field(default=None)
    cancellation_reason: Optional[str] = Field(default=None)
    cancelled_by: Optional[str] = Field(
        default=None, description="user, vendor, admin or system"
    )

    # Review
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    review: Optional[str] = Field(default=None)
    reviewed_at: Optional[datetime] = Field(default=None)

    # Notes
    user_notes: Optional[str] = Field(default=None)
    vendor_notes: Optional[str] = Field(default=None)
    worker_notes: Optional[str] = Field(default=None)

    # Worker payout
    is_worker_paid: bool = Field(default=False)
    worker_paid_at: Optional[datetime] = Field(default=None)

    # Timestamps
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation time",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last update time",
    )

    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES and self.vendor_id is None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "8f14e45f-ceea-467a-9a57-3c6f1c3b1e22",
                "booking_number": "BK12345678042",
                "user_id": "d5314b80-4aac-4bf2-940c-0a0ceda5bff4",
                "service_name": "AC Service",
                "service_category": "Appliance Repair",
                "base_price": 500,
                "tax": 90,
                "final_amount": 590,
                "status": "searching",
                "payment_status": "pending",
                "scheduled_time": "10:00 AM",
            }
        }
    )


# =============================================================================
# Request / response models
# =============================================================================


class BookingCreateRequest(BaseModel):
    """Request body for creating a booking"""

    service_name: str = Field(min_length=1, max_length=255)
    service_category: str = Field(default="General", max_length=100)
    description: Optional[str] = Field(default=None, max_length=2000)
    base_price: float = Field(default=0, ge=0, description="Price before tax")
    discount: float = Field(default=0, ge=0, description="Discount to apply")
    amount: Optional[float] = Field(
        default=None, gt=0, description="Tax-inclusive total, overrides base_price"
    )
    address: Address = Field(description="Service address")
    scheduled_date: datetime = Field(description="Service date")
    scheduled_time: str = Field(min_length=1, description="Service time")
    time_slot: Optional[TimeSlot] = Field(default=None)
    user_notes: Optional[str] = Field(default=None, max_length=1000)
    payment_method: Optional[PaymentMethod] = Field(default=None)

    @model_validator(mode="after")
    def _require_price(self):
        if self.amount is None and self.base_price <= 0:
            raise ValueError("Either amount or base_price must be provided")
        return self


class BookingListResponse(BaseModel):
    """Paginated booking list"""

    bookings: list[Booking] = Field(description="Bookings, newest first")
    total: int = Field(description="Total matching bookings")
    limit: int = Field(description="Page size")
    offset: int = Field(description="Offset of the first booking returned")


class CancelRequest(BaseModel):
    """Request body for cancelling or rejecting a booking"""

    reason: Optional[str] = Field(default=None, max_length=500)


class RescheduleRequest(BaseModel):
    """Request body for rescheduling"""

    scheduled_date: datetime
    scheduled_time: str = Field(min_length=1)
    time_slot: Optional[TimeSlot] = Field(default=None)


class ReviewRequest(BaseModel):
    """Request body for rating a completed booking"""

    rating: int = Field(ge=1, le=5)
    review: Optional[str] = Field(default=None, max_length=1000)


class StatusUpdateRequest(BaseModel):
    """Request body for a status transition"""

    status: BookingStatus


class NotesRequest(BaseModel):
    """Request body for booking notes"""

    notes: str = Field(min_length=1, max_length=1000)


class AssignWorkerRequest(BaseModel):
    """Request body for assigning a worker"""

    worker_id: str


class WorkerRespondRequest(BaseModel):
    """Worker reply to an assignment"""

    response: WorkerResponse

    @model_validator(mode="after")
    def _require_decision(self):
        if self.response == WorkerResponse.PENDING:
            raise ValueError("response must be ACCEPTED or REJECTED")
        return self


class RazorpayVerifyRequest(BaseModel):
    """Razorpay checkout result"""

    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str
