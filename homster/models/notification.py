from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, Field

from homster.models.account import Role


class NotificationType(StrEnum):
    """In-app notification types"""

    BOOKING_CREATED = "booking_created"
    BOOKING_REQUEST = "booking_request"
    BOOKING_REQUESTED = "booking_requested"
    BOOKING_ACCEPTED = "booking_accepted"
    BOOKING_CONFIRMED = "booking_confirmed"
    BOOKING_CANCELLED = "booking_cancelled"
    BOOKING_COMPLETED = "booking_completed"
    BOOKING_REJECTED = "booking_rejected"
    BOOKING_RESCHEDULED = "booking_rescheduled"
    JOB_ACCEPTED = "job_accepted"
    JOB_REJECTED = "job_rejected"
    JOB_CANCELLED = "job_cancelled"
    WORKER_ASSIGNED = "worker_assigned"
    WORKER_STARTED = "worker_started"
    WORKER_COMPLETED = "worker_completed"
    WORK_DONE = "work_done"
    WORK_COMPLETED = "work_completed"
    VENDOR_REACHED = "vendor_reached"
    JOURNEY_STARTED = "journey_started"
    VISIT_VERIFIED = "visit_verified"
    PAYMENT_RECEIVED = "payment_received"
    PAYMENT_SUCCESS = "payment_success"
    PAYMENT_FAILED = "payment_failed"
    PAYMENT_REFUNDED = "payment_refunded"
    REVIEW_SUBMITTED = "review_submitted"
    VENDOR_APPROVED = "vendor_approved"
    VENDOR_REJECTED = "vendor_rejected"
    WALLET_TOPUP = "wallet_topup"
    PAYOUT_REQUESTED = "payout_requested"
    PAYOUT_PROCESSED = "payout_processed"
    SCRAP_LISTED = "scrap_listed"
    NEW_SCRAP_ADDED = "new_scrap_added"
    SCRAP_ACCEPTED = "scrap_accepted"
    SCRAP_COMPLETED = "scrap_completed"
    GENERAL = "general"


class RelatedType(StrEnum):
    """Entity a notification points at"""

    BOOKING = "booking"
    PAYMENT = "payment"
    USER = "user"
    VENDOR = "vendor"
    WORKER = "worker"
    SERVICE = "service"
    SCRAP = "scrap"


class Notification(BaseModel):
    """Persisted in-app notification for one recipient"""

    id: str = Field(description="Internal notification identifier (UUID)")
    recipient_role: Role = Field(description="Role of the recipient")
    recipient_id: str = Field(description="Recipient account UUID")
    type: NotificationType = Field(default=NotificationType.GENERAL)
    title: str = Field(description="Short title")
    message: str = Field(description="Notification body")
    related_id: Optional[str] = Field(default=None)
    related_type: Optional[RelatedType] = Field(default=None)
    is_read: bool = Field(default=False)
    read_at: Optional[datetime] = Field(default=None)
    data: dict[str, Any] = Field(default_factory=dict, description="Extra payload")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class NotificationListResponse(BaseModel):
    """Paginated notification list"""

    notifications: list[Notification]
    total: int
    unread_count: int
    limit: int
    offset: int


class NotificationBulkResponse(BaseModel):
    """Result of a bulk read or delete"""

    updated: int = Field(description="Number of notifications affected")
