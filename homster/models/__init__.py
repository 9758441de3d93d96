"""
Homster data models.

This package contains the Pydantic models for the Homster marketplace.
"""

# Account models
from homster.models.account import (
    Address,
    Admin,
    ApprovalStatus,
    Role,
    User,
    Vendor,
    VendorWallet,
    Worker,
    WorkerStatus,
)

# Alert models
from homster.models.alert import AlertStatus, BookingAlert, DispatchOutcome

# Booking models
from homster.models.booking import (
    Booking,
    BookingStatus,
    PaymentMethod,
    PaymentStatus,
    TimeSlot,
    WorkerResponse,
)

# Notification models
from homster.models.notification import Notification, NotificationType, RelatedType

# Scrap models
from homster.models.scrap import Scrap, ScrapAddress, ScrapStatus

# Wallet models
from homster.models.wallet import (
    Transaction,
    TransactionStatus,
    TransactionType,
    Withdrawal,
    WithdrawalStatus,
)

__all__ = [
    # Account
    "Address",
    "Admin",
    "ApprovalStatus",
    "Role",
    "User",
    "Vendor",
    "VendorWallet",
    "Worker",
    "WorkerStatus",
    # Alert
    "AlertStatus",
    "BookingAlert",
    "DispatchOutcome",
    # Booking
    "Booking",
    "BookingStatus",
    "PaymentMethod",
    "PaymentStatus",
    "TimeSlot",
    "WorkerResponse",
    # Notification
    "Notification",
    "NotificationType",
    "RelatedType",
    # Scrap
    "Scrap",
    "ScrapAddress",
    "ScrapStatus",
    # Wallet
    "Transaction",
    "TransactionStatus",
    "TransactionType",
    "Withdrawal",
    "WithdrawalStatus",
]
