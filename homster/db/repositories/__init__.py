"""
Repository implementations for the Homster database.

Repositories provide a clean interface for database CRUD operations,
encapsulating SQLAlchemy queries and Pydantic model conversions.
"""

from homster.db.repositories.admin import AdminRepository
from homster.db.repositories.booking import BookingRepository
from homster.db.repositories.booking_alert import BookingAlertRepository
from homster.db.repositories.notification import NotificationRepository
from homster.db.repositories.scrap import ScrapRepository
from homster.db.repositories.transaction import TransactionRepository
from homster.db.repositories.user import UserRepository
from homster.db.repositories.vendor import VendorRepository
from homster.db.repositories.withdrawal import WithdrawalRepository
from homster.db.repositories.worker import WorkerRepository

__all__ = [
    "AdminRepository",
    "BookingAlertRepository",
    "BookingRepository",
    "NotificationRepository",
    "ScrapRepository",
    "TransactionRepository",
    "UserRepository",
    "VendorRepository",
    "WithdrawalRepository",
    "WorkerRepository",
]
