"""
Unit of Work pattern for transaction coordination.

Provides a clean way to work with multiple repositories within a single transaction.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, TypeVar

from homster.db.connection import DatabaseConnection
from homster.db.repositories.admin import AdminRepository
from homster.db.repositories.base import AccountRepository
from homster.db.repositories.booking import BookingRepository
from homster.db.repositories.booking_alert import BookingAlertRepository
from homster.db.repositories.notification import NotificationRepository
from homster.db.repositories.scrap import ScrapRepository
from homster.db.repositories.transaction import TransactionRepository
from homster.db.repositories.user import UserRepository
from homster.db.repositories.vendor import VendorRepository
from homster.db.repositories.withdrawal import WithdrawalRepository
from homster.db.repositories.worker import WorkerRepository
from homster.models.account import Role

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

RepoT = TypeVar("RepoT")


class UnitOfWork:
    """
    Unit of Work for managing database transactions.

    Coordinates multiple repositories within a single transaction,
    with automatic rollback when the block raises.

    Usage:
        with UnitOfWork() as uow:
            booking = uow.bookings.claim_for_vendor(booking_id, vendor_id)
            uow.booking_alerts.withdraw_others(booking_id, vendor_id)
            uow.commit()
    """

    def __init__(self):
        self._session: Session | None = None
        self._repositories: dict[type, object] = {}

    def __enter__(self) -> UnitOfWork:
        self._session = DatabaseConnection.get_session()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.rollback()
        self._close()
        return False  # Don't suppress exceptions

    @property
    def session(self) -> Session:
        """Get current session (raises if not in context)."""
        if self._session is None:
            raise RuntimeError("UnitOfWork must be used within a context manager")
        return self._session

    def _repository(self, repo_class: Callable[[Session], RepoT]) -> RepoT:
        """Create a repository lazily, once per unit of work."""
        repo = self._repositories.get(repo_class)
        if repo is None:
            repo = repo_class(self.session)
            self._repositories[repo_class] = repo
        return repo

    @property
    def users(self) -> UserRepository:
        return self._repository(UserRepository)

    @property
    def vendors(self) -> VendorRepository:
        return self._repository(VendorRepository)

    @property
    def workers(self) -> WorkerRepository:
        return self._repository(WorkerRepository)

    @property
    def admins(self) -> AdminRepository:
        return self._repository(AdminRepository)

    @property
    def bookings(self) -> BookingRepository:
        return self._repository(BookingRepository)

    @property
    def booking_alerts(self) -> BookingAlertRepository:
        return self._repository(BookingAlertRepository)

    @property
    def scraps(self) -> ScrapRepository:
        return self._repository(ScrapRepository)

    @property
    def notifications(self) -> NotificationRepository:
        return self._repository(NotificationRepository)

    @property
    def transactions(self) -> TransactionRepository:
        return self._repository(TransactionRepository)

    @property
    def withdrawals(self) -> WithdrawalRepository:
        return self._repository(WithdrawalRepository)

    def accounts(self, role: Role) -> AccountRepository:
        """Account repository for a role."""
        return {
            Role.USER: self.users,
            Role.VENDOR: self.vendors,
            Role.WORKER: self.workers,
            Role.ADMIN: self.admins,
        }[role]

    def commit(self):
        """Commit the current transaction."""
        self.session.commit()

    def rollback(self):
        """Rollback the current transaction."""
        self.session.rollback()

    def _close(self):
        """Close the session and drop cached repositories."""
        if self._session is not None:
            self._session.close()
            self._session = None
        self._repositories.clear()
