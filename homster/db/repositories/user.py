"""
User repository for database operations.

Handles customer accounts and their prepaid wallet balance.
"""

from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Table, update

from homster.db.repositories.base import AccountRepository, as_uuid, utcnow
from homster.db.tables import users
from homster.models.account import User


class UserRepository(AccountRepository[User]):
    """Repository for User operations."""

    @property
    def table(self) -> Table:
        return users

    def _row_to_model(self, row: Any) -> User:
        """Convert database row to User model."""
        return User(
            id=str(row.id),
            name=row.name,
            phone=row.phone,
            email=row.email,
            wallet_balance=row.wallet_balance or 0,
            is_active=row.is_active,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def _model_to_dict(self, model: User) -> dict:
        """Convert User model to database dict."""
        now = utcnow()
        return {
            "id": UUID(model.id) if model.id else uuid4(),
            "name": model.name,
            "phone": model.phone,
            "email": model.email,
            "wallet_balance": model.wallet_balance,
            "is_active": model.is_active,
            "created_at": model.created_at or now,
            "updated_at": now,
        }

    def adjust_wallet(self, user_id: str, delta: float) -> float | None:
        """
        Atomically add to (or subtract from) a wallet balance.

        The update is refused when it would take the balance below zero.

        Args:
            user_id: User UUID
            delta: Amount to add, negative to debit

        Returns:
            New balance, or None if the user is missing or funds are insufficient
        """
        stmt = (
            update(self.table)
            .where(
                self.table.c.id == as_uuid(user_id),
                self.table.c.wallet_balance + delta >= 0,
            )
            .values(
                wallet_balance=self.table.c.wallet_balance + delta,
                updated_at=utcnow(),
            )
            .returning(self.table.c.wallet_balance)
        )
        return self.session.execute(stmt).scalar()
