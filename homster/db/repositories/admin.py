"""
Admin repository for database operations.
"""

from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Table, select

from homster.db.repositories.base import AccountRepository, utcnow
from homster.db.tables import admins
from homster.models.account import Admin


class AdminRepository(AccountRepository[Admin]):
    """Repository for Admin operations."""

    @property
    def table(self) -> Table:
        return admins

    def _row_to_model(self, row: Any) -> Admin:
        return Admin(
            id=str(row.id),
            name=row.name,
            phone=row.phone,
            email=row.email,
            is_super_admin=row.is_super_admin,
            created_at=row.created_at,
        )

    def _model_to_dict(self, model: Admin) -> dict:
        return {
            "id": UUID(model.id) if model.id else uuid4(),
            "name": model.name,
            "phone": model.phone,
            "email": model.email,
            "is_super_admin": model.is_super_admin,
            "created_at": model.created_at or utcnow(),
        }

    def list_ids(self) -> list[str]:
        """IDs of every admin, used to fan out admin notifications."""
        stmt = select(self.table.c.id)
        return [str(row.id) for row in self.session.execute(stmt).fetchall()]
