"""
Notification repository for database operations.

Every query is scoped to a recipient (role + account ID) so one account
can never read or change another account's notifications.
"""

from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Table, delete, select, update

from homster.db.repositories.base import (
    BaseRepository,
    as_uuid,
    optional_str,
    optional_uuid,
    utcnow,
)
from homster.db.tables import notifications
from homster.models.account import Role
from homster.models.notification import Notification, NotificationType, RelatedType


class NotificationRepository(BaseRepository[Notification]):
    """Repository for Notification operations."""

    @property
    def table(self) -> Table:
        return notifications

    def _row_to_model(self, row: Any) -> Notification:
        return Notification(
            id=str(row.id),
            recipient_role=Role(row.recipient_role),
            recipient_id=str(row.recipient_id),
            type=NotificationType(row.type),
            title=row.title,
            message=row.message,
            related_id=optional_str(row.related_id),
            related_type=RelatedType(row.related_type) if row.related_type else None,
            is_read=row.is_read,
            read_at=row.read_at,
            data=row.data or {},
            created_at=row.created_at,
        )

    def _model_to_dict(self, model: Notification) -> dict:
        return {
            "id": UUID(model.id) if model.id else uuid4(),
            "recipient_role": model.recipient_role.value,
            "recipient_id": as_uuid(model.recipient_id),
            "type": model.type.value,
            "title": model.title,
            "message": model.message,
            "related_id": optional_uuid(model.related_id),
            "related_type": model.related_type.value if model.related_type else None,
            "is_read": model.is_read,
            "read_at": model.read_at,
            "data": model.data,
            "created_at": model.created_at or utcnow(),
        }

    def _recipient(self, role: Role, recipient_id: str) -> list:
        return [
            self.table.c.recipient_role == role.value,
            self.table.c.recipient_id == as_uuid(recipient_id),
        ]

    def list_for_recipient(
        self,
        role: Role,
        recipient_id: str,
        is_read: bool | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Notification]:
        """
        List a recipient's notifications, newest first.

        Args:
            role: Recipient role
            recipient_id: Recipient account UUID
            is_read: Optional read-state filter
            limit: Page size
            offset: Pagination offset

        Returns:
            List of notifications
        """
        conditions = self._recipient(role, recipient_id)
        if is_read is not None:
            conditions.append(self.table.c.is_read.is_(is_read))
        stmt = (
            select(self.table)
            .where(*conditions)
            .order_by(self.table.c.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return self._fetch_all(stmt)

    def count_for_recipient(
        self, role: Role, recipient_id: str, is_read: bool | None = None
    ) -> int:
        conditions = self._recipient(role, recipient_id)
        if is_read is not None:
            conditions.append(self.table.c.is_read.is_(is_read))
        return self._count(*conditions)

    def mark_read(
        self, notification_id: str, role: Role, recipient_id: str
    ) -> Notification | None:
        """Mark one of the recipient's notifications read."""
        now = utcnow()
        stmt = (
            update(self.table)
            .where(
                self.table.c.id == as_uuid(notification_id),
                *self._recipient(role, recipient_id),
            )
            .values(
                is_read=True,
                read_at=now,
            )
            .returning(self.table)
        )
        row = self.session.execute(stmt).fetchone()
        if row is None:
            return None
        return self._row_to_model(row)

    def mark_all_read(self, role: Role, recipient_id: str) -> int:
        stmt = (
            update(self.table)
            .where(
                *self._recipient(role, recipient_id),
                self.table.c.is_read.is_(False),
            )
            .values(is_read=True, read_at=utcnow())
        )
        return self.session.execute(stmt).rowcount

    def delete_for_recipient(
        self, notification_id: str, role: Role, recipient_id: str
    ) -> bool:
        stmt = delete(self.table).where(
            self.table.c.id == as_uuid(notification_id),
            *self._recipient(role, recipient_id),
        )
        return self.session.execute(stmt).rowcount > 0

    def delete_all_for_recipient(self, role: Role, recipient_id: str) -> int:
        stmt = delete(self.table).where(*self._recipient(role, recipient_id))
        return self.session.execute(stmt).rowcount
