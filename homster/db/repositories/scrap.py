"""
Scrap repository for database operations.

Handles scrap pickup listings and their accept/complete lifecycle.
"""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Table, select

from homster.db.repositories.base import (
    BaseRepository,
    as_uuid,
    jsonb_to_model,
    model_to_jsonb,
    optional_str,
    optional_uuid,
    utcnow,
)
from homster.db.tables import scraps
from homster.models.account import Role
from homster.models.scrap import Scrap, ScrapAddress, ScrapStatus


class ScrapRepository(BaseRepository[Scrap]):
    """Repository for Scrap operations."""

    @property
    def table(self) -> Table:
        return scraps

    def _row_to_model(self, row: Any) -> Scrap:
        return Scrap(
            id=str(row.id),
            user_id=str(row.user_id),
            title=row.title,
            description=row.description,
            category=row.category,
            quantity=row.quantity,
            expected_price=row.expected_price,
            images=row.images or [],
            address=jsonb_to_model(row.address, ScrapAddress) or ScrapAddress(),
            status=ScrapStatus(row.status),
            vendor_id=optional_str(row.vendor_id),
            accepted_by=optional_str(row.accepted_by),
            accepted_by_role=Role(row.accepted_by_role) if row.accepted_by_role else None,
            pickup_date=row.pickup_date,
            final_price=row.final_price,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def _model_to_dict(self, model: Scrap) -> dict:
        now = utcnow()
        return {
            "id": UUID(model.id) if model.id else uuid4(),
            "user_id": as_uuid(model.user_id),
            "title": model.title,
            "description": model.description,
            "category": model.category,
            "quantity": model.quantity,
            "expected_price": model.expected_price,
            "images": model.images,
            "address": model_to_jsonb(model.address),
            "status": model.status.value,
            "vendor_id": optional_uuid(model.vendor_id),
            "accepted_by": optional_uuid(model.accepted_by),
            "accepted_by_role": (
                model.accepted_by_role.value if model.accepted_by_role else None
            ),
            "pickup_date": model.pickup_date,
            "final_price": model.final_price,
            "created_at": model.created_at or now,
            "updated_at": now,
        }

    def list_by_user(self, user_id: str) -> list[Scrap]:
        stmt = (
            select(self.table)
            .where(self.table.c.user_id == as_uuid(user_id))
            .order_by(self.table.c.created_at.desc())
        )
        return self._fetch_all(stmt)

    def list_by_status(self, status: ScrapStatus) -> list[Scrap]:
        stmt = (
            select(self.table)
            .where(self.table.c.status == status.value)
            .order_by(self.table.c.created_at.desc())
        )
        return self._fetch_all(stmt)

    def list_accepted_by_vendor(self, vendor_id: str) -> list[Scrap]:
        """Items a vendor has taken, most recently updated first."""
        stmt = (
            select(self.table)
            .where(self.table.c.vendor_id == as_uuid(vendor_id))
            .order_by(self.table.c.updated_at.desc())
        )
        return self._fetch_all(stmt)

    def list_all(self) -> list[Scrap]:
        stmt = select(self.table).order_by(self.table.c.created_at.desc())
        return self._fetch_all(stmt)

    def accept(
        self,
        scrap_id: str,
        account_id: str,
        role: Role,
        pickup_date: datetime,
    ) -> Scrap | None:
        """
        Take a pending item.

        Args:
            scrap_id: Scrap UUID
            account_id: Accepting vendor or admin UUID
            role: Role of the accepting account
            pickup_date: Planned pickup time

        Returns:
            Accepted item, or None if it is no longer pending
        """
        return self.update_returning(
            scrap_id,
            self.table.c.status == ScrapStatus.PENDING.value,
            status=ScrapStatus.ACCEPTED.value,
            vendor_id=as_uuid(account_id) if role == Role.VENDOR else None,
            accepted_by=as_uuid(account_id),
            accepted_by_role=role.value,
            pickup_date=pickup_date,
            updated_at=utcnow(),
        )

    def complete(self, scrap_id: str, final_price: float | None) -> Scrap | None:
        values: dict = {"status": ScrapStatus.COMPLETED.value, "updated_at": utcnow()}
        if final_price is not None:
            values["final_price"] = final_price
        return self.update_returning(
            scrap_id,
            self.table.c.status == ScrapStatus.ACCEPTED.value,
            **values,
        )

    def cancel(self, scrap_id: str, user_id: str) -> Scrap | None:
        return self.update_returning(
            scrap_id,
            self.table.c.user_id == as_uuid(user_id),
            self.table.c.status == ScrapStatus.PENDING.value,
            status=ScrapStatus.CANCELLED.value,
            updated_at=utcnow(),
        )
