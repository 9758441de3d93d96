"""
Worker repository for database operations.

Handles worker accounts, vendor rosters and job counters.
"""

from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Table, select

from homster.db.repositories.base import (
    AccountRepository,
    as_uuid,
    optional_str,
    optional_uuid,
    utcnow,
)
from homster.db.tables import workers
from homster.models.account import Worker, WorkerStatus


class WorkerRepository(AccountRepository[Worker]):
    """Repository for Worker operations."""

    @property
    def table(self) -> Table:
        return workers

    def _row_to_model(self, row: Any) -> Worker:
        """Convert database row to Worker model."""
        return Worker(
            id=str(row.id),
            vendor_id=optional_str(row.vendor_id),
            name=row.name,
            phone=row.phone,
            email=row.email,
            status=WorkerStatus(row.status),
            rating=row.rating or 0,
            total_jobs=row.total_jobs or 0,
            completed_jobs=row.completed_jobs or 0,
            wallet_balance=row.wallet_balance or 0,
            is_active=row.is_active,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def _model_to_dict(self, model: Worker) -> dict:
        """Convert Worker model to database dict."""
        now = utcnow()
        return {
            "id": UUID(model.id) if model.id else uuid4(),
            "vendor_id": optional_uuid(model.vendor_id),
            "name": model.name,
            "phone": model.phone,
            "email": model.email,
            "status": model.status.value,
            "rating": model.rating,
            "total_jobs": model.total_jobs,
            "completed_jobs": model.completed_jobs,
            "wallet_balance": model.wallet_balance,
            "is_active": model.is_active,
            "created_at": model.created_at or now,
            "updated_at": now,
        }

    def get_for_vendor(self, worker_id: str, vendor_id: str) -> Worker | None:
        """
        Get a worker only if they belong to the vendor.

        Args:
            worker_id: Worker UUID
            vendor_id: Vendor UUID

        Returns:
            Worker or None if missing or employed elsewhere
        """
        stmt = select(self.table).where(
            self.table.c.id == as_uuid(worker_id),
            self.table.c.vendor_id == as_uuid(vendor_id),
        )
        row = self.session.execute(stmt).fetchone()
        if row is None:
            return None
        return self._row_to_model(row)

    def list_by_vendor(self, vendor_id: str) -> list[Worker]:
        stmt = (
            select(self.table)
            .where(self.table.c.vendor_id == as_uuid(vendor_id))
            .order_by(self.table.c.name)
        )
        return self._fetch_all(stmt)

    def unlink(self, worker_id: str, vendor_id: str) -> bool:
        """Detach a worker from a vendor without deleting the account."""
        worker = self.update_returning(
            worker_id,
            self.table.c.vendor_id == as_uuid(vendor_id),
            vendor_id=None,
            status=WorkerStatus.INACTIVE.value,
            updated_at=utcnow(),
        )
        return worker is not None

    def record_job(self, worker_id: str, completed: bool = False) -> bool:
        """Increment job counters for a finished or newly taken job."""
        values: dict = {
            "total_jobs": self.table.c.total_jobs + 1,
            "updated_at": utcnow(),
        }
        if completed:
            values["completed_jobs"] = self.table.c.completed_jobs + 1
        return self.update_by_id(worker_id, **values)

    def credit_wallet(self, worker_id: str, amount: float) -> Worker | None:
        return self.update_returning(
            worker_id,
            wallet_balance=self.table.c.wallet_balance + amount,
            updated_at=utcnow(),
        )
