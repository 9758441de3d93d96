"""
Transaction repository for wallet ledger entries.
"""

from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Table, select

from homster.db.repositories.base import (
    BaseRepository,
    as_uuid,
    optional_str,
    optional_uuid,
    utcnow,
)
from homster.db.tables import transactions
from homster.models.account import Role
from homster.models.wallet import Transaction, TransactionStatus, TransactionType


class TransactionRepository(BaseRepository[Transaction]):
    """Repository for Transaction operations."""

    @property
    def table(self) -> Table:
        return transactions

    def _row_to_model(self, row: Any) -> Transaction:
        return Transaction(
            id=str(row.id),
            owner_role=Role(row.owner_role),
            owner_id=str(row.owner_id),
            booking_id=optional_str(row.booking_id),
            type=TransactionType(row.type),
            amount=row.amount,
            status=TransactionStatus(row.status),
            payment_method=row.payment_method,
            description=row.description,
            reference_id=row.reference_id,
            balance_before=row.balance_before,
            balance_after=row.balance_after,
            details=row.details or {},
            created_at=row.created_at,
        )

    def _model_to_dict(self, model: Transaction) -> dict:
        return {
            "id": UUID(model.id) if model.id else uuid4(),
            "owner_role": model.owner_role.value,
            "owner_id": as_uuid(model.owner_id),
            "booking_id": optional_uuid(model.booking_id),
            "type": model.type.value,
            "amount": model.amount,
            "status": model.status.value,
            "payment_method": model.payment_method,
            "description": model.description,
            "reference_id": model.reference_id,
            "balance_before": model.balance_before,
            "balance_after": model.balance_after,
            "details": model.details,
            "created_at": model.created_at or utcnow(),
        }

    def _owner_conditions(
        self,
        role: Role,
        owner_id: str,
        type: TransactionType | None,
        status: TransactionStatus | None,
    ) -> list:
        conditions = [
            self.table.c.owner_role == role.value,
            self.table.c.owner_id == as_uuid(owner_id),
        ]
        if type:
            conditions.append(self.table.c.type == type.value)
        if status:
            conditions.append(self.table.c.status == status.value)
        return conditions

    def list_for_owner(
        self,
        role: Role,
        owner_id: str,
        type: TransactionType | None = None,
        status: TransactionStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Transaction]:
        stmt = (
            select(self.table)
            .where(*self._owner_conditions(role, owner_id, type, status))
            .order_by(self.table.c.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return self._fetch_all(stmt)

    def count_for_owner(
        self,
        role: Role,
        owner_id: str,
        type: TransactionType | None = None,
        status: TransactionStatus | None = None,
    ) -> int:
        return self._count(*self._owner_conditions(role, owner_id, type, status))

    def set_status(
        self, transaction_id: str, status: TransactionStatus, **fields
    ) -> bool:
        return self.update_by_id(transaction_id, status=status.value, **fields)
