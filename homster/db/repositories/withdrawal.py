"""
Withdrawal repository for vendor payout requests.
"""

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
from homster.db.tables import withdrawals
from homster.models.wallet import BankDetails, Withdrawal, WithdrawalStatus


class WithdrawalRepository(BaseRepository[Withdrawal]):
    """Repository for Withdrawal operations."""

    @property
    def table(self) -> Table:
        return withdrawals

    def _row_to_model(self, row: Any) -> Withdrawal:
        return Withdrawal(
            id=str(row.id),
            vendor_id=str(row.vendor_id),
            transaction_id=optional_str(row.transaction_id),
            amount=row.amount,
            status=WithdrawalStatus(row.status),
            bank_details=jsonb_to_model(row.bank_details, BankDetails),
            tds_amount=row.tds_amount or 0,
            net_amount=row.net_amount,
            transaction_reference=row.transaction_reference,
            admin_notes=row.admin_notes,
            rejection_reason=row.rejection_reason,
            processed_by=optional_str(row.processed_by),
            processed_at=row.processed_at,
            created_at=row.created_at,
        )

    def _model_to_dict(self, model: Withdrawal) -> dict:
        return {
            "id": UUID(model.id) if model.id else uuid4(),
            "vendor_id": as_uuid(model.vendor_id),
            "transaction_id": optional_uuid(model.transaction_id),
            "amount": model.amount,
            "status": model.status.value,
            "bank_details": model_to_jsonb(model.bank_details),
            "tds_amount": model.tds_amount,
            "net_amount": model.net_amount,
            "transaction_reference": model.transaction_reference,
            "admin_notes": model.admin_notes,
            "rejection_reason": model.rejection_reason,
            "processed_by": optional_uuid(model.processed_by),
            "processed_at": model.processed_at,
            "created_at": model.created_at or utcnow(),
        }

    def _conditions(self, vendor_id: str | None, status: WithdrawalStatus | None) -> list:
        conditions = []
        if vendor_id:
            conditions.append(self.table.c.vendor_id == as_uuid(vendor_id))
        if status:
            conditions.append(self.table.c.status == status.value)
        return conditions

    def list_withdrawals(
        self,
        vendor_id: str | None = None,
        status: WithdrawalStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Withdrawal]:
        stmt = (
            select(self.table)
            .where(*self._conditions(vendor_id, status))
            .order_by(self.table.c.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return self._fetch_all(stmt)

    def count_withdrawals(
        self, vendor_id: str | None = None, status: WithdrawalStatus | None = None
    ) -> int:
        return self._count(*self._conditions(vendor_id, status))

    def decide(
        self,
        withdrawal_id: str,
        status: WithdrawalStatus,
        processed_by: str,
        **fields,
    ) -> Withdrawal | None:
        """
        Approve or reject a pending withdrawal.

        Returns:
            Updated withdrawal, or None when it is not pending
        """
        return self.update_returning(
            withdrawal_id,
            self.table.c.status == WithdrawalStatus.PENDING.value,
            status=status.value,
            processed_by=as_uuid(processed_by),
            processed_at=utcnow(),
            **fields,
        )
