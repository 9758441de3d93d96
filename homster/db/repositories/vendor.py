"""
Vendor repository for database operations.

Handles vendor accounts, approval and the vendor cash ledger. Ledger
changes are applied as single UPDATE statements so concurrent settlements
do not overwrite each other.
"""

from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Table, select, update

from homster.db.repositories.base import (
    AccountRepository,
    as_uuid,
    jsonb_to_model,
    model_to_jsonb,
    utcnow,
)
from homster.db.tables import vendors
from homster.models.account import Address, ApprovalStatus, Vendor, VendorWallet


class VendorRepository(AccountRepository[Vendor]):
    """Repository for Vendor operations."""

    @property
    def table(self) -> Table:
        return vendors

    def _row_to_model(self, row: Any) -> Vendor:
        """Convert database row to Vendor model."""
        return Vendor(
            id=str(row.id),
            name=row.name,
            business_name=row.business_name,
            phone=row.phone,
            email=row.email,
            approval_status=ApprovalStatus(row.approval_status),
            is_active=row.is_active,
            is_online=row.is_online,
            lat=row.lat,
            lng=row.lng,
            address=jsonb_to_model(row.address, Address),
            wallet=VendorWallet(
                dues=row.dues or 0,
                earnings=row.earnings or 0,
                total_cash_collected=row.total_cash_collected or 0,
                total_withdrawn=row.total_withdrawn or 0,
                cash_limit=row.cash_limit,
                is_blocked=row.is_blocked,
                blocked_at=row.blocked_at,
                block_reason=row.block_reason,
            ),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def _model_to_dict(self, model: Vendor) -> dict:
        """Convert Vendor model to database dict."""
        now = utcnow()
        return {
            "id": UUID(model.id) if model.id else uuid4(),
            "name": model.name,
            "business_name": model.business_name,
            "phone": model.phone,
            "email": model.email,
            "approval_status": model.approval_status.value,
            "is_active": model.is_active,
            "is_online": model.is_online,
            "lat": model.lat,
            "lng": model.lng,
            "address": model_to_jsonb(model.address),
            "dues": model.wallet.dues,
            "earnings": model.wallet.earnings,
            "total_cash_collected": model.wallet.total_cash_collected,
            "total_withdrawn": model.wallet.total_withdrawn,
            "cash_limit": model.wallet.cash_limit,
            "is_blocked": model.wallet.is_blocked,
            "blocked_at": model.wallet.blocked_at,
            "block_reason": model.wallet.block_reason,
            "created_at": model.created_at or now,
            "updated_at": now,
        }

    def list_dispatchable(self) -> list[Vendor]:
        """
        Vendors that may receive booking alerts.

        Approved, active, not cash-blocked and with a known location.
        Distance filtering happens in the dispatcher.

        Returns:
            List of vendors
        """
        stmt = select(self.table).where(
            self.table.c.approval_status == ApprovalStatus.APPROVED.value,
            self.table.c.is_active.is_(True),
            self.table.c.is_blocked.is_(False),
            self.table.c.lat.is_not(None),
            self.table.c.lng.is_not(None),
        )
        return self._fetch_all(stmt)

    def list_by_approval(
        self,
        approval_status: ApprovalStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Vendor]:
        stmt = select(self.table)
        if approval_status:
            stmt = stmt.where(self.table.c.approval_status == approval_status.value)
        stmt = stmt.order_by(self.table.c.created_at.desc()).limit(limit).offset(offset)
        return self._fetch_all(stmt)

    def count_by_approval(self, approval_status: ApprovalStatus | None = None) -> int:
        conditions = []
        if approval_status:
            conditions.append(self.table.c.approval_status == approval_status.value)
        return self._count(*conditions)

    def set_approval(self, vendor_id: str, approval_status: ApprovalStatus) -> Vendor | None:
        return self.update_returning(
            vendor_id,
            approval_status=approval_status.value,
            updated_at=utcnow(),
        )

    def credit_earnings(self, vendor_id: str, amount: float) -> Vendor | None:
        """Add to the earnings the platform owes the vendor."""
        return self.update_returning(
            vendor_id,
            earnings=self.table.c.earnings + amount,
            updated_at=utcnow(),
        )

    def debit_earnings(self, vendor_id: str, amount: float) -> Vendor | None:
        """
        Reserve earnings for a payout.

        Args:
            vendor_id: Vendor UUID
            amount: Amount to take from earnings

        Returns:
            Updated vendor, or None when earnings are insufficient
        """
        return self.update_returning(
            vendor_id,
            self.table.c.earnings >= amount,
            earnings=self.table.c.earnings - amount,
            updated_at=utcnow(),
        )

    def record_cash_collection(
        self, vendor_id: str, amount: float, vendor_earning: float
    ) -> Vendor | None:
        """
        Record cash a vendor collected on the platform's behalf.

        The whole bill becomes dues and the vendor share becomes earnings.

        Returns:
            Updated vendor, or None if not found
        """
        return self.update_returning(
            vendor_id,
            dues=self.table.c.dues + amount,
            earnings=self.table.c.earnings + vendor_earning,
            total_cash_collected=self.table.c.total_cash_collected + amount,
            updated_at=utcnow(),
        )

    def add_withdrawn(self, vendor_id: str, amount: float) -> bool:
        return self.update_by_id(
            vendor_id,
            total_withdrawn=self.table.c.total_withdrawn + amount,
            updated_at=utcnow(),
        )

    def block(self, vendor_id: str, reason: str) -> bool:
        """Block a vendor from dispatch, keeping the first block time."""
        stmt = (
            update(self.table)
            .where(
                self.table.c.id == as_uuid(vendor_id),
                self.table.c.is_blocked.is_(False),
            )
            .values(
                is_blocked=True,
                blocked_at=utcnow(),
                block_reason=reason,
                updated_at=utcnow(),
            )
        )
        return self.session.execute(stmt).rowcount > 0
