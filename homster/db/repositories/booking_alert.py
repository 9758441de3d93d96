"""
Booking alert repository for database operations.

Alerts are the server-side record of a vendor's countdown on a booking
offer. Whether an alert is still open is always judged against its
expiry time, so a missed expiry task never leaves an offer live.
"""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Table, select, update

from homster.db.repositories.base import BaseRepository, as_uuid, utcnow
from homster.db.tables import booking_alerts
from homster.models.alert import AlertStatus, BookingAlert


class BookingAlertRepository(BaseRepository[BookingAlert]):
    """Repository for BookingAlert operations."""

    @property
    def table(self) -> Table:
        return booking_alerts

    def _row_to_model(self, row: Any) -> BookingAlert:
        return BookingAlert(
            id=str(row.id),
            booking_id=str(row.booking_id),
            vendor_id=str(row.vendor_id),
            wave=row.wave,
            distance_km=row.distance_km,
            status=AlertStatus(row.status),
            offered_at=row.offered_at,
            expires_at=row.expires_at,
            responded_at=row.responded_at,
        )

    def _model_to_dict(self, model: BookingAlert) -> dict:
        return {
            "id": UUID(model.id) if model.id else uuid4(),
            "booking_id": as_uuid(model.booking_id),
            "vendor_id": as_uuid(model.vendor_id),
            "wave": model.wave,
            "distance_km": model.distance_km,
            "status": model.status.value,
            "offered_at": model.offered_at,
            "expires_at": model.expires_at,
            "responded_at": model.responded_at,
        }

    def _open(self, now: datetime):
        return (
            self.table.c.status == AlertStatus.OFFERED.value,
            self.table.c.expires_at > now,
        )

    def get_for_vendor(self, booking_id: str, vendor_id: str) -> BookingAlert | None:
        stmt = select(self.table).where(
            self.table.c.booking_id == as_uuid(booking_id),
            self.table.c.vendor_id == as_uuid(vendor_id),
        )
        row = self.session.execute(stmt).fetchone()
        if row is None:
            return None
        return self._row_to_model(row)

    def list_open_for_vendor(
        self, vendor_id: str, now: datetime | None = None
    ) -> list[BookingAlert]:
        """Offers the vendor can still act on, soonest expiry first."""
        now = now or utcnow()
        stmt = (
            select(self.table)
            .where(self.table.c.vendor_id == as_uuid(vendor_id), *self._open(now))
            .order_by(self.table.c.expires_at)
        )
        return self._fetch_all(stmt)

    def alerted_vendor_ids(self, booking_id: str) -> set[str]:
        """Every vendor that has been offered this booking in any wave."""
        stmt = select(self.table.c.vendor_id).where(
            self.table.c.booking_id == as_uuid(booking_id)
        )
        return {str(row.vendor_id) for row in self.session.execute(stmt).fetchall()}

    def count_open(self, booking_id: str, wave: int, now: datetime | None = None) -> int:
        now = now or utcnow()
        return self._count(
            self.table.c.booking_id == as_uuid(booking_id),
            self.table.c.wave == wave,
            *self._open(now),
        )

    def respond(
        self,
        booking_id: str,
        vendor_id: str,
        status: AlertStatus,
        now: datetime | None = None,
    ) -> BookingAlert | None:
        """
        Record a vendor's answer on an open alert.

        Returns:
            Updated alert, or None when the vendor holds no open alert
        """
        now = now or utcnow()
        stmt = (
            update(self.table)
            .where(
                self.table.c.booking_id == as_uuid(booking_id),
                self.table.c.vendor_id == as_uuid(vendor_id),
                *self._open(now),
            )
            .values(status=status.value, responded_at=now)
            .returning(self.table)
        )
        row = self.session.execute(stmt).fetchone()
        if row is None:
            return None
        return self._row_to_model(row)

    def expire_wave(self, booking_id: str, wave: int, now: datetime | None = None) -> int:
        """
        Expire every alert of a wave that is still offered.

        Returns:
            Number of alerts expired
        """
        now = now or utcnow()
        stmt = (
            update(self.table)
            .where(
                self.table.c.booking_id == as_uuid(booking_id),
                self.table.c.wave == wave,
                self.table.c.status == AlertStatus.OFFERED.value,
            )
            .values(status=AlertStatus.EXPIRED.value, responded_at=now)
        )
        return self.session.execute(stmt).rowcount

    def withdraw_others(
        self, booking_id: str, except_vendor_id: str | None = None
    ) -> list[str]:
        """
        Withdraw every still-offered alert on a booking.

        Args:
            booking_id: Booking UUID
            except_vendor_id: Vendor whose alert is left untouched

        Returns:
            Vendor IDs whose alerts were withdrawn
        """
        conditions = [
            self.table.c.booking_id == as_uuid(booking_id),
            self.table.c.status == AlertStatus.OFFERED.value,
        ]
        if except_vendor_id:
            conditions.append(self.table.c.vendor_id != as_uuid(except_vendor_id))

        stmt = (
            update(self.table)
            .where(*conditions)
            .values(status=AlertStatus.WITHDRAWN.value, responded_at=utcnow())
            .returning(self.table.c.vendor_id)
        )
        return [str(row.vendor_id) for row in self.session.execute(stmt).fetchall()]
