"""
Booking repository for database operations.

Handles booking persistence, role-scoped visibility and the compare-and-set
transitions used when several actors race on the same booking.
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Table, and_, or_, select

from homster.db.repositories.base import (
    BaseRepository,
    as_uuid,
    jsonb_to_model,
    model_to_jsonb,
    optional_str,
    optional_uuid,
    utcnow,
)
from homster.db.tables import bookings
from homster.models.account import Address, Role
from homster.models.booking import (
    OPEN_STATUSES,
    Booking,
    BookingStatus,
    PaymentMethod,
    PaymentStatus,
    TimeSlot,
    WorkerResponse,
)


def _db_values(fields: dict) -> dict:
    """Unwrap enums so drivers receive plain strings."""
    return {k: (v.value if isinstance(v, Enum) else v) for k, v in fields.items()}


class BookingRepository(BaseRepository[Booking]):
    """Repository for Booking operations."""

    @property
    def table(self) -> Table:
        return bookings

    def _row_to_model(self, row: Any) -> Booking:
        """Convert database row to Booking model."""
        return Booking(
            id=str(row.id),
            booking_number=row.booking_number,
            user_id=str(row.user_id),
            vendor_id=optional_str(row.vendor_id),
            worker_id=optional_str(row.worker_id),
            service_name=row.service_name,
            service_category=row.service_category,
            description=row.description,
            base_price=row.base_price or 0,
            discount=row.discount or 0,
            tax=row.tax or 0,
            final_amount=row.final_amount,
            admin_commission=row.admin_commission or 0,
            vendor_earnings=row.vendor_earnings or 0,
            payment_status=PaymentStatus(row.payment_status),
            payment_method=(
                PaymentMethod(row.payment_method) if row.payment_method else None
            ),
            payment_id=row.payment_id,
            payment_otp=row.payment_otp,
            cash_collected=row.cash_collected or False,
            cash_collected_at=row.cash_collected_at,
            cash_collected_by=Role(row.cash_collected_by) if row.cash_collected_by else None,
            cash_collector_id=optional_str(row.cash_collector_id),
            address=jsonb_to_model(row.address, Address),
            scheduled_date=row.scheduled_date,
            scheduled_time=row.scheduled_time,
            time_slot=jsonb_to_model(row.time_slot, TimeSlot),
            status=BookingStatus(row.status),
            worker_response=(
                WorkerResponse(row.worker_response) if row.worker_response else None
            ),
            current_wave=row.current_wave or 0,
            accepted_at=row.accepted_at,
            assigned_at=row.assigned_at,
            started_at=row.started_at,
            completed_at=row.completed_at,
            cancelled_at=row.cancelled_at,
            cancellation_reason=row.cancellation_reason,
            cancelled_by=row.cancelled_by,
            rating=row.rating,
            review=row.review,
            reviewed_at=row.reviewed_at,
            user_notes=row.user_notes,
            vendor_notes=row.vendor_notes,
            worker_notes=row.worker_notes,
            is_worker_paid=row.is_worker_paid or False,
            worker_paid_at=row.worker_paid_at,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def _model_to_dict(self, model: Booking) -> dict:
        """Convert Booking model to database dict."""
        now = utcnow()
        return {
            "id": UUID(model.id) if model.id else uuid4(),
            "booking_number": model.booking_number,
            "user_id": as_uuid(model.user_id),
            "vendor_id": optional_uuid(model.vendor_id),
            "worker_id": optional_uuid(model.worker_id),
            "service_name": model.service_name,
            "service_category": model.service_category,
            "description": model.description,
            "base_price": model.base_price,
            "discount": model.discount,
            "tax": model.tax,
            "final_amount": model.final_amount,
            "admin_commission": model.admin_commission,
            "vendor_earnings": model.vendor_earnings,
            "payment_status": model.payment_status.value,
            "payment_method": model.payment_method.value if model.payment_method else None,
            "payment_id": model.payment_id,
            "payment_otp": model.payment_otp,
            "cash_collected": model.cash_collected,
            "cash_collected_at": model.cash_collected_at,
            "cash_collected_by": (
                model.cash_collected_by.value if model.cash_collected_by else None
            ),
            "cash_collector_id": optional_uuid(model.cash_collector_id),
            "address": model_to_jsonb(model.address),
            "scheduled_date": model.scheduled_date,
            "scheduled_time": model.scheduled_time,
            "time_slot": model_to_jsonb(model.time_slot),
            "status": model.status.value,
            "worker_response": (
                model.worker_response.value if model.worker_response else None
            ),
            "current_wave": model.current_wave,
            "accepted_at": model.accepted_at,
            "assigned_at": model.assigned_at,
            "started_at": model.started_at,
            "completed_at": model.completed_at,
            "cancelled_at": model.cancelled_at,
            "cancellation_reason": model.cancellation_reason,
            "cancelled_by": model.cancelled_by,
            "rating": model.rating,
            "review": model.review,
            "reviewed_at": model.reviewed_at,
            "user_notes": model.user_notes,
            "vendor_notes": model.vendor_notes,
            "worker_notes": model.worker_notes,
            "is_worker_paid": model.is_worker_paid,
            "worker_paid_at": model.worker_paid_at,
            "created_at": model.created_at or now,
            "updated_at": now,
        }

    # -------------------------------------------------------------------------
    # Visibility
    # -------------------------------------------------------------------------

    def _vendor_scope(self, vendor_id: str):
        """Bookings held by the vendor plus unclaimed open bookings."""
        return or_(
            self.table.c.vendor_id == as_uuid(vendor_id),
            and_(
                self.table.c.vendor_id.is_(None),
                self.table.c.status.in_([s.value for s in OPEN_STATUSES]),
            ),
        )

    def _filters(
        self,
        status: BookingStatus | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> list:
        conditions = []
        if status:
            conditions.append(self.table.c.status == status.value)
        if start_date:
            conditions.append(self.table.c.scheduled_date >= start_date)
        if end_date:
            conditions.append(self.table.c.scheduled_date <= end_date)
        return conditions

    def _get_where(self, booking_id: str, *conditions) -> Booking | None:
        stmt = select(self.table).where(self.table.c.id == as_uuid(booking_id), *conditions)
        row = self.session.execute(stmt).fetchone()
        if row is None:
            return None
        return self._row_to_model(row)

    def _page(self, conditions: list, limit: int, offset: int) -> list[Booking]:
        stmt = (
            select(self.table)
            .where(*conditions)
            .order_by(self.table.c.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return self._fetch_all(stmt)

    def _user_conditions(self, user_id: str, status, start_date, end_date) -> list:
        conditions = [self.table.c.user_id == as_uuid(user_id)]
        conditions += self._filters(status, start_date, end_date)
        if status is None:
            # Bookings still looking for a vendor are shown on the live screen
            conditions.append(self.table.c.status != BookingStatus.SEARCHING.value)
        return conditions

    def get_by_id_for_user(self, booking_id: str, user_id: str) -> Booking | None:
        """
        Get a booking that belongs to a user.

        Args:
            booking_id: Booking UUID
            user_id: Owner UUID

        Returns:
            Booking or None if missing or owned by someone else
        """
        return self._get_where(booking_id, self.table.c.user_id == as_uuid(user_id))

    def list_for_user(
        self,
        user_id: str,
        status: BookingStatus | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Booking]:
        """
        List a user's bookings, newest first.

        Bookings in `searching` are excluded unless that status is requested.
        """
        conditions = self._user_conditions(user_id, status, start_date, end_date)
        return self._page(conditions, limit, offset)

    def count_for_user(
        self,
        user_id: str,
        status: BookingStatus | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> int:
        return self._count(*self._user_conditions(user_id, status, start_date, end_date))

    def get_by_id_for_vendor(self, booking_id: str, vendor_id: str) -> Booking | None:
        return self._get_where(booking_id, self._vendor_scope(vendor_id))

    def list_for_vendor(
        self,
        vendor_id: str,
        status: BookingStatus | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Booking]:
        conditions = [self._vendor_scope(vendor_id)]
        conditions += self._filters(status, start_date, end_date)
        return self._page(conditions, limit, offset)

    def count_for_vendor(
        self,
        vendor_id: str,
        status: BookingStatus | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> int:
        conditions = [self._vendor_scope(vendor_id)]
        conditions += self._filters(status, start_date, end_date)
        return self._count(*conditions)

    def get_by_id_for_worker(self, booking_id: str, worker_id: str) -> Booking | None:
        return self._get_where(booking_id, self.table.c.worker_id == as_uuid(worker_id))

    def list_for_worker(
        self,
        worker_id: str,
        status: BookingStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Booking]:
        conditions = [self.table.c.worker_id == as_uuid(worker_id)]
        conditions += self._filters(status)
        return self._page(conditions, limit, offset)

    def count_for_worker(self, worker_id: str, status: BookingStatus | None = None) -> int:
        conditions = [self.table.c.worker_id == as_uuid(worker_id)]
        conditions += self._filters(status)
        return self._count(*conditions)

    def list_unpaid_for_worker(self, worker_id: str) -> list[Booking]:
        """Completed jobs the vendor has not yet paid the worker for."""
        stmt = (
            select(self.table)
            .where(
                self.table.c.worker_id == as_uuid(worker_id),
                self.table.c.status == BookingStatus.COMPLETED.value,
                self.table.c.is_worker_paid.is_(False),
            )
            .order_by(self.table.c.completed_at.desc())
        )
        return self._fetch_all(stmt)

    def _admin_conditions(self, status, vendor_id, user_id) -> list:
        conditions = self._filters(status)
        if vendor_id:
            conditions.append(self.table.c.vendor_id == as_uuid(vendor_id))
        if user_id:
            conditions.append(self.table.c.user_id == as_uuid(user_id))
        return conditions

    def list_all(
        self,
        status: BookingStatus | None = None,
        vendor_id: str | None = None,
        user_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Booking]:
        conditions = self._admin_conditions(status, vendor_id, user_id)
        return self._page(conditions, limit, offset)

    def count_all(
        self,
        status: BookingStatus | None = None,
        vendor_id: str | None = None,
        user_id: str | None = None,
    ) -> int:
        return self._count(*self._admin_conditions(status, vendor_id, user_id))

    # -------------------------------------------------------------------------
    # Updates
    # -------------------------------------------------------------------------

    def update_fields(self, booking_id: str, *conditions, **fields) -> Booking | None:
        """
        Update a booking and return its new state.

        Args:
            booking_id: Booking UUID
            *conditions: Extra WHERE clauses the row must satisfy
            **fields: Column values to set (enums are unwrapped)

        Returns:
            Updated booking, or None when no row matched
        """
        values = _db_values(fields)
        values["updated_at"] = utcnow()
        return self.update_returning(booking_id, *conditions, **values)

    def transition(
        self,
        booking_id: str,
        from_statuses: tuple[BookingStatus, ...] | list[BookingStatus],
        to_status: BookingStatus,
        **fields,
    ) -> Booking | None:
        """
        Move a booking to a new status only if it is still in an expected one.

        Returns:
            Updated booking, or None if the status changed concurrently
        """
        return self.update_fields(
            booking_id,
            self.table.c.status.in_([s.value for s in from_statuses]),
            status=to_status,
            **fields,
        )

    def claim_for_vendor(self, booking_id: str, vendor_id: str) -> Booking | None:
        """
        Atomically assign an open booking to a vendor.

        Only one concurrent caller can succeed: the UPDATE matches only while
        the booking is unclaimed and still open.

        Args:
            booking_id: Booking UUID
            vendor_id: Claiming vendor UUID

        Returns:
            Claimed booking, or None if another vendor got there first
        """
        now = utcnow()
        return self.update_fields(
            booking_id,
            self.table.c.vendor_id.is_(None),
            self.table.c.status.in_([s.value for s in OPEN_STATUSES]),
            vendor_id=as_uuid(vendor_id),
            status=BookingStatus.PENDING,
            accepted_at=now,
        )

    def claim_wave(self, booking_id: str, from_wave: int) -> Booking | None:
        """
        Move an open, unclaimed booking from one alert wave to the next.

        Concurrent dispatchers closing the same wave race on this UPDATE and
        only the first moves it; the rest see no row.

        Returns:
            Booking with the new wave, or None if the wave already moved
        """
        return self.update_fields(
            booking_id,
            self.table.c.current_wave == from_wave,
            self.table.c.vendor_id.is_(None),
            self.table.c.status.in_([s.value for s in OPEN_STATUSES]),
            current_wave=from_wave + 1,
        )

    def mark_worker_paid(self, booking_id: str, vendor_id: str) -> Booking | None:
        """Flag a completed job as paid out, once."""
        return self.update_fields(
            booking_id,
            self.table.c.vendor_id == as_uuid(vendor_id),
            self.table.c.status == BookingStatus.COMPLETED.value,
            self.table.c.is_worker_paid.is_(False),
            is_worker_paid=True,
            worker_paid_at=utcnow(),
        )
