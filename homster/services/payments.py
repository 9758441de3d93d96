"""
Booking payment settlement, cash collection and ledger entries.

Online payments (wallet or Razorpay) are settled in one step. Cash jobs go
through an OTP handshake: the vendor or worker starts collection, the
customer reads out the OTP, and confirming it records the cash against the
vendor's ledger.
"""

import logging
from typing import Any
from uuid import uuid4

from homster.db import UnitOfWork
from homster.db.repositories.base import utcnow
from homster.models.account import Role, Vendor
from homster.models.booking import Booking, BookingStatus, PaymentMethod, PaymentStatus
from homster.models.notification import NotificationType, RelatedType
from homster.models.wallet import Transaction, TransactionStatus, TransactionType
from homster.realtime import account_room
from homster.services.notifications import Outbox
from homster.services.pricing import split_commission
from homster.utils.hash import generate_otp

logger = logging.getLogger(__name__)

# Statuses an online payment moves to confirmed once a vendor holds the booking
CONFIRMABLE_STATUSES = (
    BookingStatus.PENDING,
    BookingStatus.SEARCHING,
    BookingStatus.AWAITING_PAYMENT,
)

# Statuses a cash confirmation closes out
CASH_COMPLETABLE_STATUSES = (
    BookingStatus.IN_PROGRESS,
    BookingStatus.VISITED,
    BookingStatus.WORK_DONE,
)

PAID_STATUSES = [PaymentStatus.SUCCESS.value, PaymentStatus.COLLECTED_BY_VENDOR.value]


def record_transaction(
    uow: UnitOfWork,
    role: Role,
    owner_id: str,
    type: TransactionType,
    amount: float,
    booking_id: str | None = None,
    status: TransactionStatus = TransactionStatus.COMPLETED,
    payment_method: str | None = None,
    description: str | None = None,
    reference_id: str | None = None,
    balance_before: float | None = None,
    balance_after: float | None = None,
    details: dict[str, Any] | None = None,
) -> Transaction:
    """Append a ledger entry to an account's wallet history."""
    return uow.transactions.create(
        Transaction(
            id=str(uuid4()),
            owner_role=role,
            owner_id=owner_id,
            booking_id=booking_id,
            type=type,
            amount=amount,
            status=status,
            payment_method=payment_method,
            description=description,
            reference_id=reference_id,
            balance_before=balance_before,
            balance_after=balance_after,
            details=details or {},
        )
    )


def credit_vendor_earnings(
    uow: UnitOfWork, booking: Booking, vendor_earnings: float, payment_method: str
) -> Vendor | None:
    """Credit the vendor's share of a paid booking and log it."""
    vendor = uow.vendors.credit_earnings(booking.vendor_id, vendor_earnings)
    if vendor is None:
        return None

    record_transaction(
        uow,
        Role.VENDOR,
        booking.vendor_id,
        TransactionType.EARNINGS_CREDIT,
        vendor_earnings,
        booking_id=booking.id,
        payment_method=payment_method,
        description=f"Earnings for booking {booking.booking_number}",
        balance_before=round(vendor.wallet.earnings - vendor_earnings, 2),
        balance_after=vendor.wallet.earnings,
    )
    return vendor


def settle_online_payment(
    uow: UnitOfWork,
    booking: Booking,
    method: PaymentMethod,
    payment_id: str,
    outbox: Outbox,
) -> Booking | None:
    """
    Mark a booking paid online and credit the vendor's share.

    Args:
        uow: Active unit of work
        booking: Booking being paid, with a vendor assigned
        method: Wallet or Razorpay
        payment_id: Gateway or wallet transaction reference
        outbox: Collects notifications

    Returns:
        Paid booking, or None if it was already paid
    """
    commission, vendor_earnings = split_commission(booking.final_amount)
    fields: dict[str, Any] = {
        "payment_status": PaymentStatus.SUCCESS,
        "payment_method": method,
        "payment_id": payment_id,
        "admin_commission": commission,
        "vendor_earnings": vendor_earnings,
    }
    if booking.vendor_id and booking.status in CONFIRMABLE_STATUSES:
        fields["status"] = BookingStatus.CONFIRMED

    paid = uow.bookings.update_fields(
        booking.id,
        uow.bookings.table.c.payment_status.not_in(PAID_STATUSES),
        **fields,
    )
    if paid is None:
        return None

    if paid.vendor_id:
        credit_vendor_earnings(uow, paid, vendor_earnings, method.value)

    outbox.notify(
        uow,
        Role.USER,
        paid.user_id,
        NotificationType.PAYMENT_SUCCESS,
        "Payment successful",
        f"Payment of ₹{paid.final_amount:.2f} for {paid.service_name} received.",
        related_id=paid.id,
        related_type=RelatedType.PAYMENT,
        data={"payment_id": payment_id, "method": method.value},
    )
    if paid.vendor_id:
        outbox.notify(
            uow,
            Role.VENDOR,
            paid.vendor_id,
            NotificationType.BOOKING_CONFIRMED,
            "Booking confirmed",
            f"Booking {paid.booking_number} has been paid and confirmed.",
            related_id=paid.id,
            related_type=RelatedType.BOOKING,
        )

    logger.info(
        "Payment settled",
        extra={
            "json_fields": {
                "booking_id": paid.id,
                "method": method.value,
                "commission": commission,
            }
        },
    )
    return paid


def initiate_cash_collection(
    uow: UnitOfWork,
    booking: Booking,
    outbox: Outbox,
    total_amount: float | None = None,
) -> tuple[Booking, str]:
    """
    Start on-site cash collection by issuing an OTP to the customer.

    Args:
        uow: Active unit of work
        booking: Cash booking being collected
        outbox: Collects the customer event and notification
        total_amount: Final bill when it differs from the booked amount

    Returns:
        Tuple of (updated booking, otp)
    """
    otp = generate_otp()
    fields: dict[str, Any] = {"payment_otp": otp}
    if total_amount is not None:
        fields["final_amount"] = total_amount

    updated = uow.bookings.update_fields(booking.id, **fields)
    amount = updated.final_amount

    outbox.emit(
        "booking_updated",
        {
            "booking_id": updated.id,
            "status": updated.status.value,
            "payment_otp": otp,
            "amount": amount,
            "message": f"Share OTP {otp} after paying ₹{amount:.2f} in cash",
        },
        account_room(Role.USER, updated.user_id),
    )
    outbox.notify(
        uow,
        Role.USER,
        updated.user_id,
        NotificationType.WORK_DONE,
        "Work completed",
        f"Please pay ₹{amount:.2f} in cash and share OTP {otp} to confirm.",
        related_id=updated.id,
        related_type=RelatedType.PAYMENT,
        data={"otp": otp, "amount": amount},
    )
    return updated, otp


def confirm_cash_collection(
    uow: UnitOfWork,
    booking: Booking,
    collector_role: Role,
    collector_id: str,
    outbox: Outbox,
    amount: float | None = None,
) -> Booking | None:
    """
    Record confirmed cash against the booking and the vendor's ledger.

    The whole amount becomes vendor dues and the vendor share becomes
    earnings. A vendor whose net owed balance passes the cash limit is
    blocked from further dispatch.

    Args:
        uow: Active unit of work
        booking: Booking whose OTP was verified
        collector_role: VENDOR or WORKER
        collector_id: Collecting account UUID
        outbox: Collects events and notifications
        amount: Amount collected, defaults to the booking amount

    Returns:
        Updated booking, or None if cash was already recorded
    """
    now = utcnow()
    collected = amount if amount is not None else booking.final_amount
    commission, vendor_earnings = split_commission(collected)

    fields: dict[str, Any] = {
        "cash_collected": True,
        "cash_collected_at": now,
        "cash_collected_by": collector_role,
        "cash_collector_id": collector_id,
        "payment_status": PaymentStatus.COLLECTED_BY_VENDOR,
        "payment_method": booking.payment_method or PaymentMethod.CASH,
        "payment_otp": None,
        "final_amount": collected,
        "admin_commission": commission,
        "vendor_earnings": vendor_earnings,
    }
    if booking.status in CASH_COMPLETABLE_STATUSES:
        fields["status"] = BookingStatus.COMPLETED
        fields["completed_at"] = now

    updated = uow.bookings.update_fields(
        booking.id,
        uow.bookings.table.c.payment_status.not_in(PAID_STATUSES),
        **fields,
    )
    if updated is None:
        return None

    vendor = uow.vendors.record_cash_collection(updated.vendor_id, collected, vendor_earnings)
    method = updated.payment_method.value if updated.payment_method else None

    record_transaction(
        uow,
        Role.VENDOR,
        updated.vendor_id,
        TransactionType.CASH_COLLECTED,
        collected,
        booking_id=updated.id,
        payment_method=method,
        description=f"Cash collected for booking {updated.booking_number}",
        balance_before=round(vendor.wallet.dues - collected, 2),
        balance_after=vendor.wallet.dues,
        details={"collected_by": collector_role.value, "collector_id": collector_id},
    )
    record_transaction(
        uow,
        Role.VENDOR,
        updated.vendor_id,
        TransactionType.EARNINGS_CREDIT,
        vendor_earnings,
        booking_id=updated.id,
        payment_method=method,
        description=f"Earnings for booking {updated.booking_number}",
        balance_before=round(vendor.wallet.earnings - vendor_earnings, 2),
        balance_after=vendor.wallet.earnings,
    )

    _enforce_cash_limit(uow, vendor, outbox)

    outbox.emit(
        "booking_updated",
        {
            "booking_id": updated.id,
            "status": updated.status.value,
            "payment_status": updated.payment_status.value,
            "amount": collected,
        },
        account_room(Role.USER, updated.user_id),
    )
    outbox.notify(
        uow,
        Role.USER,
        updated.user_id,
        NotificationType.PAYMENT_RECEIVED,
        "Payment received",
        f"Cash payment of ₹{collected:.2f} for {updated.service_name} received.",
        related_id=updated.id,
        related_type=RelatedType.PAYMENT,
    )
    return updated


def _enforce_cash_limit(uow: UnitOfWork, vendor: Vendor, outbox: Outbox) -> bool:
    """Block a vendor holding more platform cash than allowed."""
    wallet = vendor.wallet
    if wallet.net_owed <= wallet.cash_limit:
        return False

    reason = (
        f"Cash limit exceeded: ₹{wallet.net_owed:.2f} owed against a limit of "
        f"₹{wallet.cash_limit:.2f}"
    )
    if not uow.vendors.block(vendor.id, reason):
        return False

    outbox.notify(
        uow,
        Role.VENDOR,
        vendor.id,
        NotificationType.GENERAL,
        "Account blocked",
        f"{reason}. Settle your dues to receive new bookings.",
        related_id=vendor.id,
        related_type=RelatedType.VENDOR,
    )
    logger.warning(
        "Vendor blocked for cash limit",
        extra={
            "json_fields": {
                "vendor_id": vendor.id,
                "net_owed": wallet.net_owed,
                "cash_limit": wallet.cash_limit,
            }
        },
    )
    return True


def refund_cancelled_booking(
    uow: UnitOfWork, booking: Booking, outbox: Outbox
) -> float | None:
    """
    Refund a paid booking that is being cancelled.

    Wallet payments go back to the user's wallet; other paid bookings are
    only flagged refunded for the gateway refund.

    Returns:
        New wallet balance when the wallet was credited, else None
    """
    if not booking.payment_status.is_paid:
        return None

    uow.bookings.update_fields(booking.id, payment_status=PaymentStatus.REFUNDED)

    if booking.payment_method != PaymentMethod.WALLET:
        return None

    balance = uow.users.adjust_wallet(booking.user_id, booking.final_amount)
    record_transaction(
        uow,
        Role.USER,
        booking.user_id,
        TransactionType.REFUND,
        booking.final_amount,
        booking_id=booking.id,
        payment_method=PaymentMethod.WALLET.value,
        description=f"Refund for cancelled booking {booking.booking_number}",
        balance_before=round(balance - booking.final_amount, 2),
        balance_after=balance,
    )
    outbox.notify(
        uow,
        Role.USER,
        booking.user_id,
        NotificationType.PAYMENT_REFUNDED,
        "Refund issued",
        f"₹{booking.final_amount:.2f} has been returned to your wallet.",
        related_id=booking.id,
        related_type=RelatedType.PAYMENT,
    )
    return balance
