"""
Booking pricing, commission split and booking numbers.
"""

import math
import random
import time
from dataclasses import dataclass

from homster import config

MIN_FINAL_AMOUNT = 1.0


def _round_rupees(value: float) -> float:
    """Round half up to whole rupees."""
    return float(math.floor(value + 0.5))


@dataclass(frozen=True)
class PriceBreakdown:
    base_price: float
    discount: float
    tax: float
    final_amount: float


def quote(
    base_price: float = 0,
    discount: float = 0,
    amount: float | None = None,
    gst_percentage: float | None = None,
) -> PriceBreakdown:
    """
    Price a booking.

    A tax-inclusive `amount` wins: GST is backed out of it and no discount
    applies. Otherwise GST is added to the base price and the discount
    subtracted. The payable amount never drops below 1.

    Args:
        base_price: Pre-tax service price
        discount: Discount on the base price
        amount: Tax-inclusive total quoted to the customer
        gst_percentage: Override for the configured GST rate

    Returns:
        Price breakdown, whole rupees for base and tax
    """
    rate = (config.GST_PERCENTAGE if gst_percentage is None else gst_percentage) / 100

    if amount is not None and amount > 0:
        final_amount = float(amount)
        base = _round_rupees(final_amount / (1 + rate))
        tax = round(final_amount - base, 2)
        discount = 0.0
    else:
        base = float(base_price)
        tax = _round_rupees(base * rate)
        final_amount = round(base - discount + tax, 2)

    return PriceBreakdown(
        base_price=base,
        discount=float(discount),
        tax=tax,
        final_amount=max(final_amount, MIN_FINAL_AMOUNT),
    )


def split_commission(
    final_amount: float, commission_percentage: float | None = None
) -> tuple[float, float]:
    """
    Split a payment between the platform and the vendor.

    Returns:
        Tuple of (admin_commission, vendor_earnings), rounded to paise
    """
    rate = (
        config.COMMISSION_PERCENTAGE
        if commission_percentage is None
        else commission_percentage
    )
    commission = round(final_amount * rate / 100, 2)
    return commission, round(final_amount - commission, 2)


def tds_split(amount: float, tds_percentage: float | None = None) -> tuple[float, float]:
    """
    Withhold TDS from a payout.

    Returns:
        Tuple of (tds_amount, net_amount)
    """
    rate = config.TDS_PERCENTAGE if tds_percentage is None else tds_percentage
    tds = round(amount * rate / 100, 2)
    return tds, round(amount - tds, 2)


def generate_booking_number() -> str:
    """`BK` + last 8 digits of the epoch millis + 3 random digits."""
    millis = str(int(time.time() * 1000))[-8:]
    return f"BK{millis}{random.randint(0, 999):03d}"
