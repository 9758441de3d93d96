from datetime import datetime, timezone
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, Field

from homster.models.account import Address


class AlertStatus(StrEnum):
    """Booking alert status"""

    OFFERED = "offered"  # Countdown running
    ACCEPTED = "accepted"  # This vendor won the booking
    REJECTED = "rejected"  # Vendor declined
    EXPIRED = "expired"  # Countdown ran out
    WITHDRAWN = "withdrawn"  # Another vendor won or the booking closed


class BookingAlert(BaseModel):
    """
    Time-boxed offer of a booking to one vendor.

    Alerts are sent in waves to the nearest vendors. An alert is open while
    it is offered and its expiry has not passed.
    """

    id: str = Field(description="Internal alert identifier (UUID)")
    booking_id: str = Field(description="Booking on offer")
    vendor_id: str = Field(description="Vendor receiving the offer")
    wave: int = Field(ge=1, description="Dispatch wave number")
    distance_km: float = Field(description="Vendor distance from the service address")
    status: AlertStatus = Field(default=AlertStatus.OFFERED)
    offered_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the alert was sent",
    )
    expires_at: datetime = Field(description="When the offer lapses")
    responded_at: Optional[datetime] = Field(default=None)

    def is_open(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return self.status == AlertStatus.OFFERED and now < self.expires_at

    def seconds_remaining(self, now: datetime | None = None) -> int:
        now = now or datetime.now(timezone.utc)
        if not self.is_open(now):
            return 0
        return max(0, int((self.expires_at - now).total_seconds()))


class VendorAlertView(BaseModel):
    """Open alert with the booking summary a vendor needs to decide"""

    alert_id: str
    booking_id: str
    booking_number: str
    service_name: str
    service_category: str
    final_amount: float
    address: Address
    scheduled_date: datetime
    scheduled_time: str
    distance_km: float
    expires_at: datetime
    seconds_remaining: int


class DispatchOutcome(BaseModel):
    """Result of opening or advancing an alert wave"""

    booking_id: str
    wave: int = Field(description="Wave now in effect")
    alerted_vendor_ids: list[str] = Field(default_factory=list)
    expired_alerts: int = Field(default=0)
    exhausted: bool = Field(
        default=False, description="No vendors left; the booking was cancelled"
    )
    skipped: bool = Field(
        default=False, description="Nothing to do, the booking moved on"
    )
