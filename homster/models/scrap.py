from datetime import datetime, timezone
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, Field

from homster.models.account import Role


class ScrapStatus(StrEnum):
    """Scrap pickup lifecycle"""

    PENDING = "pending"
    ACCEPTED = "accepted"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ScrapAddress(BaseModel):
    """Pickup location, every field optional"""

    address_line1: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lng: Optional[float] = Field(default=None, ge=-180, le=180)


class Scrap(BaseModel):
    """A user request to have scrap material picked up"""

    id: str = Field(description="Internal scrap identifier (UUID)")
    user_id: str = Field(description="User who listed the item")
    title: str = Field(description="Short item title")
    description: Optional[str] = Field(default=None)
    category: Optional[str] = Field(default=None, description="Metal, paper, e-waste...")
    quantity: Optional[str] = Field(default=None, description="Approximate quantity")
    expected_price: Optional[float] = Field(default=None, ge=0)
    images: list[str] = Field(default_factory=list, description="Image URLs")
    address: ScrapAddress = Field(default_factory=ScrapAddress)
    status: ScrapStatus = Field(default=ScrapStatus.PENDING)
    vendor_id: Optional[str] = Field(default=None, description="Accepting vendor")
    accepted_by: Optional[str] = Field(default=None, description="Accepting account")
    accepted_by_role: Optional[Role] = Field(default=None)
    pickup_date: Optional[datetime] = Field(default=None)
    final_price: Optional[float] = Field(default=None, ge=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ScrapCreateRequest(BaseModel):
    """Request body for listing scrap"""

    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=2000)
    category: Optional[str] = Field(default=None, max_length=100)
    quantity: Optional[str] = Field(default=None, max_length=100)
    expected_price: Optional[float] = Field(default=None, ge=0)
    images: list[str] = Field(default_factory=list, max_length=10)
    address: ScrapAddress = Field(default_factory=ScrapAddress)


class ScrapAcceptRequest(BaseModel):
    """Request body for accepting a pickup"""

    pickup_date: Optional[datetime] = Field(
        default=None, description="Planned pickup time, defaults to now"
    )


class ScrapCompleteRequest(BaseModel):
    """Request body for completing a pickup"""

    final_price: Optional[float] = Field(default=None, ge=0)


class ScrapListResponse(BaseModel):
    """Scrap item list"""

    items: list[Scrap]
    total: int
