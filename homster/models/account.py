from datetime import datetime, timezone
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class Role(StrEnum):
    """Account role used for authorization and socket rooms"""

    USER = "USER"
    VENDOR = "VENDOR"
    WORKER = "WORKER"
    ADMIN = "ADMIN"

    @property
    def room_prefix(self) -> str:
        return self.value.lower()


class ApprovalStatus(StrEnum):
    """Vendor onboarding status"""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUSPENDED = "suspended"


class WorkerStatus(StrEnum):
    """Worker availability status"""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    ONLINE = "ONLINE"  # Set by the worker app while on shift
    OFFLINE = "OFFLINE"

    @property
    def is_assignable(self) -> bool:
        return self in (WorkerStatus.ACTIVE, WorkerStatus.ONLINE)


class Address(BaseModel):
    """Service address"""

    type: str = Field(default="home", description="Address label (home, work, other)")
    address_line1: str = Field(description="Street address")
    address_line2: Optional[str] = Field(default=None, description="Apartment, floor")
    city: str = Field(description="City")
    state: str = Field(description="State")
    pincode: str = Field(description="Postal code")
    landmark: Optional[str] = Field(default=None, description="Nearby landmark")
    lat: Optional[float] = Field(default=None, ge=-90, le=90, description="Latitude")
    lng: Optional[float] = Field(default=None, ge=-180, le=180, description="Longitude")

    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None

    def as_text(self) -> str:
        parts = [
            self.address_line1,
            self.address_line2,
            self.landmark,
            self.city,
            self.state,
            self.pincode,
        ]
        return ", ".join(p for p in parts if p)


class User(BaseModel):
    """Customer account that books services and lists scrap"""

    id: str = Field(description="Internal user identifier (UUID)")
    name: str = Field(description="Full name")
    phone: str = Field(description="Phone number, unique per role")
    email: Optional[EmailStr] = Field(default=None, description="Email address")
    wallet_balance: float = Field(default=0, description="Prepaid wallet balance")
    is_active: bool = Field(default=True, description="Whether the account is active")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Account creation time",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last update time",
    )


class VendorWallet(BaseModel):
    """
    Vendor cash and earnings ledger.

    `dues` is cash the vendor collected on the platform's behalf, `earnings`
    is what the platform owes the vendor. A vendor whose net owed balance
    exceeds `cash_limit` is blocked from new dispatch.
    """

    dues: float = Field(default=0, description="Cash owed to the platform")
    earnings: float = Field(default=0, description="Earnings owed to the vendor")
    total_cash_collected: float = Field(default=0, description="Lifetime cash collected")
    total_withdrawn: float = Field(default=0, description="Lifetime payouts")
    cash_limit: float = Field(default=10000, description="Maximum net owed before blocking")
    is_blocked: bool = Field(default=False, description="Blocked for exceeding the cash limit")
    blocked_at: Optional[datetime] = Field(default=None, description="When the block started")
    block_reason: Optional[str] = Field(default=None, description="Why the vendor is blocked")

    @property
    def net_owed(self) -> float:
        return round(self.dues - self.earnings, 2)


class Vendor(BaseModel):
    """Service business that accepts bookings and scrap pickups"""

    id: str = Field(description="Internal vendor identifier (UUID)")
    name: str = Field(description="Owner name")
    business_name: Optional[str] = Field(default=None, description="Business display name")
    phone: str = Field(description="Phone number")
    email: Optional[EmailStr] = Field(default=None, description="Email address")
    approval_status: ApprovalStatus = Field(
        default=ApprovalStatus.PENDING, description="Onboarding status"
    )
    is_active: bool = Field(default=True, description="Whether the account is active")
    is_online: bool = Field(default=False, description="Currently accepting jobs")
    lat: Optional[float] = Field(default=None, ge=-90, le=90, description="Base latitude")
    lng: Optional[float] = Field(default=None, ge=-180, le=180, description="Base longitude")
    address: Optional[Address] = Field(default=None, description="Business address")
    wallet: VendorWallet = Field(default_factory=VendorWallet, description="Cash ledger")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Account creation time",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last update time",
    )

    @property
    def is_approved(self) -> bool:
        return self.approval_status == ApprovalStatus.APPROVED

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "4b1f0c3e-8d2a-4a57-9a55-54f0b2d7f0a1",
                "name": "Ravi Sharma",
                "business_name": "Sharma Home Services",
                "phone": "9876543210",
                "approval_status": "approved",
                "is_online": True,
                "lat": 22.7196,
                "lng": 75.8577,
                "wallet": {"dues": 1200, "earnings": 800, "cash_limit": 10000},
            }
        }
    )


class Worker(BaseModel):
    """Field technician employed by a vendor"""

    id: str = Field(description="Internal worker identifier (UUID)")
    vendor_id: Optional[str] = Field(default=None, description="Employing vendor")
    name: str = Field(description="Full name")
    phone: str = Field(description="Phone number")
    email: Optional[EmailStr] = Field(default=None, description="Email address")
    status: WorkerStatus = Field(default=WorkerStatus.ACTIVE, description="Availability")
    rating: float = Field(default=0, description="Average rating")
    total_jobs: int = Field(default=0, description="Jobs assigned")
    completed_jobs: int = Field(default=0, description="Jobs completed")
    wallet_balance: float = Field(default=0, description="Unwithdrawn payouts")
    is_active: bool = Field(default=True, description="Whether the account is active")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Account creation time",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last update time",
    )


class Admin(BaseModel):
    """Platform operator"""

    id: str = Field(description="Internal admin identifier (UUID)")
    name: str = Field(description="Full name")
    phone: str = Field(description="Phone number")
    email: Optional[EmailStr] = Field(default=None, description="Email address")
    is_super_admin: bool = Field(default=False, description="Full platform access")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Account creation time",
    )


# =============================================================================
# Request / response models
# =============================================================================


class UserRegisterRequest(BaseModel):
    """Request body for customer sign-up"""

    name: str = Field(min_length=1, max_length=255, description="Full name")
    phone: str = Field(min_length=8, max_length=20, description="Phone number")
    email: Optional[EmailStr] = Field(default=None, description="Email address")
    password: str = Field(min_length=6, description="Account password")


class VendorRegisterRequest(BaseModel):
    """Request body for vendor sign-up"""

    name: str = Field(min_length=1, max_length=255, description="Owner name")
    business_name: Optional[str] = Field(default=None, description="Business name")
    phone: str = Field(min_length=8, max_length=20, description="Phone number")
    email: Optional[EmailStr] = Field(default=None, description="Email address")
    password: str = Field(min_length=6, description="Account password")
    lat: Optional[float] = Field(default=None, ge=-90, le=90, description="Base latitude")
    lng: Optional[float] = Field(default=None, ge=-180, le=180, description="Base longitude")
    address: Optional[Address] = Field(default=None, description="Business address")


class LoginRequest(BaseModel):
    """Request body for phone and password login"""

    role: Role = Field(description="Role to sign in as")
    phone: str = Field(description="Phone number")
    password: str = Field(description="Account password")


class RefreshRequest(BaseModel):
    """Request body for exchanging a refresh token"""

    refresh_token: str = Field(description="Refresh token issued at login")


class TokenPair(BaseModel):
    """Issued access and refresh tokens"""

    access_token: str = Field(description="Bearer token for API and socket calls")
    refresh_token: str = Field(description="Token used to obtain a new pair")
    token_type: str = Field(default="bearer", description="Token scheme")
    role: Role = Field(description="Role the tokens were issued for")
    account_id: str = Field(description="Account UUID")


class MeResponse(BaseModel):
    """Current principal and profile"""

    role: Role = Field(description="Authenticated role")
    account_id: str = Field(description="Account UUID")
    profile: Optional[dict] = Field(default=None, description="Account profile")


class WorkerCreateRequest(BaseModel):
    """Request body for a vendor adding a worker"""

    name: str = Field(min_length=1, max_length=255, description="Full name")
    phone: str = Field(min_length=8, max_length=20, description="Phone number")
    email: Optional[EmailStr] = Field(default=None, description="Email address")
    password: str = Field(min_length=6, description="Initial worker password")


class WorkerUpdateRequest(BaseModel):
    """Request body for a vendor editing a worker"""

    name: Optional[str] = Field(default=None, min_length=1, description="Full name")
    email: Optional[EmailStr] = Field(default=None, description="Email address")
    status: Optional[WorkerStatus] = Field(default=None, description="Availability")


class WorkerListResponse(BaseModel):
    """Vendor worker roster"""

    workers: list[Worker] = Field(description="Workers linked to the vendor")
    total: int = Field(description="Number of workers")


class VendorListResponse(BaseModel):
    """Paginated vendor list"""

    vendors: list[Vendor] = Field(description="Vendors")
    total: int = Field(description="Total matching vendors")
    limit: int = Field(description="Page size")
    offset: int = Field(description="Offset of the first vendor returned")
