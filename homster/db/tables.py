"""
SQLAlchemy Table definitions for the Homster database.

These Table objects mirror the schema defined in migrations/001_initial_schema.sql.
Uses SQLAlchemy Core (not ORM) for flexibility with Pydantic models.
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID

metadata = MetaData()


def Money(name: str, **kwargs) -> Column:
    """Rupee amount column returned as float."""
    return Column(name, Numeric(12, 2, asdecimal=False), **kwargs)


# =============================================================================
# TABLE: users
# =============================================================================

users = Table(
    "users",
    metadata,
    Column("id", UUID, primary_key=True),
    Column("name", String(255), nullable=False),
    Column("phone", String(20), unique=True, nullable=False),
    Column("email", String(255)),
    Column("password_hash", String(255), nullable=False),
    Money("wallet_balance", nullable=False, default=0),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

# =============================================================================
# TABLE: vendors
# =============================================================================

vendors = Table(
    "vendors",
    metadata,
    Column("id", UUID, primary_key=True),
    Column("name", String(255), nullable=False),
    Column("business_name", String(255)),
    Column("phone", String(20), unique=True, nullable=False),
    Column("email", String(255)),
    Column("password_hash", String(255), nullable=False),
    Column("approval_status", String(20), nullable=False, default="pending"),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("is_online", Boolean, nullable=False, default=False),
    Column("lat", Float),
    Column("lng", Float),
    Column("address", JSONB),
    # Cash ledger
    Money("dues", nullable=False, default=0),
    Money("earnings", nullable=False, default=0),
    Money("total_cash_collected", nullable=False, default=0),
    Money("total_withdrawn", nullable=False, default=0),
    Money("cash_limit", nullable=False, default=10000),
    Column("is_blocked", Boolean, nullable=False, default=False),
    Column("blocked_at", DateTime(timezone=True)),
    Column("block_reason", Text),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

# =============================================================================
# TABLE: workers
# =============================================================================

workers = Table(
    "workers",
    metadata,
    Column("id", UUID, primary_key=True),
    Column("vendor_id", UUID, ForeignKey("vendors.id", ondelete="SET NULL")),
    Column("name", String(255), nullable=False),
    Column("phone", String(20), unique=True, nullable=False),
    Column("email", String(255)),
    Column("password_hash", String(255), nullable=False),
    Column("status", String(20), nullable=False, default="active"),
    Column("rating", Float, nullable=False, default=0),
    Column("total_jobs", Integer, nullable=False, default=0),
    Column("completed_jobs", Integer, nullable=False, default=0),
    Money("wallet_balance", nullable=False, default=0),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

# =============================================================================
# TABLE: admins
# =============================================================================

admins = Table(
    "admins",
    metadata,
    Column("id", UUID, primary_key=True),
    Column("name", String(255), nullable=False),
    Column("phone", String(20), unique=True, nullable=False),
    Column("email", String(255)),
    Column("password_hash", String(255), nullable=False),
    Column("is_super_admin", Boolean, nullable=False, default=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

# =============================================================================
# TABLE: bookings
# =============================================================================

bookings = Table(
    "bookings",
    metadata,
    Column("id", UUID, primary_key=True),
    Column("booking_number", String(32), unique=True, nullable=False),
    Column("user_id", UUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("vendor_id", UUID, ForeignKey("vendors.id", ondelete="SET NULL")),
    Column("worker_id", UUID, ForeignKey("workers.id", ondelete="SET NULL")),
    Column("service_name", String(255), nullable=False),
    Column("service_category", String(100), nullable=False),
    Column("description", Text),
    # Pricing
    Money("base_price", nullable=False, default=0),
    Money("discount", nullable=False, default=0),
    Money("tax", nullable=False, default=0),
    Money("final_amount", nullable=False),
    Money("admin_commission", nullable=False, default=0),
    Money("vendor_earnings", nullable=False, default=0),
    # Payment
    Column("payment_status", String(30), nullable=False, default="pending"),
    Column("payment_method", String(30)),
    Column("payment_id", String(255)),
    Column("payment_otp", String(6)),
    Column("cash_collected", Boolean, nullable=False, default=False),
    Column("cash_collected_at", DateTime(timezone=True)),
    Column("cash_collected_by", String(20)),
    Column("cash_collector_id", UUID),
    # Schedule (address and time slot as JSONB)
    Column("address", JSONB, nullable=False),
    Column("scheduled_date", DateTime(timezone=True), nullable=False),
    Column("scheduled_time", String(50), nullable=False),
    Column("time_slot", JSONB),
    # Lifecycle
    Column("status", String(30), nullable=False, default="searching"),
    Column("worker_response", String(20)),
    Column("current_wave", Integer, nullable=False, default=0),
    Column("accepted_at", DateTime(timezone=True)),
    Column("assigned_at", DateTime(timezone=True)),
    Column("started_at", DateTime(timezone=True)),
    Column("completed_at", DateTime(timezone=True)),
    Column("cancelled_at", DateTime(timezone=True)),
    Column("cancellation_reason", Text),
    Column("cancelled_by", String(20)),
    # Review
    Column("rating", Integer),
    Column("review", Text),
    Column("reviewed_at", DateTime(timezone=True)),
    # Notes
    Column("user_notes", Text),
    Column("vendor_notes", Text),
    Column("worker_notes", Text),
    # Worker payout
    Column("is_worker_paid", Boolean, nullable=False, default=False),
    Column("worker_paid_at", DateTime(timezone=True)),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

# =============================================================================
# TABLE: booking_alerts
# =============================================================================

booking_alerts = Table(
    "booking_alerts",
    metadata,
    Column("id", UUID, primary_key=True),
    Column(
        "booking_id",
        UUID,
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "vendor_id",
        UUID,
        ForeignKey("vendors.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("wave", Integer, nullable=False),
    Column("distance_km", Float, nullable=False),
    Column("status", String(20), nullable=False, default="offered"),
    Column("offered_at", DateTime(timezone=True), nullable=False),
    Column("expires_at", DateTime(timezone=True), nullable=False),
    Column("responded_at", DateTime(timezone=True)),
    UniqueConstraint("booking_id", "vendor_id", name="uq_booking_alerts_booking_vendor"),
)

# =============================================================================
# TABLE: scraps
# =============================================================================

scraps = Table(
    "scraps",
    metadata,
    Column("id", UUID, primary_key=True),
    Column("user_id", UUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("title", String(255), nullable=False),
    Column("description", Text),
    Column("category", String(100)),
    Column("quantity", String(100)),
    Money("expected_price"),
    Column("images", JSONB, nullable=False, default=[]),
    Column("address", JSONB, nullable=False, default={}),
    Column("status", String(20), nullable=False, default="pending"),
    Column("vendor_id", UUID, ForeignKey("vendors.id", ondelete="SET NULL")),
    Column("accepted_by", UUID),
    Column("accepted_by_role", String(20)),
    Column("pickup_date", DateTime(timezone=True)),
    Money("final_price"),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

# =============================================================================
# TABLE: notifications
# =============================================================================

notifications = Table(
    "notifications",
    metadata,
    Column("id", UUID, primary_key=True),
    Column("recipient_role", String(20), nullable=False),
    Column("recipient_id", UUID, nullable=False),
    Column("type", String(50), nullable=False, default="general"),
    Column("title", String(255), nullable=False),
    Column("message", Text, nullable=False),
    Column("related_id", UUID),
    Column("related_type", String(20)),
    Column("is_read", Boolean, nullable=False, default=False),
    Column("read_at", DateTime(timezone=True)),
    Column("data", JSONB, nullable=False, default={}),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

# =============================================================================
# TABLE: transactions
# =============================================================================

transactions = Table(
    "transactions",
    metadata,
    Column("id", UUID, primary_key=True),
    Column("owner_role", String(20), nullable=False),
    Column("owner_id", UUID, nullable=False),
    Column("booking_id", UUID, ForeignKey("bookings.id", ondelete="SET NULL")),
    Column("type", String(30), nullable=False),
    Money("amount", nullable=False),
    Column("status", String(20), nullable=False, default="completed"),
    Column("payment_method", String(30)),
    Column("description", Text),
    Column("reference_id", String(255)),
    Money("balance_before"),
    Money("balance_after"),
    Column("details", JSONB, nullable=False, default={}),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

# =============================================================================
# TABLE: withdrawals
# =============================================================================

withdrawals = Table(
    "withdrawals",
    metadata,
    Column("id", UUID, primary_key=True),
    Column(
        "vendor_id",
        UUID,
        ForeignKey("vendors.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("transaction_id", UUID, ForeignKey("transactions.id", ondelete="SET NULL")),
    Money("amount", nullable=False),
    Column("status", String(20), nullable=False, default="pending"),
    Column("bank_details", JSONB),
    Money("tds_amount", nullable=False, default=0),
    Money("net_amount"),
    Column("transaction_reference", String(255)),
    Column("admin_notes", Text),
    Column("rejection_reason", Text),
    Column("processed_by", UUID),
    Column("processed_at", DateTime(timezone=True)),
    Column("created_at", DateTime(timezone=True), nullable=False),
)
