# =======================================================================================
# gatekeeper/models/tables.py - Relational Schema (SQLAlchemy Core)
# =======================================================================================
from sqlalchemy import (
    MetaData, Table, Column, Integer, String, Boolean, DateTime, Date,
    ForeignKey, UniqueConstraint, Index,
)

metadata = MetaData()

# ---------------------------------------------------------------------------
# Catalog (owned elsewhere, read-only here)
# ---------------------------------------------------------------------------
societies = Table(
    "societies", metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(150), nullable=False),
)

buildings = Table(
    "buildings", metadata,
    Column("id", Integer, primary_key=True),
    Column("society_id", Integer, ForeignKey("societies.id"), nullable=False),
    Column("name", String(100), nullable=False),
)

flats = Table(
    "flats", metadata,
    Column("id", Integer, primary_key=True),
    Column("building_id", Integer, ForeignKey("buildings.id"), nullable=False),
    Column("flat_number", String(20), nullable=False),
)

users = Table(
    "users", metadata,
    Column("id", Integer, primary_key=True),
    Column("full_name", String(100), nullable=False),
    Column("email", String(150), nullable=False, unique=True),
    Column("phone", String(15)),
    Column("society_id", Integer, ForeignKey("societies.id")),
)

residents = Table(
    "residents", metadata,
    Column("id", Integer, primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("flat_id", Integer, ForeignKey("flats.id"), nullable=False),
    Column("is_active", Boolean, nullable=False, default=True),
)

# ---------------------------------------------------------------------------
# Visitors and visits
# ---------------------------------------------------------------------------
visitors = Table(
    "visitors", metadata,
    Column("id", Integer, primary_key=True),
    Column("full_name", String(100), nullable=False),
    Column("phone", String(15), nullable=False, unique=True),
    Column("id_proof_type", String(50)),
    Column("id_proof_number", String(50)),
    Column("photo_url", String(255)),
    Column("created_at", DateTime, nullable=False),
)

visitor_logs = Table(
    "visitor_logs", metadata,
    Column("id", Integer, primary_key=True),
    Column("visitor_id", Integer, ForeignKey("visitors.id"), nullable=False),
    Column("flat_id", Integer, ForeignKey("flats.id"), nullable=False),
    Column("category", String(20), nullable=False, default="GUEST"),
    Column("purpose", String(200)),
    Column("vehicle_number", String(20)),
    Column("in_time", DateTime, nullable=False),
    Column("out_time", DateTime),
    Column("expected_out_time", DateTime),
    Column("status", String(20), nullable=False, default="PENDING"),
    Column("gate_entry", String(50)),
    Column("checked_in_by_user_id", Integer, ForeignKey("users.id")),
    Index("ix_visitor_logs_open", "out_time", "expected_out_time"),
)

visitor_approvals = Table(
    "visitor_approvals", metadata,
    Column("id", Integer, primary_key=True),
    Column("visitor_log_id", Integer, ForeignKey("visitor_logs.id"), nullable=False),
    Column("resident_id", Integer, ForeignKey("residents.id"), nullable=False),
    Column("status", String(20), nullable=False, default="PENDING"),
    Column("requested_at", DateTime, nullable=False),
    Column("responded_at", DateTime),
    Column("requested_by_user_id", Integer, ForeignKey("users.id")),
    UniqueConstraint("visitor_log_id", "resident_id", name="uq_visitor_approvals_log_resident"),
)

# ---------------------------------------------------------------------------
# Grants
# ---------------------------------------------------------------------------
pre_approvals = Table(
    "pre_approvals", metadata,
    Column("id", Integer, primary_key=True),
    Column("visitor_name", String(100), nullable=False),
    Column("visitor_phone", String(15), nullable=False),
    Column("category", String(20), nullable=False),
    Column("valid_from", DateTime, nullable=False),
    Column("valid_until", DateTime, nullable=False),
    Column("code", String(6), nullable=False, index=True),
    # Holds the code while unused; cleared on redemption so the code can be reissued.
    Column("active_code", String(6), unique=True),
    Column("is_used", Boolean, nullable=False, default=False),
    Column("created_at", DateTime, nullable=False),
    Column("resident_id", Integer, ForeignKey("residents.id"), nullable=False),
    Column("flat_id", Integer, ForeignKey("flats.id"), nullable=False),
    Index("ix_pre_approvals_phone_flat", "visitor_phone", "flat_id"),
)

frequent_visitors = Table(
    "frequent_visitors", metadata,
    Column("id", Integer, primary_key=True),
    Column("visitor_id", Integer, ForeignKey("visitors.id"), nullable=False),
    Column("flat_id", Integer, ForeignKey("flats.id"), nullable=False),
    Column("category", String(20), nullable=False),
    Column("purpose", String(100)),
    Column("valid_from", Date, nullable=False),
    Column("valid_until", Date, nullable=False),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime, nullable=False),
    Column("created_by_resident_id", Integer, ForeignKey("residents.id"), nullable=False),
    UniqueConstraint("visitor_id", "flat_id", name="uq_frequent_visitors_visitor_flat"),
)

# ---------------------------------------------------------------------------
# Domestic help and toggle logs
# ---------------------------------------------------------------------------
domestic_helps = Table(
    "domestic_helps", metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(100), nullable=False),
    Column("phone", String(15), nullable=False),
    Column("help_type", String(20), nullable=False),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("photo_url", String(255)),
    Column("pass_code", String(6), nullable=False, unique=True),
    Column("created_at", DateTime, nullable=False),
    Column("society_id", Integer, ForeignKey("societies.id"), nullable=False),
)

flat_domestic_helps = Table(
    "flat_domestic_helps", metadata,
    Column("help_id", Integer, ForeignKey("domestic_helps.id"), primary_key=True),
    Column("flat_id", Integer, ForeignKey("flats.id"), primary_key=True),
)

daily_help_logs = Table(
    "daily_help_logs", metadata,
    Column("id", Integer, primary_key=True),
    Column("help_id", Integer, ForeignKey("domestic_helps.id"), nullable=False),
    Column("entry_time", DateTime, nullable=False),
    Column("exit_time", DateTime),
    Column("guard_id", Integer, ForeignKey("users.id")),
    Index("ix_daily_help_logs_help_entry", "help_id", "entry_time"),
)

access_logs = Table(
    "access_logs", metadata,
    Column("id", Integer, primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id")),
    Column("domestic_help_id", Integer, ForeignKey("domestic_helps.id")),
    Column("access_type", String(10), nullable=False),
    Column("timestamp", DateTime, nullable=False),
    Column("scanned_by", String(150)),
    Index("ix_access_logs_user_ts", "user_id", "timestamp"),
    Index("ix_access_logs_help_ts", "domestic_help_id", "timestamp"),
)
