from sqlalchemy import (
    MetaData, Table, Column, String, Text, Float, Boolean, Numeric,
    CheckConstraint, func, DateTime, ForeignKey
)
from sqlalchemy.dialects.postgresql import JSONB

metadata = MetaData()

locations = Table(
    "locations",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("address", String(255), nullable=False),
    Column("optional_address_ext", String(100), nullable=True),
    Column("city", String(100), nullable=False),
    Column("state", String(50), nullable=False),
    Column("zipcode", String(20), nullable=False),
    Column("latitude", Float, nullable=False),
    Column("longitude", Float, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

users = Table(
    "users",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("first_name", String(100), nullable=True),
    Column("last_name", String(100), nullable=True),
    Column("email", String(255), nullable=True),
    Column("phone_number", String(32), nullable=True),
    Column("profile_picture", Text, nullable=True),
    Column("user_type", String(32), nullable=True),
    Column(
        "location_id",
        String(36),
        ForeignKey("locations.id", ondelete="SET NULL", onupdate="CASCADE"),
        nullable=True,
    ),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

preservers = Table(
    "preservers",
    metadata,
    Column(
        "id",
        String(36),
        ForeignKey("users.id", ondelete="CASCADE", onupdate="CASCADE"),
        primary_key=True,
    ),
    Column("clearance", Boolean, nullable=False, server_default="false"),
)

applications = Table(
    "applications",
    metadata,
    Column("id", String(36), primary_key=True),
    Column(
        "preserver_id",
        String(36),
        ForeignKey("preservers.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
        unique=True,
    ),
    Column("experience", Text, nullable=True),
    Column("reason", Text, nullable=True),
    Column("status", String(16), nullable=False, server_default="pending"),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

assignments = Table(
    "assignments",
    metadata,
    Column("id", String(36), primary_key=True),
    Column(
        "client_id",
        String(36),
        ForeignKey("users.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column(
        "preserver_id",
        String(36),
        ForeignKey("preservers.id", ondelete="SET NULL", onupdate="CASCADE"),
        nullable=True,
        index=True,
    ),
    Column(
        "location_id",
        String(36),
        ForeignKey("locations.id", onupdate="CASCADE"),
        nullable=False,
    ),
    Column("description", Text, nullable=True),
    Column("base_price", Numeric(10, 2), nullable=False, server_default="0"),
    Column("tips", Numeric(10, 2), nullable=False, server_default="0"),
    Column("start_time", DateTime(timezone=True), nullable=True),
    Column("end_time", DateTime(timezone=True), nullable=True),
    Column("status", String(16), nullable=False, index=True),
    Column("attachments", JSONB, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now(), index=True),
    CheckConstraint("base_price >= 0 AND tips >= 0", name="ck_assignments_money"),
    CheckConstraint("end_time > start_time", name="ck_assignments_time_window"),
    CheckConstraint(
        "(status IN ('Pending', 'Open')) = (preserver_id IS NULL)",
        name="ck_assignments_preserver_status",
    ),
)
