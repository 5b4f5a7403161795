"""SQLAlchemy Core table definitions for the CRM store."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB

metadata = MetaData()

JsonType = JSON().with_variant(JSONB(), "postgresql")


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _id_column() -> Column:
    return Column("id", String(36), primary_key=True, default=new_id)


def _created_at() -> Column:
    return Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow)


def _updated_at() -> Column:
    return Column(
        "updated_at", DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


customers = Table(
    "customers",
    metadata,
    _id_column(),
    Column("first_name", String(120), nullable=False),
    Column("last_name", String(120), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("phone", String(50)),
    Column("company", String(255)),
    Column("industry", String(120)),
    Column("status", String(20), nullable=False, default="Prospect"),
    Column("value", Float, default=0),
    Column("tags", JsonType),
    Column("address", JsonType),
    _created_at(),
    _updated_at(),
    Column("last_contact", DateTime(timezone=True)),
)

interactions = Table(
    "interactions",
    metadata,
    _id_column(),
    Column("customer_id", String(36), ForeignKey("customers.id"), nullable=False, index=True),
    Column("type", String(20), nullable=False),
    Column("channel", String(120), nullable=False),
    Column("subject", String(255), nullable=False),
    Column("notes", Text),
    Column("date", DateTime(timezone=True), nullable=False, default=utcnow),
    Column("duration", Integer),
    Column("outcome", String(20)),
    Column("next_action", Text),
    _created_at(),
    _updated_at(),
)

support_tickets = Table(
    "support_tickets",
    metadata,
    _id_column(),
    Column("customer_id", String(36), ForeignKey("customers.id"), nullable=False, index=True),
    Column("title", String(255), nullable=False),
    Column("description", Text),
    Column("priority", String(20), nullable=False, default="Medium"),
    Column("status", String(20), nullable=False, default="Open"),
    Column("category", String(120), nullable=False),
    Column("assigned_to", String(255)),
    _created_at(),
    _updated_at(),
)

ticket_responses = Table(
    "ticket_responses",
    metadata,
    _id_column(),
    Column("ticket_id", String(36), ForeignKey("support_tickets.id"), nullable=False, index=True),
    Column("author", String(255), nullable=False),
    Column("message", Text, nullable=False),
    _created_at(),
)

customer_segments = Table(
    "customer_segments",
    metadata,
    _id_column(),
    Column("name", String(255), nullable=False),
    Column("description", Text),
    Column("criteria", JsonType),
    _created_at(),
    _updated_at(),
)

segment_memberships = Table(
    "segment_memberships",
    metadata,
    _id_column(),
    Column("customer_id", String(36), ForeignKey("customers.id"), nullable=False, index=True),
    Column("segment_id", String(36), ForeignKey("customer_segments.id"), nullable=False, index=True),
    _created_at(),
    UniqueConstraint("customer_id", "segment_id", name="uq_segment_membership"),
)

admin_settings = Table(
    "admin_settings",
    metadata,
    Column("setting_key", String(120), primary_key=True),
    Column("setting_value", JsonType),
    _updated_at(),
)
