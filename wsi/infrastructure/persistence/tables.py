"""Catalog schema. Portable types only, so the same tables serve SQLite and PostgreSQL."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)

# Shared by the repositories and Alembic autogenerate
metadata = MetaData()

# ---------------------------------------------------------------------------
# URL ITEMS TABLE
# ---------------------------------------------------------------------------
url_items_table = Table(
    "url_items",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("url", Text, nullable=False),
    Column("type", String(16), nullable=False),  # UrlItemType as string
    Column("priority", Integer, nullable=False),
    Column("status", String(32), nullable=False),  # UrlItemStatus as string
    Column("service_account_id", String(36), nullable=True),
    Column("attempt_count", Integer, nullable=False, default=0),
    Column("last_error", Text, nullable=True),
    Column("last_status_code", Integer, nullable=True),
    Column("failure_category", String(16), nullable=True),
    Column("submit_failed", Boolean, nullable=False, default=False),
    Column("verification_attempts", Integer, nullable=False, default=0),
    Column("retry_not_before", DateTime(timezone=True), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("last_transition_at", DateTime(timezone=True), nullable=False),
)

# Stage selection: status filter, then priority desc / created asc
Index(
    "idx_url_items_selection",
    url_items_table.c.status,
    url_items_table.c.priority,
    url_items_table.c.created_at,
)
Index("idx_url_items_retry", url_items_table.c.status, url_items_table.c.retry_not_before)


# ---------------------------------------------------------------------------
# URL TRANSITIONS TABLE (append-only history)
# ---------------------------------------------------------------------------
url_transitions_table = Table(
    "url_transitions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "url_item_id",
        String(36),
        ForeignKey("url_items.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("seq", Integer, nullable=False),  # Position in the item's history
    Column("from_status", String(32), nullable=False),
    Column("to_status", String(32), nullable=False),
    Column("at", DateTime(timezone=True), nullable=False),
    Column("reason", Text, nullable=True),
    Column("category", String(16), nullable=True),
    Column("retry_delay_seconds", Integer, nullable=True),
)

Index(
    "idx_url_transitions_item_seq",
    url_transitions_table.c.url_item_id,
    url_transitions_table.c.seq,
    unique=True,
)


# ---------------------------------------------------------------------------
# SERVICE ACCOUNTS TABLE
# ---------------------------------------------------------------------------
service_accounts_table = Table(
    "service_accounts",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("project_id", String, nullable=False),
    Column("credential_ref", Text, nullable=False),  # Path to the credential JSON
    Column("quota_limit_per_day", Integer, nullable=False),
    Column("quota_used_in_period", Integer, nullable=False, default=0),
    Column("quota_period_start", DateTime(timezone=True), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("deleted_at", DateTime(timezone=True), nullable=True),
)

Index("idx_service_accounts_deleted_at", service_accounts_table.c.deleted_at)


# ---------------------------------------------------------------------------
# SETTINGS TABLE (single row of tenant overrides)
# ---------------------------------------------------------------------------
settings_table = Table(
    "settings",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("enabled", Boolean, nullable=True),  # NULL = use config default
    Column("requests_per_day", Integer, nullable=True),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)
