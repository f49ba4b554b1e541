"""initial_tables

Revision ID: 4a7c2e91b3d0
Revises:
Create Date: 2026-10-19 09:12:41.208311

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "4a7c2e91b3d0"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    # URL ITEMS
    op.create_table(
        "url_items",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("service_account_id", sa.String(36), nullable=True),
        sa.Column("attempt_count", sa.Integer(), nullable=False),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("last_status_code", sa.Integer(), nullable=True),
        sa.Column("failure_category", sa.String(16), nullable=True),
        sa.Column("submit_failed", sa.Boolean(), nullable=False),
        sa.Column("verification_attempts", sa.Integer(), nullable=False),
        sa.Column("retry_not_before", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_transition_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_url_items_selection", "url_items", ["status", "priority", "created_at"]
    )
    op.create_index("idx_url_items_retry", "url_items", ["status", "retry_not_before"])

    # URL TRANSITIONS
    op.create_table(
        "url_transitions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("url_item_id", sa.String(36), nullable=False),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("from_status", sa.String(32), nullable=False),
        sa.Column("to_status", sa.String(32), nullable=False),
        sa.Column("at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("category", sa.String(16), nullable=True),
        sa.Column("retry_delay_seconds", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["url_item_id"], ["url_items.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_url_transitions_item_seq",
        "url_transitions",
        ["url_item_id", "seq"],
        unique=True,
    )

    # SERVICE ACCOUNTS
    op.create_table(
        "service_accounts",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("project_id", sa.String(), nullable=False),
        sa.Column("credential_ref", sa.Text(), nullable=False),
        sa.Column("quota_limit_per_day", sa.Integer(), nullable=False),
        sa.Column("quota_used_in_period", sa.Integer(), nullable=False),
        sa.Column("quota_period_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_service_accounts_deleted_at", "service_accounts", ["deleted_at"])

    # SETTINGS
    op.create_table(
        "settings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=True),
        sa.Column("requests_per_day", sa.Integer(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("settings")
    op.drop_index("idx_service_accounts_deleted_at", table_name="service_accounts")
    op.drop_table("service_accounts")
    op.drop_index("idx_url_transitions_item_seq", table_name="url_transitions")
    op.drop_table("url_transitions")
    op.drop_index("idx_url_items_retry", table_name="url_items")
    op.drop_index("idx_url_items_selection", table_name="url_items")
    op.drop_table("url_items")
