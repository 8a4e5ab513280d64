"""Create competitor_reports and tracked_competitors.

Revision ID: 20261001000000
Revises:
Create Date: 2026-10-01

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "20261001000000"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "competitor_reports",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("title", sa.String(512), nullable=False),
        sa.Column("competitors", sa.JSON(), nullable=False),
        sa.Column("signals", sa.JSON(), nullable=False),
        sa.Column("summary", sa.Text(), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_competitor_reports_user_id", "competitor_reports", ["user_id"])
    op.create_index("ix_competitor_reports_created_at", "competitor_reports", ["created_at"])

    op.create_table(
        "tracked_competitors",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("competitor_name", sa.String(255), nullable=False),
        sa.Column("domain", sa.String(255), nullable=True),
        sa.Column("canonical_key", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("added_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("last_analyzed_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "canonical_key", name="uq_tracked_user_key"),
    )
    op.create_index("ix_tracked_competitors_user_id", "tracked_competitors", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_tracked_competitors_user_id", table_name="tracked_competitors")
    op.drop_table("tracked_competitors")
    op.drop_index("ix_competitor_reports_created_at", table_name="competitor_reports")
    op.drop_index("ix_competitor_reports_user_id", table_name="competitor_reports")
    op.drop_table("competitor_reports")
