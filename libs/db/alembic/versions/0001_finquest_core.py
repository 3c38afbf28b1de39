# ruff: noqa: I001
"""Ledger, goals, challenges and rewards tables.

Revision ID: 0001_finquest_core
Revises: None
Create Date: 2025-11-28
"""

from __future__ import annotations  # ruff: noqa: I001

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "0001_finquest_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    ]


def upgrade() -> None:
    # transactions
    op.create_table(
        "transactions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("value", sa.Numeric(10, 2), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("type in ('income','expense')", name="ck_transactions_type"),
        sa.CheckConstraint("value > 0", name="ck_transactions_value_positive"),
    )
    op.create_index("idx_transactions_user_date", "transactions", ["user_id", "date"])
    op.create_index("idx_transactions_category", "transactions", ["category"])

    # goals
    op.create_table(
        "goals",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("target_value", sa.Numeric(10, 2), nullable=False),
        sa.Column(
            "current_value", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")
        ),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("target_date", sa.Date(), nullable=True),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("target_value > 0", name="ck_goals_target_positive"),
        sa.CheckConstraint(
            "current_value >= 0 AND current_value <= target_value",
            name="ck_goals_current_within_target",
        ),
    )
    op.create_index("ix_goals_user_id", "goals", ["user_id"])

    # challenges
    op.create_table(
        "challenges",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("challenge_id", sa.String(50), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("target", sa.Numeric(10, 2), nullable=False),
        sa.Column("current", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("reward", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'active'")),
        sa.Column(
            "accepted_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("abandoned_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status in ('active','completed','abandoned')", name="ck_challenges_status"
        ),
        sa.CheckConstraint("target > 0", name="ck_challenges_target_positive"),
        sa.CheckConstraint(
            "current >= 0 AND current <= target", name="ck_challenges_current_within_target"
        ),
    )
    op.create_index("idx_challenges_user_status", "challenges", ["user_id", "status"])

    # achievements
    op.create_table(
        "achievements",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("icon", sa.String(50), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index("ix_achievements_user_id", "achievements", ["user_id"])

    # user_profiles
    op.create_table(
        "user_profiles",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False, unique=True),
        sa.Column("points", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("balance", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "preferences",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        *_timestamps(),
        sa.CheckConstraint("points >= 0", name="ck_user_profiles_points"),
    )


def downgrade() -> None:
    op.drop_table("user_profiles")
    op.drop_index("ix_achievements_user_id", table_name="achievements")
    op.drop_table("achievements")
    op.drop_index("idx_challenges_user_status", table_name="challenges")
    op.drop_table("challenges")
    op.drop_index("ix_goals_user_id", table_name="goals")
    op.drop_table("goals")
    op.drop_index("idx_transactions_category", table_name="transactions")
    op.drop_index("idx_transactions_user_date", table_name="transactions")
    op.drop_table("transactions")
