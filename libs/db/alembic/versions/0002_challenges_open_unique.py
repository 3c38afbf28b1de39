"""Enforce one open challenge instance per (user, catalog challenge).

Revision ID: 0002_challenges_open_unique
Revises: 0001_finquest_core
Create Date: 2025-12-02

Re-accepting a challenge that is already ``active`` or ``completed`` is a
service-level no-op; this partial unique index backs that rule in the database.
Abandoned rows fall outside the predicate so a challenge can be taken up again.
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0002_challenges_open_unique"
down_revision: str | None = "0001_finquest_core"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_index(
        "uniq_challenges_user_open",
        "challenges",
        ["user_id", "challenge_id"],
        unique=True,
        postgresql_where=sa.text("status IN ('active', 'completed')"),
    )


def downgrade() -> None:
    op.drop_index("uniq_challenges_user_open", table_name="challenges")
