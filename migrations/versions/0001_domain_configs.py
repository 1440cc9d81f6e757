"""Per-domain config table

Revision ID: 0001
Revises: None
Create Date: 2025-01-01 00:00:00
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | None = None
depends_on: str | None = None


def _table_exists(name: str) -> bool:
    conn = op.get_bind()
    result = conn.execute(
        sa.text("SELECT 1 FROM sqlite_master WHERE type='table' AND name=:n"),
        {"n": name},
    )
    return result.fetchone() is not None


def upgrade() -> None:
    # Guarded: init_db may already have created the table via create_all()
    if not _table_exists("domain_configs"):
        op.create_table(
            "domain_configs",
            sa.Column("domain", sa.String(), primary_key=True),
            sa.Column("config_json", sa.String(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
        )


def downgrade() -> None:
    op.drop_table("domain_configs")
