"""Create login_tokens and web_sessions.

Revision ID: 001_login_tokens_web_sessions
Revises:
Create Date: 2026-10-17
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001_login_tokens_web_sessions"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # One-time login links. Only the SHA-256 hash of the value is stored.
    op.create_table(
        "login_tokens",
        sa.Column("token_hash", sa.String(64), primary_key=True),
        sa.Column("identity", sa.String(255), nullable=False),
        sa.Column("channel_address", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    # Sweep deletes by age
    op.create_index("idx_login_tokens_created_at", "login_tokens", ["created_at"])

    op.create_table(
        "web_sessions",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("identity", sa.String(255), nullable=False),
        sa.Column(
            "authenticated",
            sa.Boolean(),
            nullable=False,
            server_default="false",
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_web_sessions_expires_at", "web_sessions", ["expires_at"])


def downgrade() -> None:
    op.drop_index("idx_web_sessions_expires_at", table_name="web_sessions")
    op.drop_table("web_sessions")
    op.drop_index("idx_login_tokens_created_at", table_name="login_tokens")
    op.drop_table("login_tokens")
