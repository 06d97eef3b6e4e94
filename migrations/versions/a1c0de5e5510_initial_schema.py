"""initial_schema

Revision ID: a1c0de5e5510
Revises:
Create Date: 2026-10-18 09:00:00.000000

Create auth_codes, sessions, purchases and user_progress tables.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "a1c0de5e5510"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "auth_codes",
        sa.Column("id", sa.String(length=21), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=6), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_auth_codes_email", "auth_codes", ["email"])

    op.create_table(
        "sessions",
        sa.Column("id", sa.String(length=21), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("token", sa.String(length=128), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sessions_email", "sessions", ["email"])
    op.create_index("ix_sessions_token", "sessions", ["token"], unique=True)

    op.create_table(
        "purchases",
        sa.Column("id", sa.String(length=21), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column(
            "external_session_id",
            sa.String(length=255),
            nullable=False,
            comment="Payment processor checkout session ID",
        ),
        sa.Column("external_customer_id", sa.String(length=255), nullable=True),
        sa.Column("amount", sa.Integer(), nullable=False, comment="Amount in minor currency units"),
        sa.Column("currency", sa.String(length=10), nullable=False),
        sa.Column("course_slug", sa.String(length=255), nullable=False),
        sa.Column(
            "status",
            sa.Enum("COMPLETED", "REFUNDED", name="purchasestatus"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_purchases_email", "purchases", ["email"])
    op.create_index("ix_purchases_course_slug", "purchases", ["course_slug"])
    op.create_index(
        "ix_purchases_external_session_id", "purchases", ["external_session_id"], unique=True
    )

    op.create_table(
        "user_progress",
        sa.Column("id", sa.String(length=21), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("course_slug", sa.String(length=255), nullable=False),
        sa.Column("completed_lessons", sa.JSON(), nullable=False),
        sa.Column("completed_modules", sa.JSON(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", "course_slug", name="uq_user_progress_email_course"),
    )
    op.create_index("ix_user_progress_email", "user_progress", ["email"])


def downgrade() -> None:
    op.drop_index("ix_user_progress_email", table_name="user_progress")
    op.drop_table("user_progress")
    op.drop_index("ix_purchases_external_session_id", table_name="purchases")
    op.drop_index("ix_purchases_course_slug", table_name="purchases")
    op.drop_index("ix_purchases_email", table_name="purchases")
    op.drop_table("purchases")
    sa.Enum(name="purchasestatus").drop(op.get_bind(), checkfirst=True)
    op.drop_index("ix_sessions_token", table_name="sessions")
    op.drop_index("ix_sessions_email", table_name="sessions")
    op.drop_table("sessions")
    op.drop_index("ix_auth_codes_email", table_name="auth_codes")
    op.drop_table("auth_codes")
