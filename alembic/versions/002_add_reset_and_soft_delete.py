"""Add password reset and soft delete fields to user table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.add_column("user", sa.Column("password_reset_digest", sa.String(length=64), nullable=True))
    op.add_column("user", sa.Column("password_reset_expires_at", sa.DateTime(), nullable=True))
    op.add_column("user", sa.Column("deleted_at", sa.DateTime(), nullable=True))
    op.create_index(op.f("ix_user_password_reset_digest"), "user", ["password_reset_digest"], unique=False)
    op.create_index(
        "uq_user_email_live",
        "user",
        ["email"],
        unique=True,
        sqlite_where=sa.text("deleted_at IS NULL"),
        postgresql_where=sa.text("deleted_at IS NULL"),
    )


def downgrade() -> None:
    op.drop_index("uq_user_email_live", table_name="user")
    op.drop_index(op.f("ix_user_password_reset_digest"), table_name="user")
    op.drop_column("user", "deleted_at")
    op.drop_column("user", "password_reset_expires_at")
    op.drop_column("user", "password_reset_digest")
