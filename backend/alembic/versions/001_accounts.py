# backend/alembic/versions/001_accounts.py
"""Accounts - users, password reset tokens, coach/client relationships, invites

Revision ID: 001_accounts
Revises:
Create Date: 2026-09-01 00:00:00.000000

Admins, coaches and clients share the users table; email is unique per
user type.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_accounts"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TS = sa.DateTime(timezone=True)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", TS, nullable=False),
        sa.Column("updated_at", TS, nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("user_type", sa.String(20), nullable=False),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("business_name", sa.String(200), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("avatar_url", sa.String(500), nullable=True),
        sa.Column("timezone", sa.String(50), nullable=False, server_default="UTC"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("marketing_opt_in", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("last_login_at", TS, nullable=True),
        sa.Column("deleted_at", TS, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("email", "user_type", name="uq_users_email_type"),
    )
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_user_type", "users", ["user_type"])

    op.create_table(
        "password_reset_tokens",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("user_id", sa.String(26), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("token", sa.String(128), nullable=False),
        sa.Column("expires_at", TS, nullable=False),
        sa.Column("used", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", TS, nullable=False),
    )
    op.create_index("ix_password_reset_tokens_token", "password_reset_tokens", ["token"], unique=True)

    op.create_table(
        "client_coaches",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("client_id", sa.String(26), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("coach_id", sa.String(26), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("client_id", "coach_id", name="uq_client_coach_pair"),
    )
    op.create_index("ix_client_coaches_client_id", "client_coaches", ["client_id"])
    op.create_index("ix_client_coaches_coach_id", "client_coaches", ["coach_id"])

    op.create_table(
        "client_invites",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("coach_id", sa.String(26), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("token", sa.String(128), nullable=False),
        sa.Column("expires_at", TS, nullable=False),
        sa.Column("accepted_at", TS, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_client_invites_coach_id", "client_invites", ["coach_id"])
    op.create_index("ix_client_invites_email", "client_invites", ["email"])
    op.create_index("ix_client_invites_token", "client_invites", ["token"], unique=True)


def downgrade() -> None:
    op.drop_table("client_invites")
    op.drop_table("client_coaches")
    op.drop_table("password_reset_tokens")
    op.drop_table("users")
