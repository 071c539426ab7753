# backend/alembic/versions/003_billing.py
"""Billing - plans, subscriptions, transactions, payment requests

Revision ID: 003_billing
Revises: 002_learning
Create Date: 2026-09-01 00:20:00.000000

Amounts are integer cents.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "003_billing"
down_revision: Union[str, None] = "002_learning"
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
        "plans",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("monthly_price", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("annual_price", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("color", sa.String(7), nullable=False, server_default="#7B21BA"),
        sa.Column("max_clients", sa.Integer(), nullable=True),
        sa.Column("max_ai_agents", sa.Integer(), nullable=True),
        sa.Column("features", sa.JSON(), nullable=False),
        sa.Column("trial_days", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deleted_at", TS, nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("coach_id", sa.String(26), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("plan_id", sa.String(26), sa.ForeignKey("plans.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("billing_cycle", sa.String(10), nullable=False, server_default="monthly"),
        sa.Column("current_period_start", TS, nullable=False),
        sa.Column("current_period_end", TS, nullable=False),
        sa.Column("trial_start", TS, nullable=True),
        sa.Column("trial_end", TS, nullable=True),
        sa.Column("next_billing_date", TS, nullable=True),
        sa.Column("canceled_at", TS, nullable=True),
        sa.Column("cancel_reason", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_subscriptions_coach_id", "subscriptions", ["coach_id"])
    op.create_index("ix_subscriptions_plan_id", "subscriptions", ["plan_id"])
    op.create_index("ix_subscriptions_status", "subscriptions", ["status"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("coach_id", sa.String(26), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("plan_id", sa.String(26), sa.ForeignKey("plans.id"), nullable=True),
        sa.Column("subscription_id", sa.String(26), sa.ForeignKey("subscriptions.id"), nullable=True),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("payment_method", sa.String(50), nullable=True),
        sa.Column("invoice_number", sa.String(32), nullable=False),
        sa.Column("invoice_date", TS, nullable=False),
        sa.Column("paid_at", TS, nullable=True),
        sa.Column("failure_reason", sa.Text(), nullable=True),
        sa.Column("refunded_amount", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("refund_reason", sa.Text(), nullable=True),
        sa.Column("refunded_at", TS, nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_transactions_coach_id", "transactions", ["coach_id"])
    op.create_index("ix_transactions_plan_id", "transactions", ["plan_id"])
    op.create_index("ix_transactions_status", "transactions", ["status"])
    op.create_index("ix_transactions_invoice_number", "transactions", ["invoice_number"], unique=True)

    op.create_table(
        "payment_requests",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column(
            "created_by_id", sa.String(26), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("payer_id", sa.String(26), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("request_type", sa.String(20), nullable=False),
        sa.Column("plan_id", sa.String(26), sa.ForeignKey("plans.id"), nullable=True),
        sa.Column("billing_cycle", sa.String(10), nullable=True),
        sa.Column("course_id", sa.String(26), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=True),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("token", sa.String(64), nullable=False),
        sa.Column("expires_at", TS, nullable=False),
        sa.Column("paid_at", TS, nullable=True),
        sa.Column("transaction_id", sa.String(26), sa.ForeignKey("transactions.id"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_payment_requests_created_by_id", "payment_requests", ["created_by_id"])
    op.create_index("ix_payment_requests_payer_id", "payment_requests", ["payer_id"])
    op.create_index("ix_payment_requests_status", "payment_requests", ["status"])
    op.create_index("ix_payment_requests_token", "payment_requests", ["token"], unique=True)


def downgrade() -> None:
    op.drop_table("payment_requests")
    op.drop_table("transactions")
    op.drop_table("subscriptions")
    op.drop_table("plans")
