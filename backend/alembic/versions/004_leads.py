# backend/alembic/versions/004_leads.py
"""Lead pipeline - leads, email sequences, steps, scheduled emails

Revision ID: 004_leads
Revises: 003_billing
Create Date: 2026-09-01 00:30:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "004_leads"
down_revision: Union[str, None] = "003_billing"
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
        "leads",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("lead_type", sa.String(20), nullable=False, server_default="coach_lead"),
        sa.Column("coach_id", sa.String(26), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("source", sa.String(50), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="contacted"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("answers", sa.JSON(), nullable=True),
        sa.Column("qualified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("marketing_opt_in", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("meeting_date", sa.String(20), nullable=True),
        sa.Column("meeting_time", sa.String(20), nullable=True),
        sa.Column("last_contacted_at", TS, nullable=True),
        sa.Column("converted_at", TS, nullable=True),
        sa.Column("submitted_at", TS, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_leads_lead_type", "leads", ["lead_type"])
    op.create_index("ix_leads_coach_id", "leads", ["coach_id"])
    op.create_index("ix_leads_email", "leads", ["email"])
    op.create_index("ix_leads_status", "leads", ["status"])

    op.create_table(
        "email_sequences",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("owner_id", sa.String(26), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("trigger", sa.String(20), nullable=False, server_default="manual"),
        sa.Column("target_status", sa.String(20), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_email_sequences_owner_id", "email_sequences", ["owner_id"])

    op.create_table(
        "email_sequence_steps",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column(
            "sequence_id", sa.String(26), sa.ForeignKey("email_sequences.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("delay_days", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_email_sequence_steps_sequence_id", "email_sequence_steps", ["sequence_id"])

    op.create_table(
        "scheduled_emails",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("lead_id", sa.String(26), sa.ForeignKey("leads.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "sequence_id", sa.String(26), sa.ForeignKey("email_sequences.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "step_id", sa.String(26), sa.ForeignKey("email_sequence_steps.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("to_email", sa.String(255), nullable=False),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("scheduled_for", TS, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="scheduled"),
        sa.Column("paused_at", TS, nullable=True),
        sa.Column("sent_at", TS, nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_scheduled_emails_lead_id", "scheduled_emails", ["lead_id"])
    op.create_index("ix_scheduled_emails_sequence_id", "scheduled_emails", ["sequence_id"])
    op.create_index("ix_scheduled_emails_scheduled_for", "scheduled_emails", ["scheduled_for"])
    op.create_index("ix_scheduled_emails_status", "scheduled_emails", ["status"])


def downgrade() -> None:
    op.drop_table("scheduled_emails")
    op.drop_table("email_sequence_steps")
    op.drop_table("email_sequences")
    op.drop_table("leads")
