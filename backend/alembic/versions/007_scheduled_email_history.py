# backend/alembic/versions/007_scheduled_email_history.py
"""Keep scheduled email history when sequence steps are replaced

Revision ID: 007_scheduled_email_history
Revises: 006_messaging
Create Date: 2026-10-19 00:00:00.000000

``scheduled_emails.step_id`` becomes nullable and is set to NULL when its
step is deleted, instead of cascading the delete to sent and failed rows.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "007_scheduled_email_history"
down_revision: Union[str, None] = "006_messaging"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    with op.batch_alter_table("scheduled_emails") as batch_op:
        batch_op.drop_constraint("scheduled_emails_step_id_fkey", type_="foreignkey")
        batch_op.alter_column("step_id", existing_type=sa.String(26), nullable=True)
        batch_op.create_foreign_key(
            "scheduled_emails_step_id_fkey",
            "email_sequence_steps",
            ["step_id"],
            ["id"],
            ondelete="SET NULL",
        )


def downgrade() -> None:
    op.execute("DELETE FROM scheduled_emails WHERE step_id IS NULL")
    with op.batch_alter_table("scheduled_emails") as batch_op:
        batch_op.drop_constraint("scheduled_emails_step_id_fkey", type_="foreignkey")
        batch_op.alter_column("step_id", existing_type=sa.String(26), nullable=False)
        batch_op.create_foreign_key(
            "scheduled_emails_step_id_fkey",
            "email_sequence_steps",
            ["step_id"],
            ["id"],
            ondelete="CASCADE",
        )
