"""Add participation_type to email_threads (sender / recipient / cc).

Revision ID: 002
Revises: 001
Create Date: 2026-10-06
"""
from alembic import op
import sqlalchemy as sa

revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "email_threads",
        sa.Column("participation_type", sa.Text, nullable=False, server_default="RECIPIENT"),
        schema="crm",
    )
    op.create_check_constraint(
        "ck_email_participation_type",
        "email_threads",
        "participation_type IN ('SENDER', 'RECIPIENT', 'CC')",
        schema="crm",
    )


def downgrade() -> None:
    op.drop_constraint("ck_email_participation_type", "email_threads", schema="crm")
    op.drop_column("email_threads", "participation_type", schema="crm")
