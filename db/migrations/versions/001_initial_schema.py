"""Initial schema: crm contacts and timeline source tables.

Revision ID: 001
Revises:
Create Date: 2026-09-28

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("CREATE SCHEMA IF NOT EXISTS crm")

    op.create_table(
        "contacts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("name", sa.Text, nullable=True),
        sa.Column("email", sa.Text, nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        schema="crm",
    )
    op.create_index("ix_contact_user", "contacts", ["user_id"], schema="crm")

    op.create_table(
        "email_threads",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("contact_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("thread_id", sa.Text, nullable=False),
        sa.Column("subject", sa.Text, nullable=True),
        sa.Column("snippet", sa.Text, nullable=True),
        sa.Column("body", sa.Text, nullable=True),
        sa.Column("direction", sa.Text, nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("external_id", sa.Text, nullable=False),
        sa.Column("source", sa.Text, nullable=False, server_default="gmail"),
        sa.Column("metadata", sa.JSON, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("direction IN ('INBOUND', 'OUTBOUND')", name="ck_email_direction"),
        sa.ForeignKeyConstraint(["contact_id"], ["crm.contacts.id"], name="fk_email_contact", ondelete="CASCADE"),
        schema="crm",
    )
    op.create_index(
        "ix_email_contact_occurred", "email_threads", ["contact_id", "occurred_at"], schema="crm"
    )

    op.create_table(
        "interactions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("interaction_type", sa.Text, nullable=False),
        sa.Column("subject", sa.Text, nullable=True),
        sa.Column("summary", sa.Text, nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("external_id", sa.Text, nullable=True),
        sa.Column("external_source", sa.Text, nullable=True),
        sa.Column("meeting_data", sa.JSON, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("interaction_type IN ('meeting', 'call')", name="ck_interaction_type"),
        schema="crm",
    )
    op.create_index("ix_interaction_occurred", "interactions", ["occurred_at"], schema="crm")

    op.create_table(
        "interaction_participants",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("interaction_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("contact_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("role", sa.Text, nullable=False, server_default="attendee"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(
            ["interaction_id"], ["crm.interactions.id"], name="fk_participant_interaction", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["contact_id"], ["crm.contacts.id"], name="fk_participant_contact", ondelete="CASCADE"),
        schema="crm",
    )
    op.create_index(
        "ix_participant_contact",
        "interaction_participants",
        ["contact_id", "interaction_id"],
        unique=True,
        schema="crm",
    )

    op.create_table(
        "notes",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("contact_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("is_pinned", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["contact_id"], ["crm.contacts.id"], name="fk_note_contact", ondelete="CASCADE"),
        schema="crm",
    )
    op.create_index(
        "ix_note_contact_user_created", "notes", ["contact_id", "user_id", "created_at"], schema="crm"
    )

    op.create_table(
        "contact_activities",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("contact_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("type", sa.Text, nullable=False),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("metadata", sa.JSON, nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(
            "type IN ('EMAIL','CALL','MEETING','NOTE','LINKEDIN_MESSAGE','LINKEDIN_CONNECTION',"
            "'WHATSAPP','TASK_COMPLETED','REMINDER_TRIGGERED','OTHER')",
            name="ck_activity_type",
        ),
        sa.ForeignKeyConstraint(["contact_id"], ["crm.contacts.id"], name="fk_activity_contact", ondelete="CASCADE"),
        schema="crm",
    )
    op.create_index(
        "ix_activity_contact_occurred", "contact_activities", ["contact_id", "occurred_at"], schema="crm"
    )


def downgrade() -> None:
    op.drop_index("ix_activity_contact_occurred", table_name="contact_activities", schema="crm")
    op.drop_index("ix_note_contact_user_created", table_name="notes", schema="crm")
    op.drop_index("ix_participant_contact", table_name="interaction_participants", schema="crm")
    op.drop_index("ix_interaction_occurred", table_name="interactions", schema="crm")
    op.drop_index("ix_email_contact_occurred", table_name="email_threads", schema="crm")
    op.drop_index("ix_contact_user", table_name="contacts", schema="crm")
    # Drop in reverse dependency order
    op.drop_table("contact_activities", schema="crm")
    op.drop_table("notes", schema="crm")
    op.drop_table("interaction_participants", schema="crm")
    op.drop_table("interactions", schema="crm")
    op.drop_table("email_threads", schema="crm")
    op.drop_table("contacts", schema="crm")
