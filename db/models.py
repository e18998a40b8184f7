"""SQLAlchemy 2.0 ORM models for the contact timeline.

Covers the 6 crm tables the timeline reads:
  - contacts (ownership root, soft-deleted via deleted_at)
  - email_threads, interactions + interaction_participants, notes,
    contact_activities (the four event sources)
"""

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    UUID,
    Boolean,
    CheckConstraint,
    DateTime,
    Index,
    JSON,
    Text,
    ForeignKey,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


# ---------------------------------------------------------------------------
# Shared base
# ---------------------------------------------------------------------------


class Base(DeclarativeBase):
    pass


# ---------------------------------------------------------------------------
# Native enumerations used in the CRM CHECK constraints
# ---------------------------------------------------------------------------

EMAIL_DIRECTIONS = ("INBOUND", "OUTBOUND")

EMAIL_PARTICIPATION_TYPES = ("SENDER", "RECIPIENT", "CC")

INTERACTION_TYPES = ("meeting", "call")

ACTIVITY_TYPES = (
    "EMAIL",
    "CALL",
    "MEETING",
    "NOTE",
    "LINKEDIN_MESSAGE",
    "LINKEDIN_CONNECTION",
    "WHATSAPP",
    "TASK_COMPLETED",
    "REMINDER_TRIGGERED",
    "OTHER",
)


def _in_check(column: str, values: tuple[str, ...]) -> str:
    return f"{column} IN (" + ", ".join(f"'{v}'" for v in values) + ")"


# ===========================================================================
# Schema: crm
# ===========================================================================


class Contact(Base):
    """crm.contacts — a person owned by exactly one user."""

    __tablename__ = "contacts"
    __table_args__ = (
        Index("ix_contact_user", "user_id"),
        {"schema": "crm"},
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    email_threads: Mapped[list["EmailThread"]] = relationship(
        "EmailThread", back_populates="contact", cascade="all, delete-orphan"
    )
    notes: Mapped[list["Note"]] = relationship(
        "Note", back_populates="contact", cascade="all, delete-orphan"
    )
    activities: Mapped[list["ContactActivity"]] = relationship(
        "ContactActivity", back_populates="contact", cascade="all, delete-orphan"
    )
    interaction_links: Mapped[list["InteractionParticipant"]] = relationship(
        "InteractionParticipant", back_populates="contact", cascade="all, delete-orphan"
    )


class EmailThread(Base):
    """crm.email_threads — synced email threads involving a contact."""

    __tablename__ = "email_threads"
    __table_args__ = (
        CheckConstraint(
            _in_check("direction", EMAIL_DIRECTIONS),
            name="ck_email_direction",
        ),
        CheckConstraint(
            _in_check("participation_type", EMAIL_PARTICIPATION_TYPES),
            name="ck_email_participation_type",
        ),
        Index("ix_email_contact_occurred", "contact_id", "occurred_at"),
        {"schema": "crm"},
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    contact_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("crm.contacts.id", ondelete="CASCADE"),
        nullable=False,
    )
    thread_id: Mapped[str] = mapped_column(Text, nullable=False)
    subject: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    snippet: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    body: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    direction: Mapped[str] = mapped_column(Text, nullable=False)
    participation_type: Mapped[str] = mapped_column(
        Text, nullable=False, server_default="RECIPIENT"
    )
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    external_id: Mapped[str] = mapped_column(Text, nullable=False)
    source: Mapped[str] = mapped_column(Text, nullable=False, server_default="gmail")
    # "metadata" is reserved on declarative classes
    extra_metadata: Mapped[Optional[dict[str, Any]]] = mapped_column(
        "metadata", JSON, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    contact: Mapped["Contact"] = relationship("Contact", back_populates="email_threads")


class Interaction(Base):
    """crm.interactions — meetings and calls, linked to contacts via participants."""

    __tablename__ = "interactions"
    __table_args__ = (
        CheckConstraint(
            _in_check("interaction_type", INTERACTION_TYPES),
            name="ck_interaction_type",
        ),
        Index("ix_interaction_occurred", "occurred_at"),
        {"schema": "crm"},
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    interaction_type: Mapped[str] = mapped_column(Text, nullable=False)
    subject: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    external_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    external_source: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    meeting_data: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    participants: Mapped[list["InteractionParticipant"]] = relationship(
        "InteractionParticipant", back_populates="interaction", cascade="all, delete-orphan"
    )


class InteractionParticipant(Base):
    """crm.interaction_participants — contact membership of an interaction."""

    __tablename__ = "interaction_participants"
    __table_args__ = (
        Index("ix_participant_contact", "contact_id", "interaction_id", unique=True),
        {"schema": "crm"},
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    interaction_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("crm.interactions.id", ondelete="CASCADE"),
        nullable=False,
    )
    contact_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("crm.contacts.id", ondelete="CASCADE"),
        nullable=False,
    )
    role: Mapped[str] = mapped_column(Text, nullable=False, server_default="attendee")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    interaction: Mapped["Interaction"] = relationship(
        "Interaction", back_populates="participants"
    )
    contact: Mapped["Contact"] = relationship("Contact", back_populates="interaction_links")


class Note(Base):
    """crm.notes — manual notes, private to the authoring user."""

    __tablename__ = "notes"
    __table_args__ = (
        Index("ix_note_contact_user_created", "contact_id", "user_id", "created_at"),
        {"schema": "crm"},
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    contact_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("crm.contacts.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_pinned: Mapped[bool] = mapped_column(Boolean, server_default="false", nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    contact: Mapped["Contact"] = relationship("Contact", back_populates="notes")


class ContactActivity(Base):
    """crm.contact_activities — third-party and system activity records."""

    __tablename__ = "contact_activities"
    __table_args__ = (
        CheckConstraint(
            _in_check("type", ACTIVITY_TYPES),
            name="ck_activity_type",
        ),
        Index("ix_activity_contact_occurred", "contact_id", "occurred_at"),
        {"schema": "crm"},
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    contact_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("crm.contacts.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    extra_metadata: Mapped[Optional[dict[str, Any]]] = mapped_column(
        "metadata", JSON, nullable=True
    )
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    contact: Mapped["Contact"] = relationship("Contact", back_populates="activities")
