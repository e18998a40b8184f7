"""Timeline source repository — per-table fetch and count queries.

Every fetch_* returns at most `limit` rows ordered newest first by the table's
timeline field (occurred_at, or created_at for notes), with `cursor` applied as
a strict "older than" bound on that same field. `search` is a case-insensitive
substring match over the table's own text columns.

Every count_* ignores search, cursor and sub-type filters.
"""
import logging
from datetime import datetime
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import ContactActivity, EmailThread, Interaction, InteractionParticipant, Note

logger = logging.getLogger(__name__)


def _contains(column, term: str):
    """ILIKE '%term%' with the LIKE wildcards in term matched literally."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return column.ilike(f"%{escaped}%", escape="\\")


# ---------------------------------------------------------------------------
# Statement builders
# ---------------------------------------------------------------------------


def emails_stmt(
    contact_id: UUID,
    search: Optional[str] = None,
    cursor: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> Select:
    stmt = select(EmailThread).where(EmailThread.contact_id == contact_id)
    if cursor is not None:
        stmt = stmt.where(EmailThread.occurred_at < cursor)
    if search:
        stmt = stmt.where(
            or_(_contains(EmailThread.subject, search), _contains(EmailThread.snippet, search))
        )
    return stmt.order_by(EmailThread.occurred_at.desc(), EmailThread.id.desc()).limit(limit)


def interactions_stmt(
    contact_id: UUID,
    interaction_types: Sequence[str],
    search: Optional[str] = None,
    cursor: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> Select:
    stmt = (
        select(Interaction)
        .where(Interaction.participants.any(InteractionParticipant.contact_id == contact_id))
        .where(Interaction.interaction_type.in_(list(interaction_types)))
    )
    if cursor is not None:
        stmt = stmt.where(Interaction.occurred_at < cursor)
    if search:
        stmt = stmt.where(
            or_(_contains(Interaction.subject, search), _contains(Interaction.summary, search))
        )
    return stmt.order_by(Interaction.occurred_at.desc(), Interaction.id.desc()).limit(limit)


def notes_stmt(
    contact_id: UUID,
    user_id: str,
    search: Optional[str] = None,
    cursor: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> Select:
    # Notes have no occurred_at; created_at stands in for it.
    stmt = select(Note).where(Note.contact_id == contact_id).where(Note.user_id == user_id)
    if cursor is not None:
        stmt = stmt.where(Note.created_at < cursor)
    if search:
        stmt = stmt.where(_contains(Note.content, search))
    return stmt.order_by(Note.created_at.desc(), Note.id.desc()).limit(limit)


def activities_stmt(
    contact_id: UUID,
    activity_types: Sequence[str],
    search: Optional[str] = None,
    cursor: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> Select:
    stmt = (
        select(ContactActivity)
        .where(ContactActivity.contact_id == contact_id)
        .where(ContactActivity.type.in_(list(activity_types)))
    )
    if cursor is not None:
        stmt = stmt.where(ContactActivity.occurred_at < cursor)
    if search:
        stmt = stmt.where(
            or_(
                _contains(ContactActivity.title, search),
                _contains(ContactActivity.description, search),
            )
        )
    return stmt.order_by(
        ContactActivity.occurred_at.desc(), ContactActivity.id.desc()
    ).limit(limit)


# ---------------------------------------------------------------------------
# Fetch
# ---------------------------------------------------------------------------


async def fetch_emails(
    session: AsyncSession,
    contact_id: UUID,
    *,
    search: Optional[str] = None,
    cursor: Optional[datetime] = None,
    limit: int,
) -> list[EmailThread]:
    """Return the newest email threads for a contact."""
    result = await session.execute(emails_stmt(contact_id, search, cursor, limit))
    return list(result.scalars().all())


async def fetch_interactions(
    session: AsyncSession,
    contact_id: UUID,
    *,
    interaction_types: Sequence[str],
    search: Optional[str] = None,
    cursor: Optional[datetime] = None,
    limit: int,
) -> list[Interaction]:
    """Return the newest meetings/calls the contact participated in.

    interaction_types restricts to 'meeting' and/or 'call'; empty means none.
    """
    if not interaction_types:
        return []
    result = await session.execute(
        interactions_stmt(contact_id, interaction_types, search, cursor, limit)
    )
    return list(result.scalars().all())


async def fetch_notes(
    session: AsyncSession,
    contact_id: UUID,
    user_id: str,
    *,
    search: Optional[str] = None,
    cursor: Optional[datetime] = None,
    limit: int,
) -> list[Note]:
    """Return the newest notes user_id wrote about the contact."""
    result = await session.execute(notes_stmt(contact_id, user_id, search, cursor, limit))
    return list(result.scalars().all())


async def fetch_activities(
    session: AsyncSession,
    contact_id: UUID,
    *,
    activity_types: Sequence[str],
    search: Optional[str] = None,
    cursor: Optional[datetime] = None,
    limit: int,
) -> list[ContactActivity]:
    """Return the newest activities of the given native types for a contact."""
    if not activity_types:
        return []
    result = await session.execute(
        activities_stmt(contact_id, activity_types, search, cursor, limit)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Count
# ---------------------------------------------------------------------------


async def count_emails(session: AsyncSession, contact_id: UUID) -> int:
    result = await session.execute(
        select(func.count()).select_from(EmailThread).where(EmailThread.contact_id == contact_id)
    )
    return result.scalar_one()


async def count_interactions(session: AsyncSession, contact_id: UUID) -> int:
    result = await session.execute(
        select(func.count())
        .select_from(Interaction)
        .where(Interaction.participants.any(InteractionParticipant.contact_id == contact_id))
    )
    return result.scalar_one()


async def count_notes(session: AsyncSession, contact_id: UUID, user_id: str) -> int:
    result = await session.execute(
        select(func.count())
        .select_from(Note)
        .where(Note.contact_id == contact_id)
        .where(Note.user_id == user_id)
    )
    return result.scalar_one()


async def count_activities(session: AsyncSession, contact_id: UUID) -> int:
    result = await session.execute(
        select(func.count())
        .select_from(ContactActivity)
        .where(ContactActivity.contact_id == contact_id)
    )
    return result.scalar_one()
