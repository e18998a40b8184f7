"""The four timeline event sources.

Each EventSource pairs a repository fetch/count with its row normalizer behind
one calling convention:

    fetch(session, scope, search, cursor, limit) -> list[TimelineEvent]
    count(session, scope) -> int

SOURCES is ordered by priority; the merge uses it to break timestamp ties.
"""
from datetime import datetime
from typing import Awaitable, Callable, FrozenSet, List, NamedTuple, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from db.repositories import timeline_sources as sources_repo
from schemas.timeline import TimelineEvent, TimelineEventType
from timeline import normalize
from timeline.query import ACTIVITY_TYPES, INTERACTION_TYPES, TimelineScope

FetchFn = Callable[
    [AsyncSession, TimelineScope, Optional[str], Optional[datetime], int],
    Awaitable[List[TimelineEvent]],
]
CountFn = Callable[[AsyncSession, TimelineScope], Awaitable[int]]


class EventSource(NamedTuple):
    name: str
    priority: int
    event_types: FrozenSet[TimelineEventType]
    fetch: FetchFn
    count: CountFn


async def _fetch_email_events(session, scope, search, cursor, limit):
    rows = await sources_repo.fetch_emails(
        session, scope.contact_id, search=search, cursor=cursor, limit=limit
    )
    return [normalize.email_event(row) for row in rows]


async def _count_email_events(session, scope):
    return await sources_repo.count_emails(session, scope.contact_id)


async def _fetch_interaction_events(session, scope, search, cursor, limit):
    rows = await sources_repo.fetch_interactions(
        session,
        scope.contact_id,
        interaction_types=scope.interaction_types,
        search=search,
        cursor=cursor,
        limit=limit,
    )
    return [normalize.interaction_event(row) for row in rows]


async def _count_interaction_events(session, scope):
    return await sources_repo.count_interactions(session, scope.contact_id)


async def _fetch_note_events(session, scope, search, cursor, limit):
    rows = await sources_repo.fetch_notes(
        session, scope.contact_id, scope.user_id, search=search, cursor=cursor, limit=limit
    )
    return [normalize.note_event(row) for row in rows]


async def _count_note_events(session, scope):
    return await sources_repo.count_notes(session, scope.contact_id, scope.user_id)


async def _fetch_activity_events(session, scope, search, cursor, limit):
    rows = await sources_repo.fetch_activities(
        session,
        scope.contact_id,
        activity_types=scope.activity_types,
        search=search,
        cursor=cursor,
        limit=limit,
    )
    return [normalize.activity_event(row) for row in rows]


async def _count_activity_events(session, scope):
    return await sources_repo.count_activities(session, scope.contact_id)


EMAIL_SOURCE = EventSource(
    name="email",
    priority=0,
    event_types=frozenset({TimelineEventType.EMAIL}),
    fetch=_fetch_email_events,
    count=_count_email_events,
)

INTERACTION_SOURCE = EventSource(
    name="interaction",
    priority=1,
    event_types=frozenset(INTERACTION_TYPES),
    fetch=_fetch_interaction_events,
    count=_count_interaction_events,
)

NOTE_SOURCE = EventSource(
    name="note",
    priority=2,
    event_types=frozenset({TimelineEventType.NOTE}),
    fetch=_fetch_note_events,
    count=_count_note_events,
)

ACTIVITY_SOURCE = EventSource(
    name="activity",
    priority=3,
    event_types=frozenset(ACTIVITY_TYPES),
    fetch=_fetch_activity_events,
    count=_count_activity_events,
)

SOURCES = (EMAIL_SOURCE, INTERACTION_SOURCE, NOTE_SOURCE, ACTIVITY_SOURCE)
