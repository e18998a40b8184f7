"""Timeline service — fan-out, merge and paginate a contact's events.

Flow for one request:
  1. verify the caller owns the contact (not found otherwise, before any
     source runs)
  2. pick the sources that produce the requested event types
  3. run every source's fetch (limit + 1 rows each) and count concurrently,
     one session per branch, joined with asyncio.gather
  4. merge newest first, keep `limit`, derive has_more / next_cursor

Any branch failure propagates as raised; there is no partial timeline.
"""
import asyncio
import logging
from typing import AsyncIterator, Callable, Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

from db.repositories import contacts as contacts_repo
from schemas.timeline import TimelineEvent, TimelineQuery, TimelineResponse, format_cursor
from timeline.errors import ContactNotFoundError, InvalidTimelineQueryError
from timeline.query import TimelineScope, active_sources, resolve_types
from timeline.sources import SOURCES, EventSource

logger = logging.getLogger(__name__)


def merge_events(
    batches: Iterable[Tuple[int, Sequence[TimelineEvent]]], limit: int
) -> Tuple[List[TimelineEvent], bool]:
    """Merge per-source batches into one page.

    batches: (source priority, events) pairs. Each batch holds up to limit + 1
    of its source's newest events, which is enough to decide the global newest
    `limit` and whether anything lies beyond them.

    Returns (page, has_more). Order is occurred_at descending; equal timestamps
    fall back to source priority, then id descending (the order each source
    query uses), so the page never depends on `limit`.
    """
    candidates = [(priority, event) for priority, events in batches for event in events]
    # list.sort is stable, reverse=True included
    candidates.sort(key=lambda c: c[1].id, reverse=True)
    candidates.sort(key=lambda c: c[0])
    candidates.sort(key=lambda c: c[1].occurred_at, reverse=True)
    has_more = len(candidates) > limit
    return [event for _, event in candidates[:limit]], has_more


async def build_timeline(
    session_factory: Callable,
    scope: TimelineScope,
    query: TimelineQuery,
    sources: Sequence[EventSource] = SOURCES,
) -> TimelineResponse:
    """Aggregate one page of the timeline for an already-authorized scope."""
    active = active_sources(scope.types, sources)
    logger.debug(
        "Timeline contact_id=%s sources=%s limit=%d cursor=%s search=%r",
        scope.contact_id,
        [s.name for s in active],
        query.limit,
        query.cursor,
        query.search,
    )

    async def _fetch(source: EventSource) -> List[TimelineEvent]:
        async with session_factory() as session:
            return await source.fetch(session, scope, query.search, query.cursor, query.limit + 1)

    async def _count(source: EventSource) -> int:
        # Search is ignored on purpose: an exact filtered count would cost a
        # second scan per source.
        async with session_factory() as session:
            return await source.count(session, scope)

    results = await asyncio.gather(
        *(_fetch(s) for s in active),
        *(_count(s) for s in active),
    )
    batches = results[: len(active)]
    counts = results[len(active):]

    page, has_more = merge_events(
        ((source.priority, events) for source, events in zip(active, batches)), query.limit
    )
    next_cursor = format_cursor(page[-1].occurred_at) if has_more and page else None
    total = sum(counts)

    logger.info(
        "Timeline contact_id=%s returned %d events (total~%d, has_more=%s)",
        scope.contact_id,
        len(page),
        total,
        has_more,
    )
    return TimelineResponse(data=page, total=total, next_cursor=next_cursor, has_more=has_more)


def _parse_contact_id(contact_id) -> UUID:
    if isinstance(contact_id, UUID):
        return contact_id
    try:
        return UUID(str(contact_id))
    except ValueError:
        # A malformed id cannot name an owned contact
        raise ContactNotFoundError(contact_id) from None


async def get_contact_timeline(
    session_factory: Callable,
    user_id: str,
    contact_id,
    query: Optional[TimelineQuery] = None,
    *,
    sources: Sequence[EventSource] = SOURCES,
    find_contact: Callable = contacts_repo.get_owned,
) -> TimelineResponse:
    """Return one timeline page for a contact owned by user_id.

    Raises:
        InvalidTimelineQueryError: user_id is empty.
        ContactNotFoundError: the contact is missing, deleted or not owned by
            user_id. No source is queried in that case.
    """
    if not user_id:
        raise InvalidTimelineQueryError("user_id is required")
    query = query or TimelineQuery()
    contact_uuid = _parse_contact_id(contact_id)

    async with session_factory() as session:
        contact = await find_contact(session, contact_uuid, user_id)
    if contact is None:
        raise ContactNotFoundError(contact_id)

    scope = TimelineScope(
        contact_id=contact_uuid,
        user_id=user_id,
        types=resolve_types(query.types),
    )
    return await build_timeline(session_factory, scope, query, sources)


async def iter_timeline_pages(
    session_factory: Callable,
    user_id: str,
    contact_id,
    query: Optional[TimelineQuery] = None,
    *,
    max_pages: Optional[int] = None,
    **kwargs,
) -> AsyncIterator[TimelineResponse]:
    """Yield successive pages by following next_cursor until has_more is False."""
    query = query or TimelineQuery()
    pages = 0
    while True:
        page = await get_contact_timeline(session_factory, user_id, contact_id, query, **kwargs)
        yield page
        pages += 1
        if not page.has_more or (max_pages is not None and pages >= max_pages):
            return
        query = query.model_copy(update={"cursor": page.data[-1].occurred_at})
