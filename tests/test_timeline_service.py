"""Unit tests for the timeline fan-out / merge engine — no database required.

Sources are in-memory fakes honouring the source contract (newest first,
strict cursor, case-insensitive search, at most `limit` rows) and counting
their calls.
"""
import asyncio
import random
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from schemas.timeline import TimelineEvent, TimelineEventType, TimelineQuery, format_cursor
from timeline.errors import ContactNotFoundError, InvalidTimelineQueryError
from timeline.service import (
    build_timeline,
    get_contact_timeline,
    iter_timeline_pages,
    merge_events,
)
from timeline.sources import EventSource

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)
OWNER = "user-owner"
CONTACT_ID = uuid.uuid4()

E = TimelineEventType


def at(minutes: int) -> datetime:
    return T0 + timedelta(minutes=minutes)


def make_event(event_id, event_type, minutes, title=None, snippet=None) -> TimelineEvent:
    return TimelineEvent(
        id=event_id,
        type=event_type,
        occurred_at=at(minutes),
        title=title or event_id,
        snippet=snippet,
    )


class FakeStore:
    """In-memory stand-in for one backing table."""

    def __init__(self, events=(), fail_with=None):
        self.events = list(events)
        self.fail_with = fail_with
        self.fetch_calls = []
        self.count_calls = 0

    async def fetch(self, session, scope, search, cursor, limit):
        self.fetch_calls.append({"search": search, "cursor": cursor, "limit": limit})
        if self.fail_with is not None:
            raise self.fail_with
        rows = [e for e in self.events if e.type in scope.types]
        if cursor is not None:
            rows = [e for e in rows if e.occurred_at < cursor]
        if search:
            needle = search.lower()
            rows = [
                e for e in rows
                if needle in e.title.lower() or needle in (e.snippet or "").lower()
            ]
        rows.sort(key=lambda e: (e.occurred_at, e.id), reverse=True)
        return rows[:limit]

    async def count(self, session, scope):
        self.count_calls += 1
        return len(self.events)


def build_sources(email=(), interaction=(), note=(), activity=(), failures=None):
    failures = failures or {}
    stores = {
        "email": FakeStore(email, failures.get("email")),
        "interaction": FakeStore(interaction, failures.get("interaction")),
        "note": FakeStore(note, failures.get("note")),
        "activity": FakeStore(activity, failures.get("activity")),
    }
    event_types = {
        "email": frozenset({E.EMAIL}),
        "interaction": frozenset({E.MEETING, E.CALL}),
        "note": frozenset({E.NOTE}),
        "activity": frozenset({E.LINKEDIN_MESSAGE, E.LINKEDIN_CONNECTION, E.WHATSAPP, E.OTHER}),
    }
    sources = tuple(
        EventSource(
            name=name,
            priority=priority,
            event_types=event_types[name],
            fetch=stores[name].fetch,
            count=stores[name].count,
        )
        for priority, name in enumerate(["email", "interaction", "note", "activity"])
    )
    return sources, stores


@asynccontextmanager
async def fake_session():
    yield MagicMock(name="AsyncSession")


async def owned_contact(session, contact_id, user_id):
    if user_id == OWNER and contact_id == CONTACT_ID:
        return SimpleNamespace(id=contact_id)
    return None


async def timeline(sources, user_id=OWNER, contact_id=CONTACT_ID, **params):
    return await get_contact_timeline(
        fake_session,
        user_id,
        contact_id,
        TimelineQuery.from_params(**params),
        sources=sources,
        find_contact=owned_contact,
    )


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_merge_across_sources():
    """email@10, note@8, meeting@12, limit=2 -> [meeting, email], more to come."""
    sources, _ = build_sources(
        email=[make_event("email-1", E.EMAIL, 10)],
        note=[make_event("note-1", E.NOTE, 8)],
        interaction=[make_event("meeting-1", E.MEETING, 12)],
    )
    page = await timeline(sources, limit=2)

    assert [e.id for e in page.data] == ["meeting-1", "email-1"]
    assert page.has_more is True
    assert page.next_cursor == format_cursor(at(10))
    assert page.total == 3


@pytest.mark.asyncio
async def test_empty_timeline():
    sources, _ = build_sources()
    page = await timeline(sources)

    assert page.data == []
    assert page.total == 0
    assert page.has_more is False
    assert page.next_cursor is None
    assert "nextCursor" not in page.to_wire()


@pytest.mark.asyncio
async def test_unauthorized_contact_never_queries_sources():
    sources, stores = build_sources(email=[make_event("email-1", E.EMAIL, 1)])

    with pytest.raises(ContactNotFoundError):
        await timeline(sources, user_id="someone-else")

    for store in stores.values():
        assert store.fetch_calls == []
        assert store.count_calls == 0


@pytest.mark.asyncio
async def test_unknown_contact_is_not_found():
    sources, _ = build_sources()
    with pytest.raises(ContactNotFoundError, match="not found"):
        await timeline(sources, contact_id=uuid.uuid4())


@pytest.mark.asyncio
async def test_malformed_contact_id_is_not_found():
    sources, stores = build_sources()
    with pytest.raises(ContactNotFoundError):
        await timeline(sources, contact_id="not-a-uuid")
    assert stores["email"].fetch_calls == []


@pytest.mark.asyncio
async def test_string_contact_id_accepted():
    sources, _ = build_sources(email=[make_event("email-1", E.EMAIL, 1)])
    page = await timeline(sources, contact_id=str(CONTACT_ID))
    assert [e.id for e in page.data] == ["email-1"]


@pytest.mark.asyncio
async def test_empty_user_id_rejected():
    sources, stores = build_sources()
    with pytest.raises(InvalidTimelineQueryError):
        await timeline(sources, user_id="")
    assert stores["note"].fetch_calls == []


# ---------------------------------------------------------------------------
# Fan-out
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_each_source_asked_for_limit_plus_one():
    sources, stores = build_sources()
    await timeline(sources, limit=5, search="acme", cursor="2026-01-01T05:00:00Z")

    for store in stores.values():
        assert store.fetch_calls == [{"search": "acme", "cursor": at(300), "limit": 6}]


@pytest.mark.asyncio
async def test_type_filter_skips_other_sources():
    sources, stores = build_sources(
        email=[make_event("email-1", E.EMAIL, 5)],
        note=[make_event("note-1", E.NOTE, 3), make_event("note-2", E.NOTE, 4)],
        activity=[make_event("li-1", E.LINKEDIN_MESSAGE, 6)],
    )
    page = await timeline(sources, types="note")

    assert [e.type for e in page.data] == [E.NOTE, E.NOTE]
    assert len(stores["note"].fetch_calls) == 1
    for name in ("email", "interaction", "activity"):
        assert stores[name].fetch_calls == []
        assert stores[name].count_calls == 0


@pytest.mark.asyncio
async def test_shared_source_runs_once_for_sibling_types():
    sources, stores = build_sources(
        interaction=[make_event("m-1", E.MEETING, 2), make_event("c-1", E.CALL, 1)],
    )
    page = await timeline(sources, types="meeting,call")

    assert [e.id for e in page.data] == ["m-1", "c-1"]
    assert len(stores["interaction"].fetch_calls) == 1


@pytest.mark.asyncio
async def test_sub_type_filter_within_shared_source():
    sources, _ = build_sources(
        interaction=[make_event("m-1", E.MEETING, 2), make_event("c-1", E.CALL, 1)],
    )
    page = await timeline(sources, types="call")
    assert [e.id for e in page.data] == ["c-1"]


@pytest.mark.asyncio
async def test_sources_fetch_concurrently():
    """Every fetch starts before any finishes (a sequential engine would hang)."""
    started = 0
    all_started = asyncio.Event()

    async def gated_fetch(session, scope, search, cursor, limit):
        nonlocal started
        started += 1
        if started == 2:
            all_started.set()
        await all_started.wait()
        return []

    async def zero(session, scope):
        return 0

    sources = (
        EventSource("email", 0, frozenset({E.EMAIL}), gated_fetch, zero),
        EventSource("note", 1, frozenset({E.NOTE}), gated_fetch, zero),
    )
    page = await asyncio.wait_for(timeline(sources), timeout=2)
    assert page.data == []


@pytest.mark.asyncio
async def test_counts_run_alongside_fetches():
    """Fetch waits on count and count waits on fetch; only a concurrent join finishes."""
    fetch_started = asyncio.Event()
    count_started = asyncio.Event()

    async def fetch_after_count(session, scope, search, cursor, limit):
        fetch_started.set()
        await count_started.wait()
        return [make_event("email-1", E.EMAIL, 1)]

    async def count_after_fetch(session, scope):
        count_started.set()
        await fetch_started.wait()
        return 1

    sources = (EventSource("email", 0, frozenset({E.EMAIL}), fetch_after_count, count_after_fetch),)
    page = await asyncio.wait_for(timeline(sources), timeout=2)

    assert [e.id for e in page.data] == ["email-1"]
    assert page.total == 1


@pytest.mark.asyncio
async def test_source_failure_propagates_unchanged():
    error = RuntimeError("connection reset by peer")
    sources, _ = build_sources(
        email=[make_event("email-1", E.EMAIL, 1)],
        failures={"note": error},
    )
    with pytest.raises(RuntimeError) as excinfo:
        await timeline(sources)
    assert excinfo.value is error


@pytest.mark.asyncio
async def test_count_failure_propagates_unchanged():
    error = RuntimeError("statement timeout")

    async def failing_count(session, scope):
        raise error

    store = FakeStore([make_event("email-1", E.EMAIL, 1)])
    sources = (EventSource("email", 0, frozenset({E.EMAIL}), store.fetch, failing_count),)
    with pytest.raises(RuntimeError) as excinfo:
        await timeline(sources)
    assert excinfo.value is error


@pytest.mark.asyncio
async def test_no_matching_source_yields_empty_page():
    from timeline.query import TimelineScope

    sources, stores = build_sources(email=[make_event("email-1", E.EMAIL, 1)])
    scope = TimelineScope(contact_id=CONTACT_ID, user_id=OWNER, types=())
    page = await build_timeline(fake_session, scope, TimelineQuery(), sources)

    assert page.data == []
    assert page.total == 0
    assert stores["email"].fetch_calls == []


# ---------------------------------------------------------------------------
# Ordering, pagination, totals
# ---------------------------------------------------------------------------

_BUCKET = {
    E.EMAIL: "email",
    E.MEETING: "interaction",
    E.CALL: "interaction",
    E.NOTE: "note",
    E.LINKEDIN_MESSAGE: "activity",
    E.LINKEDIN_CONNECTION: "activity",
    E.WHATSAPP: "activity",
    E.OTHER: "activity",
}


def random_sources(seed, n_events=40):
    rng = random.Random(seed)
    minutes = rng.sample(range(10_000), n_events)
    buckets = {"email": [], "interaction": [], "note": [], "activity": []}
    for i, minute in enumerate(minutes):
        kind = rng.choice(list(TimelineEventType))
        buckets[_BUCKET[kind]].append(make_event(f"ev-{i}", kind, minute))
    return build_sources(**buckets)


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [1, 3, 7, 20, 40, 100])
async def test_paging_visits_every_event_once_in_order(limit):
    sources, _ = random_sources(seed=limit)

    seen = []
    cursor = None
    while True:
        page = await timeline(sources, limit=limit, cursor=cursor)

        assert len(page.data) <= limit
        times = [e.occurred_at for e in page.data]
        assert times == sorted(times, reverse=True)
        if seen:
            assert all(t < seen[-1].occurred_at for t in times)
        seen.extend(page.data)

        if not page.has_more:
            assert page.next_cursor is None
            break
        assert len(page.data) == limit
        assert page.next_cursor == format_cursor(page.data[-1].occurred_at)
        cursor = page.next_cursor

    ids = [e.id for e in seen]
    assert len(ids) == len(set(ids))
    assert set(ids) == {f"ev-{i}" for i in range(40)}


@pytest.mark.asyncio
async def test_total_ignores_search():
    sources, _ = build_sources(
        email=[
            make_event("email-1", E.EMAIL, 1, title="Invoice #1"),
            make_event("email-2", E.EMAIL, 2, title="Lunch?"),
        ],
        note=[make_event("note-1", E.NOTE, 3, snippet="paid the INVOICE")],
        activity=[make_event("li-1", E.LINKEDIN_MESSAGE, 4)],
    )
    unfiltered = await timeline(sources, types="email,note")
    searched = await timeline(sources, types="email,note", search="invoice")

    assert unfiltered.total == searched.total == 3
    assert [e.id for e in searched.data] == ["note-1", "email-1"]
    assert len(searched.data) < searched.total


@pytest.mark.asyncio
async def test_equal_timestamps_ordered_by_source_then_id():
    sources, _ = build_sources(
        email=[make_event("b", E.EMAIL, 5), make_event("a2", E.EMAIL, 5)],
        note=[make_event("a", E.NOTE, 5)],
        activity=[make_event("c", E.OTHER, 5)],
        interaction=[make_event("m", E.MEETING, 6)],
    )
    first = await timeline(sources)
    second = await timeline(sources)

    assert [e.id for e in first.data] == ["m", "b", "a2", "a", "c"]
    assert [e.id for e in second.data] == [e.id for e in first.data]


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [1, 2, 3])
async def test_ties_within_one_source_independent_of_limit(limit):
    sources, _ = build_sources(
        email=[make_event("a", E.EMAIL, 5), make_event("b", E.EMAIL, 5), make_event("c", E.EMAIL, 5)],
    )
    page = await timeline(sources, limit=limit)
    assert [e.id for e in page.data] == ["c", "b", "a"][:limit]


@pytest.mark.asyncio
async def test_cursor_ties_at_page_boundary_are_skipped():
    """The timestamp-only cursor cannot split events sharing occurred_at.

    Kept for wire compatibility with existing clients; see DESIGN.md.
    """
    sources, _ = build_sources(
        email=[make_event("email-1", E.EMAIL, 5)],
        note=[make_event("note-1", E.NOTE, 5)],
    )
    first = await timeline(sources, limit=1)
    assert [e.id for e in first.data] == ["email-1"]
    assert first.has_more is True

    second = await timeline(sources, limit=1, cursor=first.next_cursor)
    assert second.data == []
    assert second.has_more is False


def test_merge_events_exact_limit_has_no_more():
    batch = [make_event("a", E.EMAIL, 3), make_event("b", E.EMAIL, 2)]
    page, has_more = merge_events([(0, batch)], limit=2)
    assert [e.id for e in page] == ["a", "b"]
    assert has_more is False


def test_merge_events_interleaves_batches():
    emails = [make_event("e9", E.EMAIL, 9), make_event("e5", E.EMAIL, 5), make_event("e1", E.EMAIL, 1)]
    notes = [make_event("n8", E.NOTE, 8), make_event("n7", E.NOTE, 7)]
    page, has_more = merge_events([(0, emails), (2, notes)], limit=3)
    assert [e.id for e in page] == ["e9", "n8", "n7"]
    assert has_more is True


# ---------------------------------------------------------------------------
# Page iterator
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_iter_timeline_pages_follows_cursor():
    sources, _ = build_sources(
        email=[make_event(f"email-{i}", E.EMAIL, i) for i in range(3)],
        note=[make_event(f"note-{i}", E.NOTE, 10 + i) for i in range(2)],
    )
    pages = [
        page
        async for page in iter_timeline_pages(
            fake_session, OWNER, CONTACT_ID, TimelineQuery(limit=2),
            sources=sources, find_contact=owned_contact,
        )
    ]
    assert [len(p.data) for p in pages] == [2, 2, 1]
    assert [e.id for p in pages for e in p.data] == [
        "note-1", "note-0", "email-2", "email-1", "email-0",
    ]
    assert pages[-1].has_more is False


@pytest.mark.asyncio
async def test_iter_timeline_pages_respects_max_pages():
    sources, _ = build_sources(email=[make_event(f"email-{i}", E.EMAIL, i) for i in range(10)])
    pages = [
        page
        async for page in iter_timeline_pages(
            fake_session, OWNER, CONTACT_ID, TimelineQuery(limit=2), max_pages=2,
            sources=sources, find_contact=owned_contact,
        )
    ]
    assert len(pages) == 2
    assert pages[-1].has_more is True
