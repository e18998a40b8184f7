"""Map crm rows onto TimelineEvent."""
from typing import Any, Dict, Optional

from bs4 import BeautifulSoup

from schemas.timeline import TimelineEvent, TimelineEventType, as_utc

NOTE_SNIPPET_LENGTH = 200
TRUNCATION_MARKER = "..."

NO_SUBJECT = "(No subject)"

ACTIVITY_TYPE_MAP = {
    "LINKEDIN_MESSAGE": TimelineEventType.LINKEDIN_MESSAGE,
    "LINKEDIN_CONNECTION": TimelineEventType.LINKEDIN_CONNECTION,
    "WHATSAPP": TimelineEventType.WHATSAPP,
    "EMAIL": TimelineEventType.EMAIL,
    "CALL": TimelineEventType.CALL,
    "MEETING": TimelineEventType.MEETING,
    "NOTE": TimelineEventType.NOTE,
}

DEFAULT_TITLES = {
    TimelineEventType.EMAIL: NO_SUBJECT,
    TimelineEventType.MEETING: "Meeting",
    TimelineEventType.CALL: "Call",
    TimelineEventType.NOTE: "Note",
    TimelineEventType.LINKEDIN_MESSAGE: "LinkedIn message",
    TimelineEventType.LINKEDIN_CONNECTION: "LinkedIn connection",
    TimelineEventType.WHATSAPP: "WhatsApp message",
    TimelineEventType.OTHER: "Activity",
}

_PARTICIPATION = {"SENDER": "sender", "RECIPIENT": "recipient", "CC": "cc"}


def activity_event_type(native_type: Optional[str]) -> TimelineEventType:
    """Timeline type for a contact_activities.type tag; unknown tags become OTHER."""
    return ACTIVITY_TYPE_MAP.get(native_type or "", TimelineEventType.OTHER)


def strip_html(content: str) -> str:
    text = BeautifulSoup(content, "html.parser").get_text(separator=" ")
    return " ".join(text.split())


def truncate_content(content: str, max_length: int = NOTE_SNIPPET_LENGTH) -> str:
    """Plain-text preview: tags stripped, cut to max_length plus a marker."""
    plain = strip_html(content)
    if len(plain) <= max_length:
        return plain
    return plain[:max_length] + TRUNCATION_MARKER


def _merged(base: Dict[str, Any], extra: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return {**base, **(extra or {})}


def email_event(email) -> TimelineEvent:
    return TimelineEvent(
        id=str(email.id),
        type=TimelineEventType.EMAIL,
        occurred_at=as_utc(email.occurred_at),
        title=email.subject or NO_SUBJECT,
        snippet=email.snippet or None,
        direction="inbound" if email.direction == "INBOUND" else "outbound",
        participation_type=_PARTICIPATION.get(email.participation_type),
        source=email.source,
        metadata=_merged({"threadId": email.thread_id}, email.extra_metadata),
    )


def interaction_event(interaction) -> TimelineEvent:
    event_type = (
        TimelineEventType.MEETING
        if interaction.interaction_type == "meeting"
        else TimelineEventType.CALL
    )
    return TimelineEvent(
        id=str(interaction.id),
        type=event_type,
        occurred_at=as_utc(interaction.occurred_at),
        title=interaction.subject or DEFAULT_TITLES[event_type],
        snippet=interaction.summary or None,
        source=interaction.external_source or "manual",
        metadata=_merged({"externalId": interaction.external_id}, interaction.meeting_data),
    )


def note_event(note) -> TimelineEvent:
    """Notes carry no subject; fullContent in metadata keeps the untruncated text."""
    return TimelineEvent(
        id=str(note.id),
        type=TimelineEventType.NOTE,
        occurred_at=as_utc(note.created_at),
        title=DEFAULT_TITLES[TimelineEventType.NOTE],
        snippet=truncate_content(note.content),
        source="manual",
        metadata={
            "isPinned": note.is_pinned,
            "updatedAt": as_utc(note.updated_at) if note.updated_at else None,
            "fullContent": note.content,
        },
    )


def activity_event(activity) -> TimelineEvent:
    event_type = activity_event_type(activity.type)
    return TimelineEvent(
        id=str(activity.id),
        type=event_type,
        occurred_at=as_utc(activity.occurred_at),
        title=activity.title or DEFAULT_TITLES[event_type],
        snippet=activity.description or None,
        source="activity",
        metadata=dict(activity.extra_metadata or {}),
    )
