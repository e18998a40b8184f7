"""Query normalization: which event types, which sources, which native filters."""
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence
from uuid import UUID

from schemas.timeline import TimelineEventType


# Native crm.interactions.interaction_type per timeline type
INTERACTION_TYPES = {
    TimelineEventType.MEETING: ("meeting",),
    TimelineEventType.CALL: ("call",),
}

# Native crm.contact_activities.type tags per timeline type. EMAIL/CALL/MEETING/NOTE
# activity rows are never selected: those events come from their own tables.
ACTIVITY_TYPES = {
    TimelineEventType.LINKEDIN_MESSAGE: ("LINKEDIN_MESSAGE",),
    TimelineEventType.LINKEDIN_CONNECTION: ("LINKEDIN_CONNECTION",),
    TimelineEventType.WHATSAPP: ("WHATSAPP",),
    TimelineEventType.OTHER: ("OTHER", "TASK_COMPLETED", "REMINDER_TRIGGERED"),
}


@dataclass(frozen=True)
class TimelineScope:
    """Whose timeline, seen by whom, restricted to which event types."""

    contact_id: UUID
    user_id: str
    types: tuple[TimelineEventType, ...]

    @property
    def interaction_types(self) -> List[str]:
        return _native_tags(self.types, INTERACTION_TYPES)

    @property
    def activity_types(self) -> List[str]:
        return _native_tags(self.types, ACTIVITY_TYPES)


def _native_tags(types: Iterable[TimelineEventType], table: dict) -> List[str]:
    tags: List[str] = []
    for event_type in types:
        for tag in table.get(event_type, ()):
            if tag not in tags:
                tags.append(tag)
    return tags


def resolve_types(
    types: Optional[Sequence[TimelineEventType]],
) -> tuple[TimelineEventType, ...]:
    """Requested types in enumeration order, or every type when none were given."""
    if not types:
        return tuple(TimelineEventType)
    requested = set(types)
    return tuple(t for t in TimelineEventType if t in requested)


def active_sources(types: Iterable[TimelineEventType], sources: Sequence) -> list:
    """Sources producing at least one of the requested types, in source order."""
    wanted = set(types)
    return [source for source in sources if wanted & source.event_types]
