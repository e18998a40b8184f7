from .timeline import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    TimelineEvent,
    TimelineEventType,
    TimelineQuery,
    TimelineResponse,
)

__all__ = [
    "DEFAULT_LIMIT", "MAX_LIMIT",
    "TimelineEvent", "TimelineEventType", "TimelineQuery", "TimelineResponse",
]
