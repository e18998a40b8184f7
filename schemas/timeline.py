"""Contact timeline schemas."""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from dateutil.parser import isoparse
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from timeline.errors import InvalidTimelineQueryError


DEFAULT_LIMIT = 20
MAX_LIMIT = 100

Direction = Literal["inbound", "outbound"]
ParticipationType = Literal["sender", "recipient", "cc"]


class TimelineEventType(str, Enum):
    EMAIL = "email"
    MEETING = "meeting"
    CALL = "call"
    NOTE = "note"
    LINKEDIN_MESSAGE = "linkedin_message"
    LINKEDIN_CONNECTION = "linkedin_connection"
    WHATSAPP = "whatsapp"
    OTHER = "other"


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_cursor(value: datetime) -> str:
    """Full-precision ISO-8601 cursor; parsing it back yields the same instant."""
    return as_utc(value).isoformat().replace("+00:00", "Z")


class TimelineEvent(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    type: TimelineEventType
    occurred_at: datetime
    title: str = Field(min_length=1)
    snippet: Optional[str] = None
    direction: Optional[Direction] = None           # email only
    participation_type: Optional[ParticipationType] = None  # email only
    source: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class TimelineQuery(BaseModel):
    """Validated timeline filters.

    types: None or empty means every event type.
    cursor: exclusive upper bound on occurred_at (keyset pagination).
    """

    types: Optional[List[TimelineEventType]] = None
    search: Optional[str] = None
    cursor: Optional[datetime] = None
    limit: int = Field(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT)

    @field_validator("types", mode="before")
    @classmethod
    def _split_types(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = [part.strip() for part in value.split(",") if part.strip()]
        return value or None

    @field_validator("search", mode="before")
    @classmethod
    def _blank_search(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("cursor", mode="before")
    @classmethod
    def _parse_cursor(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        if isinstance(value, str):
            try:
                value = isoparse(value)
            except (ValueError, OverflowError):
                raise ValueError(f"cursor must be an ISO-8601 timestamp, got {value!r}")
        if isinstance(value, datetime):
            return as_utc(value)
        return value

    @classmethod
    def from_params(
        cls,
        types: Any = None,
        search: Optional[str] = None,
        cursor: Optional[str] = None,
        limit: Any = None,
    ) -> "TimelineQuery":
        """Build a query from query-string style values.

        types may be a comma-separated string ("email,note") or a list.
        Raises InvalidTimelineQueryError on any invalid value.
        """
        params: Dict[str, Any] = {"types": types, "search": search, "cursor": cursor}
        if limit is not None:
            params["limit"] = limit
        try:
            return cls(**params)
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
            )
            raise InvalidTimelineQueryError(f"Invalid timeline query: {problems}") from exc


class TimelineResponse(BaseModel):
    """One page of the timeline.

    total is approximate: per-source row counts without the search filter.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    data: List[TimelineEvent] = Field(default_factory=list)
    total: int = Field(ge=0)
    next_cursor: Optional[str] = None
    has_more: bool = False

    def to_wire(self) -> Dict[str, Any]:
        """JSON-compatible dict: data, total, nextCursor (only when set), hasMore."""
        payload = self.model_dump(mode="json", by_alias=True)
        if payload.get("nextCursor") is None:
            payload.pop("nextCursor", None)
        return payload
