"""Timeline error taxonomy.

Store failures are not wrapped: SQLAlchemy/asyncpg exceptions reach the caller
as raised.
"""


class TimelineError(Exception):
    """Base class for errors raised by the timeline service itself."""


class ContactNotFoundError(TimelineError, LookupError):
    """The contact does not exist, is deleted, or is not owned by the caller."""

    def __init__(self, contact_id):
        super().__init__(f"Contact with ID {contact_id} not found")
        self.contact_id = contact_id


class InvalidTimelineQueryError(TimelineError, ValueError):
    """Caller input error: bad cursor, unknown event type, limit out of range."""
