"""Unified contact timeline: merges emails, meetings/calls, notes and activities
into one reverse-chronological, cursor-paginated feed per contact.

The entry point lives in timeline.service (it needs a configured database);
this package root only exposes the error types so callers can catch them
without importing the database layer.
"""
from timeline.errors import ContactNotFoundError, InvalidTimelineQueryError, TimelineError

__all__ = ["TimelineError", "ContactNotFoundError", "InvalidTimelineQueryError"]
