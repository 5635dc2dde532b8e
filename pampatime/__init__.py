"""
Pampatime: weekly class-timetable editing core.

Holds the in-memory event store, slot snapping, color derivation and
conflict detection behind the calendar surface.
"""

from pampatime.editor import TimetableEditor
from pampatime.errors import DuplicateIdError, NotFoundError, SchedulingError, ValidationError
from pampatime.model import ConflictRecord, Event, EventColors

__all__ = [
    "ConflictRecord",
    "DuplicateIdError",
    "Event",
    "EventColors",
    "NotFoundError",
    "SchedulingError",
    "TimetableEditor",
    "ValidationError",
]
