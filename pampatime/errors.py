"""
Errors raised by the timetable core.

All of them are raised synchronously, before the store is touched, so a
rejected mutation always leaves the store as it was.
"""

from __future__ import annotations

from typing import Any, Optional


class SchedulingError(Exception):
    """Base class for every error raised by the timetable core."""


class ValidationError(SchedulingError, ValueError):
    """Input rejected before it reached the store (bad times, missing fields, off-grid dates)."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class NotFoundError(SchedulingError, LookupError):
    def __init__(self, event_id: Any) -> None:
        super().__init__(f"No event with id {event_id!r}")
        self.event_id = event_id


class DuplicateIdError(SchedulingError, ValueError):
    def __init__(self, event_id: Any) -> None:
        super().__init__(f"An event with id {event_id!r} already exists")
        self.event_id = event_id
