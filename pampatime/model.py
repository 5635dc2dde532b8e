"""
Central data model definitions used across the project.

This module defines the canonical structure of Event and ConflictRecord objects so that:
- the store, the scheduling functions and the editor share the same field names
- display colors always travel together with the event they were derived from
- conflict explanations have one shape, whatever dimension produced them
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

EventId = Union[str, int]

ROOM = "room"
PROFESSOR = "professor"
SEMESTER = "semester"

CONFLICT_DIMENSIONS = (ROOM, PROFESSOR, SEMESTER)


@dataclass(frozen=True)
class EventColors:
    """
    Background, border and text color of one rendered event.
    """

    bg: str
    border: str
    text: str


@dataclass
class Event:
    """
    Represents one weekly course session placed on the reference week.

    room, professor, semester and cohort are free-text resource identifiers;
    an empty value means "unconstrained". The three color fields are derived
    from `type` and are overwritten every time colors are applied.
    """

    event_id: EventId
    title: str
    start: datetime
    end: datetime
    room: str = ""
    professor: str = ""
    semester: str = ""
    cohort: str = ""
    type: str = ""
    background_color: Optional[str] = None
    border_color: Optional[str] = None
    text_color: Optional[str] = None

    @property
    def day(self):
        return self.start.date()

    def attributes(self) -> dict[str, str]:
        """
        Resource and modality attributes, keyed the way the calendar surface names them.
        """
        return {
            "room": self.room,
            "professor": self.professor,
            "semester": self.semester,
            "class": self.cohort,
            "type": self.type,
        }


@dataclass(frozen=True)
class ConflictRecord:
    """
    One side of a conflicting pair along a single dimension.

    Every conflicting pair yields two records, one attributed to each event.
    """

    event_id: EventId
    conflict_type: str
    conflict_value: str
    conflict_with_event_id: EventId


@dataclass
class ConflictReport:
    """
    Result of one full conflict pass over a snapshot of events.
    """

    conflicted_ids: set[EventId] = field(default_factory=set)
    records_by_event: dict[EventId, list[ConflictRecord]] = field(default_factory=dict)

    def records_for(self, event_id: EventId) -> list[ConflictRecord]:
        return list(self.records_by_event.get(event_id, []))

    def is_conflicted(self, event_id: EventId) -> bool:
        return event_id in self.conflicted_ids
