"""
Conflict detection.

Given a snapshot of events, detect pairs that overlap in time on the same
date AND compete for the same resource.

Overlap rule (half-open intervals, touching endpoints do not overlap):
    start < other_end AND end > other_start

Dimensions, checked independently for every overlapping pair:
    room       both rooms non-empty and equal
    professor  both professors non-empty and equal
    semester   both semesters non-empty and equal, and the titles differ
               (two sections of the same course are not competing)

Each conflicting pair yields two ConflictRecords per dimension, one per side.
The pass is always recomputed from scratch.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Iterable

from pampatime.model import (
    CONFLICT_DIMENSIONS,
    PROFESSOR,
    ROOM,
    SEMESTER,
    ConflictRecord,
    ConflictReport,
    Event,
)

_LABELS = {
    ROOM: "Room {value} occupied",
    PROFESSOR: "{value} in conflict",
    SEMESTER: "Semester {value} overlapping",
}


def _overlaps(a: Event, b: Event) -> bool:
    return a.day == b.day and a.start < b.end and a.end > b.start


def _norm(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _shared_resources(a: Event, b: Event) -> list[tuple[str, str]]:
    """
    Return (dimension, value) for every resource two overlapping events share.
    """
    shared: list[tuple[str, str]] = []

    room = _norm(a.room)
    if room and room == _norm(b.room):
        shared.append((ROOM, room))

    professor = _norm(a.professor)
    if professor and professor == _norm(b.professor):
        shared.append((PROFESSOR, professor))

    semester = _norm(a.semester)
    if semester and semester == _norm(b.semester) and _norm(a.title) != _norm(b.title):
        shared.append((SEMESTER, semester))

    return shared


def find_conflicts(events: Iterable[Event]) -> ConflictReport:
    """
    Compare every pair of events and collect all conflicts.
    """
    # O(n^2) is fine for a weekly timetable (tens to low hundreds of events)
    valid = [ev for ev in events if ev.end > ev.start]
    records: dict[Any, list[ConflictRecord]] = defaultdict(list)

    for i in range(len(valid)):
        a = valid[i]
        for j in range(i + 1, len(valid)):
            b = valid[j]
            if not _overlaps(a, b):
                continue
            for dimension, value in _shared_resources(a, b):
                records[a.event_id].append(ConflictRecord(a.event_id, dimension, value, b.event_id))
                records[b.event_id].append(ConflictRecord(b.event_id, dimension, value, a.event_id))

    return ConflictReport(conflicted_ids=set(records), records_by_event=dict(records))


def describe_conflicts(records: Iterable[ConflictRecord]) -> str:
    """
    Human-readable summary of one event's conflicts, e.g.
    "Room A101 occupied • Prof. Silva in conflict".

    Records are grouped by dimension; each distinct value is listed once.
    """
    values: dict[str, list[str]] = {dimension: [] for dimension in CONFLICT_DIMENSIONS}
    for rec in records:
        seen = values.setdefault(rec.conflict_type, [])
        if rec.conflict_value not in seen:
            seen.append(rec.conflict_value)

    parts: list[str] = []
    for dimension, dimension_values in values.items():
        template = _LABELS.get(dimension, dimension + ": {value}")
        for value in dimension_values:
            parts.append(template.format(value=value))
    return " • ".join(parts)


def conflict_summary(report: ConflictReport) -> dict[str, Any]:
    """
    Banner data: every conflicting pair listed once per dimension.

        {"total": 2,
         "by_dimension": {"room": [{"event_id": 1, "with_event_id": 2, "value": "A101"}],
                          "professor": [...], "semester": [...]}}

    `total` counts (pair, dimension) conflicts.
    """
    by_dimension: dict[str, list[dict[str, Any]]] = {dimension: [] for dimension in CONFLICT_DIMENSIONS}
    seen: set[tuple[str, frozenset]] = set()

    for event_id, records in report.records_by_event.items():
        for rec in records:
            key = (rec.conflict_type, frozenset((rec.event_id, rec.conflict_with_event_id)))
            if key in seen:
                continue
            seen.add(key)
            by_dimension.setdefault(rec.conflict_type, []).append(
                {
                    "event_id": rec.event_id,
                    "with_event_id": rec.conflict_with_event_id,
                    "value": rec.conflict_value,
                }
            )

    total = sum(len(items) for items in by_dimension.values())
    return {"total": total, "by_dimension": by_dimension}
