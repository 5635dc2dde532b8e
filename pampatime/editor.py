"""
Timetable editor: the boundary the calendar surface talks to.

Inbound:
- on_external_item_dropped / on_event_moved / on_event_resized carry a
  payload {id?, title, start, end, extendedAttributes: {room, professor,
  semester, class, type}}; times are snapped onto the slot grid
- on_event_clicked(id) selects an event and returns its render view
- add_event / update_event / delete_event take form fields
  (title, weekday name, "HH:MM" start and end, attributes)

Outbound:
- list() returns every event decorated for rendering (colors, conflict text)
- conflict_summary() returns banner data grouped by dimension

The editor owns no events itself. It commits to the EventStore and recomputes
the conflict report whenever the store reports a committed change.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Iterator, Optional, Union

from pampatime.colors import CONFLICT_COLORS, apply_colors, get_colors
from pampatime.config import DEFAULT_SETTINGS, CalendarSettings
from pampatime.conflicts import conflict_summary, describe_conflicts, find_conflicts
from pampatime.errors import SchedulingError, ValidationError
from pampatime.model import ConflictRecord, ConflictReport, Event, EventColors, EventId
from pampatime.store import EventStore
from pampatime.timeslots import build_event, clean_attributes, snap_to_half_hour, validate_bounds

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Inbound data
# ---------------------------------------------------------------------------


@dataclass
class DropPayload:
    """
    What the calendar surface reports after a drop, move or resize.
    """

    title: str
    start: datetime
    end: Optional[datetime] = None
    event_id: Optional[EventId] = None
    attributes: dict[str, str] = field(default_factory=dict)


@dataclass
class EventForm:
    """
    Fields of the add/edit form. Clocks are "HH:MM" strings.
    """

    title: str = ""
    weekday: str = ""
    start_clock: str = ""
    end_clock: str = ""
    room: str = ""
    professor: str = ""
    semester: str = ""
    cohort: str = ""
    type: str = ""

    REQUIRED = (
        ("title", "Title"),
        ("weekday", "Day"),
        ("start_clock", "Start time"),
        ("end_clock", "End time"),
    )

    def attributes(self) -> dict[str, str]:
        return {
            "room": self.room,
            "professor": self.professor,
            "semester": self.semester,
            "class": self.cohort,
            "type": self.type,
        }

    def validate(self) -> None:
        missing = [(name, label) for name, label in self.REQUIRED if not str(getattr(self, name) or "").strip()]
        if missing:
            raise ValidationError(
                "Please fill in all required fields: " + ", ".join(label for _, label in missing),
                field=missing[0][0],
            )


def _parse_instant(value: Any, field_name: str) -> datetime:
    if isinstance(value, datetime):
        # no timezone handling: instants are wall-clock times on the reference week
        return value.replace(tzinfo=None)
    text = str(value or "").strip()
    if text.endswith("Z"):
        text = text[:-1]
    try:
        return datetime.fromisoformat(text).replace(tzinfo=None)
    except ValueError:
        raise ValidationError(f"Invalid {field_name}: {value!r}", field=field_name) from None


def payload_from_dict(data: dict[str, Any]) -> DropPayload:
    """
    Read a calendar-surface payload. Attributes come from `extendedAttributes`
    or `extendedProps`, falling back to top-level keys; anything else is dropped.
    """
    if "start" not in data or data.get("start") in (None, ""):
        raise ValidationError("Payload has no start", field="start")

    raw_attrs: dict[str, Any] = {}
    for key in ("room", "professor", "semester", "class", "cohort", "type"):
        if key in data:
            raw_attrs[key] = data[key]
    nested = data.get("extendedAttributes") or data.get("extendedProps") or {}
    if isinstance(nested, dict):
        raw_attrs.update(nested)

    end = data.get("end")
    event_id = data.get("id", data.get("event_id"))
    return DropPayload(
        title=str(data.get("title") or "").strip(),
        start=_parse_instant(data["start"], "start"),
        end=_parse_instant(end, "end") if end not in (None, "") else None,
        event_id=event_id if event_id not in (None, "") else None,
        attributes=clean_attributes(raw_attrs),
    )


def form_from_dict(data: dict[str, Any]) -> EventForm:
    """
    Read form fields from a dict; "class" is accepted for the cohort.
    """

    def get(*keys: str) -> str:
        for key in keys:
            if data.get(key) is not None:
                return str(data[key]).strip()
        return ""

    return EventForm(
        title=get("title"),
        weekday=get("weekday", "day"),
        start_clock=get("start_clock", "start"),
        end_clock=get("end_clock", "end"),
        room=get("room"),
        professor=get("professor"),
        semester=get("semester"),
        cohort=get("cohort", "class"),
        type=get("type"),
    )


# ---------------------------------------------------------------------------
# Outbound data
# ---------------------------------------------------------------------------


@dataclass
class RenderedEvent:
    """
    An event as it should be drawn right now: conflicted events carry the
    conflict palette and a description, the others their type colors.
    """

    event: Event
    colors: EventColors
    conflicts: list[ConflictRecord] = field(default_factory=list)
    conflict_info: Optional[str] = None

    @property
    def event_id(self) -> EventId:
        return self.event.event_id

    @property
    def is_conflicted(self) -> bool:
        return bool(self.conflicts)

    def to_dict(self) -> dict[str, Any]:
        """
        Shape expected by the calendar surface.
        """
        ev = self.event
        out: dict[str, Any] = {
            "id": ev.event_id,
            "title": ev.title,
            "start": ev.start.isoformat(),
            "end": ev.end.isoformat(),
            "allDay": False,
            "backgroundColor": self.colors.bg,
            "borderColor": self.colors.border,
            "textColor": self.colors.text,
            "extendedProps": ev.attributes(),
        }
        if self.conflict_info:
            out["conflictInfo"] = self.conflict_info
        return out


def render_event(event: Event, report: ConflictReport) -> RenderedEvent:
    records = report.records_for(event.event_id)
    if records:
        return RenderedEvent(event, CONFLICT_COLORS, records, describe_conflicts(records))
    return RenderedEvent(event, get_colors(event.type))


# ---------------------------------------------------------------------------
# Editor
# ---------------------------------------------------------------------------


@contextmanager
def _logged_rejection(action: str) -> Iterator[None]:
    try:
        yield
    except SchedulingError as exc:
        logger.info("%s rejected: %s", action, exc)
        raise


PayloadLike = Union[DropPayload, dict]
FormLike = Union[EventForm, dict]


class TimetableEditor:
    def __init__(self, store: Optional[EventStore] = None, settings: CalendarSettings = DEFAULT_SETTINGS) -> None:
        self.store = store if store is not None else EventStore()
        self.settings = settings
        self._report = find_conflicts(self.store.list())
        self._unsubscribe = self.store.subscribe(self._on_store_changed)

    def close(self) -> None:
        """Detach from the store at the end of a session."""
        self._unsubscribe()

    def _on_store_changed(self, action: str, event_id: EventId) -> None:
        self._report = find_conflicts(self.store.list())

    @property
    def report(self) -> ConflictReport:
        return self._report

    # -- calendar surface notifications ------------------------------------

    def on_external_item_dropped(self, payload: PayloadLike) -> Event:
        """
        Place a catalog item on the week. Always creates a new event with a
        fresh id and selects it.
        """
        with _logged_rejection("drop"):
            p = payload if isinstance(payload, DropPayload) else payload_from_dict(payload)
            if not p.title:
                raise ValidationError("Dropped item has no title", field="title")

            start = snap_to_half_hour(p.start)
            end = snap_to_half_hour(p.end) if p.end is not None else start + self.settings.default_duration
            start = snap_to_half_hour(start)
            validate_bounds(start, end, self.settings)

            event = apply_colors(Event(event_id=None, title=p.title, start=start, end=end, **p.attributes))
            committed = self.store.add(event)
            self.store.select(committed.event_id)
            return committed

    def on_event_moved(self, payload: PayloadLike) -> Event:
        with _logged_rejection("move"):
            return self._reschedule(payload)

    def on_event_resized(self, payload: PayloadLike) -> Event:
        with _logged_rejection("resize"):
            return self._reschedule(payload)

    def _reschedule(self, payload: PayloadLike) -> Event:
        p = payload if isinstance(payload, DropPayload) else payload_from_dict(payload)
        if p.event_id is None:
            raise ValidationError("Payload has no event id", field="id")
        existing = self.store.get(p.event_id)

        # end first, then start again, so start stays on the grid whatever the anchor
        start = snap_to_half_hour(p.start)
        if p.end is not None:
            end = snap_to_half_hour(p.end)
        else:
            end = start + (existing.end - existing.start)
        start = snap_to_half_hour(start)
        validate_bounds(start, end, self.settings)

        updated = replace(existing, title=p.title or existing.title, start=start, end=end, **p.attributes)
        return self.store.update(apply_colors(updated))

    def on_event_clicked(self, event_id: EventId) -> RenderedEvent:
        """
        Select an event for editing and return it with its conflict description.
        """
        with self.store.locked():
            event = self.store.select(event_id)
            report = self._report
        return render_event(event, report)

    # -- form driven CRUD --------------------------------------------------

    def add_event(self, form: FormLike) -> Event:
        with _logged_rejection("add"):
            f = form if isinstance(form, EventForm) else form_from_dict(form)
            f.validate()
            event = build_event(f.title, f.weekday, f.start_clock, f.end_clock, f.attributes(), settings=self.settings)
            return self.store.add(event)

    def update_event(self, event_id: EventId, form: FormLike) -> Event:
        with _logged_rejection("update"):
            self.store.get(event_id)
            f = form if isinstance(form, EventForm) else form_from_dict(form)
            f.validate()
            event = build_event(
                f.title,
                f.weekday,
                f.start_clock,
                f.end_clock,
                f.attributes(),
                event_id=event_id,
                settings=self.settings,
            )
            return self.store.update(event)

    def delete_event(self, event_id: EventId) -> bool:
        return self.store.delete(event_id)

    def clear_selection(self) -> None:
        self.store.clear_selection()

    # -- views ---------------------------------------------------------------

    def list(self) -> list[RenderedEvent]:
        # report and events must come from the same committed state
        with self.store.locked():
            report = self._report
            events = self.store.list()
        return [render_event(ev, report) for ev in events]

    def conflicts_for(self, event_id: EventId) -> list[ConflictRecord]:
        return self._report.records_for(event_id)

    def conflict_summary(self) -> dict[str, Any]:
        return conflict_summary(self._report)
