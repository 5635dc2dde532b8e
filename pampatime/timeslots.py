"""
Time and date normalization.

Every event lives on the fixed reference week and its boundaries sit on the
slot grid (hh:30). This module holds:
- snapping of arbitrary instants onto the grid
- weekday name -> reference date resolution
- "HH:MM" clock parsing
- the bounds check every event passes before it reaches the store
- build_event, which turns form fields into a colored Event
"""

from __future__ import annotations

import logging
import unicodedata
from datetime import date, datetime, time, timedelta
from typing import Any, Optional

from pampatime.colors import apply_colors
from pampatime.config import DEFAULT_SETTINGS, CalendarSettings
from pampatime.errors import ValidationError
from pampatime.model import Event, EventId
from pampatime.store import new_event_id

logger = logging.getLogger(__name__)

WEEKDAY_NAMES_PT = ("Segunda", "Terça", "Quarta", "Quinta", "Sexta")

# normalized alias -> offset from the reference Monday
_WEEKDAY_ALIASES: dict[str, int] = {}
for _offset, _names in enumerate(
    (
        ("segunda", "seg", "monday", "mon"),
        ("terca", "ter", "tuesday", "tue"),
        ("quarta", "qua", "wednesday", "wed"),
        ("quinta", "qui", "thursday", "thu"),
        ("sexta", "sex", "friday", "fri"),
    )
):
    for _name in _names:
        _WEEKDAY_ALIASES[_name] = _offset

# attribute keys accepted from forms and payloads; "class" is the cohort
_ATTRIBUTE_KEYS = {
    "room": "room",
    "professor": "professor",
    "semester": "semester",
    "class": "cohort",
    "cohort": "cohort",
    "type": "type",
}


def snap_to_half_hour(instant: datetime) -> datetime:
    """
    Snap an instant onto the hh:30 grid.

        minute < 15        -> previous hour's :30 (hour 0 stays at 00:30)
        15 <= minute < 45  -> this hour's :30
        minute >= 45       -> next hour's :30

    Seconds are dropped. Snapping a snapped instant returns it unchanged.
    """
    base = instant.replace(minute=30, second=0, microsecond=0)
    if instant.minute < 15:
        if instant.hour == 0:
            return base
        return base - timedelta(hours=1)
    if instant.minute < 45:
        return base
    return base + timedelta(hours=1)


def _normalize_weekday(name: str) -> str:
    text = unicodedata.normalize("NFKD", name.strip().lower())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    for suffix in ("-feira", " feira"):
        if text.endswith(suffix):
            text = text[: -len(suffix)]
    return text.strip()


def reference_dates(settings: CalendarSettings = DEFAULT_SETTINGS) -> list[date]:
    """Monday to Friday of the reference week."""
    return [settings.week_start + timedelta(days=i) for i in range(5)]


def resolve_date_for_weekday(name: Optional[str], settings: CalendarSettings = DEFAULT_SETTINGS) -> date:
    """
    Map a weekday name (Portuguese or English, any case, accents optional)
    to its date in the reference week. Unknown names resolve to Monday.
    """
    offset = _WEEKDAY_ALIASES.get(_normalize_weekday(name or ""))
    if offset is None:
        logger.warning("Unknown weekday %r, using Monday", name)
        offset = 0
    return settings.week_start + timedelta(days=offset)


def weekday_name_for(day: date, settings: CalendarSettings = DEFAULT_SETTINGS) -> str:
    """
    Portuguese day name of a reference-week date, as shown in the calendar headers.
    """
    offset = (day - settings.week_start).days
    if not 0 <= offset < 5:
        raise ValidationError(f"{day.isoformat()} is not in the reference week", field="day")
    return WEEKDAY_NAMES_PT[offset]


def parse_clock(hhmm: str, field: str = "time") -> time:
    """
    Convert 'HH:MM' to a time. Raises ValidationError for invalid formats.
    """
    parts = str(hhmm or "").strip().split(":")
    if len(parts) != 2 or not all(p.strip().isdigit() for p in parts):
        raise ValidationError(f"Invalid time format: {hhmm!r}", field=field)
    h = int(parts[0])
    m = int(parts[1])
    if not (0 <= h <= 23 and 0 <= m <= 59):
        raise ValidationError(f"Invalid time value: {hhmm!r}", field=field)
    return time(h, m)


def validate_bounds(start: datetime, end: datetime, settings: CalendarSettings = DEFAULT_SETTINGS) -> None:
    """
    Reject events that end before they start, fall outside the five
    reference dates, or (when enforced) leave the daily window.
    """
    if end <= start:
        raise ValidationError("End time must be after start time", field="end")

    if start.date() not in reference_dates(settings):
        raise ValidationError(f"{start.date().isoformat()} is not a weekday of the reference week", field="start")
    if end.date() != start.date():
        raise ValidationError("An event must start and end on the same day", field="end")

    if settings.enforce_window:
        window = f"{settings.day_start:%H:%M}-{settings.day_end:%H:%M}"
        if start.time() < settings.day_start:
            raise ValidationError(f"Start {start:%H:%M} is outside the daily window {window}", field="start")
        if end.time() > settings.day_end:
            raise ValidationError(f"End {end:%H:%M} is outside the daily window {window}", field="end")


def clean_attributes(attributes: Optional[dict[str, Any]]) -> dict[str, str]:
    """
    Keep only the known attribute keys, as trimmed strings. Unknown keys are dropped.
    """
    out: dict[str, str] = {}
    for key, value in (attributes or {}).items():
        target = _ATTRIBUTE_KEYS.get(key)
        if target is None or value is None:
            continue
        out[target] = str(value).strip()
    return out


def build_event(
    title: str,
    weekday_name: str,
    start_clock: str,
    end_clock: str,
    attributes: Optional[dict[str, Any]] = None,
    event_id: Optional[EventId] = None,
    settings: CalendarSettings = DEFAULT_SETTINGS,
) -> Event:
    """
    Compose a new Event on the reference week from form-style fields.

    The weekday resolves to its reference date, the clocks are attached as
    given (no snapping) and colors are derived from the type.
    """
    start_time = parse_clock(start_clock, field="start")
    end_time = parse_clock(end_clock, field="end")
    if end_time <= start_time:
        raise ValidationError(
            f"End time {end_clock} must be after start time {start_clock}",
            field="end",
        )

    day = resolve_date_for_weekday(weekday_name, settings)
    start = datetime.combine(day, start_time)
    end = datetime.combine(day, end_time)
    validate_bounds(start, end, settings)

    event = Event(
        event_id=event_id if event_id is not None else new_event_id(),
        title=str(title or "").strip(),
        start=start,
        end=end,
        **clean_attributes(attributes),
    )
    return apply_colors(event)
