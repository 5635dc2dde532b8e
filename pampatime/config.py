"""
Calendar settings.

The timetable lives on one fixed reference week (Monday to Friday) and inside
a daily window. Defaults match the calendar surface:

    reference week: 2020-01-06 .. 2020-01-10
    daily window:   07:30 .. 22:30
    default length: 60 minutes

Settings can be overridden from a small JSON file:

    {"week_start": "2020-01-06", "day_start": "07:30", "day_end": "22:30",
     "default_duration_minutes": 60, "enforce_window": true}
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalendarSettings:
    week_start: date = date(2020, 1, 6)
    day_start: time = time(7, 30)
    day_end: time = time(22, 30)
    default_duration: timedelta = timedelta(hours=1)
    enforce_window: bool = True


DEFAULT_SETTINGS = CalendarSettings()


def _parse_date(value: Any, default: date) -> date:
    try:
        parsed = datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
    except ValueError:
        logger.warning("Ignoring invalid week_start %r", value)
        return default
    # the reference week is anchored on its Monday
    if parsed.weekday() != 0:
        logger.warning("Ignoring week_start %s: not a Monday", parsed.isoformat())
        return default
    return parsed


def _parse_time(value: Any, default: time) -> time:
    try:
        return datetime.strptime(str(value).strip(), "%H:%M").time()
    except ValueError:
        logger.warning("Ignoring invalid clock value %r", value)
        return default


def settings_from_dict(data: dict[str, Any]) -> CalendarSettings:
    """
    Build settings from a plain dict. Unknown keys are ignored and malformed
    values fall back to their defaults.
    """
    d = DEFAULT_SETTINGS
    week_start = _parse_date(data["week_start"], d.week_start) if "week_start" in data else d.week_start
    day_start = _parse_time(data["day_start"], d.day_start) if "day_start" in data else d.day_start
    day_end = _parse_time(data["day_end"], d.day_end) if "day_end" in data else d.day_end

    if day_end <= day_start:
        logger.warning("Ignoring daily window %s-%s: end is not after start", day_start, day_end)
        day_start, day_end = d.day_start, d.day_end

    default_duration = d.default_duration
    minutes = data.get("default_duration_minutes")
    if isinstance(minutes, int) and not isinstance(minutes, bool) and minutes > 0:
        default_duration = timedelta(minutes=minutes)
    elif minutes is not None:
        logger.warning("Ignoring invalid default_duration_minutes %r", minutes)

    enforce_window = data.get("enforce_window", d.enforce_window)
    if not isinstance(enforce_window, bool):
        enforce_window = d.enforce_window

    return CalendarSettings(
        week_start=week_start,
        day_start=day_start,
        day_end=day_end,
        default_duration=default_duration,
        enforce_window=enforce_window,
    )


def load_settings(path: str | Path | None = None) -> CalendarSettings:
    """
    Load settings from a JSON file.

    Returns the defaults if no path is given or the file is missing or invalid.
    A broken settings file never stops an editing session.
    """
    if path is None:
        return DEFAULT_SETTINGS

    settings_path = Path(path)
    if not settings_path.exists():
        return DEFAULT_SETTINGS

    try:
        data = json.loads(settings_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("Could not read settings from %s, using defaults", settings_path)
        return DEFAULT_SETTINGS

    if not isinstance(data, dict):
        return DEFAULT_SETTINGS
    return settings_from_dict(data)
