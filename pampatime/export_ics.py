"""
iCalendar (.ics) export.

We convert the reference-week events into a calendar file that can be imported into:
- Google Calendar
- Outlook
- Apple Calendar

Each event is exported once, on its reference date (no recurrence rules).
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from pampatime.model import Event


def _ics_escape(text: str) -> str:
    """
    Escape text for ICS fields (very small subset, sufficient for our use).
    """
    return (
        text.replace("\\", "\\\\").replace("\r\n", "\\n").replace("\n", "\\n").replace(";", "\\;").replace(",", "\\,")
    )


def _dt_local(dt: datetime) -> str:
    return dt.strftime("%Y%m%dT%H%M00")


def _description(ev: Event) -> str:
    labels = (
        ("Professor", ev.professor),
        ("Semester", ev.semester),
        ("Class", ev.cohort),
        ("Type", ev.type),
    )
    return "\n".join(f"{label}: {value.strip()}" for label, value in labels if value and value.strip())


def export_events_to_ics(events: Iterable[Event], out_path: str | Path) -> int:
    """
    Export events to an .ics file. Returns number of exported events.
    """
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    lines: list[str] = []
    lines.append("BEGIN:VCALENDAR")
    lines.append("VERSION:2.0")
    lines.append("PRODID:-//Pampatime//EN")
    lines.append("CALSCALE:GREGORIAN")

    dtstamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    count = 0
    for ev in events:
        if ev.end <= ev.start:
            continue

        summary = ev.title.strip() or "Pampatime Event"

        lines.append("BEGIN:VEVENT")
        lines.append(f"UID:{_ics_escape(str(ev.event_id))}@pampatime")
        lines.append(f"DTSTAMP:{dtstamp}")
        lines.append(f"DTSTART:{_dt_local(ev.start)}")
        lines.append(f"DTEND:{_dt_local(ev.end)}")
        lines.append(f"SUMMARY:{_ics_escape(summary)}")
        if ev.room.strip():
            lines.append(f"LOCATION:{_ics_escape(ev.room.strip())}")
        description = _description(ev)
        if description:
            lines.append(f"DESCRIPTION:{_ics_escape(description)}")
        lines.append("END:VEVENT")
        count += 1

    lines.append("END:VCALENDAR")

    # ICS standard uses CRLF
    out.write_text("\r\n".join(lines) + "\r\n", encoding="utf-8")
    return count
