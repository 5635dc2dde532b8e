from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from pathlib import Path
from typing import Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from pampatime.editor import DropPayload, EventForm, RenderedEvent, TimetableEditor
from pampatime.errors import SchedulingError
from pampatime.export_ics import export_events_to_ics
from pampatime.model import CONFLICT_DIMENSIONS
from pampatime.timeslots import (
    WEEKDAY_NAMES_PT,
    parse_clock,
    reference_dates,
    resolve_date_for_weekday,
    weekday_name_for,
)

console = Console()


def _println(msg: str = "") -> None:
    console.print(msg)


def _prompt(msg: str) -> str:
    return console.input(msg)


def _event_line(item: RenderedEvent) -> str:
    ev = item.event
    parts = [f"{ev.start:%H:%M}-{ev.end:%H:%M}", ev.title]
    if ev.room:
        parts.append(ev.room)
    if ev.professor:
        parts.append(ev.professor)
    return escape(" | ".join(parts))


def print_timetable(editor: TimetableEditor) -> None:
    """
    Print the week as one column per weekday; conflicted events in red.
    """
    items = editor.list()
    if not items:
        _println("No events scheduled.")
        return

    days = reference_dates(editor.settings)
    buckets: dict = defaultdict(list)
    for item in sorted(items, key=lambda x: x.event.start):
        buckets[item.event.day].append(item)

    table = Table(box=box.SIMPLE, title="Timetable")
    for name in WEEKDAY_NAMES_PT:
        table.add_column(name)

    max_len = max(len(buckets[d]) for d in days)
    for r in range(max_len):
        row = []
        for d in days:
            if r >= len(buckets[d]):
                row.append("")
                continue
            item = buckets[d][r]
            line = _event_line(item)
            row.append(f"[bold red]{line}[/]" if item.is_conflicted else line)
        table.add_row(*row)
    console.print(table)


def print_event_list(editor: TimetableEditor) -> None:
    table = Table(box=box.SIMPLE)
    table.add_column("Id")
    table.add_column("Day")
    table.add_column("Time")
    table.add_column("Title")
    table.add_column("Room")
    table.add_column("Professor")
    table.add_column("Semester")
    table.add_column("Type")
    table.add_column("Conflicts")

    for item in editor.list():
        ev = item.event
        table.add_row(
            escape(str(ev.event_id)),
            weekday_name_for(ev.day, editor.settings),
            f"{ev.start:%H:%M}-{ev.end:%H:%M}",
            escape(ev.title),
            escape(ev.room),
            escape(ev.professor),
            escape(ev.semester),
            escape(ev.type),
            f"[red]{escape(item.conflict_info)}[/]" if item.conflict_info else "",
        )
    console.print(table)


def print_conflicts(editor: TimetableEditor) -> None:
    summary = editor.conflict_summary()
    if not summary["total"]:
        _println("No conflicts found.")
        return

    titles = {item.event_id: item.event.title for item in editor.list()}
    table = Table(box=box.SIMPLE, title=f"Conflicts found: {summary['total']}")
    table.add_column("Dimension")
    table.add_column("Value")
    table.add_column("Events")

    for dimension in CONFLICT_DIMENSIONS:
        for entry in summary["by_dimension"].get(dimension, []):
            a = titles.get(entry["event_id"], str(entry["event_id"]))
            b = titles.get(entry["with_event_id"], str(entry["with_event_id"]))
            table.add_row(dimension, f"[yellow]{escape(entry['value'])}[/]", escape(f"{a}  ↔  {b}"))
    console.print(table)


def _pick_event(editor: TimetableEditor) -> Optional[RenderedEvent]:
    items = editor.list()
    if not items:
        _println("No events scheduled.")
        return None
    for i, item in enumerate(items, start=1):
        _println(f"{i}) {weekday_name_for(item.event.day, editor.settings)} {_event_line(item)}")
    pick = _prompt("Select number, or 0 to go back: ").strip()
    if not pick.isdigit() or not (1 <= int(pick) <= len(items)):
        return None
    return items[int(pick) - 1]


def _ask_form(defaults: Optional[EventForm] = None) -> EventForm:
    d = defaults or EventForm()

    def ask(label: str, current: str) -> str:
        answer = _prompt(escape(f"{label} [{current}]: ")).strip() if current else _prompt(f"{label}: ").strip()
        return answer or current

    return EventForm(
        title=ask("Title", d.title),
        weekday=ask("Day (Segunda..Sexta)", d.weekday),
        start_clock=ask("Start (HH:MM)", d.start_clock),
        end_clock=ask("End (HH:MM)", d.end_clock),
        room=ask("Room", d.room),
        professor=ask("Professor", d.professor),
        semester=ask("Semester", d.semester),
        cohort=ask("Class", d.cohort),
        type=ask("Type", d.type),
    )


def _flow_add(editor: TimetableEditor) -> None:
    try:
        ev = editor.add_event(_ask_form())
    except SchedulingError as exc:
        _println(f"[red]Not added:[/] {escape(str(exc))}")
        return
    _println(escape(f"Added: {ev.title} ({ev.event_id})"))


def _flow_edit(editor: TimetableEditor) -> None:
    item = _pick_event(editor)
    if item is None:
        return
    ev = item.event
    current = EventForm(
        title=ev.title,
        weekday=weekday_name_for(ev.day, editor.settings),
        start_clock=f"{ev.start:%H:%M}",
        end_clock=f"{ev.end:%H:%M}",
        room=ev.room,
        professor=ev.professor,
        semester=ev.semester,
        cohort=ev.cohort,
        type=ev.type,
    )
    try:
        editor.update_event(ev.event_id, _ask_form(current))
    except SchedulingError as exc:
        _println(f"[red]Not updated:[/] {escape(str(exc))}")
        return
    _println("Updated.")


def _flow_move(editor: TimetableEditor) -> None:
    """
    Move an event to another day/start, keeping its duration, as a drag would.
    """
    item = _pick_event(editor)
    if item is None:
        return
    ev = item.event
    day = _prompt(escape(f"Day [{weekday_name_for(ev.day, editor.settings)}]: ")).strip()
    start_in = _prompt(escape(f"Start (HH:MM) [{ev.start:%H:%M}]: ")).strip()
    try:
        start = datetime.combine(
            resolve_date_for_weekday(day, editor.settings) if day else ev.day,
            parse_clock(start_in, "start") if start_in else ev.start.time(),
        )
        moved = editor.on_event_moved(DropPayload(title="", start=start, event_id=ev.event_id))
    except SchedulingError as exc:
        _println(f"[red]Not moved:[/] {escape(str(exc))}")
        return
    _println(escape(f"Moved to {weekday_name_for(moved.day, editor.settings)} {moved.start:%H:%M}-{moved.end:%H:%M}"))


def _flow_delete(editor: TimetableEditor) -> None:
    item = _pick_event(editor)
    if item is None:
        return
    confirm = _prompt(escape(f"Delete {item.event.title}? [y/N]: ")).strip().lower()
    if confirm == "y":
        editor.delete_event(item.event_id)
        _println("Deleted.")


def _flow_details(editor: TimetableEditor) -> None:
    item = _pick_event(editor)
    if item is None:
        return
    details = editor.on_event_clicked(item.event_id)
    ev = details.event
    _println(f"\n[bold]{escape(ev.title)}[/] ({escape(str(ev.event_id))})")
    for key, value in ev.attributes().items():
        if value:
            _println(escape(f"  {key}: {value}"))
    if details.conflict_info:
        _println(f"  [red]{escape(details.conflict_info)}[/]")


def _flow_export(editor: TimetableEditor) -> None:
    default_name = "pampatime.ics"
    out_in = _prompt(escape(f"File name [{default_name}]: ")).strip()
    out_path = Path(out_in or default_name)
    if out_path.suffix.lower() != ".ics":
        out_path = out_path.with_suffix(".ics")

    n = export_events_to_ics(editor.store.list(), out_path)
    _println(escape(f"Exported {n} events to: {out_path.resolve()}"))


def run_interactive(editor: TimetableEditor) -> None:
    """
    Interactive menu loop over one in-memory editing session.
    """
    while True:
        _println(f"\n=== Pampatime (interactive) === events: {len(editor.store)}")
        choice = _prompt(
            "\n[1] Add event\n"
            "[2] Edit event\n"
            "[3] Move event\n"
            "[4] Delete event\n"
            "[5] Event details\n"
            "[6] List events\n"
            "[7] Timetable\n"
            "[8] Show conflicts\n"
            "[9] Export .ics\n"
            "[0] Exit\n"
            "Select: "
        ).strip()

        if choice == "0":
            _println("Bye.")
            return

        if choice == "1":
            _flow_add(editor)
        elif choice == "2":
            _flow_edit(editor)
        elif choice == "3":
            _flow_move(editor)
        elif choice == "4":
            _flow_delete(editor)
        elif choice == "5":
            _flow_details(editor)
        elif choice == "6":
            print_event_list(editor)
        elif choice == "7":
            print_timetable(editor)
        elif choice == "8":
            print_conflicts(editor)
        elif choice == "9":
            _flow_export(editor)
        else:
            _println("Invalid choice.")
