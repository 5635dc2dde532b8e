"""
CLI (Command Line Interface).

Quick terminal commands for trying the timetable core, e.g.:

    pampatime snap 08:10
    pampatime colors Prática
    pampatime demo --export week.ics
    pampatime interactive

Every command works on a fresh in-memory session; nothing is saved.
The interactive menu lives in pampatime/interactive.py.
"""

from __future__ import annotations

import argparse
import logging
from datetime import datetime

from rich.logging import RichHandler

from pampatime.colors import get_colors
from pampatime.config import CalendarSettings, load_settings
from pampatime.editor import EventForm, TimetableEditor
from pampatime.errors import SchedulingError
from pampatime.export_ics import export_events_to_ics
from pampatime.timeslots import parse_clock, snap_to_half_hour

SAMPLE_WEEK = [
    EventForm("Cálculo I", "Segunda", "08:30", "09:30", "A101", "Prof. Silva", "1", "T1", "Teórica"),
    EventForm("Algoritmos", "Segunda", "08:30", "09:30", "A101", "Prof. Santos", "3", "T1", "Prática"),
    EventForm("Matemática Discreta", "Terça", "08:30", "09:30", "A101", "Prof. Silva", "1", "T1", "Teórica"),
    EventForm("Física I", "Quarta", "10:30", "12:30", "B204", "Prof. Thielo", "1", "T1", "Prática"),
    EventForm("Álgebra Linear", "Quinta", "13:30", "15:30", "A102", "Prof. Paulo", "2", "T2", "Assíncrona"),
]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(show_time=False, show_path=False)],
    )


def sample_editor(settings: CalendarSettings) -> TimetableEditor:
    editor = TimetableEditor(settings=settings)
    for form in SAMPLE_WEEK:
        editor.add_event(form)
    return editor


def _cmd_snap(args: argparse.Namespace) -> int:
    """
    Print the slot an 'HH:MM' clock snaps to.
    """
    try:
        clock = parse_clock(args.clock)
    except SchedulingError as exc:
        print(exc)
        return 1

    snapped = snap_to_half_hour(datetime.combine(args.settings.week_start, clock))
    print(f"{args.clock.strip()} -> {snapped:%H:%M}")
    return 0


def _cmd_colors(args: argparse.Namespace) -> int:
    colors = get_colors(args.type)
    print(f"bg={colors.bg} border={colors.border} text={colors.text}")
    return 0


def _cmd_demo(args: argparse.Namespace) -> int:
    """
    Load the sample week, print it with its conflicts, optionally export it.
    """
    from pampatime.interactive import print_conflicts, print_event_list, print_timetable

    editor = sample_editor(args.settings)
    print_timetable(editor)
    print_event_list(editor)
    print_conflicts(editor)

    out_path = (args.export or "").strip()
    if out_path:
        n = export_events_to_ics(editor.store.list(), out_path)
        print(f"Exported {n} events to: {out_path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="pampatime", description="Pampatime timetable CLI")
    parser.add_argument("--settings", type=str, default=None, help="Calendar settings JSON file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log store changes")
    sub = parser.add_subparsers(dest="command", required=True)

    p_snap = sub.add_parser("snap", help="Show the slot a clock time snaps to")
    p_snap.add_argument("clock", type=str, help="Clock time (e.g. 08:10)")

    p_colors = sub.add_parser("colors", help="Show the colors derived for an event type")
    p_colors.add_argument("type", type=str, help="Event type (e.g. Prática)")

    p_demo = sub.add_parser("demo", help="Show a sample week with conflicts")
    p_demo.add_argument("--export", type=str, default=None, help="Also export the week to this .ics file")

    sub.add_parser("interactive", help="Interactive menu mode")

    return parser


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)
    args.settings = load_settings(args.settings)

    if args.command == "snap":
        raise SystemExit(_cmd_snap(args))
    if args.command == "colors":
        raise SystemExit(_cmd_colors(args))
    if args.command == "demo":
        raise SystemExit(_cmd_demo(args))

    if args.command == "interactive":
        from pampatime.interactive import run_interactive

        run_interactive(TimetableEditor(settings=args.settings))
        raise SystemExit(0)

    raise SystemExit(2)
