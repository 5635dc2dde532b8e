"""
Tests for the timetable editor: calendar notifications, form CRUD and the
decorated render view.
"""

import threading
import unittest
from datetime import datetime

from pampatime.colors import CONFLICT_COLORS, get_colors
from pampatime.editor import DropPayload, EventForm, TimetableEditor, form_from_dict, payload_from_dict
from pampatime.errors import NotFoundError, ValidationError
from pampatime.model import PROFESSOR, ROOM, SEMESTER
from pampatime.store import EventStore


def form(title, day, start, end, room="", professor="", semester="", cohort="", type=""):
    return EventForm(title, day, start, end, room, professor, semester, cohort, type)


class TestEndToEnd(unittest.TestCase):
    def test_scenario(self) -> None:
        editor = TimetableEditor()
        calc = editor.add_event(form("Calc I", "Segunda", "08:30", "09:30", "A101", "Prof. Silva"))
        algo = editor.add_event(form("Algorithms", "Segunda", "08:30", "09:30", "A101", "Prof. Santos"))
        disc = editor.add_event(form("Discrete Math", "Terça", "08:30", "09:30", "A101", "Prof. Silva"))

        self.assertEqual(editor.report.conflicted_ids, {calc.event_id, algo.event_id})
        self.assertEqual([r.conflict_type for r in editor.conflicts_for(calc.event_id)], [ROOM])
        self.assertEqual([r.conflict_type for r in editor.conflicts_for(algo.event_id)], [ROOM])
        self.assertEqual(editor.conflicts_for(disc.event_id), [])

        rendered = {item.event_id: item for item in editor.list()}
        self.assertEqual(rendered[calc.event_id].colors, CONFLICT_COLORS)
        self.assertEqual(rendered[calc.event_id].conflict_info, "Room A101 occupied")
        self.assertEqual(rendered[disc.event_id].colors, get_colors(""))
        self.assertIsNone(rendered[disc.event_id].conflict_info)

        editor.delete_event(algo.event_id)
        self.assertEqual(editor.report.conflicted_ids, set())
        self.assertEqual(editor.conflicts_for(calc.event_id), [])
        self.assertEqual(editor.conflict_summary()["total"], 0)

    def test_conflict_colors_are_not_stored(self) -> None:
        editor = TimetableEditor()
        a = editor.add_event(form("A", "Segunda", "08:30", "09:30", room="A101", type="Teórica"))
        editor.add_event(form("B", "Segunda", "08:30", "09:30", room="A101"))

        stored = editor.store.get(a.event_id)
        self.assertEqual(stored.background_color, get_colors("Teórica").bg)
        self.assertEqual(editor.on_event_clicked(a.event_id).colors, CONFLICT_COLORS)

    def test_semester_conflicts_through_editor(self) -> None:
        editor = TimetableEditor()
        editor.add_event(form("Cálculo I", "Quarta", "10:30", "12:30", semester="1"))
        editor.add_event(form("Cálculo I", "Quarta", "10:30", "12:30", semester="1"))
        self.assertEqual(editor.conflict_summary()["total"], 0)

        editor.add_event(form("Física I", "Quarta", "11:30", "12:30", semester="1"))
        summary = editor.conflict_summary()
        self.assertEqual(summary["total"], 2)
        self.assertEqual(len(summary["by_dimension"][SEMESTER]), 2)

    def test_existing_store_is_checked_on_attach(self) -> None:
        store = EventStore()
        first = TimetableEditor(store)
        first.add_event(form("A", "Segunda", "08:30", "09:30", professor="P"))
        first.add_event(form("B", "Segunda", "09:00", "10:00", professor="P"))
        first.close()

        second = TimetableEditor(store)
        self.assertEqual(len(second.report.conflicted_ids), 2)
        self.assertEqual(second.conflict_summary()["by_dimension"][PROFESSOR][0]["value"], "P")


class TestFormCrud(unittest.TestCase):
    def test_invalid_times_leave_store_unchanged(self) -> None:
        editor = TimetableEditor()
        editor.add_event(form("Calc I", "Segunda", "08:30", "09:30"))
        before = len(editor.store)
        with self.assertRaises(ValidationError):
            editor.add_event(form("Calc II", "Segunda", "10:00", "09:00"))
        self.assertEqual(len(editor.store), before)

    def test_missing_required_fields(self) -> None:
        editor = TimetableEditor()
        with self.assertRaises(ValidationError) as ctx:
            editor.add_event(form("", "Segunda", "", "09:30"))
        self.assertEqual(ctx.exception.field, "title")
        self.assertIn("Start time", str(ctx.exception))
        self.assertEqual(len(editor.store), 0)

    def test_add_accepts_dict(self) -> None:
        editor = TimetableEditor()
        ev = editor.add_event(
            {"title": "Física I", "day": "Quinta", "start": "13:30", "end": "15:30", "class": "T2", "type": "Prática"}
        )
        self.assertEqual(ev.start, datetime(2020, 1, 9, 13, 30))
        self.assertEqual(ev.cohort, "T2")

    def test_update_event(self) -> None:
        editor = TimetableEditor()
        ev = editor.add_event(form("Calc I", "Segunda", "08:30", "09:30", type="Teórica"))
        updated = editor.update_event(ev.event_id, form("Calc I", "Sexta", "14:30", "16:30", type="Prática"))

        self.assertEqual(updated.event_id, ev.event_id)
        self.assertEqual(updated.start, datetime(2020, 1, 10, 14, 30))
        self.assertEqual(updated.background_color, get_colors("Prática").bg)
        self.assertEqual(len(editor.store), 1)

    def test_update_unknown_id(self) -> None:
        editor = TimetableEditor()
        with self.assertRaises(NotFoundError):
            editor.update_event("nope", form("Calc I", "Segunda", "08:30", "09:30"))
        self.assertEqual(len(editor.store), 0)

    def test_delete_selected_clears_selection(self) -> None:
        editor = TimetableEditor()
        ev = editor.add_event(form("Calc I", "Segunda", "08:30", "09:30"))
        editor.on_event_clicked(ev.event_id)
        self.assertEqual(editor.store.selected_id, ev.event_id)

        self.assertTrue(editor.delete_event(ev.event_id))
        self.assertIsNone(editor.store.selected_id)
        self.assertFalse(editor.delete_event(ev.event_id))

    def test_clear_selection(self) -> None:
        editor = TimetableEditor()
        ev = editor.add_event(form("Calc I", "Segunda", "08:30", "09:30"))
        editor.on_event_clicked(ev.event_id)
        editor.clear_selection()
        self.assertIsNone(editor.store.selected)


class TestCalendarNotifications(unittest.TestCase):
    def test_drop_snaps_and_defaults_duration(self) -> None:
        editor = TimetableEditor()
        ev = editor.on_external_item_dropped(
            {
                "id": 7,
                "title": "Álgebra Linear",
                "start": "2020-01-06T08:10:00",
                "extendedProps": {"room": "104", "professor": "Prof. Paulo", "class": "T1", "type": "Teórica"},
                "backgroundColor": "#ffcdd2",
            }
        )
        self.assertEqual(ev.start, datetime(2020, 1, 6, 7, 30))
        self.assertEqual(ev.end, datetime(2020, 1, 6, 8, 30))
        self.assertEqual(ev.cohort, "T1")
        self.assertEqual(ev.background_color, get_colors("Teórica").bg)
        self.assertNotEqual(ev.event_id, 7)
        self.assertEqual(editor.store.selected_id, ev.event_id)

    def test_drop_twice_creates_two_events(self) -> None:
        editor = TimetableEditor()
        payload = {"title": "Química", "start": "2020-01-08T10:30:00", "end": "2020-01-08T11:30:00"}
        a = editor.on_external_item_dropped(payload)
        b = editor.on_external_item_dropped(payload)
        self.assertNotEqual(a.event_id, b.event_id)
        self.assertEqual(len(editor.store), 2)

    def test_drop_on_weekend_rejected(self) -> None:
        editor = TimetableEditor()
        with self.assertRaises(ValidationError):
            editor.on_external_item_dropped({"title": "Química", "start": "2020-01-11T10:30:00"})
        self.assertEqual(len(editor.store), 0)

    def test_drop_without_title_rejected(self) -> None:
        editor = TimetableEditor()
        with self.assertRaises(ValidationError):
            editor.on_external_item_dropped({"start": "2020-01-06T10:30:00"})

    def test_move_snaps_both_ends(self) -> None:
        editor = TimetableEditor()
        ev = editor.add_event(form("Calc I", "Segunda", "08:30", "09:30", room="A101", type="Teórica"))
        moved = editor.on_event_moved(
            {
                "id": ev.event_id,
                "title": "Calc I",
                "start": datetime(2020, 1, 7, 10, 20),
                "end": datetime(2020, 1, 7, 11, 20),
                "extendedAttributes": {"room": "A101", "type": "Teórica"},
            }
        )
        self.assertEqual(moved.start, datetime(2020, 1, 7, 10, 30))
        self.assertEqual(moved.end, datetime(2020, 1, 7, 11, 30))
        self.assertEqual(editor.store.get(ev.event_id).start, moved.start)
        self.assertEqual(moved.background_color, get_colors("Teórica").bg)

    def test_move_without_end_keeps_duration(self) -> None:
        editor = TimetableEditor()
        ev = editor.add_event(form("Calc I", "Segunda", "08:30", "10:30"))
        moved = editor.on_event_moved(DropPayload(title="", start=datetime(2020, 1, 9, 14, 30), event_id=ev.event_id))
        self.assertEqual(moved.title, "Calc I")
        self.assertEqual((moved.start, moved.end), (datetime(2020, 1, 9, 14, 30), datetime(2020, 1, 9, 16, 30)))

    def test_resize_creates_and_clears_conflict(self) -> None:
        editor = TimetableEditor()
        a = editor.add_event(form("A", "Segunda", "08:30", "09:30", room="A101"))
        b = editor.add_event(form("B", "Segunda", "09:30", "10:30", room="A101"))
        self.assertEqual(editor.report.conflicted_ids, set())

        editor.on_event_resized({"id": a.event_id, "start": "2020-01-06T08:30:00", "end": "2020-01-06T10:40:00"})
        self.assertEqual(editor.store.get(a.event_id).end, datetime(2020, 1, 6, 10, 30))
        self.assertEqual(editor.report.conflicted_ids, {a.event_id, b.event_id})

        editor.on_event_resized({"id": a.event_id, "start": "2020-01-06T08:30:00", "end": "2020-01-06T09:30:00"})
        self.assertEqual(editor.report.conflicted_ids, set())

    def test_resize_to_nothing_rejected(self) -> None:
        editor = TimetableEditor()
        ev = editor.add_event(form("A", "Segunda", "08:30", "09:30"))
        with self.assertRaises(ValidationError):
            # 08:40 snaps back to 08:30, the start
            editor.on_event_resized({"id": ev.event_id, "start": "2020-01-06T08:30:00", "end": "2020-01-06T08:40:00"})
        self.assertEqual(editor.store.get(ev.event_id).end, datetime(2020, 1, 6, 9, 30))

    def test_move_unknown_event(self) -> None:
        editor = TimetableEditor()
        with self.assertRaises(NotFoundError):
            editor.on_event_moved({"id": "nope", "start": "2020-01-06T08:30:00"})
        with self.assertRaises(ValidationError):
            editor.on_event_moved({"start": "2020-01-06T08:30:00"})

    def test_click_returns_conflict_description(self) -> None:
        editor = TimetableEditor()
        a = editor.add_event(form("A", "Segunda", "08:30", "09:30", room="A101", professor="Prof. X"))
        editor.add_event(form("B", "Segunda", "08:30", "09:30", room="A101", professor="Prof. X"))

        details = editor.on_event_clicked(a.event_id)
        self.assertTrue(details.is_conflicted)
        self.assertEqual(details.conflict_info, "Room A101 occupied • Prof. X in conflict")
        self.assertEqual(editor.store.selected_id, a.event_id)

        with self.assertRaises(NotFoundError):
            editor.on_event_clicked("nope")


class InterleavingStore(EventStore):
    """
    Store whose next list() lets another thread delete `victim` first,
    waiting for it at most 0.2s.
    """

    victim = None
    writer = None

    def list(self):
        victim, self.victim = self.victim, None
        if victim is not None:
            self.writer = threading.Thread(target=self.delete, args=(victim,))
            self.writer.start()
            self.writer.join(0.2)
        return super().list()


class TestConcurrentReads(unittest.TestCase):
    def test_list_renders_one_committed_state(self) -> None:
        store = InterleavingStore()
        editor = TimetableEditor(store)
        a = editor.add_event(form("A", "Segunda", "08:30", "09:30", room="A101"))
        b = editor.add_event(form("B", "Segunda", "08:30", "09:30", room="A101"))

        store.victim = b.event_id
        items = editor.list()
        ids = {item.event_id for item in items}
        for item in items:
            for record in item.conflicts:
                self.assertIn(record.conflict_with_event_id, ids)
        self.assertEqual(ids, {a.event_id, b.event_id})
        self.assertTrue(all(item.is_conflicted for item in items))

        store.writer.join(2)
        items = editor.list()
        self.assertEqual([item.event_id for item in items], [a.event_id])
        self.assertFalse(items[0].is_conflicted)


class TestPayloadsAndRendering(unittest.TestCase):
    def test_payload_drops_unknown_fields(self) -> None:
        p = payload_from_dict(
            {
                "id": 3,
                "title": " Biologia ",
                "start": "2020-01-06T08:30:00Z",
                "end": "2020-01-06T09:30:00",
                "room": "108",
                "extendedAttributes": {"professor": "Prof. Marcelo", "teacher": "ignored", "class": "T3"},
                "allDay": False,
            }
        )
        self.assertEqual(p.title, "Biologia")
        self.assertEqual(p.event_id, 3)
        self.assertEqual(p.start, datetime(2020, 1, 6, 8, 30))
        self.assertEqual(p.attributes, {"room": "108", "professor": "Prof. Marcelo", "cohort": "T3"})

    def test_payload_needs_valid_start(self) -> None:
        with self.assertRaises(ValidationError):
            payload_from_dict({"title": "X"})
        with self.assertRaises(ValidationError):
            payload_from_dict({"title": "X", "start": "yesterday"})

    def test_form_from_dict(self) -> None:
        f = form_from_dict({"title": "A", "weekday": "Sexta", "start_clock": "08:30", "end_clock": "09:30", "cohort": "T1"})
        self.assertEqual((f.weekday, f.cohort), ("Sexta", "T1"))

    def test_render_dict_shape(self) -> None:
        editor = TimetableEditor()
        a = editor.add_event(form("A", "Segunda", "08:30", "09:30", room="A101", cohort="T1", type="Teórica"))
        b = editor.add_event(form("B", "Segunda", "08:30", "09:30", room="A101"))
        c = editor.add_event(form("C", "Terça", "08:30", "09:30", room="A101"))

        rendered = {item.event_id: item.to_dict() for item in editor.list()}
        out = rendered[a.event_id]
        self.assertEqual(out["start"], "2020-01-06T08:30:00")
        self.assertEqual(out["end"], "2020-01-06T09:30:00")
        self.assertFalse(out["allDay"])
        self.assertEqual(out["backgroundColor"], CONFLICT_COLORS.bg)
        self.assertEqual(out["extendedProps"]["class"], "T1")
        self.assertEqual(out["conflictInfo"], "Room A101 occupied")
        self.assertIn("conflictInfo", rendered[b.event_id])
        self.assertNotIn("conflictInfo", rendered[c.event_id])
        self.assertEqual(rendered[c.event_id]["backgroundColor"], get_colors("").bg)


if __name__ == "__main__":
    unittest.main()
