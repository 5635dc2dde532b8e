"""
In-memory event store for one editing session.

The store is the single source of truth for the week's events:
- exactly one event per id
- every mutation goes through add / update / delete
- listeners are told after each committed mutation, while the write lock is
  still held, so whatever they recompute observes the post-commit state and
  is never interleaved with another mutation

Nothing is written to disk; a store lives as long as its session.
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
from dataclasses import replace
from typing import Callable, ContextManager, Optional

from pampatime.errors import DuplicateIdError, NotFoundError, ValidationError
from pampatime.model import Event, EventId

logger = logging.getLogger(__name__)

Listener = Callable[[str, EventId], None]


def new_event_id() -> str:
    """
    Mint an event id from the current timestamp (ms) plus a random suffix.
    """
    return f"event-{int(time.time() * 1000)}-{secrets.token_hex(6)}"


class EventStore:
    def __init__(self, events: Optional[list[Event]] = None) -> None:
        self._events: dict[EventId, Event] = {}
        self._lock = threading.RLock()
        self._listeners: list[Listener] = []
        self.selected_id: Optional[EventId] = None
        for ev in events or []:
            self.add(ev)

    def __len__(self) -> int:
        return len(self._events)

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._events

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a callback run as listener(action, event_id) after every commit.
        Returns a function that removes it again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, action: str, event_id: EventId) -> None:
        for listener in list(self._listeners):
            listener(action, event_id)

    @staticmethod
    def _check_times(event: Event) -> None:
        if event.end <= event.start:
            raise ValidationError("End time must be after start time", field="end")

    def add(self, event: Event) -> Event:
        """
        Add a new event. An event without id gets a freshly minted one.
        Raises DuplicateIdError if the id is already taken, ValidationError if it
        does not end after it starts.
        """
        self._check_times(event)
        with self._lock:
            if event.event_id is None or event.event_id == "":
                event_id = new_event_id()
                while event_id in self._events:
                    event_id = new_event_id()
                event = replace(event, event_id=event_id)
            elif event.event_id in self._events:
                raise DuplicateIdError(event.event_id)
            else:
                event = replace(event)

            self._events[event.event_id] = event
            logger.debug("added %s (%s)", event.event_id, event.title)
            self._notify("add", event.event_id)
            return event

    def update(self, event: Event) -> Event:
        """
        Replace a stored event wholesale. Raises NotFoundError for unknown ids,
        ValidationError if it does not end after it starts.
        """
        self._check_times(event)
        with self._lock:
            if event.event_id not in self._events:
                raise NotFoundError(event.event_id)
            event = replace(event)
            self._events[event.event_id] = event
            logger.debug("updated %s (%s)", event.event_id, event.title)
            self._notify("update", event.event_id)
            return event

    def delete(self, event_id: EventId) -> bool:
        """
        Remove an event. Deleting an unknown id is a no-op and returns False.
        """
        with self._lock:
            if event_id not in self._events:
                return False
            del self._events[event_id]
            if self.selected_id == event_id:
                self.selected_id = None
            logger.debug("deleted %s", event_id)
            self._notify("delete", event_id)
            return True

    def get(self, event_id: EventId) -> Event:
        try:
            return self._events[event_id]
        except KeyError:
            raise NotFoundError(event_id) from None

    def list(self) -> list[Event]:
        """
        Snapshot of all events in insertion order. Mutate through the store, not this list.
        """
        with self._lock:
            return list(self._events.values())

    def locked(self) -> ContextManager[bool]:
        """
        The write lock. Reads taken while holding it all see the same committed state.
        """
        return self._lock

    def select(self, event_id: EventId) -> Event:
        with self._lock:
            event = self.get(event_id)
            self.selected_id = event_id
            return event

    def clear_selection(self) -> None:
        self.selected_id = None

    @property
    def selected(self) -> Optional[Event]:
        if self.selected_id is None:
            return None
        return self._events.get(self.selected_id)
