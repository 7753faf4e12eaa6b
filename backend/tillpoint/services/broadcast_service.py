# Overview: Post-commit change notifications for connected clients.

"""
Change broadcast (best-effort, fire-and-forget).

- Services call notify_changes() only AFTER their transaction has committed,
  so a client is never told about a change that was rolled back.
- notify_changes() sends the `changes-committed` blinker signal. The
  in-process ChangeBroadcaster is connected to it and fans the event tags out
  to one bounded queue per subscriber (the SSE stream in routes/events.py).
- A failing receiver or a full subscriber queue is logged and skipped; it
  never raises into the caller.
"""

from __future__ import annotations

import queue
import threading

from blinker import Namespace
from flask import current_app

PRODUCTS_UPDATED = "PRODUCTS_UPDATED"
SALES_UPDATED = "SALES_UPDATED"
SETTINGS_UPDATED = "SETTINGS_UPDATED"

EVENT_TYPES = (PRODUCTS_UPDATED, SALES_UPDATED, SETTINGS_UPDATED)

SUBSCRIBER_QUEUE_SIZE = 100

_signals = Namespace()
changes_committed = _signals.signal("changes-committed")


class ChangeBroadcaster:
    """Fan-out of event tags to subscriber queues."""

    def __init__(self, queue_size: int = SUBSCRIBER_QUEUE_SIZE):
        self._queue_size = queue_size
        self._subscribers: set[queue.Queue] = set()
        self._lock = threading.Lock()

    def subscribe(self) -> queue.Queue:
        q: queue.Queue = queue.Queue(maxsize=self._queue_size)
        with self._lock:
            self._subscribers.add(q)
        return q

    def unsubscribe(self, q: queue.Queue) -> None:
        with self._lock:
            self._subscribers.discard(q)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, events) -> int:
        """Queue each event for every subscriber; returns deliveries dropped."""
        with self._lock:
            subscribers = list(self._subscribers)

        dropped = 0
        for q in subscribers:
            for event in events:
                try:
                    q.put_nowait(event)
                except queue.Full:
                    dropped += 1
        return dropped

    def receive(self, sender, events=(), **kwargs) -> None:
        dropped = self.publish(events)
        if dropped:
            current_app.logger.warning("Dropped %d change events for slow subscribers", dropped)


broadcaster = ChangeBroadcaster()
changes_committed.connect(broadcaster.receive)


def notify_changes(*events: str) -> None:
    """
    Announce committed changes. Never raises.

    Must only be called after the owning transaction committed.
    """
    unknown = [e for e in events if e not in EVENT_TYPES]
    if unknown:
        current_app.logger.error("Ignoring unknown change events: %s", unknown)
        events = tuple(e for e in events if e in EVENT_TYPES)
    if not events:
        return

    try:
        changes_committed.send(current_app._get_current_object(), events=events)
    except Exception:
        current_app.logger.exception("Change broadcast failed for %s", events)
