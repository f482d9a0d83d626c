# Overview: In-process fan-out of notification events to connected listeners.

"""
Broadcast registry for realtime kitchen notifications.

Each connected observer owns a Listener handle with a bounded queue. The
stream route registers a handle when the connection opens and unregisters
it when the connection closes.

send() is fire-and-forget:
- it iterates a snapshot of the registry, so listeners may come and go mid-send
- it never blocks; a listener whose queue is full misses the event
- ordering across listeners is not guaranteed
"""

from __future__ import annotations

import itertools
import queue
import threading
from dataclasses import dataclass, field


DEFAULT_QUEUE_SIZE = 100


@dataclass(eq=False)
class Listener:
    """Handle for one connected observer."""
    id: int
    user_id: int | None = None
    events: queue.Queue = field(default_factory=lambda: queue.Queue(maxsize=DEFAULT_QUEUE_SIZE))
    dropped: int = 0

    def get(self, timeout: float | None = None) -> dict | None:
        """Next event, or None when nothing arrived within timeout."""
        try:
            return self.events.get(timeout=timeout)
        except queue.Empty:
            return None


class Broadcaster:
    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE):
        self.queue_size = queue_size
        self._listeners: set[Listener] = set()
        self._lock = threading.Lock()
        self._ids = itertools.count(1)

    def register(self, user_id: int | None = None) -> Listener:
        listener = Listener(
            id=next(self._ids),
            user_id=user_id,
            events=queue.Queue(maxsize=self.queue_size),
        )
        with self._lock:
            self._listeners.add(listener)
        return listener

    def unregister(self, listener: Listener) -> None:
        with self._lock:
            self._listeners.discard(listener)

    def listeners(self) -> list[Listener]:
        with self._lock:
            return list(self._listeners)

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)

    def send(self, event: dict) -> int:
        """
        Deliver event to every registered listener.

        Returns the number of listeners that accepted it.
        """
        delivered = 0
        for listener in self.listeners():
            try:
                listener.events.put_nowait(event)
                delivered += 1
            except queue.Full:
                listener.dropped += 1
        return delivered

    def clear(self) -> None:
        with self._lock:
            self._listeners.clear()
