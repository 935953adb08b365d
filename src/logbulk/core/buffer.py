"""
Lock-guarded batch buffer shared by producers and the worker.

One mutex protects the pending batch, the backpressure ("buffer exceeded")
flag, the worker-running flag and the worker slot. Every critical section
is O(1): list append, list swap or flag flip. Nothing here performs I/O or
serialization while holding the lock.
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


class OfferResult(str, Enum):
    ACCEPTED = "accepted"
    DROPPED = "dropped"  # backpressure engaged
    CLOSED = "closed"  # publisher no longer accepts events


class BatchBuffer(Generic[T]):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: list[T] = []
        self._exceeded = False
        self._running = False
        self._closed = False
        self._worker: threading.Thread | None = None

    @property
    def buffer_exceeded(self) -> bool:
        with self._lock:
            return self._exceeded

    @property
    def running(self) -> bool:
        with self._lock:
            return self._running

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def pending(self) -> int:
        with self._lock:
            return len(self._events)

    def offer(self, item: T, spawn: Callable[[], threading.Thread]) -> OfferResult:
        """Append ``item`` unless backpressure is engaged; ensure a worker runs.

        ``spawn`` is called under the lock when no worker is running and
        must return an already-started thread.
        """
        with self._lock:
            if self._closed:
                return OfferResult.CLOSED
            result = OfferResult.DROPPED
            if not self._exceeded:
                self._events.append(item)
                result = OfferResult.ACCEPTED
            if not self._running:
                self._running = True
                try:
                    self._worker = spawn()
                except BaseException:
                    self._running = False
                    raise
            return result

    def swap_or_release(self, *, keep_running: bool) -> list[T] | None:
        """Hand the pending batch to the worker, or let the worker go.

        Returns the pending batch (leaving a fresh empty list behind) when it
        is non-empty. Otherwise returns ``None`` and, unless
        ``keep_running`` is set, clears the running flag in the same
        critical section so a concurrent ``offer`` spawns a new worker.
        """
        with self._lock:
            if self._events:
                batch, self._events = self._events, []
                return batch
            if not keep_running:
                self._running = False
            return None

    def release(self) -> None:
        """Clear the running flag (worker exiting abnormally)."""
        with self._lock:
            self._running = False

    def set_exceeded(self) -> bool:
        """Engage backpressure; True only on the transition."""
        with self._lock:
            if self._exceeded:
                return False
            self._exceeded = True
            return True

    def clear_exceeded(self) -> bool:
        """Release backpressure; True only on the transition."""
        with self._lock:
            if not self._exceeded:
                return False
            self._exceeded = False
            return True

    def current_worker(self) -> threading.Thread | None:
        """The worker thread while one is marked running."""
        with self._lock:
            return self._worker if self._running else None

    def close(self) -> None:
        with self._lock:
            self._closed = True
