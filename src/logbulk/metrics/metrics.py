"""
Publisher metrics.

Implements a small set of Prometheus-compatible counters for the publisher.
In-memory counters are always kept (cheap, and handy for assertions); the
Prometheus exporters exist only when metrics are enabled and live in an
isolated registry so several publishers never collide.

Thread-safe: producers and the worker thread both record.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any

from prometheus_client import CollectorRegistry, Counter


@dataclass
class PublisherCounters:
    """Snapshot of the in-memory counters."""

    events_submitted: int = 0
    events_dropped: int = 0
    batches_sent: int = 0
    send_failures: int = 0
    retries_exhausted: int = 0
    bytes_sent: int = 0


class PublisherMetrics:
    def __init__(self, *, enabled: bool = False) -> None:
        self._enabled = bool(enabled)
        self._lock = threading.Lock()
        self._state = PublisherCounters()

        self._c_submitted: Any | None = None
        self._c_dropped: Any | None = None
        self._c_batches: Any | None = None
        self._c_failures: Any | None = None
        self._c_exhausted: Any | None = None
        self._c_bytes: Any | None = None
        self._registry: CollectorRegistry | None = None

        if self._enabled:
            self._registry = CollectorRegistry()
            self._c_submitted = Counter(
                "logbulk_events_submitted_total",
                "Events accepted into the pending batch",
                registry=self._registry,
            )
            self._c_dropped = Counter(
                "logbulk_events_dropped_total",
                "Events dropped while the send buffer was over its ceiling",
                registry=self._registry,
            )
            self._c_batches = Counter(
                "logbulk_payloads_sent_total",
                "Bulk payloads delivered successfully",
                registry=self._registry,
            )
            self._c_failures = Counter(
                "logbulk_send_failures_total",
                "Failed send attempts",
                registry=self._registry,
            )
            self._c_exhausted = Counter(
                "logbulk_retries_exhausted_total",
                "Payloads discarded after the retry ceiling was hit",
                registry=self._registry,
            )
            self._c_bytes = Counter(
                "logbulk_bytes_sent_total",
                "Payload bytes delivered successfully",
                registry=self._registry,
            )

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def registry(self) -> CollectorRegistry | None:
        """Expose the isolated Prometheus registry when enabled."""
        return self._registry

    def record_submitted(self) -> None:
        with self._lock:
            self._state.events_submitted += 1
        if self._c_submitted is not None:
            self._c_submitted.inc()

    def record_dropped(self) -> None:
        with self._lock:
            self._state.events_dropped += 1
        if self._c_dropped is not None:
            self._c_dropped.inc()

    def record_sent(self, nbytes: int) -> None:
        with self._lock:
            self._state.batches_sent += 1
            self._state.bytes_sent += nbytes
        if self._c_batches is not None:
            self._c_batches.inc()
        if self._c_bytes is not None:
            self._c_bytes.inc(nbytes)

    def record_failure(self) -> None:
        with self._lock:
            self._state.send_failures += 1
        if self._c_failures is not None:
            self._c_failures.inc()

    def record_retries_exhausted(self) -> None:
        with self._lock:
            self._state.retries_exhausted += 1
        if self._c_exhausted is not None:
            self._c_exhausted.inc()

    def snapshot(self) -> PublisherCounters:
        with self._lock:
            return PublisherCounters(**vars(self._state))
