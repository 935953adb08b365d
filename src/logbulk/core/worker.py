"""
Background worker that drains the batch buffer and delivers bulk payloads.

The worker is an explicit state machine::

    WAITING -> DRAINING -> SENDING -> WAITING -> ... -> IDLE

``step()`` performs one state's work and returns the next state, so the
machine can be driven by hand in tests with a scripted transport and a
no-op sleeper. ``run()`` is the thread body and steps until ``IDLE``.

Retries preserve the payload: a failed send keeps the send buffer, and
events arriving meanwhile are appended behind it, so there is never more
than one in-flight payload and events are never reordered. The retry
counter resets whenever a new batch is drained; once it exceeds
``max_retries`` with nothing new to add, the unsent content is discarded.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Callable, TextIO

from ..metrics.metrics import PublisherMetrics
from . import diagnostics
from .buffer import BatchBuffer
from .events import LogEvent
from .serialization import BulkSerializer
from .settings import PublisherSettings
from .transport import Transport

BACKPRESSURE_ENGAGED = (
    "Send queue maximum size exceeded - log messages will be lost until "
    "the buffer is cleared"
)
BACKPRESSURE_CLEARED = "Send queue cleared - log messages will no longer be lost"


class WorkerState(str, Enum):
    IDLE = "idle"
    WAITING = "waiting"
    DRAINING = "draining"
    SENDING = "sending"


class PublisherWorker:
    """One worker run: spawned on demand, exits when there is nothing to do."""

    def __init__(
        self,
        *,
        buffer: BatchBuffer[LogEvent],
        serializer: BulkSerializer,
        transport: Transport,
        settings: PublisherSettings,
        metrics: PublisherMetrics | None = None,
        sleep: Callable[[float], None] = time.sleep,
        stderr: TextIO | None = None,
    ) -> None:
        self._buffer = buffer
        self._serializer = serializer
        self._transport = transport
        self._settings = settings
        self._metrics = metrics
        self._sleep = sleep
        self._stderr = stderr
        self._state = WorkerState.WAITING
        self._send_buffer = bytearray()
        self._current_try = 1
        self._batch: list[LogEvent] | None = None

    @property
    def state(self) -> WorkerState:
        return self._state

    @property
    def current_try(self) -> int:
        return self._current_try

    @property
    def send_buffer(self) -> bytes:
        return bytes(self._send_buffer)

    def run(self) -> None:
        try:
            while self._state is not WorkerState.IDLE:
                self.step()
        except Exception as exc:
            self._state = WorkerState.IDLE
            self._buffer.release()
            diagnostics.error(
                "worker",
                "worker terminated unexpectedly",
                error_type=type(exc).__name__,
                error=str(exc),
            )

    def step(self) -> WorkerState:
        if self._state is WorkerState.WAITING:
            self._sleep(self._settings.sleep_seconds)
            self._state = WorkerState.DRAINING
        elif self._state is WorkerState.DRAINING:
            self._state = self._drain()
        elif self._state is WorkerState.SENDING:
            self._state = self._send()
        return self._state

    def _drain(self) -> WorkerState:
        has_leftover = bool(self._send_buffer)
        batch = self._buffer.swap_or_release(keep_running=has_leftover)
        if batch is not None:
            return self._take(batch)
        if not has_leftover:
            return WorkerState.IDLE
        if self._current_try <= self._settings.max_retries:
            return WorkerState.SENDING

        self._give_up()
        # Events offered while giving up were accepted; pick them up
        batch = self._buffer.swap_or_release(keep_running=False)
        if batch is not None:
            return self._take(batch)
        return WorkerState.IDLE

    def _take(self, batch: list[LogEvent]) -> WorkerState:
        self._batch = batch
        self._current_try = 1
        return WorkerState.SENDING

    def _give_up(self) -> None:
        # Runs while the worker still holds the running flag, so no producer
        # can observe an idle publisher with backpressure engaged.
        discarded = len(self._send_buffer)
        cleared = self._buffer.clear_exceeded()
        del self._send_buffer[:]
        diagnostics.error(
            "worker",
            "giving up on unsent events after maximum retries",
            max_retries=self._settings.max_retries,
            discarded_bytes=discarded,
        )
        if self._metrics is not None:
            self._metrics.record_retries_exhausted()
        if cleared:
            diagnostics.info("worker", BACKPRESSURE_CLEARED)

    def _send(self) -> WorkerState:
        try:
            if self._batch is not None:
                batch, self._batch = self._batch, None
                self._serializer.serialize_into(self._send_buffer, batch)
                self._check_ceiling()
            result = self._transport.send(bytes(self._send_buffer))
            result.raise_for_failure()
        except Exception as exc:
            self._record_failure(exc)
            return WorkerState.WAITING

        sent = len(self._send_buffer)
        del self._send_buffer[:]
        if self._metrics is not None:
            self._metrics.record_sent(sent)
        diagnostics.debug("worker", "payload delivered", bytes=sent)
        if self._buffer.clear_exceeded():
            diagnostics.info("worker", BACKPRESSURE_CLEARED)
        return WorkerState.WAITING

    def _check_ceiling(self) -> None:
        if len(self._send_buffer) > self._settings.max_queue_size:
            if self._buffer.set_exceeded():
                diagnostics.warn(
                    "worker",
                    BACKPRESSURE_ENGAGED,
                    buffered_bytes=len(self._send_buffer),
                    max_queue_size=self._settings.max_queue_size,
                )

    def _record_failure(self, exc: Exception) -> None:
        attempt = self._current_try
        max_retries = self._settings.max_retries
        message = f"Failed to send events (try {attempt} of {max_retries}): {exc}"
        diagnostics.error(
            "worker",
            "failed to send events",
            attempt=attempt,
            max_retries=max_retries,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        if self._settings.errors_to_stderr:
            diagnostics.mirror_to_stderr(message, stream=self._stderr)
        if self._metrics is not None:
            self._metrics.record_failure()
        self._current_try += 1
