"""
Producer-facing publisher.

``BulkPublisher.submit`` is safe to call from any number of threads and
never blocks on I/O: it takes the buffer lock, appends (or drops) the event
and, if no worker is running, starts one. All network work happens on the
single worker thread.
"""

from __future__ import annotations

import threading
import time
import types
from typing import Callable, Mapping, Sequence, TextIO

from pydantic import ValidationError

from ..metrics.metrics import PublisherMetrics
from . import diagnostics
from .buffer import BatchBuffer, OfferResult
from .errors import ConfigurationError
from .events import LogEvent
from .properties import Property, build_encoders
from .serialization import BulkSerializer
from .settings import DestinationSettings, PropertySettings, PublisherSettings, Settings
from .transport import DebugTransport, HttpTransport, Transport
from .worker import PublisherWorker

THREAD_NAME = "es-writer"


class BulkPublisher:
    """Batching publisher for one destination (URL, index, type)."""

    def __init__(
        self,
        *,
        url: str,
        index: str,
        properties: Sequence[Property | PropertySettings],
        type_name: str | None = None,
        settings: PublisherSettings | None = None,
        headers: Mapping[str, str] | None = None,
        transport: Transport | None = None,
        metrics: PublisherMetrics | None = None,
        sleep: Callable[[float], None] = time.sleep,
        stderr: TextIO | None = None,
    ) -> None:
        self._settings = settings or PublisherSettings()
        try:
            self._destination = DestinationSettings(
                url=url,
                index=index,
                type_name=type_name,
                headers=dict(headers or {}),
            )
        except ValidationError as e:
            raise ConfigurationError("Invalid destination", cause=e) from e
        self._serializer = BulkSerializer(
            self._destination.index,
            type_name=self._destination.type_name,
            encoders=build_encoders(properties),
        )
        if transport is not None:
            self._transport: Transport = transport
        elif self._settings.debug:
            self._transport = DebugTransport(stderr)
        else:
            self._transport = HttpTransport(
                self._destination.url,
                connect_timeout=self._settings.connect_timeout_seconds,
                read_timeout=self._settings.read_timeout_seconds,
                headers=self._destination.headers,
            )
        self._metrics = metrics or PublisherMetrics(
            enabled=self._settings.enable_metrics
        )
        self._buffer: BatchBuffer[LogEvent] = BatchBuffer()
        self._sleep = sleep
        self._stderr = stderr

    @classmethod
    def from_settings(
        cls, settings: Settings, **kwargs: object
    ) -> BulkPublisher:
        dest = settings.destination
        return cls(
            url=dest.url,
            index=dest.index,
            type_name=dest.type_name,
            headers=dest.headers,
            properties=settings.properties,
            settings=settings.publisher,
            **kwargs,  # type: ignore[arg-type]
        )

    @property
    def settings(self) -> PublisherSettings:
        return self._settings

    @property
    def metrics(self) -> PublisherMetrics:
        return self._metrics

    @property
    def buffer_exceeded(self) -> bool:
        return self._buffer.buffer_exceeded

    @property
    def worker_running(self) -> bool:
        return self._buffer.running

    @property
    def pending(self) -> int:
        return self._buffer.pending()

    def submit(self, event: LogEvent) -> None:
        """Queue one event for delivery. Never raises, never blocks on I/O."""
        try:
            outcome = self._buffer.offer(event, self._spawn_worker)
        except Exception as exc:
            diagnostics.error(
                "publisher",
                "failed to start worker",
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return
        if outcome is OfferResult.ACCEPTED:
            self._metrics.record_submitted()
        elif outcome is OfferResult.DROPPED:
            self._metrics.record_dropped()

    def _spawn_worker(self) -> threading.Thread:
        worker = PublisherWorker(
            buffer=self._buffer,
            serializer=self._serializer,
            transport=self._transport,
            settings=self._settings,
            metrics=self._metrics,
            sleep=self._sleep,
            stderr=self._stderr,
        )
        thread = threading.Thread(target=worker.run, name=THREAD_NAME, daemon=True)
        thread.start()
        return thread

    def flush(self, timeout: float | None = None) -> bool:
        """Wait until no worker is running.

        Returns False if a worker is still running when ``timeout`` expires
        (or when called from the worker thread itself).
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            thread = self._buffer.current_worker()
            if thread is None:
                return True
            if thread is threading.current_thread():
                return False
            remaining = None
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
            thread.join(remaining)

    def close(self, timeout: float | None = None) -> bool:
        """Stop accepting events and wait for the worker to finish."""
        self._buffer.close()
        return self.flush(timeout)

    def __enter__(self) -> BulkPublisher:
        return self

    def __exit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc: BaseException | None,
        _tb: types.TracebackType | None,
    ) -> None:
        self.close()
