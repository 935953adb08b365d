"""
stdlib ``logging`` integration.

``BulkIndexHandler`` turns each ``LogRecord`` into a ``LogEvent`` and hands
it to a ``BulkPublisher``. Records from ``logbulk.*`` loggers (the
publisher's own status stream) are ignored so diagnostics never feed back
into the publisher.
"""

from __future__ import annotations

import logging

from .core.events import LogEvent
from .core.publisher import BulkPublisher
from .core.settings import Settings, load_settings


def _is_internal(name: str) -> bool:
    return name == "logbulk" or name.startswith("logbulk.")


class BulkIndexHandler(logging.Handler):
    """Logging handler shipping records to a bulk-indexing endpoint.

    Example:
        handler = BulkIndexHandler(settings=load_settings(
            destination={"url": "http://es:9200/_bulk", "index": "app"},
            properties=[{"name": "level", "value": "%(levelname)s"}],
        ))
        logging.getLogger().addHandler(handler)
    """

    def __init__(
        self,
        publisher: BulkPublisher | None = None,
        *,
        settings: Settings | None = None,
        level: int = logging.NOTSET,
        close_timeout: float | None = 5.0,
    ) -> None:
        super().__init__(level)
        if publisher is None:
            publisher = BulkPublisher.from_settings(settings or load_settings())
        self._publisher = publisher
        self._close_timeout = close_timeout

    @property
    def publisher(self) -> BulkPublisher:
        return self._publisher

    def emit(self, record: logging.LogRecord) -> None:
        if _is_internal(record.name):
            return
        try:
            self._publisher.submit(LogEvent.from_record(record))
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        try:
            self._publisher.close(self._close_timeout)
        finally:
            super().close()
