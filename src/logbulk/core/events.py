"""
Log event model handed from producers to the publisher.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping

# Attributes every LogRecord carries; anything else came in via ``extra=``
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}


@dataclass(frozen=True)
class LogEvent:
    """Immutable structured log record.

    Only ``timestamp`` and ``message`` are always serialized; the remaining
    attributes are available to property encoders.
    """

    timestamp: datetime
    message: str
    level: str = "INFO"
    logger: str = ""
    thread_name: str = ""
    process: int | None = None
    exc_text: str = ""
    context: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.timestamp, datetime):
            raise TypeError("timestamp must be a datetime")
        # Freeze the context so later mutation by the producer is not visible
        object.__setattr__(
            self, "context", MappingProxyType(dict(self.context))
        )

    @classmethod
    def now(cls, message: str, **kwargs: Any) -> LogEvent:
        return cls(timestamp=datetime.now(timezone.utc), message=message, **kwargs)

    @classmethod
    def from_record(cls, record: logging.LogRecord) -> LogEvent:
        """Convert a stdlib ``LogRecord`` into an event."""
        exc_text = record.exc_text or ""
        if not exc_text and record.exc_info:
            exc_text = logging.Formatter().formatException(record.exc_info)
        context = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        return cls(
            timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc),
            message=record.getMessage(),
            level=record.levelname,
            logger=record.name,
            thread_name=record.threadName or "",
            process=record.process,
            exc_text=exc_text,
            context=context,
        )

    def as_mapping(self) -> dict[str, Any]:
        """Attribute view keyed by ``logging`` format names.

        Context entries can be referenced by name but never shadow the
        standard attributes.
        """
        data: dict[str, Any] = dict(self.context)
        data.update(
            {
                "message": self.message,
                "levelname": self.level,
                "name": self.logger,
                "threadName": self.thread_name,
                "process": "" if self.process is None else self.process,
                "exc_text": self.exc_text,
                "created": self.timestamp.timestamp(),
            }
        )
        return data
