"""
Bulk payload serialization.

Produces newline-delimited JSON in the bulk-indexing format: for every
event an action line (the preamble) followed by the document line::

    {"index":{"_index":"logs","_type":"event"}}
    {"@timestamp":"2024-03-01T12:00:00.123+00:00","message":"hello","level":"INFO"}

Documents are encoded with orjson one event at a time and appended
directly to the caller's send buffer, so a batch is never held twice.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Sequence

import orjson

from .errors import SerializationError
from .events import LogEvent
from .properties import PropertyEncoder, encode_properties


def format_timestamp(ts: datetime) -> str:
    """Format as an XML-Schema dateTime with millisecond precision.

    Naive datetimes are taken to be local time.
    """
    if ts.tzinfo is None:
        ts = ts.astimezone()
    return ts.isoformat(timespec="milliseconds")


def build_preamble(index: str, type_name: str | None = None) -> bytes:
    action: dict[str, Any] = {"_index": index}
    if type_name is not None:
        action["_type"] = type_name
    return orjson.dumps({"index": action}) + b"\n"


class BulkSerializer:
    """Serialize batches of events into a bulk payload buffer."""

    def __init__(
        self,
        index: str,
        *,
        type_name: str | None = None,
        encoders: Sequence[PropertyEncoder] = (),
    ) -> None:
        self._preamble = build_preamble(index, type_name)
        self._encoders = tuple(encoders)

    @property
    def preamble(self) -> bytes:
        return self._preamble

    def document(self, event: LogEvent) -> dict[str, str]:
        doc = {
            "@timestamp": format_timestamp(event.timestamp),
            "message": event.message,
        }
        for name, value in encode_properties(self._encoders, event):
            doc[name] = value
        return doc

    def serialize_into(self, buffer: bytearray, events: Iterable[LogEvent]) -> int:
        """Append the bulk lines for ``events`` to ``buffer``.

        Returns the number of events written. On failure the buffer is
        truncated back to its previous length so earlier content stays
        intact, and ``SerializationError`` is raised.
        """
        start = len(buffer)
        count = 0
        try:
            for event in events:
                line = orjson.dumps(self.document(event))
                buffer += self._preamble
                buffer += line
                buffer += b"\n"
                count += 1
        except SerializationError:
            del buffer[start:]
            raise
        except Exception as e:
            del buffer[start:]
            raise SerializationError(
                "Failed to serialize event batch",
                cause=e,
                serialized=count,
            ) from e
        return count

    def serialize(self, events: Iterable[LogEvent]) -> bytes:
        buffer = bytearray()
        self.serialize_into(buffer, events)
        return bytes(buffer)
