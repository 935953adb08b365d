from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest

from logbulk.core.errors import SerializationError
from logbulk.core.events import LogEvent
from logbulk.core.properties import Property, build_encoders
from logbulk.core.serialization import (
    BulkSerializer,
    build_preamble,
    format_timestamp,
)

_TS = datetime(2024, 3, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)


def _lines(payload: bytes) -> list[dict]:
    text = payload.decode("utf-8")
    assert text.endswith("\n")
    return [json.loads(line) for line in text.splitlines()]


def test_preamble_with_and_without_type() -> None:
    assert build_preamble("logs") == b'{"index":{"_index":"logs"}}\n'
    assert (
        build_preamble("logs", "event")
        == b'{"index":{"_index":"logs","_type":"event"}}\n'
    )


def test_preamble_computed_once() -> None:
    serializer = BulkSerializer("logs", type_name="event")
    first = serializer.preamble
    serializer.serialize([LogEvent(timestamp=_TS, message="a")])
    assert serializer.preamble is first


def test_format_timestamp_keeps_offset_and_millis() -> None:
    assert format_timestamp(_TS) == "2024-03-01T12:00:00.123+00:00"
    plus_one = _TS.astimezone(timezone(timedelta(hours=1)))
    assert format_timestamp(plus_one) == "2024-03-01T13:00:00.123+01:00"


def test_format_timestamp_naive_is_local() -> None:
    naive = datetime(2024, 3, 1, 12, 0, 0)
    formatted = format_timestamp(naive)
    parsed = datetime.fromisoformat(formatted)
    assert parsed.tzinfo is not None
    assert parsed.replace(tzinfo=None) == naive


def test_serialize_pairs_action_and_document_lines() -> None:
    serializer = BulkSerializer("logs")
    events = [
        LogEvent(timestamp=_TS, message="first"),
        LogEvent(timestamp=_TS, message="second"),
    ]

    lines = _lines(serializer.serialize(events))

    assert len(lines) == 4
    assert lines[0] == {"index": {"_index": "logs"}}
    assert lines[2] == {"index": {"_index": "logs"}}
    assert lines[1] == {
        "@timestamp": "2024-03-01T12:00:00.123+00:00",
        "message": "first",
    }
    assert lines[3]["message"] == "second"


def test_fixed_fields_precede_properties() -> None:
    serializer = BulkSerializer(
        "logs",
        encoders=build_encoders([Property("level", "%(levelname)s")]),
    )
    doc_line = serializer.serialize(
        [LogEvent(timestamp=_TS, message="m", level="WARNING")]
    ).split(b"\n")[1]

    assert list(json.loads(doc_line)) == ["@timestamp", "message", "level"]
    assert doc_line.startswith(b'{"@timestamp":')


def test_empty_property_omitted_unless_allowed() -> None:
    serializer = BulkSerializer(
        "logs",
        encoders=build_encoders(
            [
                Property("user", "%(user)s"),
                Property("trace", "%(trace)s", allow_empty=True),
                Property("logger", "%(name)s"),
            ]
        ),
    )
    doc = serializer.document(
        LogEvent(timestamp=_TS, message="m", logger="app.db")
    )

    assert "user" not in doc
    assert doc["trace"] == ""
    assert doc["logger"] == "app.db"


def test_context_values_are_encoded() -> None:
    serializer = BulkSerializer(
        "logs",
        encoders=build_encoders([Property("user", "user=%(user)s")]),
    )
    doc = serializer.document(
        LogEvent(timestamp=_TS, message="m", context={"user": "alice"})
    )
    assert doc["user"] == "user=alice"


def test_serialize_into_appends_after_existing_content() -> None:
    serializer = BulkSerializer("logs")
    buffer = bytearray(b"previous\n")

    count = serializer.serialize_into(buffer, [LogEvent(timestamp=_TS, message="x")])

    assert count == 1
    assert buffer.startswith(b"previous\n{\"index\"")


def test_serialize_failure_restores_buffer() -> None:
    serializer = BulkSerializer(
        "logs",
        encoders=build_encoders([Property("pid", "%(process)d")]),
    )
    buffer = bytearray(b"kept\n")
    events = [
        LogEvent(timestamp=_TS, message="ok", process=42),
        LogEvent(timestamp=_TS, message="bad"),  # process unknown -> "" -> %d fails
    ]

    with pytest.raises(SerializationError):
        serializer.serialize_into(buffer, events)

    assert bytes(buffer) == b"kept\n"


class _Unprintable:
    def __str__(self) -> str:
        raise RuntimeError("no text form")


def test_unexpected_error_restores_buffer_and_is_wrapped() -> None:
    serializer = BulkSerializer(
        "logs", encoders=build_encoders([Property("u", "%(u)s")])
    )
    buffer = bytearray(b"PRIOR")
    events = [
        LogEvent(timestamp=_TS, message="ok", context={"u": "x"}),
        LogEvent(timestamp=_TS, message="bad", context={"u": _Unprintable()}),
    ]

    with pytest.raises(SerializationError) as exc_info:
        serializer.serialize_into(buffer, events)

    assert bytes(buffer) == b"PRIOR"
    assert isinstance(exc_info.value.__cause__, RuntimeError)


def test_unicode_message_is_utf8() -> None:
    serializer = BulkSerializer("logs")
    payload = serializer.serialize([LogEvent(timestamp=_TS, message="héllo ✓")])
    assert _lines(payload)[1]["message"] == "héllo ✓"
