from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

import pytest

from conftest import get_test_timeout
from logbulk.core.diagnostics import STATUS_LOGGER_NAME
from logbulk.core.events import LogEvent
from logbulk.core.properties import Property
from logbulk.core.publisher import BulkPublisher
from logbulk.core.settings import PublisherSettings, Settings
from logbulk.core.transport import SendResult
from logbulk.handler import BulkIndexHandler


class _RecordingTransport:
    def __init__(self) -> None:
        self.payloads: list[bytes] = []

    def send(self, payload: bytes) -> SendResult:
        self.payloads.append(payload)
        return SendResult.success(200)


class _RecordingPublisher:
    def __init__(self) -> None:
        self.events: list[LogEvent] = []
        self.closed_with: list[float | None] = []

    def submit(self, event: LogEvent) -> None:
        self.events.append(event)

    def close(self, timeout: float | None = None) -> bool:
        self.closed_with.append(timeout)
        return True


@pytest.fixture
def app_logger() -> Any:
    logger = logging.getLogger("tests.handler.app")
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    yield logger
    for h in list(logger.handlers):
        logger.removeHandler(h)


def test_records_become_events(app_logger: logging.Logger) -> None:
    publisher = _RecordingPublisher()
    app_logger.addHandler(BulkIndexHandler(publisher))  # type: ignore[arg-type]

    app_logger.warning("disk %d%% full", 91, extra={"host": "db-1"})

    [event] = publisher.events
    assert event.message == "disk 91% full"
    assert event.level == "WARNING"
    assert event.logger == "tests.handler.app"
    assert event.context["host"] == "db-1"


def test_internal_status_records_are_ignored() -> None:
    publisher = _RecordingPublisher()
    handler = BulkIndexHandler(publisher)  # type: ignore[arg-type]
    status = logging.getLogger(STATUS_LOGGER_NAME)
    status.addHandler(handler)
    try:
        status.warning("Send queue maximum size exceeded")
    finally:
        status.removeHandler(handler)
    assert publisher.events == []


def test_handler_level_filters(app_logger: logging.Logger) -> None:
    publisher = _RecordingPublisher()
    app_logger.addHandler(
        BulkIndexHandler(publisher, level=logging.ERROR)  # type: ignore[arg-type]
    )
    app_logger.info("ignored")
    app_logger.error("kept")
    assert [e.message for e in publisher.events] == ["kept"]


def test_submit_errors_go_to_handle_error(
    app_logger: logging.Logger, monkeypatch: pytest.MonkeyPatch
) -> None:
    class _Broken:
        def submit(self, event: LogEvent) -> None:
            raise RuntimeError("boom")

        def close(self, timeout: float | None = None) -> bool:
            return True

    handled: list[logging.LogRecord] = []
    handler = BulkIndexHandler(_Broken())  # type: ignore[arg-type]
    monkeypatch.setattr(handler, "handleError", handled.append)
    app_logger.addHandler(handler)

    app_logger.error("x")

    assert len(handled) == 1


def test_close_closes_publisher() -> None:
    publisher = _RecordingPublisher()
    handler = BulkIndexHandler(publisher, close_timeout=1.5)  # type: ignore[arg-type]
    handler.close()
    assert publisher.closed_with == [1.5]


def test_end_to_end_through_real_publisher(app_logger: logging.Logger) -> None:
    transport = _RecordingTransport()
    publisher = BulkPublisher(
        url="http://localhost:9200/_bulk",
        index="app",
        type_name="log",
        properties=[
            Property("level", "%(levelname)s"),
            Property("logger", "%(name)s"),
        ],
        settings=PublisherSettings(sleep_time=5),
        transport=transport,
    )
    handler = BulkIndexHandler(publisher)
    app_logger.addHandler(handler)

    app_logger.info("one")
    app_logger.error("two")
    handler.close()

    assert publisher.flush(timeout=get_test_timeout(5.0))
    lines = [
        json.loads(line)
        for p in transport.payloads
        for line in p.decode("utf-8").splitlines()
    ]
    assert lines[0] == {"index": {"_index": "app", "_type": "log"}}
    assert [d["message"] for d in lines[1::2]] == ["one", "two"]
    assert [d["level"] for d in lines[1::2]] == ["INFO", "ERROR"]
    assert {d["logger"] for d in lines[1::2]} == {"tests.handler.app"}
    datetime.fromisoformat(lines[1]["@timestamp"])


def test_builds_publisher_from_settings() -> None:
    handler = BulkIndexHandler(
        settings=Settings(destination={"index": "svc"}),
    )
    assert isinstance(handler.publisher, BulkPublisher)
    handler.close()
