"""
Structured internal diagnostics (the publisher's status stream).

Every component reports non-fatal conditions through ``warn``/``info``/
``error``/``debug``. A diagnostic is a flat dict with ``ts``, ``level``,
``component`` and ``message`` plus arbitrary fields. The default writer
forwards payloads to the stdlib ``logbulk.status`` logger; tests swap the
writer with ``set_writer_for_tests``.

Diagnostics must never break the caller: writer failures are swallowed.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Callable, TextIO

STATUS_LOGGER_NAME = "logbulk.status"

DiagnosticWriter = Callable[[dict[str, Any]], None]

_LEVELS: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
}

# Cached on first debug() call; reset to None by tests
_internal_logging_enabled: bool | None = None


def _logging_writer(payload: dict[str, Any]) -> None:
    fields = {
        k: v
        for k, v in payload.items()
        if k not in ("ts", "level", "component", "message")
    }
    text = f"[{payload['component']}] {payload['message']}"
    if fields:
        text += " " + " ".join(f"{k}={v}" for k, v in fields.items())
    logging.getLogger(STATUS_LOGGER_NAME).log(
        _LEVELS.get(payload["level"], logging.INFO), text
    )


_writer: DiagnosticWriter = _logging_writer


def set_writer_for_tests(writer: DiagnosticWriter | None) -> None:
    """Replace the diagnostics writer; ``None`` restores the default."""
    global _writer
    _writer = writer if writer is not None else _logging_writer


def _is_internal_logging_enabled() -> bool:
    global _internal_logging_enabled
    if _internal_logging_enabled is None:
        try:
            from .settings import Settings

            _internal_logging_enabled = bool(Settings().internal_logging_enabled)
        except Exception:
            _internal_logging_enabled = False
    return _internal_logging_enabled


def emit(level: str, component: str, message: str, **fields: Any) -> None:
    payload: dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "level": level,
        "component": component,
        "message": message,
    }
    payload.update(fields)
    try:
        _writer(payload)
    except Exception:
        pass


def debug(component: str, message: str, **fields: Any) -> None:
    if not _is_internal_logging_enabled():
        return
    emit("DEBUG", component, message, **fields)


def info(component: str, message: str, **fields: Any) -> None:
    emit("INFO", component, message, **fields)


def warn(component: str, message: str, **fields: Any) -> None:
    emit("WARN", component, message, **fields)


def error(component: str, message: str, **fields: Any) -> None:
    emit("ERROR", component, message, **fields)


def mirror_to_stderr(message: str, *, stream: TextIO | None = None) -> None:
    """Write a one-line ``[date] message`` copy of a diagnostic to stderr."""
    out = stream if stream is not None else sys.stderr
    try:
        out.write(f"[{datetime.now().strftime('%a %b %d %H:%M:%S %Y')}] {message}\n")
        out.flush()
    except Exception:
        pass
