"""
Error taxonomy for the bulk publisher.

Producers never see these exceptions: the worker contains transport and
serialization failures and reports them through diagnostics. Configuration
errors are the exception and surface at construction time.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Coarse error categories used in diagnostics payloads."""

    CONFIGURATION = "configuration"
    SERIALIZATION = "serialization"
    TRANSPORT = "transport"


class LogbulkError(Exception):
    """Base class for all logbulk errors."""

    category: ErrorCategory = ErrorCategory.TRANSPORT

    def __init__(
        self,
        message: str,
        *,
        cause: BaseException | None = None,
        **context: Any,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.context = dict(context)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "category": self.category.value,
            "message": self.message,
        }
        if self.cause is not None:
            data["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        data.update(self.context)
        return data


class ConfigurationError(LogbulkError):
    """Invalid settings, destination or property configuration."""

    category = ErrorCategory.CONFIGURATION


class SerializationError(LogbulkError):
    """An event could not be encoded into the bulk payload."""

    category = ErrorCategory.SERIALIZATION


class TransportError(LogbulkError):
    """A send attempt failed (connection error, timeout or bad status)."""

    category = ErrorCategory.TRANSPORT

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause=cause, status_code=status_code)
        self.status_code = status_code
        self.body = body
