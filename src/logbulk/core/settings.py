"""
Configuration models for logbulk using Pydantic v2 Settings.

Settings are grouped the way the publisher consumes them: tuning knobs for
the worker and transport, the destination (URL/index/type), and the list of
extra properties to encode per event. Every group can be populated from the
environment with the ``LOGBULK_`` prefix and ``__`` as nested delimiter,
e.g. ``LOGBULK_PUBLISHER__MAX_RETRIES=5``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import (  # type: ignore[import-not-found]
    BaseSettings,
    SettingsConfigDict,
)

from .errors import ConfigurationError


class PublisherSettings(BaseModel):
    """Worker and transport tuning.

    Durations are in milliseconds; ``max_queue_size`` is in bytes of
    serialized payload held in the send buffer.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    sleep_time: int = Field(
        default=250,
        gt=0,
        description="Milliseconds the worker sleeps between send cycles",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        description="Maximum send attempts for data that received no new events",
    )
    connect_timeout: int = Field(
        default=30_000,
        gt=0,
        description="HTTP connect timeout in milliseconds",
    )
    read_timeout: int = Field(
        default=30_000,
        gt=0,
        description="HTTP read timeout in milliseconds",
    )
    max_queue_size: int = Field(
        default=100 * 1024 * 1024,
        ge=1,
        description="Send buffer size in bytes above which new events are dropped",
    )
    debug: bool = Field(
        default=False,
        description="Print payloads to stderr instead of sending them",
    )
    errors_to_stderr: bool = Field(
        default=False,
        description="Mirror send failures to stderr",
    )
    enable_metrics: bool = Field(
        default=False,
        description="Export Prometheus counters for the publisher",
    )

    @property
    def sleep_seconds(self) -> float:
        return self.sleep_time / 1000.0

    @property
    def connect_timeout_seconds(self) -> float:
        return self.connect_timeout / 1000.0

    @property
    def read_timeout_seconds(self) -> float:
        return self.read_timeout / 1000.0


class DestinationSettings(BaseModel):
    """Where the bulk payload goes."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    url: str = Field(
        default="http://localhost:9200/_bulk",
        description="Bulk endpoint receiving the payload",
    )
    index: str = Field(default="logs", description="Target index name")
    type_name: str | None = Field(
        default=None,
        description="Optional document type (omitted from the preamble if unset)",
    )
    headers: dict[str, str] = Field(default_factory=dict)

    @field_validator("url")
    @classmethod
    def _ensure_http_url(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("url must be an http(s) URL")
        return value

    @field_validator("index")
    @classmethod
    def _ensure_index_non_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("index must not be empty")
        return value


class PropertySettings(BaseModel):
    """One extra document field, rendered from a ``%``-style pattern."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    value: str
    allow_empty: bool = False

    @field_validator("name")
    @classmethod
    def _ensure_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("property name must not be empty")
        if value in ("@timestamp", "message"):
            raise ValueError(f"property name {value!r} is reserved")
        return value


class Settings(BaseSettings):
    """Top-level configuration model."""

    publisher: PublisherSettings = Field(default_factory=PublisherSettings)
    destination: DestinationSettings = Field(default_factory=DestinationSettings)
    properties: list[PropertySettings] = Field(default_factory=list)
    internal_logging_enabled: bool = Field(
        default=False,
        description="Emit DEBUG diagnostics for each send cycle",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOGBULK_",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    def to_dict(self) -> dict[str, object]:
        return dict(self.model_dump(exclude_none=True))


def load_settings(**overrides: Any) -> Settings:
    """Build ``Settings`` from the environment plus keyword overrides.

    Raises ``ConfigurationError`` for invalid values.
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(
            "Invalid logbulk configuration",
            cause=e,
            errors=e.error_count(),
        ) from e


# Mark Pydantic validators as used for vulture
_VULTURE_USED: tuple[object, ...] = (
    DestinationSettings._ensure_http_url,
    DestinationSettings._ensure_index_non_empty,
    PropertySettings._ensure_name,
)
