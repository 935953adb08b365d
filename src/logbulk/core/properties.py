"""
Configured document properties and their per-event encoders.

A property pairs a field name with a ``%``-style pattern using ``logging``
attribute names, e.g. ``Property("level", "%(levelname)s")``. Names the
event does not know render as an empty string, which (unless
``allow_empty`` is set) keeps the field out of the document.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from .errors import ConfigurationError, SerializationError
from .events import LogEvent
from .settings import PropertySettings


class _BlankMissing(dict[str, Any]):
    def __missing__(self, key: str) -> str:
        return ""


class _ProbeMapping(dict[str, Any]):
    # 0 satisfies every %-conversion, so only syntax errors surface
    def __missing__(self, key: str) -> int:
        return 0


@dataclass(frozen=True)
class Property:
    name: str
    value: str
    allow_empty: bool = False


class PropertyEncoder:
    """Render one property for an event."""

    __slots__ = ("_property",)

    def __init__(self, prop: Property) -> None:
        self._property = prop
        try:
            _ = prop.value % _ProbeMapping()
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Invalid pattern for property {prop.name!r}",
                cause=e,
                pattern=prop.value,
            ) from e

    @property
    def name(self) -> str:
        return self._property.name

    @property
    def allow_empty(self) -> bool:
        return self._property.allow_empty

    def encode(self, event: LogEvent) -> str:
        try:
            return self._property.value % _BlankMissing(event.as_mapping())
        except (TypeError, ValueError) as e:
            raise SerializationError(
                f"Failed to encode property {self.name!r}",
                cause=e,
            ) from e


def build_encoders(
    properties: Iterable[Property | PropertySettings],
) -> list[PropertyEncoder]:
    """Build encoders for the configured properties, preserving order."""
    encoders: list[PropertyEncoder] = []
    seen: set[str] = set()
    for item in properties:
        prop = (
            item
            if isinstance(item, Property)
            else Property(item.name, item.value, item.allow_empty)
        )
        if prop.name in seen:
            raise ConfigurationError(f"Duplicate property {prop.name!r}")
        seen.add(prop.name)
        encoders.append(PropertyEncoder(prop))
    return encoders


def encode_properties(
    encoders: Sequence[PropertyEncoder], event: LogEvent
) -> Iterable[tuple[str, str]]:
    """Yield ``(name, value)`` pairs that belong in the document."""
    for encoder in encoders:
        value = encoder.encode(event)
        if value or encoder.allow_empty:
            yield encoder.name, value
