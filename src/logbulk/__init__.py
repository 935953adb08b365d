"""
logbulk - asynchronous, batching log publisher for bulk-indexing endpoints.

Producers hand off one event at a time; a single background worker batches
them into a newline-delimited bulk payload and POSTs it to the configured
endpoint, retrying failures and dropping new events while the unsent
backlog is over its size ceiling.
"""

from ._version import __version__
from .core.errors import (
    ConfigurationError,
    LogbulkError,
    SerializationError,
    TransportError,
)
from .core.events import LogEvent
from .core.properties import Property
from .core.publisher import BulkPublisher
from .core.serialization import BulkSerializer
from .core.settings import (
    DestinationSettings,
    PropertySettings,
    PublisherSettings,
    Settings,
    load_settings,
)
from .core.transport import DebugTransport, HttpTransport, SendResult, Transport
from .core.worker import PublisherWorker, WorkerState
from .handler import BulkIndexHandler

__all__ = [
    # Publisher
    "BulkPublisher",
    "BulkIndexHandler",
    "LogEvent",
    "Property",
    # Pipeline pieces
    "BulkSerializer",
    "PublisherWorker",
    "WorkerState",
    "Transport",
    "HttpTransport",
    "DebugTransport",
    "SendResult",
    # Configuration
    "Settings",
    "PublisherSettings",
    "DestinationSettings",
    "PropertySettings",
    "load_settings",
    # Errors
    "LogbulkError",
    "ConfigurationError",
    "SerializationError",
    "TransportError",
    "__version__",
]
