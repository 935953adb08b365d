"""
Basic usage example for logbulk.

Ships stdlib log records to a local bulk endpoint. Set
``LOGBULK_PUBLISHER__DEBUG=true`` to print payloads to stderr instead of
sending them when no cluster is running.
"""

import logging
import sys
from pathlib import Path

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from logbulk import BulkIndexHandler, load_settings


def main() -> None:
    settings = load_settings(
        destination={"url": "http://localhost:9200/_bulk", "index": "example-logs"},
        properties=[
            {"name": "level", "value": "%(levelname)s"},
            {"name": "logger", "value": "%(name)s"},
            {"name": "thread", "value": "%(threadName)s"},
            {"name": "request_id", "value": "%(request_id)s"},
        ],
    )
    handler = BulkIndexHandler(settings=settings)

    logger = logging.getLogger("example")
    logger.setLevel(logging.INFO)
    logger.addHandler(handler)

    logger.info("Application started")
    logger.warning("Slow request", extra={"request_id": "r-123"})
    try:
        1 / 0
    except ZeroDivisionError:
        logger.exception("Calculation failed")

    # Waits for the worker to deliver (or give up on) pending events
    handler.close()


if __name__ == "__main__":
    main()
