"""
Root pytest configuration.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from typing import Any

import pytest


def get_test_timeout(base: float, max_multiplier: float = 5.0) -> float:
    """Apply CI timeout multiplier to a base timeout value.

    Environment:
        CI_TIMEOUT_MULTIPLIER: Multiplier for CI environments (default: 1.0)
    """
    raw = os.getenv("CI_TIMEOUT_MULTIPLIER", "1.0")
    try:
        multiplier = float(raw) if raw else 1.0
        multiplier = min(multiplier, max_multiplier)
    except ValueError:
        multiplier = 1.0
    return base * multiplier


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "critical: Tests that must never fail - core functionality",
    )
    config.addinivalue_line(
        "markers",
        "integration: Tests exercising real threads and HTTP plumbing",
    )
    config.addinivalue_line(
        "markers",
        "slow: Tests that take >1 second",
    )
    config.addinivalue_line(
        "markers",
        "property: Property-based tests (may be slow)",
    )


@pytest.fixture(autouse=True)
def reset_diagnostics() -> Generator[None, None, None]:
    """Reset the diagnostics writer and settings cache around each test."""
    import logbulk.core.diagnostics as diag

    diag._internal_logging_enabled = None
    diag.set_writer_for_tests(None)
    yield
    diag._internal_logging_enabled = None
    diag.set_writer_for_tests(None)


@pytest.fixture
def captured_diagnostics() -> list[dict[str, Any]]:
    """Collect every diagnostic payload emitted during the test."""
    import logbulk.core.diagnostics as diag

    captured: list[dict[str, Any]] = []
    diag.set_writer_for_tests(captured.append)
    return captured
