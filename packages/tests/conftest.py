"""Pytest configuration and shared fixtures."""

import logging
from collections.abc import Iterator

import pytest

# The driftclock testing plugin is registered via a ``pytest11`` entry
# point (pyproject.toml) for external consumers.  In our own test
# suite we disable it (``-p no:driftclock``) and load explicitly here
# instead, so the driftclock import chain is measured by coverage.
pytest_plugins = ["driftclock.testing._plugin"]


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (local UDP sockets, no internet)"
    )


@pytest.fixture
def _restore_root_logger() -> Iterator[None]:
    """Save and restore root logger handlers and level.

    ``ClockService.run_async`` and ``configure_logging`` replace the
    root logger's handlers; this keeps that from leaking across tests.
    """
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    yield
    for h in root.handlers:
        if h not in original_handlers:
            h.close()
    root.handlers = original_handlers
    root.setLevel(original_level)
