"""Pytest configuration for tests.

No sys.path hacks - tests should import from installed typebridge package.
"""

import logging

import pytest
import structlog


@pytest.fixture(autouse=True)
def reset_logging():
    """The CLI configures structlog globally; undo it after each test."""
    yield
    structlog.reset_defaults()
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.WARNING)
