"""Pytest configuration and fixtures for framework unit tests."""

from typing import Generator

import pytest

from corfu_universe.core.config import reset_config
from corfu_universe.core.log import clear_log_context, reset_logging


@pytest.fixture(autouse=True)
def reset_global_config(monkeypatch) -> Generator[None, None, None]:
    """Every test starts from default configuration and no env overrides."""
    import os

    for key in list(os.environ):
        if key.startswith("CORFU_UNIVERSE_"):
            monkeypatch.delenv(key)
    reset_config()
    yield
    reset_config()


@pytest.fixture(autouse=True)
def cleanup_logging() -> Generator[None, None, None]:
    """Drop handlers and context installed by a test."""
    yield
    clear_log_context()
    reset_logging()
