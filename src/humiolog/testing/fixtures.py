"""
Pytest fixtures for code that ships events through humiolog.

Register with ``pytest_plugins = ("humiolog.testing.fixtures",)``.
"""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

import pytest

from ..core import diagnostics
from ..core.settings import Settings
from .mocks import MockSender


@pytest.fixture
def mock_sender() -> MockSender:
    return MockSender()


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with intervals short enough for unit tests."""
    return Settings(
        tick_interval_seconds=0.05,
        retry_delay_seconds=0.02,
    )


@pytest.fixture
def capture_diagnostics() -> Generator[list[dict[str, Any]], None, None]:
    diagnostics._reset_for_tests()
    captured: list[dict[str, Any]] = []
    diagnostics.set_writer_for_tests(captured.append)
    yield captured
    diagnostics._reset_for_tests()
