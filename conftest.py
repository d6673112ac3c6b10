"""
Root pytest configuration.
"""

from __future__ import annotations

from collections.abc import Generator

import pytest


# Register humiolog testing fixtures for all tests
pytest_plugins = ("humiolog.testing.fixtures",)


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "critical: Tests that must never fail - core functionality",
    )
    config.addinivalue_line(
        "markers",
        "integration: Tests exercising the real HTTP client stack",
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
def reset_diagnostics_cache() -> Generator[None, None, None]:
    """Reset the diagnostics module state before each test.

    The diagnostics module caches the `internal_logging_enabled` setting
    and its rate-limit windows at first use. Resetting keeps tests from
    inheriting suppressed keys or a captured writer from earlier tests.
    """
    import humiolog.core.diagnostics as diag

    diag._reset_for_tests()
    yield
    diag._reset_for_tests()
