"""
================================================================================
Test Suite Pytest Configuration
================================================================================

Registers the markers used by the suite and tags collected items by folder.

================================================================================
"""

import pytest


def pytest_configure(config):
    """Configure pytest with suite-wide custom markers."""

    config.addinivalue_line(
        "markers", "unit: Library unit tests (no network)"
    )
    config.addinivalue_line(
        "markers", "smoke: Quick verification tests"
    )


def pytest_collection_modifyitems(config, items):
    """
    Add folder-based markers to collected test items.
    """
    for item in items:
        if "unit" in item.path.parts:
            item.add_marker(pytest.mark.unit)

        if "bdd" in item.path.parts:
            item.add_marker(pytest.mark.bdd)
            item.add_marker(pytest.mark.api)


def pytest_report_header(config):
    """Add custom header to pytest output."""
    return [
        "",
        "=" * 60,
        "webapi-steps: Gherkin steps for HTTP API testing",
        "=" * 60,
        "",
    ]
