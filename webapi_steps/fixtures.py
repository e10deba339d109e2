"""
================================================================================
Web API Step Fixtures
================================================================================

Fixtures the web API steps depend on:
    - webapi_config: Configuration loader instance
    - http_client: HTTP client session (override to swap the transport)
    - api_context: Fresh WebApiContext per scenario, client attached
    - response_assertions: Assertions bound to api_context

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from typing import Generator

import pytest

from .api_context import WebApiContext
from .config_loader import ConfigLoader
from .http_client import HttpClient
from .response_assertions import (
    DEFAULT_KNOWN_CHARSET,
    DEFAULT_KNOWN_MEDIA_TYPE,
    ResponseAssertions,
)


@pytest.fixture(scope="session")
def webapi_config() -> ConfigLoader:
    """
    Provide configuration loader instance.

    Session-scoped to ensure configuration is loaded only once.
    """
    return ConfigLoader()


@pytest.fixture
def http_client(webapi_config: ConfigLoader) -> Generator[HttpClient, None, None]:
    """
    Provide the HTTP client the steps send requests through.

    Override this fixture in a conftest to point the steps at another
    transport, e.g. ``HttpClient(config, transport=httpx.MockTransport(handler))``.
    """
    with HttpClient(webapi_config) as client:
        yield client


@pytest.fixture
def api_context(webapi_config: ConfigLoader, http_client: HttpClient) -> WebApiContext:
    """Scenario state: pending headers, placeholders, last request/response."""
    context = WebApiContext()
    if webapi_config.get("api.log_all", False):
        context.enable_log_all()
    context.set_client(http_client)
    return context


@pytest.fixture
def response_assertions(
    webapi_config: ConfigLoader, api_context: WebApiContext
) -> ResponseAssertions:
    return ResponseAssertions(
        api_context,
        known_media_type=webapi_config.get(
            "assertions.known_media_type", DEFAULT_KNOWN_MEDIA_TYPE
        ),
        known_charset=webapi_config.get(
            "assertions.known_charset", DEFAULT_KNOWN_CHARSET
        ),
    )


__all__ = [
    "api_context",
    "http_client",
    "response_assertions",
    "webapi_config",
]
