"""
================================================================================
Web API Steps
================================================================================

Gherkin step definitions for black-box HTTP API testing.

Modules:
    - api_context: Per-scenario state, request building and dispatch
    - http_client: httpx-based client with Allure logging
    - response_assertions: Status, header, body, JSON and XML checks
    - xml_validator: XML equality, XPath counting, XML Schema validation
    - config_loader: YAML configuration management
    - steps: pytest-bdd step bindings (load with pytest_plugins)

Author: Automation Team
License: MIT
================================================================================
"""

from .api_context import WebApiContext
from .config_loader import ConfigLoader, ConfigurationError
from .http_client import ApiRequest, HttpClient, HttpClientError
from .response_assertions import ResponseAssertions, ResponseDecodeError

__all__ = [
    "ApiRequest",
    "ConfigLoader",
    "ConfigurationError",
    "HttpClient",
    "HttpClientError",
    "ResponseAssertions",
    "ResponseDecodeError",
    "WebApiContext",
]
