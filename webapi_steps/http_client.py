"""
================================================================================
HTTP Client with Allure Integration
================================================================================

The transport used by the web API step context:
    - Fixed request abstraction (ApiRequest) built by the steps
    - Base URL composition delegated to httpx
    - Optional raise-on-error mode (4xx/5xx surface as HTTPStatusError
      carrying the response)
    - Allure reporting with cURL command generation
    - Verbose exchange logging when debug mode is enabled

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import allure
import httpx
from allure_commons.types import AttachmentType
from loguru import logger

from .config_loader import ConfigLoader


# Maximum response length to include in Allure reports
MAX_RESPONSE_LENGTH = 3000

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_TIMEOUT = 30

SENSITIVE_HEADERS = {"authorization", "x-api-key", "cookie", "set-cookie"}
SENSITIVE_FIELDS = ("password", "secret", "token", "api_key", "authorization", "session")


class HttpClientError(Exception):
    """Base exception for HTTP client errors."""
    pass


@dataclass
class ApiRequest:
    """
    A request as built by the step context, before the client sends it.

    Attributes:
        method: HTTP method (GET, POST, ...)
        url: Relative URL exactly as composed by the steps (no escaping)
        headers: Ordered name/value pairs; a name may repeat
        body: Raw request body, if any
    """
    method: str
    url: str
    headers: List[Tuple[str, str]] = field(default_factory=list)
    body: Optional[str] = None

    def header_values(self, name: str) -> List[str]:
        """Return every value sent for a header name (case-insensitive)."""
        wanted = name.lower()
        return [value for key, value in self.headers if key.lower() == wanted]


class HttpClient:
    """
    HTTP client the step context sends its requests through.

    Usage:
        >>> config = ConfigLoader()
        >>> with HttpClient(config) as client:
        ...     response = client.send(ApiRequest("GET", "api/v1/users"))
        ...     print(response.status_code)
    """

    def __init__(
        self,
        config: Optional[ConfigLoader] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """
        Initialize HTTP client with configuration.

        Args:
            config: Configuration loader instance. Creates new one if None.
            transport: Optional httpx transport (e.g. httpx.MockTransport in tests).
        """
        if config is None:
            config = ConfigLoader()

        self.config = config
        self.base_url = config.get("api.base_url", DEFAULT_BASE_URL)
        self.timeout = int(config.get("api.timeout", DEFAULT_TIMEOUT))
        self.http_errors = bool(config.get("api.http_errors", True))
        self.debug = bool(config.get("api.log_all", False))

        self.session: Optional[httpx.Client] = None
        self._transport = transport

    def __enter__(self) -> "HttpClient":
        """Enter context manager - initialize HTTP session."""
        self.session = httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout),
            transport=self._transport,
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager - close HTTP session."""
        if self.session:
            self.session.close()
            self.session = None

    def get_base_url(self) -> str:
        return str(self.base_url)

    def set_debug(self, enabled: bool = True) -> None:
        """Toggle verbose logging of every exchange."""
        self.debug = enabled

    def send(self, request: ApiRequest) -> httpx.Response:
        """
        Send a prepared request and return the response.

        The relative request URL is joined with the configured base URL by
        httpx. With ``http_errors`` enabled, a 4xx/5xx response raises
        ``httpx.HTTPStatusError``; the exception carries the response.

        Args:
            request: Request built by the step context

        Returns:
            httpx.Response object

        Raises:
            HttpClientError: When used outside the context manager
            httpx.HTTPStatusError: On 4xx/5xx when http_errors is enabled
            httpx.HTTPError: On transport failures
        """
        if self.session is None:
            raise HttpClientError(
                "HttpClient must be used within a context manager. "
                "Use 'with HttpClient() as client:'"
            )

        http_request = self.session.build_request(
            request.method,
            request.url,
            headers=request.headers,
            content=request.body,
        )

        logger.debug(f"{request.method} {http_request.url}")
        response = self.session.send(http_request)
        logger.debug(f"{request.method} {http_request.url} -> {response.status_code}")

        if self.debug:
            self._log_exchange(request, http_request, response)

        self._log_to_allure(request, http_request, response)

        if self.http_errors and response.is_error:
            response.raise_for_status()

        return response

    def _log_exchange(
        self,
        request: ApiRequest,
        http_request: httpx.Request,
        response: httpx.Response,
    ) -> None:
        """Log the full exchange (headers redacted) at INFO level."""
        headers = self._redact_headers(list(http_request.headers.items()))
        logger.info(
            f"> {request.method} {http_request.url}\n"
            + "".join(f"> {name}: {value}\n" for name, value in headers)
            + (f">\n{request.body}\n" if request.body else "")
        )
        logger.info(
            f"< {response.status_code} {response.reason_phrase}\n"
            + "".join(f"< {name}: {value}\n" for name, value in response.headers.items())
            + f"<\n{response.text}"
        )

    def _log_to_allure(
        self,
        request: ApiRequest,
        http_request: httpx.Request,
        response: httpx.Response,
    ) -> None:
        """
        Log HTTP request/response to Allure report.

        Attaches:
            - Request URL
            - Request headers (redacted)
            - Request body (if present)
            - cURL command for reproduction
            - Response status
            - Response body (truncated if too long)
        """
        full_url = str(http_request.url)
        status_icon = "OK" if response.status_code < 400 else "FAIL"
        step_title = f"[{status_icon}] {request.method} {request.url} -> {response.status_code}"

        with allure.step(step_title):
            allure.attach(
                full_url,
                name="Request URL",
                attachment_type=AttachmentType.TEXT
            )

            safe_headers = self._redact_headers(request.headers)
            if safe_headers:
                allure.attach(
                    json.dumps(safe_headers, ensure_ascii=False, indent=2),
                    name="Request Headers",
                    attachment_type=AttachmentType.JSON
                )

            safe_body = self._redact_text_body(request.body)
            if safe_body:
                allure.attach(
                    safe_body,
                    name="Request Body",
                    attachment_type=AttachmentType.TEXT
                )

            allure.attach(
                self._build_curl(request.method, full_url, safe_headers, safe_body),
                name="cURL Command",
                attachment_type=AttachmentType.TEXT
            )

            allure.attach(
                f"{status_icon} {response.status_code}",
                name="Response Status",
                attachment_type=AttachmentType.TEXT
            )

            try:
                response_content = json.dumps(
                    response.json(), ensure_ascii=False, indent=2
                )
            except (json.JSONDecodeError, ValueError):
                response_content = response.text or "<empty>"

            if len(response_content) > MAX_RESPONSE_LENGTH:
                response_content = (
                    f"{response_content[:MAX_RESPONSE_LENGTH]}\n\n"
                    f"... [Truncated, full length: {len(response_content)} chars] ..."
                )

            allure.attach(
                response_content,
                name="Response Body",
                attachment_type=AttachmentType.TEXT
            )

    def _redact_headers(
        self, headers: List[Tuple[str, str]]
    ) -> List[Tuple[str, str]]:
        """
        Mask sensitive header values before logging.
        """
        return [
            (key, "***MASKED***" if key.lower() in SENSITIVE_HEADERS else value)
            for key, value in headers
        ]

    def _redact_body(self, payload):
        """
        Recursively mask sensitive fields in decoded request bodies.
        """
        if isinstance(payload, dict):
            redacted = {}
            for key, value in payload.items():
                if any(token in key.lower() for token in SENSITIVE_FIELDS):
                    redacted[key] = "***MASKED***"
                else:
                    redacted[key] = self._redact_body(value)
            return redacted
        if isinstance(payload, list):
            return [self._redact_body(item) for item in payload]
        return payload

    def _redact_text_body(self, body: Optional[str]) -> Optional[str]:
        """
        Mask sensitive fields of a raw body when it is JSON; other bodies pass through.
        """
        if not body:
            return body
        try:
            payload = json.loads(body)
        except ValueError:
            return body
        return json.dumps(self._redact_body(payload), ensure_ascii=False)

    def _build_curl(
        self,
        method: str,
        url: str,
        headers: List[Tuple[str, str]],
        body: Optional[str],
    ) -> str:
        """
        Build cURL command for request reproduction.
        """
        parts = [f"curl -X {method}"]

        for key, value in headers:
            parts.append(f"-H '{key}: {value}'")

        if body:
            parts.append(f"-d '{body}'")

        parts.append(f"'{url}'")

        return " \\\n  ".join(parts)


__all__ = [
    "ApiRequest",
    "HttpClient",
    "HttpClientError",
]
