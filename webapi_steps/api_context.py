"""
================================================================================
Web API Step Context
================================================================================

Per-scenario state shared by the web API steps:
    - Pending headers (kept across requests until replaced or removed)
    - Authorization token set by the "authenticating" steps
    - Placeholder table applied to URLs, bodies and expected payloads
    - Last request built and last response received

One instance is created per scenario by the ``api_context`` fixture.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import base64
import json
from typing import Dict, List, Optional, Sequence, Tuple, Union
from urllib.parse import parse_qsl, urlencode

import httpx
from loguru import logger

from .config_loader import ConfigurationError
from .http_client import ApiRequest, HttpClient


BASE_URL_PLACEHOLDER = "<base_url>"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

HeaderValue = Union[str, List[str]]
TableRows = Sequence[Sequence[str]]


def rows_hash(rows: TableRows) -> Dict[str, str]:
    """
    Read a two-column step table as an ordered key -> value mapping.

    Rows with a single cell map to an empty value.
    """
    table: Dict[str, str] = {}
    for row in rows:
        if not row:
            continue
        table[row[0]] = row[1] if len(row) > 1 else ""
    return table


def form_fields(pairs: Sequence[Tuple[str, str]]) -> List[Tuple[str, str]]:
    """
    Collapse parsed form pairs into the fields to send.

    A plain key keeps its first position and its last value. A key ending
    in ``[]`` collects every value and is expanded to ``key[0]``, ``key[1]``...
    """
    fields: Dict[str, Union[str, List[str]]] = {}
    for key, value in pairs:
        if key.endswith("[]"):
            name = key[:-2]
            if not isinstance(fields.get(name), list):
                fields[name] = []
            fields[name].append(value)
        else:
            fields[key] = value

    encoded: List[Tuple[str, str]] = []
    for key, value in fields.items():
        if isinstance(value, list):
            encoded.extend((f"{key}[{index}]", item) for index, item in enumerate(value))
        else:
            encoded.append((key, value))
    return encoded


class WebApiContext:
    """
    Holds the state of one API scenario and builds/sends its requests.

    Example:
        >>> context = WebApiContext()
        >>> context.set_client(client)
        >>> context.authenticate_bearer("t-123")
        >>> context.send_request("GET", "/users/<user_id>")
        >>> context.last_response.status_code
        200
    """

    def __init__(self, client: Optional[HttpClient] = None) -> None:
        self.headers: Dict[str, HeaderValue] = {}
        self.authorization: Optional[str] = None
        self.placeholders: Dict[str, str] = {}
        self.last_request: Optional[ApiRequest] = None
        self.last_response: Optional[httpx.Response] = None
        self.log_all = False
        self._client: Optional[HttpClient] = None

        if client is not None:
            self.set_client(client)

    # ============================================================
    # Client
    # ============================================================

    def set_client(self, client: HttpClient) -> None:
        """Attach the HTTP client and seed the <base_url> placeholder."""
        self._client = client

        if self.log_all:
            client.set_debug(True)

        self.set_placeholder(BASE_URL_PLACEHOLDER, client.get_base_url())

    @property
    def client(self) -> HttpClient:
        if self._client is None:
            raise ConfigurationError("Client has not been set in WebApiContext")
        return self._client

    def enable_log_all(self) -> None:
        """Turn on verbose request/response logging for this scenario."""
        self.log_all = True
        if self._client is not None:
            self._client.set_debug(True)

    # ============================================================
    # Placeholders
    # ============================================================

    def set_placeholder(self, key: str, value: str) -> None:
        self.placeholders[key] = value

    def replace_placeholders(self, text: str) -> str:
        """Replace every known placeholder token in text, literally."""
        for key, value in self.placeholders.items():
            text = text.replace(key, str(value))
        return text

    # ============================================================
    # Headers
    # ============================================================

    def add_header(self, name: str, value: str) -> None:
        """
        Add a pending header.

        A second value for the same name turns the entry into a list, so
        repeated headers (e.g. Cookie) are all sent.
        """
        if name in self.headers:
            current = self.headers[name]
            if not isinstance(current, list):
                current = [current]
                self.headers[name] = current
            current.append(value)
        else:
            self.headers[name] = value

    def remove_header(self, name: str) -> None:
        self.headers.pop(name, None)

    def header_pairs(self) -> List[Tuple[str, str]]:
        """Pending headers flattened into ordered name/value pairs."""
        pairs: List[Tuple[str, str]] = []
        for name, value in self.headers.items():
            if isinstance(value, list):
                pairs.extend((name, item) for item in value)
            else:
                pairs.append((name, value))
        return pairs

    def authenticate_basic(self, username: str, password: str) -> None:
        self.remove_header("Authorization")
        credentials = f"{username}:{password}".encode("utf-8")
        self.authorization = base64.b64encode(credentials).decode("ascii")
        self.add_header("Authorization", f"Basic {self.authorization}")

    def authenticate_bearer(self, token: str) -> None:
        self.remove_header("Authorization")
        self.authorization = token
        self.add_header("Authorization", f"Bearer {self.authorization}")

    # ============================================================
    # Request building
    # ============================================================

    def prepare_url(self, url: str) -> str:
        """Substitute placeholders and drop leading slashes; the client joins the base URL."""
        return self.replace_placeholders(url).lstrip("/")

    def send_request(self, method: str, url: str) -> httpx.Response:
        """Send a request without a body."""
        request = ApiRequest(method, self.prepare_url(url), self.header_pairs())
        return self._send(request)

    def send_request_with_values(
        self, method: str, url: str, rows: TableRows
    ) -> httpx.Response:
        """Send the table's key/value pairs as a JSON object body."""
        fields = {
            key: self.replace_placeholders(value)
            for key, value in rows_hash(rows).items()
        }
        body = json.dumps(fields, separators=(",", ":"), ensure_ascii=False)
        request = ApiRequest(method, self.prepare_url(url), self.header_pairs(), body)
        return self._send(request)

    def send_request_with_query(
        self, method: str, url: str, rows: TableRows
    ) -> httpx.Response:
        """
        Append the table's key/value pairs to the URL as a query string.

        Keys and values are placeholder-substituted and concatenated as-is;
        nothing is percent-encoded.
        """
        url = self.prepare_url(url)
        query = "&".join(
            f"{self.replace_placeholders(key)}={self.replace_placeholders(value)}"
            for key, value in rows_hash(rows).items()
        )
        if query:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}{query}"

        request = ApiRequest(method, url, self.header_pairs())
        return self._send(request)

    def send_request_with_body(
        self, method: str, url: str, body: str
    ) -> httpx.Response:
        """Send a raw body; the caller is responsible for headers such as Content-Type."""
        body = self.replace_placeholders(body.strip())
        request = ApiRequest(method, self.prepare_url(url), self.header_pairs(), body)
        return self._send(request)

    def send_request_with_form_data(
        self, method: str, url: str, body: str
    ) -> httpx.Response:
        """
        Send newline-delimited ``key=value`` lines as a URL-encoded form.

        For repeated keys the last value wins, except for array keys
        (``tags[]``), which keep every value and are sent indexed
        (``tags[0]=a&tags[1]=b``).
        """
        body = self.replace_placeholders(body.strip())
        fields = form_fields(parse_qsl("&".join(body.splitlines()), keep_blank_values=True))

        headers = [
            (name, value)
            for name, value in self.header_pairs()
            if name.lower() != "content-type"
        ]
        headers.append(("Content-Type", FORM_CONTENT_TYPE))

        request = ApiRequest(method, self.prepare_url(url), headers, urlencode(fields))
        return self._send(request)

    # ============================================================
    # Dispatch
    # ============================================================

    def _send(self, request: ApiRequest) -> httpx.Response:
        self.last_request = request
        client = self.client

        try:
            self.last_response = client.send(request)
        except httpx.HTTPError as e:
            response = getattr(e, "response", None)
            if response is None:
                logger.error(f"{request.method} {request.url} failed: {e}")
                raise
            logger.debug(
                f"{request.method} {request.url} raised {type(e).__name__}; "
                f"using embedded {response.status_code} response"
            )
            self.last_response = response

        return self.last_response

    def describe_last_exchange(self) -> str:
        """Render ``METHOD URL => STATUS:\\nBODY`` for the last exchange."""
        if self.last_request is None or self.last_response is None:
            raise AssertionError("No request has been sent yet")

        request = self.last_request
        response = self.last_response
        return f"{request.method} {request.url} => {response.status_code}:\n{response.text}"


__all__ = [
    "BASE_URL_PLACEHOLDER",
    "FORM_CONTENT_TYPE",
    "WebApiContext",
    "form_fields",
    "rows_hash",
]
