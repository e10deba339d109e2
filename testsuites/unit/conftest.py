"""
Shared fixtures for the unit suite: a stand-in config and clients backed by
httpx.MockTransport, so no test touches the network.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterator, List

import httpx
import pytest

from webapi_steps import HttpClient, WebApiContext

from .support import DummyConfig


BASE_URL = "http://api.test/v1"


@pytest.fixture
def make_client() -> Iterator[Callable[..., HttpClient]]:
    """
    Build an entered HttpClient around a request handler.

    Usage:
        client = make_client(lambda request: httpx.Response(200), **{"api.http_errors": False})
    """
    opened: List[HttpClient] = []

    def factory(handler, **overrides: Any) -> HttpClient:
        data = {"api.base_url": BASE_URL, "api.http_errors": True}
        data.update(overrides)
        client = HttpClient(DummyConfig(data), transport=httpx.MockTransport(handler))
        client.__enter__()
        opened.append(client)
        return client

    yield factory

    for client in opened:
        client.__exit__(None, None, None)


@pytest.fixture
def make_context(make_client) -> Callable[..., WebApiContext]:
    """Build a WebApiContext whose client answers with the given handler."""

    def factory(handler, **overrides: Any) -> WebApiContext:
        return WebApiContext(make_client(handler, **overrides))

    return factory


@pytest.fixture
def respond_with(make_context) -> Callable[..., WebApiContext]:
    """
    Build a context that has already received one canned response.

    Usage:
        context = respond_with(404, json_body={"error": "missing"})
    """

    def factory(
        status_code: int = 200,
        text: str = "",
        json_body: Any = None,
        headers: Dict[str, str] = None,
    ) -> WebApiContext:
        def handler(request: httpx.Request) -> httpx.Response:
            if json_body is not None:
                return httpx.Response(status_code, json=json_body, headers=headers)
            return httpx.Response(status_code, text=text, headers=headers)

        context = make_context(handler, **{"api.http_errors": False})
        context.send_request("GET", "/resource")
        return context

    return factory
