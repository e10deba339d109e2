"""
================================================================================
Gherkin Suite Configuration
================================================================================

Points the web API steps at an in-process fake API served through
httpx.MockTransport, so scenarios run without a live server.

Fake API (base URL http://api.test/v1):
    - GET  /users/42     JSON user with cache headers
    - GET  /missing      404 {"error": "missing"}
    - GET  /boom         500 plain-text failure
    - GET  /catalog.xml  XML catalog
    - ANY  /echo         JSON description of the received request

================================================================================
"""

from __future__ import annotations

import json
from typing import Generator

import httpx
import pytest
import yaml

from webapi_steps import ConfigLoader, HttpClient


BASE_URL = "http://api.test/v1"

CATALOG_XML = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    "<catalog>\n"
    '  <book id="1"><title>Dune</title></book>\n'
    '  <book id="2"><title>Emma</title></book>\n'
    "</catalog>\n"
)

CACHE_HEADERS = {
    "ETag": '"u42-v3"',
    "Date": "Sat, 17 Oct 2026 10:00:00 GMT",
    "Last-Modified": "Fri, 16 Oct 2026 09:00:00 GMT",
    "Cache-Control": "max-age=0, private, must-revalidate",
}


def _json(status_code: int, payload, headers=None) -> httpx.Response:
    headers = dict(headers or {})
    headers.setdefault("Content-Type", "application/json; charset=UTF-8")
    return httpx.Response(status_code, content=json.dumps(payload), headers=headers)


def fake_api(request: httpx.Request) -> httpx.Response:
    path = request.url.path

    if path == "/v1/echo":
        return _json(200, {
            "method": request.method,
            "query": request.url.query.decode("ascii"),
            "body": request.content.decode("utf-8"),
            "authorization": request.headers.get("Authorization"),
            "trace": request.headers.get("X-Trace"),
            "content_type": request.headers.get("Content-Type"),
        })

    if path == "/v1/users/42" and request.method == "GET":
        return _json(200, {"id": 42, "name": "Alice", "roles": ["admin"]}, CACHE_HEADERS)

    if path == "/v1/missing":
        return _json(404, {"error": "missing"})

    if path == "/v1/boom":
        return httpx.Response(500, text="Internal failure")

    if path == "/v1/catalog.xml":
        return httpx.Response(
            200,
            text=CATALOG_XML,
            headers={
                "Content-Type": "application/xml; charset=UTF-8",
                "Cache-Control": "no-cache",
            },
        )

    return _json(404, {"error": "not found"})


@pytest.fixture(scope="session")
def webapi_config(tmp_path_factory) -> ConfigLoader:
    config_path = tmp_path_factory.mktemp("config") / "config.yaml"
    config_path.write_text(
        yaml.dump({
            "api": {"base_url": BASE_URL, "http_errors": True, "log_all": False},
            "assertions": {"known_media_type": "application/xml", "known_charset": "UTF-8"},
        }),
        encoding="utf-8",
    )
    return ConfigLoader(config_path=config_path)


@pytest.fixture
def http_client(webapi_config: ConfigLoader) -> Generator[HttpClient, None, None]:
    with HttpClient(webapi_config, transport=httpx.MockTransport(fake_api)) as client:
        yield client
