import json

import httpx
import pytest
from loguru import logger

from webapi_steps import ApiRequest, HttpClient, HttpClientError
from webapi_steps.http_client import MAX_RESPONSE_LENGTH

from .support import DummyConfig


def test_send_outside_context_manager_fails():
    client = HttpClient(DummyConfig({"api.base_url": "http://api.test"}))
    with pytest.raises(HttpClientError, match="context manager"):
        client.send(ApiRequest("GET", "ping"))


def test_send_joins_base_url_and_keeps_repeated_headers(make_client):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["cookies"] = request.headers.get_list("Cookie")
        seen["body"] = request.content
        return httpx.Response(200, text="ok")

    client = make_client(handler)
    response = client.send(
        ApiRequest("POST", "users?a=1", [("Cookie", "a=1"), ("Cookie", "b=2")], "payload")
    )

    assert response.status_code == 200
    assert seen["url"] == "http://api.test/v1/users?a=1"
    assert seen["cookies"] == ["a=1", "b=2"]
    assert seen["body"] == b"payload"


def test_http_errors_raise_with_embedded_response(make_client):
    client = make_client(lambda request: httpx.Response(404, json={"error": "missing"}))

    with pytest.raises(httpx.HTTPStatusError) as excinfo:
        client.send(ApiRequest("GET", "missing"))

    assert excinfo.value.response.status_code == 404


def test_http_errors_disabled_returns_error_responses(make_client):
    client = make_client(lambda request: httpx.Response(503), **{"api.http_errors": False})
    assert client.send(ApiRequest("GET", "busy")).status_code == 503


def test_base_url_accessor_and_debug_flag():
    client = HttpClient(DummyConfig({"api.base_url": "http://api.test/v2", "api.log_all": True}))
    assert client.get_base_url() == "http://api.test/v2"
    assert client.debug is True
    client.set_debug(False)
    assert client.debug is False


def test_debug_mode_still_returns_response(make_client):
    client = make_client(lambda request: httpx.Response(200, text="x" * (MAX_RESPONSE_LENGTH + 10)))
    client.set_debug(True)
    response = client.send(ApiRequest("GET", "big", [("Authorization", "Bearer t")]))
    assert len(response.text) == MAX_RESPONSE_LENGTH + 10


@pytest.fixture
def info_messages():
    messages = []
    sink_id = logger.add(messages.append, level="INFO", format="{level}|{message}")
    yield messages
    logger.remove(sink_id)


def test_debug_mode_logs_masked_exchange_at_info(make_client, info_messages):
    client = make_client(lambda request: httpx.Response(200, text="pong body"))
    client.set_debug(True)

    client.send(ApiRequest("POST", "ping", [("Authorization", "Bearer secret-t")], "ping body"))

    logged = "\n".join(str(message) for message in info_messages)
    assert "INFO|> POST http://api.test/v1/ping" in logged
    assert "authorization: ***MASKED***" in logged
    assert "secret-t" not in logged
    assert "ping body" in logged
    assert "< 200 OK" in logged
    assert "pong body" in logged


def test_exchange_is_not_logged_at_info_without_debug(make_client, info_messages):
    client = make_client(lambda request: httpx.Response(200, text="pong body"))

    client.send(ApiRequest("GET", "ping"))

    assert not any("pong body" in str(message) for message in info_messages)


def test_redact_headers_masks_sensitive_values():
    client = object.__new__(HttpClient)  # bypass __init__
    masked = client._redact_headers(
        [
            ("Authorization", "secret-token"),
            ("x-api-key", "apikey"),
            ("Cookie", "session=abc"),
            ("X-Other", "keep"),
        ]
    )
    assert masked == [
        ("Authorization", "***MASKED***"),
        ("x-api-key", "***MASKED***"),
        ("Cookie", "***MASKED***"),
        ("X-Other", "keep"),
    ]


def test_redact_text_body_masks_sensitive_json_fields():
    client = object.__new__(HttpClient)
    payload = {
        "password": "p1",
        "nested": {"token": "tok", "keep": "value"},
        "items": [{"api_key": "k1"}, {"regular": "ok"}],
    }
    redacted = json.loads(client._redact_text_body(json.dumps(payload)))

    assert redacted["password"] == "***MASKED***"
    assert redacted["nested"]["token"] == "***MASKED***"
    assert redacted["nested"]["keep"] == "value"
    assert redacted["items"][0]["api_key"] == "***MASKED***"
    assert redacted["items"][1]["regular"] == "ok"


def test_redact_text_body_passes_non_json_through():
    client = object.__new__(HttpClient)
    assert client._redact_text_body("a=1&b=2") == "a=1&b=2"
    assert client._redact_text_body(None) is None


def test_build_curl():
    client = object.__new__(HttpClient)
    curl = client._build_curl(
        "POST", "http://api.test/v1/users", [("Content-Type", "application/json")], '{"a":1}'
    )
    assert curl == (
        "curl -X POST \\\n"
        "  -H 'Content-Type: application/json' \\\n"
        "  -d '{\"a\":1}' \\\n"
        "  'http://api.test/v1/users'"
    )
