# ================================================================================
# Response Assertions
# ================================================================================
#
# Checks over the last response captured by a WebApiContext. Every check
# raises AssertionError on mismatch so the test runner reports the step as
# failed; undecodable comparison payloads raise ResponseDecodeError.
#
# Key Features:
#   - Status code, media type and charset checks
#   - Header presence / emptiness / absence / exact value checks
#   - Cacheable and well-formed composite checks
#   - Body text search, JSON subset match, XML equality
#   - XPath counting and XML Schema validation with diagnostics
#
# ================================================================================

import json
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import allure
import httpx
from loguru import logger

from .api_context import WebApiContext
from .xml_validator import (
    ResponseDecodeError,
    count_xpath,
    load_schema,
    load_schema_file,
    validate_against_schema,
    xml_equal,
)


DEFAULT_KNOWN_MEDIA_TYPE = "application/xml"
DEFAULT_KNOWN_CHARSET = "UTF-8"
CACHEABLE_DIRECTIVE = "max-age=0, private, must-revalidate"


def _as_keyed(value: Any) -> Optional[Dict[Any, Any]]:
    """View a decoded JSON container as a key -> value mapping (arrays by index)."""
    if isinstance(value, dict):
        return value
    if isinstance(value, list):
        return dict(enumerate(value))
    return None


def json_subset_mismatches(expected: Any, actual: Any) -> List[str]:
    """
    Compare two decoded JSON documents, top level only.

    ``actual`` must have at least as many keys as ``expected`` and every
    expected key must be present with a deep-equal value. Extra keys in
    ``actual`` are allowed.

    Returns:
        Human-readable mismatch descriptions; empty if ``actual`` contains ``expected``.
    """
    expected_keyed = _as_keyed(expected)
    actual_keyed = _as_keyed(actual)

    if expected_keyed is None or actual_keyed is None:
        if expected == actual:
            return []
        return [f"Expected {expected!r}, got {actual!r}"]

    if len(actual_keyed) < len(expected_keyed):
        return [
            f"Expected at least {len(expected_keyed)} keys, "
            f"got {len(actual_keyed)}: {json.dumps(actual, ensure_ascii=False)}"
        ]

    mismatches = []
    for key, needle in expected_keyed.items():
        if key not in actual_keyed:
            mismatches.append(f"Missing key '{key}'")
        elif actual_keyed[key] != needle:
            mismatches.append(
                f"Key '{key}': expected {json.dumps(needle, ensure_ascii=False)}, "
                f"got {json.dumps(actual_keyed[key], ensure_ascii=False)}"
            )
    return mismatches


class ResponseAssertions:
    """
    Assertions over ``context.last_response``.

    Example:
        checks = ResponseAssertions(api_context)
        checks.status_code_should_be(404)
        checks.should_contain_json('{"error": "missing"}')
    """

    def __init__(
        self,
        context: WebApiContext,
        known_media_type: str = DEFAULT_KNOWN_MEDIA_TYPE,
        known_charset: str = DEFAULT_KNOWN_CHARSET,
    ):
        self.context = context
        self.known_media_type = known_media_type
        self.known_charset = known_charset

    @property
    def response(self) -> httpx.Response:
        response = self.context.last_response
        if response is None:
            raise AssertionError("Response has not been set. Send a request first.")
        return response

    def _header(self, name: str) -> Optional[str]:
        """Joined value of a response header, or None when absent."""
        values = self.response.headers.get_list(name)
        if not values:
            return None
        return ", ".join(values)

    # ============================================================
    # Status and content type
    # ============================================================

    def status_code_should_be(self, code: Union[int, str]) -> None:
        expected = int(code)
        actual = self.response.status_code
        assert actual == expected, (
            f"Expected status {expected}, got {actual}. Body: {self.response.text[:1000]}"
        )

    def media_type_should_be(self, media_type: str) -> None:
        content_type = self._header("Content-Type") or ""
        assert media_type in content_type, (
            f"Expected media type '{media_type}' in Content-Type, got '{content_type}'"
        )

    def media_type_should_be_known(self) -> None:
        self.media_type_should_be(self.known_media_type)

    def charset_should_be(self, charset: str) -> None:
        content_type = self._header("Content-Type") or ""
        assert charset in content_type, (
            f"Expected charset '{charset}' in Content-Type, got '{content_type}'"
        )

    def charset_should_be_known(self) -> None:
        self.charset_should_be(self.known_charset)

    # ============================================================
    # Headers
    # ============================================================

    def header_should_exist(self, name: str) -> None:
        assert self._header(name) is not None, f"Header '{name}' should be present"

    def header_should_not_exist(self, name: str) -> None:
        value = self._header(name)
        assert value is None, f"Header '{name}' should be absent, got '{value}'"

    def header_should_not_be_empty(self, name: str) -> None:
        value = self._header(name)
        assert value is not None and value.strip(), f"Header '{name}' should not be empty"

    def should_contain_header(self, name: str, value: str) -> None:
        actual = self._header(name)
        assert actual == value, (
            f"Expected header '{name}' to be '{value}', got '{actual}'"
        )

    def etag_should_not_be_empty(self) -> None:
        self.header_should_not_be_empty("ETag")

    def date_should_not_be_empty(self) -> None:
        self.header_should_not_be_empty("Date")

    def last_modified_should_not_be_empty(self) -> None:
        self.header_should_not_be_empty("Last-Modified")

    def last_modified_should_be_unknown(self) -> None:
        self.header_should_not_exist("Last-Modified")

    def cache_control_should_not_be_empty(self) -> None:
        self.header_should_not_be_empty("Cache-Control")

    def should_be_cacheable(self) -> None:
        self.etag_should_not_be_empty()
        self.date_should_not_be_empty()
        self.last_modified_should_not_be_empty()
        self.cache_control_should_not_be_empty()
        self.should_contain_header("Cache-Control", CACHEABLE_DIRECTIVE)

    def should_be_well_formed(self) -> None:
        self.media_type_should_be_known()
        self.charset_should_be_known()
        self.cache_control_should_not_be_empty()

    # ============================================================
    # Body
    # ============================================================

    def should_contain_text(self, text: str) -> None:
        """Case-insensitive literal search over the raw body."""
        body = self.response.text
        assert re.search(re.escape(text), body, re.IGNORECASE), (
            f"Response does not contain '{text}': {body[:1000]}"
        )

    def should_not_contain_text(self, text: str) -> None:
        """Case-sensitive literal search over the raw body."""
        body = self.response.text
        assert text not in body, f"Response should not contain '{text}': {body[:1000]}"

    def should_contain_json(self, fragment: str) -> None:
        """
        Check that the body contains the given JSON fragment.

        This is a top-level subset match: the body may carry more keys than
        the fragment, but every fragment key must be present with an equal value.
        """
        expected_text = self.context.replace_placeholders(fragment)
        expected = self._decode_json(expected_text, "etalon")
        actual = self._decode_json(self.response.text, "actual")

        mismatches = json_subset_mismatches(expected, actual)
        if mismatches:
            logger.warning(f"JSON subset match failed: {mismatches}")
            raise AssertionError(
                "Response JSON does not contain the expected fragment:\n"
                + "\n".join(f"- {m}" for m in mismatches)
            )

    def should_contain_xml(self, fragment: str) -> None:
        """
        Check the body against an XML document.

        Despite the step wording this is a full-document equality check
        (after whitespace normalization and canonicalization).
        """
        expected_text = self.context.replace_placeholders(fragment)
        passed, expected_c14n, actual_c14n = xml_equal(expected_text, self.response.content)
        assert passed, (
            "Response XML is not equal to the expected document.\n"
            f"Expected:\n{expected_c14n}\n"
            f"Actual:\n{actual_c14n}"
        )

    def should_contain_xpath_count(self, count: Union[int, str], expression: str) -> None:
        expected = int(count)
        actual = count_xpath(self.response.content, expression)
        assert actual == expected, (
            f"Expected {expected} xml elements matching '{expression}', found {actual}"
        )

    def should_match_xml_schema(self, schema_source: str) -> None:
        schema = load_schema(self.context.replace_placeholders(schema_source))
        self._assert_schema(schema)

    def should_match_xml_schema_file(self, path: Union[str, Path]) -> None:
        schema = load_schema_file(self.context.replace_placeholders(str(path)))
        self._assert_schema(schema)

    def _assert_schema(self, schema) -> None:
        diagnostics = validate_against_schema(self.response.content, schema)
        if diagnostics:
            report = "\n\n".join(diagnostics)
            allure.attach(
                report,
                name="XML Schema Errors",
                attachment_type=allure.attachment_type.TEXT
            )
            raise AssertionError(
                f"Response does not match xml schema "
                f"({len(diagnostics)} error(s)):\n{report}"
            )

    def _decode_json(self, text: str, label: str) -> Any:
        try:
            value = json.loads(text)
        except ValueError:
            value = None

        if value is None:
            raise ResponseDecodeError(f"Can not convert {label} to json:\n{text}")
        return value


__all__ = [
    "CACHEABLE_DIRECTIVE",
    "DEFAULT_KNOWN_CHARSET",
    "DEFAULT_KNOWN_MEDIA_TYPE",
    "ResponseAssertions",
    "ResponseDecodeError",
    "json_subset_mismatches",
]
