"""Step definitions binding Gherkin phrases to HTTP requests and response checks.

Enable them in a project's root ``conftest.py``::

    pytest_plugins = ["webapi_steps.steps"]
"""

import allure
from loguru import logger
from pytest_bdd import given, parsers, then, when

from .api_context import WebApiContext
from .fixtures import (  # noqa: F401 - registered as plugin fixtures
    api_context,
    http_client,
    response_assertions,
    webapi_config,
)
from .log_setup import init_logger
from .response_assertions import ResponseAssertions


def pytest_configure(config):
    """Set up logging and register the markers used by step-driven suites."""
    init_logger()
    config.addinivalue_line("markers", "api: Web API scenarios")
    config.addinivalue_line("markers", "bdd: Gherkin-driven scenarios")


def pytest_bdd_step_error(request, feature, scenario, step, step_func, step_func_args, exception):
    """Attach step failure details to the report."""
    logger.error(f"Step failed: {step.keyword} {step.name} -> {exception}")
    allure.attach(
        f"{feature.name} / {scenario.name}\n{step.keyword} {step.name}\n\n{exception}",
        name="Step Error",
        attachment_type=allure.attachment_type.TEXT
    )


SEND = r'(?:I )?send a (?P<method>[A-Z]+) request to "(?P<url>[^"]+)"'


# ==================== GIVEN Steps ====================

@given(parsers.re(r'I am authenticating as "(?P<username>[^"]*)" with "(?P<password>[^"]*)" password'))
def authenticating_as(api_context: WebApiContext, username: str, password: str):
    """Add a Basic Authorization header to the next requests."""
    api_context.authenticate_basic(username, password)


@given(parsers.re(r'I am authenticating with "(?P<token>[^"]*)" token'))
def authenticating_with_token(api_context: WebApiContext, token: str):
    """Add a Bearer Authorization header to the next requests."""
    api_context.authenticate_bearer(token)


@given(parsers.re(r'I set header "(?P<name>[^"]*)" with value "(?P<value>[^"]*)"'))
def set_header(api_context: WebApiContext, name: str, value: str):
    api_context.add_header(name, value)


@given(parsers.re(r'I set placeholder "(?P<key>[^"]*)" with value "(?P<value>[^"]*)"'))
def set_placeholder(api_context: WebApiContext, key: str, value: str):
    api_context.set_placeholder(key, value)


# ==================== WHEN Steps ====================

@when(parsers.re(SEND))
def send_request(api_context: WebApiContext, method: str, url: str):
    api_context.send_request(method, url)


@when(parsers.re(SEND + r" with values:"))
def send_request_with_values(api_context: WebApiContext, method: str, url: str, datatable):
    api_context.send_request_with_values(method, url, datatable)


@when(parsers.re(SEND + r" with query parameters:"))
def send_request_with_query(api_context: WebApiContext, method: str, url: str, datatable):
    api_context.send_request_with_query(method, url, datatable)


@when(parsers.re(SEND + r" with body:"))
def send_request_with_body(api_context: WebApiContext, method: str, url: str, docstring: str):
    api_context.send_request_with_body(method, url, docstring)


@when(parsers.re(SEND + r" with form data:"))
def send_request_with_form_data(api_context: WebApiContext, method: str, url: str, docstring: str):
    api_context.send_request_with_form_data(method, url, docstring)


# ==================== THEN Steps ====================

@then(parsers.re(r"(?:the )?response code should be (?P<code>\d+)"))
def response_code_should_be(response_assertions: ResponseAssertions, code: str):
    response_assertions.status_code_should_be(code)


@then(parsers.re(r'(?:the )?response media type should be "(?P<media_type>[^"]*)"'))
def response_media_type_should_be(response_assertions: ResponseAssertions, media_type: str):
    response_assertions.media_type_should_be(media_type)


@then(parsers.re(r"(?:the )?response media type should be known"))
def response_media_type_should_be_known(response_assertions: ResponseAssertions):
    response_assertions.media_type_should_be_known()


@then(parsers.re(r'(?:the )?response charset should be "(?P<charset>[^"]*)"'))
def response_charset_should_be(response_assertions: ResponseAssertions, charset: str):
    response_assertions.charset_should_be(charset)


@then(parsers.re(r"(?:the )?response charset should be known"))
def response_charset_should_be_known(response_assertions: ResponseAssertions):
    response_assertions.charset_should_be_known()


@then(parsers.re(r"(?:the )?response etag should be not empty"))
def response_etag_should_not_be_empty(response_assertions: ResponseAssertions):
    response_assertions.etag_should_not_be_empty()


@then(parsers.re(r"(?:the )?response date should be not empty"))
def response_date_should_not_be_empty(response_assertions: ResponseAssertions):
    response_assertions.date_should_not_be_empty()


@then(parsers.re(r"(?:the )?response last modified should not be empty"))
def response_last_modified_should_not_be_empty(response_assertions: ResponseAssertions):
    response_assertions.last_modified_should_not_be_empty()


@then(parsers.re(r"(?:the )?response last modified should be unknown"))
def response_last_modified_should_be_unknown(response_assertions: ResponseAssertions):
    response_assertions.last_modified_should_be_unknown()


@then(parsers.re(r"(?:the )?response cache-control should be not empty"))
def response_cache_control_should_not_be_empty(response_assertions: ResponseAssertions):
    response_assertions.cache_control_should_not_be_empty()


@then(parsers.re(r"(?:the )?response should be cacheable"))
def response_should_be_cacheable(response_assertions: ResponseAssertions):
    response_assertions.should_be_cacheable()


@then(parsers.re(r"(?:the )?response should be well-formed"))
def response_should_be_well_formed(response_assertions: ResponseAssertions):
    response_assertions.should_be_well_formed()


@then(parsers.re(r'(?:the )?response should contain header "(?P<name>[^"]*)" with value "(?P<value>[^"]*)"'))
def response_should_contain_header(response_assertions: ResponseAssertions, name: str, value: str):
    response_assertions.should_contain_header(name, value)


@then(parsers.re(r'(?:the )?response header "(?P<name>[^"]*)" should not be empty'))
def response_header_should_not_be_empty(response_assertions: ResponseAssertions, name: str):
    response_assertions.header_should_not_be_empty(name)


@then(parsers.re(r'(?:the )?response header "(?P<name>[^"]*)" should exist'))
def response_header_should_exist(response_assertions: ResponseAssertions, name: str):
    response_assertions.header_should_exist(name)


@then(parsers.re(r'(?:the )?response header "(?P<name>[^"]*)" should not exist'))
def response_header_should_not_exist(response_assertions: ResponseAssertions, name: str):
    response_assertions.header_should_not_exist(name)


@then(parsers.re(r'(?:the )?response should contain "(?P<text>[^"]*)"'))
def response_should_contain(response_assertions: ResponseAssertions, text: str):
    response_assertions.should_contain_text(text)


@then(parsers.re(r'(?:the )?response should not contain "(?P<text>[^"]*)"'))
def response_should_not_contain(response_assertions: ResponseAssertions, text: str):
    response_assertions.should_not_contain_text(text)


@then(parsers.re(r"(?:the )?response should contain json:"))
def response_should_contain_json(response_assertions: ResponseAssertions, docstring: str):
    response_assertions.should_contain_json(docstring)


@then(parsers.re(r"(?:the )?response should contain xml:"))
def response_should_contain_xml(response_assertions: ResponseAssertions, docstring: str):
    response_assertions.should_contain_xml(docstring)


@then(parsers.re(r'(?:the )?response should contain (?P<count>\d+) xml elements matching xpath "(?P<expression>[^"]+)"'))
def response_should_contain_xpath_count(response_assertions: ResponseAssertions, count: str, expression: str):
    response_assertions.should_contain_xpath_count(count, expression)


@then(parsers.re(r"(?:the )?response should match xml schema:"))
def response_should_match_xml_schema(response_assertions: ResponseAssertions, docstring: str):
    response_assertions.should_match_xml_schema(docstring)


@then(parsers.re(r'(?:the )?response should match xml schema "(?P<path>[^"]+)"'))
def response_should_match_xml_schema_file(response_assertions: ResponseAssertions, path: str):
    response_assertions.should_match_xml_schema_file(path)


@then("print response")
def print_response(api_context: WebApiContext):
    """Write the last exchange to stdout for debugging."""
    print(api_context.describe_last_exchange())
