# ================================================================================
# XML Validator
# ================================================================================
#
# XML helpers behind the response assertions:
#   - Parsing with entity resolution and network access disabled
#   - Canonical (C14N) comparison of two documents
#   - XPath counting with the document's prefixed namespaces bound
#   - XML Schema validation with a readable, line-annotated error report
#
# ================================================================================

from pathlib import Path
from typing import Dict, List, Union

from loguru import logger
from lxml import etree


class ResponseDecodeError(Exception):
    """Raised when an expected payload or the response body cannot be decoded."""
    pass


SEVERITY_NAMES = {
    "WARNING": "Warning",
    "ERROR": "Error",
    "FATAL": "Fatal Error",
}


def _parser(remove_blank_text: bool = False) -> etree.XMLParser:
    return etree.XMLParser(
        remove_blank_text=remove_blank_text,
        resolve_entities=False,
        no_network=True,
    )


def _as_bytes(source: Union[str, bytes]) -> bytes:
    if isinstance(source, bytes):
        return source
    return source.encode("utf-8")


def parse_xml(
    source: Union[str, bytes],
    label: str = "xml",
    remove_blank_text: bool = False,
) -> etree._Element:
    """
    Parse an XML document.

    Args:
        source: Document text or bytes
        label: Name used in the error message ("etalon", "actual", ...)
        remove_blank_text: Drop ignorable whitespace between elements

    Raises:
        ResponseDecodeError: If the document is not well-formed
    """
    try:
        return etree.fromstring(_as_bytes(source), _parser(remove_blank_text))
    except etree.XMLSyntaxError as e:
        text = source.decode("utf-8", errors="replace") if isinstance(source, bytes) else source
        raise ResponseDecodeError(f"Can not convert {label} to xml ({e}):\n{text}") from e


def canonicalize(element: etree._Element) -> str:
    """Return the C14N serialization of an element tree, comments excluded."""
    return etree.tostring(element, method="c14n", with_comments=False).decode("utf-8")


def xml_equal(expected: Union[str, bytes], actual: Union[str, bytes]) -> tuple:
    """
    Compare two documents for XML equivalence.

    Ignorable whitespace is dropped and both trees are canonicalized, so
    attribute order, quoting and empty-element style do not matter.

    Returns:
        (passed, expected_c14n, actual_c14n)
    """
    expected_c14n = canonicalize(parse_xml(expected, "etalon", remove_blank_text=True))
    actual_c14n = canonicalize(parse_xml(actual, "actual", remove_blank_text=True))
    return expected_c14n == actual_c14n, expected_c14n, actual_c14n


def count_xpath(source: Union[str, bytes], expression: str) -> int:
    """
    Evaluate an XPath expression against a document and count the result.

    Node-set results are counted by length; numeric results (e.g. ``count(//item)``)
    are returned as int. Namespace prefixes declared on the root are available
    to the expression.

    Raises:
        ResponseDecodeError: If the document or the expression is invalid
    """
    root = parse_xml(source, "actual")
    namespaces: Dict[str, str] = {
        prefix: uri for prefix, uri in root.nsmap.items() if prefix
    }

    try:
        result = root.xpath(expression, namespaces=namespaces)
    except etree.XPathError as e:
        raise ResponseDecodeError(f"Invalid XPath expression '{expression}': {e}") from e

    if isinstance(result, bool):
        return int(result)
    if isinstance(result, float):
        return int(result)
    if isinstance(result, list):
        return len(result)
    return 1 if result else 0


def load_schema(schema_source: Union[str, bytes]) -> etree.XMLSchema:
    """
    Compile an XML Schema document.

    Raises:
        ResponseDecodeError: If the schema is not well-formed or not a valid XSD
    """
    schema_doc = parse_xml(schema_source, "schema")
    try:
        return etree.XMLSchema(schema_doc)
    except etree.XMLSchemaParseError as e:
        raise ResponseDecodeError(f"Can not load xml schema: {e}") from e


def load_schema_file(path: Union[str, Path]) -> etree.XMLSchema:
    path = Path(path)
    if not path.exists():
        raise ResponseDecodeError(f"XML schema file not found: {path}")
    return load_schema(path.read_bytes())


def format_schema_error(error, source_lines: List[str]) -> str:
    """
    Render one libxml2 error log entry:

        <offending source line>
        -----^
        Error 1871: Element 'b': This element is not expected.
          Line: 3
          Column: 0
    """
    line_text = ""
    if 0 < error.line <= len(source_lines):
        line_text = source_lines[error.line - 1]

    column = max(error.column, 0)
    severity = SEVERITY_NAMES.get(error.level_name, error.level_name.title())

    return (
        f"{line_text}\n"
        f"{'-' * column}^\n"
        f"{severity} {error.type}: {error.message.strip()}\n"
        f"  Line: {error.line}\n"
        f"  Column: {column}"
    )


def validate_against_schema(
    source: Union[str, bytes], schema: etree.XMLSchema
) -> List[str]:
    """
    Validate a document against a compiled schema.

    Returns:
        One formatted diagnostic per validation error; empty if valid.
    """
    document = parse_xml(source, "actual")
    if schema.validate(document):
        return []

    text = source.decode("utf-8", errors="replace") if isinstance(source, bytes) else source
    source_lines = text.splitlines()
    diagnostics = [format_schema_error(error, source_lines) for error in schema.error_log]
    logger.debug(f"XML schema validation produced {len(diagnostics)} error(s)")
    return diagnostics


__all__ = [
    "ResponseDecodeError",
    "canonicalize",
    "count_xpath",
    "format_schema_error",
    "load_schema",
    "load_schema_file",
    "parse_xml",
    "validate_against_schema",
    "xml_equal",
]
