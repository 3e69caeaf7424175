"""OpenAPI document parser -- load, parse schema nodes, and extract operations.

This sub-package is responsible for the first half of the zodspec pipeline:
turning a raw OpenAPI 3.x document (JSON or YAML, local file or remote URL)
into an :class:`~zodspec.models.OpenAPIDocument` that the compiler can
consume.

Typical usage::

    from zodspec.parser import extract_document, load_spec, validate_openapi_version

    raw = load_spec("https://petstore3.swagger.io/api/v3/openapi.json")
    version = validate_openapi_version(raw)
    document = extract_document(raw, version)

or, in one step, ``load_document(source)``.

Sub-modules:

* :mod:`~zodspec.parser.loader` -- I/O layer (URL, file, stdin) plus format
  detection and OpenAPI version validation.
* :mod:`~zodspec.parser.resolver` -- JSON pointer lookup for parameter,
  request body and response ``$ref``s.
* :mod:`~zodspec.parser.nodes` -- raw schema dicts to
  :class:`~zodspec.models.SchemaNode` trees.
* :mod:`~zodspec.parser.extractor` -- walks the document and produces the
  :class:`~zodspec.models.OpenAPIDocument`.
"""

from zodspec.models import OpenAPIDocument
from zodspec.parser.extractor import extract_document
from zodspec.parser.loader import load_spec, validate_openapi_version
from zodspec.parser.nodes import parse_schema


def load_document(source: str) -> OpenAPIDocument:
    """Load, validate and extract the document at *source* (path, URL or ``-``)."""
    raw = load_spec(source)
    return extract_document(raw, validate_openapi_version(raw))


__all__ = [
    "load_spec",
    "load_document",
    "validate_openapi_version",
    "extract_document",
    "parse_schema",
]
