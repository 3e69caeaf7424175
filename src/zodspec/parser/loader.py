"""Load OpenAPI documents from a URL, local file, or stdin.

This module handles all I/O for fetching raw OpenAPI documents and turning
them into Python dictionaries. JSON and YAML are both accepted with
automatic format detection.

The two public functions are:

* :func:`load_spec` -- load and parse a document from any supported source.
* :func:`validate_openapi_version` -- check and return the ``openapi``
  version string, rejecting Swagger 2.x documents.

The raw dict is then handed to
:func:`~zodspec.parser.extractor.extract_document`.
"""

from __future__ import annotations

import datetime
import json
import logging
import sys
from pathlib import Path
from typing import Any

import httpx
import yaml

from zodspec.exceptions import SpecParseError

logger = logging.getLogger(__name__)


def load_spec(source: str, timeout: float = 30.0) -> dict[str, Any]:
    """Load an OpenAPI document from URL, file path, or stdin (``"-"``).

    Args:
        source: An ``http(s)://`` URL, a file path, or ``"-"`` for stdin.
        timeout: Timeout in seconds for URL sources.

    Returns:
        The parsed document as a dictionary.

    Raises:
        SpecParseError: If the source cannot be read or parsed.
    """
    if source == "-":
        logger.debug("Reading OpenAPI document from stdin")
        try:
            content = sys.stdin.read()
        except OSError as exc:
            raise SpecParseError(f"Failed to read from stdin: {exc}") from exc
        if not content.strip():
            raise SpecParseError("No input received from stdin")
        return _parse_content(content)

    if source.startswith(("http://", "https://")):
        return _load_from_url(source, timeout)

    return _load_from_file(source)


def _load_from_url(url: str, timeout: float) -> dict[str, Any]:
    """Fetch a document over HTTP, using the response content type as a format hint."""
    logger.debug("Fetching OpenAPI document from %s", url)
    try:
        response = httpx.get(url, timeout=timeout, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise SpecParseError(
            f"HTTP {exc.response.status_code} fetching spec from {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise SpecParseError(f"Failed to fetch spec from {url}: {exc}") from exc

    content_type = response.headers.get("content-type", "")
    hint = ""
    if "json" in content_type:
        hint = "json"
    elif "yaml" in content_type or "yml" in content_type:
        hint = "yaml"
    return _parse_content(response.text, hint=hint)


def _load_from_file(path: str) -> dict[str, Any]:
    """Read a local ``.json``/``.yaml``/``.yml`` file (other suffixes are sniffed)."""
    file_path = Path(path)
    if not file_path.is_file():
        raise SpecParseError(f"Spec file not found: {path}")

    logger.debug("Reading OpenAPI document from %s", file_path)
    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SpecParseError(f"Failed to read spec file {path}: {exc}") from exc

    if not content.strip():
        raise SpecParseError(f"Spec file is empty: {path}")

    suffix = file_path.suffix.lower()
    hint = ""
    if suffix == ".json":
        hint = "json"
    elif suffix in (".yaml", ".yml"):
        hint = "yaml"
    return _parse_content(content, hint=hint)


def _parse_content(content: str, hint: str = "") -> dict[str, Any]:
    """Parse *content* as JSON, falling back to YAML.

    JSON is tried first unless the hint says YAML: every JSON document is
    valid YAML, but the JSON parser is stricter and gives better errors.

    Raises:
        SpecParseError: If the content is neither, or is not a mapping.
    """
    json_error: Exception | None = None

    if hint != "yaml":
        try:
            return _require_mapping(json.loads(content))
        except json.JSONDecodeError as exc:
            if hint == "json":
                raise SpecParseError(f"Invalid JSON: {exc}") from exc
            json_error = exc

    try:
        return _require_mapping(_json_compatible(yaml.safe_load(content)))
    except yaml.YAMLError as exc:
        msg = "Failed to parse spec as JSON or YAML"
        if json_error:
            msg += f"\n  JSON error: {json_error}"
        msg += f"\n  YAML error: {exc}"
        raise SpecParseError(msg) from exc


def _json_compatible(value: Any) -> Any:
    """Replace YAML timestamps with the ISO strings a JSON document would hold.

    ``yaml.safe_load`` turns unquoted dates such as ``2020-01-01`` into
    ``date`` objects, in keys as well as values.
    """
    if isinstance(value, dict):
        return {_json_compatible(key): _json_compatible(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_json_compatible(item) for item in value]
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    return value


def _require_mapping(result: Any) -> dict[str, Any]:
    if not isinstance(result, dict):
        kind = type(result).__name__ if result is not None else "empty document"
        raise SpecParseError(f"Spec must be a JSON/YAML object (got {kind})")
    return result


def validate_openapi_version(spec: dict[str, Any]) -> str:
    """Validate and return the OpenAPI version string.

    Any ``3.x`` version is accepted; Swagger 2.x and documents without an
    ``openapi`` field are rejected.

    Raises:
        SpecParseError: If the version is missing or not 3.x.
    """
    if "swagger" in spec:
        raise SpecParseError(
            f"Swagger {spec['swagger']} is not supported. "
            "Only OpenAPI 3.x documents can be compiled. "
            "Consider converting with https://converter.swagger.io"
        )

    openapi_version = spec.get("openapi")
    if openapi_version is None:
        raise SpecParseError(
            "Missing 'openapi' field. Is this an OpenAPI 3.x document?"
        )

    version_str = str(openapi_version)
    if not version_str.startswith("3."):
        raise SpecParseError(
            f"Unsupported OpenAPI version: {version_str}. "
            "Only OpenAPI 3.x documents can be compiled."
        )
    if not version_str.startswith(("3.0.", "3.1.")):
        logger.warning("OpenAPI %s is newer than 3.1; compiling anyway", version_str)
    return version_str
