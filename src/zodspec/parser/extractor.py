"""Extract named schemas and operations from a raw OpenAPI document.

This module walks a raw (unresolved) OpenAPI dictionary and builds an
:class:`~zodspec.models.OpenAPIDocument`: the ``components/schemas`` map
parsed into :class:`~zodspec.models.SchemaNode` trees, and every operation
as an :class:`~zodspec.models.OperationSpec`.

The single public entry point is :func:`extract_document`. Internally it
delegates to private helpers that each handle one section of the document:

* ``_extract_info`` -- the ``info`` object.
* ``_extract_schemas`` -- ``components/schemas``, in document order.
* ``_extract_operations`` -- the ``paths`` object, paths in document order
  and the methods of each path in the order they are written.

Parameter merging follows the OpenAPI specification: path-level parameters
provide defaults, and operation-level parameters override them when they
share the same ``name`` and ``in`` values. Parameter, request body and
response ``$ref``s are followed here; schema ``$ref``s are left for the
compiler.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from zodspec.exceptions import UnsupportedKeywordWarning
from zodspec.models import (
    APIInfo,
    HTTPMethod,
    OpenAPIDocument,
    OperationSpec,
    ParameterLocation,
    ParameterSpec,
    RequestBodySpec,
    ResponseSpec,
    SchemaNode,
)
from zodspec.parser.nodes import escape_pointer, parse_schema
from zodspec.parser.resolver import resolve_component

logger = logging.getLogger(__name__)

_HTTP_METHODS = frozenset(m.value for m in HTTPMethod)

# application/json, application/problem+json, application/vnd.api+json; charset=...
_JSON_MEDIA_TYPE = re.compile(r"^application/([\w.-]+\+)?json\b", re.IGNORECASE)


def is_json_media_type(content_type: str) -> bool:
    """Whether *content_type* is JSON or a ``+json`` structured syntax suffix type."""
    return bool(_JSON_MEDIA_TYPE.match(content_type))


def extract_document(
    raw_spec: dict[str, Any], openapi_version: Optional[str] = None
) -> OpenAPIDocument:
    """Extract an :class:`~zodspec.models.OpenAPIDocument` from a raw OpenAPI dict.

    Args:
        raw_spec: The raw document as returned by
            :func:`~zodspec.parser.loader.load_spec`.
        openapi_version: The validated version string, as returned by
            :func:`~zodspec.parser.loader.validate_openapi_version`. Read
            from the document when omitted.

    Returns:
        The extracted document. Schema problems that were recovered from are
        listed in its ``warnings``.

    Raises:
        SpecParseError: If a parameter, request body or response ``$ref``
            cannot be followed.

    Example::

        raw = load_spec("petstore.yaml")
        document = extract_document(raw, validate_openapi_version(raw))
        for op in document.operations:
            print(f"{op.method.value.upper()} {op.path}")
    """
    warnings: list[UnsupportedKeywordWarning] = []
    version = openapi_version or str(raw_spec.get("openapi", ""))
    document = OpenAPIDocument(
        info=_extract_info(raw_spec),
        openapi_version=version,
        schemas=_extract_schemas(raw_spec, warnings),
        operations=_extract_operations(raw_spec, warnings),
        warnings=warnings,
    )
    logger.debug(
        "Extracted %d schemas and %d operations",
        len(document.schemas),
        len(document.operations),
    )
    return document


def _extract_info(spec: dict[str, Any]) -> APIInfo:
    info = spec.get("info")
    if not isinstance(info, dict):
        info = {}
    return APIInfo(
        title=str(info.get("title", "Untitled API")),
        version=str(info.get("version", "0.0.0")),
        description=info.get("description"),
    )


def _extract_schemas(
    spec: dict[str, Any], warnings: list[UnsupportedKeywordWarning]
) -> dict[str, SchemaNode]:
    """Parse every entry of ``components/schemas``, keeping document order."""
    components = spec.get("components")
    raw_schemas = components.get("schemas") if isinstance(components, dict) else None
    if not isinstance(raw_schemas, dict):
        return {}
    return {
        str(name): parse_schema(
            raw, f"#/components/schemas/{escape_pointer(str(name))}", warnings
        )
        for name, raw in raw_schemas.items()
    }


def _extract_operations(
    spec: dict[str, Any], warnings: list[UnsupportedKeywordWarning]
) -> list[OperationSpec]:
    """Extract all operations from the document's ``paths`` object.

    Path-level parameters are merged into each operation of the path, with
    operation-level parameters taking precedence.
    """
    paths = spec.get("paths")
    if not isinstance(paths, dict):
        return []

    operations: list[OperationSpec] = []
    for path, path_item in paths.items():
        path_item = resolve_component(path_item, spec)
        if not isinstance(path_item, dict):
            continue

        path_pointer = f"#/paths/{escape_pointer(str(path))}"
        path_params = _resolve_list(path_item.get("parameters"), spec)

        for method_str, operation in path_item.items():
            if method_str not in _HTTP_METHODS or not isinstance(operation, dict):
                continue

            pointer = f"{path_pointer}/{method_str}"
            merged = _merge_parameters(
                path_params, _resolve_list(operation.get("parameters"), spec)
            )
            parameters = [
                param
                for param in (
                    _extract_parameter(raw, f"{pointer}/parameters/{index}", warnings)
                    for index, raw in enumerate(merged)
                )
                if param is not None
            ]

            operations.append(
                OperationSpec(
                    path=str(path),
                    method=HTTPMethod(method_str),
                    operation_id=operation.get("operationId"),
                    summary=operation.get("summary"),
                    description=operation.get("description"),
                    deprecated=operation.get("deprecated") is True,
                    parameters=tuple(parameters),
                    request_body=_extract_request_body(
                        operation.get("requestBody"), spec, f"{pointer}/requestBody", warnings
                    ),
                    responses=_extract_responses(
                        operation.get("responses"), spec, f"{pointer}/responses", warnings
                    ),
                )
            )

    return operations


def _resolve_list(items: Any, spec: dict[str, Any]) -> list[dict[str, Any]]:
    """Follow the ``$ref`` of every entry of a parameter list, dropping non-objects."""
    if not isinstance(items, list):
        return []
    resolved = (resolve_component(item, spec) for item in items)
    return [item for item in resolved if isinstance(item, dict)]


def _merge_parameters(
    path_params: list[dict[str, Any]],
    op_params: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Merge path-level and operation-level parameters.

    Operation-level parameters override path-level parameters with the same
    name and location (``in`` field), per the OpenAPI spec.
    """
    op_keys = {(p.get("name", ""), p.get("in", "")) for p in op_params}
    merged = [
        p for p in path_params if (p.get("name", ""), p.get("in", "")) not in op_keys
    ]
    merged.extend(op_params)
    return merged


def _extract_parameter(
    param: dict[str, Any],
    pointer: str,
    warnings: list[UnsupportedKeywordWarning],
) -> Optional[ParameterSpec]:
    """Convert one raw parameter; unknown ``in`` values are skipped with a warning."""
    name = str(param.get("name", ""))
    try:
        location = ParameterLocation(param.get("in", "query"))
    except ValueError:
        warnings.append(
            UnsupportedKeywordWarning(
                f"parameter '{name}' has unsupported location {param.get('in')!r}; skipped",
                keyword="in",
                location=pointer,
            )
        )
        return None
    if location == ParameterLocation.BODY:
        # OpenAPI 2 style body parameters are not valid in 3.x.
        warnings.append(
            UnsupportedKeywordWarning(
                f"parameter '{name}' uses 'in: body'; use requestBody instead",
                keyword="in",
                location=pointer,
            )
        )
        return None

    node: Optional[SchemaNode] = None
    if "schema" in param:
        node = parse_schema(param["schema"], f"{pointer}/schema", warnings)
    else:
        content_type, raw_schema = _pick_media(param.get("content"))
        if raw_schema is not None:
            node = parse_schema(
                raw_schema,
                f"{pointer}/content/{escape_pointer(content_type or '')}/schema",
                warnings,
            )

    # OpenAPI requires path parameters
    required = param.get("required") is True or location == ParameterLocation.PATH

    return ParameterSpec(
        name=name,
        location=location,
        required=required,
        description=param.get("description"),
        node=node,
    )


def _extract_request_body(
    body: Any,
    spec: dict[str, Any],
    pointer: str,
    warnings: list[UnsupportedKeywordWarning],
) -> Optional[RequestBodySpec]:
    if body is None:
        return None
    body = resolve_component(body, spec)
    if not isinstance(body, dict):
        return None

    content_type, raw_schema = _pick_media(body.get("content"))
    node = None
    if raw_schema is not None:
        node = parse_schema(
            raw_schema,
            f"{pointer}/content/{escape_pointer(content_type or '')}/schema",
            warnings,
        )
    return RequestBodySpec(
        required=body.get("required") is True,
        description=body.get("description"),
        content_type=content_type,
        node=node,
    )


def _extract_responses(
    responses: Any,
    spec: dict[str, Any],
    pointer: str,
    warnings: list[UnsupportedKeywordWarning],
) -> tuple[ResponseSpec, ...]:
    """Extract every declared response, keeping document order."""
    if not isinstance(responses, dict):
        return ()

    result: list[ResponseSpec] = []
    for status, response in responses.items():
        response = resolve_component(response, spec)
        if not isinstance(response, dict):
            continue

        status_str = str(status)
        content_type, raw_schema = _pick_media(response.get("content"))
        node = None
        if raw_schema is not None:
            node = parse_schema(
                raw_schema,
                f"{pointer}/{escape_pointer(status_str)}/content/"
                f"{escape_pointer(content_type or '')}/schema",
                warnings,
            )
        result.append(
            ResponseSpec(
                status=status_str,
                description=response.get("description"),
                content_type=content_type,
                node=node,
            )
        )
    return tuple(result)


def _pick_media(content: Any) -> tuple[Optional[str], Optional[Any]]:
    """Choose the media type an endpoint is typed from.

    JSON-like media types win, then ``*/*``, then the first entry. Returns
    ``(content_type, raw_schema)``; the schema is ``None`` when the chosen
    media type declares none.
    """
    if not isinstance(content, dict) or not content:
        return None, None

    media_types = [str(ct) for ct in content]
    chosen = next((ct for ct in media_types if is_json_media_type(ct)), None)
    if chosen is None:
        chosen = "*/*" if "*/*" in media_types else media_types[0]

    media = content.get(chosen)
    if isinstance(media, dict) and "schema" in media:
        return chosen, media["schema"]
    return chosen, None
