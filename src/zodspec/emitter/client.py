"""Render a :class:`~zodspec.models.CompilationResult` as a Zodios API client.

The generated TypeScript module contains:

* one ``const`` per named declaration, in dependency order;
* an exported ``schemas`` object listing every declaration (optional);
* the ``endpoints`` array passed to ``makeApi``;
* an exported ``Zodios`` instance and a ``createApiClient`` factory.

Rendering uses the Jinja2 template ``templates/client.ts.j2``. Every Zod
expression is rendered in Python by :func:`~zodspec.emitter.zod.render_expression`
before it reaches the template, so the template only lays out the file.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Mapping, Optional

from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape

from zodspec.exceptions import RenderError
from zodspec.models import (
    CompilationResult,
    EndpointDescriptor,
    GeneratorConfig,
    ParameterLocation,
)
from zodspec.emitter.zod import js_literal, render_expression

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"
"""Path to the Jinja2 template directory (``emitter/templates/``)."""

_PATH_PARAM = re.compile(r"\{([^{}]+)\}")

# Parameter type names understood by makeApi.
_PARAMETER_TYPES = {
    ParameterLocation.QUERY: "Query",
    ParameterLocation.PATH: "Path",
    ParameterLocation.HEADER: "Header",
    ParameterLocation.BODY: "Body",
}


def to_client_path(path: str) -> str:
    """Rewrite OpenAPI path templates to Express style: ``/pets/{id}`` -> ``/pets/:id``."""
    return _PATH_PARAM.sub(lambda match: f":{match.group(1)}", path)


def render_client(
    result: CompilationResult, config: Optional[GeneratorConfig] = None
) -> str:
    """Render the full client module for *result*.

    Args:
        result: Output of :func:`~zodspec.compiler.compile_document`.
        config: Generator options (``export_schemas``, ``api_client_name``).

    Returns:
        The TypeScript source, ending with a newline.

    Raises:
        RenderError: If an expression references an undeclared schema or
            the template fails to render.
    """
    config = config or GeneratorConfig()
    identifiers = result.identifiers
    if config.api_client_name in identifiers.values():
        raise RenderError(
            f"Client name '{config.api_client_name}' is also a schema identifier"
        )

    context = {
        "declarations": [
            {
                "identifier": decl.identifier,
                "expression": render_expression(decl.expression, identifiers),
            }
            for decl in result.declarations
        ],
        "export_schemas": config.export_schemas,
        "endpoints": [
            _endpoint_context(endpoint, identifiers) for endpoint in result.endpoints
        ],
        "api_client_name": config.api_client_name,
    }

    env = _create_jinja_env()
    try:
        return env.get_template("client.ts.j2").render(**context)
    except TemplateError as exc:
        raise RenderError(f"Failed to render client template: {exc}") from exc


def _create_jinja_env() -> Environment:
    """Jinja2 environment over :data:`TEMPLATE_DIR`; TypeScript is never escaped."""
    return Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(disabled_extensions=("ts.j2",), default=False),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def _endpoint_context(
    endpoint: EndpointDescriptor, identifiers: Mapping[str, str]
) -> dict[str, Any]:
    """Pre-render the template fields of one endpoint."""
    parameters = []
    for param in endpoint.parameters:
        param_type = _PARAMETER_TYPES.get(param.location)
        if param_type is None:
            logger.debug(
                "Parameter '%s' of %s %s is not representable (in: %s); skipped",
                param.name,
                endpoint.method.value.upper(),
                endpoint.path,
                param.location.value,
            )
            continue
        parameters.append(
            {
                "name": js_literal(param.name),
                "type": js_literal(param_type),
                "description": js_literal(param.description) if param.description else None,
                "schema": render_expression(param.expression, identifiers),
            }
        )

    return {
        "method": js_literal(endpoint.method.value),
        "path": js_literal(to_client_path(endpoint.path)),
        "alias": js_literal(endpoint.alias) if endpoint.alias else None,
        "description": js_literal(endpoint.description) if endpoint.description else None,
        "request_format": js_literal(endpoint.request_format.value),
        "parameters": parameters,
        "response": render_expression(endpoint.response, identifiers),
        "errors": [
            {
                "status": error.status if error.status.isdigit() else js_literal(error.status),
                "description": js_literal(error.description) if error.description else None,
                "schema": render_expression(error.expression, identifiers),
            }
            for error in endpoint.error_responses
        ],
    }
