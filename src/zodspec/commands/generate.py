"""``zodspec generate`` -- compile a document and render the Zodios client.

The rendered TypeScript goes to stdout, or atomically to ``--output``.
Configuration flags override ``ZODSPEC_*`` environment variables and the
project's ``zodspec.json`` (see :func:`~zodspec.config.resolve_config`).
"""

from __future__ import annotations

import logging
from typing import Optional

import typer

from zodspec.compiler import compile_document
from zodspec.config import resolve_config, write_output
from zodspec.emitter import render_client
from zodspec.exceptions import ZodspecError
from zodspec.output import error, info, print_data, success
from zodspec.parser import load_document

logger = logging.getLogger(__name__)


def generate_command(
    spec: str = typer.Argument(..., help="OpenAPI document: file path, URL, or '-' for stdin."),
    output: Optional[str] = typer.Option(
        None, "--output", "-o", help="Write the client to this file instead of stdout."
    ),
    strict_objects: Optional[bool] = typer.Option(
        None,
        "--strict-objects/--passthrough-objects",
        help="Reject unknown object keys unless additionalProperties allows them.",
    ),
    with_defaults: Optional[bool] = typer.Option(
        None, "--defaults/--no-defaults", help="Emit schema default values."
    ),
    exclude_deprecated: Optional[bool] = typer.Option(
        None,
        "--exclude-deprecated/--include-deprecated",
        help="Skip operations marked deprecated.",
    ),
    export_schemas: Optional[bool] = typer.Option(
        None, "--export-schemas/--no-export-schemas", help="Export the schemas object."
    ),
    api_name: Optional[str] = typer.Option(
        None, "--api-name", help="Name of the exported Zodios instance."
    ),
) -> None:
    """Generate Zod schemas and a Zodios API client from an OpenAPI document.

    Example::

        zodspec generate openapi.yaml -o src/api.ts
        cat openapi.json | zodspec generate - --strict-objects
    """
    try:
        config = resolve_config(
            {
                "strict_objects": strict_objects,
                "with_default_values": with_defaults,
                "exclude_deprecated": exclude_deprecated,
                "export_schemas": export_schemas,
                "api_client_name": api_name,
            }
        )
        document = load_document(spec)
        result = compile_document(document, config)
        source = render_client(result, config)
    except ZodspecError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    if output is None:
        print_data(source)
    else:
        try:
            path = write_output(output, source)
        except ZodspecError as exc:
            error(str(exc))
            raise typer.Exit(code=exc.exit_code) from None
        success(f"Wrote {path}")

    if result.warnings:
        info(
            f"{len(result.warnings)} warning(s); list them with "
            f"'zodspec inspect schemas --warnings {spec}'"
        )
