"""Inspect commands -- examine what a document compiles to.

``zodspec inspect schemas`` lists every declaration in emission order with
its dependencies; ``zodspec inspect endpoints`` lists the bound endpoints.
Both are read-only and print tables in the active output format.
"""

from __future__ import annotations

from typing import Optional

import typer

from zodspec.compiler import compile_document
from zodspec.compiler.orderer import collect_references
from zodspec.config import resolve_config
from zodspec.emitter import render_expression
from zodspec.exceptions import ZodspecError
from zodspec.models import CompilationResult, OpenAPIDocument
from zodspec.output import error, print_table, warning
from zodspec.parser import load_document

inspect_app = typer.Typer(no_args_is_help=True)


def _compile(source: str) -> tuple[OpenAPIDocument, CompilationResult]:
    """Load and compile *source*, exiting with the error's code on failure."""
    try:
        document = load_document(source)
        return document, compile_document(document, resolve_config())
    except ZodspecError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def _names(names: set[str], identifiers: dict[str, str]) -> str:
    return ", ".join(sorted(identifiers[name] for name in names)) or "-"


@inspect_app.command("schemas")
def inspect_schemas(
    spec: str = typer.Argument(..., help="OpenAPI document: file path, URL, or '-'."),
    show_warnings: bool = typer.Option(
        False, "--warnings", "-w", help="Also list the warnings recorded while compiling."
    ),
) -> None:
    """List the compiled declarations in emission order.

    Example::

        zodspec inspect schemas openapi.yaml
    """
    document, result = _compile(spec)
    identifiers = result.identifiers

    rows: list[list[str]] = []
    for decl in result.declarations:
        named, lazy = collect_references(decl.expression)
        rows.append(
            [
                decl.name,
                decl.identifier,
                decl.expression.kind.value,
                ", ".join(m.value for m in decl.expression.modifier_names()) or "-",
                _names(named, identifiers),
                _names(lazy, identifiers),
            ]
        )

    print_table(
        ["Schema", "Identifier", "Kind", "Modifiers", "Depends on", "Lazy"],
        rows,
        title=f"{document.info.title} -- Schemas ({len(rows)})",
    )
    if show_warnings:
        for item in result.warnings:
            warning(str(item))


@inspect_app.command("endpoints")
def inspect_endpoints(
    spec: str = typer.Argument(..., help="OpenAPI document: file path, URL, or '-'."),
    alias: Optional[str] = typer.Option(
        None, "--alias", "-a", help="Show only the endpoint with this operationId."
    ),
) -> None:
    """List the bound endpoints in document order.

    Example::

        zodspec inspect endpoints openapi.yaml
        zodspec inspect endpoints openapi.yaml --alias getPetById
    """
    document, result = _compile(spec)
    identifiers = result.identifiers

    endpoints = result.endpoints
    if alias is not None:
        endpoints = [ep for ep in endpoints if ep.alias == alias]
        if not endpoints:
            error(f"No endpoint with alias '{alias}'")
            raise typer.Exit(code=1)

    rows: list[list[str]] = []
    for endpoint in endpoints:
        rows.append(
            [
                endpoint.method.value.upper(),
                endpoint.path,
                endpoint.alias or "-",
                ", ".join(
                    f"{param.name} ({param.location.value})" for param in endpoint.parameters
                )
                or "-",
                render_expression(endpoint.response, identifiers),
                ", ".join(err.status for err in endpoint.error_responses) or "-",
            ]
        )

    print_table(
        ["Method", "Path", "Alias", "Parameters", "Response", "Errors"],
        rows,
        title=f"{document.info.title} -- Endpoints ({len(rows)})",
    )
