"""One compilation run: document in, ordered declarations and endpoints out.

:func:`compile_document` owns every piece of state the run needs (registry,
translator cache, warning list) and drops it on return, so compiling the
same document twice gives identical results. A fatal
:class:`~zodspec.exceptions.CompilationError` aborts the run with no partial
result.
"""

from __future__ import annotations

import logging
from typing import Optional

from zodspec.compiler.binder import EndpointBinder
from zodspec.compiler.orderer import order_declarations
from zodspec.compiler.registry import SchemaRegistry
from zodspec.compiler.translator import TypeTranslator
from zodspec.exceptions import UnsupportedKeywordWarning
from zodspec.models import (
    CompilationResult,
    Declaration,
    GeneratorConfig,
    OpenAPIDocument,
)

logger = logging.getLogger(__name__)


def build_registry(document: OpenAPIDocument) -> SchemaRegistry:
    """Register every ``components/schemas`` entry of *document*, in order."""
    registry = SchemaRegistry()
    for name, node in document.schemas.items():
        registry.register(name, node)
    return registry


def compile_document(
    document: OpenAPIDocument, config: Optional[GeneratorConfig] = None
) -> CompilationResult:
    """Compile *document* into a :class:`~zodspec.models.CompilationResult`.

    Steps:

    1. Register the named schemas.
    2. Translate each named schema once (cycles become lazy references).
    3. Order the declarations so each follows its eager dependencies.
    4. Bind every operation to an endpoint descriptor.

    Args:
        document: The extracted OpenAPI document.
        config: Generator options; defaults when omitted.

    Returns:
        Ordered declarations, endpoints in document order, and every
        warning recorded while parsing or translating.

    Raises:
        UnresolvedReferenceError: A ``$ref`` names no registered schema.
        DuplicateDeclarationError: Two schemas share a name or identifier.
        InternalCycleError: Declaration ordering found an unbroken cycle.
    """
    config = config or GeneratorConfig()
    warnings: list[UnsupportedKeywordWarning] = list(document.warnings)
    for warning in document.warnings:
        logger.warning("%s", warning)

    registry = build_registry(document)
    translator = TypeTranslator(registry, config=config, warnings=warnings)
    for name in registry.names():
        translator.declare(name)

    declarations = translator.declarations
    order = order_declarations(registry.names(), declarations)

    endpoints = EndpointBinder(translator, config).bind_all(document.operations)

    logger.info(
        "Compiled %d declarations and %d endpoints (%d warnings)",
        len(order),
        len(endpoints),
        len(warnings),
    )
    return CompilationResult(
        declarations=[
            Declaration(
                name=name,
                identifier=registry.identifier(name),
                expression=declarations[name],
            )
            for name in order
        ],
        endpoints=endpoints,
        warnings=warnings,
    )
