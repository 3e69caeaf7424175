"""Schema compiler -- OpenAPI schemas and operations to a validation-expression IR.

This sub-package is the core of zodspec. It takes an
:class:`~zodspec.models.OpenAPIDocument` and produces a
:class:`~zodspec.models.CompilationResult` for the emitter.

Typical usage::

    from zodspec.compiler import compile_document

    result = compile_document(document)
    for declaration in result.declarations:
        print(declaration.identifier, declaration.expression.kind)

Sub-modules:

* :mod:`~zodspec.compiler.registry` -- named schemas and ``$ref`` resolution.
* :mod:`~zodspec.compiler.translator` -- the recursive schema translator.
* :mod:`~zodspec.compiler.orderer` -- dependency graph and declaration order.
* :mod:`~zodspec.compiler.binder` -- operations to endpoint descriptors.
* :mod:`~zodspec.compiler.compilation` -- the single-run pipeline.
"""

from zodspec.compiler.binder import EndpointBinder
from zodspec.compiler.compilation import build_registry, compile_document
from zodspec.compiler.orderer import DependencyGraph, order_declarations
from zodspec.compiler.registry import SchemaRegistry
from zodspec.compiler.translator import TranslationContext, TypeTranslator

__all__ = [
    "compile_document",
    "build_registry",
    "SchemaRegistry",
    "TypeTranslator",
    "TranslationContext",
    "DependencyGraph",
    "order_declarations",
    "EndpointBinder",
]
