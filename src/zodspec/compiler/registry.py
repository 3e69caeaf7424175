"""Named schema storage and ``$ref`` -> name resolution.

The registry is filled once, before translation starts, from the
``components/schemas`` section of the document. After that it is only
read: the translator asks it for nodes and for the canonical name behind a
``$ref`` string.
"""

from __future__ import annotations

import re
from typing import Iterator

from zodspec.exceptions import DuplicateDeclarationError, UnresolvedReferenceError
from zodspec.models import SchemaNode

SCHEMA_REF_PREFIX = "#/components/schemas/"

_NON_IDENTIFIER = re.compile(r"[^A-Za-z0-9_$]")

_KEYWORDS = frozenset(
    {
        "break", "case", "catch", "class", "const", "continue", "debugger",
        "default", "delete", "do", "else", "enum", "export", "extends",
        "false", "finally", "for", "function", "if", "import", "in",
        "instanceof", "new", "null", "return", "super", "switch", "this",
        "throw", "true", "try", "typeof", "var", "void", "while", "with",
        "let", "static", "yield", "await",
    }
)
# Names the client template declares itself.
_TEMPLATE_NAMES = frozenset(
    {"z", "makeApi", "Zodios", "endpoints", "schemas", "createApiClient"}
)
_RESERVED = _KEYWORDS | _TEMPLATE_NAMES | {"api"}
_IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


def to_identifier(name: str) -> str:
    """Turn a schema name into a valid TypeScript identifier.

    Characters outside ``[A-Za-z0-9_$]`` become ``_``; a leading digit or a
    reserved word gets a ``_`` prefix.

    Example::

        >>> to_identifier("Pet-Item.v2")
        'Pet_Item_v2'
    """
    identifier = _NON_IDENTIFIER.sub("_", name) or "_"
    if identifier[0].isdigit() or identifier in _RESERVED:
        identifier = f"_{identifier}"
    return identifier


def is_client_name(name: str) -> bool:
    """Whether *name* can be exported as the Zodios instance without clashing."""
    return bool(_IDENTIFIER.match(name)) and name not in _KEYWORDS | _TEMPLATE_NAMES


class SchemaRegistry:
    """Mapping of declared schema name to :class:`~zodspec.models.SchemaNode`.

    Registration order is preserved and is the tie-break order used when
    declarations are sorted.

    Example::

        registry = SchemaRegistry()
        registry.register("Pet", pet_node)
        registry.resolve("#/components/schemas/Pet")  # -> "Pet"
    """

    def __init__(self) -> None:
        self._nodes: dict[str, SchemaNode] = {}
        self._identifiers: dict[str, str] = {}
        self._owners: dict[str, str] = {}
        self._ref_cache: dict[str, str] = {}

    def register(self, name: str, node: SchemaNode) -> None:
        """Store *node* under *name*.

        Raises:
            DuplicateDeclarationError: If *name* is already registered, or
                another name normalises to the same identifier.
        """
        if name in self._nodes:
            raise DuplicateDeclarationError(name)
        identifier = to_identifier(name)
        if identifier in self._owners:
            raise DuplicateDeclarationError(name, existing=self._owners[identifier])
        self._nodes[name] = node
        self._identifiers[name] = identifier
        self._owners[identifier] = name

    def resolve(self, ref: str) -> str:
        """Return the registered name a ``$ref`` string points to.

        Only ``#/components/schemas/<name>`` pointers name a declaration;
        ``~1`` and ``~0`` escapes are decoded.

        Raises:
            UnresolvedReferenceError: If the pointer has another shape or
                no schema is registered under the name.
        """
        cached = self._ref_cache.get(ref)
        if cached is not None:
            return cached

        if not ref.startswith(SCHEMA_REF_PREFIX):
            if not ref.startswith("#/"):
                raise UnresolvedReferenceError(ref, "external references are not supported")
            raise UnresolvedReferenceError(
                ref, f"only {SCHEMA_REF_PREFIX}<name> pointers can be referenced"
            )

        encoded = ref[len(SCHEMA_REF_PREFIX):]
        if "/" in encoded:
            raise UnresolvedReferenceError(
                ref, "pointers into the body of a named schema are not supported"
            )
        name = encoded.replace("~1", "/").replace("~0", "~")
        if name not in self._nodes:
            raise UnresolvedReferenceError(ref)

        self._ref_cache[ref] = name
        return name

    def get(self, name: str) -> SchemaNode:
        """Return the node registered under *name* (``KeyError`` if absent)."""
        return self._nodes[name]

    def identifier(self, name: str) -> str:
        """Return the emitted identifier for *name*."""
        return self._identifiers[name]

    def names(self) -> list[str]:
        """Registered names in registration order."""
        return list(self._nodes)

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def __iter__(self) -> Iterator[str]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)
