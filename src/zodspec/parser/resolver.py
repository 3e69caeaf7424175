"""Follow in-document ``$ref`` JSON pointers for non-schema components.

Schema references are *not* inlined: they are resolved to declaration names
by :class:`~zodspec.compiler.registry.SchemaRegistry` so that the compiler
can emit references and break cycles. Parameters, request bodies and
responses, however, are never declared by name, so the extractor replaces
``{"$ref": "#/components/parameters/Limit"}`` style objects with their
targets using :func:`resolve_component`.

Only internal references (``#/...``) are supported.
"""

from __future__ import annotations

from typing import Any

from zodspec.exceptions import SpecParseError

_MAX_REF_HOPS = 32


def resolve_pointer(ref: str, root: dict[str, Any]) -> Any:
    """Resolve a single ``$ref`` string against the root document.

    Handles RFC 6901 escaping (``~1`` for ``/``, ``~0`` for ``~``).

    Args:
        ref: The ``$ref`` string (e.g., ``"#/components/responses/NotFound"``).
        root: The raw document to resolve against.

    Returns:
        The value found at the referenced path.

    Raises:
        SpecParseError: If the reference is external, or any segment of the
            pointer does not exist.
    """
    if not ref.startswith("#/"):
        raise SpecParseError(
            f"External $ref not supported: {ref}. "
            "Only internal references (#/...) are handled."
        )

    current: Any = root
    for segment in ref[2:].split("/"):
        segment = segment.replace("~1", "/").replace("~0", "~")

        if isinstance(current, dict):
            if segment not in current:
                raise SpecParseError(
                    f"Cannot resolve $ref '{ref}': key '{segment}' not found at path"
                )
            current = current[segment]
        elif isinstance(current, list):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError) as exc:
                raise SpecParseError(
                    f"Cannot resolve $ref '{ref}': invalid array index '{segment}'"
                ) from exc
        else:
            raise SpecParseError(
                f"Cannot resolve $ref '{ref}': "
                f"cannot navigate into {type(current).__name__}"
            )

    return current


def resolve_component(obj: Any, root: dict[str, Any]) -> Any:
    """Return *obj*, or the object its ``$ref`` chain finally points to.

    Chains such as ``parameters/A -> parameters/B`` are followed until a
    non-reference object is reached.

    Raises:
        SpecParseError: If a pointer cannot be resolved or the chain loops.
    """
    seen: list[str] = []
    while isinstance(obj, dict) and isinstance(obj.get("$ref"), str):
        ref = obj["$ref"]
        if ref in seen or len(seen) >= _MAX_REF_HOPS:
            chain = " -> ".join(seen + [ref])
            raise SpecParseError(f"Circular component $ref chain: {chain}")
        seen.append(ref)
        obj = resolve_pointer(ref, root)
    return obj
