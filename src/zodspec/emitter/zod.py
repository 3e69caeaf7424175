"""Render :class:`~zodspec.models.ValidationExpression` trees as Zod source.

The output is a single-line TypeScript expression such as
``z.number().int().gte(10)``. References to named declarations are written as
the declaration's identifier, and lazy references as
``z.lazy(() => Identifier)``.
"""

from __future__ import annotations

import json
import re
from typing import Any, Mapping

from zodspec.exceptions import RenderError
from zodspec.models import (
    ExprKind,
    Modifier,
    ModifierName,
    PrimitiveType,
    ValidationExpression,
)

_PRIMITIVE_CALLS = {
    PrimitiveType.STRING: "z.string()",
    PrimitiveType.NUMBER: "z.number()",
    PrimitiveType.BOOLEAN: "z.boolean()",
    PrimitiveType.NULL: "z.null()",
    PrimitiveType.VOID: "z.void()",
}

_FORMAT_CALLS = {
    "email": ".email()",
    "url": ".url()",
    "uuid": ".uuid()",
    "datetime": ".datetime({ offset: true })",
    "date": ".date()",
    "time": ".time()",
    "ip": ".ip()",
}

_BARE_CALLS = {
    ModifierName.INTEGER: ".int()",
    ModifierName.PARTIAL: ".partial()",
    ModifierName.PASSTHROUGH: ".passthrough()",
    ModifierName.STRICT: ".strict()",
    ModifierName.OPTIONAL: ".optional()",
    ModifierName.NULLABLE: ".nullable()",
}

_VALUE_CALLS = {
    ModifierName.GT: "gt",
    ModifierName.GTE: "gte",
    ModifierName.LT: "lt",
    ModifierName.LTE: "lte",
    ModifierName.MULTIPLE_OF: "multipleOf",
    ModifierName.MIN: "min",
    ModifierName.MAX: "max",
    ModifierName.DEFAULT: "default",
}

_IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")
# Line terminators end a regex literal; write them as escapes.
_LINE_TERMINATORS = {
    "\n": "\\n",
    "\r": "\\r",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def js_literal(value: Any) -> str:
    """Render a JSON value as a JavaScript literal.

    Raises:
        RenderError: If *value* has no JSON representation.
    """
    try:
        return json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise RenderError(f"Cannot render {value!r} as a literal: {exc}") from exc


def regex_literal(pattern: str) -> str:
    """Render *pattern* as a JavaScript regex literal.

    Every ``/`` that the pattern does not already escape is escaped, inside
    character classes too. A backslash always consumes the character after
    it, so ``\\\\/`` (an escaped backslash, then a slash) still gets its
    slash escaped.
    """
    if not pattern:
        return "/(?:)/"
    chars: list[str] = []
    escaped = False
    for char in pattern:
        if char in _LINE_TERMINATORS:
            escape = _LINE_TERMINATORS[char]
            chars.append(escape[1:] if escaped else escape)
            escaped = False
        elif escaped:
            chars.append(char)
            escaped = False
        elif char == "\\":
            chars.append(char)
            escaped = True
        elif char == "/":
            chars.append("\\/")
        else:
            chars.append(char)
    if escaped:
        # A trailing lone backslash would escape the closing delimiter.
        chars.append("\\")
    return "/" + "".join(chars) + "/"


def property_key(name: str) -> str:
    """Object key for *name*: bare when it is a valid identifier, quoted otherwise."""
    return name if _IDENTIFIER.match(name) else js_literal(name)


def render_expression(
    expression: ValidationExpression, identifiers: Mapping[str, str]
) -> str:
    """Render *expression* as a Zod schema expression.

    Args:
        expression: The expression to render.
        identifiers: Declared schema name -> emitted identifier, used for
            ``named_ref`` and ``lazy_ref`` expressions.

    Returns:
        TypeScript source for the expression, modifiers included.

    Raises:
        RenderError: If a reference names a schema missing from *identifiers*.
    """
    source = _render_base(expression, identifiers)
    for modifier in expression.modifiers:
        source += _render_modifier(modifier)
    return source


def _render_base(expression: ValidationExpression, identifiers: Mapping[str, str]) -> str:
    kind = expression.kind

    if kind == ExprKind.PRIMITIVE:
        return _PRIMITIVE_CALLS[expression.primitive or PrimitiveType.STRING]

    if kind == ExprKind.OBJECT:
        fields = ", ".join(
            f"{property_key(prop.name)}: {render_expression(prop.expression, identifiers)}"
            for prop in expression.properties
        )
        if expression.index_signature is not None:
            catchall = render_expression(expression.index_signature, identifiers)
            if not expression.properties:
                return f"z.record({catchall})"
            return f"z.object({{ {fields} }}).catchall({catchall})"
        return f"z.object({{ {fields} }})" if fields else "z.object({})"

    if kind == ExprKind.ARRAY:
        items = expression.items or ValidationExpression.unknown()
        return f"z.array({render_expression(items, identifiers)})"

    if kind == ExprKind.UNION:
        members = [render_expression(m, identifiers) for m in expression.members]
        if not members:
            return "z.never()"
        if len(members) == 1:
            return members[0]
        return f"z.union([{', '.join(members)}])"

    if kind == ExprKind.INTERSECTION:
        first, *rest = [render_expression(m, identifiers) for m in expression.members]
        return first + "".join(f".and({member})" for member in rest)

    if kind == ExprKind.LITERAL:
        return f"z.literal({js_literal(expression.values[0])})"

    if kind == ExprKind.ENUM:
        if all(isinstance(value, str) for value in expression.values):
            return f"z.enum([{', '.join(js_literal(v) for v in expression.values)}])"
        literals = ", ".join(f"z.literal({js_literal(v)})" for v in expression.values)
        return f"z.union([{literals}])"

    if kind == ExprKind.NAMED_REF:
        return _identifier(expression, identifiers)

    if kind == ExprKind.LAZY_REF:
        return f"z.lazy(() => {_identifier(expression, identifiers)})"

    return "z.unknown()"


def _identifier(expression: ValidationExpression, identifiers: Mapping[str, str]) -> str:
    try:
        return identifiers[expression.ref or ""]
    except KeyError:
        raise RenderError(
            f"Reference to undeclared schema '{expression.ref}'"
        ) from None


def _render_modifier(modifier: Modifier) -> str:
    name = modifier.name
    if name in _BARE_CALLS:
        return _BARE_CALLS[name]
    if name == ModifierName.REGEX:
        return f".regex({regex_literal(str(modifier.args[0]))})"
    if name == ModifierName.FORMAT:
        return _FORMAT_CALLS.get(str(modifier.args[0]), "")
    method = _VALUE_CALLS[name]
    return f".{method}({', '.join(js_literal(arg) for arg in modifier.args)})"
