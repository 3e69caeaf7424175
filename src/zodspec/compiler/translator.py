"""Translate :class:`~zodspec.models.SchemaNode` trees into validation expressions.

:class:`TypeTranslator` is the recursive core of the compiler. Rules are
tried in a fixed priority order:

1. ``$ref`` -- a reference to a registered schema becomes a ``named_ref``,
   or a ``lazy_ref`` when the name is already being translated further up
   the call stack. The lazy reference is what terminates cyclic schemas.
2. ``allOf`` -- object members are merged into one object, anything else
   is intersected with it.
3. ``oneOf`` / ``anyOf`` -- a union of the members, in document order.
4. ``not`` -- the documented ``unknown`` fallback, plus a warning.
5. ``enum`` / ``const`` -- a literal, or an enum over several values.
6. ``object``, ``array`` and the primitive types.

Finally caller-supplied optionality, schema defaults and ``nullable`` are
appended; :meth:`ValidationExpression.with_modifiers` keeps every modifier
list in canonical order so the output does not depend on the key order of
the input document.

Every named schema reached through a ``$ref`` is translated once and
cached on the translator. A translator, and therefore its cache, belongs to
exactly one compilation run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from zodspec.compiler.registry import SchemaRegistry
from zodspec.exceptions import UnsupportedKeywordWarning
from zodspec.models import (
    ExprKind,
    GeneratorConfig,
    Modifier,
    ModifierName,
    PrimitiveType,
    PropertyExpression,
    SchemaKind,
    SchemaNode,
    ValidationExpression,
)
from zodspec.parser.nodes import escape_pointer

logger = logging.getLogger(__name__)

NEGATION_NOTE = "negation ('not') is not supported; any value is accepted"

_PRIMITIVES = {
    SchemaKind.STRING: PrimitiveType.STRING,
    SchemaKind.NUMBER: PrimitiveType.NUMBER,
    SchemaKind.INTEGER: PrimitiveType.NUMBER,
    SchemaKind.BOOLEAN: PrimitiveType.BOOLEAN,
    SchemaKind.NULL: PrimitiveType.NULL,
}

# JSON-Schema format -> format modifier argument. Other formats are annotations only.
_STRING_FORMATS = {
    "email": "email",
    "uri": "url",
    "url": "url",
    "uuid": "uuid",
    "date-time": "datetime",
    "date": "date",
    "time": "time",
    "ipv4": "ip",
    "ipv6": "ip",
}


def _mod(name: ModifierName, *args: object) -> Modifier:
    return Modifier(name=name, args=args)


@dataclass(frozen=True)
class TranslationContext:
    """Per-call translation state, passed down (never shared) through the recursion.

    Attributes:
        stack: Names of the schemas currently being translated, outermost
            first. A ``$ref`` to one of them is a cycle.
        optional: Whether the caller wants the result marked optional
            (an object property missing from its parent's ``required``).
        location: JSON pointer of the node, for warning messages.
    """

    stack: tuple[str, ...] = ()
    optional: bool = False
    location: str = "#"

    def push(self, name: str) -> TranslationContext:
        return TranslationContext(
            stack=self.stack + (name,),
            location=f"#/components/schemas/{escape_pointer(name)}",
        )

    def child(self, segment: str, optional: bool = False) -> TranslationContext:
        return TranslationContext(
            stack=self.stack, optional=optional, location=f"{self.location}/{segment}"
        )


class TypeTranslator:
    """Convert schema nodes into :class:`~zodspec.models.ValidationExpression` trees.

    Args:
        registry: The filled schema registry; used read-only.
        config: Generator options (``strict_objects``, ``with_default_values``).
        warnings: List that receives every
            :class:`~zodspec.exceptions.UnsupportedKeywordWarning`.

    Example::

        translator = TypeTranslator(registry)
        for name in registry.names():
            translator.declare(name)
        translator.declarations["Pet"]
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        config: Optional[GeneratorConfig] = None,
        warnings: Optional[list[UnsupportedKeywordWarning]] = None,
    ) -> None:
        self.registry = registry
        self.config = config or GeneratorConfig()
        self.warnings: list[UnsupportedKeywordWarning] = (
            warnings if warnings is not None else []
        )
        self._declarations: dict[str, ValidationExpression] = {}

    @property
    def declarations(self) -> dict[str, ValidationExpression]:
        """Completed translations of named schemas, in completion order."""
        return dict(self._declarations)

    def declare(
        self, name: str, ctx: Optional[TranslationContext] = None
    ) -> ValidationExpression:
        """Translate the schema registered as *name*, once.

        The name is pushed onto the resolution stack for the duration of the
        translation; later calls return the cached expression.
        """
        cached = self._declarations.get(name)
        if cached is not None:
            return cached

        ctx = ctx or TranslationContext()
        logger.debug("Translating schema '%s'", name)
        expression = self.translate(self.registry.get(name), ctx.push(name))
        self._declarations[name] = expression
        return expression

    def translate(
        self, node: SchemaNode, ctx: Optional[TranslationContext] = None
    ) -> ValidationExpression:
        """Translate one node and apply its trailing modifiers.

        ``optional`` (from the caller), ``default`` and ``nullable`` are added
        at most once each, after the node's own modifiers.
        """
        ctx = ctx or TranslationContext()
        expression = self._translate_shape(node, ctx)

        trailing: list[Modifier] = []
        if ctx.optional and not expression.has_modifier(ModifierName.OPTIONAL):
            trailing.append(_mod(ModifierName.OPTIONAL))
        if (
            self.config.with_default_values
            and node.has_default
            and not expression.has_modifier(ModifierName.DEFAULT)
        ):
            trailing.append(_mod(ModifierName.DEFAULT, node.default))
        if node.nullable and not expression.has_modifier(ModifierName.NULLABLE):
            trailing.append(_mod(ModifierName.NULLABLE))
        return expression.with_modifiers(*trailing)

    # ------------------------------------------------------------------ #
    # Rules
    # ------------------------------------------------------------------ #

    def _translate_shape(
        self, node: SchemaNode, ctx: TranslationContext
    ) -> ValidationExpression:
        if node.ref is not None:
            return self._translate_ref(node.ref, ctx)
        if node.all_of is not None:
            return self._translate_all_of(node, ctx)
        if node.one_of is not None or node.any_of is not None:
            return self._translate_union(node, ctx)
        if node.not_ is not None:
            self._warn(ctx, "not", NEGATION_NOTE)
            return ValidationExpression.unknown(note=NEGATION_NOTE)
        if node.has_const or node.enum_values is not None:
            return self._translate_enum(node)
        if node.unsupported_type is not None:
            note = f"type '{node.unsupported_type}' is not supported; any value is accepted"
            self._warn(ctx, "type", note)
            return ValidationExpression.unknown(note=note)
        if node.kind == SchemaKind.OBJECT:
            return self._translate_object(node, ctx)
        if node.kind == SchemaKind.ARRAY:
            return self._translate_array(node, ctx)
        if node.kind in _PRIMITIVES:
            return self._translate_primitive(node)
        return ValidationExpression.unknown()

    def _translate_ref(self, ref: str, ctx: TranslationContext) -> ValidationExpression:
        name = self.registry.resolve(ref)
        if name in ctx.stack:
            cycle = ctx.stack[ctx.stack.index(name):]
            if all(self.registry.get(member).ref is not None for member in cycle):
                # Nothing but aliases: z.lazy() would only ever resolve to itself.
                note = (
                    f"reference cycle {' -> '.join(cycle + (name,))} has no schema "
                    "besides aliases; any value is accepted"
                )
                self._warn(ctx, "$ref", note)
                return ValidationExpression.unknown(note=note)
            logger.debug(
                "Reference cycle %s -> %s broken with a lazy reference",
                " -> ".join(ctx.stack),
                name,
            )
            return ValidationExpression.lazy_ref(name)
        self.declare(name, ctx)
        return ValidationExpression.named_ref(name)

    def _translate_all_of(
        self, node: SchemaNode, ctx: TranslationContext
    ) -> ValidationExpression:
        members = list(node.all_of or ())
        if node.properties or node.additional_properties is not None or node.required:
            # Sibling object keywords act as one more allOf member.
            members.append(
                SchemaNode(
                    kind=SchemaKind.OBJECT,
                    properties=node.properties,
                    required=node.required,
                    additional_properties=node.additional_properties,
                )
            )

        if len(members) == 1:
            return self.translate(members[0], ctx.child("allOf/0"))

        shapes: list[SchemaNode] = []
        others: list[ValidationExpression] = []
        for index, member in enumerate(members):
            shape = self._object_shape(member, ctx)
            if shape is not None:
                shapes.append(shape)
            else:
                others.append(self.translate(member, ctx.child(f"allOf/{index}")))

        parts: list[ValidationExpression] = []
        if shapes:
            parts.append(self._translate_object(_merge_object_shapes(shapes), ctx))
        parts.extend(others)
        if len(parts) == 1:
            return parts[0]
        return ValidationExpression(kind=ExprKind.INTERSECTION, members=tuple(parts))

    def _object_shape(
        self, member: SchemaNode, ctx: TranslationContext
    ) -> Optional[SchemaNode]:
        """Return the mergeable object node behind *member*, following ``$ref``s.

        ``None`` means the member must be intersected instead: it is not a
        plain object, or its reference chain reaches a schema on the stack.
        """
        followed: set[str] = set()
        while member.ref is not None:
            name = self.registry.resolve(member.ref)
            if name in ctx.stack or name in followed:
                return None
            followed.add(name)
            member = self.registry.get(name)
        return member if member.is_plain_object else None

    def _translate_union(
        self, node: SchemaNode, ctx: TranslationContext
    ) -> ValidationExpression:
        if node.one_of is not None:
            keyword, members = "oneOf", node.one_of
            if node.any_of is not None:
                self._warn(ctx, "anyOf", "anyOf next to oneOf is not supported; anyOf ignored")
        else:
            keyword, members = "anyOf", node.any_of or ()

        translated = tuple(
            self.translate(member, ctx.child(f"{keyword}/{index}"))
            for index, member in enumerate(members)
        )
        return ValidationExpression(kind=ExprKind.UNION, members=translated)

    def _translate_enum(self, node: SchemaNode) -> ValidationExpression:
        values = (node.const_value,) if node.has_const else tuple(node.enum_values or ())
        present = tuple(value for value in values if value is not None)

        if not present:
            return ValidationExpression.of_primitive(PrimitiveType.NULL)
        kind = ExprKind.LITERAL if len(present) == 1 else ExprKind.ENUM
        expression = ValidationExpression(kind=kind, values=present)
        if len(present) != len(values):
            expression = expression.with_modifiers(_mod(ModifierName.NULLABLE))
        return expression

    def _translate_object(
        self, node: SchemaNode, ctx: TranslationContext
    ) -> ValidationExpression:
        required = node.required or ()
        # With nothing required, one partial() replaces per-property optional().
        partial = not required and bool(node.properties)

        properties = []
        for name, prop in node.properties.items():
            optional = name not in required
            child = ctx.child(
                f"properties/{escape_pointer(name)}", optional=optional and not partial
            )
            properties.append(
                PropertyExpression(
                    name=name, expression=self.translate(prop, child), optional=optional
                )
            )

        modifiers: list[Modifier] = []
        if partial:
            modifiers.append(_mod(ModifierName.PARTIAL))

        index_signature = None
        additional = node.additional_properties
        if additional is False:
            modifiers.append(_mod(ModifierName.STRICT))
        elif isinstance(additional, SchemaNode):
            index_signature = self.translate(additional, ctx.child("additionalProperties"))
        elif additional is True or not self.config.strict_objects:
            modifiers.append(_mod(ModifierName.PASSTHROUGH))
        else:
            modifiers.append(_mod(ModifierName.STRICT))

        expression = ValidationExpression(
            kind=ExprKind.OBJECT,
            properties=tuple(properties),
            index_signature=index_signature,
        )
        return expression.with_modifiers(*modifiers)

    def _translate_array(
        self, node: SchemaNode, ctx: TranslationContext
    ) -> ValidationExpression:
        if node.items is not None:
            items = self.translate(node.items, ctx.child("items"))
        else:
            items = ValidationExpression.unknown()

        modifiers: list[Modifier] = []
        if node.min_items is not None:
            modifiers.append(_mod(ModifierName.MIN, node.min_items))
        if node.max_items is not None:
            modifiers.append(_mod(ModifierName.MAX, node.max_items))
        return ValidationExpression(kind=ExprKind.ARRAY, items=items).with_modifiers(
            *modifiers
        )

    def _translate_primitive(self, node: SchemaNode) -> ValidationExpression:
        primitive = _PRIMITIVES[node.kind]
        modifiers: list[Modifier] = []
        if node.kind == SchemaKind.INTEGER:
            modifiers.append(_mod(ModifierName.INTEGER))
        if primitive == PrimitiveType.NUMBER:
            modifiers.extend(_numeric_modifiers(node))
        elif primitive == PrimitiveType.STRING:
            modifiers.extend(_string_modifiers(node))
        return ValidationExpression.of_primitive(primitive).with_modifiers(*modifiers)

    def _warn(self, ctx: TranslationContext, keyword: str, message: str) -> None:
        warning = UnsupportedKeywordWarning(message, keyword=keyword, location=ctx.location)
        logger.warning("%s", warning)
        self.warnings.append(warning)


def _numeric_modifiers(node: SchemaNode) -> list[Modifier]:
    """Range modifiers for a number node.

    OpenAPI 3.0 marks a bound exclusive with a boolean next to ``minimum``;
    3.1 gives the exclusive bound as a number of its own. Both are accepted.
    """
    modifiers: list[Modifier] = []

    if node.minimum is not None:
        name = ModifierName.GT if node.exclusive_minimum is True else ModifierName.GTE
        modifiers.append(_mod(name, node.minimum))
    if _is_bound(node.exclusive_minimum):
        modifiers.append(_mod(ModifierName.GT, node.exclusive_minimum))

    if node.maximum is not None:
        name = ModifierName.LT if node.exclusive_maximum is True else ModifierName.LTE
        modifiers.append(_mod(name, node.maximum))
    if _is_bound(node.exclusive_maximum):
        modifiers.append(_mod(ModifierName.LT, node.exclusive_maximum))

    if node.multiple_of is not None:
        modifiers.append(_mod(ModifierName.MULTIPLE_OF, node.multiple_of))
    return modifiers


def _string_modifiers(node: SchemaNode) -> list[Modifier]:
    modifiers: list[Modifier] = []
    if node.min_length is not None:
        modifiers.append(_mod(ModifierName.MIN, node.min_length))
    if node.max_length is not None:
        modifiers.append(_mod(ModifierName.MAX, node.max_length))
    if node.pattern is not None:
        modifiers.append(_mod(ModifierName.REGEX, node.pattern))
    if node.format in _STRING_FORMATS:
        modifiers.append(_mod(ModifierName.FORMAT, _STRING_FORMATS[node.format]))
    return modifiers


def _is_bound(value: object) -> bool:
    return value is not None and not isinstance(value, bool)


def _merge_object_shapes(shapes: list[SchemaNode]) -> SchemaNode:
    """Merge ``allOf`` object members into a single object node.

    Properties are unioned with the last definition winning (the first
    position is kept), ``required`` lists are unioned, and the last
    explicit ``additionalProperties`` wins.
    """
    properties: dict[str, SchemaNode] = {}
    required: list[str] = []
    has_required = False
    additional = None

    for shape in shapes:
        properties.update(shape.properties)
        if shape.required is not None:
            has_required = True
            required.extend(name for name in shape.required if name not in required)
        if shape.additional_properties is not None:
            additional = shape.additional_properties

    return SchemaNode(
        kind=SchemaKind.OBJECT,
        properties=properties,
        required=tuple(required) if has_required else None,
        additional_properties=additional,
    )
