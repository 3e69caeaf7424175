"""Canonical Pydantic models shared across all zodspec modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into four groups:

**Configuration** -- :class:`GeneratorConfig`, loaded from ``./zodspec.json``,
    ``ZODSPEC_*`` environment variables and CLI flags.

**Parser output** -- produced by :mod:`zodspec.parser` from a raw OpenAPI
    document: :class:`SchemaKind`, :class:`SchemaNode`, :class:`HTTPMethod`,
    :class:`ParameterLocation`, :class:`ParameterSpec`,
    :class:`RequestBodySpec`, :class:`ResponseSpec`, :class:`OperationSpec`,
    :class:`APIInfo` and :class:`OpenAPIDocument`.

**Validation expression IR** -- produced by the type translator:
    :class:`ExprKind`, :class:`PrimitiveType`, :class:`ModifierName`,
    :class:`Modifier`, :class:`PropertyExpression` and
    :class:`ValidationExpression`.

**Compiler output** -- handed to the emitter: :class:`RequestFormat`,
    :class:`EndpointParameter`, :class:`ErrorResponse`,
    :class:`EndpointDescriptor`, :class:`Declaration` and
    :class:`CompilationResult`.

Parser output and IR models are frozen: nothing mutates them after they are
created, so the same document always compiles to the same result.
"""

from __future__ import annotations

import enum
from typing import Any, Iterator, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from zodspec.exceptions import UnsupportedKeywordWarning

Number = Union[int, float]


# --- Configuration ---


class GeneratorConfig(BaseModel):
    """Options controlling translation and rendering.

    Resolved by :func:`~zodspec.config.resolve_config` from (highest first)
    CLI flags, ``ZODSPEC_*`` environment variables, the project file
    ``./zodspec.json`` and the defaults declared here.
    """

    model_config = ConfigDict(extra="forbid")

    strict_objects: bool = Field(
        default=False,
        description="Reject unknown keys (strict) instead of passing them through",
    )
    with_default_values: bool = Field(
        default=True, description="Emit schema defaults as a default modifier"
    )
    exclude_deprecated: bool = Field(
        default=False, description="Skip operations marked deprecated"
    )
    export_schemas: bool = Field(
        default=True, description="Export the named declarations as a schemas object"
    )
    api_client_name: str = Field(
        default="api", description="Name of the exported Zodios instance"
    )


# --- Parser output ---


class SchemaKind(str, enum.Enum):
    """The JSON-Schema ``type`` of a :class:`SchemaNode`.

    ``UNKNOWN`` covers both an absent ``type`` (any value) and a ``type``
    value zodspec does not recognise; the latter also sets
    :attr:`SchemaNode.unsupported_type`.
    """

    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"
    NULL = "null"
    UNKNOWN = "unknown"


class SchemaNode(BaseModel):
    """Immutable representation of one JSON-Schema fragment.

    Built by :func:`~zodspec.parser.nodes.parse_schema`. Absent keywords
    keep their defaults; ``required`` is ``None`` when the keyword is absent
    so that "absent" and "empty" can be told apart. ``has_const`` and
    ``has_default`` exist because ``null`` is a legal value for both.
    """

    model_config = ConfigDict(frozen=True)

    kind: SchemaKind = SchemaKind.UNKNOWN
    nullable: bool = False
    enum_values: Optional[tuple[Any, ...]] = None
    const_value: Any = None
    has_const: bool = False
    format: Optional[str] = None
    # numeric constraints
    minimum: Optional[Number] = None
    maximum: Optional[Number] = None
    exclusive_minimum: Optional[Union[bool, int, float]] = None
    exclusive_maximum: Optional[Union[bool, int, float]] = None
    multiple_of: Optional[Number] = None
    # string constraints
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    # array shape
    items: Optional[SchemaNode] = None
    min_items: Optional[int] = None
    max_items: Optional[int] = None
    # object shape
    properties: dict[str, SchemaNode] = Field(default_factory=dict)
    required: Optional[tuple[str, ...]] = None
    additional_properties: Optional[Union[bool, SchemaNode]] = None
    # composition
    all_of: Optional[tuple[SchemaNode, ...]] = None
    one_of: Optional[tuple[SchemaNode, ...]] = None
    any_of: Optional[tuple[SchemaNode, ...]] = None
    not_: Optional[SchemaNode] = None
    ref: Optional[str] = None
    # annotations
    default: Any = None
    has_default: bool = False
    description: Optional[str] = None
    deprecated: bool = False
    unsupported_type: Optional[str] = None

    @property
    def is_composed(self) -> bool:
        """Whether the node carries ``allOf``, ``oneOf``, ``anyOf`` or ``not``."""
        return (
            self.all_of is not None
            or self.one_of is not None
            or self.any_of is not None
            or self.not_ is not None
        )

    @property
    def is_plain_object(self) -> bool:
        """Whether the node is an object shape that ``allOf`` can merge property-wise."""
        return (
            self.kind == SchemaKind.OBJECT
            and self.ref is None
            and not self.is_composed
            and self.enum_values is None
            and not self.has_const
        )


class HTTPMethod(str, enum.Enum):
    """HTTP methods recognised by OpenAPI 3.x path-item objects."""

    GET = "get"
    POST = "post"
    PUT = "put"
    PATCH = "patch"
    DELETE = "delete"
    HEAD = "head"
    OPTIONS = "options"
    TRACE = "trace"


class ParameterLocation(str, enum.Enum):
    """Locations where an endpoint parameter can appear.

    The first four mirror the OpenAPI ``in`` field; ``BODY`` marks the
    request body, which the binder exposes as a parameter named ``body``.
    """

    QUERY = "query"
    HEADER = "header"
    PATH = "path"
    COOKIE = "cookie"
    BODY = "body"


class ParameterSpec(BaseModel):
    """A parameter of one operation, after path-level merging and ``$ref`` lookup."""

    model_config = ConfigDict(frozen=True)

    name: str
    location: ParameterLocation
    required: bool = False
    description: Optional[str] = None
    node: Optional[SchemaNode] = None


class RequestBodySpec(BaseModel):
    """The request body of one operation (first usable media type only)."""

    model_config = ConfigDict(frozen=True)

    required: bool = False
    description: Optional[str] = None
    content_type: Optional[str] = None
    node: Optional[SchemaNode] = None


class ResponseSpec(BaseModel):
    """One entry of an operation's ``responses`` map."""

    model_config = ConfigDict(frozen=True)

    status: str
    description: Optional[str] = None
    content_type: Optional[str] = None
    node: Optional[SchemaNode] = None


class OperationSpec(BaseModel):
    """A single operation (one path + HTTP method pair) of the document."""

    model_config = ConfigDict(frozen=True)

    path: str
    method: HTTPMethod
    operation_id: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    deprecated: bool = False
    parameters: tuple[ParameterSpec, ...] = ()
    request_body: Optional[RequestBodySpec] = None
    responses: tuple[ResponseSpec, ...] = ()


class APIInfo(BaseModel):
    """API metadata extracted from the document's *Info Object*."""

    model_config = ConfigDict(frozen=True)

    title: str
    version: str
    description: Optional[str] = None


class OpenAPIDocument(BaseModel):
    """Everything the compiler needs from one OpenAPI document.

    ``schemas`` preserves the order of ``components/schemas`` and
    ``operations`` the order of ``paths`` (then methods as written).
    ``warnings`` holds problems found while parsing schema nodes.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    info: APIInfo
    openapi_version: str
    schemas: dict[str, SchemaNode] = Field(default_factory=dict)
    operations: list[OperationSpec] = Field(default_factory=list)
    warnings: list[UnsupportedKeywordWarning] = Field(
        default_factory=list, exclude=True
    )


# --- Validation expression IR ---


class ExprKind(str, enum.Enum):
    """Closed set of base kinds a :class:`ValidationExpression` can take."""

    PRIMITIVE = "primitive"
    OBJECT = "object"
    ARRAY = "array"
    UNION = "union"
    INTERSECTION = "intersection"
    LITERAL = "literal"
    ENUM = "enum"
    LAZY_REF = "lazy_ref"
    NAMED_REF = "named_ref"
    UNKNOWN = "unknown"


class PrimitiveType(str, enum.Enum):
    """Primitive base types. Integers are ``NUMBER`` plus an ``integer`` modifier."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    NULL = "null"
    VOID = "void"


class ModifierName(str, enum.Enum):
    """Modifiers, declared in their canonical application order.

    :meth:`ValidationExpression.with_modifiers` keeps every expression's
    modifiers sorted by this declaration order, so ``nullable`` is always
    the last (outermost) modifier.
    """

    INTEGER = "integer"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    MULTIPLE_OF = "multiple_of"
    MIN = "min"
    MAX = "max"
    REGEX = "regex"
    FORMAT = "format"
    PARTIAL = "partial"
    PASSTHROUGH = "passthrough"
    STRICT = "strict"
    OPTIONAL = "optional"
    DEFAULT = "default"
    NULLABLE = "nullable"


_MODIFIER_RANK = {name: rank for rank, name in enumerate(ModifierName)}


class Modifier(BaseModel):
    """One modifier applied to an expression, e.g. ``min(5)`` or ``nullable()``."""

    model_config = ConfigDict(frozen=True)

    name: ModifierName
    args: tuple[Any, ...] = ()


class PropertyExpression(BaseModel):
    """One declared property of an object expression."""

    model_config = ConfigDict(frozen=True)

    name: str
    expression: ValidationExpression
    optional: bool = False


class ValidationExpression(BaseModel):
    """The compiler's output unit: a base kind, its children and ordered modifiers.

    Only the fields relevant to ``kind`` are populated:

    * ``PRIMITIVE`` -- ``primitive``.
    * ``OBJECT`` -- ``properties`` and optionally ``index_signature``.
    * ``ARRAY`` -- ``items``.
    * ``UNION`` / ``INTERSECTION`` -- ``members`` in source order.
    * ``LITERAL`` / ``ENUM`` -- ``values`` in source order.
    * ``NAMED_REF`` / ``LAZY_REF`` -- ``ref``, the declared schema name.
    * ``UNKNOWN`` -- optionally a ``note`` explaining the fallback.
    """

    model_config = ConfigDict(frozen=True)

    kind: ExprKind
    primitive: Optional[PrimitiveType] = None
    modifiers: tuple[Modifier, ...] = ()
    properties: tuple[PropertyExpression, ...] = ()
    index_signature: Optional[ValidationExpression] = None
    items: Optional[ValidationExpression] = None
    members: tuple[ValidationExpression, ...] = ()
    values: tuple[Any, ...] = ()
    ref: Optional[str] = None
    note: Optional[str] = None

    @classmethod
    def of_primitive(cls, primitive: PrimitiveType) -> ValidationExpression:
        return cls(kind=ExprKind.PRIMITIVE, primitive=primitive)

    @classmethod
    def named_ref(cls, name: str) -> ValidationExpression:
        return cls(kind=ExprKind.NAMED_REF, ref=name)

    @classmethod
    def lazy_ref(cls, name: str) -> ValidationExpression:
        return cls(kind=ExprKind.LAZY_REF, ref=name)

    @classmethod
    def unknown(cls, note: Optional[str] = None) -> ValidationExpression:
        return cls(kind=ExprKind.UNKNOWN, note=note)

    def with_modifiers(self, *modifiers: Modifier) -> ValidationExpression:
        """Return a copy with *modifiers* added, keeping canonical order.

        The sort is stable, so modifiers of the same name keep the order in
        which they were added.
        """
        if not modifiers:
            return self
        merged = sorted(
            self.modifiers + modifiers, key=lambda m: _MODIFIER_RANK[m.name]
        )
        return self.model_copy(update={"modifiers": tuple(merged)})

    def has_modifier(self, name: ModifierName) -> bool:
        return any(m.name == name for m in self.modifiers)

    def modifier_names(self) -> list[ModifierName]:
        return [m.name for m in self.modifiers]

    def children(self) -> Iterator[ValidationExpression]:
        """Yield the direct structural children of this expression."""
        for prop in self.properties:
            yield prop.expression
        if self.index_signature is not None:
            yield self.index_signature
        if self.items is not None:
            yield self.items
        yield from self.members


# --- Compiler output ---


class RequestFormat(str, enum.Enum):
    """How an endpoint's request body is encoded, derived from its media type."""

    JSON = "json"
    FORM_DATA = "form-data"
    FORM_URL = "form-url"
    BINARY = "binary"
    TEXT = "text"


class EndpointParameter(BaseModel):
    model_config = ConfigDict(frozen=True)

    location: ParameterLocation
    name: str
    expression: ValidationExpression
    description: Optional[str] = None


class ErrorResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str
    expression: ValidationExpression
    description: Optional[str] = None


class EndpointDescriptor(BaseModel):
    """The compiled request/response typing of one API operation."""

    model_config = ConfigDict(frozen=True)

    method: HTTPMethod
    path: str
    alias: Optional[str] = None
    description: Optional[str] = None
    request_format: RequestFormat = RequestFormat.JSON
    parameters: tuple[EndpointParameter, ...] = ()
    response: ValidationExpression
    error_responses: tuple[ErrorResponse, ...] = ()
    deprecated: bool = False


class Declaration(BaseModel):
    """A named schema and the identifier it is emitted under."""

    model_config = ConfigDict(frozen=True)

    name: str
    identifier: str
    expression: ValidationExpression


class CompilationResult(BaseModel):
    """Output of one compilation run, handed to the emitter.

    ``declarations`` are in a safe declaration order (every declaration
    after its non-lazy dependencies) and ``endpoints`` in document order.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    declarations: list[Declaration] = Field(default_factory=list)
    endpoints: list[EndpointDescriptor] = Field(default_factory=list)
    warnings: list[UnsupportedKeywordWarning] = Field(
        default_factory=list, exclude=True
    )

    @property
    def identifiers(self) -> dict[str, str]:
        """Map of declared schema name to emitted identifier."""
        return {decl.name: decl.identifier for decl in self.declarations}

    def declaration(self, name: str) -> Declaration:
        for decl in self.declarations:
            if decl.name == name:
                return decl
        raise KeyError(name)


SchemaNode.model_rebuild()
PropertyExpression.model_rebuild()
ValidationExpression.model_rebuild()
