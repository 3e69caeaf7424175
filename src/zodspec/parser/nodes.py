"""Convert raw JSON-Schema fragments into immutable :class:`~zodspec.models.SchemaNode` trees.

Parsing is best effort: a malformed keyword never aborts the run. Instead the
keyword is dropped and an :class:`~zodspec.exceptions.UnsupportedKeywordWarning`
is appended to the caller's ``warnings`` list, tagged with the JSON pointer of
the schema that carried it.

``$ref`` values are kept as strings; resolving them is the schema registry's
job.
"""

from __future__ import annotations

from typing import Any, Optional

from zodspec.exceptions import UnsupportedKeywordWarning
from zodspec.models import SchemaKind, SchemaNode

_TYPE_KINDS = {kind.value: kind for kind in SchemaKind if kind != SchemaKind.UNKNOWN}

# Keywords with no translation; recorded so the caller knows they were dropped.
_UNSUPPORTED_KEYWORDS = (
    "if",
    "then",
    "else",
    "patternProperties",
    "prefixItems",
    "contains",
    "propertyNames",
    "dependentSchemas",
    "dependentRequired",
    "unevaluatedProperties",
    "unevaluatedItems",
)

# Keywords that do not carry over into the per-type members of a 3.1 type array.
_TYPE_ARRAY_EXCLUDED = frozenset(
    {"type", "nullable", "allOf", "oneOf", "anyOf", "not", "description", "default"}
)


def escape_pointer(segment: str) -> str:
    """Escape one JSON pointer segment per RFC 6901."""
    return segment.replace("~", "~0").replace("/", "~1")


def parse_schema(
    raw: Any,
    location: str,
    warnings: list[UnsupportedKeywordWarning],
) -> SchemaNode:
    """Parse one raw schema fragment.

    Args:
        raw: The schema as found in the document (normally a dict; JSON
            Schema boolean schemas are accepted too).
        location: JSON pointer of *raw*, used in warning messages.
        warnings: List that receives a warning for every dropped keyword.

    Returns:
        The parsed :class:`SchemaNode`.
    """
    if raw is True:
        return SchemaNode()
    if raw is False:
        return SchemaNode(not_=SchemaNode())
    if not isinstance(raw, dict):
        _warn(warnings, location, "schema", f"schema must be an object, got {type(raw).__name__}")
        return SchemaNode()

    ref = raw.get("$ref")
    if isinstance(ref, str):
        # Siblings of $ref are ignored in OpenAPI 3.0; nullable is kept for 3.1.
        return SchemaNode(
            ref=ref,
            nullable=raw.get("nullable") is True,
            description=_string(raw, "description"),
        )

    fields: dict[str, Any] = {}
    nullable = _flag(raw, "nullable", location, warnings)

    kind, type_nullable, type_members = _parse_type(raw, location, warnings)
    fields["kind"] = kind
    nullable = nullable or type_nullable
    if kind == SchemaKind.UNKNOWN and type_members is None:
        fields["unsupported_type"] = _single_type_name(raw.get("type"))

    enum_values = raw.get("enum")
    if enum_values is not None:
        if isinstance(enum_values, list) and enum_values:
            fields["enum_values"] = tuple(enum_values)
        else:
            _warn(warnings, location, "enum", "enum must be a non-empty array; ignored")
    if "const" in raw:
        fields["const_value"] = raw["const"]
        fields["has_const"] = True

    fields["format"] = _string(raw, "format")
    for key, field in (
        ("minimum", "minimum"),
        ("maximum", "maximum"),
        ("multipleOf", "multiple_of"),
    ):
        fields[field] = _number(raw, key, location, warnings)
    for key, field in (
        ("exclusiveMinimum", "exclusive_minimum"),
        ("exclusiveMaximum", "exclusive_maximum"),
    ):
        value = raw.get(key)
        if value is None or isinstance(value, bool):
            fields[field] = value
        else:
            fields[field] = _number(raw, key, location, warnings)
    for key, field in (
        ("minLength", "min_length"),
        ("maxLength", "max_length"),
        ("minItems", "min_items"),
        ("maxItems", "max_items"),
    ):
        fields[field] = _count(raw, key, location, warnings)

    pattern = raw.get("pattern")
    if pattern is not None:
        if isinstance(pattern, str):
            fields["pattern"] = pattern
        else:
            _warn(warnings, location, "pattern", "pattern must be a string; ignored")

    fields["properties"] = _parse_properties(raw, location, warnings)
    fields["required"] = _parse_required(raw, location, warnings)
    fields["additional_properties"] = _parse_additional(raw, location, warnings)
    fields["items"] = _parse_items(raw, location, warnings)

    for key, field in (("allOf", "all_of"), ("oneOf", "one_of"), ("anyOf", "any_of")):
        fields[field] = _parse_members(raw, key, location, warnings)
    if type_members is not None:
        if fields["any_of"] is None:
            fields["any_of"] = type_members
        else:
            _warn(
                warnings,
                location,
                "type",
                "type array combined with anyOf; the type array is ignored",
            )
    if "not" in raw:
        fields["not_"] = parse_schema(raw["not"], f"{location}/not", warnings)

    if "default" in raw:
        fields["default"] = raw["default"]
        fields["has_default"] = True
    fields["description"] = _string(raw, "description")
    fields["deprecated"] = raw.get("deprecated") is True

    for keyword in _UNSUPPORTED_KEYWORDS:
        if keyword in raw:
            _warn(warnings, location, keyword, f"'{keyword}' is not supported; ignored")

    return SchemaNode(nullable=nullable, **fields)


def _parse_type(
    raw: dict[str, Any],
    location: str,
    warnings: list[UnsupportedKeywordWarning],
) -> tuple[SchemaKind, bool, Optional[tuple[SchemaNode, ...]]]:
    """Return ``(kind, nullable_from_type, per_type_members)`` for *raw*.

    OpenAPI 3.1 allows ``type`` to be an array. ``"null"`` in the array
    makes the schema nullable; when more than one other type remains, each
    becomes its own member of a synthesised ``anyOf``.
    """
    type_value = raw.get("type")

    if type_value is None:
        return _infer_kind(raw), False, None

    if isinstance(type_value, str):
        return _TYPE_KINDS.get(type_value, SchemaKind.UNKNOWN), False, None

    if isinstance(type_value, list):
        names = [t for t in type_value if isinstance(t, str)]
        nullable = "null" in names
        names = [t for t in names if t != "null"]
        if not names:
            return (SchemaKind.NULL if nullable else SchemaKind.UNKNOWN), False, None
        if len(names) == 1:
            return _TYPE_KINDS.get(names[0], SchemaKind.UNKNOWN), nullable, None
        base = {k: v for k, v in raw.items() if k not in _TYPE_ARRAY_EXCLUDED}
        members = tuple(
            parse_schema({**base, "type": name}, f"{location}/type/{index}", warnings)
            for index, name in enumerate(names)
        )
        return SchemaKind.UNKNOWN, nullable, members

    _warn(warnings, location, "type", f"type must be a string or array, got {type_value!r}")
    return SchemaKind.UNKNOWN, False, None


def _single_type_name(type_value: Any) -> Optional[str]:
    """The one non-null type name in *type_value* (a string or a 3.1 type array)."""
    if isinstance(type_value, str):
        return type_value
    if isinstance(type_value, list):
        names = [t for t in type_value if isinstance(t, str) and t != "null"]
        if len(names) == 1:
            return names[0]
    return None


def _infer_kind(raw: dict[str, Any]) -> SchemaKind:
    """Guess the kind of a schema with no ``type`` keyword from its shape."""
    if "properties" in raw or "additionalProperties" in raw or "required" in raw:
        return SchemaKind.OBJECT
    if "items" in raw:
        return SchemaKind.ARRAY
    values = raw.get("enum") if "enum" in raw else None
    if isinstance(values, list) and values:
        non_null = [v for v in values if v is not None]
        if non_null and all(isinstance(v, str) for v in non_null):
            return SchemaKind.STRING
        if non_null and all(isinstance(v, bool) for v in non_null):
            return SchemaKind.BOOLEAN
        if non_null and all(
            isinstance(v, (int, float)) and not isinstance(v, bool) for v in non_null
        ):
            return SchemaKind.NUMBER
    return SchemaKind.UNKNOWN


def _parse_properties(
    raw: dict[str, Any],
    location: str,
    warnings: list[UnsupportedKeywordWarning],
) -> dict[str, SchemaNode]:
    properties = raw.get("properties")
    if properties is None:
        return {}
    if not isinstance(properties, dict):
        _warn(warnings, location, "properties", "properties must be an object; ignored")
        return {}
    return {
        str(name): parse_schema(
            value, f"{location}/properties/{escape_pointer(str(name))}", warnings
        )
        for name, value in properties.items()
    }


def _parse_required(
    raw: dict[str, Any],
    location: str,
    warnings: list[UnsupportedKeywordWarning],
) -> Optional[tuple[str, ...]]:
    required = raw.get("required")
    if required is None:
        return None
    if not isinstance(required, list) or not all(isinstance(n, str) for n in required):
        _warn(warnings, location, "required", "required must be an array of strings; ignored")
        return None
    return tuple(dict.fromkeys(required))


def _parse_additional(
    raw: dict[str, Any],
    location: str,
    warnings: list[UnsupportedKeywordWarning],
) -> Any:
    if "additionalProperties" not in raw:
        return None
    value = raw["additionalProperties"]
    if isinstance(value, bool):
        return value
    if isinstance(value, dict):
        if not value:
            # {} accepts anything, exactly like true.
            return True
        return parse_schema(value, f"{location}/additionalProperties", warnings)
    _warn(
        warnings,
        location,
        "additionalProperties",
        "additionalProperties must be a boolean or a schema; ignored",
    )
    return None


def _parse_items(
    raw: dict[str, Any],
    location: str,
    warnings: list[UnsupportedKeywordWarning],
) -> Optional[SchemaNode]:
    if "items" not in raw:
        return None
    items = raw["items"]
    if isinstance(items, list):
        _warn(warnings, location, "items", "tuple-form items is not supported; ignored")
        return None
    return parse_schema(items, f"{location}/items", warnings)


def _parse_members(
    raw: dict[str, Any],
    key: str,
    location: str,
    warnings: list[UnsupportedKeywordWarning],
) -> Optional[tuple[SchemaNode, ...]]:
    members = raw.get(key)
    if members is None:
        return None
    if not isinstance(members, list) or not members:
        _warn(warnings, location, key, f"{key} must be a non-empty array; ignored")
        return None
    return tuple(
        parse_schema(member, f"{location}/{key}/{index}", warnings)
        for index, member in enumerate(members)
    )


def _number(
    raw: dict[str, Any],
    key: str,
    location: str,
    warnings: list[UnsupportedKeywordWarning],
) -> Optional[int | float]:
    value = raw.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        _warn(warnings, location, key, f"{key} must be a number, got {value!r}; ignored")
        return None
    return value


def _count(
    raw: dict[str, Any],
    key: str,
    location: str,
    warnings: list[UnsupportedKeywordWarning],
) -> Optional[int]:
    value = raw.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        _warn(
            warnings,
            location,
            key,
            f"{key} must be a non-negative integer, got {value!r}; ignored",
        )
        return None
    return value


def _flag(
    raw: dict[str, Any],
    key: str,
    location: str,
    warnings: list[UnsupportedKeywordWarning],
) -> bool:
    value = raw.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        _warn(warnings, location, key, f"{key} must be a boolean, got {value!r}; ignored")
        return False
    return value


def _string(raw: dict[str, Any], key: str) -> Optional[str]:
    value = raw.get(key)
    return value if isinstance(value, str) else None


def _warn(
    warnings: list[UnsupportedKeywordWarning],
    location: str,
    keyword: str,
    message: str,
) -> None:
    warnings.append(UnsupportedKeywordWarning(message, keyword=keyword, location=location))
