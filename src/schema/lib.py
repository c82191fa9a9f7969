"""Property schema model for component definitions.

This module is the single source of truth for what a component's configurable
properties look like and how raw, user-entered values are turned into their
canonical in-memory types. It provides:
- `PropertyKind` and the legacy kind aliases found in stored schemas
- `PropertySchema`, the validated description of one property
- `coerce()`, a total function that never raises
- Serialization and default helpers used by the registry and resolver

Coercion failures always degrade to the schema default: malformed
configuration must never break rendering.
"""

import copy
import json
import math
from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)


class SchemaError(ValueError):
    """Raised when a property schema or a definition's property set is invalid."""


class PropertyKind(str, Enum):
    """Kinds of configurable component properties."""

    TEXT = "text"
    RICH_TEXT = "richText"
    SELECT = "select"
    BOOLEAN = "boolean"
    NUMBER = "number"
    MEDIA = "media"
    ARRAY = "array"


# Kind names used by older stored schemas, normalised on parse
KIND_ALIASES: dict[str, PropertyKind] = {
    "richtext": PropertyKind.RICH_TEXT,
    "rich-text": PropertyKind.RICH_TEXT,
    "rich_text": PropertyKind.RICH_TEXT,
    "textarea": PropertyKind.TEXT,
    "string": PropertyKind.TEXT,
    "email": PropertyKind.TEXT,
    "url": PropertyKind.TEXT,
    "heading": PropertyKind.TEXT,
    "form-select": PropertyKind.TEXT,
    "checkbox": PropertyKind.BOOLEAN,
    "image": PropertyKind.MEDIA,
}

TEXT_KINDS = frozenset({PropertyKind.TEXT, PropertyKind.RICH_TEXT, PropertyKind.MEDIA})

_TRUE_STRINGS = frozenset({"1", "true"})
_FALSE_STRINGS = frozenset({"0", "false", ""})


def resolve_kind(value: Any) -> PropertyKind | None:
    """Map a kind name (canonical or legacy alias) to a PropertyKind.

    Returns:
        PropertyKind if recognised, None otherwise.
    """
    if isinstance(value, PropertyKind):
        return value
    if not isinstance(value, str):
        return None
    try:
        return PropertyKind(value)
    except ValueError:
        return KIND_ALIASES.get(value.strip().lower())


# =============================================================================
# Models
# =============================================================================


class SelectOption(BaseModel):
    """One choice of a select property."""

    value: Any
    label: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _from_scalar(cls, data: Any) -> Any:
        if not isinstance(data, (Mapping, SelectOption)):
            return {"value": data, "label": str(data)}
        return data

    @model_validator(mode="after")
    def _default_label(self) -> "SelectOption":
        if self.label is None:
            self.label = str(self.value)
        return self


class PropertySchema(BaseModel):
    """Describes one configurable field of a component definition.

    Attributes:
        key: Unique name within the owning definition.
        kind: Property kind, drives coercion. Stored schemas use ``type``.
        label: Editor-facing label.
        default: Default value, shaped like `kind`.
        options: Ordered choices, select only.
        item_template: Sub-field defaults of one repeatable element, array only.
            Accepted in input as ``item_template``, ``itemTemplate`` or the
            legacy ``template``.

    Example:
        >>> PropertySchema(
        ...     key="alignment",
        ...     kind="select",
        ...     options=[{"value": "left"}, {"value": "right"}],
        ...     default="left",
        ... )
    """

    key: str = Field(..., min_length=1, description="Property name")
    kind: PropertyKind = Field(
        ...,
        validation_alias=AliasChoices("kind", "type"),
        description="Property kind",
    )
    label: str | None = Field(None, description="Editor-facing label")
    default: Any = Field(None, description="Default value shaped like kind")
    options: list[SelectOption] | None = Field(
        None, description="Ordered choices (select only)"
    )
    item_template: dict[str, Any] | None = Field(
        None,
        validation_alias=AliasChoices("item_template", "itemTemplate", "template"),
        description="Sub-field defaults of one array element (array only)",
    )

    @field_validator("kind", mode="before")
    @classmethod
    def _normalise_kind(cls, value: Any) -> Any:
        kind = resolve_kind(value)
        if kind is None:
            raise ValueError(f"Unknown property kind: {value!r}")
        return kind

    @model_validator(mode="after")
    def _check_kind_constraints(self) -> "PropertySchema":
        if self.kind is PropertyKind.SELECT:
            if not self.options:
                raise ValueError(f"select property '{self.key}' needs options")
        elif self.options is not None:
            raise ValueError(
                f"options are only allowed on select properties, '{self.key}' is {self.kind.value}"
            )
        if self.kind is PropertyKind.ARRAY:
            if self.item_template is None:
                raise ValueError(f"array property '{self.key}' needs an item template")
            if self.default is None:
                self.default = []
        return self

    @property
    def option_values(self) -> list[Any]:
        """Values of the select options, in declaration order."""
        return [option.value for option in self.options or []]

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the canonical field names."""
        data: dict[str, Any] = {
            "key": self.key,
            "kind": self.kind.value,
            "label": self.label,
            "default": self.default,
        }
        if self.options is not None:
            data["options"] = [o.model_dump() for o in self.options]
        if self.item_template is not None:
            data["itemTemplate"] = self.item_template
        return data


# =============================================================================
# Scalar parsing (None means "not parseable")
# =============================================================================


def _parse_bool(raw: Any) -> bool | None:
    if raw is None:
        return False
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int) and raw in (0, 1):
        return bool(raw)
    if isinstance(raw, str):
        normalized = raw.strip().lower()
        if normalized in _TRUE_STRINGS:
            return True
        if normalized in _FALSE_STRINGS:
            return False
    return None


def _parse_number(raw: Any) -> int | float | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return raw if math.isfinite(raw) else None
    if isinstance(raw, str):
        text = raw.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            value = float(text)
        except ValueError:
            return None
        return value if math.isfinite(value) else None
    return None


def _parse_text(raw: Any) -> str | None:
    if isinstance(raw, str):
        return raw
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        try:
            return str(raw)
        except ValueError:
            # int exceeds the interpreter digit limit
            return None
    return None


def _parse_select(schema: PropertySchema, raw: Any) -> Any:
    if raw is None:
        return None
    values = schema.option_values
    for value in values:
        if type(value) is type(raw) and value == raw:
            return value
    try:
        as_text = str(raw)
    except ValueError:
        return None
    for value in values:
        if str(value) == as_text:
            return value
    return None


# =============================================================================
# Defaults
# =============================================================================


def canonical_default(schema: PropertySchema) -> Any:
    """Return the schema default coerced to its kind.

    Hard fallbacks apply when the declared default itself is unusable:
    ``""`` for text kinds, ``0`` for numbers, ``False`` for booleans, the
    first option for selects and ``[]`` for arrays.
    """
    kind = schema.kind
    if kind is PropertyKind.BOOLEAN:
        parsed = _parse_bool(schema.default)
        return parsed if parsed is not None else False
    if kind is PropertyKind.NUMBER:
        parsed = _parse_number(schema.default)
        return parsed if parsed is not None else 0
    if kind is PropertyKind.SELECT:
        parsed = _parse_select(schema, schema.default)
        return parsed if parsed is not None else schema.option_values[0]
    if kind is PropertyKind.ARRAY:
        if not isinstance(schema.default, (list, tuple)):
            return []
        value, _ = _coerce_items(schema, list(schema.default))
        return value
    parsed = _parse_text(schema.default)
    return parsed if parsed is not None else ""


def schema_defaults(properties: Mapping[str, PropertySchema]) -> dict[str, Any]:
    """Canonical defaults for every property, keyed by property key."""
    return {
        key: copy.deepcopy(canonical_default(schema))
        for key, schema in properties.items()
    }


# =============================================================================
# Coercion
# =============================================================================


def _coerce_item_field(template_default: Any, raw: Any) -> Any:
    """Coerce one array item sub-field, inferring its kind from the template."""
    if isinstance(template_default, bool):
        parsed = _parse_bool(raw)
        return parsed if parsed is not None else template_default
    if isinstance(template_default, (int, float)):
        parsed = _parse_number(raw)
        return parsed if parsed is not None else template_default
    if isinstance(template_default, str):
        parsed = _parse_text(raw)
        return parsed if parsed is not None else template_default
    if isinstance(template_default, list):
        return raw if isinstance(raw, list) else copy.deepcopy(template_default)
    if isinstance(template_default, dict):
        return raw if isinstance(raw, dict) else copy.deepcopy(template_default)
    return raw


def _coerce_items(schema: PropertySchema, items: list[Any]) -> tuple[list[Any], list[str]]:
    template = schema.item_template or {}
    result: list[Any] = []
    unknown: list[str] = []
    for index, item in enumerate(items):
        if not isinstance(item, Mapping):
            result.append(copy.deepcopy(template))
            continue
        coerced = {
            field: _coerce_item_field(default, item.get(field, default))
            for field, default in template.items()
        }
        for field, value in item.items():
            if field not in template:
                coerced[field] = value
                unknown.append(f"{schema.key}[{index}].{field}")
        result.append(coerced)
    return result, unknown


def _coerce_array(schema: PropertySchema, raw: Any) -> tuple[list[Any], list[str]]:
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except (ValueError, RecursionError):
            return canonical_default(schema), []
    if not isinstance(raw, (list, tuple)):
        return canonical_default(schema), []
    return _coerce_items(schema, list(raw))


def coerce_with_report(schema: PropertySchema, raw: Any) -> tuple[Any, list[str]]:
    """Coerce a raw value and report extra array item sub-fields.

    Args:
        schema: Property schema to coerce against.
        raw: Raw value (possibly string-typed, possibly None).

    Returns:
        Tuple of (coerced value, unknown item field paths). The paths have the
        form ``key[index].field`` and are only produced for array kinds.
    """
    if schema.kind is PropertyKind.ARRAY:
        return _coerce_array(schema, raw)

    if schema.kind is PropertyKind.BOOLEAN:
        parsed = _parse_bool(raw)
    elif schema.kind is PropertyKind.NUMBER:
        parsed = _parse_number(raw)
    elif schema.kind is PropertyKind.SELECT:
        parsed = _parse_select(schema, raw)
    else:
        parsed = _parse_text(raw)

    if parsed is None:
        return canonical_default(schema), []
    return parsed, []


def coerce(schema: PropertySchema, raw: Any) -> Any:
    """Convert a raw input into the canonical type for the schema's kind.

    Never raises. Invalid input degrades to the schema default:
        - boolean: ``True/1/"1"/"true"`` -> True, ``False/0/"0"/"false"/None`` -> False
        - number: parsed, int before float; NaN and infinities rejected
        - select: must match an option value
        - text, richText, media: strings pass, numbers are stringified
        - array: JSON strings decoded, items coerced against the item template

    Example:
        >>> coerce(PropertySchema(key="n", kind="number", default=3), "12")
        12
        >>> coerce(PropertySchema(key="n", kind="number", default=3), "abc")
        3
    """
    value, _ = coerce_with_report(schema, raw)
    return value


def serialize_value(schema: PropertySchema, value: Any) -> str:
    """Serialize a value to the string form stored by form-based editors.

    The value is coerced first, so ``coerce(schema, serialize_value(schema, v))``
    equals ``coerce(schema, v)``.
    """
    canonical = coerce(schema, value)
    if schema.kind is PropertyKind.BOOLEAN:
        return "true" if canonical else "false"
    if schema.kind is PropertyKind.ARRAY:
        return json.dumps(canonical)
    return str(canonical)


# =============================================================================
# Property set parsing
# =============================================================================


def parse_properties(raw: Any) -> dict[str, PropertySchema]:
    """Parse a definition's property set.

    Accepts:
        - the stored shape ``{"properties": {key: {...}}}``
        - a plain mapping ``{key: {...}}`` (keys are injected into entries)
        - a list of property dicts or PropertySchema instances

    Raises:
        SchemaError: On duplicate keys, mismatched keys or invalid entries.
    """
    if raw is None:
        return {}

    if isinstance(raw, Mapping) and set(raw.keys()) == {"properties"}:
        raw = raw["properties"]

    entries: list[Any] = []
    if isinstance(raw, Mapping):
        for key, entry in raw.items():
            if isinstance(entry, PropertySchema):
                if entry.key != key:
                    raise SchemaError(f"Property '{key}' declares key '{entry.key}'")
                entries.append(entry)
            elif isinstance(entry, Mapping):
                declared = entry.get("key", key)
                if declared != key:
                    raise SchemaError(f"Property '{key}' declares key '{declared}'")
                entries.append({**entry, "key": key})
            else:
                raise SchemaError(f"Property '{key}' must be a mapping")
    elif isinstance(raw, (list, tuple)):
        entries = list(raw)
    else:
        raise SchemaError(f"Unsupported property set: {type(raw).__name__}")

    properties: dict[str, PropertySchema] = {}
    for entry in entries:
        try:
            schema = (
                entry
                if isinstance(entry, PropertySchema)
                else PropertySchema.model_validate(entry)
            )
        except ValidationError as e:
            raise SchemaError(str(e)) from e
        if schema.key in properties:
            raise SchemaError(f"Duplicate property key '{schema.key}'")
        properties[schema.key] = schema
    return properties


def export_property_schema() -> dict[str, Any]:
    """Export the PropertySchema JSON Schema (for editor tooling)."""
    return PropertySchema.model_json_schema()


__all__ = [
    "KIND_ALIASES",
    "TEXT_KINDS",
    "PropertyKind",
    "PropertySchema",
    "SchemaError",
    "SelectOption",
    "canonical_default",
    "coerce",
    "coerce_with_report",
    "export_property_schema",
    "parse_properties",
    "resolve_kind",
    "schema_defaults",
    "serialize_value",
]
