"""Schema module - property schemas and value coercion for component definitions.

This module provides:
- Property kinds and legacy kind aliases
- PropertySchema validation (select options, array item templates)
- Total coercion of raw values to canonical types
- Property set parsing for stored definition schemas

Example usage:
    >>> from src.schema import PropertySchema, coerce
    >>> schema = PropertySchema(key="visible", kind="boolean", default=False)
    >>> coerce(schema, "1")
    True
"""

from .lib import (
    KIND_ALIASES,
    TEXT_KINDS,
    PropertyKind,
    PropertySchema,
    SchemaError,
    SelectOption,
    canonical_default,
    coerce,
    coerce_with_report,
    export_property_schema,
    parse_properties,
    resolve_kind,
    schema_defaults,
    serialize_value,
)

__all__ = [
    # Kinds
    "PropertyKind",
    "KIND_ALIASES",
    "TEXT_KINDS",
    "resolve_kind",
    # Models
    "PropertySchema",
    "SelectOption",
    "SchemaError",
    # Coercion
    "coerce",
    "coerce_with_report",
    "canonical_default",
    "schema_defaults",
    "serialize_value",
    # Parsing
    "parse_properties",
    "export_property_schema",
]
