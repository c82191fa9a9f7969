"""Unit tests for the Schema module."""

import math

import pytest
from pydantic import ValidationError

from src.schema import (
    PropertyKind,
    PropertySchema,
    SchemaError,
    canonical_default,
    coerce,
    coerce_with_report,
    export_property_schema,
    parse_properties,
    resolve_kind,
    schema_defaults,
    serialize_value,
)

# =============================================================================
# Fixtures
# =============================================================================


def _text(default="Hello"):
    return PropertySchema(key="title", kind="text", default=default)


def _select(default="left"):
    return PropertySchema(
        key="alignment",
        kind="select",
        options=[{"value": "left"}, {"value": "right"}],
        default=default,
    )


def _array():
    return PropertySchema(
        key="plans",
        kind="array",
        itemTemplate={"name": "Plan", "price": 10, "featured": False},
        default=[{"name": "Basic", "price": 9, "featured": False}],
    )


ALL_SCHEMAS = [
    PropertySchema(key="t", kind="text", default="x"),
    PropertySchema(key="r", kind="richText", default="<p>x</p>"),
    PropertySchema(key="m", kind="media", default=""),
    PropertySchema(key="b", kind="boolean", default=True),
    PropertySchema(key="n", kind="number", default=5),
    _select(),
    _array(),
]

NASTY_INPUTS = [
    None,
    "",
    "   ",
    '{"title": "Hi"',
    "[1, 2",
    {"nested": {"deep": True}},
    [None, 3, "x"],
    ("tuple",),
    object(),
    float("nan"),
    float("inf"),
    -0.0,
    True,
    b"bytes",
]


def _structurally_valid(schema: PropertySchema, value) -> bool:
    kind = schema.kind
    if kind is PropertyKind.BOOLEAN:
        return isinstance(value, bool)
    if kind is PropertyKind.NUMBER:
        return (
            isinstance(value, (int, float))
            and not isinstance(value, bool)
            and math.isfinite(value)
        )
    if kind is PropertyKind.SELECT:
        return value in schema.option_values
    if kind is PropertyKind.ARRAY:
        return isinstance(value, list) and all(isinstance(i, dict) for i in value)
    return isinstance(value, str)


# =============================================================================
# Model validation
# =============================================================================


class TestPropertySchema:
    """Tests for PropertySchema validation."""

    @pytest.mark.unit
    def test_minimal_text(self):
        """Text property needs only key and kind."""
        schema = PropertySchema(key="title", kind="text")
        assert schema.kind is PropertyKind.TEXT
        assert schema.options is None

    @pytest.mark.unit
    def test_legacy_kind_aliases(self):
        """Stored legacy kind names are normalised."""
        assert PropertySchema(key="c", kind="rich-text").kind is PropertyKind.RICH_TEXT
        assert PropertySchema(key="c", kind="textarea").kind is PropertyKind.TEXT
        assert PropertySchema(key="c", kind="checkbox").kind is PropertyKind.BOOLEAN
        assert resolve_kind("nonsense") is None

    @pytest.mark.unit
    def test_unknown_kind_rejected(self):
        """Unknown kinds fail validation."""
        with pytest.raises(ValidationError):
            PropertySchema(key="c", kind="colour")

    @pytest.mark.unit
    def test_select_requires_options(self):
        """Select without options is rejected."""
        with pytest.raises(ValidationError):
            PropertySchema(key="a", kind="select", default="left")
        with pytest.raises(ValidationError):
            PropertySchema(key="a", kind="select", options=[])

    @pytest.mark.unit
    def test_options_rejected_on_other_kinds(self):
        """Options only belong on select properties."""
        with pytest.raises(ValidationError):
            PropertySchema(key="a", kind="text", options=[{"value": "x"}])

    @pytest.mark.unit
    def test_array_requires_item_template(self):
        """Array without item template is rejected."""
        with pytest.raises(ValidationError):
            PropertySchema(key="items", kind="array", default=[])

    @pytest.mark.unit
    def test_array_template_aliases(self):
        """itemTemplate and the legacy template key are both accepted."""
        a = PropertySchema.model_validate(
            {"key": "a", "kind": "array", "itemTemplate": {"x": ""}}
        )
        b = PropertySchema.model_validate(
            {"key": "b", "kind": "array", "template": {"x": ""}}
        )
        assert a.item_template == {"x": ""}
        assert b.item_template == {"x": ""}
        assert a.default == []

    @pytest.mark.unit
    def test_scalar_options_become_pairs(self):
        """Plain option values get a label equal to the value."""
        schema = PropertySchema(key="s", kind="select", options=["a", "b"])
        assert schema.option_values == ["a", "b"]
        assert schema.options[0].label == "a"

    @pytest.mark.unit
    def test_to_dict_uses_canonical_names(self):
        """to_dict emits kind values and itemTemplate."""
        data = _array().to_dict()
        assert data["kind"] == "array"
        assert "itemTemplate" in data

    @pytest.mark.unit
    def test_export_property_schema(self):
        """JSON Schema export names the model."""
        assert export_property_schema()["title"] == "PropertySchema"


# =============================================================================
# Coercion
# =============================================================================


class TestCoerceBoolean:
    """Boolean coercion rules."""

    @pytest.mark.unit
    @pytest.mark.parametrize("raw", [True, "1", "true", "TRUE", 1])
    def test_truthy(self, raw):
        """Recognised true values."""
        schema = PropertySchema(key="b", kind="boolean", default=False)
        assert coerce(schema, raw) is True

    @pytest.mark.unit
    @pytest.mark.parametrize("raw", [False, "0", "false", None, 0])
    def test_falsy(self, raw):
        """Recognised false values, including absence."""
        schema = PropertySchema(key="b", kind="boolean", default=True)
        assert coerce(schema, raw) is False

    @pytest.mark.unit
    def test_garbage_falls_back_to_default(self):
        """Unrecognised strings use the default."""
        schema = PropertySchema(key="b", kind="boolean", default=True)
        assert coerce(schema, "perhaps") is True


class TestCoerceNumber:
    """Number coercion rules."""

    @pytest.mark.unit
    def test_parses_strings(self):
        """Numeric strings are parsed, int before float."""
        schema = PropertySchema(key="n", kind="number", default=1)
        assert coerce(schema, "12") == 12
        assert isinstance(coerce(schema, "12"), int)
        assert coerce(schema, " 2.5 ") == 2.5

    @pytest.mark.unit
    def test_parse_failure_uses_default(self):
        """Unparseable input falls back to the default."""
        schema = PropertySchema(key="n", kind="number", default=7)
        assert coerce(schema, "seven") == 7
        assert coerce(schema, None) == 7
        assert coerce(schema, True) == 7
        assert coerce(schema, float("nan")) == 7

    @pytest.mark.unit
    def test_bad_default_falls_back_to_zero(self):
        """A non-numeric default degrades to zero."""
        schema = PropertySchema(key="n", kind="number", default="lots")
        assert coerce(schema, "x") == 0
        assert PropertySchema(key="n", kind="number", default="3").default == "3"
        assert canonical_default(PropertySchema(key="n", kind="number", default="3")) == 3


class TestCoerceSelect:
    """Select coercion rules."""

    @pytest.mark.unit
    def test_valid_option(self):
        """A listed value passes."""
        assert coerce(_select(), "right") == "right"

    @pytest.mark.unit
    def test_invalid_option_uses_default(self):
        """An unlisted value resolves to the default."""
        assert coerce(_select(), "center") == "left"

    @pytest.mark.unit
    def test_invalid_default_uses_first_option(self):
        """A default outside the options degrades to the first option."""
        assert coerce(_select(default="middle"), "nowhere") == "left"

    @pytest.mark.unit
    def test_string_match_on_numeric_options(self):
        """Form-submitted strings match numeric option values."""
        schema = PropertySchema(key="cols", kind="select", options=[1, 2, 3], default=1)
        assert coerce(schema, "2") == 2


class TestCoerceText:
    """Text, rich text and media coercion rules."""

    @pytest.mark.unit
    def test_strings_pass_through(self):
        """Strings are returned unchanged."""
        assert coerce(_text(), "<b>x</b>") == "<b>x</b>"
        assert coerce(_text(), "") == ""

    @pytest.mark.unit
    def test_none_uses_default(self):
        """Absent values use the default."""
        assert coerce(_text(), None) == "Hello"

    @pytest.mark.unit
    def test_numbers_are_stringified(self):
        """Numbers become their string form."""
        assert coerce(_text(), 42) == "42"

    @pytest.mark.unit
    def test_structures_use_default(self):
        """Dicts and lists are not text."""
        assert coerce(_text(), {"a": 1}) == "Hello"
        assert coerce(_text(), ["a"]) == "Hello"


class TestCoerceArray:
    """Array coercion rules."""

    @pytest.mark.unit
    def test_non_sequence_uses_default(self):
        """Non-list values fall back to the default."""
        assert coerce(_array(), 5) == [{"name": "Basic", "price": 9, "featured": False}]

    @pytest.mark.unit
    def test_json_string_decoded(self):
        """JSON-encoded arrays are decoded before coercion."""
        value = coerce(_array(), '[{"name": "Pro", "price": "29"}]')
        assert value == [{"name": "Pro", "price": 29, "featured": False}]

    @pytest.mark.unit
    def test_malformed_json_uses_default(self):
        """Truncated JSON degrades to the default."""
        assert coerce(_array(), '[{"name": "Pro"') == canonical_default(_array())

    @pytest.mark.unit
    def test_missing_subfields_use_template(self):
        """Missing sub-fields come from the item template."""
        value = coerce(_array(), [{"name": "Team"}])
        assert value == [{"name": "Team", "price": 10, "featured": False}]

    @pytest.mark.unit
    def test_subfields_coerced_by_template_type(self):
        """Sub-field kinds are inferred from the template defaults."""
        value = coerce(_array(), [{"name": 3, "price": "oops", "featured": "1"}])
        assert value == [{"name": "3", "price": 10, "featured": True}]

    @pytest.mark.unit
    def test_non_mapping_items_become_template(self):
        """Scalar items are replaced with a template copy."""
        value = coerce(_array(), ["junk"])
        assert value == [{"name": "Plan", "price": 10, "featured": False}]

    @pytest.mark.unit
    def test_extra_subfields_pass_through_and_are_reported(self):
        """Legacy extra sub-fields survive and are reported."""
        value, unknown = coerce_with_report(
            _array(), [{"name": "A"}, {"name": "B", "badge": "new"}]
        )
        assert value[1]["badge"] == "new"
        assert unknown == ["plans[1].badge"]


class TestCoercionTotalSafety:
    """Coercion never raises and always returns a kind-valid value."""

    @pytest.mark.unit
    @pytest.mark.parametrize("schema", ALL_SCHEMAS, ids=lambda s: s.kind.value)
    def test_never_raises(self, schema):
        """Every nasty input yields a structurally valid value."""
        for raw in NASTY_INPUTS:
            value = coerce(schema, raw)
            assert _structurally_valid(schema, value), (schema.kind, raw, value)

    @pytest.mark.unit
    def test_deeply_nested_json_array(self):
        """JSON nested past the decoder recursion limit falls back to the default."""
        assert coerce(_array(), "[" * 100000) == [
            {"name": "Basic", "price": 9, "featured": False}
        ]

    @pytest.mark.unit
    def test_int_beyond_digit_limit(self):
        """Integers too long to stringify fall back to the default."""
        huge = 10**5000
        assert coerce(_text(), huge) == "Hello"
        assert coerce(_select(), huge) == "left"


class TestSerializeRoundTrip:
    """coerce(serialize(coerce(v))) equals coerce(v)."""

    @pytest.mark.unit
    @pytest.mark.parametrize("schema", ALL_SCHEMAS, ids=lambda s: s.kind.value)
    def test_idempotent(self, schema):
        """Serializing a coerced value and coercing again is stable."""
        for raw in ["1", "right", 3.25, None, [{"name": "X", "extra": 1}]]:
            once = coerce(schema, raw)
            assert coerce(schema, serialize_value(schema, once)) == once

    @pytest.mark.unit
    def test_boolean_serialization(self):
        """Booleans serialize to true/false."""
        schema = PropertySchema(key="b", kind="boolean")
        assert serialize_value(schema, "1") == "true"
        assert serialize_value(schema, None) == "false"


# =============================================================================
# Property sets
# =============================================================================


class TestParseProperties:
    """Tests for parse_properties."""

    @pytest.mark.unit
    def test_stored_shape(self):
        """The {"properties": {...}} shape is unwrapped and keys injected."""
        props = parse_properties(
            {
                "properties": {
                    "text": {"type": "text", "default": "Hi"},
                    "level": {
                        "kind": "select",
                        "options": [{"value": "h1", "label": "H1"}],
                        "default": "h1",
                    },
                }
            }
        )
        assert list(props) == ["text", "level"]
        assert props["level"].key == "level"

    @pytest.mark.unit
    def test_type_key_accepted(self):
        """Stored schemas use 'type' rather than 'kind'."""
        props = parse_properties({"content": {"type": "rich-text", "default": ""}})
        assert props["content"].kind is PropertyKind.RICH_TEXT

    @pytest.mark.unit
    def test_list_with_duplicates_rejected(self):
        """Duplicate keys in a list are a schema error."""
        with pytest.raises(SchemaError):
            parse_properties(
                [{"key": "a", "kind": "text"}, {"key": "a", "kind": "number"}]
            )

    @pytest.mark.unit
    def test_mismatched_key_rejected(self):
        """A mapping entry cannot declare a different key."""
        with pytest.raises(SchemaError):
            parse_properties({"a": {"key": "b", "kind": "text"}})

    @pytest.mark.unit
    def test_invalid_entry_is_schema_error(self):
        """Pydantic errors surface as SchemaError."""
        with pytest.raises(SchemaError):
            parse_properties({"a": {"kind": "select"}})

    @pytest.mark.unit
    def test_schema_defaults(self):
        """Defaults are canonical and independent copies."""
        props = parse_properties([_array(), _select(), _text()])
        defaults = schema_defaults(props)
        assert defaults["alignment"] == "left"
        defaults["plans"][0]["name"] = "changed"
        assert schema_defaults(props)["plans"][0]["name"] == "Basic"
