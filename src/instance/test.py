"""Unit tests for the instance tree model."""

import pytest
from pydantic import ValidationError

from src.registry import ComponentDefinition

from .lib import (
    ComponentInstance,
    Container,
    ContainerKind,
    TypeTag,
    Visibility,
    default_footer,
    default_header,
    instance_from_definition,
    new_container,
    parse_column_position,
    parse_overrides,
)


class TestParseOverrides:
    """Tests for overrides normalisation."""

    @pytest.mark.unit
    def test_mapping(self):
        """Decoded mappings are copied."""
        raw = {"title": "Hi"}
        parsed, ok = parse_overrides(raw)
        assert parsed == raw and ok
        assert parsed is not raw

    @pytest.mark.unit
    def test_json_string_and_bytes(self):
        """JSON strings and UTF-8 bytes decode to the same dict."""
        assert parse_overrides('{"title": "Hi"}') == ({"title": "Hi"}, True)
        assert parse_overrides(b'{"title": "Hi"}') == ({"title": "Hi"}, True)

    @pytest.mark.unit
    def test_absent(self):
        """None and blank strings mean no overrides."""
        assert parse_overrides(None) == ({}, True)
        assert parse_overrides("  ") == ({}, True)

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw", ['{"title": "Hi"', "[1, 2]", "42", b"\xff\xfe", 3.5]
    )
    def test_malformed(self, raw):
        """Anything not decoding to an object is empty and flagged."""
        assert parse_overrides(raw) == ({}, False)


class TestPositions:
    """Tests for position helpers."""

    @pytest.mark.unit
    def test_parse_column_position(self):
        """Only column_<digits> encodes a column."""
        assert parse_column_position("column_3") == 3
        assert parse_column_position("column_") is None
        assert parse_column_position("column_x") is None
        assert parse_column_position("column_\u00b2") is None
        assert parse_column_position("column_\u0663") is None
        assert parse_column_position("header") is None

    @pytest.mark.unit
    def test_valid_positions_per_kind(self):
        """Each container kind has its own regions."""
        header = new_container(ContainerKind.HEADER)
        footer = new_container(ContainerKind.FOOTER, columns=2)
        page = new_container(ContainerKind.PAGE)
        assert header.valid_positions() == ["topbar", "header", "subheader"]
        assert footer.valid_positions() == ["footer_bar", "column_1", "column_2"]
        assert page.valid_positions() == ["content", "column_1"]
        assert not header.accepts_region("column_1")
        assert footer.accepts_region("column_9")
        assert not page.accepts_region("footer_bar")

    @pytest.mark.unit
    def test_region_flags(self):
        """Container settings switch regions on and off."""
        header = new_container(ContainerKind.HEADER)
        assert header.region_enabled("header")
        assert not header.region_enabled("topbar")
        footer = new_container(ContainerKind.FOOTER, settings={"show_footer_bar": False})
        assert not footer.region_enabled("footer_bar")
        assert footer.region_enabled("column_1")
        footer.settings["show_footer"] = False
        assert not footer.region_enabled("column_1")


class TestComponentInstance:
    """Tests for the ComponentInstance model."""

    @pytest.mark.unit
    def test_legacy_field_names(self):
        """Stored type/settings/page_component_id names are accepted."""
        instance = ComponentInstance.model_validate(
            {
                "type": "component",
                "settings": '{"component_id": 7}',
                "page_component_id": 12,
                "position": "footer_bar",
            }
        )
        assert instance.type_tag is TypeTag.COMPONENT
        assert instance.definition_ref == "12"
        assert instance.settings() == {"component_id": 7}

    @pytest.mark.unit
    def test_hyphenated_tag(self):
        """Older rows spell dynamic_ai with a hyphen."""
        instance = ComponentInstance(type_tag="dynamic-ai", position="content")
        assert instance.type_tag is TypeTag.DYNAMIC_AI

    @pytest.mark.unit
    def test_unknown_tag_rejected(self):
        """The tag set is closed."""
        with pytest.raises(ValidationError):
            ComponentInstance(type_tag="carousel", position="content")

    @pytest.mark.unit
    def test_malformed_overrides_kept_verbatim(self):
        """Malformed blobs survive loading and read as empty settings."""
        instance = ComponentInstance(position="content", overrides='{"title": "Hi"')
        assert instance.overrides == '{"title": "Hi"'
        assert instance.settings() == {}

    @pytest.mark.unit
    def test_defaults(self):
        """Fresh instances are active, visible everywhere and unranked."""
        instance = ComponentInstance(position="content")
        assert instance.is_active
        assert instance.visibility is Visibility.ALL
        assert instance.order == 0
        assert instance.bucket == ("content", None)

    @pytest.mark.unit
    def test_column_must_be_positive(self):
        """Column numbers start at 1."""
        with pytest.raises(ValidationError):
            ComponentInstance(position="column_1", column=0)


class TestFactories:
    """Tests for container and instance factories."""

    @pytest.mark.unit
    def test_footer_columns_from_environment(self, monkeypatch):
        """New footers take their column count from the environment."""
        monkeypatch.setenv("COMPOSER_FOOTER_COLUMNS", "4")
        assert new_container("footer").columns == 4
        assert new_container("page").columns == 1

    @pytest.mark.unit
    def test_instance_from_definition(self):
        """Palette clones copy definition defaults into overrides."""
        definition = ComponentDefinition.from_dict(
            {"name": "Hero", "properties": {"headline": {"kind": "text", "default": "Hi"}}}
        )
        instance = instance_from_definition(definition, "content")
        assert instance.definition_ref == definition.id
        assert instance.overrides == {"headline": "Hi"}
        assert instance.name == "Hero"
        assert instance.type_tag is TypeTag.PAGE_COMPONENT

    @pytest.mark.unit
    def test_default_header(self):
        """Default header holds four header-region instances."""
        header = default_header()
        assert header.kind is ContainerKind.HEADER
        assert [(i.type_tag.value, i.order) for i in header.instances] == [
            ("logo", 1),
            ("menu", 2),
            ("auth", 3),
            ("cart", 4),
        ]

    @pytest.mark.unit
    def test_default_footer(self):
        """Default footer spreads six instances over three columns and the bar."""
        footer = default_footer()
        assert footer.columns == 3
        buckets = [(i.bucket, i.order) for i in footer.instances]
        assert buckets == [
            (("column_1", 1), 1),
            (("column_1", 1), 2),
            (("column_2", 2), 1),
            (("column_3", 3), 1),
            (("column_3", 3), 2),
            (("footer_bar", None), 1),
        ]
        assert footer.settings["show_footer_bar"] is True

    @pytest.mark.unit
    def test_container_round_trip(self):
        """to_dict output validates back into an equal container."""
        footer = default_footer()
        assert Container.model_validate(footer.to_dict()) == footer
        assert footer.get(footer.instances[0].id) is footer.instances[0]
        assert footer.get("missing") is None
