"""Unit tests for the reference resolution pipeline."""

import pytest

from src.instance import (
    ComponentInstance,
    ContainerKind,
    TypeTag,
    default_footer,
    new_container,
)
from src.registry import ComponentDefinition, DefinitionRegistry, seed_system_definitions

from . import lib
from .lib import (
    ORPHAN_MESSAGE,
    merge_props,
    preview_definition,
    resolve_container,
    resolve_instance,
)
from .models import ResolutionStatus, WarningKind
from .tags import TAG_HANDLERS


@pytest.fixture
def banner() -> ComponentDefinition:
    """Definition with a select, a boolean and an array property."""
    return ComponentDefinition.from_dict(
        {
            "name": "Banner",
            "properties": {
                "alignment": {
                    "kind": "select",
                    "options": [{"value": "left"}, {"value": "right"}],
                    "default": "left",
                },
                "sticky": {"kind": "boolean", "default": True},
                "links": {
                    "kind": "array",
                    "itemTemplate": {"label": "", "url": "#"},
                    "default": [],
                },
            },
        }
    )


@pytest.fixture
def registry(banner) -> DefinitionRegistry:
    registry = DefinitionRegistry([banner])
    seed_system_definitions(registry)
    return registry


def _instance(**kwargs) -> ComponentInstance:
    data = {"id": "i1", "position": "content", "order": 1}
    data.update(kwargs)
    return ComponentInstance(**data)


class TestMergeAndCoerce:
    """Merge of overrides over defaults."""

    @pytest.mark.unit
    def test_invalid_select_falls_back(self, registry, banner):
        """An unlisted select value resolves to the default."""
        resolved = resolve_instance(
            _instance(definition_ref=banner.id, overrides={"alignment": "center"}),
            registry,
        )
        assert resolved.props["alignment"] == "left"
        assert resolved.status is ResolutionStatus.RESOLVED
        assert resolved.definition_slug == "banner"

    @pytest.mark.unit
    def test_absent_keys_use_defaults(self, registry, banner):
        """Keys missing from overrides take the schema default."""
        resolved = resolve_instance(_instance(definition_ref="banner"), registry)
        assert resolved.props == {"alignment": "left", "sticky": True, "links": []}
        assert resolved.warnings == []

    @pytest.mark.unit
    def test_string_values_coerced(self, registry):
        """Form-submitted strings become canonical types."""
        resolved = resolve_instance(
            _instance(
                definition_ref="banner",
                overrides='{"sticky": "0", "links": "[{\\"label\\": \\"Docs\\"}]"}',
            ),
            registry,
        )
        assert resolved.props["sticky"] is False
        assert resolved.props["links"] == [{"label": "Docs", "url": "#"}]

    @pytest.mark.unit
    def test_unknown_keys_pass_through(self, registry):
        """Keys outside the schema survive and are flagged."""
        resolved = resolve_instance(
            _instance(definition_ref="banner", overrides={"legacy_color": "red"}),
            registry,
        )
        assert resolved.props["legacy_color"] == "red"
        assert resolved.unknown_properties == ["legacy_color"]
        assert resolved.warning_kinds() == [WarningKind.UNKNOWN_PROPERTY]

    @pytest.mark.unit
    def test_array_extra_fields_flagged(self, registry):
        """Extra array item fields are kept and reported."""
        resolved = resolve_instance(
            _instance(
                definition_ref="banner",
                overrides={"links": [{"label": "A", "icon": "star"}]},
            ),
            registry,
        )
        assert resolved.props["links"] == [{"label": "A", "url": "#", "icon": "star"}]
        assert resolved.unknown_properties == ["links[0].icon"]

    @pytest.mark.unit
    def test_merge_props_order(self, banner):
        """Schema keys come first, in schema order."""
        props, unknown = merge_props(banner.properties, {"zzz": 1, "sticky": 0})
        assert list(props) == ["alignment", "sticky", "links", "zzz"]
        assert unknown == ["zzz"]


class TestMalformedOverrides:
    """Malformed blobs degrade to defaults."""

    @pytest.mark.unit
    def test_truncated_json(self, registry):
        """A truncated JSON blob yields every default without raising."""
        resolved = resolve_instance(
            _instance(definition_ref="banner", overrides='{"title": "Hi"'), registry
        )
        assert resolved.props == {"alignment": "left", "sticky": True, "links": []}
        assert resolved.warning_kinds() == [WarningKind.MALFORMED_OVERRIDES]

    @pytest.mark.unit
    def test_non_object_json(self, registry):
        """A JSON array is not an overrides object."""
        resolved = resolve_instance(
            _instance(type_tag="text", overrides="[1, 2, 3]"), registry
        )
        assert resolved.props["text"] == "Text content goes here"
        assert WarningKind.MALFORMED_OVERRIDES in resolved.warning_kinds()

    @pytest.mark.unit
    def test_deeply_nested_json(self, registry):
        """Overrides nested past the decoder recursion limit resolve to defaults."""
        resolved = resolve_instance(
            _instance(type_tag="text", overrides='{"a":' + "[" * 100000), registry
        )
        assert resolved.status is ResolutionStatus.RESOLVED
        assert resolved.props["text"] == "Text content goes here"
        assert WarningKind.MALFORMED_OVERRIDES in resolved.warning_kinds()


class TestReferences:
    """Reference strategies and precedence."""

    @pytest.mark.unit
    def test_direct_wins_over_legacy(self, registry, banner):
        """Direct reference is used when both point at different definitions."""
        resolved = resolve_instance(
            _instance(
                type_tag="component",
                definition_ref=banner.id,
                overrides={"component_id": "heading"},
            ),
            registry,
        )
        assert resolved.definition_slug == "banner"
        assert resolved.warning_kinds() == [WarningKind.REFERENCE_CONFLICT]
        assert "component_id" not in resolved.props

    @pytest.mark.unit
    def test_agreeing_references_no_warning(self, registry, banner):
        """Id and slug of the same definition do not conflict."""
        resolved = resolve_instance(
            _instance(
                type_tag="component",
                definition_ref=banner.id,
                overrides={"component_id": "banner"},
            ),
            registry,
        )
        assert resolved.warnings == []

    @pytest.mark.unit
    def test_legacy_embedded_reference(self, registry):
        """Legacy component tag resolves through overrides.component_id."""
        heading_id = registry.get("heading").id
        resolved = resolve_instance(
            _instance(
                type_tag="component",
                overrides={
                    "component_id": heading_id,
                    "component_data": {"text": "Welcome", "level": "h1"},
                },
            ),
            registry,
        )
        assert resolved.definition_slug == "heading"
        assert resolved.props == {"level": "h1", "text": "Welcome", "alignment": "left"}
        assert resolved.unknown_properties == []

    @pytest.mark.unit
    def test_legacy_key_ignored_on_other_tags(self, registry):
        """Only the component tag reads component_id."""
        resolved = resolve_instance(
            _instance(type_tag="text", overrides={"component_id": "heading"}), registry
        )
        assert resolved.definition_slug is None
        assert resolved.unknown_properties == ["component_id"]

    @pytest.mark.unit
    def test_orphaned_definition(self, registry):
        """Missing definitions yield an orphan placeholder."""
        resolved = resolve_instance(_instance(definition_ref="deleted"), registry)
        assert resolved.status is ResolutionStatus.ORPHANED
        assert resolved.props == {}
        assert resolved.warnings[0].kind is WarningKind.ORPHANED_DEFINITION
        assert resolved.warnings[0].message == ORPHAN_MESSAGE

    @pytest.mark.unit
    def test_missing_reference(self, registry):
        """Definition tags without any reference are orphans too."""
        resolved = resolve_instance(_instance(type_tag="page_component"), registry)
        assert resolved.is_orphaned
        assert resolved.warning_kinds() == [WarningKind.MISSING_REFERENCE]

    @pytest.mark.unit
    def test_inactive_definition_still_resolves(self, registry):
        """Deactivated definitions resolve with a warning."""
        registry.deactivate("banner")
        resolved = resolve_instance(_instance(definition_ref="banner"), registry)
        assert resolved.props["sticky"] is True
        assert resolved.warning_kinds() == [WarningKind.INACTIVE_DEFINITION]

    @pytest.mark.unit
    def test_direct_reference_on_builtin_tag(self, registry):
        """A built-in tag with a direct reference uses the definition schema."""
        resolved = resolve_instance(
            _instance(type_tag="text", definition_ref="heading"), registry
        )
        assert resolved.definition_slug == "heading"
        assert "level" in resolved.props


class TestBuiltinTags:
    """Tag dispatch table."""

    @pytest.mark.unit
    def test_every_tag_has_a_handler(self):
        """The dispatch table is exhaustive."""
        assert set(TAG_HANDLERS) == set(TypeTag)

    @pytest.mark.unit
    def test_builtin_defaults(self, registry):
        """Built-in tags resolve without a definition."""
        resolved = resolve_instance(
            _instance(type_tag="menu", overrides={"menu_id": "1"}), registry
        )
        assert resolved.props == {"menu_id": 1, "title": "Menu"}
        assert resolved.definition_slug is None

    @pytest.mark.unit
    def test_default_footer_resolves_cleanly(self, registry):
        """The default footer resolves without warnings."""
        resolved = resolve_container(default_footer(), registry)
        assert [r.type_tag.value for r in resolved] == [
            "copyright",
            "logo",
            "text",
            "menu",
            "contact",
            "social",
        ]
        assert all(r.warnings == [] for r in resolved)
        social = resolved[-1]
        assert social.props["networks"][0] == {"name": "facebook", "url": "https://facebook.com"}


class TestResolveContainer:
    """Container-level resolution."""

    @pytest.mark.unit
    def test_one_broken_instance_does_not_break_siblings(self, registry, monkeypatch):
        """An unexpected failure yields a placeholder for that instance only."""
        page = new_container(ContainerKind.PAGE)
        page.instances = [
            _instance(id="ok", type_tag="text", order=1),
            _instance(id="boom", type_tag="text", order=2),
        ]
        original = lib._resolve

        def flaky(instance, reg):
            if instance.id == "boom":
                raise RuntimeError("kaput")
            return original(instance, reg)

        monkeypatch.setattr(lib, "_resolve", flaky)
        resolved = resolve_container(page, registry)
        assert [r.status for r in resolved] == [
            ResolutionStatus.RESOLVED,
            ResolutionStatus.FAILED,
        ]
        assert resolved[1].warning_kinds() == [WarningKind.RESOLUTION_FAILED]

    @pytest.mark.unit
    def test_filters(self, registry):
        """Inactive, device and hidden-region filters apply."""
        footer = new_container(ContainerKind.FOOTER, settings={"show_footer_bar": False})
        footer.instances = [
            _instance(id="a", type_tag="text", position="column_1", column=1, order=1),
            _instance(
                id="b",
                type_tag="text",
                position="column_1",
                column=1,
                order=2,
                visibility="mobile",
            ),
            _instance(id="c", type_tag="text", position="column_2", column=2, is_active=False, order=0),
            _instance(id="d", type_tag="copyright", position="footer_bar", order=1),
        ]
        assert [r.id for r in resolve_container(footer, registry)] == ["a", "b"]
        assert [r.id for r in resolve_container(footer, registry, visibility="desktop")] == ["a"]
        assert [
            r.id
            for r in resolve_container(
                footer, registry, include_inactive=True, include_hidden_regions=True
            )
        ] == ["d", "a", "b", "c"]

    @pytest.mark.unit
    def test_resolution_does_not_mutate(self, registry):
        """Stored state is unchanged by resolution."""
        footer = default_footer()
        footer.instances[0].overrides = '{"broken"'
        before = footer.model_copy(deep=True)
        resolve_container(footer, registry)
        assert footer == before


class TestPreview:
    """Palette previews."""

    @pytest.mark.unit
    def test_preview_definition(self, banner):
        """Previews resolve ad hoc overrides against one definition."""
        resolved = preview_definition(banner, {"alignment": "right"})
        assert resolved.props["alignment"] == "right"
        assert resolved.to_dict()["definition_slug"] == "banner"
