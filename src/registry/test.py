"""Unit tests for the component definition registry."""

import pytest

from src.schema import PropertyKind, SchemaError

from .lib import (
    ComponentDefinition,
    DefinitionNotFound,
    DefinitionRegistry,
    DuplicateSlug,
    ProtectedDefinition,
    slugify,
)
from .seeds import SYSTEM_DEFINITIONS, seed_system_definitions


def _hero(**kwargs) -> ComponentDefinition:
    return ComponentDefinition.from_dict(
        {
            "name": "Hero",
            "category": "marketing",
            "properties": {
                "headline": {"kind": "text", "default": "Welcome"},
                "layout": {
                    "kind": "select",
                    "options": ["left", "right"],
                    "default": "left",
                },
            },
            **kwargs,
        }
    )


class TestComponentDefinition:
    """Tests for the ComponentDefinition model."""

    @pytest.mark.unit
    def test_slug_derived_from_name(self):
        """Missing slug is slugified from the name."""
        assert ComponentDefinition(name="Pricing Table!").slug == "pricing-table"
        assert slugify("  Team / Members ") == "team-members"

    @pytest.mark.unit
    def test_explicit_slug_kept(self):
        """An explicit slug is not rewritten."""
        assert _hero(slug="hero_v2").slug == "hero_v2"

    @pytest.mark.unit
    def test_stored_schema_shape(self):
        """Legacy schema/properties/type input is accepted."""
        definition = ComponentDefinition.from_dict(
            {
                "name": "Quote",
                "schema": {
                    "properties": {"body": {"type": "rich-text", "default": ""}}
                },
            }
        )
        assert definition.properties["body"].kind is PropertyKind.RICH_TEXT

    @pytest.mark.unit
    def test_invalid_properties_raise_schema_error(self):
        """A select without options makes the definition invalid."""
        with pytest.raises(SchemaError):
            ComponentDefinition.from_dict(
                {"name": "Bad", "properties": {"x": {"kind": "select"}}}
            )

    @pytest.mark.unit
    def test_missing_name_is_schema_error(self):
        """Name is required."""
        with pytest.raises(SchemaError):
            ComponentDefinition.from_dict({"slug": "nameless"})

    @pytest.mark.unit
    def test_to_dict_round_trip(self):
        """to_dict output is accepted by from_dict."""
        original = _hero()
        copy = ComponentDefinition.from_dict(original.to_dict())
        assert copy.id == original.id
        assert copy.slug == original.slug
        assert copy.properties == original.properties
        assert copy.created_at == original.created_at

    @pytest.mark.unit
    def test_defaults(self):
        """defaults() returns canonical values per key."""
        assert _hero().defaults() == {"headline": "Welcome", "layout": "left"}


class TestDefinitionRegistry:
    """Tests for DefinitionRegistry operations."""

    @pytest.mark.unit
    def test_register_and_get(self):
        """Registered definitions are retrievable by slug and id."""
        registry = DefinitionRegistry()
        hero = registry.register(_hero())
        assert registry.get("hero") is hero
        assert registry.find(hero.id) is hero
        assert "hero" in registry
        assert len(registry) == 1

    @pytest.mark.unit
    def test_duplicate_slug(self):
        """Registering an existing slug fails."""
        registry = DefinitionRegistry([_hero()])
        with pytest.raises(DuplicateSlug):
            registry.register(_hero())

    @pytest.mark.unit
    def test_get_missing(self):
        """Unknown slugs raise DefinitionNotFound, find returns None."""
        registry = DefinitionRegistry()
        with pytest.raises(DefinitionNotFound):
            registry.get("nope")
        assert registry.find("nope") is None
        assert registry.find(None) is None

    @pytest.mark.unit
    def test_list_active_insertion_order(self):
        """Palette order is insertion order, filtered by category."""
        registry = DefinitionRegistry(
            [
                ComponentDefinition(name="Zeta", category="text"),
                ComponentDefinition(name="Alpha", category="media"),
                ComponentDefinition(name="Beta", category="text"),
            ]
        )
        assert [d.slug for d in registry.list_active()] == ["zeta", "alpha", "beta"]
        assert [d.slug for d in registry.list_active("text")] == ["zeta", "beta"]
        assert registry.categories() == ["text", "media"]

    @pytest.mark.unit
    def test_deactivate_hides_from_palette(self):
        """Deactivated definitions stay findable but leave the palette."""
        registry = DefinitionRegistry([_hero()])
        registry.deactivate("hero")
        assert registry.list_active() == []
        assert registry.find("hero") is not None
        assert len(registry.list_all()) == 1
        registry.activate("hero")
        assert len(registry.list_active()) == 1

    @pytest.mark.unit
    def test_system_definitions_protected(self):
        """System entries cannot be deactivated, updated or removed."""
        registry = DefinitionRegistry([_hero(is_system=True)])
        with pytest.raises(ProtectedDefinition):
            registry.deactivate("hero")
        with pytest.raises(ProtectedDefinition):
            registry.update("hero", name="Other")
        with pytest.raises(ProtectedDefinition):
            registry.remove("hero")
        assert registry.get("hero").is_active

    @pytest.mark.unit
    def test_update_revalidates(self):
        """Updates replace fields and re-parse the property set."""
        registry = DefinitionRegistry([_hero()])
        original_id = registry.get("hero").id
        updated = registry.update(
            "hero", name="Hero 2", properties={"tagline": {"kind": "text"}}
        )
        assert updated.name == "Hero 2"
        assert list(updated.properties) == ["tagline"]
        assert updated.id == original_id
        with pytest.raises(SchemaError):
            registry.update("hero", properties={"x": {"kind": "array"}})
        assert registry.get("hero").name == "Hero 2"

    @pytest.mark.unit
    def test_update_rejects_immutable_fields(self):
        """Slug and id cannot change."""
        registry = DefinitionRegistry([_hero()])
        with pytest.raises(ValueError):
            registry.update("hero", slug="villain")

    @pytest.mark.unit
    def test_remove(self):
        """Removed definitions are no longer found by slug or id."""
        registry = DefinitionRegistry([_hero()])
        removed = registry.remove("hero")
        assert registry.find("hero") is None
        assert registry.find(removed.id) is None


class TestSeeds:
    """Tests for the built-in catalog."""

    @pytest.mark.unit
    def test_seed_registers_catalog(self):
        """Every entry parses and is system-owned."""
        registry = DefinitionRegistry()
        added = seed_system_definitions(registry)
        assert len(added) == len(SYSTEM_DEFINITIONS)
        assert all(d.is_system for d in added)
        assert registry.get("heading").defaults()["level"] == "h2"
        assert registry.get("image").defaults()["alignment"] == "center"

    @pytest.mark.unit
    def test_seed_is_idempotent(self):
        """Seeding twice adds nothing the second time."""
        registry = DefinitionRegistry()
        seed_system_definitions(registry)
        assert seed_system_definitions(registry) == []

    @pytest.mark.unit
    def test_seed_skips_existing_slugs(self):
        """A user definition with a catalog slug is kept."""
        registry = DefinitionRegistry([ComponentDefinition(name="Heading")])
        added = seed_system_definitions(registry)
        assert "heading" not in [d.slug for d in added]
        assert not registry.get("heading").is_system

    @pytest.mark.unit
    def test_array_definitions(self):
        """Array properties carry item templates and typed defaults."""
        registry = DefinitionRegistry()
        seed_system_definitions(registry)
        plans = registry.get("pricing").properties["plans"]
        assert plans.kind is PropertyKind.ARRAY
        assert plans.item_template["price"] == 0
        assert registry.get("pricing").defaults()["plans"][1]["highlighted"] is True
        assert registry.get("team").defaults()["columns"] == 3
