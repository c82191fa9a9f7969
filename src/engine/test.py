"""Unit tests for the composition engine and resolution cache."""

import pytest

from src.instance import ComponentInstance, ContainerKind, TypeTag
from src.layout import (
    ColumnOutOfRange,
    IncompleteReorder,
    InstanceNotFound,
    InvalidMove,
    InvalidPosition,
    layout_snapshot,
)
from src.registry import DefinitionNotFound, DuplicateSlug, ProtectedDefinition
from src.resolve import ResolutionStatus, WarningKind
from src.storage import InMemoryStorage, StorageEvent, StorageEventKind

from .cache import ResolutionCache
from .lib import CompositionEngine, ContainerNotFound, DefinitionInactive

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def engine():
    """Seeded engine over in-memory storage with caching on."""
    engine = CompositionEngine(InMemoryStorage(), cache_enabled=True, max_columns=4)
    engine.seed()
    yield engine
    engine.close()


@pytest.fixture
def page(engine):
    return engine.create_container(ContainerKind.PAGE, name="Home")


@pytest.fixture
def hero(engine):
    return engine.register_definition(
        {
            "name": "Hero",
            "category": "marketing",
            "properties": {
                "headline": {"kind": "text", "default": "Welcome"},
                "alignment": {
                    "kind": "select",
                    "options": [{"value": "left"}, {"value": "center"}],
                    "default": "left",
                },
            },
        }
    )


# =============================================================================
# Cache
# =============================================================================


class TestResolutionCache:
    """Tests for the read-through cache."""

    @pytest.mark.unit
    def test_hit_and_miss(self):
        """A second lookup with the same options is served from the cache."""
        cache = ResolutionCache()
        calls = []

        def compute():
            calls.append(1)
            return ["x"]

        assert cache.get_or_resolve("c1", (False,), compute) == ["x"]
        assert cache.get_or_resolve("c1", (False,), compute) == ["x"]
        assert cache.get_or_resolve("c1", (True,), compute) == ["x"]
        assert len(calls) == 2
        assert cache.stats()["hits"] == 1

    @pytest.mark.unit
    def test_disabled(self):
        """A disabled cache always recomputes and stores nothing."""
        cache = ResolutionCache(enabled=False)
        calls = []
        for _ in range(2):
            cache.get_or_resolve("c1", (), lambda: calls.append(1) or [])
        assert len(calls) == 2
        assert len(cache) == 0

    @pytest.mark.unit
    def test_invalidation_by_event(self):
        """Container events drop one container, definition events drop all."""
        cache = ResolutionCache()
        cache.get_or_resolve("c1", (), list)
        cache.get_or_resolve("c2", (), list)
        cache.on_storage_event(StorageEvent(StorageEventKind.CONTAINER_SAVED, "c1"))
        assert len(cache) == 1
        cache.on_storage_event(StorageEvent(StorageEventKind.DEFINITION_SAVED, "hero"))
        assert len(cache) == 0


# =============================================================================
# Definitions
# =============================================================================


class TestDefinitionManagement:
    """Definition operations through the engine."""

    @pytest.mark.unit
    def test_seed_is_idempotent(self, engine):
        """Seeding twice adds nothing the second time."""
        assert engine.seed() == []
        assert engine.registry.find("heading").is_system

    @pytest.mark.unit
    def test_register_persists(self, engine, hero):
        """Registered definitions reach storage and the palette."""
        assert engine.storage.load_definition("hero").id == hero.id
        assert hero in engine.palette("marketing")

    @pytest.mark.unit
    def test_duplicate_slug(self, engine, hero):
        """A second definition with the same slug is rejected."""
        with pytest.raises(DuplicateSlug):
            engine.register_definition({"name": "Hero"})

    @pytest.mark.unit
    def test_system_definitions_protected(self, engine):
        """System definitions cannot be hidden, changed or removed."""
        with pytest.raises(ProtectedDefinition):
            engine.deactivate_definition("heading")
        with pytest.raises(ProtectedDefinition):
            engine.update_definition("heading", name="Title")
        with pytest.raises(ProtectedDefinition):
            engine.remove_definition("heading")

    @pytest.mark.unit
    def test_deactivate_hides_from_palette(self, engine, hero):
        """Inactive definitions leave the palette and are stored inactive."""
        engine.deactivate_definition("hero")
        assert hero.slug not in [d.slug for d in engine.palette()]
        assert engine.storage.load_definition("hero").is_active is False
        engine.activate_definition("hero")
        assert "hero" in [d.slug for d in engine.palette()]

    @pytest.mark.unit
    def test_reload_from_storage(self, engine, hero):
        """A new engine over the same storage sees the same catalog."""
        again = CompositionEngine(engine.storage, cache_enabled=False)
        assert [d.slug for d in again.palette()] == [d.slug for d in engine.palette()]

    @pytest.mark.unit
    def test_preview(self, engine, hero):
        """Previews resolve a definition with ad hoc overrides."""
        resolved = engine.preview("hero", {"alignment": "center"})
        assert resolved.props == {"headline": "Welcome", "alignment": "center"}
        with pytest.raises(DefinitionNotFound):
            engine.preview("nope")


# =============================================================================
# Containers
# =============================================================================


class TestContainerManagement:
    """Container lifecycle."""

    @pytest.mark.unit
    def test_create_and_list(self, engine, page):
        """Created containers are listed by kind."""
        footer = engine.create_default_footer()
        assert [c.id for c in engine.list_containers("page")] == [page.id]
        assert [c.id for c in engine.list_containers()] == [page.id, footer.id]

    @pytest.mark.unit
    def test_column_limit(self, engine):
        """Containers cannot exceed the configured column limit."""
        with pytest.raises(ColumnOutOfRange):
            engine.create_container("footer", columns=5)

    @pytest.mark.unit
    def test_missing_container(self, engine):
        """Unknown ids raise ContainerNotFound."""
        with pytest.raises(ContainerNotFound):
            engine.get_container("nope")
        with pytest.raises(ContainerNotFound):
            engine.delete_container("nope")
        with pytest.raises(ContainerNotFound):
            engine.resolve_container("nope")

    @pytest.mark.unit
    def test_set_columns(self, engine):
        """Shrinking is refused while a removed column holds components."""
        footer = engine.create_default_footer()
        with pytest.raises(ColumnOutOfRange, match="column 3"):
            engine.set_columns(footer.id, 2)
        assert engine.set_columns(footer.id, 4).columns == 4
        assert engine.get_container(footer.id).columns == 4


# =============================================================================
# Instances
# =============================================================================


class TestInstanceEdits:
    """Layout edits persist densely."""

    @pytest.mark.unit
    def test_add_from_palette(self, engine, page, hero):
        """Palette instances start with the definition defaults."""
        first = engine.add_from_palette(page.id, "hero", "content")
        second = engine.add_from_palette(page.id, "heading", "content", index=1)
        stored = engine.get_container(page.id)
        assert layout_snapshot(stored)["content"] == [second.id, first.id]
        assert stored.get(first.id).overrides == {
            "headline": "Welcome",
            "alignment": "left",
        }

    @pytest.mark.unit
    def test_add_inactive_definition(self, engine, page, hero):
        """Hidden definitions cannot be placed."""
        engine.deactivate_definition("hero")
        with pytest.raises(DefinitionInactive):
            engine.add_from_palette(page.id, "hero", "content")

    @pytest.mark.unit
    def test_add_from_palette_with_settings(self, engine, page, hero):
        """Settings are merged over the defaults in a single save."""
        events = []
        engine.storage.subscribe(events.append)
        instance = engine.add_from_palette(
            page.id, "hero", "content", settings={"headline": "Hi"}
        )
        assert [e.kind for e in events] == [StorageEventKind.CONTAINER_SAVED]
        assert engine.get_container(page.id).get(instance.id).overrides == {
            "headline": "Hi",
            "alignment": "left",
        }

    @pytest.mark.unit
    def test_add_builtin(self, engine):
        """Built-in tags are placed without a definition."""
        header = engine.create_container("header")
        instance = engine.add_instance(header.id, "search", "header")
        resolved = engine.resolve(header.id, instance.id)
        assert resolved.type_tag is TypeTag.SEARCH
        assert resolved.props["placeholder"] == "Search..."

    @pytest.mark.unit
    def test_invalid_position_not_saved(self, engine, page):
        """A rejected edit leaves storage untouched."""
        with pytest.raises(InvalidPosition):
            engine.add_instance(page.id, "text", "footer_bar")
        assert engine.get_container(page.id).instances == []

    @pytest.mark.unit
    def test_update_settings_merges(self, engine, page, hero):
        """Settings merge over existing overrides unless replaced."""
        instance = engine.add_from_palette(page.id, "hero", "content")
        engine.update_settings(page.id, instance.id, {"headline": "Hi"}, visibility="mobile")
        stored = engine.get_container(page.id).get(instance.id)
        assert stored.overrides == {"headline": "Hi", "alignment": "left"}
        assert stored.visibility.value == "mobile"
        engine.update_settings(page.id, instance.id, {"alignment": "center"}, replace=True)
        assert engine.get_container(page.id).get(instance.id).overrides == {
            "alignment": "center"
        }
        with pytest.raises(InstanceNotFound):
            engine.update_settings(page.id, "nope", {})

    @pytest.mark.unit
    def test_move_and_reorder(self, engine):
        """Moves and reorders persist dense orders."""
        footer = engine.create_default_footer()
        snapshot = layout_snapshot(footer)
        logo, about = snapshot["column_1"]
        engine.move(footer.id, about, "column_2", index=1)
        stored = layout_snapshot(engine.get_container(footer.id))
        assert stored["column_1"] == [logo]
        assert stored["column_2"][0] == about

        column_2 = list(reversed(stored["column_2"]))
        engine.reorder_bucket(footer.id, "column_2", 2, column_2)
        assert layout_snapshot(engine.get_container(footer.id))["column_2"] == column_2

        with pytest.raises(IncompleteReorder):
            engine.reorder_bucket(footer.id, "column_2", 2, column_2[:1])
        with pytest.raises(InvalidMove):
            engine.move(footer.id, logo, "column_1", target_container="other")

    @pytest.mark.unit
    def test_set_active_and_remove(self, engine):
        """Deactivating unranks, removing closes the gap."""
        header = engine.create_default_header()
        logo, menu, auth, cart = layout_snapshot(header)["header"]
        engine.set_active(header.id, menu, False)
        stored = engine.get_container(header.id)
        assert stored.get(menu).order == 0
        assert layout_snapshot(stored)["header"] == [logo, auth, cart]
        engine.remove(header.id, auth)
        assert [i.order for i in engine.get_container(header.id).instances if i.is_active] == [1, 2]


# =============================================================================
# Read side
# =============================================================================


class TestResolution:
    """Resolution through the engine."""

    @pytest.mark.unit
    def test_cache_invalidated_by_edit(self, engine, page, hero):
        """An edit is visible on the next resolve."""
        instance = engine.add_from_palette(page.id, "hero", "content")
        assert engine.resolve_container(page.id)[0].props["headline"] == "Welcome"
        assert engine.resolve_container(page.id)[0].props["headline"] == "Welcome"
        assert engine.cache.hits == 1
        engine.update_settings(page.id, instance.id, {"headline": "Hi"})
        assert engine.resolve_container(page.id)[0].props["headline"] == "Hi"

    @pytest.mark.unit
    def test_cached_result_is_isolated(self, engine, page, hero):
        """Mutating a returned resolution does not leak into later reads."""
        engine.add_from_palette(page.id, "hero", "content")
        first = engine.resolve_container(page.id)
        first[0].props["headline"] = "Changed"
        second = engine.resolve_container(page.id)
        second[0].props["alignment"] = "center"
        third = engine.resolve_container(page.id)
        assert engine.cache.hits == 2
        assert third[0].props == {"headline": "Welcome", "alignment": "left"}

    @pytest.mark.unit
    def test_removed_definition_orphans(self, engine, page, hero):
        """Removing a definition orphans its instances on the next resolve."""
        engine.add_from_palette(page.id, "hero", "content")
        assert engine.resolve_container(page.id)[0].status is ResolutionStatus.RESOLVED
        engine.remove_definition("hero")
        resolved = engine.resolve_container(page.id)[0]
        assert resolved.status is ResolutionStatus.ORPHANED
        assert WarningKind.ORPHANED_DEFINITION in resolved.warning_kinds()

    @pytest.mark.unit
    def test_validate_sees_raw_state(self, engine, page):
        """Validation reports stored gaps that loading would repair."""
        container = engine.storage.load_container(page.id)
        container.instances.append(
            ComponentInstance(type_tag="text", position="content", order=3)
        )
        engine.storage.save_container(container)
        kinds = {e.error_type for e in engine.validate_container(page.id)}
        assert "order_gap" in kinds

    @pytest.mark.unit
    def test_status(self, engine, page):
        """Status reports catalog and container counts."""
        status = engine.status()
        assert status["containers"] == 1
        assert status["definitions"] == status["active_definitions"] == 8
        assert status["cache"]["enabled"] is True
