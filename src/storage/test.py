"""Tests for the storage backends.

Tests cover:
- Container round trips with full instance sets
- Definition persistence and insertion order
- Write events and unsubscription
- Malformed overrides surviving persistence
"""

import pytest

from src.instance import ComponentInstance, ContainerKind, default_footer, new_container
from src.registry import ComponentDefinition

from .memory import InMemoryStorage
from .protocol import StorageEvent, StorageEventKind
from .sqlite import SQLiteStorage

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(params=["memory", "sqlite"])
def storage(request, tmp_path):
    """Initialized storage, once per backend."""
    if request.param == "memory":
        backend = InMemoryStorage()
    else:
        backend = SQLiteStorage(tmp_path / "composer.db")
    backend.initialize()
    yield backend
    backend.close()


@pytest.fixture
def hero():
    return ComponentDefinition.from_dict(
        {
            "name": "Hero",
            "category": "marketing",
            "properties": {"headline": {"kind": "text", "default": "Hi"}},
        }
    )


# =============================================================================
# Containers
# =============================================================================


class TestContainers:
    """Container persistence on every backend."""

    @pytest.mark.unit
    def test_round_trip(self, storage):
        """A saved footer loads back equal, instances in the same order."""
        footer = default_footer()
        storage.save_container(footer)
        loaded = storage.load_container(footer.id)
        assert loaded == footer
        assert [i.id for i in loaded.instances] == [i.id for i in footer.instances]

    @pytest.mark.unit
    def test_missing_container(self, storage):
        """Unknown ids load as None and delete as False."""
        assert storage.load_container("nope") is None
        assert storage.delete_container("nope") is False

    @pytest.mark.unit
    def test_save_replaces_instance_set(self, storage):
        """Saving again drops instances no longer present."""
        footer = default_footer()
        storage.save_container(footer)
        footer.instances = footer.instances[:2]
        storage.save_container(footer)
        loaded = storage.load_container(footer.id)
        assert len(loaded.instances) == 2

    @pytest.mark.unit
    def test_loaded_copy_is_detached(self, storage):
        """Mutating a loaded container does not touch stored state."""
        footer = default_footer()
        storage.save_container(footer)
        loaded = storage.load_container(footer.id)
        loaded.instances.clear()
        assert len(storage.load_container(footer.id).instances) == 6

    @pytest.mark.unit
    def test_list_by_kind(self, storage):
        """Listing filters by container kind."""
        page = new_container(ContainerKind.PAGE, name="Home")
        footer = default_footer()
        storage.save_container(page)
        storage.save_container(footer)
        assert [c.id for c in storage.list_containers()] == [page.id, footer.id]
        assert [c.id for c in storage.list_containers(ContainerKind.FOOTER)] == [
            footer.id
        ]

    @pytest.mark.unit
    def test_delete(self, storage):
        """Deleted containers are gone with their instances."""
        footer = default_footer()
        storage.save_container(footer)
        assert storage.delete_container(footer.id) is True
        assert storage.load_container(footer.id) is None

    @pytest.mark.unit
    def test_malformed_overrides_survive(self, storage):
        """Unparseable override blobs are stored and returned verbatim."""
        page = new_container(ContainerKind.PAGE)
        page.instances.append(
            ComponentInstance(
                type_tag="text", position="content", order=1, overrides='{"title": "x'
            )
        )
        storage.save_container(page)
        loaded = storage.load_container(page.id)
        assert loaded.instances[0].overrides == '{"title": "x'


# =============================================================================
# Definitions
# =============================================================================


class TestDefinitions:
    """Definition persistence on every backend."""

    @pytest.mark.unit
    def test_round_trip(self, storage, hero):
        """Definitions load back with their property schemas."""
        storage.save_definition(hero)
        loaded = storage.load_definition("hero")
        assert loaded.id == hero.id
        assert loaded.defaults() == {"headline": "Hi"}

    @pytest.mark.unit
    def test_update_keeps_order(self, storage, hero):
        """Re-saving a definition keeps its listing position."""
        other = ComponentDefinition.from_dict({"name": "Other"})
        storage.save_definition(hero)
        storage.save_definition(other)
        storage.save_definition(hero.model_copy(update={"description": "Big banner"}))
        listed = storage.list_definitions()
        assert [d.slug for d in listed] == ["hero", "other"]
        assert listed[0].description == "Big banner"

    @pytest.mark.unit
    def test_filters(self, storage, hero):
        """Category and active filters combine."""
        inactive = ComponentDefinition.from_dict(
            {"name": "Old", "category": "marketing", "is_active": False}
        )
        storage.save_definition(hero)
        storage.save_definition(inactive)
        assert len(storage.list_definitions(category="marketing")) == 2
        assert [
            d.slug for d in storage.list_definitions("marketing", active_only=True)
        ] == ["hero"]
        assert storage.list_definitions(category="general") == []

    @pytest.mark.unit
    def test_delete(self, storage, hero):
        """Deleting by slug reports whether anything was removed."""
        storage.save_definition(hero)
        assert storage.delete_definition("hero") is True
        assert storage.delete_definition("hero") is False
        assert storage.load_definition("hero") is None


# =============================================================================
# Events
# =============================================================================


class TestEvents:
    """Write notifications."""

    @pytest.mark.unit
    def test_events_after_writes(self, storage, hero):
        """Each committed write publishes one event."""
        seen: list[StorageEvent] = []
        storage.subscribe(seen.append)
        footer = default_footer()
        storage.save_container(footer)
        storage.save_definition(hero)
        storage.delete_definition("hero")
        storage.delete_container(footer.id)
        assert seen == [
            StorageEvent(StorageEventKind.CONTAINER_SAVED, footer.id),
            StorageEvent(StorageEventKind.DEFINITION_SAVED, "hero"),
            StorageEvent(StorageEventKind.DEFINITION_DELETED, "hero"),
            StorageEvent(StorageEventKind.CONTAINER_DELETED, footer.id),
        ]

    @pytest.mark.unit
    def test_no_event_for_noop_delete(self, storage):
        """Deleting something absent publishes nothing."""
        seen: list[StorageEvent] = []
        storage.subscribe(seen.append)
        storage.delete_container("nope")
        assert seen == []

    @pytest.mark.unit
    def test_unsubscribe(self, storage):
        """Unsubscribed listeners stop receiving events."""
        seen: list[StorageEvent] = []
        unsubscribe = storage.subscribe(seen.append)
        unsubscribe()
        storage.save_container(default_footer())
        assert seen == []


# =============================================================================
# SQLite specifics
# =============================================================================


class TestSQLiteStorage:
    """Behaviour specific to the SQLite backend."""

    @pytest.mark.unit
    def test_requires_initialize(self, tmp_path):
        """Using storage before initialize() fails loudly."""
        storage = SQLiteStorage(tmp_path / "x.db")
        with pytest.raises(RuntimeError, match="not initialized"):
            storage.load_container("x")

    @pytest.mark.unit
    def test_persists_across_connections(self, tmp_path):
        """Data written by one connection is read by the next."""
        path = tmp_path / "nested" / "composer.db"
        first = SQLiteStorage(path)
        first.initialize()
        footer = default_footer()
        first.save_container(footer)
        first.close()

        second = SQLiteStorage(path)
        second.initialize()
        assert second.load_container(footer.id) == footer
        second.close()

    @pytest.mark.unit
    def test_failed_save_leaves_previous_state(self, tmp_path):
        """A save that fails midway rolls back to the prior instance set."""
        storage = SQLiteStorage(tmp_path / "x.db")
        storage.initialize()
        footer = default_footer()
        storage.save_container(footer)

        broken = footer.model_copy(deep=True)
        broken.instances.append(broken.instances[0].model_copy())
        with pytest.raises(Exception):
            storage.save_container(broken)

        assert storage.load_container(footer.id) == footer
        storage.close()
