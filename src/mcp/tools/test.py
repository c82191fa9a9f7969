"""Unit tests for MCP tools."""

import pytest

from src.engine import CompositionEngine
from src.instance import ContainerKind
from src.storage import InMemoryStorage

from .containers import (
    add_component,
    get_container,
    move_component,
    remove_component,
    reorder_bucket,
    resolve_container,
    update_component_settings,
    validate_container,
)
from .definitions import list_definitions, preview_component
from .status import status


@pytest.fixture
def engine():
    engine = CompositionEngine(InMemoryStorage(), cache_enabled=False)
    engine.seed()
    yield engine
    engine.close()


@pytest.fixture
def footer(engine):
    return engine.create_default_footer()


class TestDefinitionTools:
    """Tests for catalog tools."""

    @pytest.mark.unit
    def test_list_definitions(self, engine):
        """Seeded definitions are listed with their categories."""
        result = list_definitions(engine=engine)
        assert result["success"] is True
        slugs = [d["slug"] for d in result["definitions"]]
        assert slugs[:2] == ["heading", "text"]
        assert "text" in result["categories"]

    @pytest.mark.unit
    def test_list_by_category(self, engine):
        """Category filter narrows the list."""
        result = list_definitions(category="media", engine=engine)
        assert {d["category"] for d in result["definitions"]} == {"media"}

    @pytest.mark.unit
    def test_preview_component(self, engine):
        """Previews coerce ad hoc settings."""
        result = preview_component("heading", {"level": "h9"}, engine=engine)
        assert result["component"]["props"]["level"] == "h2"

    @pytest.mark.unit
    def test_preview_unknown(self, engine):
        """Unknown slugs come back as error responses."""
        result = preview_component("nope", engine=engine)
        assert result == {
            "success": False,
            "error": "DefinitionNotFound",
            "message": result["message"],
        }
        assert "nope" in result["message"]


class TestContainerTools:
    """Tests for layout editing tools."""

    @pytest.mark.unit
    def test_get_container(self, engine, footer):
        """Containers come back with their bucket layout."""
        result = get_container(footer.id, engine=engine)
        assert result["container"]["kind"] == "footer"
        assert len(result["layout"]["column_1"]) == 2

    @pytest.mark.unit
    def test_add_component_from_palette(self, engine, footer):
        """Palette components take settings over their defaults."""
        events = []
        engine.storage.subscribe(events.append)
        result = add_component(
            footer.id,
            "column_2",
            slug="heading",
            index=1,
            settings={"text": "Links"},
            engine=engine,
        )
        instance_id = result["instance"]["id"]
        assert result["layout"]["column_2"][0] == instance_id
        resolved = resolve_container(footer.id, engine=engine)["components"]
        heading = next(c for c in resolved if c["id"] == instance_id)
        assert heading["props"]["text"] == "Links"
        assert len(events) == 1

    @pytest.mark.unit
    def test_add_component_needs_one_source(self, engine, footer):
        """Slug and type_tag are mutually exclusive."""
        result = add_component(footer.id, "column_1", engine=engine)
        assert result["error"] == "ValueError"
        result = add_component(
            footer.id, "column_1", slug="heading", type_tag="text", engine=engine
        )
        assert result["success"] is False

    @pytest.mark.unit
    def test_column_out_of_range_message(self, engine, footer):
        """Layout errors carry a specific message."""
        result = add_component(
            footer.id, "column_5", type_tag="text", column=5, engine=engine
        )
        assert result["error"] == "ColumnOutOfRange"
        assert result["message"] == "column 5 does not exist in a 3-column layout"

    @pytest.mark.unit
    def test_move_and_remove(self, engine, footer):
        """Moves and removals return the updated layout."""
        logo = get_container(footer.id, engine=engine)["layout"]["column_1"][0]
        moved = move_component(footer.id, logo, "column_3", index=1, engine=engine)
        assert moved["layout"]["column_3"][0] == logo
        removed = remove_component(footer.id, logo, engine=engine)
        assert logo not in removed["layout"]["column_3"]

    @pytest.mark.unit
    def test_cross_container_move(self, engine, footer):
        """Moving into another container is rejected."""
        page = engine.create_container(ContainerKind.PAGE)
        logo = get_container(footer.id, engine=engine)["layout"]["column_1"][0]
        result = move_component(
            footer.id, logo, "content", target_container_id=page.id, engine=engine
        )
        assert result["error"] == "InvalidMove"

    @pytest.mark.unit
    def test_reorder_incomplete(self, engine, footer):
        """Partial reorders are rejected with the missing ids."""
        members = get_container(footer.id, engine=engine)["layout"]["column_3"]
        result = reorder_bucket(footer.id, "column_3", members[:1], engine=engine)
        assert result["error"] == "IncompleteReorder"
        assert members[1] in result["message"]
        ok = reorder_bucket(footer.id, "column_3", members[::-1], engine=engine)
        assert ok["layout"]["column_3"] == members[::-1]

    @pytest.mark.unit
    def test_update_settings_returns_resolution(self, engine, footer):
        """Updating settings returns the freshly resolved component."""
        about = get_container(footer.id, engine=engine)["layout"]["column_1"][1]
        result = update_component_settings(
            footer.id, about, {"title": "About"}, engine=engine
        )
        assert result["resolved"]["props"]["title"] == "About"

    @pytest.mark.unit
    def test_missing_container(self, engine):
        """Unknown containers are reported, not raised."""
        assert get_container("nope", engine=engine)["error"] == "ContainerNotFound"

    @pytest.mark.unit
    def test_validate_container(self, engine, footer):
        """A freshly saved container validates cleanly."""
        result = validate_container(footer.id, engine=engine)
        assert result == {"success": True, "valid": True, "errors": []}


class TestStatusTool:
    """Tests for status tool logic."""

    @pytest.mark.unit
    def test_healthy_when_seeded(self, engine):
        result = status(engine=engine)
        assert result["status"] == "healthy"
        assert result["engine"]["definitions"] == 8

    @pytest.mark.unit
    def test_degraded_when_empty(self):
        """An empty catalog asks for seeding."""
        empty = CompositionEngine(InMemoryStorage(), cache_enabled=False)
        result = status(engine=empty)
        assert result["status"] == "degraded"
        assert result["action_required"]
