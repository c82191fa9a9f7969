"""Integration tests for the composition workflow over SQLite.

Tests the full edit lifecycle against a real database file:
1. Seed the catalog and create containers
2. Edit layouts (insert, remove, move, reorder) -> dense orders persisted
3. Resolve with defaults, coercion and orphan handling
4. Reopen the database -> same layout and resolution
"""

import json
import sqlite3

import pytest

from src.engine import CompositionEngine
from src.instance import ComponentInstance, ContainerKind
from src.layout import ColumnOutOfRange, IncompleteReorder, layout_snapshot
from src.resolve import ResolutionStatus, WarningKind


def _ids(engine, container_id, label):
    return layout_snapshot(engine.get_container(container_id)).get(label, [])


@pytest.mark.integration
class TestLayoutScenarios:
    """Layout edits persisted through SQLite."""

    def test_remove_closes_gap(self, sqlite_engine):
        """Insert X, Y, Z into column_1, remove Y: X=1, Z=2."""
        page = sqlite_engine.create_container(ContainerKind.PAGE, columns=2)
        x, y, z = (
            sqlite_engine.add_instance(page.id, "text", "column_1", name=name).id
            for name in "XYZ"
        )
        sqlite_engine.remove(page.id, y)

        stored = sqlite_engine.get_container(page.id)
        assert stored.get(x).order == 1
        assert stored.get(z).order == 2

    def test_column_out_of_range_changes_nothing(self, sqlite_engine, db_path):
        """Inserting into column_4 of a 3-column footer fails cleanly."""
        footer = sqlite_engine.create_default_footer()
        before = sqlite_engine.get_container(footer.id).to_dict()

        with pytest.raises(ColumnOutOfRange):
            sqlite_engine.add_instance(footer.id, "text", "column_4")

        assert sqlite_engine.get_container(footer.id).to_dict() == before
        conn = sqlite3.connect(db_path)
        try:
            (count,) = conn.execute(
                "SELECT COUNT(*) FROM instances WHERE container_id = ?", (footer.id,)
            ).fetchone()
        finally:
            conn.close()
        assert count == 6

    def test_incomplete_reorder(self, sqlite_engine):
        """Reordering footer_bar with a member missing is rejected."""
        footer = sqlite_engine.create_container(ContainerKind.FOOTER)
        a, b, c = (
            sqlite_engine.add_instance(footer.id, "copyright", "footer_bar").id
            for _ in range(3)
        )
        with pytest.raises(IncompleteReorder) as excinfo:
            sqlite_engine.reorder_bucket(footer.id, "footer_bar", None, [a, c])
        assert excinfo.value.missing == [b]
        assert _ids(sqlite_engine, footer.id, "footer_bar") == [a, b, c]

        sqlite_engine.reorder_bucket(footer.id, "footer_bar", None, [c, a, b])
        assert _ids(sqlite_engine, footer.id, "footer_bar") == [c, a, b]

    def test_cross_bucket_move_persists(self, sqlite_engine):
        """A move renumbers both buckets in the same save."""
        footer = sqlite_engine.create_default_footer()
        logo, about = _ids(sqlite_engine, footer.id, "column_1")
        sqlite_engine.move(footer.id, logo, "column_3", index=2)

        stored = sqlite_engine.get_container(footer.id)
        assert layout_snapshot(stored)["column_1"] == [about]
        assert stored.get(about).order == 1
        assert layout_snapshot(stored)["column_3"][1] == logo
        orders = sorted(i.order for i in stored.instances if i.position == "column_3")
        assert orders == [1, 2, 3]


@pytest.mark.integration
class TestResolutionScenarios:
    """Resolution of persisted data."""

    def test_malformed_overrides_resolve_to_defaults(self, sqlite_engine, db_path):
        """A truncated JSON blob in the database yields defaults, no exception."""
        page = sqlite_engine.create_container(ContainerKind.PAGE)
        instance = sqlite_engine.add_instance(page.id, "text", "content")
        conn = sqlite3.connect(db_path)
        try:
            conn.execute(
                "UPDATE instances SET overrides = ? WHERE id = ?",
                ('{"title": "Hi"', instance.id),
            )
            conn.commit()
        finally:
            conn.close()
        sqlite_engine.cache.clear()

        (resolved,) = sqlite_engine.resolve_container(page.id)
        assert resolved.props == {"title": "", "text": "Text content goes here"}
        assert WarningKind.MALFORMED_OVERRIDES in resolved.warning_kinds()

    def test_invalid_select_falls_back(self, sqlite_engine, hero_definition):
        """An unlisted select value resolves to the default."""
        sqlite_engine.register_definition(hero_definition)
        page = sqlite_engine.create_container(ContainerKind.PAGE)
        instance = sqlite_engine.add_from_palette(page.id, "hero", "content")
        sqlite_engine.update_settings(page.id, instance.id, {"alignment": "center"})
        assert sqlite_engine.resolve(page.id, instance.id).props["alignment"] == "center"

        sqlite_engine.update_settings(page.id, instance.id, {"alignment": "right"})
        assert sqlite_engine.resolve(page.id, instance.id).props["alignment"] == "left"

    def test_legacy_embedded_reference(self, sqlite_engine):
        """Old ``component`` rows carry their reference inside the settings."""
        heading = sqlite_engine.registry.get("heading")
        header = sqlite_engine.create_container(ContainerKind.HEADER)
        legacy = ComponentInstance.model_validate(
            {
                "type": "component",
                "position": "header",
                "settings": json.dumps(
                    {"component_id": heading.id, "component_data": {"text": "Legacy"}}
                ),
            }
        )
        sqlite_engine.insert(header.id, legacy, "header")

        resolved = sqlite_engine.resolve(header.id, legacy.id)
        assert resolved.status is ResolutionStatus.RESOLVED
        assert resolved.definition_slug == "heading"
        assert resolved.props["text"] == "Legacy"
        assert resolved.warnings == []

    def test_orphan_does_not_break_siblings(self, sqlite_engine, hero_definition):
        """Removing a definition orphans only its own instances."""
        sqlite_engine.register_definition(hero_definition)
        page = sqlite_engine.create_container(ContainerKind.PAGE)
        hero = sqlite_engine.add_from_palette(page.id, "hero", "content")
        heading = sqlite_engine.add_from_palette(page.id, "heading", "content")
        sqlite_engine.remove_definition("hero")

        resolved = {r.id: r for r in sqlite_engine.resolve_container(page.id)}
        assert resolved[hero.id].status is ResolutionStatus.ORPHANED
        assert resolved[heading.id].status is ResolutionStatus.RESOLVED
        errors = sqlite_engine.validate_container(page.id)
        assert [e.error_type for e in errors] == ["missing_definition"]


@pytest.mark.integration
class TestPersistence:
    """Reopening the database."""

    def test_reopen(self, sqlite_engine, db_path, hero_definition):
        """A second engine sees the same catalog, layout and resolution."""
        sqlite_engine.register_definition(hero_definition)
        header = sqlite_engine.create_default_header()
        sqlite_engine.add_from_palette(header.id, "hero", "subheader")
        expected = [
            r.to_dict()
            for r in sqlite_engine.resolve_container(header.id, include_hidden_regions=True)
        ]

        reopened = CompositionEngine(db_path=db_path, cache_enabled=False)
        try:
            assert reopened.registry.find("hero") is not None
            assert layout_snapshot(reopened.get_container(header.id)) == layout_snapshot(
                sqlite_engine.get_container(header.id)
            )
            actual = [
                r.to_dict()
                for r in reopened.resolve_container(header.id, include_hidden_regions=True)
            ]
            assert actual == expected
        finally:
            reopened.close()

    def test_hidden_regions_skipped(self, sqlite_engine, hero_definition):
        """Subheader content is not rendered until the region is switched on."""
        sqlite_engine.register_definition(hero_definition)
        header = sqlite_engine.create_default_header()
        sqlite_engine.add_from_palette(header.id, "hero", "subheader")

        positions = {r.position for r in sqlite_engine.resolve_container(header.id)}
        assert positions == {"header"}
