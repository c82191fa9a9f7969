"""SQLite storage backend for containers and definitions.

Each container save replaces the container row and its whole instance set
inside one transaction, so readers never observe a half-renumbered layout.
"""

import json
import logging
import sqlite3
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

from src.instance import ComponentInstance, Container, ContainerKind, parse_overrides
from src.registry import ComponentDefinition

from .protocol import StorageEventKind, StorageEvents, StorageListener

logger = logging.getLogger(__name__)

# SQL Schema
SCHEMA_SQL = """
-- Component definitions (catalog)
CREATE TABLE IF NOT EXISTS definitions (
    id TEXT PRIMARY KEY,
    slug TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    category TEXT NOT NULL DEFAULT 'general',
    icon TEXT,
    properties TEXT NOT NULL DEFAULT '{}',
    template TEXT NOT NULL DEFAULT '',
    is_system INTEGER NOT NULL DEFAULT 0,
    is_active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_definitions_category ON definitions(category);

-- Pages, headers and footers
CREATE TABLE IF NOT EXISTS containers (
    id TEXT PRIMARY KEY,
    kind TEXT NOT NULL,
    name TEXT NOT NULL DEFAULT '',
    columns INTEGER NOT NULL DEFAULT 1,
    settings TEXT NOT NULL DEFAULT '{}',
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_containers_kind ON containers(kind);

-- Placed component instances
CREATE TABLE IF NOT EXISTS instances (
    container_id TEXT NOT NULL REFERENCES containers(id) ON DELETE CASCADE,
    id TEXT NOT NULL,
    seq INTEGER NOT NULL,
    type_tag TEXT NOT NULL,
    name TEXT NOT NULL DEFAULT '',
    definition_ref TEXT,
    overrides TEXT,
    position TEXT NOT NULL,
    column_no INTEGER,
    sort_order INTEGER NOT NULL DEFAULT 0,
    is_active INTEGER NOT NULL DEFAULT 1,
    visibility TEXT NOT NULL DEFAULT 'all',
    custom_classes TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    PRIMARY KEY (container_id, id)
);

CREATE INDEX IF NOT EXISTS idx_instances_bucket
    ON instances(container_id, position, column_no, sort_order);
"""


def _dump_overrides(overrides: Any) -> str | None:
    """Overrides as stored text. Strings are kept verbatim."""
    if overrides is None:
        return None
    if isinstance(overrides, str):
        return overrides
    return json.dumps(overrides)


def _load_overrides(text: str | None) -> Any:
    """Decoded overrides, or the raw text when it is not a JSON object."""
    if text is None:
        return None
    parsed, ok = parse_overrides(text)
    return parsed if ok else text


class SQLiteStorage:
    """SQLite-based LayoutStorage.

    Args:
        db_path: Path to SQLite database file (``:memory:`` for a private
            in-process database).
    """

    def __init__(self, db_path: Path | str):
        self.db_path = db_path if str(db_path) == ":memory:" else Path(db_path)
        self._conn: sqlite3.Connection | None = None
        self._events = StorageEvents()

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection, creating if needed."""
        if self._conn is None:
            raise RuntimeError("Storage not initialized. Call initialize() first.")
        return self._conn

    def initialize(self) -> None:
        """Initialize storage (create database file and tables)."""
        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")

        self._conn.executescript(SCHEMA_SQL)
        self._conn.commit()

        logger.info(f"Initialized SQLite storage at {self.db_path}")

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def subscribe(self, listener: StorageListener) -> Callable[[], None]:
        return self._events.subscribe(listener)

    # =========================================================================
    # Container Operations
    # =========================================================================

    def load_container(self, container_id: str) -> Container | None:
        """Get a container and its instances."""
        conn = self._get_conn()
        row = conn.execute(
            "SELECT * FROM containers WHERE id = ?", (container_id,)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_container(row)

    def save_container(self, container: Container) -> Container:
        """Replace a container and its complete instance set in one transaction."""
        conn = self._get_conn()
        with conn:
            conn.execute(
                """
                INSERT INTO containers (id, kind, name, columns, settings, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    kind = excluded.kind,
                    name = excluded.name,
                    columns = excluded.columns,
                    settings = excluded.settings,
                    updated_at = excluded.updated_at
                """,
                (
                    container.id,
                    container.kind.value,
                    container.name,
                    container.columns,
                    json.dumps(container.settings),
                    container.updated_at.isoformat(),
                ),
            )
            conn.execute("DELETE FROM instances WHERE container_id = ?", (container.id,))
            conn.executemany(
                """
                INSERT INTO instances (container_id, id, seq, type_tag, name,
                                       definition_ref, overrides, position, column_no,
                                       sort_order, is_active, visibility,
                                       custom_classes, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        container.id,
                        instance.id,
                        seq,
                        instance.type_tag.value,
                        instance.name,
                        instance.definition_ref,
                        _dump_overrides(instance.overrides),
                        instance.position,
                        instance.column,
                        instance.order,
                        int(instance.is_active),
                        instance.visibility.value,
                        instance.custom_classes,
                        instance.created_at.isoformat(),
                    )
                    for seq, instance in enumerate(container.instances)
                ],
            )
        logger.debug(
            f"Saved container {container.id} with {len(container.instances)} instances"
        )
        self._events.emit(StorageEventKind.CONTAINER_SAVED, container.id)
        return container

    def delete_container(self, container_id: str) -> bool:
        """Delete a container; instances cascade."""
        conn = self._get_conn()
        with conn:
            cursor = conn.execute("DELETE FROM containers WHERE id = ?", (container_id,))
        if cursor.rowcount == 0:
            return False
        self._events.emit(StorageEventKind.CONTAINER_DELETED, container_id)
        return True

    def list_containers(self, kind: ContainerKind | None = None) -> list[Container]:
        """List containers, optionally of one kind."""
        conn = self._get_conn()
        if kind is None:
            rows = conn.execute("SELECT * FROM containers ORDER BY rowid").fetchall()
        else:
            rows = conn.execute(
                "SELECT * FROM containers WHERE kind = ? ORDER BY rowid",
                (ContainerKind(kind).value,),
            ).fetchall()
        return [self._row_to_container(row) for row in rows]

    # =========================================================================
    # Definition Operations
    # =========================================================================

    def load_definition(self, slug: str) -> ComponentDefinition | None:
        """Get a definition by slug."""
        conn = self._get_conn()
        row = conn.execute("SELECT * FROM definitions WHERE slug = ?", (slug,)).fetchone()
        if row:
            return self._row_to_definition(row)
        return None

    def list_definitions(
        self, category: str | None = None, active_only: bool = False
    ) -> list[ComponentDefinition]:
        """List definitions in insertion order."""
        conn = self._get_conn()
        query = "SELECT * FROM definitions WHERE 1=1"
        params: list[Any] = []
        if category is not None:
            query += " AND category = ?"
            params.append(category)
        if active_only:
            query += " AND is_active = 1"
        query += " ORDER BY rowid"
        rows = conn.execute(query, params).fetchall()
        return [self._row_to_definition(row) for row in rows]

    def save_definition(self, definition: ComponentDefinition) -> ComponentDefinition:
        """Insert or update a definition, keeping its insertion position."""
        conn = self._get_conn()
        data = definition.to_dict()
        with conn:
            conn.execute(
                """
                INSERT INTO definitions (id, slug, name, description, category, icon,
                                         properties, template, is_system, is_active,
                                         created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    description = excluded.description,
                    category = excluded.category,
                    icon = excluded.icon,
                    properties = excluded.properties,
                    template = excluded.template,
                    is_system = excluded.is_system,
                    is_active = excluded.is_active
                """,
                (
                    definition.id,
                    definition.slug,
                    definition.name,
                    definition.description,
                    definition.category,
                    definition.icon,
                    json.dumps(data["properties"]),
                    definition.template,
                    int(definition.is_system),
                    int(definition.is_active),
                    definition.created_at.isoformat(),
                ),
            )
        self._events.emit(StorageEventKind.DEFINITION_SAVED, definition.slug)
        return definition

    def delete_definition(self, slug: str) -> bool:
        """Delete a definition. Instances referencing it are untouched."""
        conn = self._get_conn()
        with conn:
            cursor = conn.execute("DELETE FROM definitions WHERE slug = ?", (slug,))
        if cursor.rowcount == 0:
            return False
        self._events.emit(StorageEventKind.DEFINITION_DELETED, slug)
        return True

    # =========================================================================
    # Row conversion
    # =========================================================================

    def _row_to_container(self, row: sqlite3.Row) -> Container:
        conn = self._get_conn()
        instance_rows = conn.execute(
            "SELECT * FROM instances WHERE container_id = ? ORDER BY seq",
            (row["id"],),
        ).fetchall()
        return Container(
            id=row["id"],
            kind=row["kind"],
            name=row["name"],
            columns=row["columns"],
            settings=json.loads(row["settings"]),
            instances=[self._row_to_instance(r) for r in instance_rows],
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def _row_to_instance(self, row: sqlite3.Row) -> ComponentInstance:
        return ComponentInstance(
            id=row["id"],
            type_tag=row["type_tag"],
            name=row["name"],
            definition_ref=row["definition_ref"],
            overrides=_load_overrides(row["overrides"]),
            position=row["position"],
            column=row["column_no"],
            order=row["sort_order"],
            is_active=bool(row["is_active"]),
            visibility=row["visibility"],
            custom_classes=row["custom_classes"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _row_to_definition(self, row: sqlite3.Row) -> ComponentDefinition:
        return ComponentDefinition.from_dict(
            {
                "id": row["id"],
                "slug": row["slug"],
                "name": row["name"],
                "description": row["description"],
                "category": row["category"],
                "icon": row["icon"],
                "properties": json.loads(row["properties"]),
                "template": row["template"],
                "is_system": bool(row["is_system"]),
                "is_active": bool(row["is_active"]),
                "created_at": row["created_at"],
            }
        )
