"""Root pytest configuration and fixtures.

This module provides:
- Environment setup (loads .env, then isolates COMPOSER_* per test)
- Storage and engine fixtures shared by unit and integration tests
- Global test configuration
"""

from __future__ import annotations

import os
from collections.abc import Generator
from pathlib import Path

import pytest
from dotenv import load_dotenv

from src.engine import CompositionEngine
from src.registry import ComponentDefinition
from src.storage import InMemoryStorage, SQLiteStorage

# Load environment variables from .env file
load_dotenv()


# =============================================================================
# Environment
# =============================================================================


@pytest.fixture(autouse=True)
def _isolate_composer_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop COMPOSER_* settings from .env so defaults are predictable."""
    for name in list(os.environ):
        if name.startswith("COMPOSER_"):
            monkeypatch.delenv(name)


# =============================================================================
# Storage Fixtures
# =============================================================================


@pytest.fixture
def memory_storage() -> InMemoryStorage:
    """Initialized in-memory storage."""
    storage = InMemoryStorage()
    storage.initialize()
    return storage


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Path of a fresh SQLite database file."""
    return tmp_path / "composer.db"


@pytest.fixture
def sqlite_storage(db_path: Path) -> Generator[SQLiteStorage, None, None]:
    """Initialized SQLite storage in a temporary directory."""
    storage = SQLiteStorage(db_path)
    storage.initialize()
    yield storage
    storage.close()


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def sqlite_engine(db_path: Path) -> Generator[CompositionEngine, None, None]:
    """Seeded engine over a temporary SQLite database, cache enabled."""
    engine = CompositionEngine(db_path=db_path, cache_enabled=True)
    engine.seed()
    yield engine
    engine.close()


@pytest.fixture
def hero_definition() -> ComponentDefinition:
    """User definition with text, select, boolean and array properties."""
    return ComponentDefinition.from_dict(
        {
            "name": "Hero Banner",
            "slug": "hero",
            "category": "marketing",
            "properties": {
                "headline": {"kind": "text", "default": "Welcome"},
                "alignment": {
                    "kind": "select",
                    "options": [{"value": "left"}, {"value": "center"}],
                    "default": "left",
                },
                "show_button": {"kind": "boolean", "default": True},
                "links": {
                    "kind": "array",
                    "itemTemplate": {"label": "", "url": "#"},
                    "default": [],
                },
            },
        }
    )
