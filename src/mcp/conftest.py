"""Pytest fixtures for MCP server tests.

This module provides:
- A global engine bound to a temporary database
- Server and client helpers for protocol testing
"""

from __future__ import annotations

from collections.abc import Generator

import pytest
from fastmcp import FastMCP

from src.engine import CompositionEngine, close_engine, get_engine


@pytest.fixture
def global_engine(tmp_path, monkeypatch) -> Generator[CompositionEngine, None, None]:
    """Seeded global engine over a throwaway SQLite database.

    The tools resolve the global engine, so tests calling them without an
    explicit engine see this one.
    """
    close_engine()
    monkeypatch.setenv("COMPOSER_DB_PATH", str(tmp_path / "composer.db"))
    engine = get_engine()
    engine.seed()
    yield engine
    close_engine()


@pytest.fixture
def mcp_server(global_engine: CompositionEngine) -> FastMCP:
    """MCP server instance wired to the temporary engine."""
    from .server import create_server

    return create_server()
