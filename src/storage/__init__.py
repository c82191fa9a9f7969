"""Storage backends for the composition engine.

This module provides storage implementations for persisting component
definitions and containers with their instances.

Available backends:
- SQLiteStorage: File-based SQLite database (recommended for local use)
- InMemoryStorage: In-memory storage for testing
"""

from .memory import InMemoryStorage
from .protocol import (
    LayoutStorage,
    StorageEvent,
    StorageEventKind,
    StorageEvents,
    StorageListener,
)
from .sqlite import SQLiteStorage

__all__ = [
    "LayoutStorage",
    "StorageEvent",
    "StorageEventKind",
    "StorageEvents",
    "StorageListener",
    "InMemoryStorage",
    "SQLiteStorage",
]
