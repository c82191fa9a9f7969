"""Storage protocol for the composition engine.

Defines the interface that all storage backends must implement, and the
write events they publish after each committed change.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from src.instance import Container, ContainerKind
from src.registry import ComponentDefinition


class StorageEventKind(str, Enum):
    """Kinds of committed writes."""

    CONTAINER_SAVED = "container_saved"
    CONTAINER_DELETED = "container_deleted"
    DEFINITION_SAVED = "definition_saved"
    DEFINITION_DELETED = "definition_deleted"


@dataclass(frozen=True)
class StorageEvent:
    """Published after a write is committed.

    Attributes:
        kind: What was written.
        key: Container id or definition slug.
    """

    kind: StorageEventKind
    key: str


StorageListener = Callable[[StorageEvent], None]


class StorageEvents:
    """Listener registry shared by the storage backends."""

    def __init__(self) -> None:
        self._listeners: list[StorageListener] = []

    def subscribe(self, listener: StorageListener) -> Callable[[], None]:
        """Register a listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, kind: StorageEventKind, key: str) -> None:
        event = StorageEvent(kind, key)
        for listener in list(self._listeners):
            listener(event)


class LayoutStorage(Protocol):
    """Protocol defining the storage interface for containers and definitions.

    All storage backends (SQLite, in-memory) must implement this interface
    to be compatible with CompositionEngine. ``save_container`` must persist
    the complete instance set atomically.
    """

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def initialize(self) -> None:
        """Initialize storage (create tables, indexes, etc.)."""
        ...

    def close(self) -> None:
        """Close storage connections and clean up resources."""
        ...

    def subscribe(self, listener: StorageListener) -> Callable[[], None]:
        """Register a write listener.

        Returns:
            Function removing the listener again.
        """
        ...

    # =========================================================================
    # Containers
    # =========================================================================

    def load_container(self, container_id: str) -> Container | None:
        """Get a container with all its instances, or None."""
        ...

    def save_container(self, container: Container) -> Container:
        """Replace the stored container and its full instance set."""
        ...

    def delete_container(self, container_id: str) -> bool:
        """Delete a container and its instances.

        Returns:
            True if the container existed.
        """
        ...

    def list_containers(self, kind: ContainerKind | None = None) -> list[Container]:
        """List containers, optionally of one kind."""
        ...

    # =========================================================================
    # Definitions
    # =========================================================================

    def load_definition(self, slug: str) -> ComponentDefinition | None:
        """Get a definition by slug, or None."""
        ...

    def list_definitions(
        self, category: str | None = None, active_only: bool = False
    ) -> list[ComponentDefinition]:
        """List definitions in insertion order."""
        ...

    def save_definition(self, definition: ComponentDefinition) -> ComponentDefinition:
        """Insert or update a definition (keyed by id)."""
        ...

    def delete_definition(self, slug: str) -> bool:
        """Delete a definition.

        Returns:
            True if the definition existed.
        """
        ...
