"""In-memory storage backend.

Keeps deep copies so callers can never mutate stored state by accident.
Used by tests and by the engine when no database path is configured.
"""

import logging
from collections.abc import Callable

from src.instance import Container, ContainerKind
from src.registry import ComponentDefinition

from .protocol import StorageEventKind, StorageEvents, StorageListener

logger = logging.getLogger(__name__)


class InMemoryStorage:
    """Dictionary-backed LayoutStorage."""

    def __init__(self) -> None:
        self._containers: dict[str, Container] = {}
        self._definitions: dict[str, ComponentDefinition] = {}
        self._events = StorageEvents()

    def initialize(self) -> None:
        logger.debug("Initialized in-memory storage")

    def close(self) -> None:
        pass

    def subscribe(self, listener: StorageListener) -> Callable[[], None]:
        return self._events.subscribe(listener)

    # =========================================================================
    # Containers
    # =========================================================================

    def load_container(self, container_id: str) -> Container | None:
        container = self._containers.get(container_id)
        return container.model_copy(deep=True) if container else None

    def save_container(self, container: Container) -> Container:
        self._containers[container.id] = container.model_copy(deep=True)
        self._events.emit(StorageEventKind.CONTAINER_SAVED, container.id)
        return container

    def delete_container(self, container_id: str) -> bool:
        if self._containers.pop(container_id, None) is None:
            return False
        self._events.emit(StorageEventKind.CONTAINER_DELETED, container_id)
        return True

    def list_containers(self, kind: ContainerKind | None = None) -> list[Container]:
        return [
            c.model_copy(deep=True)
            for c in self._containers.values()
            if kind is None or c.kind == kind
        ]

    # =========================================================================
    # Definitions
    # =========================================================================

    def load_definition(self, slug: str) -> ComponentDefinition | None:
        for definition in self._definitions.values():
            if definition.slug == slug:
                return definition.model_copy(deep=True)
        return None

    def list_definitions(
        self, category: str | None = None, active_only: bool = False
    ) -> list[ComponentDefinition]:
        return [
            d.model_copy(deep=True)
            for d in self._definitions.values()
            if (category is None or d.category == category)
            and (not active_only or d.is_active)
        ]

    def save_definition(self, definition: ComponentDefinition) -> ComponentDefinition:
        self._definitions[definition.id] = definition.model_copy(deep=True)
        self._events.emit(StorageEventKind.DEFINITION_SAVED, definition.slug)
        return definition

    def delete_definition(self, slug: str) -> bool:
        for definition_id, definition in self._definitions.items():
            if definition.slug == slug:
                del self._definitions[definition_id]
                self._events.emit(StorageEventKind.DEFINITION_DELETED, slug)
                return True
        return False
