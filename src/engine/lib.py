"""Composition engine for sitecomposer.

Ties the definition registry, layout operations, resolution pipeline and
storage together. Every edit loads the container, validates and applies the
change in memory, then persists the complete instance set in one
``save_container`` call.
"""

import logging
from pathlib import Path
from typing import Any

from src import layout
from src.config import get_db_path, get_max_columns, is_cache_enabled
from src.instance import (
    ComponentInstance,
    Container,
    ContainerKind,
    TypeTag,
    Visibility,
    default_footer,
    default_header,
    instance_from_definition,
    new_container,
)
from src.registry import (
    ComponentDefinition,
    DefinitionRegistry,
    RegistryError,
    seed_system_definitions,
)
from src.resolve import (
    ResolvedInstance,
    preview_definition,
    resolve_container,
    resolve_instance,
)
from src.storage import LayoutStorage, SQLiteStorage
from src.validation import ValidationError, validate_container

from .cache import ResolutionCache

logger = logging.getLogger(__name__)


class ContainerNotFound(Exception):
    """Raised when a container id is not in storage."""

    def __init__(self, container_id: str):
        self.container_id = container_id
        super().__init__(f"Container '{container_id}' not found")


class DefinitionInactive(RegistryError):
    """Raised when placing a definition that is hidden from the palette."""

    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(f"Component '{slug}' is inactive and cannot be added")


class CompositionEngine:
    """High-level editing and resolution interface.

    Example:
        >>> engine = CompositionEngine(InMemoryStorage())
        >>> engine.seed()
        >>> page = engine.create_container("page", name="Home")
        >>> engine.add_from_palette(page.id, "heading", "content")
        >>> [r.props["text"] for r in engine.resolve_container(page.id)]
        ['Heading']

    Args:
        storage: Storage backend. If None, creates SQLiteStorage.
        db_path: Path to database file (only used if storage is None).
        cache_enabled: Cache resolved containers. Defaults to
            COMPOSER_CACHE_ENABLED.
        max_columns: Upper column limit. Defaults to COMPOSER_MAX_COLUMNS.
    """

    def __init__(
        self,
        storage: LayoutStorage | None = None,
        db_path: Path | str | None = None,
        cache_enabled: bool | None = None,
        max_columns: int | None = None,
    ):
        if storage is None:
            storage = SQLiteStorage(get_db_path(db_path))
        self._storage = storage
        self._storage.initialize()
        self.max_columns = get_max_columns(max_columns)

        self.registry = DefinitionRegistry(self._storage.list_definitions())
        self.cache = ResolutionCache(is_cache_enabled(cache_enabled))
        self._unsubscribe = self._storage.subscribe(self.cache.on_storage_event)
        logger.debug(f"Engine loaded {len(self.registry)} definitions")

    @property
    def storage(self) -> LayoutStorage:
        return self._storage

    def close(self) -> None:
        """Detach the cache and close storage."""
        self._unsubscribe()
        self._storage.close()

    # =========================================================================
    # Definitions
    # =========================================================================

    def seed(self) -> list[ComponentDefinition]:
        """Register and persist the built-in catalog. Safe to repeat."""
        added = seed_system_definitions(self.registry)
        for definition in added:
            self._storage.save_definition(definition)
        return added

    def register_definition(
        self, data: dict[str, Any] | ComponentDefinition
    ) -> ComponentDefinition:
        """Validate, register and persist a user definition.

        Raises:
            SchemaError: If the definition is invalid.
            DuplicateSlug: If the slug or id is taken.
        """
        definition = (
            data
            if isinstance(data, ComponentDefinition)
            else ComponentDefinition.from_dict(data)
        )
        self.registry.register(definition)
        self._storage.save_definition(definition)
        logger.info(f"Registered definition '{definition.slug}'")
        return definition

    def deactivate_definition(self, slug: str) -> ComponentDefinition:
        """Hide a definition from the palette. Existing instances keep resolving."""
        return self._storage.save_definition(self.registry.deactivate(slug))

    def activate_definition(self, slug: str) -> ComponentDefinition:
        return self._storage.save_definition(self.registry.activate(slug))

    def update_definition(self, slug: str, **changes: Any) -> ComponentDefinition:
        """Change a user definition; see DefinitionRegistry.update."""
        return self._storage.save_definition(self.registry.update(slug, **changes))

    def remove_definition(self, slug: str) -> ComponentDefinition:
        """Delete a user definition. Instances referencing it become orphans."""
        definition = self.registry.remove(slug)
        self._storage.delete_definition(slug)
        return definition

    def palette(self, category: str | None = None) -> list[ComponentDefinition]:
        """Active definitions in palette order."""
        return self.registry.list_active(category)

    def preview(self, slug: str, overrides: Any = None) -> ResolvedInstance:
        """Resolve a definition with ad hoc overrides, without placing it."""
        return preview_definition(self.registry.get(slug), overrides)

    # =========================================================================
    # Containers
    # =========================================================================

    def _load(self, container_id: str) -> Container:
        container = self._storage.load_container(container_id)
        if container is None:
            raise ContainerNotFound(container_id)
        return layout.normalize(container)

    def _save(self, container: Container) -> Container:
        layout.normalize(container)
        container.touch()
        return self._storage.save_container(container)

    def create_container(
        self,
        kind: ContainerKind | str,
        name: str = "",
        columns: int | None = None,
        settings: dict[str, Any] | None = None,
    ) -> Container:
        """Create and persist an empty container.

        Raises:
            ColumnOutOfRange: If columns exceeds the configured limit.
        """
        container = new_container(kind, name=name, columns=columns, settings=settings)
        layout.set_columns(container, container.columns, self.max_columns)
        logger.info(f"Created {container.kind.value} '{container.name}' ({container.id})")
        return self._save(container)

    def create_default_header(self, name: str = "Default Header Layout") -> Container:
        """Persist a header holding logo, menu, auth and cart."""
        return self._save(default_header(name))

    def create_default_footer(self, name: str = "Default Footer Layout") -> Container:
        """Persist a three-column footer with the stock components."""
        return self._save(default_footer(name))

    def get_container(self, container_id: str) -> Container:
        """Load a container with dense orders.

        Raises:
            ContainerNotFound: If the id is unknown.
        """
        return self._load(container_id)

    def list_containers(self, kind: ContainerKind | str | None = None) -> list[Container]:
        kind = ContainerKind(kind) if kind is not None else None
        return [layout.normalize(c) for c in self._storage.list_containers(kind)]

    def delete_container(self, container_id: str) -> None:
        if not self._storage.delete_container(container_id):
            raise ContainerNotFound(container_id)
        logger.info(f"Deleted container {container_id}")

    def set_columns(self, container_id: str, columns: int) -> Container:
        """Change the column count; see layout.set_columns."""
        container = self._load(container_id)
        layout.set_columns(container, columns, self.max_columns)
        logger.info(f"Container {container_id} now has {columns} columns")
        return self._save(container)

    # =========================================================================
    # Instances
    # =========================================================================

    def add_from_palette(
        self,
        container_id: str,
        slug: str,
        position: str,
        column: int | None = None,
        index: int | None = None,
        settings: dict[str, Any] | None = None,
    ) -> ComponentInstance:
        """Place a new instance of a palette definition.

        The instance starts with the definition's defaults as overrides,
        with ``settings`` merged over them in the same write.

        Raises:
            DefinitionNotFound: If the slug is unknown.
            DefinitionInactive: If the definition is hidden from the palette.
            ContainerNotFound, InvalidPosition, ColumnOutOfRange.
        """
        definition = self.registry.get(slug)
        if not definition.is_active:
            raise DefinitionInactive(slug)
        container = self._load(container_id)
        instance = instance_from_definition(definition, position, column)
        if settings:
            instance.overrides = {**instance.settings(), **settings}
        layout.insert(container, instance, position, column, index)
        self._save(container)
        logger.info(f"Added '{slug}' to {container_id} as {instance.id}")
        return instance

    def add_instance(
        self,
        container_id: str,
        type_tag: TypeTag | str,
        position: str,
        column: int | None = None,
        index: int | None = None,
        overrides: Any = None,
        name: str = "",
        definition_ref: str | None = None,
        visibility: Visibility | str = Visibility.ALL,
    ) -> ComponentInstance:
        """Place a new instance of any tag, typically a built-in one."""
        instance = ComponentInstance(
            type_tag=type_tag,
            name=name,
            definition_ref=definition_ref,
            overrides=overrides,
            position=position,
            column=column,
            visibility=visibility,
        )
        return self.insert(container_id, instance, position, column, index)

    def insert(
        self,
        container_id: str,
        instance: ComponentInstance,
        position: str,
        column: int | None = None,
        index: int | None = None,
    ) -> ComponentInstance:
        """Place a prepared instance; see layout.insert."""
        container = self._load(container_id)
        layout.insert(container, instance, position, column, index)
        self._save(container)
        return instance

    def update_settings(
        self,
        container_id: str,
        instance_id: str,
        settings: dict[str, Any],
        replace: bool = False,
        visibility: Visibility | str | None = None,
        custom_classes: str | None = None,
    ) -> ComponentInstance:
        """Change an instance's overrides and display options.

        Args:
            container_id: Owning container.
            instance_id: Instance to update.
            settings: Override values. Merged over the current overrides
                unless ``replace`` is set. Malformed stored overrides are
                treated as empty.
            replace: Replace the overrides entirely.
            visibility: New device visibility.
            custom_classes: New CSS classes.

        Raises:
            ContainerNotFound, InstanceNotFound.
        """
        container = self._load(container_id)
        instance = container.get(instance_id)
        if instance is None:
            raise layout.InstanceNotFound(instance_id, container_id)

        instance.overrides = dict(settings) if replace else {**instance.settings(), **settings}
        if visibility is not None:
            instance.visibility = Visibility(visibility)
        if custom_classes is not None:
            instance.custom_classes = custom_classes
        self._save(container)
        logger.debug(f"Updated settings of {instance_id}: {sorted(settings)}")
        return instance

    def remove(self, container_id: str, instance_id: str) -> ComponentInstance:
        container = self._load(container_id)
        instance = layout.remove(container, instance_id)
        self._save(container)
        logger.info(f"Removed {instance_id} from {container_id}")
        return instance

    def move(
        self,
        container_id: str,
        instance_id: str,
        position: str,
        column: int | None = None,
        index: int | None = None,
        target_container: str | None = None,
    ) -> ComponentInstance:
        """Move an instance within its container; see layout.move.

        Raises:
            InvalidMove: If target_container names another container.
        """
        container = self._load(container_id)
        instance = layout.move(
            container, instance_id, position, column, index, target_container
        )
        self._save(container)
        return instance

    def reorder_bucket(
        self,
        container_id: str,
        position: str,
        column: int | None,
        ordered_ids: list[str],
    ) -> list[ComponentInstance]:
        container = self._load(container_id)
        ordered = layout.reorder_bucket(container, position, column, ordered_ids)
        self._save(container)
        return ordered

    def set_active(
        self, container_id: str, instance_id: str, active: bool
    ) -> ComponentInstance:
        container = self._load(container_id)
        instance = layout.set_active(container, instance_id, active)
        self._save(container)
        return instance

    # =========================================================================
    # Read side
    # =========================================================================

    def resolve(self, container_id: str, instance_id: str) -> ResolvedInstance:
        """Resolve a single instance.

        Raises:
            ContainerNotFound, InstanceNotFound.
        """
        container = self._load(container_id)
        instance = container.get(instance_id)
        if instance is None:
            raise layout.InstanceNotFound(instance_id, container_id)
        return resolve_instance(instance, self.registry)

    def resolve_container(
        self,
        container_id: str,
        include_inactive: bool = False,
        visibility: Visibility | str | None = None,
        include_hidden_regions: bool = False,
    ) -> list[ResolvedInstance]:
        """Resolve a whole container in display order, through the cache.

        Raises:
            ContainerNotFound: If the id is unknown.
        """
        device = Visibility(visibility) if visibility is not None else None
        options = (include_inactive, device, include_hidden_regions)

        def compute() -> list[ResolvedInstance]:
            return resolve_container(
                self._load(container_id),
                self.registry,
                include_inactive=include_inactive,
                visibility=device,
                include_hidden_regions=include_hidden_regions,
            )

        return self.cache.get_or_resolve(container_id, options, compute)

    def validate_container(self, container_id: str) -> list[ValidationError]:
        """Check the stored container as-is, before any renumbering."""
        container = self._storage.load_container(container_id)
        if container is None:
            raise ContainerNotFound(container_id)
        return validate_container(container, self.registry)

    def status(self) -> dict[str, Any]:
        """Counts for health reporting."""
        return {
            "definitions": len(self.registry),
            "active_definitions": len(self.registry.list_active()),
            "containers": len(self._storage.list_containers()),
            "max_columns": self.max_columns,
            "cache": self.cache.stats(),
        }


# Global instance for convenience
_global_engine: CompositionEngine | None = None


def get_engine(db_path: Path | str | None = None) -> CompositionEngine:
    """Get or create the global engine.

    Args:
        db_path: Database path (only used on first call).
    """
    global _global_engine
    if _global_engine is None:
        _global_engine = CompositionEngine(db_path=db_path)
    return _global_engine


def close_engine() -> None:
    """Close and clear the global engine."""
    global _global_engine
    if _global_engine:
        _global_engine.close()
        _global_engine = None


__all__ = [
    "CompositionEngine",
    "ContainerNotFound",
    "DefinitionInactive",
    "get_engine",
    "close_engine",
]
