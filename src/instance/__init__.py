"""Instance tree: component instances, containers and their factories."""

from .lib import (
    COLUMN_KINDS,
    COLUMN_PREFIX,
    DEFAULT_SETTINGS,
    REGIONS,
    ComponentInstance,
    Container,
    ContainerKind,
    TypeTag,
    Visibility,
    column_position,
    default_footer,
    default_header,
    instance_from_definition,
    new_container,
    parse_column_position,
    parse_overrides,
)

__all__ = [
    # Enums
    "TypeTag",
    "Visibility",
    "ContainerKind",
    # Models
    "ComponentInstance",
    "Container",
    # Positions
    "COLUMN_KINDS",
    "COLUMN_PREFIX",
    "REGIONS",
    "DEFAULT_SETTINGS",
    "column_position",
    "parse_column_position",
    # Overrides
    "parse_overrides",
    # Factories
    "new_container",
    "instance_from_definition",
    "default_header",
    "default_footer",
]
