"""sitecomposer: component composition engine for pages, headers and footers."""

from src.engine import CompositionEngine, ContainerNotFound
from src.instance import ComponentInstance, Container, ContainerKind, TypeTag
from src.registry import ComponentDefinition, DefinitionRegistry
from src.resolve import ResolvedInstance, resolve_container
from src.validation import ValidationError, is_valid, validate_container

__all__ = [
    # Engine
    "CompositionEngine",
    "ContainerNotFound",
    # Models
    "ComponentDefinition",
    "DefinitionRegistry",
    "ComponentInstance",
    "Container",
    "ContainerKind",
    "TypeTag",
    # Resolution
    "ResolvedInstance",
    "resolve_container",
    # Validation
    "validate_container",
    "is_valid",
    "ValidationError",
]
