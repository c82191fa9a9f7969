"""Component definition registry.

Example:
    >>> from src.registry import DefinitionRegistry, seed_system_definitions
    >>> registry = DefinitionRegistry()
    >>> seed_system_definitions(registry)
    >>> registry.get("heading").defaults()
    {'level': 'h2', 'text': 'Heading', 'alignment': 'left'}
"""

from .lib import (
    ComponentDefinition,
    DefinitionNotFound,
    DefinitionRegistry,
    DuplicateSlug,
    ProtectedDefinition,
    RegistryError,
    slugify,
)
from .seeds import SYSTEM_DEFINITIONS, seed_system_definitions

__all__ = [
    # Models
    "ComponentDefinition",
    "DefinitionRegistry",
    "slugify",
    # Errors
    "RegistryError",
    "DuplicateSlug",
    "DefinitionNotFound",
    "ProtectedDefinition",
    # Seeds
    "SYSTEM_DEFINITIONS",
    "seed_system_definitions",
]
