"""Composition engine: editing, persistence and cached resolution."""

from .cache import ResolutionCache
from .lib import (
    CompositionEngine,
    ContainerNotFound,
    DefinitionInactive,
    close_engine,
    get_engine,
)

__all__ = [
    "CompositionEngine",
    "ContainerNotFound",
    "DefinitionInactive",
    "ResolutionCache",
    "get_engine",
    "close_engine",
]
