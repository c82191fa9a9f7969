"""Catalog tools: palette listing and previews."""

import logging
from typing import Any

from src.engine import CompositionEngine, get_engine

from ..lib import tool_errors

logger = logging.getLogger(__name__)


@tool_errors
def list_definitions(
    category: str | None = None,
    include_inactive: bool = False,
    engine: CompositionEngine | None = None,
) -> dict[str, Any]:
    """List component definitions in palette order.

    Args:
        category: Only this palette category.
        include_inactive: Also list definitions hidden from the palette.
        engine: Engine to use (global engine if None).

    Returns:
        Dictionary with success, definitions and categories.
    """
    engine = engine or get_engine()
    if include_inactive:
        definitions = [
            d
            for d in engine.registry.list_all()
            if category is None or d.category == category
        ]
    else:
        definitions = engine.palette(category)
    return {
        "success": True,
        "definitions": [d.to_dict() for d in definitions],
        "categories": engine.registry.categories(),
    }


@tool_errors
def preview_component(
    slug: str,
    settings: dict[str, Any] | None = None,
    engine: CompositionEngine | None = None,
) -> dict[str, Any]:
    """Resolve a definition with ad hoc settings without placing it."""
    engine = engine or get_engine()
    resolved = engine.preview(slug, settings)
    return {"success": True, "component": resolved.to_dict()}
