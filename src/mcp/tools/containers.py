"""Container tools: layout edits, resolution and validation.

Every tool loads through the engine, so results always reflect dense,
persisted orders.
"""

import logging
from dataclasses import asdict
from typing import Any

from src.engine import CompositionEngine, get_engine
from src.layout import layout_snapshot

from ..lib import tool_errors

logger = logging.getLogger(__name__)


def _layout(engine: CompositionEngine, container_id: str) -> dict[str, list[str]]:
    return layout_snapshot(engine.get_container(container_id))


@tool_errors
def get_container(
    container_id: str, engine: CompositionEngine | None = None
) -> dict[str, Any]:
    """Get a container with its instances and per-bucket ordering."""
    engine = engine or get_engine()
    container = engine.get_container(container_id)
    return {
        "success": True,
        "container": container.to_dict(),
        "layout": layout_snapshot(container),
    }


@tool_errors
def add_component(
    container_id: str,
    position: str,
    slug: str | None = None,
    type_tag: str | None = None,
    column: int | None = None,
    index: int | None = None,
    settings: dict[str, Any] | None = None,
    engine: CompositionEngine | None = None,
) -> dict[str, Any]:
    """Place a palette definition (``slug``) or a built-in tag (``type_tag``).

    Exactly one of slug and type_tag must be given. Settings are merged
    over the definition defaults.
    """
    engine = engine or get_engine()
    if (slug is None) == (type_tag is None):
        raise ValueError("Give exactly one of 'slug' or 'type_tag'")

    if slug is not None:
        instance = engine.add_from_palette(
            container_id, slug, position, column, index, settings=settings
        )
    else:
        instance = engine.add_instance(
            container_id, type_tag, position, column, index, overrides=settings
        )
    return {
        "success": True,
        "instance": instance.to_dict(),
        "layout": _layout(engine, container_id),
    }


@tool_errors
def move_component(
    container_id: str,
    instance_id: str,
    position: str,
    column: int | None = None,
    index: int | None = None,
    target_container_id: str | None = None,
    engine: CompositionEngine | None = None,
) -> dict[str, Any]:
    """Move an instance to a 1-based slot of another or the same bucket."""
    engine = engine or get_engine()
    instance = engine.move(
        container_id, instance_id, position, column, index, target_container_id
    )
    return {
        "success": True,
        "instance": instance.to_dict(),
        "layout": _layout(engine, container_id),
    }


@tool_errors
def remove_component(
    container_id: str, instance_id: str, engine: CompositionEngine | None = None
) -> dict[str, Any]:
    engine = engine or get_engine()
    engine.remove(container_id, instance_id)
    return {
        "success": True,
        "removed": instance_id,
        "layout": _layout(engine, container_id),
    }


@tool_errors
def reorder_bucket(
    container_id: str,
    position: str,
    ordered_ids: list[str],
    column: int | None = None,
    engine: CompositionEngine | None = None,
) -> dict[str, Any]:
    """Reorder a bucket. ordered_ids must list exactly its active members."""
    engine = engine or get_engine()
    engine.reorder_bucket(container_id, position, column, ordered_ids)
    return {"success": True, "layout": _layout(engine, container_id)}


@tool_errors
def update_component_settings(
    container_id: str,
    instance_id: str,
    settings: dict[str, Any],
    replace: bool = False,
    visibility: str | None = None,
    custom_classes: str | None = None,
    engine: CompositionEngine | None = None,
) -> dict[str, Any]:
    engine = engine or get_engine()
    instance = engine.update_settings(
        container_id,
        instance_id,
        settings,
        replace=replace,
        visibility=visibility,
        custom_classes=custom_classes,
    )
    return {
        "success": True,
        "instance": instance.to_dict(),
        "resolved": engine.resolve(container_id, instance_id).to_dict(),
    }


@tool_errors
def resolve_container(
    container_id: str,
    include_inactive: bool = False,
    visibility: str | None = None,
    engine: CompositionEngine | None = None,
) -> dict[str, Any]:
    """Resolve every instance to render-ready props, in display order."""
    engine = engine or get_engine()
    resolved = engine.resolve_container(
        container_id, include_inactive=include_inactive, visibility=visibility
    )
    warnings = sum(len(r.warnings) for r in resolved)
    if warnings:
        logger.debug(f"Resolved {container_id} with {warnings} warnings")
    return {
        "success": True,
        "components": [r.to_dict() for r in resolved],
        "warning_count": warnings,
    }


@tool_errors
def validate_container(
    container_id: str, engine: CompositionEngine | None = None
) -> dict[str, Any]:
    """Check stored layout data for gaps, duplicates and stale references."""
    engine = engine or get_engine()
    errors = engine.validate_container(container_id)
    return {
        "success": True,
        "valid": not errors,
        "errors": [asdict(e) for e in errors],
    }
