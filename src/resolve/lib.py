"""Reference resolution pipeline.

Turns stored instances into render-ready property bags:

1. Parse the overrides blob (malformed blobs read as empty)
2. Pick the definition reference (direct first, then legacy embedded)
3. Dispatch on the tag: definition tags need a definition, built-in tags
   bring their own schema
4. Merge overrides over defaults and coerce every key

The pipeline is a pure read-side projection: it never mutates the instance
or the registry, and it never raises. A broken instance degrades to a
placeholder carrying warnings so its siblings still render.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from src.instance import (
    ComponentInstance,
    Container,
    TypeTag,
    Visibility,
    parse_overrides,
)
from src.registry import ComponentDefinition, DefinitionRegistry
from src.schema import PropertySchema, canonical_default, coerce_with_report

from .models import ResolutionStatus, ResolutionWarning, ResolvedInstance, WarningKind
from .references import find_references, property_values
from .tags import handler_for

logger = logging.getLogger(__name__)

ORPHAN_MESSAGE = "this component's source was not found"


def merge_props(
    properties: Mapping[str, PropertySchema], overrides: Mapping[str, Any]
) -> tuple[dict[str, Any], list[str]]:
    """Merge overrides over schema defaults and coerce every key.

    Args:
        properties: Schema in effect, keyed by property key.
        overrides: Instance values.

    Returns:
        Tuple of (props, unknown). Props hold every schema key in schema
        order followed by passed-through unknown keys. Unknown lists the
        passed-through keys and extra array item fields (``key[i].field``).
    """
    props: dict[str, Any] = {}
    unknown: list[str] = []

    for key, schema in properties.items():
        raw = overrides.get(key)
        if raw is None:
            props[key] = canonical_default(schema)
            continue
        value, extra_fields = coerce_with_report(schema, raw)
        props[key] = value
        unknown.extend(extra_fields)

    for key, value in overrides.items():
        if key not in properties:
            props[key] = value
            unknown.append(key)

    return props, unknown


def _choose_definition(
    instance: ComponentInstance,
    overrides: dict[str, Any],
    registry: DefinitionRegistry,
    warnings: list[ResolutionWarning],
) -> tuple[ComponentDefinition | None, str | None]:
    """Apply reference precedence.

    Returns:
        Tuple of (definition or None, winning reference or None).
    """
    candidates = find_references(instance, overrides)
    if not candidates:
        return None, None

    chosen = candidates[0]
    definition = registry.find(chosen.ref)
    for other in candidates[1:]:
        if other.ref == chosen.ref:
            continue
        other_definition = registry.find(other.ref)
        if definition is not None and other_definition is definition:
            continue
        warnings.append(
            ResolutionWarning(
                kind=WarningKind.REFERENCE_CONFLICT,
                message=(
                    f"{chosen.strategy} reference '{chosen.ref}' is used; "
                    f"{other.strategy} reference '{other.ref}' is ignored"
                ),
                key=other.ref,
            )
        )
    return definition, chosen.ref


def _resolve(instance: ComponentInstance, registry: DefinitionRegistry) -> ResolvedInstance:
    warnings: list[ResolutionWarning] = []

    overrides, parsed = parse_overrides(instance.overrides)
    if not parsed:
        logger.warning(f"Malformed overrides on {instance.id}, using defaults")
        warnings.append(
            ResolutionWarning(
                kind=WarningKind.MALFORMED_OVERRIDES,
                message=(
                    "this component's settings could not be read; defaults are shown"
                ),
            )
        )

    handler = handler_for(instance.type_tag)
    definition, ref = _choose_definition(instance, overrides, registry, warnings)
    values = property_values(instance, overrides)

    result = ResolvedInstance(
        id=instance.id,
        type_tag=instance.type_tag,
        definition_slug=None,
        props={},
        position=instance.position,
        column=instance.column,
        order=instance.order,
        is_active=instance.is_active,
        visibility=instance.visibility,
        custom_classes=instance.custom_classes,
        name=instance.name,
        warnings=warnings,
    )

    if ref is not None or handler.needs_definition:
        if definition is None:
            if ref is None:
                warnings.append(
                    ResolutionWarning(
                        kind=WarningKind.MISSING_REFERENCE,
                        message="this component does not reference a source component",
                    )
                )
            else:
                logger.warning(f"Instance {instance.id} references missing '{ref}'")
                warnings.append(
                    ResolutionWarning(
                        kind=WarningKind.ORPHANED_DEFINITION,
                        message=ORPHAN_MESSAGE,
                        key=ref,
                    )
                )
            result.status = ResolutionStatus.ORPHANED
            return result

        if not definition.is_active:
            warnings.append(
                ResolutionWarning(
                    kind=WarningKind.INACTIVE_DEFINITION,
                    message=f"source component '{definition.slug}' is deactivated",
                    key=definition.slug,
                )
            )
        result.definition_slug = definition.slug
        properties = definition.properties
    else:
        properties = handler.properties

    result.props, result.unknown_properties = merge_props(properties, values)
    for key in result.unknown_properties:
        warnings.append(
            ResolutionWarning(
                kind=WarningKind.UNKNOWN_PROPERTY,
                message=f"'{key}' is not part of this component's schema",
                key=key,
            )
        )
    return result


def _failed(instance: ComponentInstance, error: Exception) -> ResolvedInstance:
    """Placeholder for an instance whose resolution raised."""
    return ResolvedInstance(
        id=instance.id,
        type_tag=instance.type_tag,
        definition_slug=None,
        props={},
        position=instance.position,
        column=instance.column,
        order=instance.order,
        is_active=instance.is_active,
        visibility=instance.visibility,
        custom_classes=instance.custom_classes,
        name=instance.name,
        status=ResolutionStatus.FAILED,
        warnings=[
            ResolutionWarning(
                kind=WarningKind.RESOLUTION_FAILED,
                message=f"this component could not be prepared ({type(error).__name__})",
            )
        ],
    )


def resolve_instance(
    instance: ComponentInstance, registry: DefinitionRegistry
) -> ResolvedInstance:
    """Resolve one instance's effective properties.

    Never raises: unexpected errors yield a ``failed`` placeholder.

    Args:
        instance: Stored instance.
        registry: Registry to look definitions up in.

    Returns:
        ResolvedInstance with coerced props, status and warnings.

    Example:
        >>> resolved = resolve_instance(instance, registry)
        >>> resolved.props["alignment"]
        'left'
    """
    try:
        return _resolve(instance, registry)
    except Exception as e:
        logger.exception(f"Resolution of {instance.id} failed: {e}")
        return _failed(instance, e)


def display_order(container: Container, instances: Iterable[ComponentInstance]):
    """Instances sorted by position, column, then rank (inactive last)."""
    positions = container.valid_positions()

    def key(instance: ComponentInstance):
        position = instance.position
        index = positions.index(position) if position in positions else len(positions)
        return (
            index,
            position,
            instance.column or 0,
            not instance.is_active,
            instance.order,
            instance.created_at,
            instance.id,
        )

    return sorted(instances, key=key)


def resolve_container(
    container: Container,
    registry: DefinitionRegistry,
    include_inactive: bool = False,
    visibility: Visibility | str | None = None,
    include_hidden_regions: bool = False,
) -> list[ResolvedInstance]:
    """Resolve every instance of a container independently.

    Args:
        container: Container to resolve.
        registry: Registry to look definitions up in.
        include_inactive: Also resolve inactive instances (editor view).
        visibility: Keep only instances shown on this device class.
        include_hidden_regions: Also resolve regions switched off in the
            container settings (e.g. ``show_footer_bar``).

    Returns:
        Resolved instances in display order.
    """
    device = Visibility(visibility) if visibility is not None else None
    selected = []
    for instance in container.instances:
        if not include_inactive and not instance.is_active:
            continue
        if device is not None and instance.visibility not in (Visibility.ALL, device):
            continue
        if not include_hidden_regions and not container.region_enabled(instance.position):
            continue
        selected.append(instance)

    return [resolve_instance(i, registry) for i in display_order(container, selected)]


def preview_definition(
    definition: ComponentDefinition, overrides: Any = None
) -> ResolvedInstance:
    """Resolve a definition with ad hoc overrides, without placing it.

    Used by editors to preview palette entries before adding them.
    """
    registry = DefinitionRegistry([definition])
    instance = ComponentInstance(
        id=f"preview-{definition.slug}",
        type_tag=TypeTag.PAGE_COMPONENT,
        name=definition.name,
        definition_ref=definition.id,
        overrides=overrides,
        position="content",
    )
    return resolve_instance(instance, registry)
