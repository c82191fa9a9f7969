"""Container validation and static analysis.

This module checks a stored container against the layout invariants
without modifying it, so editors can surface problems in imported or
hand-edited data before the next write renumbers them away.
"""

from collections import Counter
from dataclasses import dataclass

from src.instance import Container, parse_column_position
from src.layout import bucket_label
from src.registry import DefinitionRegistry


@dataclass
class ValidationError:
    """Represents a validation error in a container.

    Attributes:
        instance_id: ID of the instance with the error (container id for
            container-level errors).
        message: Human-readable error description.
        error_type: Category of the error.
    """

    instance_id: str
    message: str
    error_type: str


def validate_container(
    container: Container, registry: DefinitionRegistry | None = None
) -> list[ValidationError]:
    """Validate a container for layout issues.

    Performs the following checks:
        - Unique instance IDs
        - Positions valid for the container kind
        - Columns agreeing with ``column_<n>`` positions and within range
        - Dense ``1..N`` orders per bucket (gaps and duplicates)
        - Inactive instances unranked
        - Definition references known to the registry (when given)

    Args:
        container: The container to validate.
        registry: Optional registry used to check definition references.

    Returns:
        list[ValidationError]: List of validation errors (empty if valid).

    Example:
        >>> errors = validate_container(footer)
        >>> for e in errors:
        ...     print(f"{e.instance_id}: {e.message}")
    """
    errors: list[ValidationError] = []

    id_counts = Counter(i.id for i in container.instances)
    for instance_id, count in id_counts.items():
        if count > 1:
            errors.append(
                ValidationError(
                    instance_id=instance_id,
                    message=f"Duplicate ID '{instance_id}' appears {count} times",
                    error_type="duplicate_id",
                )
            )

    errors.extend(_validate_positions(container))
    errors.extend(_validate_orders(container))

    if registry is not None:
        errors.extend(_validate_references(container, registry))

    return errors


def is_valid(container: Container, registry: DefinitionRegistry | None = None) -> bool:
    """Check if a container is valid.

    Convenience function that returns True if no validation errors exist.

    Example:
        >>> if not is_valid(footer):
        ...     normalize(footer)
    """
    return not validate_container(container, registry)


def _validate_positions(container: Container) -> list[ValidationError]:
    """Check positions and columns against the container kind and size."""
    errors: list[ValidationError] = []

    for instance in container.instances:
        if not container.accepts_region(instance.position):
            errors.append(
                ValidationError(
                    instance_id=instance.id,
                    message=(
                        f"'{instance.position}' is not a position of a "
                        f"{container.kind.value} container"
                    ),
                    error_type="invalid_position",
                )
            )
            continue

        encoded = parse_column_position(instance.position)
        if encoded is not None and instance.column != encoded:
            errors.append(
                ValidationError(
                    instance_id=instance.id,
                    message=(
                        f"position '{instance.position}' is column {encoded} but "
                        f"the component records column {instance.column}"
                    ),
                    error_type="column_mismatch",
                )
            )

        column = instance.column if instance.column is not None else encoded
        # Inactive components may wait in a column removed by a resize
        if instance.is_active and column is not None and column > container.columns:
            errors.append(
                ValidationError(
                    instance_id=instance.id,
                    message=(
                        f"column {column} does not exist in a "
                        f"{container.columns}-column layout"
                    ),
                    error_type="column_out_of_range",
                )
            )

    return errors


def _validate_orders(container: Container) -> list[ValidationError]:
    """Check every bucket holds exactly the orders 1..N."""
    errors: list[ValidationError] = []
    buckets: dict[tuple[str, int | None], list] = {}

    for instance in container.instances:
        if not instance.is_active:
            if instance.order != 0:
                errors.append(
                    ValidationError(
                        instance_id=instance.id,
                        message=f"Inactive component still ranked at {instance.order}",
                        error_type="ranked_inactive",
                    )
                )
            continue
        buckets.setdefault(instance.bucket, []).append(instance)

    for key, members in buckets.items():
        label = bucket_label(key)
        counts = Counter(m.order for m in members)
        for member in members:
            if counts[member.order] > 1:
                errors.append(
                    ValidationError(
                        instance_id=member.id,
                        message=f"Order {member.order} is shared in '{label}'",
                        error_type="order_duplicate",
                    )
                )
        expected = set(range(1, len(members) + 1))
        for member in members:
            if member.order not in expected:
                errors.append(
                    ValidationError(
                        instance_id=member.id,
                        message=(
                            f"Order {member.order} leaves a gap in '{label}' "
                            f"(expected 1-{len(members)})"
                        ),
                        error_type="order_gap",
                    )
                )

    return errors


def _validate_references(
    container: Container, registry: DefinitionRegistry
) -> list[ValidationError]:
    """Check direct definition references resolve."""
    errors: list[ValidationError] = []
    for instance in container.instances:
        if instance.definition_ref and registry.find(instance.definition_ref) is None:
            errors.append(
                ValidationError(
                    instance_id=instance.id,
                    message=f"Definition '{instance.definition_ref}' was not found",
                    error_type="missing_definition",
                )
            )
    return errors
