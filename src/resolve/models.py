"""Result types of the reference resolution pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from src.instance import TypeTag, Visibility


class ResolutionStatus(str, Enum):
    """Terminal state of resolving one instance."""

    RESOLVED = "resolved"
    ORPHANED = "orphaned"  # Definition missing, props empty
    FAILED = "failed"  # Unexpected error, placeholder emitted


class WarningKind(str, Enum):
    """Editor-facing degradations recorded during resolution."""

    ORPHANED_DEFINITION = "orphaned_definition"
    MISSING_REFERENCE = "missing_reference"
    INACTIVE_DEFINITION = "inactive_definition"
    REFERENCE_CONFLICT = "reference_conflict"
    MALFORMED_OVERRIDES = "malformed_overrides"
    UNKNOWN_PROPERTY = "unknown_property"
    RESOLUTION_FAILED = "resolution_failed"


@dataclass
class ResolutionWarning:
    """One degradation, shown inline to editors and never to visitors.

    Attributes:
        kind: Warning category.
        message: Editor-facing text.
        key: Property key or reference the warning is about, if any.
    """

    kind: WarningKind
    message: str
    key: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message, "key": self.key}


@dataclass
class ResolvedInstance:
    """Render-ready projection of one instance.

    Props are type-coerced and complete for the schema in effect; keys the
    schema does not know are passed through and listed in
    ``unknown_properties``.

    Attributes:
        id: Instance id.
        type_tag: Instance discriminator.
        definition_slug: Slug of the resolved definition, None for built-in
            tags and orphans.
        props: Final property values.
        position: Layout position.
        column: Layout column.
        order: Rank within the bucket (0 when inactive).
        is_active: Whether the instance is displayed.
        visibility: Device gating.
        custom_classes: Extra CSS classes.
        name: Editor label.
        status: Terminal resolution state.
        warnings: Degradations recorded on the way.
        unknown_properties: Passed-through keys (``key`` or ``key[i].field``).
    """

    id: str
    type_tag: TypeTag
    definition_slug: str | None
    props: dict[str, Any]
    position: str
    column: int | None
    order: int
    is_active: bool = True
    visibility: Visibility = Visibility.ALL
    custom_classes: str = ""
    name: str = ""
    status: ResolutionStatus = ResolutionStatus.RESOLVED
    warnings: list[ResolutionWarning] = field(default_factory=list)
    unknown_properties: list[str] = field(default_factory=list)

    @property
    def is_orphaned(self) -> bool:
        return self.status is ResolutionStatus.ORPHANED

    def warning_kinds(self) -> list[WarningKind]:
        """Kinds of recorded warnings, in order."""
        return [w.kind for w in self.warnings]

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible form consumed by template renderers."""
        return {
            "id": self.id,
            "type_tag": self.type_tag.value,
            "definition_slug": self.definition_slug,
            "name": self.name,
            "props": self.props,
            "position": self.position,
            "column": self.column,
            "order": self.order,
            "is_active": self.is_active,
            "visibility": self.visibility.value,
            "custom_classes": self.custom_classes,
            "status": self.status.value,
            "warnings": [w.to_dict() for w in self.warnings],
            "unknown_properties": self.unknown_properties,
        }
