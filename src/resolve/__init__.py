"""Reference resolution pipeline: stored instances to render-ready props."""

from .lib import (
    ORPHAN_MESSAGE,
    display_order,
    merge_props,
    preview_definition,
    resolve_container,
    resolve_instance,
)
from .models import ResolutionStatus, ResolutionWarning, ResolvedInstance, WarningKind
from .references import (
    REFERENCE_STRATEGIES,
    DirectReference,
    EmbeddedReference,
    ReferenceCandidate,
    ReferenceStrategy,
    find_references,
)
from .tags import TAG_HANDLERS, TagHandler, handler_for

__all__ = [
    # Results
    "ResolvedInstance",
    "ResolutionStatus",
    "ResolutionWarning",
    "WarningKind",
    "ORPHAN_MESSAGE",
    # Pipeline
    "resolve_instance",
    "resolve_container",
    "preview_definition",
    "merge_props",
    "display_order",
    # References
    "ReferenceStrategy",
    "ReferenceCandidate",
    "DirectReference",
    "EmbeddedReference",
    "REFERENCE_STRATEGIES",
    "find_references",
    # Tags
    "TagHandler",
    "TAG_HANDLERS",
    "handler_for",
]
