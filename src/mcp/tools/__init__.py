"""MCP tools for sitecomposer.

Plain functions behind the server's tool wrappers. Each takes an optional
engine (the global engine when omitted) and returns a JSON-compatible dict.

Tools:
    - list_definitions / preview_component: the component catalog
    - get_container, add_component, move_component, remove_component,
      reorder_bucket, update_component_settings: layout edits
    - resolve_container / validate_container: read side
    - status: health reporting
"""

from .containers import (
    add_component,
    get_container,
    move_component,
    remove_component,
    reorder_bucket,
    resolve_container,
    update_component_settings,
    validate_container,
)
from .definitions import list_definitions, preview_component
from .status import status

__all__ = [
    "list_definitions",
    "preview_component",
    "get_container",
    "add_component",
    "move_component",
    "remove_component",
    "reorder_bucket",
    "update_component_settings",
    "resolve_container",
    "validate_container",
    "status",
]
