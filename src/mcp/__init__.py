"""MCP (Model Context Protocol) server for sitecomposer.

This module exposes the composition engine to MCP clients.

Example:
    # Start server in STDIO mode
    >>> from src.mcp.server import run_server
    >>> run_server()

    # Start server in HTTP mode
    >>> from src.mcp import ServerConfig, TransportType
    >>> run_server(ServerConfig(transport=TransportType.HTTP, port=18080))

Available Tools:
    - list_definitions, preview_component: component catalog
    - get_container, add_component, move_component, remove_component,
      reorder_bucket, update_component_settings: layout edits
    - resolve_container, validate_container: read side
    - status: health check
"""

from .lib import (
    DOMAIN_ERRORS,
    SERVER_NAME,
    ServerConfig,
    TransportType,
    error_response,
    get_server_version,
    tool_errors,
)

__all__ = [
    # Configuration
    "SERVER_NAME",
    "ServerConfig",
    "TransportType",
    # Errors
    "DOMAIN_ERRORS",
    "error_response",
    "tool_errors",
    # Utilities
    "get_server_version",
]
