"""FastMCP server instance for sitecomposer.

This module exposes the composition engine to MCP clients (editors and
assistants) as tools. Tool bodies live in ``src.mcp.tools``; the wrappers
here only carry the LLM-facing documentation.

Usage:
    # STDIO mode
    python -m src.mcp.server

    # HTTP mode
    python -m src.mcp.server --transport http --port 18080

    # Via CLI
    python . mcp --transport http
"""

import argparse
import logging
import sys
from typing import Any

from fastmcp import FastMCP

from src.core.log import setup_logging

from . import tools
from .lib import SERVER_NAME, ServerConfig, TransportType, get_server_version

logger = logging.getLogger(__name__)


# =============================================================================
# Server Instructions (LLM Guidance)
# =============================================================================

SERVER_INSTRUCTIONS = """\
## Site Composer MCP Server

Edits the component layout of pages, headers and footers, and resolves
placed components to the properties a renderer needs.

### Concepts
- A **definition** is a palette entry (e.g. `heading`) with a property schema.
- A **container** (page, header or footer) holds placed **instances**.
- Instances live in buckets (`position`, `column`) and are ordered 1..N.
  Header positions: topbar, header, subheader. Footer: footer_bar,
  column_1..column_N. Page: content, column_1..column_N.

### Workflow
1. `status()` → check readiness
2. `list_definitions()` → see the palette
3. `get_container(id)` → current layout per bucket
4. `add_component` / `move_component` / `reorder_bucket` / `remove_component`
5. `update_component_settings` → change properties
6. `resolve_container(id)` → render-ready props with warnings

Rejected requests return `{"success": false, "error": ..., "message": ...}`.
"""

# =============================================================================
# Server Instance
# =============================================================================

mcp = FastMCP(
    name=SERVER_NAME,
    instructions=SERVER_INSTRUCTIONS,
)


# =============================================================================
# Catalog Tools
# =============================================================================


@mcp.tool
def list_definitions(
    category: str | None = None,
    include_inactive: bool = False,
) -> dict[str, Any]:
    """List the component palette.

    Args:
        category: Only definitions of this category (e.g. "text", "media").
        include_inactive: Also list definitions hidden from the palette.

    Returns:
        Dictionary with definitions (slug, name, category, properties) and
        the palette categories.
    """
    return tools.list_definitions(category=category, include_inactive=include_inactive)


@mcp.tool
def preview_component(
    slug: str,
    settings: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Resolve a palette component with trial settings, without placing it.

    Invalid values fall back to the property default, exactly as they
    would once placed.
    """
    return tools.preview_component(slug=slug, settings=settings)


# =============================================================================
# Layout Tools
# =============================================================================


@mcp.tool
def get_container(container_id: str) -> dict[str, Any]:
    """Get a container, its instances and the instance ids per bucket."""
    return tools.get_container(container_id=container_id)


@mcp.tool
def add_component(
    container_id: str,
    position: str,
    slug: str | None = None,
    type_tag: str | None = None,
    column: int | None = None,
    index: int | None = None,
    settings: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Place a component into a bucket.

    Args:
        container_id: Target container.
        position: Bucket position (e.g. "header", "column_2").
        slug: Palette definition to place.
        type_tag: Built-in component instead (logo, menu, text, social,
            contact, copyright, auth, cart, search, dynamic_ai).
        column: Column number; implied by "column_<n>" positions.
        index: 1-based slot, appended when omitted.
        settings: Initial property values.
    """
    return tools.add_component(
        container_id=container_id,
        position=position,
        slug=slug,
        type_tag=type_tag,
        column=column,
        index=index,
        settings=settings,
    )


@mcp.tool
def move_component(
    container_id: str,
    instance_id: str,
    position: str,
    column: int | None = None,
    index: int | None = None,
    target_container_id: str | None = None,
) -> dict[str, Any]:
    """Move a component to a slot of any bucket in the same container.

    Components cannot move between containers; remove and re-add instead.
    """
    return tools.move_component(
        container_id=container_id,
        instance_id=instance_id,
        position=position,
        column=column,
        index=index,
        target_container_id=target_container_id,
    )


@mcp.tool
def remove_component(container_id: str, instance_id: str) -> dict[str, Any]:
    """Delete a component; the rest of its bucket closes up."""
    return tools.remove_component(container_id=container_id, instance_id=instance_id)


@mcp.tool
def reorder_bucket(
    container_id: str,
    position: str,
    ordered_ids: list[str],
    column: int | None = None,
) -> dict[str, Any]:
    """Set the order of one bucket.

    ordered_ids must list every active component of the bucket exactly once.
    """
    return tools.reorder_bucket(
        container_id=container_id,
        position=position,
        ordered_ids=ordered_ids,
        column=column,
    )


@mcp.tool
def update_component_settings(
    container_id: str,
    instance_id: str,
    settings: dict[str, Any],
    replace: bool = False,
    visibility: str | None = None,
    custom_classes: str | None = None,
) -> dict[str, Any]:
    """Change a component's property values.

    Args:
        settings: Values merged over the current ones.
        replace: Replace all values instead of merging.
        visibility: "all", "desktop" or "mobile".
        custom_classes: Extra CSS classes.
    """
    return tools.update_component_settings(
        container_id=container_id,
        instance_id=instance_id,
        settings=settings,
        replace=replace,
        visibility=visibility,
        custom_classes=custom_classes,
    )


# =============================================================================
# Read Tools
# =============================================================================


@mcp.tool
def resolve_container(
    container_id: str,
    include_inactive: bool = False,
    visibility: str | None = None,
) -> dict[str, Any]:
    """Resolve every component to render-ready props, in display order.

    Components whose source definition is missing come back with status
    "orphaned" and a warning instead of failing the whole container.
    """
    return tools.resolve_container(
        container_id=container_id,
        include_inactive=include_inactive,
        visibility=visibility,
    )


@mcp.tool
def validate_container(container_id: str) -> dict[str, Any]:
    """Check stored layout data for order gaps, duplicates and stale references."""
    return tools.validate_container(container_id=container_id)


@mcp.tool
def status() -> dict[str, Any]:
    """Check server health: version, catalog size and cache state."""
    return tools.status()


# =============================================================================
# Server Factory & Runner
# =============================================================================


def create_server() -> FastMCP:
    """Create and configure the MCP server instance."""
    return mcp


def run_server(config: ServerConfig | None = None) -> None:
    """Run the MCP server.

    Args:
        config: Server configuration (from environment if None).
    """
    config = config or ServerConfig.from_env()
    logger.info(f"Starting {config.name} server v{get_server_version()}")
    logger.info(f"Transport: {config.transport.value}")

    if config.transport == TransportType.STDIO:
        mcp.run()
    elif config.transport == TransportType.HTTP:
        logger.info(f"Running in HTTP mode at http://{config.host}:{config.port}{config.path}")
        mcp.run(transport="http", host=config.host, port=config.port, path=config.path)
    elif config.transport == TransportType.SSE:
        logger.info(f"Running in SSE mode at http://{config.host}:{config.port}")
        mcp.run(transport="sse", host=config.host, port=config.port)
    else:
        raise ValueError(f"Unknown transport: {config.transport}")


# =============================================================================
# CLI Entry Point
# =============================================================================


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for MCP server.

    Returns:
        Exit code (0 for success).
    """
    parser = argparse.ArgumentParser(
        prog="sitecomposer-mcp",
        description="MCP server for component layout editing",
    )
    parser.add_argument(
        "--transport",
        "-t",
        choices=[t.value for t in TransportType],
        default="stdio",
        help="Transport type (default: stdio)",
    )
    parser.add_argument("--host", help="Bind address for HTTP/SSE (default: MCP_HOST)")
    parser.add_argument("--port", "-p", type=int, help="Port (default: MCP_PORT)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    args = parser.parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    config = ServerConfig.from_env(transport=TransportType(args.transport))
    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port

    try:
        run_server(config)
        return 0
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
        return 0
    except Exception as e:
        logger.error(f"Server error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
