"""Unit tests for MCP server module.

Tests cover:
- Server configuration
- Error envelope for domain errors
- Tool registration and calls over the in-memory MCP transport
"""

import asyncio

import pytest
from fastmcp import Client

from src.layout import ColumnOutOfRange

from .lib import (
    SERVER_NAME,
    ServerConfig,
    TransportType,
    error_response,
    get_server_version,
    tool_errors,
)
from .server import create_server, mcp

EXPECTED_TOOLS = {
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
}


def _run(server, coro_factory):
    """Run a coroutine against a connected in-memory client."""

    async def go():
        async with Client(server) as client:
            return await coro_factory(client)

    return asyncio.run(go())


# =============================================================================
# Configuration Tests
# =============================================================================


class TestServerConfig:
    """Tests for ServerConfig dataclass."""

    @pytest.mark.unit
    def test_default_config(self):
        """Default config has expected values."""
        config = ServerConfig()

        assert config.name == "sitecomposer"
        assert config.transport == TransportType.STDIO
        assert config.port == 18080
        assert config.path == "/mcp"

    @pytest.mark.unit
    def test_from_env(self, monkeypatch):
        """from_env reads host and port from the environment."""
        monkeypatch.setenv("MCP_HOST", "127.0.0.1")
        monkeypatch.setenv("MCP_PORT", "9000")
        config = ServerConfig.from_env(transport=TransportType.HTTP)

        assert config.transport == TransportType.HTTP
        assert (config.host, config.port) == ("127.0.0.1", 9000)

    @pytest.mark.unit
    def test_transport_from_string(self):
        """Transport can be created from string."""
        assert TransportType("sse") == TransportType.SSE

    @pytest.mark.unit
    def test_server_version(self):
        """Server version is a semver string."""
        assert len(get_server_version().split(".")) == 3


# =============================================================================
# Error Envelope Tests
# =============================================================================


class TestToolErrors:
    """Tests for the domain error envelope."""

    @pytest.mark.unit
    def test_error_response(self):
        """Error responses name the exception class."""
        result = error_response(ColumnOutOfRange(5, 3))
        assert result == {
            "success": False,
            "error": "ColumnOutOfRange",
            "message": "column 5 does not exist in a 3-column layout",
        }

    @pytest.mark.unit
    def test_domain_errors_wrapped(self):
        """Domain errors become responses."""

        @tool_errors
        def failing():
            raise ColumnOutOfRange(2, 1)

        assert failing()["error"] == "ColumnOutOfRange"

    @pytest.mark.unit
    def test_unexpected_errors_propagate(self):
        """Programming errors are not hidden."""

        @tool_errors
        def broken():
            raise KeyError("x")

        with pytest.raises(KeyError):
            broken()


# =============================================================================
# Server Instance Tests
# =============================================================================


class TestServerInstance:
    """Tests for FastMCP server instance."""

    @pytest.mark.unit
    def test_create_server_returns_mcp(self):
        """create_server returns the module instance."""
        assert create_server() is mcp
        assert mcp.name == SERVER_NAME


# =============================================================================
# MCP Protocol Tests
# =============================================================================


class TestMCPProtocol:
    """Tool calls through an in-memory MCP client."""

    @pytest.mark.unit
    def test_tools_registered(self, mcp_server):
        """Exactly the composition tools are exposed."""
        tools = _run(mcp_server, lambda client: client.list_tools())
        assert {t.name for t in tools} == EXPECTED_TOOLS

    @pytest.mark.unit
    def test_call_status(self, mcp_server):
        """status succeeds against the seeded engine."""
        result = _run(mcp_server, lambda client: client.call_tool("status", {}))
        assert not result.is_error

    @pytest.mark.unit
    def test_domain_error_is_not_a_tool_error(self, mcp_server):
        """Unknown containers come back as a normal result."""
        result = _run(
            mcp_server,
            lambda client: client.call_tool("get_container", {"container_id": "nope"}),
        )
        assert not result.is_error
        assert "ContainerNotFound" in str(result.content)
