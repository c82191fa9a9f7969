"""Core MCP server logic for sitecomposer.

Provides configuration for creating MCP server instances and the error
envelope shared by every tool.
"""

import functools
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from src.config import EnvVar, get_environment
from src.engine import ContainerNotFound
from src.layout import LayoutError
from src.registry import RegistryError

logger = logging.getLogger(__name__)

SERVER_NAME = "sitecomposer"

# Errors a caller can fix by changing the request. SchemaError and pydantic
# validation errors are ValueErrors.
DOMAIN_ERRORS: tuple[type[Exception], ...] = (
    RegistryError,
    LayoutError,
    ContainerNotFound,
    ValueError,
)


class TransportType(str, Enum):
    """Supported MCP transport types."""

    STDIO = "stdio"
    HTTP = "http"
    SSE = "sse"


@dataclass
class ServerConfig:
    """Configuration for MCP server.

    Attributes:
        name: Server display name.
        transport: Transport type for communication.
        host: Bind address for HTTP/SSE transports.
        port: Port for HTTP/SSE transports.
        path: URL path for HTTP transport.
    """

    name: str = SERVER_NAME
    transport: TransportType = TransportType.STDIO
    host: str = "0.0.0.0"
    port: int = 18080
    path: str = "/mcp"

    @classmethod
    def from_env(
        cls,
        transport: TransportType | None = None,
    ) -> "ServerConfig":
        """Create config from MCP_HOST and MCP_PORT."""
        return cls(
            name=SERVER_NAME,
            transport=transport or TransportType.STDIO,
            host=get_environment(EnvVar.MCP_HOST),
            port=get_environment(EnvVar.MCP_PORT),
        )


def get_server_version() -> str:
    """Get server version string."""
    return "0.1.0"


def error_response(error: Exception) -> dict[str, Any]:
    """Tool result for a rejected request."""
    return {
        "success": False,
        "error": type(error).__name__,
        "message": str(error),
    }


def tool_errors(func: Callable[..., dict[str, Any]]) -> Callable[..., dict[str, Any]]:
    """Return domain errors as error responses instead of raising."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> dict[str, Any]:
        try:
            return func(*args, **kwargs)
        except DOMAIN_ERRORS as e:
            logger.info(f"{func.__name__} rejected: {type(e).__name__}: {e}")
            return error_response(e)

    return wrapper


__all__ = [
    "SERVER_NAME",
    "DOMAIN_ERRORS",
    "TransportType",
    "ServerConfig",
    "get_server_version",
    "error_response",
    "tool_errors",
]
