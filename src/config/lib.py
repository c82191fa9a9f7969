"""Centralized environment configuration management for sitecomposer.

Provides a unified interface for all environment variables with:
- Single `get_environment()` function for all configuration
- Type-safe enum with metadata (default, type, description)
- Consistent resolution: override > environment > default

Example:
    >>> from src.config import EnvVar, get_environment
    >>>
    >>> # Get values with automatic type conversion
    >>> columns = get_environment(EnvVar.COMPOSER_MAX_COLUMNS)  # Returns int
    >>> db_path = get_environment(EnvVar.COMPOSER_DB_PATH)  # Returns Path | None
    >>>
    >>> # Override at runtime
    >>> columns = get_environment(EnvVar.COMPOSER_MAX_COLUMNS, override=4)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, overload

# =============================================================================
# Environment Variable Configuration
# =============================================================================


@dataclass(frozen=True)
class EnvConfig:
    """Metadata for an environment variable.

    Attributes:
        name: Environment variable name (e.g., "COMPOSER_DB_PATH").
        default: Default value if not set in environment.
        var_type: Python type for value conversion (str, int, bool, Path).
        description: Human-readable description.
        category: Grouping category for documentation.
    """

    name: str
    default: Any
    var_type: type
    description: str = ""
    category: str = "general"


class EnvVar(Enum):
    """All environment variables used by sitecomposer.

    Each member contains an EnvConfig with name, default, type, and description.
    Use with `get_environment()` for type-safe access.

    Categories:
        - storage: Database location
        - engine: Layout and resolution behaviour
        - logging: Log output
        - service: MCP server bind settings
    """

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------
    COMPOSER_DB_PATH = EnvConfig(
        name="COMPOSER_DB_PATH",
        default=None,  # Computed as data/composer.db if not set
        var_type=Path,
        description="SQLite database file holding definitions and containers",
        category="storage",
    )

    # -------------------------------------------------------------------------
    # Engine
    # -------------------------------------------------------------------------
    COMPOSER_CACHE_ENABLED = EnvConfig(
        name="COMPOSER_CACHE_ENABLED",
        default=True,
        var_type=bool,
        description="Cache resolved containers until the next container save",
        category="engine",
    )
    COMPOSER_MAX_COLUMNS = EnvConfig(
        name="COMPOSER_MAX_COLUMNS",
        default=6,
        var_type=int,
        description="Upper bound for a container's column count",
        category="engine",
    )
    COMPOSER_FOOTER_COLUMNS = EnvConfig(
        name="COMPOSER_FOOTER_COLUMNS",
        default=3,
        var_type=int,
        description="Column count of newly created default footers",
        category="engine",
    )

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    COMPOSER_LOG_LEVEL = EnvConfig(
        name="COMPOSER_LOG_LEVEL",
        default="INFO",
        var_type=str,
        description="Log level name (DEBUG, INFO, WARNING, ERROR)",
        category="logging",
    )

    # -------------------------------------------------------------------------
    # MCP Service
    # -------------------------------------------------------------------------
    MCP_HOST = EnvConfig(
        name="MCP_HOST",
        default="0.0.0.0",
        var_type=str,
        description="MCP server bind address",
        category="service",
    )
    MCP_PORT = EnvConfig(
        name="MCP_PORT",
        default=18080,
        var_type=int,
        description="MCP server port (avoids 8080)",
        category="service",
    )


DEFAULT_DB_PATH = Path("data/composer.db")


# =============================================================================
# Type Conversion Helpers
# =============================================================================


def _parse_bool(value: str) -> bool | None:
    """Parse string to boolean.

    Recognizes: true/false, 1/0, yes/no (case-insensitive).
    Returns None for unrecognized values.
    """
    normalized = value.lower().strip()
    if normalized in ("true", "1", "yes"):
        return True
    if normalized in ("false", "0", "no"):
        return False
    return None


def _convert_value(value: str | None, var_type: type, default: Any) -> Any:
    """Convert string value to target type.

    Args:
        value: Raw string value from environment (or None).
        var_type: Target Python type.
        default: Default value if conversion fails or value is None.

    Returns:
        Converted value or default.
    """
    if value is None:
        return default

    if var_type is str:
        return value

    if var_type is int:
        try:
            return int(value)
        except ValueError:
            return default

    if var_type is bool:
        result = _parse_bool(value)
        return result if result is not None else default

    if var_type is Path:
        return Path(value)

    # Unknown type, return as-is
    return value


# =============================================================================
# Main Interface
# =============================================================================


@overload
def get_environment(env_var: EnvVar, override: int) -> int: ...
@overload
def get_environment(env_var: EnvVar, override: str) -> str: ...
@overload
def get_environment(env_var: EnvVar, override: bool) -> bool: ...
@overload
def get_environment(env_var: EnvVar, override: Path) -> Path: ...
@overload
def get_environment(env_var: EnvVar, override: None = None) -> Any: ...


def get_environment(env_var: EnvVar, override: Any = None) -> Any:
    """Get environment variable value with type conversion.

    Resolution priority:
        1. Explicit override parameter (highest)
        2. Environment variable value
        3. Default from EnvConfig (lowest)

    Args:
        env_var: Environment variable enum member.
        override: Optional override value (bypasses env lookup).

    Returns:
        Value converted to the appropriate type (str, int, bool, or Path).

    Example:
        >>> get_environment(EnvVar.COMPOSER_MAX_COLUMNS)
        6
        >>> get_environment(EnvVar.COMPOSER_MAX_COLUMNS, override=4)
        4
    """
    config: EnvConfig = env_var.value

    # Override takes highest priority
    if override is not None:
        return override

    raw_value = os.environ.get(config.name)
    return _convert_value(raw_value, config.var_type, config.default)


def get_environment_info(env_var: EnvVar) -> EnvConfig:
    """Get metadata for an environment variable.

    Args:
        env_var: Environment variable enum member.

    Returns:
        EnvConfig with name, default, type, and description.
    """
    return env_var.value


# =============================================================================
# Convenience Functions
# =============================================================================


def get_db_path(override: Path | str | None = None) -> Path:
    """Get the SQLite database path.

    Resolution: override > COMPOSER_DB_PATH > data/composer.db
    """
    if override is not None:
        return Path(override)

    env_path = get_environment(EnvVar.COMPOSER_DB_PATH)
    if env_path:
        return env_path

    return DEFAULT_DB_PATH


def get_log_level(override: str | None = None) -> str:
    """Get the configured log level name."""
    return get_environment(EnvVar.COMPOSER_LOG_LEVEL, override=override).upper()


def get_max_columns(override: int | None = None) -> int:
    """Get the upper bound for container column counts (never below 1)."""
    return max(1, get_environment(EnvVar.COMPOSER_MAX_COLUMNS, override=override))


def is_cache_enabled(override: bool | None = None) -> bool:
    """Whether resolved containers are cached between saves."""
    return bool(get_environment(EnvVar.COMPOSER_CACHE_ENABLED, override=override))


def list_environment_variables(category: str | None = None) -> list[EnvVar]:
    """List all environment variables, optionally filtered by category.

    Args:
        category: Filter by category (storage, engine, logging, service).
                 None returns all variables.

    Returns:
        List of EnvVar enum members.
    """
    if category is None:
        return list(EnvVar)

    return [var for var in EnvVar if var.value.category == category]


__all__ = [
    # Core types
    "EnvConfig",
    "EnvVar",
    "DEFAULT_DB_PATH",
    # Main interface
    "get_environment",
    "get_environment_info",
    # Convenience functions
    "get_db_path",
    "get_log_level",
    "get_max_columns",
    "is_cache_enabled",
    # Introspection
    "list_environment_variables",
]
