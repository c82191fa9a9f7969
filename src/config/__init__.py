"""Centralized configuration management for sitecomposer.

Provides unified access to all configuration via the `get_environment()` function.

Example:
    >>> from src.config import EnvVar, get_environment
    >>>
    >>> # Get any environment variable with automatic type conversion
    >>> columns = get_environment(EnvVar.COMPOSER_MAX_COLUMNS)  # Returns int: 6
    >>> level = get_environment(EnvVar.COMPOSER_LOG_LEVEL)  # Returns str: "INFO"
    >>>
    >>> # List available variables by category
    >>> for var in list_environment_variables("engine"):
    ...     info = get_environment_info(var)
    ...     print(f"{info.name}: {info.description}")

Environment Variable Categories:
    storage: Database location
    engine: Column limits, footer defaults, resolution cache
    logging: Log level
    service: MCP server host and port
"""

from .lib import (
    DEFAULT_DB_PATH,
    # Core types
    EnvConfig,
    EnvVar,
    # Main interface
    get_db_path,
    get_environment,
    get_environment_info,
    get_log_level,
    get_max_columns,
    is_cache_enabled,
    # Introspection
    list_environment_variables,
)

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
