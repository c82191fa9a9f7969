"""Tests for configuration management."""

from pathlib import Path

import pytest

from .lib import (
    DEFAULT_DB_PATH,
    EnvConfig,
    EnvVar,
    get_db_path,
    get_environment,
    get_environment_info,
    get_log_level,
    get_max_columns,
    is_cache_enabled,
    list_environment_variables,
)

# =============================================================================
# Tests for get_environment (main interface)
# =============================================================================


class TestGetEnvironment:
    """Tests for the unified get_environment interface."""

    @pytest.mark.unit
    def test_returns_default_when_not_set(self, monkeypatch):
        """Returns default value when env var is not set."""
        monkeypatch.delenv("COMPOSER_MAX_COLUMNS", raising=False)
        assert get_environment(EnvVar.COMPOSER_MAX_COLUMNS) == 6

    @pytest.mark.unit
    def test_override_takes_priority(self, monkeypatch):
        """Override parameter takes highest priority."""
        monkeypatch.setenv("COMPOSER_MAX_COLUMNS", "9")
        assert get_environment(EnvVar.COMPOSER_MAX_COLUMNS, override=4) == 4

    @pytest.mark.unit
    def test_env_var_overrides_default(self, monkeypatch):
        """Environment variable overrides default value."""
        monkeypatch.setenv("MCP_PORT", "8081")
        result = get_environment(EnvVar.MCP_PORT)
        assert result == 8081
        assert isinstance(result, int)

    @pytest.mark.unit
    def test_bool_type_conversion(self, monkeypatch):
        """Boolean values accept true/false, 1/0, yes/no."""
        for value in ("true", "1", "yes", "TRUE"):
            monkeypatch.setenv("COMPOSER_CACHE_ENABLED", value)
            assert get_environment(EnvVar.COMPOSER_CACHE_ENABLED) is True
        for value in ("false", "0", "no", "No"):
            monkeypatch.setenv("COMPOSER_CACHE_ENABLED", value)
            assert get_environment(EnvVar.COMPOSER_CACHE_ENABLED) is False

    @pytest.mark.unit
    def test_unrecognized_bool_returns_default(self, monkeypatch):
        """Unparseable booleans fall back to the default."""
        monkeypatch.setenv("COMPOSER_CACHE_ENABLED", "maybe")
        assert get_environment(EnvVar.COMPOSER_CACHE_ENABLED) is True

    @pytest.mark.unit
    def test_invalid_int_returns_default(self, monkeypatch):
        """Invalid integer value returns default."""
        monkeypatch.setenv("COMPOSER_FOOTER_COLUMNS", "three")
        assert get_environment(EnvVar.COMPOSER_FOOTER_COLUMNS) == 3

    @pytest.mark.unit
    def test_path_type_conversion(self, monkeypatch, tmp_path):
        """Path values are converted to Path objects."""
        monkeypatch.setenv("COMPOSER_DB_PATH", str(tmp_path / "x.db"))
        result = get_environment(EnvVar.COMPOSER_DB_PATH)
        assert isinstance(result, Path)
        assert result.name == "x.db"


class TestGetEnvironmentInfo:
    """Tests for environment variable metadata."""

    @pytest.mark.unit
    def test_returns_env_config(self):
        """Returns EnvConfig dataclass."""
        info = get_environment_info(EnvVar.COMPOSER_MAX_COLUMNS)
        assert isinstance(info, EnvConfig)
        assert info.name == "COMPOSER_MAX_COLUMNS"
        assert info.var_type is int
        assert info.category == "engine"

    @pytest.mark.unit
    def test_all_variables_documented(self):
        """Every variable carries a description."""
        for var in EnvVar:
            assert var.value.description, f"{var.name} missing description"


class TestListEnvironmentVariables:
    """Tests for listing environment variables."""

    @pytest.mark.unit
    def test_list_all(self):
        """Without a category every variable is listed."""
        assert set(list_environment_variables()) == set(EnvVar)

    @pytest.mark.unit
    def test_filter_by_category(self):
        """Filtering returns only matching variables."""
        engine_vars = list_environment_variables("engine")
        assert EnvVar.COMPOSER_MAX_COLUMNS in engine_vars
        assert EnvVar.MCP_PORT not in engine_vars


class TestConvenienceFunctions:
    """Tests for the typed convenience accessors."""

    @pytest.mark.unit
    def test_db_path_default(self, monkeypatch):
        """Database path falls back to data/composer.db."""
        monkeypatch.delenv("COMPOSER_DB_PATH", raising=False)
        assert get_db_path() == DEFAULT_DB_PATH

    @pytest.mark.unit
    def test_db_path_override(self):
        """An explicit override wins."""
        assert get_db_path("/tmp/other.db") == Path("/tmp/other.db")

    @pytest.mark.unit
    def test_log_level_uppercased(self, monkeypatch):
        """Log level names are normalised to upper case."""
        monkeypatch.setenv("COMPOSER_LOG_LEVEL", "debug")
        assert get_log_level() == "DEBUG"

    @pytest.mark.unit
    def test_max_columns_never_below_one(self, monkeypatch):
        """A zero or negative limit is clamped to 1."""
        monkeypatch.setenv("COMPOSER_MAX_COLUMNS", "0")
        assert get_max_columns() == 1

    @pytest.mark.unit
    def test_cache_toggle(self, monkeypatch):
        """Cache flag follows the environment."""
        monkeypatch.setenv("COMPOSER_CACHE_ENABLED", "0")
        assert is_cache_enabled() is False
        assert is_cache_enabled(override=True) is True
