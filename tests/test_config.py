"""
Tests for the configuration loader.
"""
import pytest
import tempfile
from pathlib import Path

from poc_tracker.config import (
    DATABASE_URL_ENV,
    POCConfig,
    ConfigurationError,
    get_config,
    reload_config,
)


class TestPOCConfig:
    """Tests for POCConfig class."""

    def test_load_default_config(self):
        """Test loading the default configuration file."""
        config = get_config()
        assert config.version == "1.0.0"

    def test_singleton(self):
        assert get_config() is get_config()

    def test_reload_returns_fresh_instance(self):
        first = get_config()
        second = reload_config()
        assert second is not first
        assert second.version == first.version


class TestPOCRules:
    """Tests for POC value rules."""

    def test_value_bounds(self):
        config = get_config()
        assert config.min_value == 0
        assert config.max_value == 100

    def test_min_year(self):
        assert get_config().min_year == 2011


class TestDatabase:
    """Tests for database settings."""

    def test_default_url(self, monkeypatch):
        monkeypatch.delenv(DATABASE_URL_ENV, raising=False)
        config = get_config()
        assert config.database_url == "sqlite:///./poc_tracker.db"
        assert config.create_tables is True

    def test_environment_overrides_file(self, monkeypatch):
        monkeypatch.setenv(DATABASE_URL_ENV, "postgresql://poc@db/poc")
        assert get_config().database_url == "postgresql://poc@db/poc"

    def test_timeouts(self):
        config = get_config()
        assert config.pool_timeout == 10
        assert config.connect_timeout == 5


class TestCompletionAndAudit:
    """Tests for completion, reporting and audit settings."""

    def test_completion_defaults(self):
        config = get_config()
        assert config.default_completion_type == "A"
        assert config.empty_phase_label == "(Empty Phase)"

    def test_reporting_cutoff_policy(self):
        assert get_config().default_cutoff == "previous_month_end"

    def test_audit(self):
        config = get_config()
        assert config.audit_logger_name == "poc_tracker.audit"
        assert config.audit_keep_events == 1000


class TestRawAccess:
    """Tests for raw configuration access."""

    def test_get_method(self):
        """Test get method with default."""
        config = get_config()
        assert config.get("version") == "1.0.0"
        assert config.get("nonexistent", "default") == "default"

    def test_getitem(self):
        """Test dictionary-style access."""
        config = get_config()
        assert config["version"] == "1.0.0"

    def test_contains(self):
        """Test key existence check."""
        config = get_config()
        assert "poc" in config
        assert "nonexistent" not in config


class TestConfigurationError:
    """Tests for configuration error handling."""

    def test_missing_file(self):
        """Test error on missing config file."""
        with pytest.raises(ConfigurationError) as exc_info:
            POCConfig(Path("/nonexistent/path.yaml"))
        assert "not found" in str(exc_info.value)

    def test_invalid_yaml(self):
        """Test error on invalid YAML."""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write("invalid: yaml: content: [")
            temp_path = Path(f.name)

        try:
            with pytest.raises(ConfigurationError) as exc_info:
                POCConfig(temp_path)
            assert "Invalid YAML" in str(exc_info.value)
        finally:
            temp_path.unlink()

    def test_non_mapping(self):
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write("- just\n- a list\n")
            temp_path = Path(f.name)

        try:
            with pytest.raises(ConfigurationError):
                POCConfig(temp_path)
        finally:
            temp_path.unlink()

    def test_missing_sections_fall_back_to_defaults(self):
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write("version: '2.0'\n")
            temp_path = Path(f.name)

        try:
            config = POCConfig(temp_path)
            assert config.version == "2.0"
            assert config.min_year == 2011
            assert config.max_value == 100
            assert config.log_level == "INFO"
        finally:
            temp_path.unlink()
