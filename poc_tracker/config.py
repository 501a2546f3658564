"""
Configuration loader for the POC Tracker.

Loads settings from poc_tracker_config.yaml and provides typed access
to all configuration sections.
"""
import logging
import os
from pathlib import Path
from typing import Any, Optional
from functools import lru_cache

import yaml


# Default config path relative to project root
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "poc_tracker_config.yaml"

DATABASE_URL_ENV = "POC_TRACKER_DATABASE_URL"


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""
    pass


class POCConfig:
    """
    Configuration manager for the POC Tracker.

    Loads YAML configuration and provides typed access to all sections.
    Use get_config() to obtain the singleton instance.
    """

    def __init__(self, config_path: Optional[Path] = None):
        self._config_path = config_path or DEFAULT_CONFIG_PATH
        self._config: dict = {}
        self._load()

    def _load(self) -> None:
        """Load configuration from YAML file."""
        if not self._config_path.exists():
            raise ConfigurationError(f"Config file not found: {self._config_path}")

        try:
            with open(self._config_path, 'r') as f:
                self._config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}")

        if not isinstance(self._config, dict):
            raise ConfigurationError("Config file must contain a YAML mapping")

    def reload(self) -> None:
        """Reload configuration from disk."""
        self._load()
        get_config.cache_clear()

    @property
    def version(self) -> str:
        """Configuration file version."""
        return self._config.get("version", "unknown")

    # =========================================================================
    # Database
    # =========================================================================

    @property
    def database(self) -> dict:
        """Database connection settings."""
        return self._config.get("database", {})

    @property
    def database_url(self) -> str:
        """SQLAlchemy URL; the environment variable wins over the file."""
        return os.environ.get(DATABASE_URL_ENV) or self.database.get("url", "sqlite:///./poc_tracker.db")

    @property
    def database_echo(self) -> bool:
        return bool(self.database.get("echo", False))

    @property
    def pool_timeout(self) -> int:
        """Seconds to wait for a pooled connection before giving up."""
        return int(self.database.get("pool_timeout", 10))

    @property
    def connect_timeout(self) -> int:
        """Seconds to wait for the backend to accept a connection."""
        return int(self.database.get("connect_timeout", 5))

    @property
    def create_tables(self) -> bool:
        """Whether StoragePort.open() should create missing tables."""
        return bool(self.database.get("create_tables", True))

    # =========================================================================
    # POC Rules
    # =========================================================================

    @property
    def poc(self) -> dict:
        """POC value rules."""
        return self._config.get("poc", {})

    @property
    def min_year(self) -> int:
        """Earliest calendar year accepted for a POC period."""
        return int(self.poc.get("min_year", 2011))

    @property
    def min_value(self) -> float:
        return float(self.poc.get("min_value", 0))

    @property
    def max_value(self) -> float:
        return float(self.poc.get("max_value", 100))

    # =========================================================================
    # Completion Dates
    # =========================================================================

    @property
    def completion(self) -> dict:
        """Completion date settings."""
        return self._config.get("completion", {})

    @property
    def default_completion_type(self) -> str:
        """Completion type assumed when an upload does not name one."""
        return self.completion.get("default_type", "A")

    @property
    def empty_phase_label(self) -> str:
        """Label shown in place of an empty phase code."""
        return self.completion.get("empty_phase_label", "(Empty Phase)")

    # =========================================================================
    # Reporting
    # =========================================================================

    @property
    def reporting(self) -> dict:
        return self._config.get("reporting", {})

    @property
    def default_cutoff(self) -> str:
        """Cutoff policy used when a request omits the cutoff date."""
        return self.reporting.get("default_cutoff", "previous_month_end")

    # =========================================================================
    # Logging & Audit
    # =========================================================================

    @property
    def logging_config(self) -> dict:
        return self._config.get("logging", {})

    @property
    def log_level(self) -> str:
        return self.logging_config.get("level", "INFO")

    @property
    def log_format(self) -> str:
        return self.logging_config.get(
            "format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    @property
    def audit(self) -> dict:
        """Audit event settings."""
        return self._config.get("audit", {})

    @property
    def audit_logger_name(self) -> str:
        return self.audit.get("logger_name", "poc_tracker.audit")

    @property
    def audit_keep_events(self) -> int:
        """Number of recent audit events kept in memory."""
        return int(self.audit.get("keep_events", 1000))

    # =========================================================================
    # Raw Access
    # =========================================================================

    def get(self, key: str, default: Any = None) -> Any:
        """Get a top-level config value by key."""
        return self._config.get(key, default)

    def __getitem__(self, key: str) -> Any:
        """Dictionary-style access to config."""
        return self._config[key]

    def __contains__(self, key: str) -> bool:
        """Check if key exists in config."""
        return key in self._config


@lru_cache(maxsize=1)
def get_config(config_path: Optional[str] = None) -> POCConfig:
    """
    Get the singleton configuration instance.

    Args:
        config_path: Optional path to config file. Only used on first call.

    Returns:
        POCConfig singleton instance
    """
    path = Path(config_path) if config_path else None
    return POCConfig(path)


def reload_config() -> POCConfig:
    """Reload configuration from disk and return new instance."""
    get_config.cache_clear()
    return get_config()


def configure_logging(config: Optional[POCConfig] = None) -> None:
    """Apply the configured level and format to the root logger."""
    config = config or get_config()
    logging.basicConfig(
        level=getattr(logging, str(config.log_level).upper(), logging.INFO),
        format=config.log_format,
    )
