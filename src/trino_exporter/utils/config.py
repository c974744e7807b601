"""Configuration management for the exporter."""

import logging
import os
import yaml
from typing import Dict, Any, Optional

ENV_PREFIX = "TRINO_EXPORTER_"

# Environment variable suffix -> (dotted key, converter)
ENV_VARIABLES = {
    "AWS_REGION": ("aws.region", str),
    "AWS_PROFILE": ("aws.profile", str),
    "DISCOVERY_SOURCE": ("discovery.source", str),
    "API_VARIANT": ("discovery.api_variant", str),
    "TIMEOUT": ("coordinator.timeout", float),
    "HOST": ("server.host", str),
    "PORT": ("server.port", int),
    "LOG_LEVEL": ("logging.level", str),
}


class Config:
    """Configuration manager for the Trino exporter."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration.

        Args:
            config_path: Path to configuration file (YAML)
        """
        self.config_path = config_path
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self):
        """Load configuration from file and environment variables."""
        # Load from file if provided
        if self.config_path and os.path.exists(self.config_path):
            with open(self.config_path, "r") as f:
                self._config = yaml.safe_load(f) or {}

        # Override with environment variables
        self._load_env_variables()

        # Set defaults
        self._set_defaults()

    def _load_env_variables(self):
        """Load configuration from environment variables."""
        for suffix, (key, convert) in ENV_VARIABLES.items():
            value = os.getenv(ENV_PREFIX + suffix)
            if value:
                self.set(key, convert(value))

    def _set_defaults(self):
        """Set default configuration values."""
        # AWS defaults (None falls back to the boto3 credential chain)
        self._config.setdefault("aws", {})
        self._config["aws"].setdefault("region", None)
        self._config["aws"].setdefault("profile", None)

        # Discovery defaults
        self._config.setdefault("discovery", {})
        self._config["discovery"].setdefault("source", "emr")
        self._config["discovery"].setdefault("cluster_states", ["WAITING"])
        self._config["discovery"].setdefault("applications", ["trino", "trinodb"])
        self._config["discovery"].setdefault("coordinator_port", 8889)
        self._config["discovery"].setdefault("api_variant", "authenticated")
        self._config["discovery"].setdefault("cache_ttl_seconds", 30 * 60)
        self._config["discovery"].setdefault("cache_max_age_seconds", 24 * 60 * 60)
        self._config["discovery"].setdefault("serve_stale_on_error", False)
        self._config["discovery"].setdefault("static_clusters", [])

        # Coordinator defaults
        self._config.setdefault("coordinator", {})
        self._config["coordinator"].setdefault("timeout", 10)
        self._config["coordinator"].setdefault("username", "exporter")

        # Metrics defaults
        self._config.setdefault("metrics", {})
        self._config["metrics"].setdefault("namespace", "presto_cluster")
        self._config["metrics"].setdefault("label", "cluster_name")

        # Server defaults
        self._config.setdefault("server", {})
        self._config["server"].setdefault("host", "0.0.0.0")  # nosec B104
        self._config["server"].setdefault("port", 9483)

        # Logging defaults
        self._config.setdefault("logging", {})
        self._config["logging"].setdefault("level", "INFO")
        self._config["logging"].setdefault(
            "format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key.

        Args:
            key: Configuration key (supports dot notation, e.g., 'discovery.source')
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key.split(".")
        value = self._config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default

            if value is None:
                return default

        return value

    def set(self, key: str, value: Any):
        """Set configuration value.

        Args:
            key: Configuration key (supports dot notation)
            value: Value to set
        """
        keys = key.split(".")
        config = self._config

        for k in keys[:-1]:
            config = config.setdefault(k, {})

        config[keys[-1]] = value

    def to_dict(self) -> Dict[str, Any]:
        """Get configuration as dictionary.

        Returns:
            Configuration dictionary
        """
        return self._config.copy()


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from file or defaults.

    Args:
        config_path: Path to configuration file

    Returns:
        Config instance
    """
    return Config(config_path)


def configure_logging(config: Config) -> None:
    """Configure root logging from the ``logging`` section.

    Args:
        config: Config instance
    """
    logging.basicConfig(
        level=str(config.get("logging.level", "INFO")).upper(),
        format=config.get("logging.format"),
    )
