"""Build the cluster registry selected by the configuration."""

import logging

from trino_exporter.errors import ConfigurationError
from trino_exporter.utils.config import Config
from .emr_registry import EMRClusterRegistry
from .static_registry import StaticClusterRegistry

logger = logging.getLogger(__name__)


def build_registry(config: Config):
    """Create the registry for ``discovery.source``.

    Args:
        config: Exporter configuration

    Returns:
        EMRClusterRegistry or StaticClusterRegistry

    Raises:
        ConfigurationError: If the source is unknown or its settings are invalid
    """
    source = str(config.get("discovery.source", "emr")).lower()

    if source == "static":
        return StaticClusterRegistry(config.get("discovery.static_clusters", []))

    if source == "emr":
        discovery = config.get("discovery", {})
        registry_config = {
            key: discovery[key]
            for key in (
                "cluster_states",
                "applications",
                "coordinator_port",
                "api_variant",
                "cache_ttl_seconds",
                "cache_max_age_seconds",
                "serve_stale_on_error",
            )
            if key in discovery
        }
        if config.get("aws.profile"):
            registry_config["profile_name"] = config.get("aws.profile")

        logger.info(f"Using EMR discovery in region {config.get('aws.region') or 'default'}")
        return EMRClusterRegistry(
            region_name=config.get("aws.region"), config=registry_config
        )

    raise ConfigurationError(f"unknown discovery source {source!r} (expected 'emr' or 'static')")
