"""Cluster registry for coordinators listed in the configuration."""

from typing import Dict, List, Optional
import logging

from trino_exporter.errors import ConfigurationError, DiscoveryError
from .models import ApiVariant, ClusterEndpoint, DiscoverySnapshot, build_snapshot

logger = logging.getLogger(__name__)


class StaticClusterRegistry:
    """Serves a fixed set of coordinators.

    Useful for coordinators outside EMR and for local runs without AWS access.
    Each entry needs a ``name`` and a ``url``; ``api_variant`` defaults to
    ``direct``.
    """

    def __init__(self, clusters: Optional[List[Dict]] = None):
        """Initialize the registry.

        Args:
            clusters: List of dictionaries with name, url and optional api_variant

        Raises:
            ConfigurationError: If an entry is incomplete or names are duplicated
        """
        endpoints = []
        for entry in clusters or []:
            name = entry.get("name")
            url = entry.get("url")
            if not name or not url:
                raise ConfigurationError(
                    f"static cluster entry needs both 'name' and 'url': {entry!r}"
                )
            endpoints.append(
                ClusterEndpoint(
                    name=str(name),
                    coordinator_url=str(url).rstrip("/"),
                    api_variant=ApiVariant.from_name(
                        entry.get("api_variant", ApiVariant.DIRECT.value)
                    ),
                )
            )

        try:
            self._snapshot = build_snapshot(endpoints)
        except DiscoveryError as e:
            raise ConfigurationError(str(e)) from e

        logger.info(f"Configured {len(self._snapshot)} static Trino clusters")

    def provide(self) -> DiscoverySnapshot:
        """Return the configured clusters."""
        return self._snapshot
