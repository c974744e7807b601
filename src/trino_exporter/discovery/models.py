"""Data model for discovered Trino coordinators."""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, Mapping

from trino_exporter.errors import ConfigurationError, DiscoveryError


class ApiVariant(Enum):
    """Coordinator API dialects.

    DIRECT coordinators expose ``/v1/cluster`` without authentication.
    AUTHENTICATED coordinators require a ``/ui/login`` handshake and serve
    ``/ui/api/stats`` to the resulting session.
    """

    DIRECT = "direct"
    AUTHENTICATED = "authenticated"

    @classmethod
    def from_name(cls, name: str) -> "ApiVariant":
        """Parse a variant from its configuration name (case-insensitive)."""
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            valid = ", ".join(v.value for v in cls)
            raise ConfigurationError(
                f"unknown coordinator api variant {name!r} (expected one of: {valid})"
            ) from None


@dataclass(frozen=True)
class ClusterEndpoint:
    """One discovered cluster and where to reach its coordinator."""

    name: str
    coordinator_url: str
    api_variant: ApiVariant

    def to_dict(self) -> Dict:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "coordinator_url": self.coordinator_url,
            "api_variant": self.api_variant.value,
        }


# Read-only view of cluster name -> endpoint produced by one discovery pass.
DiscoverySnapshot = Mapping[str, ClusterEndpoint]


def build_snapshot(endpoints: Iterable[ClusterEndpoint]) -> DiscoverySnapshot:
    """Build an immutable snapshot keyed by cluster name.

    Args:
        endpoints: Endpoints found by one discovery pass

    Returns:
        Read-only mapping of cluster name to endpoint

    Raises:
        DiscoveryError: If two endpoints share the same name
    """
    clusters: Dict[str, ClusterEndpoint] = {}
    for endpoint in endpoints:
        if endpoint.name in clusters:
            raise DiscoveryError(f"duplicate cluster name {endpoint.name!r}")
        clusters[endpoint.name] = endpoint
    return MappingProxyType(clusters)
