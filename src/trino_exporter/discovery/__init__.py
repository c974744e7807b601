"""Discovery of Trino coordinators."""

from .models import ApiVariant, ClusterEndpoint, DiscoverySnapshot
from .cache import SnapshotCache
from .static_registry import StaticClusterRegistry
from .emr_registry import EMRClusterRegistry
from .factory import build_registry

__all__ = [
    "ApiVariant",
    "ClusterEndpoint",
    "DiscoverySnapshot",
    "SnapshotCache",
    "StaticClusterRegistry",
    "EMRClusterRegistry",
    "build_registry",
]
