"""Collection cycle: discover clusters, scrape each one, build observations."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterator, List, Optional
import logging

from trino_exporter.discovery import build_registry
from trino_exporter.discovery.models import ClusterEndpoint
from trino_exporter.errors import ScrapeError
from trino_exporter.utils.config import Config
from .coordinator_collector import CoordinatorClient, StatsSnapshot

logger = logging.getLogger(__name__)

UP = "up"

# Metric name -> help text, in export order
METRIC_HELP = {
    "running_queries": "Running requests of the presto cluster.",
    "blocked_queries": "Blocked queries of the presto cluster.",
    "queued_queries": "Queued queries of the presto cluster.",
    "active_workers": "Active workers of the presto cluster.",
    "running_drivers": "Running drivers of the presto cluster.",
    "reserved_memory": "Reserved memory of the presto cluster.",
    "total_input_rows": "Total input rows of the presto cluster.",
    "total_input_bytes": "Total input bytes of the presto cluster.",
    "total_cpu_time_secs": "Total cpu time of the presto cluster.",
    UP: "Presto health check.",
}


@dataclass
class Observation:
    """A single gauge value for one cluster."""

    name: str
    value: float
    cluster: str

    def to_dict(self) -> Dict:
        """Convert to dictionary."""
        return {"name": self.name, "value": self.value, "cluster": self.cluster}


@dataclass
class ScrapeResult:
    """Outcome of scraping one cluster: either stats or the error."""

    cluster: ClusterEndpoint
    stats: Optional[StatsSnapshot] = None
    error: Optional[ScrapeError] = None

    @property
    def ok(self) -> bool:
        return self.stats is not None

    def observations(self) -> List[Observation]:
        """Observations for this cluster: ``up`` plus the stats when reachable."""
        name = self.cluster.name
        if not self.ok:
            return [Observation(UP, 0.0, name)]

        values = self.stats.to_dict()
        result = [
            Observation(metric, values[metric], name)
            for metric in METRIC_HELP
            if metric != UP
        ]
        result.append(Observation(UP, 1.0, name))
        return result


@dataclass
class ObservationSet:
    """All observations produced by one collection cycle."""

    observations: List[Observation] = field(default_factory=list)
    collected_at: datetime = field(default_factory=datetime.utcnow)

    def extend(self, observations: List[Observation]) -> None:
        self.observations.extend(observations)

    def for_cluster(self, cluster: str) -> Dict[str, float]:
        """Metric name -> value for one cluster."""
        return {o.name: o.value for o in self.observations if o.cluster == cluster}

    def by_metric(self) -> Dict[str, List[Observation]]:
        """Group observations by metric name, in export order."""
        grouped: Dict[str, List[Observation]] = {name: [] for name in METRIC_HELP}
        for observation in self.observations:
            grouped.setdefault(observation.name, []).append(observation)
        return grouped

    def __iter__(self) -> Iterator[Observation]:
        return iter(self.observations)

    def __len__(self) -> int:
        return len(self.observations)

    def to_dict(self) -> Dict:
        """Convert to dictionary."""
        return {
            "collected_at": self.collected_at.isoformat(),
            "observations": [o.to_dict() for o in self.observations],
        }


class StatsCollector:
    """Runs collection cycles over the clusters provided by a registry.

    A failing cluster only yields ``up=0`` for itself. A failing registry is
    systemic: :meth:`collect` lets its DiscoveryError propagate.
    """

    def __init__(self, registry, client: Optional[CoordinatorClient] = None):
        """Initialize the collector.

        Args:
            registry: Object with a ``provide()`` method returning a DiscoverySnapshot
            client: Coordinator client (default: CoordinatorClient with default settings)
        """
        self.registry = registry
        self.client = client or CoordinatorClient()

    @classmethod
    def from_config(cls, config: Config, registry=None) -> "StatsCollector":
        """Build a collector and, unless given, its registry from the configuration."""
        if registry is None:
            registry = build_registry(config)

        client = CoordinatorClient(
            {
                "timeout": config.get("coordinator.timeout", 10),
                "username": config.get("coordinator.username", "exporter"),
            }
        )
        return cls(registry, client)

    def collect(self) -> ObservationSet:
        """Run one collection cycle.

        Returns:
            Observations for every discovered cluster

        Raises:
            DiscoveryError: If the registry cannot provide the cluster map
        """
        clusters = self.registry.provide()
        observation_set = ObservationSet()

        for result in self.scrape_all(clusters.values()):
            observation_set.extend(result.observations())

        return observation_set

    def scrape_all(self, clusters) -> List[ScrapeResult]:
        """Scrape each cluster in turn, isolating failures."""
        return [self.scrape(cluster) for cluster in clusters]

    def scrape(self, cluster: ClusterEndpoint) -> ScrapeResult:
        """Scrape a single cluster.

        Args:
            cluster: Cluster to scrape

        Returns:
            ScrapeResult holding either the stats or the error
        """
        try:
            stats = self.client.fetch(cluster)
        except ScrapeError as e:
            logger.error(f"Error scraping cluster {cluster.name} ({cluster.coordinator_url}): {e}")
            return ScrapeResult(cluster=cluster, error=e)

        logger.debug(f"Scraped cluster {cluster.name}")
        return ScrapeResult(cluster=cluster, stats=stats)
