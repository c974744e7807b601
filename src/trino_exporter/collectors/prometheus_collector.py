"""prometheus_client collector that runs one collection cycle per scrape."""

from typing import Iterator
import logging

from prometheus_client.core import GaugeMetricFamily
from prometheus_client.metrics_core import Metric
from prometheus_client.registry import Collector

from trino_exporter.errors import DiscoveryError
from .stats_collector import METRIC_HELP, ObservationSet, StatsCollector

logger = logging.getLogger(__name__)


class PrometheusStatsCollector(Collector):
    """Exposes cluster statistics as Prometheus gauges.

    Every gauge carries one label holding the cluster name. When discovery
    fails the scrape contains none of these families.
    """

    def __init__(
        self,
        stats_collector: StatsCollector,
        namespace: str = "presto_cluster",
        label: str = "cluster_name",
    ):
        self.stats_collector = stats_collector
        self.namespace = namespace
        self.label = label

    def describe(self) -> Iterator[Metric]:
        for name, help_text in METRIC_HELP.items():
            yield GaugeMetricFamily(self._full_name(name), help_text, labels=[self.label])

    def collect(self) -> Iterator[Metric]:
        try:
            observation_set = self.stats_collector.collect()
        except DiscoveryError as e:
            logger.error(f"Cluster discovery failed, skipping collection: {e}")
            return

        yield from self.to_metric_families(observation_set)

    def to_metric_families(self, observation_set: ObservationSet) -> Iterator[Metric]:
        """Convert an ObservationSet into gauge families."""
        for name, observations in observation_set.by_metric().items():
            if not observations:
                continue

            family = GaugeMetricFamily(
                self._full_name(name), METRIC_HELP.get(name, name), labels=[self.label]
            )
            for observation in observations:
                family.add_metric([observation.cluster], observation.value)
            yield family

    def _full_name(self, name: str) -> str:
        return f"{self.namespace}_{name}" if self.namespace else name
