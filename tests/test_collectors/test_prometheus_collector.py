"""Tests for the Prometheus collector."""

from types import MappingProxyType
from unittest.mock import Mock

from prometheus_client import CollectorRegistry, generate_latest

from trino_exporter.collectors.coordinator_collector import StatsSnapshot
from trino_exporter.collectors.prometheus_collector import PrometheusStatsCollector
from trino_exporter.collectors.stats_collector import StatsCollector
from trino_exporter.errors import DiscoveryError, ScrapeError


def make_metrics_registry(stats_collector, **kwargs):
    registry = CollectorRegistry()
    registry.register(PrometheusStatsCollector(stats_collector, **kwargs))
    return registry


class TestPrometheusStatsCollector:
    """Tests for PrometheusStatsCollector."""

    def test_describe(self):
        """Test that all ten gauge families are described."""
        collector = PrometheusStatsCollector(Mock())

        names = [family.name for family in collector.describe()]

        assert len(names) == 10
        assert "presto_cluster_running_queries" in names
        assert "presto_cluster_up" in names

    def test_register_does_not_collect(self):
        """Test that registering does not trigger a collection cycle."""
        stats_collector = Mock()

        make_metrics_registry(stats_collector)

        stats_collector.collect.assert_not_called()

    def test_exports_gauges_per_cluster(
        self, direct_cluster, authenticated_cluster, sample_stats_body
    ):
        """Test exporting a reachable and an unreachable cluster."""

        def fetch(cluster):
            if cluster is direct_cluster:
                return StatsSnapshot.from_json(sample_stats_body)
            raise ScrapeError("500")

        client = Mock()
        client.fetch.side_effect = fetch
        cluster_registry = Mock()
        cluster_registry.provide.return_value = MappingProxyType(
            {"analytics": direct_cluster, "reporting": authenticated_cluster}
        )
        registry = make_metrics_registry(StatsCollector(cluster_registry, client))

        labels = {"cluster_name": "analytics"}
        assert registry.get_sample_value("presto_cluster_running_queries", labels) == 3
        assert registry.get_sample_value("presto_cluster_reserved_memory", labels) == 1048576
        assert registry.get_sample_value("presto_cluster_total_cpu_time_secs", labels) == 12.5
        assert registry.get_sample_value("presto_cluster_up", labels) == 1

        down = {"cluster_name": "reporting"}
        assert registry.get_sample_value("presto_cluster_up", down) == 0
        assert registry.get_sample_value("presto_cluster_running_queries", down) is None

    def test_discovery_failure_exports_nothing(self):
        """Test that a discovery failure yields no cluster families."""
        stats_collector = Mock()
        stats_collector.collect.side_effect = DiscoveryError("AccessDenied")
        registry = make_metrics_registry(stats_collector)

        output = generate_latest(registry).decode()

        assert "presto_cluster" not in output

    def test_custom_namespace_and_label(self, direct_cluster):
        """Test overriding the namespace and label name."""
        client = Mock()
        client.fetch.side_effect = ScrapeError("down")
        cluster_registry = Mock()
        cluster_registry.provide.return_value = MappingProxyType({"analytics": direct_cluster})
        registry = make_metrics_registry(
            StatsCollector(cluster_registry, client), namespace="trino", label="cluster"
        )

        assert registry.get_sample_value("trino_up", {"cluster": "analytics"}) == 0
