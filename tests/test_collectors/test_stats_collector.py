"""Tests for the collection cycle."""

import pytest
from types import MappingProxyType
from unittest.mock import Mock, patch

from trino_exporter.collectors.coordinator_collector import CoordinatorClient, StatsSnapshot
from trino_exporter.collectors.stats_collector import (
    METRIC_HELP,
    ObservationSet,
    ScrapeResult,
    StatsCollector,
)
from trino_exporter.discovery.models import ApiVariant, ClusterEndpoint
from trino_exporter.errors import DiscoveryError, ScrapeError
from trino_exporter.utils.config import Config


def make_registry(*clusters):
    registry = Mock()
    registry.provide.return_value = MappingProxyType({c.name: c for c in clusters})
    return registry


def json_response(body, status_code=200):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = body
    response.headers = {}
    return response


class TestScrapeResult:
    """Tests for per-cluster results."""

    def test_success_observations(self, direct_cluster, sample_stats_body):
        """Test that a successful scrape yields nine gauges plus up=1."""
        result = ScrapeResult(
            cluster=direct_cluster, stats=StatsSnapshot.from_json(sample_stats_body)
        )

        observations = result.observations()

        assert result.ok
        assert len(observations) == 10
        assert all(o.cluster == "analytics" for o in observations)
        assert observations[-1].name == "up"
        assert observations[-1].value == 1.0

    def test_failure_observations(self, direct_cluster):
        """Test that a failed scrape yields only up=0."""
        result = ScrapeResult(cluster=direct_cluster, error=ScrapeError("refused"))

        observations = result.observations()

        assert not result.ok
        assert [(o.name, o.value, o.cluster) for o in observations] == [
            ("up", 0.0, "analytics")
        ]


class TestStatsCollector:
    """Tests for StatsCollector."""

    def test_collect_matches_stats_exactly(self, direct_cluster, sample_stats_body):
        """Test that observations carry the decoded values under the cluster name."""
        client = Mock()
        client.fetch.return_value = StatsSnapshot.from_json(sample_stats_body)
        collector = StatsCollector(make_registry(direct_cluster), client)

        observation_set = collector.collect()

        assert observation_set.for_cluster("analytics") == {
            "running_queries": 3,
            "blocked_queries": 0,
            "queued_queries": 1,
            "active_workers": 5,
            "running_drivers": 2,
            "reserved_memory": 1048576,
            "total_input_rows": 1000,
            "total_input_bytes": 500000,
            "total_cpu_time_secs": 12.5,
            "up": 1,
        }

    def test_failure_is_isolated(self, direct_cluster, authenticated_cluster, sample_stats_body):
        """Test that one failing cluster does not affect the others."""
        def fetch(cluster):
            if cluster is direct_cluster:
                return StatsSnapshot.from_json(sample_stats_body)
            raise ScrapeError("timeout")

        client = Mock()
        client.fetch.side_effect = fetch
        collector = StatsCollector(make_registry(authenticated_cluster, direct_cluster), client)

        observation_set = collector.collect()

        assert observation_set.for_cluster("reporting") == {"up": 0}
        assert observation_set.for_cluster("analytics")["up"] == 1
        assert len(observation_set.for_cluster("analytics")) == 10
        assert client.fetch.call_count == 2

    @patch("requests.get")
    def test_out_of_range_body_is_isolated(self, mock_get, sample_stats_body):
        """Test that a body with an oversized value only marks its own cluster down."""
        healthy = ClusterEndpoint(
            name="analytics", coordinator_url="http://10.0.0.1:8889", api_variant=ApiVariant.DIRECT
        )
        broken = ClusterEndpoint(
            name="batch", coordinator_url="http://10.0.0.3:8889", api_variant=ApiVariant.DIRECT
        )

        def get(url, **kwargs):
            if url.startswith(broken.coordinator_url):
                return json_response(dict(sample_stats_body, totalInputBytes=10**400))
            return json_response(sample_stats_body)

        mock_get.side_effect = get
        collector = StatsCollector(make_registry(healthy, broken), CoordinatorClient())

        observation_set = collector.collect()

        assert observation_set.for_cluster("batch") == {"up": 0}
        assert observation_set.for_cluster("analytics")["up"] == 1
        assert observation_set.for_cluster("analytics")["total_input_bytes"] == 500000

    def test_discovery_failure_propagates(self):
        """Test that a registry failure aborts the cycle."""
        registry = Mock()
        registry.provide.side_effect = DiscoveryError("AccessDenied")
        client = Mock()
        collector = StatsCollector(registry, client)

        with pytest.raises(DiscoveryError):
            collector.collect()

        client.fetch.assert_not_called()

    def test_no_clusters(self):
        """Test a cycle without clusters."""
        collector = StatsCollector(make_registry(), Mock())

        assert len(collector.collect()) == 0

    @patch("requests.get")
    @patch("requests.post")
    def test_direct_ok_authenticated_failing(
        self, mock_post, mock_get, direct_cluster, authenticated_cluster, sample_stats_body
    ):
        """Test a direct cluster that answers next to an authenticated one returning 500."""
        mock_post.return_value = Mock(headers={"Set-Cookie": "Trino-UI-Token=t"})

        def get(url, **kwargs):
            if url == "http://10.0.0.1:8889/v1/cluster":
                return json_response(sample_stats_body)
            return json_response({}, status_code=500)

        mock_get.side_effect = get
        collector = StatsCollector(
            make_registry(direct_cluster, authenticated_cluster), CoordinatorClient()
        )

        observation_set = collector.collect()

        analytics = observation_set.for_cluster("analytics")
        assert len(analytics) == 10
        assert analytics["up"] == 1
        assert analytics["total_cpu_time_secs"] == 12.5
        assert observation_set.for_cluster("reporting") == {"up": 0}
        assert len(observation_set) == 11

    def test_from_config(self):
        """Test building a collector from configuration."""
        config = Config()
        config.set("coordinator.timeout", 4)
        config.set("coordinator.username", "metrics")
        registry = make_registry()

        collector = StatsCollector.from_config(config, registry=registry)

        assert collector.registry is registry
        assert collector.client.timeout == 4
        assert collector.client.username == "metrics"


class TestObservationSet:
    """Tests for ObservationSet helpers."""

    def test_by_metric_keeps_export_order(self, direct_cluster, authenticated_cluster, sample_stats_body):
        """Test grouping observations by metric name."""
        observation_set = ObservationSet()
        observation_set.extend(
            ScrapeResult(direct_cluster, stats=StatsSnapshot.from_json(sample_stats_body)).observations()
        )
        observation_set.extend(
            ScrapeResult(authenticated_cluster, error=ScrapeError("down")).observations()
        )

        grouped = observation_set.by_metric()

        assert list(grouped) == list(METRIC_HELP)
        assert [o.cluster for o in grouped["up"]] == ["analytics", "reporting"]
        assert [o.cluster for o in grouped["running_queries"]] == ["analytics"]

    def test_to_dict(self, direct_cluster):
        """Test serialization."""
        observation_set = ObservationSet()
        observation_set.extend(ScrapeResult(direct_cluster, error=ScrapeError("x")).observations())

        data = observation_set.to_dict()

        assert "collected_at" in data
        assert data["observations"] == [{"name": "up", "value": 0.0, "cluster": "analytics"}]
