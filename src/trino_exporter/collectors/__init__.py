"""Collectors for Trino coordinator statistics."""

from .coordinator_collector import CoordinatorClient, StatsSnapshot
from .stats_collector import Observation, ObservationSet, ScrapeResult, StatsCollector
from .prometheus_collector import PrometheusStatsCollector

__all__ = [
    "CoordinatorClient",
    "StatsSnapshot",
    "Observation",
    "ObservationSet",
    "ScrapeResult",
    "StatsCollector",
    "PrometheusStatsCollector",
]
