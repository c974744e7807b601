"""
HTTP server exposing Trino cluster metrics to Prometheus
"""

from flask import Flask, Response, jsonify
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest
from typing import Optional
import logging

from trino_exporter import __version__
from trino_exporter.collectors.prometheus_collector import PrometheusStatsCollector
from trino_exporter.collectors.stats_collector import StatsCollector
from trino_exporter.utils.config import Config, configure_logging

logger = logging.getLogger(__name__)

# Initialize Flask app
app = Flask(__name__)

# Set by init_app() before the server starts
metrics_registry: Optional[CollectorRegistry] = None


def init_app(config: Optional[Config] = None, registry=None) -> CollectorRegistry:
    """Initialize the application with a metrics registry.

    Args:
        config: Exporter configuration (defaults are used if None)
        registry: Cluster registry to use instead of the configured one

    Returns:
        The Prometheus registry served at /metrics
    """
    global metrics_registry
    config = config or Config()

    stats_collector = StatsCollector.from_config(config, registry=registry)
    metrics_registry = CollectorRegistry()
    metrics_registry.register(
        PrometheusStatsCollector(
            stats_collector,
            namespace=config.get("metrics.namespace", "presto_cluster"),
            label=config.get("metrics.label", "cluster_name"),
        )
    )
    return metrics_registry


def _ensure_initialized() -> CollectorRegistry:
    """Ensure the metrics registry is initialized.

    Raises:
        RuntimeError: If application is not initialized
    """
    if metrics_registry is None:
        raise RuntimeError("Application not initialized. Call init_app() first.")
    return metrics_registry


@app.route("/health", methods=["GET"])
def health_check():
    """Health check endpoint"""
    return jsonify(
        {"status": "healthy", "service": "trino-exporter", "version": __version__}
    )


@app.route("/metrics", methods=["GET"])
def prometheus_metrics():
    """Prometheus metrics endpoint.

    Each request runs one collection cycle: the cluster map comes from the
    discovery cache and every coordinator is scraped.
    """
    registry = _ensure_initialized()
    return Response(generate_latest(registry), content_type=CONTENT_TYPE_LATEST)


def run_server(config: Optional[Config] = None, host=None, port=None):
    """Run the Flask server"""
    config = config or Config()
    host = host or config.get("server.host")
    port = port or config.get("server.port")

    init_app(config)
    logger.info(f"Starting Trino exporter on {host}:{port}")
    app.run(host=host, port=port)


if __name__ == "__main__":
    _config = Config()
    configure_logging(_config)
    run_server(_config)
