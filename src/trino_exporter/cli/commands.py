"""
Command-line interface for the Trino exporter
"""

import click
import json
import sys
from tabulate import tabulate
from typing import Optional

from trino_exporter import __version__
from trino_exporter.collectors.stats_collector import StatsCollector
from trino_exporter.discovery import build_registry
from trino_exporter.errors import ConfigurationError, DiscoveryError
from trino_exporter.utils.config import Config, configure_logging, load_config


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    envvar="TRINO_EXPORTER_CONFIG",
    help="YAML configuration file",
)
@click.option("--log-level", default=None, help="Override the configured log level")
@click.pass_context
def cli(ctx, config_path: Optional[str], log_level: Optional[str]):
    """Trino exporter - Prometheus metrics for Trino clusters on AWS EMR"""
    config = load_config(config_path)
    if log_level:
        config.set("logging.level", log_level)

    configure_logging(config)
    ctx.obj = config


@cli.command()
@click.option("--host", default=None, help="Host to bind the server to")
@click.option("--port", default=None, type=int, help="Port to bind the server to")
@click.pass_obj
def serve(config: Config, host: Optional[str], port: Optional[int]):
    """Start the metrics server"""
    from trino_exporter.api.server import run_server

    host = host or config.get("server.host")
    port = port or config.get("server.port")

    click.echo(f"Starting Trino exporter on {host}:{port}")
    click.echo(f"Discovery source: {config.get('discovery.source')}")

    try:
        run_server(config, host=host, port=port)
    except ConfigurationError as e:
        click.echo(f"✗ Invalid configuration: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.pass_obj
def discover(config: Config):
    """Run one discovery pass and list the clusters found"""
    try:
        registry = build_registry(config)
        clusters = registry.provide()
    except (ConfigurationError, DiscoveryError) as e:
        click.echo(f"✗ Discovery failed: {e}", err=True)
        sys.exit(1)

    if not clusters:
        click.echo("No Trino clusters found")
        return

    rows = [
        [name, cluster.coordinator_url, cluster.api_variant.value]
        for name, cluster in sorted(clusters.items())
    ]
    click.echo(tabulate(rows, headers=["Cluster", "Coordinator", "API variant"]))
    click.echo(f"\n✓ Found {len(rows)} clusters")


@cli.command()
@click.option(
    "--format",
    "output_format",
    default="text",
    type=click.Choice(["text", "json"]),
    help="Output format (default: text)",
)
@click.pass_obj
def scrape(config: Config, output_format: str):
    """Run one collection cycle and print the observations"""
    try:
        collector = StatsCollector.from_config(config)
        observation_set = collector.collect()
    except (ConfigurationError, DiscoveryError) as e:
        click.echo(f"✗ Collection failed: {e}", err=True)
        sys.exit(1)

    if output_format == "json":
        click.echo(json.dumps(observation_set.to_dict(), indent=2))
        return

    rows = [[o.cluster, o.name, o.value] for o in observation_set]
    click.echo(tabulate(rows, headers=["Cluster", "Metric", "Value"]))

    down = sorted(
        o.cluster for o in observation_set if o.name == "up" and o.value == 0
    )
    if down:
        click.echo(f"\n✗ Unreachable clusters: {', '.join(down)}", err=True)


def main():
    """Main entry point for the CLI"""
    cli()


if __name__ == "__main__":
    main()
