"""Exceptions raised while discovering and scraping Trino clusters."""


class ExporterError(Exception):
    """Base class for all exporter errors."""

    pass


class ConfigurationError(ExporterError):
    """Raised when the exporter configuration is invalid."""

    pass


class DiscoveryError(ExporterError):
    """Raised when a discovery pass against the cluster-management API fails.

    A discovery failure is systemic: the whole collection cycle is abandoned.
    """

    pass


class UnrecognizedTopologyError(DiscoveryError):
    """Raised when a cluster uses an instance collection type we cannot handle."""

    def __init__(self, cluster_id: str, topology: str):
        super().__init__(
            f"unrecognized instance collection type {topology!r} for cluster {cluster_id}"
        )
        self.cluster_id = cluster_id
        self.topology = topology


class NoMasterFoundError(DiscoveryError):
    """Raised when no master instance can be resolved for a cluster."""

    def __init__(self, cluster_id: str):
        super().__init__(f"no master instance found for cluster {cluster_id}")
        self.cluster_id = cluster_id


class ScrapeError(ExporterError):
    """Raised when statistics cannot be fetched from a single coordinator."""

    pass


class MissingSessionCookieError(ScrapeError):
    """Raised when the coordinator login response carries no Set-Cookie header."""

    pass
