"""Client for the Trino coordinator statistics API."""

from dataclasses import dataclass, fields
from typing import Dict, Optional
import logging
import math

import requests

from trino_exporter.discovery.models import ApiVariant, ClusterEndpoint
from trino_exporter.errors import MissingSessionCookieError, ScrapeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatsSnapshot:
    """Cluster statistics reported by one coordinator at one instant."""

    running_queries: float = 0.0
    blocked_queries: float = 0.0
    queued_queries: float = 0.0
    active_workers: float = 0.0
    running_drivers: float = 0.0
    reserved_memory: float = 0.0
    total_input_rows: float = 0.0
    total_input_bytes: float = 0.0
    total_cpu_time_secs: float = 0.0

    # Attribute name -> key in the coordinator JSON body
    JSON_KEYS = {
        "running_queries": "runningQueries",
        "blocked_queries": "blockedQueries",
        "queued_queries": "queuedQueries",
        "active_workers": "activeWorkers",
        "running_drivers": "runningDrivers",
        "reserved_memory": "reservedMemory",
        "total_input_rows": "totalInputRows",
        "total_input_bytes": "totalInputBytes",
        "total_cpu_time_secs": "totalCpuTimeSecs",
    }

    @classmethod
    def from_json(cls, body) -> "StatsSnapshot":
        """Decode the JSON object returned by ``/v1/cluster`` or ``/ui/api/stats``.

        Keys missing from the body decode as 0. Unknown keys are ignored.
        Every value must be a finite, non-negative number.

        Raises:
            ScrapeError: If the body is not an object or a value is out of range
        """
        if not isinstance(body, dict):
            raise ScrapeError(f"expected a JSON object, got {type(body).__name__}")

        values = {}
        for attr, key in cls.JSON_KEYS.items():
            value = body.get(key, 0)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ScrapeError(f"field {key!r} is not numeric: {value!r}")

            try:
                number = float(value)
            except OverflowError as e:
                raise ScrapeError(f"field {key!r} does not fit a float") from e

            if not math.isfinite(number) or number < 0:
                raise ScrapeError(f"field {key!r} is out of range: {value!r}")
            values[attr] = number

        return cls(**values)

    def to_dict(self) -> Dict[str, float]:
        """Convert to dictionary keyed by attribute name."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


class CoordinatorClient:
    """Fetches statistics from Trino coordinators.

    Two coordinator dialects are supported:
    - DIRECT: ``GET /v1/cluster``
    - AUTHENTICATED: ``POST /ui/login`` for a session cookie, then
      ``GET /ui/api/stats`` with that cookie

    Redirects are never followed; a redirect is treated as the final response.
    """

    LOGIN_PATH = "/ui/login"
    UI_STATS_PATH = "/ui/api/stats"
    CLUSTER_STATS_PATH = "/v1/cluster"

    def __init__(self, config: Optional[Dict] = None):
        """Initialize the coordinator client.

        Args:
            config: Optional configuration dictionary with:
                - timeout: Request timeout in seconds (default: 10)
                - username: User name sent to the login form (default: 'exporter')
        """
        self.config = config or {}
        self.timeout = self.config.get("timeout", 10)
        self.username = self.config.get("username", "exporter")
        self._handlers = {
            ApiVariant.DIRECT: self._fetch_direct,
            ApiVariant.AUTHENTICATED: self._fetch_authenticated,
        }

    def fetch(self, cluster: ClusterEndpoint) -> StatsSnapshot:
        """Fetch a statistics snapshot from a cluster's coordinator.

        Args:
            cluster: Cluster to scrape

        Returns:
            Decoded statistics

        Raises:
            ScrapeError: If the coordinator cannot be reached or answers badly
        """
        handler = self._handlers.get(cluster.api_variant)
        if handler is None:
            raise ScrapeError(f"unsupported api variant {cluster.api_variant!r}")

        try:
            return handler(cluster)
        except requests.RequestException as e:
            raise ScrapeError(f"request to {cluster.coordinator_url} failed: {e}") from e

    def _fetch_direct(self, cluster: ClusterEndpoint) -> StatsSnapshot:
        return self._get_stats(f"{cluster.coordinator_url}{self.CLUSTER_STATS_PATH}")

    def _fetch_authenticated(self, cluster: ClusterEndpoint) -> StatsSnapshot:
        cookie = self._login(cluster)
        return self._get_stats(
            f"{cluster.coordinator_url}{self.UI_STATS_PATH}",
            headers={"Cookie": cookie},
        )

    def _login(self, cluster: ClusterEndpoint) -> str:
        """Log in to the coordinator web UI.

        Returns:
            Cookie header value carrying the session token

        Raises:
            MissingSessionCookieError: If the response sets no cookie
        """
        url = f"{cluster.coordinator_url}{self.LOGIN_PATH}"
        response = requests.post(
            url,
            data={"username": self.username, "password": "", "redirectPath": ""},
            timeout=self.timeout,
            allow_redirects=False,
        )

        set_cookie = response.headers.get("Set-Cookie")
        if not set_cookie:
            raise MissingSessionCookieError(f"no Set-Cookie header in response from {url}")

        # requests joins repeated Set-Cookie headers with ", ". Only the first
        # cookie's name=value pair is sent back; it carries the session token.
        # Attributes such as Path and HttpOnly are dropped.
        first_cookie = set_cookie.split(";", 1)[0]
        return first_cookie.split(",", 1)[0].strip()

    def _get_stats(self, url: str, headers: Optional[Dict] = None) -> StatsSnapshot:
        logger.debug(f"Fetching coordinator stats from {url}")
        response = requests.get(
            url, headers=headers, timeout=self.timeout, allow_redirects=False
        )

        if response.status_code != 200:
            raise ScrapeError(f"unexpected status {response.status_code} from {url}")

        try:
            body = response.json()
        except ValueError as e:
            raise ScrapeError(f"invalid JSON from {url}: {e}") from e

        return StatsSnapshot.from_json(body)
