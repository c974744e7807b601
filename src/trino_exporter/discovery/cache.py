"""Time-bounded cache for discovery snapshots."""

from typing import Callable, Optional, Tuple
import logging
import threading
import time

from trino_exporter.errors import ConfigurationError
from .models import DiscoverySnapshot

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 30 * 60
DEFAULT_MAX_AGE_SECONDS = 24 * 60 * 60


class SnapshotCache:
    """Holds the last discovery snapshot of one registry.

    An entry is *fresh* while younger than ``ttl_seconds`` and is returned
    without any discovery call. Past that it is *stale*: it is kept around as
    the last-known-good mapping until it reaches ``max_age_seconds``, at which
    point it is evicted.

    Concurrent callers of :meth:`get_or_load` that miss the cache at the same
    time run the loader only once; the others wait and get its result.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_age_seconds: float = DEFAULT_MAX_AGE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the cache.

        Args:
            ttl_seconds: Freshness window of a stored snapshot
            max_age_seconds: Hard ceiling after which a snapshot is evicted
            clock: Monotonic time source, in seconds
        """
        if ttl_seconds <= 0:
            raise ConfigurationError("ttl_seconds must be positive")
        if max_age_seconds < ttl_seconds:
            raise ConfigurationError("max_age_seconds must not be smaller than ttl_seconds")

        self.ttl_seconds = ttl_seconds
        self.max_age_seconds = max_age_seconds
        self._clock = clock
        self._entry: Optional[Tuple[float, DiscoverySnapshot]] = None
        self._lock = threading.Lock()
        self._load_lock = threading.Lock()

    def get(self) -> Optional[DiscoverySnapshot]:
        """Return the cached snapshot if it is still fresh."""
        with self._lock:
            age = self._age_locked()
            if age is None or age >= self.ttl_seconds:
                return None
            return self._entry[1]

    def get_stale(self) -> Optional[DiscoverySnapshot]:
        """Return the cached snapshot, fresh or not, unless it was evicted."""
        with self._lock:
            if self._age_locked() is None:
                return None
            return self._entry[1]

    def set(self, snapshot: DiscoverySnapshot) -> None:
        """Store a snapshot, replacing any previous one."""
        with self._lock:
            self._entry = (self._clock(), snapshot)

    def clear(self) -> None:
        """Drop the cached snapshot."""
        with self._lock:
            self._entry = None

    def age(self) -> Optional[float]:
        """Age of the cached snapshot in seconds, or None if there is none."""
        with self._lock:
            return self._age_locked()

    def get_or_load(
        self, loader: Callable[[], DiscoverySnapshot]
    ) -> DiscoverySnapshot:
        """Return the fresh snapshot or run ``loader`` and cache its result.

        Exceptions raised by ``loader`` propagate and leave the cached entry
        untouched.
        """
        cached = self.get()
        if cached is not None:
            logger.debug("Discovery cache hit")
            return cached

        with self._load_lock:
            # Another caller may have refreshed while we waited
            cached = self.get()
            if cached is not None:
                logger.debug("Discovery cache refreshed by concurrent caller")
                return cached

            snapshot = loader()
            self.set(snapshot)
            return snapshot

    def _age_locked(self) -> Optional[float]:
        if self._entry is None:
            return None

        age = self._clock() - self._entry[0]
        if age >= self.max_age_seconds:
            logger.info(f"Evicting discovery snapshot older than {self.max_age_seconds}s")
            self._entry = None
            return None
        return age
