"""
In-memory cache of recently alerted market/outcome pairs.

The alert store is append-only, so an opportunity that persists across
cycles is recorded once per cycle. A RecentAlertCache can be injected into
the scan cycle to suppress repeats of the same market/outcome for a TTL.
Entries are bounded by max_entries; the oldest entry is evicted first.
"""

import logging
import threading
import time
from collections import OrderedDict
from typing import Callable, Optional

# Configure module logger
logger = logging.getLogger(__name__)


class RecentAlertCache:
    """Bounded TTL cache keyed by (market_id, outcome)."""

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: int = 10000,
        clock: Optional[Callable[[], float]] = None,
    ):
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")

        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock or time.monotonic
        self._entries: OrderedDict[tuple[str, str], float] = OrderedDict()
        self._lock = threading.Lock()

    def seen(self, market_id: str, outcome: str) -> bool:
        """Return True if the pair was recorded within the TTL."""
        key = (market_id, outcome)
        now = self._clock()

        with self._lock:
            expires_at = self._entries.get(key)
            if expires_at is None:
                return False
            if expires_at <= now:
                del self._entries[key]
                return False
            return True

    def record(self, market_id: str, outcome: str) -> None:
        """Record a pair as alerted now."""
        key = (market_id, outcome)

        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = self._clock() + self.ttl_seconds

            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted {evicted} from recent alert cache")

    def purge_expired(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        now = self._clock()

        with self._lock:
            expired = [key for key, expires_at in self._entries.items() if expires_at <= now]
            for key in expired:
                del self._entries[key]

        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
