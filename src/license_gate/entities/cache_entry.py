"""Cache entry domain entity."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class CacheEntryEntity:
    """A value held by the multi-tab cache.

    Attributes:
        data: The cached value (JSON-serializable so it can be broadcast)
        timestamp: When the value was written (epoch milliseconds)
        ttl: Time-to-live in milliseconds
        version: Cache format version the value was written under
    """

    data: Any
    timestamp: float
    ttl: float
    version: str

    def is_expired(self, now: float, current_version: str) -> bool:
        """Check whether the entry must be treated as absent.

        Args:
            now: Current time (epoch milliseconds)
            current_version: The cache format version currently in use

        Returns:
            True if the TTL has elapsed or the entry has a stale version
        """
        return now - self.timestamp > self.ttl or self.version != current_version
