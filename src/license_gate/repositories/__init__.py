"""Repository layer for external systems.

This layer abstracts external dependencies (Redis pub/sub, the hosted
license procedure, browser history) behind protocol-based interfaces.
The repositories are protocol-based (structural typing), not
inheritance-based.
"""

from .local_broadcast_channel import (
    InMemoryVersionMarkerStore,
    LocalBroadcastChannel,
    LocalBroadcastHub,
)
from .memory_history import InMemoryHistory
from .redis_broadcast_channel import RedisBroadcastChannel, RedisVersionMarkerStore
from .supabase_license_validator import LicenseValidationError, SupabaseLicenseValidator

__all__ = [
    "InMemoryHistory",
    "InMemoryVersionMarkerStore",
    "LicenseValidationError",
    "LocalBroadcastChannel",
    "LocalBroadcastHub",
    "RedisBroadcastChannel",
    "RedisVersionMarkerStore",
    "SupabaseLicenseValidator",
]
