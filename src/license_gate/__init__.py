"""License Gate - route access control over a cache shared between tabs.

This package provides a layered architecture for license-gated navigation:

Layers:
    - protocols: Interface contracts (BroadcastChannel, LicenseValidator, ...)
    - repositories: Redis pub/sub, in-process hub, Supabase RPC, history
    - services: Multi-tab cache, license resolution, access, navigation
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (wire contracts)
    - entities: Domain models (internal)
    - route_config: Route tables and path classification

Usage:
    ```python
    from license_gate.repositories import InMemoryVersionMarkerStore, LocalBroadcastHub
    from license_gate.services import MultiTabCache

    hub = LocalBroadcastHub()
    async with MultiTabCache(hub.channel(), InMemoryVersionMarkerStore()) as cache:
        cache.set("auth-state", {"user_id": "42"})
    ```

For HTTP API:
    ```python
    from license_gate.api.app import app
    ```
"""

from license_gate.config import get_redis_client, settings
from license_gate.dto import AccessCheckRequest, CacheMessage, LicenseValidationResult
from license_gate.entities import (
    AccessDecision,
    CacheEntryEntity,
    DenialReason,
    LicenseKind,
    LicenseState,
    RouteClassification,
    SessionContext,
)
from license_gate.handlers import AccessHandler
from license_gate.protocols import (
    BroadcastChannel,
    LicenseValidator,
    NavigationHistory,
    VersionMarkerStore,
)
from license_gate.repositories import (
    InMemoryHistory,
    InMemoryVersionMarkerStore,
    LocalBroadcastHub,
    RedisBroadcastChannel,
    RedisVersionMarkerStore,
    SupabaseLicenseValidator,
)
from license_gate.route_config import DEFAULT_ROUTE_TABLE, RouteTable, normalize_path
from license_gate.services import (
    AccessEvaluator,
    LicenseService,
    MultiTabCache,
    NavigationInterceptor,
)

__all__ = [
    # Configuration
    "settings",
    "get_redis_client",
    "DEFAULT_ROUTE_TABLE",
    "RouteTable",
    "normalize_path",
    # Protocols (interfaces)
    "BroadcastChannel",
    "LicenseValidator",
    "NavigationHistory",
    "VersionMarkerStore",
    # Services (business logic)
    "MultiTabCache",
    "LicenseService",
    "AccessEvaluator",
    "NavigationInterceptor",
    # Handlers (HTTP)
    "AccessHandler",
    # Repositories
    "InMemoryHistory",
    "InMemoryVersionMarkerStore",
    "LocalBroadcastHub",
    "RedisBroadcastChannel",
    "RedisVersionMarkerStore",
    "SupabaseLicenseValidator",
    # Entities (domain models)
    "AccessDecision",
    "CacheEntryEntity",
    "DenialReason",
    "LicenseKind",
    "LicenseState",
    "RouteClassification",
    "SessionContext",
    # DTOs (wire contracts)
    "AccessCheckRequest",
    "CacheMessage",
    "LicenseValidationResult",
]
