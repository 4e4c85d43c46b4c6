import logging
import os
from dataclasses import dataclass
from functools import lru_cache

import redis.asyncio as redis
from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables.

    Durations are in milliseconds unless the name says otherwise.
    """

    # Redis
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    redis_password: str | None = os.getenv("REDIS_PASSWORD")

    # Cache
    cache_version: str = os.getenv("CACHE_VERSION", "2.0.0")
    cache_default_ttl_ms: int = int(os.getenv("CACHE_DEFAULT_TTL_MS", "300000"))  # 5 minutes
    cache_cleanup_interval_ms: int = int(os.getenv("CACHE_CLEANUP_INTERVAL_MS", "600000"))
    cache_channel_name: str = os.getenv("CACHE_CHANNEL_NAME", "license-gate-cache")
    cache_version_key: str = os.getenv("CACHE_VERSION_KEY", "license-gate:cache-version")
    broadcast_max_reconnect_attempts: int = int(
        os.getenv("BROADCAST_MAX_RECONNECT_ATTEMPTS", "3")
    )
    broadcast_reconnect_delay: float = float(
        os.getenv("BROADCAST_RECONNECT_DELAY", "1.0")
    )  # seconds

    # License validation (hosted database RPC)
    supabase_url: str = os.getenv("SUPABASE_URL", "http://localhost:54321")
    supabase_key: str | None = os.getenv("SUPABASE_KEY")
    license_rpc_function: str = os.getenv("LICENSE_RPC_FUNCTION", "get_user_license_status")
    license_rpc_timeout: float = float(os.getenv("LICENSE_RPC_TIMEOUT", "3.0"))  # seconds
    license_cache_ttl_ms: int = int(os.getenv("LICENSE_CACHE_TTL_MS", "300000"))

    # Routing
    route_unclassified_policy: str = os.getenv("ROUTE_UNCLASSIFIED_POLICY", "allow")

    # API
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_reload: bool = os.getenv("API_RELOAD", "true").lower() == "true"

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.cache_default_ttl_ms <= 0:
            raise ValueError("CACHE_DEFAULT_TTL_MS must be positive")

        if self.cache_cleanup_interval_ms <= 0:
            raise ValueError("CACHE_CLEANUP_INTERVAL_MS must be positive")

        if self.broadcast_max_reconnect_attempts < 0:
            raise ValueError("BROADCAST_MAX_RECONNECT_ATTEMPTS must be non-negative")

        if self.license_cache_ttl_ms <= 0:
            raise ValueError("LICENSE_CACHE_TTL_MS must be positive")

        if self.route_unclassified_policy not in ("allow", "deny"):
            raise ValueError(
                f"ROUTE_UNCLASSIFIED_POLICY must be 'allow' or 'deny', "
                f"got {self.route_unclassified_policy!r}"
            )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


def get_redis_client() -> redis.Redis:
    """Create an asyncio Redis client instance."""
    return redis.from_url(
        settings.redis_url,
        password=settings.redis_password,
        decode_responses=False,
    )


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for the service."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
