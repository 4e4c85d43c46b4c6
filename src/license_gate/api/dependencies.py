"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Services stored in app.state during lifespan
    - Dependency functions retrieve from request.app.state
    - Clean separation, no global mutable state
"""

import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from license_gate.config import configure_logging, get_redis_client
from license_gate.handlers import AccessHandler
from license_gate.repositories import (
    RedisBroadcastChannel,
    RedisVersionMarkerStore,
    SupabaseLicenseValidator,
)
from license_gate.services import AccessEvaluator, LicenseService, MultiTabCache

logger = logging.getLogger(__name__)


def get_handler(request: Request) -> AccessHandler:
    """Dependency injection for AccessHandler from app.state.

    Args:
        request: FastAPI Request object

    Returns:
        The AccessHandler instance from app.state

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "access_handler", None)
    if handler is None:
        raise RuntimeError("AccessHandler not initialized. Check lifespan setup.")
    return handler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI app.

    Initializes all layers and stores them in app.state:
    1. Repositories (Redis pub/sub, version marker, Supabase validator)
    2. Services (cache, license service, evaluator)
    3. Handler (HTTP endpoints) - stored in app.state.access_handler

    Args:
        app: The FastAPI application instance

    Yields:
        None

    Cleanup:
        Closes the cache, the validator and Redis, then removes them from app.state
    """
    configure_logging()

    redis_client = get_redis_client()
    channel = RedisBroadcastChannel.create(redis_client=redis_client)
    version_store = RedisVersionMarkerStore(redis_client=redis_client)
    cache = MultiTabCache.create(channel=channel, version_store=version_store)
    validator = SupabaseLicenseValidator.create()

    # Startup failures (Redis unreachable) abort the application here.
    await cache.start()

    license_service = LicenseService(validator=validator, cache=cache)
    evaluator = AccessEvaluator(license_service=license_service)
    access_handler = AccessHandler(
        evaluator=evaluator,
        license_service=license_service,
        cache=cache,
        validator=validator,
    )

    app.state.cache = cache
    app.state.license_service = license_service
    app.state.access_handler = access_handler

    logger.info("Access gate initialized")
    logger.info("Broadcast channel: %s", channel.channel_name)
    logger.info("Cache version: %s", cache.version)
    logger.info("License RPC: %s", validator.rpc_url)

    yield

    license_service.close()
    await cache.close()
    await validator.close()
    await redis_client.aclose()

    del app.state.access_handler
    del app.state.license_service
    del app.state.cache
    logger.info("Access gate shut down")


# Type alias for cleaner dependency injection
HandlerDep = Annotated[AccessHandler, Depends(get_handler)]
