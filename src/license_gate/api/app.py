from typing import Any

from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware

from license_gate.api.dependencies import HandlerDep, lifespan
from license_gate.config import settings
from license_gate.dto import (
    AccessCheckRequest,
    AccessDecisionResponse,
    CacheStatsResponse,
    HealthCheckResponse,
    LicenseStateResponse,
    RouteClassificationResponse,
)


def create_app(lifespan=lifespan) -> FastAPI:
    """Build the FastAPI application.

    Args:
        lifespan: Lifespan context manager that fills ``app.state``.
            Tests pass one wired to in-memory repositories.

    Returns:
        The configured application
    """
    app = FastAPI(
        title="License Gate API",
        description="Route access and license checks over a cache shared between tabs",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Root endpoint with API information."""
        return {
            "name": "License Gate API",
            "version": "0.1.0",
            "description": "Route access and license checks over a cache shared between tabs",
            "endpoints": {
                "access": "/access/check",
                "routes": "/routes/classify",
                "license": "/license/{user_id}",
                "cache": "/cache",
                "health": "/health",
                "docs": "/docs",
            },
        }

    @app.get("/health", response_model=HealthCheckResponse)
    async def health(handler: HandlerDep) -> HealthCheckResponse:
        """Health check endpoint."""
        return await handler.health_check()

    @app.post("/access/check", response_model=AccessDecisionResponse)
    async def check_access(
        request: AccessCheckRequest,
        handler: HandlerDep,
    ) -> AccessDecisionResponse:
        """
        Decide whether a session may navigate to a path.

        Args:
            request: Target path and what the caller knows about the session.

        Returns:
            The decision, with the redirect target when denied.
        """
        return await handler.check_access(request)

    @app.get("/routes/classify", response_model=RouteClassificationResponse)
    async def classify_route(
        handler: HandlerDep,
        path: str = Query(..., min_length=1),
    ) -> RouteClassificationResponse:
        """Show which requirements apply to a path."""
        return handler.classify_route(path)

    @app.get("/license/{user_id}", response_model=LicenseStateResponse)
    async def get_license(
        user_id: str,
        handler: HandlerDep,
        force_refresh: bool = False,
    ) -> LicenseStateResponse:
        """Get a user's license state, from the shared cache when possible."""
        return await handler.get_license(user_id, force_refresh=force_refresh)

    @app.post("/license/{user_id}/invalidate", response_model=dict[str, Any])
    async def invalidate_license(user_id: str, handler: HandlerDep) -> dict[str, Any]:
        """Drop a user's cached license state in every instance."""
        return handler.invalidate_license(user_id)

    @app.get("/cache/stats", response_model=CacheStatsResponse)
    async def cache_stats(handler: HandlerDep) -> CacheStatsResponse:
        """Get cache statistics."""
        return handler.get_stats()

    @app.delete("/cache", response_model=dict[str, Any])
    async def clear_cache(handler: HandlerDep) -> dict[str, Any]:
        """Clear all entries from the cache in every instance."""
        return handler.clear_cache()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "license_gate.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
