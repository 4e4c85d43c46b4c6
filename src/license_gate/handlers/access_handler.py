"""HTTP handlers for access, license and cache operations.

Handlers convert between DTOs (API contracts) and service calls.
They handle HTTP concerns like status codes, validation, and error handling.
"""

import logging

from fastapi import HTTPException, status

from license_gate.dto import (
    AccessCheckRequest,
    AccessDecisionResponse,
    CacheStatsResponse,
    HealthCheckResponse,
    LicenseStateResponse,
    RouteClassificationResponse,
)
from license_gate.entities import SessionContext
from license_gate.protocols import LicenseValidator
from license_gate.route_config import normalize_path
from license_gate.services import AccessEvaluator, LicenseService, MultiTabCache

logger = logging.getLogger(__name__)


class AccessHandler:
    """HTTP handlers for the access gate.

    This handler delegates business logic to the services and handles
    HTTP-specific concerns like:
    - Converting entities to DTOs
    - Setting appropriate status codes
    - Error handling and responses

    Example:
        ```python
        handler = AccessHandler(
            evaluator=evaluator,
            license_service=license_service,
            cache=cache,
            validator=validator,
        )

        @app.post("/access/check", response_model=AccessDecisionResponse)
        async def check_access(request: AccessCheckRequest):
            return await handler.check_access(request)
        ```
    """

    def __init__(
        self,
        evaluator: AccessEvaluator,
        license_service: LicenseService,
        cache: MultiTabCache,
        validator: LicenseValidator | None = None,
    ) -> None:
        """Initialize the handler.

        Args:
            evaluator: Access evaluator (required).
            license_service: License resolution service (required).
            cache: The shared cache (required).
            validator: License validator, only used for health checks.
        """
        self._evaluator = evaluator
        self._licenses = license_service
        self._cache = cache
        self._validator = validator

    async def check_access(self, request: AccessCheckRequest) -> AccessDecisionResponse:
        """Handle POST /access/check requests.

        The evaluator never raises, so denials are regular 200 responses.
        """
        session = SessionContext(
            user_id=request.user_id,
            email_confirmed=request.email_confirmed,
            role=request.role,
        )
        decision = await self._evaluator.evaluate(
            request.path,
            session,
            force_refresh=request.force_refresh,
        )

        return AccessDecisionResponse(
            path=normalize_path(request.path),
            can_access=decision.can_access,
            redirect_to=decision.redirect_to,
            reason=decision.reason.value if decision.reason else None,
            license_status=decision.license_status.value if decision.license_status else None,
        )

    def classify_route(self, path: str) -> RouteClassificationResponse:
        """Handle GET /routes/classify requests."""
        route = self._evaluator.route_table.classify(path)
        return RouteClassificationResponse(
            path=route.path,
            is_public=route.is_public,
            requires_auth=route.requires_auth,
            requires_license=route.requires_license,
            requires_email_confirmation=route.requires_email_confirmation,
            allowed_roles=list(route.allowed_roles),
            is_classified=route.is_classified,
        )

    async def get_license(self, user_id: str, force_refresh: bool = False) -> LicenseStateResponse:
        """Handle GET /license/{user_id} requests.

        Raises:
            HTTPException: If license resolution fails unexpectedly
        """
        try:
            state = await self._licenses.resolve(user_id, force_refresh=force_refresh)
        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to resolve license: {e}",
            ) from e

        return LicenseStateResponse(
            user_id=user_id,
            status=state.kind.value,
            expires_at=state.expires_at,
            license_code=state.license_code,
            detail=state.detail,
        )

    def invalidate_license(self, user_id: str) -> dict[str, object]:
        """Handle POST /license/{user_id}/invalidate requests."""
        removed = self._licenses.invalidate(user_id)
        return {
            "user_id": user_id,
            "removed": removed,
            "message": "License cache invalidated",
        }

    def get_stats(self) -> CacheStatsResponse:
        """Handle GET /cache/stats requests."""
        return CacheStatsResponse(**self._cache.get_stats())

    def clear_cache(self) -> dict[str, object]:
        """Handle DELETE /cache requests.

        Raises:
            HTTPException: If the cache cannot be cleared
        """
        try:
            removed = self._cache.clear()
        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to clear cache: {e}",
            ) from e

        return {"message": "Cache cleared successfully", "removed": removed}

    async def health_check(self) -> HealthCheckResponse:
        """Handle GET /health requests."""
        broadcast_healthy = await self._cache.channel.is_healthy()

        validator_healthy = None
        if self._validator is not None:
            validator_healthy = await self._validator.is_available()

        healthy = broadcast_healthy and validator_healthy is not False
        if not healthy:
            logger.warning(
                "Health check failed: broadcast=%s validator=%s",
                broadcast_healthy,
                validator_healthy,
            )

        return HealthCheckResponse(
            status="healthy" if healthy else "unhealthy",
            broadcast_healthy=broadcast_healthy,
            validator_healthy=validator_healthy,
        )
