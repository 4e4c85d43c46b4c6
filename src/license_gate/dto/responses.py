"""Response DTOs for API endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field


class AccessDecisionResponse(BaseModel):
    """Response DTO for an access check."""

    path: str = Field(..., description="The path that was evaluated")
    can_access: bool = Field(..., description="Whether navigation may proceed")
    redirect_to: str | None = Field(None, description="Where to go instead, when denied")
    reason: str | None = Field(None, description="Machine-readable denial reason")
    license_status: str | None = Field(None, description="License state used for the decision")


class RouteClassificationResponse(BaseModel):
    """Response DTO for route classification."""

    path: str = Field(..., description="The normalized path")
    is_public: bool
    requires_auth: bool
    requires_license: bool
    requires_email_confirmation: bool
    allowed_roles: list[str] = Field(default_factory=list)
    is_classified: bool = Field(..., description="Whether any route table matched")


class LicenseStateResponse(BaseModel):
    """Response DTO for a user's license state."""

    user_id: str
    status: str = Field(..., description="active, inactive, expired, not_found or error")
    expires_at: datetime | None = None
    license_code: str | None = None
    detail: str | None = None


class CacheStatsResponse(BaseModel):
    """Response DTO for cache statistics."""

    total_entries: int = Field(..., ge=0)
    valid_entries: int = Field(..., ge=0)
    expired_entries: int = Field(..., ge=0)
    version: str
    listeners: int = Field(..., ge=0)
    instance_id: str


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Health status: 'healthy' or 'unhealthy'")
    broadcast_healthy: bool = Field(..., description="Whether the broadcast channel is up")
    validator_healthy: bool | None = Field(
        None,
        description="Whether the license validator is reachable",
    )
