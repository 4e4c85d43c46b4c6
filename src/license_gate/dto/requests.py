"""Request DTOs for API endpoints."""

from pydantic import BaseModel, Field


class AccessCheckRequest(BaseModel):
    """Request DTO for checking whether a navigation may proceed.

    The authentication provider is external; the caller passes what it
    knows about the session.
    """

    path: str = Field(..., description="Target route path", min_length=1)
    user_id: str | None = Field(None, description="Authenticated user id (null when signed out)")
    email_confirmed: bool = Field(False, description="Whether the user's email is confirmed")
    role: str | None = Field(None, description="The user's role, if known")
    force_refresh: bool = Field(
        False,
        description="Bypass the cached license state and ask the validator",
    )
