"""Access decision domain entities."""

from dataclasses import dataclass
from enum import Enum

from .license_state import LicenseKind


class DenialReason(str, Enum):
    """Why a navigation was denied."""

    UNAUTHENTICATED = "unauthenticated"
    EMAIL_NOT_CONFIRMED = "email_not_confirmed"
    LICENSE_INACTIVE = "license_inactive"
    LICENSE_EXPIRED = "license_expired"
    LICENSE_NOT_FOUND = "license_not_found"
    LICENSE_ERROR = "license_error"
    ROLE_NOT_ALLOWED = "role_not_allowed"
    UNCLASSIFIED_ROUTE = "unclassified_route"


@dataclass(frozen=True)
class SessionContext:
    """What the caller knows about the current session.

    Attributes:
        user_id: Authenticated user identifier, None when signed out
        email_confirmed: Whether the user's email address is confirmed
        role: The user's role, if known
    """

    user_id: str | None = None
    email_confirmed: bool = False
    role: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of a route-access evaluation. Never persisted."""

    can_access: bool
    redirect_to: str | None = None
    reason: DenialReason | None = None
    license_status: LicenseKind | None = None

    @classmethod
    def allow(cls, license_status: LicenseKind | None = None) -> "AccessDecision":
        return cls(can_access=True, license_status=license_status)

    @classmethod
    def deny(
        cls,
        redirect_to: str,
        reason: DenialReason,
        license_status: LicenseKind | None = None,
    ) -> "AccessDecision":
        return cls(
            can_access=False,
            redirect_to=redirect_to,
            reason=reason,
            license_status=license_status,
        )
