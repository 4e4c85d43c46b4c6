"""License state domain entity.

The raw validator response is converted into a ``LicenseState`` as soon as
it crosses the service boundary; nothing else inspects the boolean flags.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from license_gate.dto import LicenseValidationResult


class LicenseKind(str, Enum):
    """Variants of a user's license state."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    EXPIRED = "expired"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True)
class LicenseState:
    """Tagged variant over the license outcomes.

    Attributes:
        kind: Which variant this is
        expires_at: License expiry, when the validator reported one
        license_code: License code, when the validator reported one
        detail: Validator message, or the failure description for ``error``
    """

    kind: LicenseKind
    expires_at: datetime | None = None
    license_code: str | None = None
    detail: str | None = None

    @classmethod
    def from_validation(cls, result: "LicenseValidationResult") -> "LicenseState":
        """Derive the state from a validator result.

        Precedence: no license -> not_found; renewal required -> expired;
        not valid or activation required -> inactive; otherwise active.
        """
        if not result.has_license:
            kind = LicenseKind.NOT_FOUND
        elif result.requires_renewal:
            kind = LicenseKind.EXPIRED
        elif not result.is_valid or result.requires_activation:
            kind = LicenseKind.INACTIVE
        else:
            kind = LicenseKind.ACTIVE

        return cls(
            kind=kind,
            expires_at=result.expires_at,
            license_code=result.license_code or None,
            detail=result.message or None,
        )

    @classmethod
    def error(cls, detail: str) -> "LicenseState":
        """Build the ``error`` variant for a failed validator call."""
        return cls(kind=LicenseKind.ERROR, detail=detail)

    @property
    def is_active(self) -> bool:
        return self.kind is LicenseKind.ACTIVE

    def check_expiry(self, now: datetime | None = None) -> "LicenseState":
        """Return ``expired`` if an active license has passed its expiry.

        Cached states can outlive the license itself; this catches the
        transition without calling the validator again.
        """
        if self.kind is not LicenseKind.ACTIVE or self.expires_at is None:
            return self

        now = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)

        if now > expires_at:
            return LicenseState(
                kind=LicenseKind.EXPIRED,
                expires_at=self.expires_at,
                license_code=self.license_code,
                detail="License expired since it was cached",
            )
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serialize for storage in the shared cache."""
        return {
            "kind": self.kind.value,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "license_code": self.license_code,
            "detail": self.detail,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LicenseState":
        """Rebuild a state stored with ``to_dict``."""
        expires_at = data.get("expires_at")
        return cls(
            kind=LicenseKind(data["kind"]),
            expires_at=datetime.fromisoformat(expires_at) if expires_at else None,
            license_code=data.get("license_code"),
            detail=data.get("detail"),
        )
