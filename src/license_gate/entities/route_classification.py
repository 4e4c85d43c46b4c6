"""Route classification domain entity."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RouteClassification:
    """Requirement flags for a single (normalized) path.

    Attributes:
        path: The normalized path that was classified
        is_public: Reachable without a session
        requires_auth: Needs an authenticated user
        requires_license: Needs an active license
        requires_email_confirmation: Needs a confirmed email address
        allowed_roles: Roles allowed on the path; empty means any role
        is_classified: Whether any route table matched the path
    """

    path: str
    is_public: bool = False
    requires_auth: bool = False
    requires_license: bool = False
    requires_email_confirmation: bool = False
    allowed_roles: tuple[str, ...] = field(default_factory=tuple)
    is_classified: bool = False
