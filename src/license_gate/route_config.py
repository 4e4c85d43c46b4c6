"""Centralized route tables and classification.

Patterns are either exact paths (``/dashboard``) or prefix wildcards
(``/service-orders/*``). A wildcard matches its base path and anything
below it.
"""

from dataclasses import dataclass, field
from enum import Enum

from license_gate.config import settings
from license_gate.entities import RouteClassification


class UnclassifiedPolicy(str, Enum):
    """What to do with an authenticated user on a path no table mentions."""

    ALLOW = "allow"
    DENY = "deny"


@dataclass(frozen=True)
class Redirects:
    """Redirect targets, one per denial outcome."""

    unauthenticated: str = "/auth"
    email_not_confirmed: str = "/verify"
    renew_license: str = "/verify-licenca"
    no_license: str = "/licenca"
    unauthorized: str = "/unauthorized"
    default: str = "/dashboard"


@dataclass(frozen=True)
class RouteTable:
    """Static route configuration. Immutable once built."""

    public_routes: tuple[str, ...] = ()
    auth_required_routes: tuple[str, ...] = ()
    license_required_routes: tuple[str, ...] = ()
    email_confirmation_required_routes: tuple[str, ...] = ()
    role_required_routes: tuple[tuple[str, tuple[str, ...]], ...] = ()
    redirects: Redirects = field(default_factory=Redirects)
    unclassified_policy: UnclassifiedPolicy = UnclassifiedPolicy.ALLOW

    def is_public(self, path: str) -> bool:
        return _matches_any(normalize_path(path), self.public_routes)

    def requires_auth(self, path: str) -> bool:
        path = normalize_path(path)
        if _matches_any(path, self.public_routes):
            return False
        return _matches_any(path, self.auth_required_routes)

    def requires_license(self, path: str) -> bool:
        path = normalize_path(path)
        if _matches_any(path, self.public_routes):
            return False
        return _matches_any(path, self.license_required_routes)

    def requires_email_confirmation(self, path: str) -> bool:
        path = normalize_path(path)
        if _matches_any(path, self.public_routes):
            return False
        return _matches_any(path, self.email_confirmation_required_routes)

    def allowed_roles(self, path: str) -> tuple[str, ...]:
        """Roles allowed on ``path``; empty when the route has no role rule.

        The longest matching pattern wins.
        """
        path = normalize_path(path)
        if _matches_any(path, self.public_routes):
            return ()

        best: tuple[str, ...] = ()
        best_length = -1
        for pattern, roles in self.role_required_routes:
            if match_route(path, pattern) and len(pattern) > best_length:
                best, best_length = roles, len(pattern)
        return best

    def classify(self, path: str) -> RouteClassification:
        """Classify a path along all requirement axes."""
        path = normalize_path(path)
        is_public = self.is_public(path)
        requires_auth = self.requires_auth(path)
        requires_license = self.requires_license(path)
        requires_email = self.requires_email_confirmation(path)
        roles = self.allowed_roles(path)

        return RouteClassification(
            path=path,
            is_public=is_public,
            requires_auth=requires_auth,
            requires_license=requires_license,
            requires_email_confirmation=requires_email,
            allowed_roles=roles,
            is_classified=(
                is_public or requires_auth or requires_license or requires_email or bool(roles)
            ),
        )


def normalize_path(path: str) -> str:
    """Strip query string, fragment and trailing slash from a path."""
    path = path.split("?", 1)[0].split("#", 1)[0].strip()
    if not path:
        return "/"
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = path.rstrip("/") or "/"
    return path


def match_route(path: str, pattern: str) -> bool:
    """Check a normalized path against an exact or ``/*`` wildcard pattern."""
    if pattern.endswith("/*"):
        base = pattern[:-2]
        return path == base or path.startswith(base + "/")
    return path == pattern


def _matches_any(path: str, patterns: tuple[str, ...]) -> bool:
    return any(match_route(path, pattern) for pattern in patterns)


_PROTECTED_ROUTES = (
    "/dashboard",
    "/painel",
    "/service-orders",
    "/service-orders/*",
    "/msg",
    "/orcamento",
    "/orcamento/*",
    "/admin",
    "/admin/*",
)

DEFAULT_ROUTE_TABLE = RouteTable(
    public_routes=(
        "/",
        "/auth",
        "/signup",
        "/sign",
        "/reset-password",
        "/verify",
        "/verify-licenca",
        "/plans",
        "/purchase-success",
        "/privacy",
        "/terms",
        "/cookies",
        "/cookie",
        "/unauthorized",
        "/share/service-order/*",
        "/central-de-ajuda",
    ),
    auth_required_routes=_PROTECTED_ROUTES + ("/reset-email", "/licenca"),
    license_required_routes=_PROTECTED_ROUTES,
    email_confirmation_required_routes=_PROTECTED_ROUTES + ("/licenca",),
    role_required_routes=(
        ("/admin", ("admin", "super_admin")),
        ("/admin/*", ("admin", "super_admin")),
    ),
    unclassified_policy=UnclassifiedPolicy(settings.route_unclassified_policy),
)
