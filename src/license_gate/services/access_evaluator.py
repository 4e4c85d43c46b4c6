"""Route access evaluation."""

import logging

from license_gate.entities import (
    AccessDecision,
    DenialReason,
    LicenseKind,
    SessionContext,
)
from license_gate.route_config import DEFAULT_ROUTE_TABLE, RouteTable, UnclassifiedPolicy

from .license_service import LicenseService

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("license_gate.audit")


class AccessEvaluator:
    """Decides whether a session may open a path.

    Checks run in a fixed order and the first failing one decides the
    redirect:

    1. Public paths are always allowed.
    2. Signed-out sessions go to the sign-in page.
    3. Unconfirmed emails go to the verification page.
    4. On licensed paths, inactive or expired licenses go to the renewal
       page; missing licenses and validator errors go to the license page.
    5. Role-restricted paths reject other roles.
    6. Paths no table mentions follow the unclassified-route policy.

    ``evaluate`` never raises. Unexpected failures deny access.
    """

    def __init__(
        self,
        license_service: LicenseService,
        route_table: RouteTable | None = None,
    ) -> None:
        self._licenses = license_service
        self._routes = route_table or DEFAULT_ROUTE_TABLE

    @property
    def route_table(self) -> RouteTable:
        return self._routes

    async def evaluate(
        self,
        path: str,
        session: SessionContext,
        force_refresh: bool = False,
    ) -> AccessDecision:
        """Evaluate access to a path.

        Args:
            path: Requested path; query strings and trailing slashes are ignored
            session: The caller's session
            force_refresh: Bypass the cached license state

        Returns:
            The access decision
        """
        try:
            decision = await self._evaluate(path, session, force_refresh)
        except Exception:
            logger.exception("Access evaluation failed for %s", path)
            decision = AccessDecision.deny(
                self._routes.redirects.no_license,
                DenialReason.LICENSE_ERROR,
                LicenseKind.ERROR,
            )

        if not decision.can_access:
            audit_logger.warning(
                "Access denied: path=%s user=%s reason=%s redirect=%s",
                path,
                session.user_id,
                decision.reason.value if decision.reason else None,
                decision.redirect_to,
            )
        return decision

    async def _evaluate(
        self,
        path: str,
        session: SessionContext,
        force_refresh: bool,
    ) -> AccessDecision:
        redirects = self._routes.redirects
        route = self._routes.classify(path)

        if route.is_public:
            return AccessDecision.allow()

        if not session.is_authenticated:
            return AccessDecision.deny(redirects.unauthenticated, DenialReason.UNAUTHENTICATED)

        if route.requires_email_confirmation and not session.email_confirmed:
            return AccessDecision.deny(
                redirects.email_not_confirmed, DenialReason.EMAIL_NOT_CONFIRMED
            )

        license_status = None
        if route.requires_license:
            state = await self._licenses.resolve(session.user_id, force_refresh=force_refresh)
            license_status = state.kind

            if state.kind is LicenseKind.INACTIVE:
                return AccessDecision.deny(
                    redirects.renew_license, DenialReason.LICENSE_INACTIVE, state.kind
                )
            if state.kind is LicenseKind.EXPIRED:
                return AccessDecision.deny(
                    redirects.renew_license, DenialReason.LICENSE_EXPIRED, state.kind
                )
            if state.kind is LicenseKind.NOT_FOUND:
                return AccessDecision.deny(
                    redirects.no_license, DenialReason.LICENSE_NOT_FOUND, state.kind
                )
            if state.kind is LicenseKind.ERROR:
                return AccessDecision.deny(
                    redirects.no_license, DenialReason.LICENSE_ERROR, state.kind
                )

        if route.allowed_roles and session.role not in route.allowed_roles:
            return AccessDecision.deny(
                redirects.unauthorized, DenialReason.ROLE_NOT_ALLOWED, license_status
            )

        if not route.is_classified and self._routes.unclassified_policy is UnclassifiedPolicy.DENY:
            return AccessDecision.deny(redirects.unauthorized, DenialReason.UNCLASSIFIED_ROUTE)

        return AccessDecision.allow(license_status)
