"""Navigation interception.

Every navigation goes through the AccessEvaluator before it reaches the
history. Allowed destinations are pushed (or replace the current entry
on request); denied ones replace the current entry with the redirect
target, so the back button never returns to a page the user may not see.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from license_gate.entities import AccessDecision, SessionContext
from license_gate.protocols import NavigationHistory

from .access_evaluator import AccessEvaluator
from .license_service import LICENSE_KEY_PREFIX
from .multi_tab_cache import MultiTabCache

logger = logging.getLogger(__name__)

AUTH_STATE_KEY = "auth-state"

SessionProvider = Callable[[], SessionContext]


@dataclass(frozen=True)
class NavigationResult:
    """Outcome of one navigation attempt.

    Attributes:
        requested: The path that was asked for
        decision: The access decision for it
        committed: The path the history now shows because of this attempt,
            None when the history was left alone
        redirected: Whether the request was replaced by a redirect
        superseded: Whether a newer attempt finished first and this
            decision was discarded
    """

    requested: str
    decision: AccessDecision
    committed: str | None = None
    redirected: bool = False
    superseded: bool = False


class NavigationInterceptor:
    """Guards a NavigationHistory with access decisions.

    Each ``navigate``, pop-state, ``back`` or ``forward`` increments a
    generation counter. A decision that resolves after a newer attempt
    has started is discarded and does not touch the history.
    Revalidations do not increment it, so a user navigation always wins
    over a background revalidation.

    Example:
        ```python
        interceptor = NavigationInterceptor(evaluator, InMemoryHistory(), get_session, cache)
        interceptor.attach()
        result = await interceptor.navigate("/dashboard")
        if result.redirected:
            print("sent to", result.committed)
        ```
    """

    def __init__(
        self,
        evaluator: AccessEvaluator,
        history: NavigationHistory,
        session_provider: SessionProvider,
        cache: MultiTabCache | None = None,
    ) -> None:
        """Initialize the interceptor.

        Args:
            evaluator: Access evaluator
            history: History to guard
            session_provider: Returns the current session on each call
            cache: Shared cache to watch for license and auth changes
        """
        self._evaluator = evaluator
        self._history = history
        self._session_provider = session_provider
        self._cache = cache
        self._generation = 0
        self._remove_listener: Callable[[], None] | None = None
        self._revalidation: asyncio.Task | None = None
        self._stale = False

    @property
    def history(self) -> NavigationHistory:
        return self._history

    @property
    def generation(self) -> int:
        return self._generation

    async def navigate(self, to: str, replace: bool = False) -> NavigationResult:
        """Navigate to a path, or to its redirect when denied."""
        generation = self._begin()
        decision = await self._evaluator.evaluate(to, self._session_provider())

        if generation != self._generation:
            return self._superseded(to, decision)

        if decision.can_access:
            if replace:
                self._history.replace(to)
            else:
                self._history.push(to)
            return NavigationResult(requested=to, decision=decision, committed=to)

        return self._redirect(to, decision)

    async def handle_pop_state(self, path: str) -> NavigationResult:
        """Check a destination the history already moved to.

        Back and forward change the history before anyone can intercept,
        so an allowed destination is left as is and a denied one is
        replaced by its redirect.
        """
        generation = self._begin()
        decision = await self._evaluator.evaluate(path, self._session_provider())

        if generation != self._generation:
            return self._superseded(path, decision)

        if decision.can_access:
            return NavigationResult(requested=path, decision=decision, committed=path)

        return self._redirect(path, decision)

    async def back(self) -> NavigationResult:
        return await self.handle_pop_state(self._history.back())

    async def forward(self) -> NavigationResult:
        return await self.handle_pop_state(self._history.forward())

    async def revalidate_current(self, force_refresh: bool = True) -> NavigationResult:
        """Re-check the current path and redirect away if it is no longer allowed."""
        generation = self._generation
        path = self._history.current_path
        decision = await self._evaluator.evaluate(
            path, self._session_provider(), force_refresh=force_refresh
        )

        if generation != self._generation or self._history.current_path != path:
            return self._superseded(path, decision)

        if decision.can_access:
            return NavigationResult(requested=path, decision=decision)

        return self._redirect(path, decision)

    def attach(self) -> None:
        """Start revalidating the current path on watched cache changes."""
        if self._cache is None or self._remove_listener is not None:
            return
        self._remove_listener = self._cache.add_listener(self._on_cache_change)

    def detach(self) -> None:
        """Stop watching the cache and cancel a scheduled revalidation."""
        if self._remove_listener is not None:
            self._remove_listener()
            self._remove_listener = None

        if self._revalidation is not None and not self._revalidation.done():
            self._revalidation.cancel()
        self._revalidation = None
        self._stale = False

    async def drain(self) -> None:
        """Wait for scheduled revalidations to finish."""
        while self._revalidation is not None and not self._revalidation.done():
            await self._revalidation

    def _begin(self) -> int:
        self._generation += 1
        return self._generation

    def _redirect(self, path: str, decision: AccessDecision) -> NavigationResult:
        target = decision.redirect_to or self._evaluator.route_table.redirects.unauthorized
        self._history.replace(target)
        logger.info(
            "Navigation to %s redirected to %s (%s)",
            path,
            target,
            decision.reason.value if decision.reason else "denied",
        )
        return NavigationResult(
            requested=path,
            decision=decision,
            committed=target,
            redirected=True,
        )

    def _superseded(self, path: str, decision: AccessDecision) -> NavigationResult:
        logger.debug("Discarding superseded decision for %s", path)
        return NavigationResult(requested=path, decision=decision, superseded=True)

    def _watches(self, key: str) -> bool:
        if key == AUTH_STATE_KEY:
            return True
        user_id = self._session_provider().user_id
        return user_id is not None and key == f"{LICENSE_KEY_PREFIX}{user_id}"

    def _on_cache_change(self, key: str, data: object) -> None:
        if not self._watches(key):
            return
        if self._revalidation is not None and not self._revalidation.done():
            # The running check may have read the session before this change.
            self._stale = True
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, skipping revalidation for %s", key)
            return

        self._stale = False
        self._revalidation = loop.create_task(self._revalidate_until_settled())

    async def _revalidate_until_settled(self) -> None:
        # A cache change already carries fresh data, so read through the cache.
        await self.revalidate_current(force_refresh=False)
        while self._stale:
            self._stale = False
            logger.debug("Watched state changed during revalidation, checking again")
            await self.revalidate_current(force_refresh=False)
