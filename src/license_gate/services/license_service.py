"""License state resolution with shared caching.

Resolved states are cached in the MultiTabCache under
``license-state:{user_id}`` so every tab sees the same answer. Validator
failures resolve to the ``error`` state and are never cached.
"""

import asyncio
import logging

from license_gate.config import settings
from license_gate.entities import LicenseKind, LicenseState
from license_gate.protocols import LicenseValidator

from .multi_tab_cache import MultiTabCache

logger = logging.getLogger(__name__)

LICENSE_KEY_PREFIX = "license-state:"


class LicenseService:
    """Resolves a user's license state through the shared cache.

    Each user has a generation counter. Invalidating the user's cache key
    (here or in another tab), clearing the cache or forcing a refresh
    bumps it, and a validator result that arrives for an older generation
    is returned to its caller but not written to the cache. This keeps a
    slow response from overwriting a newer invalidation.

    Concurrent resolves for the same user and generation share one
    validator call.
    """

    def __init__(
        self,
        validator: LicenseValidator,
        cache: MultiTabCache,
        ttl_ms: float | None = None,
    ) -> None:
        self._validator = validator
        self._cache = cache
        self._ttl = ttl_ms or settings.license_cache_ttl_ms
        self._generations: dict[str, int] = {}
        self._inflight: dict[str, tuple[int, asyncio.Task]] = {}
        self._remove_listener = cache.add_listener(self._on_cache_change)
        self._remove_clear_listener = cache.add_clear_listener(self._on_cache_clear)

    @staticmethod
    def cache_key(user_id: str) -> str:
        return f"{LICENSE_KEY_PREFIX}{user_id}"

    def cached_state(self, user_id: str) -> LicenseState | None:
        """Return the cached state for a user without calling the validator."""
        data = self._cache.get(self.cache_key(user_id))
        if data is None:
            return None

        try:
            return LicenseState.from_dict(data).check_expiry()
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Ignoring unreadable cached license state for %s: %s", user_id, e)
            return None

    async def resolve(self, user_id: str, force_refresh: bool = False) -> LicenseState:
        """Resolve the license state for a user.

        Args:
            user_id: The user identifier
            force_refresh: Skip the cache and supersede any in-flight call

        Returns:
            The license state. Never raises for validator failures; those
            come back as ``LicenseKind.ERROR``.
        """
        if force_refresh:
            generation = self._bump(user_id)
        else:
            cached = self.cached_state(user_id)
            if cached is not None:
                return cached
            generation = self._generations.get(user_id, 0)

        inflight = self._inflight.get(user_id)
        if inflight is not None and inflight[0] == generation:
            return await asyncio.shield(inflight[1])

        task = asyncio.ensure_future(self._fetch(user_id, generation))
        self._inflight[user_id] = (generation, task)
        return await asyncio.shield(task)

    def invalidate(self, user_id: str) -> bool:
        """Drop the cached state for a user in every tab.

        The cache listener bumps the user's generation, so an in-flight
        validator call started before this will not repopulate the cache.

        Returns:
            True if a local entry was removed
        """
        return self._cache.invalidate(self.cache_key(user_id))

    def generation(self, user_id: str) -> int:
        return self._generations.get(user_id, 0)

    def close(self) -> None:
        """Stop listening to cache changes."""
        self._remove_listener()
        self._remove_clear_listener()

    async def _fetch(self, user_id: str, generation: int) -> LicenseState:
        try:
            result = await self._validator.validate(user_id)
            state = LicenseState.from_validation(result).check_expiry()
        except Exception as e:
            logger.warning("License validation failed for %s: %s", user_id, e)
            state = LicenseState.error(str(e) or type(e).__name__)
        finally:
            inflight = self._inflight.get(user_id)
            if inflight is not None and inflight[1] is asyncio.current_task():
                del self._inflight[user_id]

        if state.kind is LicenseKind.ERROR:
            return state

        if self._generations.get(user_id, 0) != generation:
            logger.info("Discarding superseded license result for %s", user_id)
            return state

        self._cache.set(self.cache_key(user_id), state.to_dict(), self._ttl)
        return state

    def _bump(self, user_id: str) -> int:
        generation = self._generations.get(user_id, 0) + 1
        self._generations[user_id] = generation
        return generation

    def _on_cache_change(self, key: str, data: object) -> None:
        if data is None and key.startswith(LICENSE_KEY_PREFIX):
            self._bump(key[len(LICENSE_KEY_PREFIX) :])

    def _on_cache_clear(self) -> None:
        # Users with a call in flight may have had no entry for the clear to remove.
        for user_id in list(self._inflight):
            self._bump(user_id)
