"""Multi-tab cache service.

A local key-value cache whose changes are broadcast to every other cache
instance ("tab") on the same channel, so all of them answer access checks
from the same data without each polling the license validator.

Consistency is best-effort: delivery is fire-and-forget and may be lost or
reordered. Each key carries a stamp ``(seq, origin)`` where ``seq`` is a
hybrid logical clock: the writer's wall clock in milliseconds, pushed past
the last stamp it has seen for the key. A received change is applied only
if its stamp is newer than the last one seen for that key and than the
last clear, so every instance converges on the same value whatever the
arrival order. A clear removes only entries its stamp outranks.
"""

import asyncio
import logging
import time
import uuid
from collections.abc import Callable
from typing import Any

from license_gate.config import settings
from license_gate.dto import CacheMessage, CachePayload
from license_gate.entities import CacheEntryEntity
from license_gate.protocols import BroadcastChannel, VersionMarkerStore

logger = logging.getLogger(__name__)

CacheListener = Callable[[str, Any], None]

_MISSING = object()


def _now_ms() -> float:
    return time.time() * 1000


class MultiTabCache:
    """Shared cache with cross-instance synchronization.

    Lifecycle: construct, ``await start()`` (opens the channel, checks the
    version marker, starts the expiry sweep), ``await close()`` on
    shutdown. Also usable as an async context manager.

    Example:
        ```python
        hub = LocalBroadcastHub()
        markers = InMemoryVersionMarkerStore()

        async with MultiTabCache(hub.channel(), markers) as tab_a, \\
                   MultiTabCache(hub.channel(), markers) as tab_b:
            tab_a.set("license-state:42", {"kind": "active"})
            assert tab_b.get("license-state:42") == {"kind": "active"}
        ```
    """

    def __init__(
        self,
        channel: BroadcastChannel,
        version_store: VersionMarkerStore,
        version: str | None = None,
        default_ttl_ms: float | None = None,
        cleanup_interval_ms: float | None = None,
        instance_id: str | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        """Initialize the cache.

        Args:
            channel: Broadcast transport shared with the other instances (required).
            version_store: Shared version marker storage (required).
            version: Cache format version. Defaults to settings.
            default_ttl_ms: TTL used when ``set`` gets none. Defaults to settings.
            cleanup_interval_ms: Expiry sweep period. Defaults to settings.
            instance_id: Identifier of this instance. Random by default.
            clock: Returns the current time in epoch milliseconds.
        """
        self._channel = channel
        self._version_store = version_store
        self._version = version or settings.cache_version
        self._default_ttl = default_ttl_ms or settings.cache_default_ttl_ms
        self._cleanup_interval = cleanup_interval_ms or settings.cache_cleanup_interval_ms
        self._instance_id = instance_id or uuid.uuid4().hex
        self._clock = clock or _now_ms

        self._entries: dict[str, CacheEntryEntity] = {}
        self._stamps: dict[str, tuple[int, str]] = {}
        self._clear_stamp: tuple[int, str] = (0, "")
        self._listeners: list[CacheListener] = []
        self._clear_listeners: list[Callable[[], None]] = []
        self._sweeper: asyncio.Task | None = None
        self._started = False

        self._channel.subscribe(self.apply_message)

    @classmethod
    def create(
        cls,
        channel: BroadcastChannel,
        version_store: VersionMarkerStore,
        version: str | None = None,
        default_ttl_ms: float | None = None,
    ) -> "MultiTabCache":
        """Factory method to create MultiTabCache with settings defaults."""
        return cls(
            channel=channel,
            version_store=version_store,
            version=version,
            default_ttl_ms=default_ttl_ms,
        )

    # Lifecycle

    async def start(self) -> None:
        """Open the channel, check the version marker and start the sweep."""
        if self._started:
            return

        await self._channel.start()
        await self.check_version()
        self._sweeper = asyncio.create_task(self._sweep_loop())
        self._started = True
        logger.info("Cache %s started (version %s)", self._instance_id, self._version)

    async def close(self) -> None:
        """Stop the sweep, close the channel and drop all local state."""
        if self._sweeper is not None:
            self._sweeper.cancel()
            try:
                await self._sweeper
            except asyncio.CancelledError:
                pass
            self._sweeper = None

        await self._channel.close()
        self._entries.clear()
        self._listeners.clear()
        self._clear_listeners.clear()
        self._started = False
        logger.info("Cache %s closed", self._instance_id)

    async def __aenter__(self) -> "MultiTabCache":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # Operations

    def set(self, key: str, data: Any, ttl_ms: float | None = None) -> None:
        """Store a value locally and broadcast it to the other instances.

        Args:
            key: Cache key
            data: JSON-serializable value
            ttl_ms: Time-to-live in milliseconds. Defaults to the cache default.
        """
        ttl = self._default_ttl if ttl_ms is None else ttl_ms
        if ttl <= 0:
            raise ValueError("ttl_ms must be positive")

        now = self._clock()
        seq, _ = self._next_stamp(key)
        self._entries[key] = CacheEntryEntity(
            data=data,
            timestamp=now,
            ttl=ttl,
            version=self._version,
        )
        self._notify(key, data)
        self._broadcast(
            CacheMessage(
                type="update",
                key=key,
                data=CachePayload(data=data, ttl=ttl),
                timestamp=now,
                seq=seq,
                origin=self._instance_id,
                version=self._version,
            )
        )

    def get(self, key: str, default: Any = None) -> Any:
        """Return the cached value, or ``default`` on a miss.

        Expired entries and entries written under another version count
        as misses and are deleted.
        """
        entry = self._entries.get(key)
        if entry is None:
            return default

        if entry.is_expired(self._clock(), self._version):
            del self._entries[key]
            return default

        return entry.data

    def has(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def invalidate(self, key: str) -> bool:
        """Delete a key here and in every other instance.

        Returns:
            True if a local entry was removed. Invalidating an absent key
            is harmless.
        """
        removed = self._entries.pop(key, None) is not None
        seq, _ = self._next_stamp(key)
        self._notify(key, None)
        self._broadcast(
            CacheMessage(
                type="invalidate",
                key=key,
                timestamp=self._clock(),
                seq=seq,
                origin=self._instance_id,
                version=self._version,
            )
        )
        return removed

    def clear(self) -> int:
        """Delete every entry here and in every other instance.

        Returns:
            Number of local entries removed
        """
        removed = list(self._entries)
        self._entries.clear()
        # Outrank every stamp seen so far, since every local entry is gone.
        latest = max(self._stamps.values(), default=self._clear_stamp)
        self._clear_stamp = (
            self._next_seq(max(latest, self._clear_stamp)[0]),
            self._instance_id,
        )

        for key in removed:
            self._notify(key, None)
        self._notify_clear()

        self._broadcast(
            CacheMessage(
                type="clear",
                timestamp=self._clock(),
                seq=self._clear_stamp[0],
                origin=self._instance_id,
                version=self._version,
            )
        )
        return len(removed)

    def sweep_expired(self) -> int:
        """Remove expired entries.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        expired = [
            key for key, entry in self._entries.items() if entry.is_expired(now, self._version)
        ]
        for key in expired:
            del self._entries[key]

        if expired:
            logger.debug("Cache sweep removed %d expired entries", len(expired))
        return len(expired)

    async def check_version(self) -> bool:
        """Clear the cache if the stored version marker differs.

        Returns:
            True if the cache was cleared
        """
        stored = await self._version_store.get()
        if stored == self._version:
            return False

        self.clear()
        await self._version_store.set(self._version)
        logger.info("Cache cleared: version changed from %s to %s", stored, self._version)
        return True

    def add_listener(self, listener: CacheListener) -> Callable[[], None]:
        """Register a ``(key, data)`` callback for applied changes.

        ``data`` is None for invalidations and clears.

        Returns:
            A function that removes the listener
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def add_clear_listener(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Register a callback for every applied clear, local or remote.

        Fires after the per-key notifications, even when no entry was removed.

        Returns:
            A function that removes the listener
        """
        self._clear_listeners.append(listener)

        def remove() -> None:
            if listener in self._clear_listeners:
                self._clear_listeners.remove(listener)

        return remove

    def apply_message(self, message: CacheMessage) -> bool:
        """Apply a change received from another instance.

        Returns:
            True if the message changed local state
        """
        if message.origin == self._instance_id:
            return False

        if message.type == "clear":
            if message.stamp <= self._clear_stamp:
                logger.debug("Ignoring stale clear from %s", message.origin)
                return False
            self._clear_stamp = message.stamp
            # Entries written after the clear was issued survive it, unless
            # the clear comes from an instance on another cache version.
            removed = [
                key
                for key in self._entries
                if message.version != self._version or self._floor(key) <= message.stamp
            ]
            for key in removed:
                del self._entries[key]
                self._notify(key, None)
            self._notify_clear()
            return True

        if message.key is None:
            logger.warning("Ignoring %s message without a key", message.type)
            return False

        if message.type == "update" and message.data is None:
            logger.warning("Ignoring update for %s without data", message.key)
            return False

        if message.stamp <= self._floor(message.key):
            logger.debug("Ignoring stale %s for %s", message.type, message.key)
            return False
        self._stamps[message.key] = message.stamp

        if message.type == "invalidate":
            self._entries.pop(message.key, None)
            self._notify(message.key, None)
            return True

        if message.version != self._version:
            logger.debug(
                "Ignoring update for %s written under cache version %s",
                message.key,
                message.version,
            )
            return False

        self._entries[message.key] = CacheEntryEntity(
            data=message.data.data,
            timestamp=message.timestamp,
            ttl=message.data.ttl,
            version=message.version,
        )
        self._notify(message.key, message.data.data)
        return True

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        now = self._clock()
        expired = sum(
            1 for entry in self._entries.values() if entry.is_expired(now, self._version)
        )
        return {
            "total_entries": len(self._entries),
            "valid_entries": len(self._entries) - expired,
            "expired_entries": expired,
            "version": self._version,
            "listeners": len(self._listeners),
            "instance_id": self._instance_id,
        }

    # Internals

    def _next_seq(self, last: int) -> int:
        return max(last + 1, int(self._clock()))

    def _floor(self, key: str) -> tuple[int, str]:
        """Newest stamp that a change to ``key`` must beat, clears included."""
        return max(self._stamps.get(key, (0, "")), self._clear_stamp)

    def _next_stamp(self, key: str) -> tuple[int, str]:
        stamp = (self._next_seq(self._floor(key)[0]), self._instance_id)
        self._stamps[key] = stamp
        return stamp

    def _notify(self, key: str, data: Any) -> None:
        for listener in list(self._listeners):
            try:
                listener(key, data)
            except Exception:
                logger.exception("Cache listener failed for key %s", key)

    def _notify_clear(self) -> None:
        for listener in list(self._clear_listeners):
            try:
                listener()
            except Exception:
                logger.exception("Cache clear listener failed")

    def _broadcast(self, message: CacheMessage) -> None:
        try:
            self._channel.publish(message)
        except Exception as e:
            logger.warning("Failed to broadcast %s message: %s", message.type, e)

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._cleanup_interval / 1000)
            self.sweep_expired()

    # Properties

    @property
    def version(self) -> str:
        """Current cache format version."""
        return self._version

    @version.setter
    def version(self, value: str) -> None:
        # Entries written under the previous version become misses.
        self._version = value

    @property
    def instance_id(self) -> str:
        return self._instance_id

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    @property
    def channel(self) -> BroadcastChannel:
        """Get the underlying channel (for testing)."""
        return self._channel
