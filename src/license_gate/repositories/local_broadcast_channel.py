"""In-process implementation of BroadcastChannel and VersionMarkerStore.

Used for single-process deployments and to simulate several tabs in
tests. Messages go through the same JSON wire format as Redis.
"""

import logging
from collections import deque

from license_gate.dto import CacheMessage
from license_gate.protocols import MessageHandler

logger = logging.getLogger(__name__)


class LocalBroadcastHub:
    """Shared medium for every LocalBroadcastChannel created from it.

    With ``auto_deliver`` (the default) a publish reaches the other
    channels immediately. Without it, messages wait in each channel's
    inbox until ``flush()`` or ``deliver_pending()``, which lets tests
    reorder or drop them.
    """

    def __init__(self, auto_deliver: bool = True) -> None:
        self.auto_deliver = auto_deliver
        self._channels: list["LocalBroadcastChannel"] = []

    def channel(self) -> "LocalBroadcastChannel":
        """Create a channel attached to this hub once started."""
        return LocalBroadcastChannel(self)

    def flush(self) -> int:
        """Deliver every queued message on every channel.

        Returns:
            Number of messages delivered
        """
        return sum(channel.deliver_pending() for channel in list(self._channels))

    @property
    def pending(self) -> int:
        return sum(len(channel.inbox) for channel in self._channels)

    def _attach(self, channel: "LocalBroadcastChannel") -> None:
        if channel not in self._channels:
            self._channels.append(channel)

    def _detach(self, channel: "LocalBroadcastChannel") -> None:
        if channel in self._channels:
            self._channels.remove(channel)

    def _route(self, sender: "LocalBroadcastChannel", payload: str) -> None:
        for channel in list(self._channels):
            if channel is not sender:
                channel._enqueue(CacheMessage.model_validate_json(payload))


class LocalBroadcastChannel:
    """One subscriber of a LocalBroadcastHub.

    This class satisfies the BroadcastChannel protocol through structural
    typing. Messages published before ``start()`` or after ``close()``
    are lost, as with any real broadcast transport.
    """

    def __init__(self, hub: LocalBroadcastHub) -> None:
        self._hub = hub
        self._handlers: list[MessageHandler] = []
        self._inbox: deque[CacheMessage] = deque()
        self._attached = False

    def subscribe(self, handler: MessageHandler) -> None:
        self._handlers.append(handler)

    async def start(self) -> None:
        self._hub._attach(self)
        self._attached = True

    async def close(self) -> None:
        self._hub._detach(self)
        self._attached = False
        self._inbox.clear()

    def publish(self, message: CacheMessage) -> None:
        if not self._attached:
            logger.debug("Channel not attached, dropping %s message", message.type)
            return
        self._hub._route(self, message.model_dump_json())

    @property
    def inbox(self) -> list[CacheMessage]:
        """Messages received but not yet delivered (oldest first)."""
        return list(self._inbox)

    def deliver_pending(self) -> int:
        delivered = 0
        while self._inbox:
            self._deliver(self._inbox.popleft())
            delivered += 1
        return delivered

    def drop_pending(self) -> int:
        dropped = len(self._inbox)
        self._inbox.clear()
        return dropped

    def _enqueue(self, message: CacheMessage) -> None:
        if self._hub.auto_deliver:
            self._deliver(message)
        else:
            self._inbox.append(message)

    def _deliver(self, message: CacheMessage) -> None:
        for handler in list(self._handlers):
            try:
                handler(message)
            except Exception:
                logger.exception("Broadcast handler failed for %s message", message.type)

    async def is_healthy(self) -> bool:
        return self._attached


class InMemoryVersionMarkerStore:
    """Version marker held in memory; share one instance between caches."""

    def __init__(self, version: str | None = None) -> None:
        self._version = version

    async def get(self) -> str | None:
        return self._version

    async def set(self, version: str) -> None:
        self._version = version
