"""Broadcast channel protocol.

Defines the transport used to propagate cache changes between cache
instances (the "tabs" of the application).

Implementations can include:
- Redis pub/sub (default)
- In-process hub (tests, single-process deployments)
"""

from collections.abc import Callable
from typing import Protocol, runtime_checkable

from license_gate.dto import CacheMessage

MessageHandler = Callable[[CacheMessage], object]


@runtime_checkable
class BroadcastChannel(Protocol):
    """Protocol for best-effort, fire-and-forget message transports.

    Delivery is not acknowledged and not ordered; a publish may silently
    reach nobody. Receivers must order messages themselves.
    """

    def publish(self, message: CacheMessage) -> None:
        """Send a message to every other subscriber without waiting.

        Args:
            message: The cache change to broadcast
        """
        ...

    def subscribe(self, handler: MessageHandler) -> None:
        """Register the handler called for each received message.

        Args:
            handler: Callback invoked with each incoming message
        """
        ...

    async def start(self) -> None:
        """Open the channel and begin delivering messages."""
        ...

    async def close(self) -> None:
        """Stop delivery and release the transport."""
        ...

    async def is_healthy(self) -> bool:
        """Check if the transport is reachable.

        Returns:
            True if healthy, False otherwise
        """
        ...
