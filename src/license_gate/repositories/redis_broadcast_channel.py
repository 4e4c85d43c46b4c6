"""Redis implementation of BroadcastChannel and VersionMarkerStore.

Every cache instance subscribes to the same pub/sub channel, which plays
the role of the browser's same-origin broadcast channel. Pub/sub is
fire-and-forget: instances that are not subscribed at publish time never
see the message.
"""

import asyncio
import logging

import redis.asyncio as redis
from pydantic import ValidationError
from redis.exceptions import RedisError

from license_gate.config import get_redis_client, settings
from license_gate.dto import CacheMessage
from license_gate.protocols import MessageHandler

logger = logging.getLogger(__name__)


class RedisBroadcastChannel:
    """Redis pub/sub transport for cache messages.

    This class satisfies the BroadcastChannel protocol through structural
    typing - no explicit inheritance needed.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        channel_name: str | None = None,
        max_reconnect_attempts: int | None = None,
        reconnect_delay: float | None = None,
    ) -> None:
        """Initialize the channel.

        Args:
            redis_client: asyncio Redis client. If None, creates default.
            channel_name: Pub/sub channel name. Defaults to settings.
            max_reconnect_attempts: Resubscribe attempts after the reader
                fails before it gives up. Defaults to settings.
            reconnect_delay: Base delay in seconds, multiplied by the
                attempt number. Defaults to settings.
        """
        self._client = redis_client or get_redis_client()
        self._channel_name = channel_name or settings.cache_channel_name
        self._max_reconnect_attempts = (
            settings.broadcast_max_reconnect_attempts
            if max_reconnect_attempts is None
            else max_reconnect_attempts
        )
        self._reconnect_delay = (
            settings.broadcast_reconnect_delay if reconnect_delay is None else reconnect_delay
        )
        self._handlers: list[MessageHandler] = []
        self._pubsub = None
        self._reader: asyncio.Task | None = None
        self._pending: set[asyncio.Task] = set()
        self._closed = False

    @classmethod
    def create(
        cls,
        redis_client: redis.Redis | None = None,
        channel_name: str | None = None,
    ) -> "RedisBroadcastChannel":
        """Factory method to create RedisBroadcastChannel with defaults.

        Args:
            redis_client: asyncio Redis client. If None, creates default.
            channel_name: Pub/sub channel name. If None, uses settings.

        Returns:
            Configured RedisBroadcastChannel
        """
        return cls(redis_client=redis_client, channel_name=channel_name)

    @property
    def channel_name(self) -> str:
        return self._channel_name

    def subscribe(self, handler: MessageHandler) -> None:
        self._handlers.append(handler)

    async def start(self) -> None:
        """Subscribe to the channel and start the reader task."""
        if self._reader is not None and not self._reader.done():
            return

        self._closed = False
        await self._drop_pubsub()
        self._pubsub = self._client.pubsub(ignore_subscribe_messages=True)
        await self._pubsub.subscribe(self._channel_name)
        self._reader = asyncio.create_task(self._read_loop())
        logger.info("Subscribed to broadcast channel %s", self._channel_name)

    def publish(self, message: CacheMessage) -> None:
        """Schedule a publish on the running loop without awaiting it."""
        if self._closed:
            logger.warning("Broadcast channel closed, dropping %s message", message.type)
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, dropping %s message", message.type)
            return

        task = loop.create_task(self._publish(message.model_dump_json()))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _publish(self, payload: str) -> None:
        try:
            await self._client.publish(self._channel_name, payload)
        except RedisError as e:
            logger.warning("Failed to broadcast cache message: %s", e)

    async def _read_loop(self) -> None:
        attempts = 0
        while not self._closed:
            try:
                if self._pubsub is None:
                    self._pubsub = self._client.pubsub(ignore_subscribe_messages=True)
                    await self._pubsub.subscribe(self._channel_name)
                    attempts = 0
                    logger.info("Resubscribed to broadcast channel %s", self._channel_name)
                await self._listen(self._pubsub)
                return
            except RedisError as e:
                await self._drop_pubsub()
                attempts += 1
                if attempts > self._max_reconnect_attempts:
                    logger.error(
                        "Broadcast listener on %s stopped after %d reconnect attempts: %s",
                        self._channel_name,
                        self._max_reconnect_attempts,
                        e,
                    )
                    return

                delay = self._reconnect_delay * attempts
                logger.warning(
                    "Broadcast listener on %s failed (%s), reconnecting in %.1fs (%d/%d)",
                    self._channel_name,
                    e,
                    delay,
                    attempts,
                    self._max_reconnect_attempts,
                )
                await asyncio.sleep(delay)

    async def _listen(self, pubsub) -> None:
        async for raw in pubsub.listen():
            if raw is None or raw.get("type") != "message":
                continue
            try:
                message = CacheMessage.model_validate_json(raw["data"])
            except ValidationError as e:
                logger.warning("Discarding malformed broadcast message: %s", e)
                continue
            self._dispatch(message)

    async def _drop_pubsub(self) -> None:
        pubsub, self._pubsub = self._pubsub, None
        if pubsub is None:
            return
        try:
            await pubsub.aclose()
        except RedisError as e:
            logger.debug("Error closing failed pub/sub connection: %s", e)

    def _dispatch(self, message: CacheMessage) -> None:
        for handler in list(self._handlers):
            try:
                handler(message)
            except Exception:
                logger.exception("Broadcast handler failed for %s message", message.type)

    async def close(self) -> None:
        """Flush pending publishes, stop the reader and unsubscribe."""
        self._closed = True

        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

        if self._reader is not None:
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
            self._reader = None

        if self._pubsub is not None:
            try:
                await self._pubsub.unsubscribe(self._channel_name)
                await self._pubsub.aclose()
            except RedisError as e:
                logger.warning("Error closing broadcast channel: %s", e)
            self._pubsub = None
            logger.info("Broadcast channel %s closed", self._channel_name)

    async def is_healthy(self) -> bool:
        """Whether Redis answers and, once started, the reader is still running."""
        if self._reader is not None and self._reader.done():
            return False
        try:
            return bool(await self._client.ping())
        except RedisError:
            return False


class RedisVersionMarkerStore:
    """Version marker kept in a shared Redis key.

    This class satisfies the VersionMarkerStore protocol.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        key: str | None = None,
    ) -> None:
        self._client = redis_client or get_redis_client()
        self._key = key or settings.cache_version_key

    @classmethod
    def create(
        cls,
        redis_client: redis.Redis | None = None,
        key: str | None = None,
    ) -> "RedisVersionMarkerStore":
        return cls(redis_client=redis_client, key=key)

    async def get(self) -> str | None:
        value = await self._client.get(self._key)
        if isinstance(value, bytes):
            return value.decode()
        return value

    async def set(self, version: str) -> None:
        await self._client.set(self._key, version)
