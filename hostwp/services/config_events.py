"""Change notification for API configurations.

``ConfigEventBus`` is the in-process observer list the config store publishes
to. ``RedisConfigRelay`` bridges buses across processes over a Redis channel
so every worker reloads its active connection when another one changes it.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum

from redis.asyncio import from_url

logger = logging.getLogger(__name__)

CHANNEL = "hostwp:api-configs"
RECONNECT_DELAY = 5.0  # seconds


class ChangeKind(StrEnum):
    ADDED = "added"
    UPDATED = "updated"
    DELETED = "deleted"
    ACTIVATED = "activated"
    CLEARED = "cleared"


@dataclass(frozen=True)
class ConfigChange:
    kind: ChangeKind
    config_id: str | None = None
    origin: str | None = None  # process that made the change; None means this one


Subscriber = Callable[[ConfigChange], Awaitable[None] | None]


class ConfigEventBus:
    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback; returns a function that unregisters it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    async def publish(self, event: ConfigChange) -> None:
        """Deliver to every subscriber. A failing subscriber is logged and skipped."""
        for callback in list(self._subscribers):
            try:
                result = callback(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Config change subscriber failed for %s", event.kind)


class RedisConfigRelay:
    """Mirror local config changes to Redis and replay foreign ones locally."""

    def __init__(
        self,
        bus: ConfigEventBus,
        redis_url: str,
        channel: str = CHANNEL,
        reconnect_delay: float = RECONNECT_DELAY,
    ) -> None:
        self.bus = bus
        self.channel = channel
        self.reconnect_delay = reconnect_delay
        self.origin = uuid.uuid4().hex
        self._redis = from_url(redis_url, decode_responses=True)
        self._task: asyncio.Task | None = None
        self._unsubscribe = bus.subscribe(self._forward)

    async def _forward(self, event: ConfigChange) -> None:
        if event.origin is not None:
            return  # replayed from another process, don't echo it back
        message = {"kind": str(event.kind), "config_id": event.config_id, "origin": self.origin}
        try:
            await self._redis.publish(self.channel, json.dumps(message))
        except Exception:
            logger.warning("Could not publish config change %s to Redis", event.kind)

    def decode(self, raw: str) -> ConfigChange | None:
        """Parse a channel message; own and malformed messages yield None."""
        try:
            message = json.loads(raw)
            event = ConfigChange(
                kind=ChangeKind(message["kind"]),
                config_id=message.get("config_id"),
                origin=message["origin"],
            )
        except (ValueError, KeyError, TypeError):
            logger.warning("Ignoring malformed config change message: %r", raw)
            return None
        if event.origin == self.origin:
            return None
        return event

    async def _listen(self) -> None:
        """Consume the channel until cancelled, resubscribing after any failure."""
        while True:
            pubsub = self._redis.pubsub()
            try:
                await pubsub.subscribe(self.channel)
                async for message in pubsub.listen():
                    if message.get("type") != "message":
                        continue
                    event = self.decode(message["data"])
                    if event is not None:
                        logger.info("API configuration changed in another process (%s), reloading", event.kind)
                        await self.bus.publish(event)
            except Exception:
                logger.exception(
                    "Config change listener on %s failed, resubscribing in %.1fs",
                    self.channel, self.reconnect_delay,
                )
            finally:
                try:
                    await pubsub.aclose()
                except Exception:
                    logger.warning("Could not close Redis pubsub for %s", self.channel)
            await asyncio.sleep(self.reconnect_delay)

    def start(self) -> None:
        self._task = asyncio.create_task(self._listen())

    async def stop(self) -> None:
        self._unsubscribe()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        await self._redis.aclose()
