"""Named-channel notification buses for cache publish/subscribe.

Not part of the cache consistency model: messages are fire-and-forget and
carry a JSON envelope ``{"from", "channel", "timestamp", "payload"}``.
``LocalBus`` delivers in-process; ``RedisBus`` fans out through Redis pub/sub.
"""

import asyncio
import inspect
import json
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Callable

import redis.asyncio as aioredis


def make_envelope(channel: str, payload: Any, sender: str) -> dict[str, Any]:
    return {
        "from": sender,
        "channel": channel,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "payload": payload,
    }


async def _dispatch(handler: Callable, channel: str, envelope: dict):
    if inspect.iscoroutinefunction(handler):
        await handler(channel, envelope)
    else:
        handler(channel, envelope)


class LocalBus:
    """In-process bus; handlers run inline during ``publish``."""

    def __init__(self):
        self._handlers: dict[str, list[Callable]] = defaultdict(list)

    async def connect(self):
        pass

    async def disconnect(self):
        self._handlers.clear()

    async def publish(self, channel: str, payload: Any, sender: str = "kvstash"):
        envelope = make_envelope(channel, payload, sender)
        for handler in list(self._handlers.get(channel, [])):
            await _dispatch(handler, channel, envelope)

    async def subscribe(self, channel: str, handler: Callable):
        self._handlers[channel].append(handler)

    async def unsubscribe(self, channel: str):
        self._handlers.pop(channel, None)


class RedisBus:
    """Thin async wrapper around Redis pub/sub with the same envelope."""

    def __init__(self, redis_url: str = "redis://localhost:6379"):
        self._redis_url = redis_url
        self._publisher = None
        self._subscriber = None
        self._pubsub = None
        self._handlers: dict[str, list[Callable]] = defaultdict(list)
        self._listen_task = None

    async def connect(self):
        self._publisher = aioredis.from_url(self._redis_url)
        self._subscriber = aioredis.from_url(self._redis_url)
        self._pubsub = self._subscriber.pubsub()

    async def disconnect(self):
        if self._listen_task:
            self._listen_task.cancel()
            try:
                await self._listen_task
            except asyncio.CancelledError:
                pass
            self._listen_task = None
        if self._pubsub:
            await self._pubsub.unsubscribe()
            await self._pubsub.aclose()
            self._pubsub = None
        if self._subscriber:
            await self._subscriber.aclose()
            self._subscriber = None
        if self._publisher:
            await self._publisher.aclose()
            self._publisher = None
        self._handlers.clear()

    async def publish(self, channel: str, payload: Any, sender: str = "kvstash"):
        envelope = make_envelope(channel, payload, sender)
        await self._publisher.publish(channel, json.dumps(envelope, default=str))

    async def subscribe(self, channel: str, handler: Callable):
        self._handlers[channel].append(handler)
        await self._pubsub.subscribe(channel)
        if self._listen_task is None or self._listen_task.done():
            self._listen_task = asyncio.create_task(self._listen())

    async def unsubscribe(self, channel: str):
        self._handlers.pop(channel, None)
        await self._pubsub.unsubscribe(channel)

    async def _listen(self):
        try:
            async for message in self._pubsub.listen():
                if message["type"] != "message":
                    continue
                channel = message["channel"]
                if isinstance(channel, bytes):
                    channel = channel.decode()
                envelope = json.loads(message["data"])
                for handler in list(self._handlers.get(channel, [])):
                    await _dispatch(handler, channel, envelope)
        except asyncio.CancelledError:
            pass


def create_bus(redis_url: str | None = None):
    """Return a RedisBus when a URL is configured, otherwise a LocalBus."""
    if redis_url:
        return RedisBus(redis_url=redis_url)
    return LocalBus()
