"""
Subscribers wired to the event bus at startup.

Search indexing, notifications and other out-of-process consumers read the
Redis stream; the audit subscriber only writes log lines.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from bson import json_util
from redis.asyncio import Redis

from storefront.config import Settings
from storefront.events.bus import EventBus, Events

logger = logging.getLogger(__name__)

FORWARDED_EVENTS = (
    Events.USER_CREATED,
    Events.USER_UPDATED,
    Events.USER_REMOVED,
    Events.ATTRIBUTE_UPDATED,
    Events.ATTRIBUTE_REMOVED,
)


class RedisStreamForwarder:
    """Append bus events to a capped Redis stream."""

    def __init__(self, redis: Redis, stream_key: str, maxlen: int = 10000):
        self.redis = redis
        self.stream_key = stream_key
        self.maxlen = maxlen

    async def forward(self, name: str, *payload: Any) -> str:
        """
        Write one stream entry.

        Returns:
            The Redis stream entry id
        """
        fields = {
            "event": name,
            "data": json_util.dumps(list(payload)),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        return await self.redis.xadd(
            self.stream_key, fields, maxlen=self.maxlen, approximate=True,
        )

    def handler_for(self, name: str):
        async def _handler(*payload: Any) -> None:
            await self.forward(name, *payload)
        _handler.__qualname__ = f"RedisStreamForwarder[{name}]"
        return _handler


def log_event(name: str):
    """Build an audit subscriber that logs one line per event."""
    def _handler(*payload: Any) -> None:
        subject = payload[0] if payload else None
        if isinstance(subject, dict):
            subject = subject.get("_id", subject)
        logger.info("event=%s subject=%s", name, subject)
    return _handler


def register_subscribers(
    bus: EventBus,
    settings: Settings,
    redis: Optional[Redis] = None,
) -> None:
    """Wire every subscriber to the bus. Called once at process startup."""
    forwarder = None
    if redis is not None:
        forwarder = RedisStreamForwarder(
            redis, settings.events_stream_key, settings.events_stream_maxlen,
        )
    for name in FORWARDED_EVENTS:
        bus.subscribe(name, log_event(name))
        if forwarder is not None:
            bus.subscribe(name, forwarder.handler_for(name))
