"""
In-process event bus and the subscribers wired to it at startup.
"""
from storefront.events.bus import EventBus, Events
from storefront.events.subscribers import RedisStreamForwarder, log_event, register_subscribers

__all__ = [
    "EventBus",
    "Events",
    "RedisStreamForwarder",
    "log_event",
    "register_subscribers",
]
