"""
Publish/subscribe channel between persistence hooks and external consumers.

Publishing never waits on, or fails because of, a subscriber.
"""
import asyncio
import inspect
import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


class Events:
    """Event names published by the services."""
    USER_CREATED = "user.created"
    USER_UPDATED = "user.updated"
    USER_REMOVED = "user.removed"
    ATTRIBUTE_UPDATED = "attribute.updated"
    ATTRIBUTE_REMOVED = "attribute.removed"


class EventBus:
    """
    Explicit event bus instance, handed to the services that publish.

    Subscriptions are registered once at startup.
    """

    def __init__(self):
        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self._pending: set[asyncio.Task] = set()

    def subscribe(self, name: str, handler: Handler) -> None:
        """Register a sync or async handler for an event name."""
        self._handlers[name].append(handler)

    def handlers(self, name: str) -> list[Handler]:
        return list(self._handlers.get(name, []))

    def emit(self, name: str, *payload: Any) -> None:
        """
        Dispatch an event to every subscriber without waiting for any.

        With a running loop every handler, sync or async, runs in its own
        task. Without one (scripts, sync tests) sync handlers run inline and
        async handlers are dropped. Handler exceptions are logged, never
        raised here.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        for handler in self.handlers(name):
            is_async = inspect.iscoroutinefunction(handler) or inspect.iscoroutinefunction(
                getattr(handler, "__call__", None)
            )
            if loop is not None:
                coro = handler(*payload) if is_async else self._deferred(name, handler, payload)
                self._track(loop.create_task(coro), name, handler)
            elif is_async:
                logger.warning("No running event loop, dropping %s for %r", name, handler)
            else:
                self._call(name, handler, payload)

    @staticmethod
    def _call(name: str, handler: Handler, payload: tuple) -> None:
        try:
            handler(*payload)
        except Exception:
            logger.exception("Subscriber %r failed on event %s", handler, name)

    async def _deferred(self, name: str, handler: Handler, payload: tuple) -> None:
        self._call(name, handler, payload)

    def _track(self, task: asyncio.Task, name: str, handler: Handler) -> None:
        self._pending.add(task)

        def _done(t: asyncio.Task) -> None:
            self._pending.discard(t)
            if t.cancelled():
                return
            exc = t.exception()
            if exc is not None:
                logger.error(
                    "Subscriber %r failed on event %s: %s", handler, name, exc,
                    exc_info=exc,
                )

        task.add_done_callback(_done)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every scheduled handler to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
