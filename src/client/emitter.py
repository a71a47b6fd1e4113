"""Minimal event emitter for messaging client adapters.

Client adapters subclass EventEmitter and call ``emit`` whenever the
underlying session produces a lifecycle or message event.
"""

import asyncio
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

EventHandler = Callable[..., Awaitable[None] | None]


class EventEmitter:
    """Name-keyed handler registry.

    Handlers run in registration order. A handler returning a coroutine is
    scheduled as a task on the running loop. Handler errors are logged and
    never reach the emitting side.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)
        self._tasks: set[asyncio.Task[None]] = set()

    def on(self, event: str, handler: EventHandler) -> None:
        """Register a handler for an event."""
        self._handlers[event].append(handler)

    def off(self, event: str, handler: EventHandler) -> None:
        """Remove a handler; unknown handlers are ignored."""
        handlers = self._handlers.get(event)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def listener_count(self, event: str) -> int:
        """Number of handlers registered for an event."""
        return len(self._handlers.get(event, []))

    def emit(self, event: str, *args: Any) -> bool:
        """Call every handler registered for ``event``.

        Returns:
            True if at least one handler was registered.
        """
        handlers = list(self._handlers.get(event, []))
        for handler in handlers:
            try:
                result = handler(*args)
                if asyncio.iscoroutine(result):
                    task = asyncio.get_running_loop().create_task(
                        self._run_async_handler(event, result)
                    )
                    self._tasks.add(task)
                    task.add_done_callback(self._tasks.discard)
            except Exception as e:
                logger.error("event_handler_error", event_name=event, error=str(e))
        return bool(handlers)

    async def _run_async_handler(self, event: str, coro: Awaitable[None]) -> None:
        try:
            await coro
        except Exception as e:
            logger.error("event_handler_error", event_name=event, error=str(e))
