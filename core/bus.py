"""EventRouter -- in-process listener registry with ordered, synchronous emit.

Listeners are registered by name while plugins are wired together. Once
wiring is done the router is frozen and becomes read-only for the rest of
the process lifetime.

Listeners that return an awaitable have it scheduled on the running loop.
The resulting tasks are handed back to the caller of emit().
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable

from core.errors import RegistryFrozenError

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class EventRouter:
    """Maps event names to ordered listener lists.

    Usage:
        router = EventRouter()
        router.register("url.host.youtube.com", youtube_card)
        router.register("url.host.all", log_url)
        router.freeze()

        if router.has_listeners("url.host.youtube.com"):
            router.emit("url.host.youtube.com", url, origin, sink)
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, name: str, callback: Listener) -> None:
        """Append a listener for the given event name."""
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot register '{name}': listener registry is frozen"
            )
        self._listeners.setdefault(name, []).append(callback)
        logger.debug("Registered listener for '%s': %s", name, callback)

    def unregister(self, name: str, callback: Listener) -> None:
        """Remove a previously registered listener."""
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot unregister '{name}': listener registry is frozen"
            )
        callbacks = self._listeners.get(name)
        if callbacks and callback in callbacks:
            callbacks.remove(callback)
            if not callbacks:
                del self._listeners[name]

    def freeze(self) -> None:
        """Make the registry read-only. Called once wiring is complete."""
        self._frozen = True
        logger.debug("Listener registry frozen: %s", self.summary())

    def has_listeners(self, name: str) -> bool:
        return bool(self._listeners.get(name))

    def listeners(self, name: str) -> list[Listener]:
        """Return the listeners for a name, in registration order."""
        return list(self._listeners.get(name, []))

    def emit(self, name: str, *args: Any) -> list[asyncio.Task]:
        """Invoke every listener for `name` in registration order.

        Exceptions raised by a listener propagate to the caller. Awaitables
        returned by listeners are scheduled as tasks and returned.
        """
        callbacks = self.listeners(name)
        if not callbacks:
            logger.debug("No listeners for event: %s", name)
            return []

        logger.debug("Emitting %s to %d listener(s)", name, len(callbacks))

        tasks: list[asyncio.Task] = []
        for callback in callbacks:
            result = callback(*args)
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                task.add_done_callback(
                    lambda t, event_name=name: self._log_task_failure(event_name, t)
                )
                tasks.append(task)
        return tasks

    def summary(self) -> dict[str, int]:
        """Return the listener count per event name."""
        return {name: len(cbs) for name, cbs in self._listeners.items() if cbs}

    @staticmethod
    def _log_task_failure(name: str, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Listener for %s failed", name, exc_info=(type(exc), exc, exc.__traceback__)
            )
