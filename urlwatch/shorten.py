"""ShortenRace -- bounded-time negotiation with a shortener subscriber.

A shortener subscriber gets the URL and a write-once ResultAcceptor. The
first of {accept, decline, deadline} fixes the outcome; everything after
that is ignored. The caller always gets exactly one answer: the short URL,
or None.

Usage:
    race = ShortenRace(router, url, timeout=15.0, request_id=ctx.request_id)
    short_url = await race.result()
"""

from __future__ import annotations

import asyncio
import logging

from core.bus import EventRouter
from urlwatch.host import SHORTEN_ALL_EVENT, host_of, shorten_event

logger = logging.getLogger(__name__)

DEFAULT_SHORTEN_TIMEOUT = 15.0


class ResultAcceptor:
    """Write-once slot handed to shortener subscribers.

    `accept()` and `decline()` may be called any number of times, from any
    coroutine or callback on the loop; only the first call counts.
    """

    def __init__(self, future: asyncio.Future) -> None:
        self._future = future

    @property
    def resolved(self) -> bool:
        return self._future.done()

    def accept(self, short_url: str | None) -> bool:
        """Offer a short URL. Returns True if this call decided the outcome."""
        value = (short_url or "").strip() or None
        return self._resolve(value)

    def decline(self) -> bool:
        """Give up on shortening. Returns True if this call decided the outcome."""
        return self._resolve(None)

    def _resolve(self, value: str | None) -> bool:
        if self._future.done():
            return False
        self._future.set_result(value)
        return True


class ShortenRace:
    """Races one shortener event against a deadline timer."""

    def __init__(
        self,
        router: EventRouter,
        url: str,
        timeout: float = DEFAULT_SHORTEN_TIMEOUT,
        request_id: str = "-",
    ) -> None:
        self._router = router
        self._url = url
        self._timeout = timeout
        self._request_id = request_id
        self._future: asyncio.Future | None = None
        self._timer: asyncio.TimerHandle | None = None

    def event_name(self) -> str | None:
        """Return the shorten event to emit, or None if nobody listens."""
        host_event = shorten_event(host_of(self._url))
        if self._router.has_listeners(host_event):
            return host_event
        if self._router.has_listeners(SHORTEN_ALL_EVENT):
            return SHORTEN_ALL_EVENT
        return None

    def start(self) -> asyncio.Future:
        """Start the race. Idempotent; returns the outcome future."""
        if self._future is not None:
            return self._future

        loop = asyncio.get_running_loop()
        self._future = loop.create_future()
        self._future.add_done_callback(self._on_resolved)
        acceptor = ResultAcceptor(self._future)

        name = self.event_name()
        if name is None:
            logger.debug("[%s] No shortener for %s", self._request_id, self._url)
            acceptor.decline()
            return self._future

        self._timer = loop.call_later(self._timeout, self._on_timeout, acceptor)

        logger.debug("[%s] Emitting: %s", self._request_id, name)
        try:
            tasks = self._router.emit(name, self._url, acceptor)
        except Exception:
            logger.exception("[%s] Shortener for %s failed", self._request_id, self._url)
            acceptor.decline()
            return self._future

        for task in tasks:
            task.add_done_callback(lambda t: self._on_subscriber_done(t, acceptor))
        return self._future

    async def result(self) -> str | None:
        """Wait for the outcome: the short URL, or None."""
        return await self.start()

    def _on_timeout(self, acceptor: ResultAcceptor) -> None:
        self._timer = None
        if acceptor.decline():
            logger.debug(
                "[%s] Shortening timed out after %.2fs", self._request_id, self._timeout
            )

    def _on_subscriber_done(self, task: asyncio.Task, acceptor: ResultAcceptor) -> None:
        if task.cancelled() or task.exception() is not None:
            acceptor.decline()

    def _on_resolved(self, future: asyncio.Future) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if not future.cancelled():
            logger.debug("[%s] Short url: %s", self._request_id, future.result())


async def shorten(
    router: EventRouter,
    url: str,
    timeout: float = DEFAULT_SHORTEN_TIMEOUT,
    request_id: str = "-",
) -> str | None:
    """Convenience wrapper: run one ShortenRace and return its outcome."""
    return await ShortenRace(router, url, timeout=timeout, request_id=request_id).result()
