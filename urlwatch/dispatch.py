"""UrlPlugin -- per-URL dispatch between host overrides and the generic pipeline.

For every URL found in a chat message:

1. Discard it if it has neither host nor path.
2. Rewrite bare ``domain.tld/path`` input as ``http://domain.tld/path/``.
3. If anything listens on ``url.host.<host>``, hand the URL over to it and
   skip the generic pipeline.
4. Otherwise (unless host_url_emits_only is set) run the generic pipeline in
   the background: fetch -> shorten race -> assemble -> reply.
5. Broadcast ``url.host.all`` to passive observers, always, exactly once.

Steps 3-4 always complete before step 5.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from core.bus import EventRouter
from core.config import UrlConfig, load_component
from core.models.context import RequestContext
from core.models.messages import ChatMessage
from core.models.urls import FetchResult
from core.protocols import Fetcher, OutboundSink, UrlFilter, UrlHandler
from urlwatch.assembler import MessageAssembler
from urlwatch.extractor import extract_urls
from urlwatch.filters import UrlEvent
from urlwatch.handler import DefaultUrlHandler
from urlwatch.host import HOST_ALL_EVENT, host_event, host_of, split_url
from urlwatch.shorten import DEFAULT_SHORTEN_TIMEOUT, ShortenRace

logger = logging.getLogger(__name__)


def normalize_url(url: str) -> str | None:
    """Return the URL to dispatch, or None if it is not a usable URL.

    Scheme-less ``host:port`` input (``example.com:8080/page``) gets
    ``http://`` in front. Otherwise a URL that parses to nothing but a path
    (``example.com/page``) is read as a bare host: ``http://`` is prefixed
    and ``/`` appended. This is a lossy heuristic for dotless or odd paths.
    """
    parts = split_url(url)
    if parts is None:
        return None
    if not parts.netloc and not parts.path:
        return None

    if not parts.netloc and "://" not in url:
        with_port = split_url(f"http://{url}")
        if with_port is not None and with_port.hostname and with_port.port is not None:
            return f"http://{url}"

    if not parts.scheme and not parts.netloc:
        if not (parts.query or parts.fragment):
            return f"http://{parts.path}/"
        return f"http://{url}"
    return url


class UrlPlugin:
    """Watches chat messages for URLs and describes them.

    Usage:
        plugin = UrlPlugin(router=router, fetcher=HttpFetcher())
        await plugin.handle_message(message, sink)
    """

    def __init__(
        self,
        router: EventRouter,
        fetcher: Fetcher,
        handler: UrlHandler | None = None,
        url_filter: UrlFilter | None = None,
        shorten_timeout: float = DEFAULT_SHORTEN_TIMEOUT,
        host_url_emits_only: bool = False,
        extractor: Callable[[str], list[str]] = extract_urls,
    ) -> None:
        self._router = router
        self._fetcher = fetcher
        self._assembler = MessageAssembler(handler or DefaultUrlHandler())
        self._filter = url_filter
        self._shorten_timeout = shorten_timeout
        self._host_url_emits_only = host_url_emits_only
        self._extractor = extractor
        self._pending: set[asyncio.Task] = set()

    @classmethod
    def from_config(cls, config: UrlConfig, router: EventRouter, fetcher: Fetcher) -> UrlPlugin:
        """Build the plugin from validated config.

        A handler or filter that cannot be loaded, or does not implement its
        protocol, is replaced by the default (DefaultUrlHandler / no filter).
        """
        handler = load_component(config.handler, UrlHandler, "url handler")
        url_filter = load_component(config.filter, UrlFilter, "url filter")
        return cls(
            router=router,
            fetcher=fetcher,
            handler=handler,
            url_filter=url_filter,
            shorten_timeout=config.shorten_timeout,
            host_url_emits_only=config.host_url_emits_only,
        )

    @property
    def handler(self) -> UrlHandler:
        return self._assembler.handler

    @property
    def pending(self) -> int:
        """Number of generic pipelines still running."""
        return len(self._pending)

    # ------------------------------------------------------------------
    # Inbound messages
    # ------------------------------------------------------------------

    async def handle_message(self, message: ChatMessage, sink: OutboundSink) -> int:
        """Process every URL in a chat message. Returns how many were handled."""
        handled = 0
        for url in self._extractor(message.text):
            if self._suppressed(url, message):
                logger.debug("Filtered url: %s", url)
                continue
            context = RequestContext(origin=message, sink=sink)
            if self.handle_url(url, context):
                handled += 1
        return handled

    def _suppressed(self, url: str, message: ChatMessage) -> bool:
        if self._filter is None:
            return False
        try:
            return self._filter.filter(UrlEvent(url=url, origin=message)) is False
        except Exception:
            logger.exception("URL filter failed for %s; letting it through", url)
            return False

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def handle_url(self, url: str, context: RequestContext) -> bool:
        """Dispatch one URL. Returns False if it is not a usable URL."""
        normalized = normalize_url(url)
        if normalized is None:
            logger.debug("[%s] Ignoring non-url: %s", context.request_id, url)
            return False

        logger.debug("[%s] Found url: %s", context.request_id, url)
        if normalized != url:
            logger.debug("[%s] Corrected url: %s", context.request_id, normalized)
        url = normalized

        if not self._emit_host_event(url, context) and not self._host_url_emits_only:
            self._start_pipeline(url, context)

        logger.debug("[%s] Emitting: %s", context.request_id, HOST_ALL_EVENT)
        self._emit_safely(HOST_ALL_EVENT, url, context)
        return True

    def _emit_host_event(self, url: str, context: RequestContext) -> bool:
        """Emit url.host.<host> if anyone listens. Returns True if it did."""
        name = host_event(host_of(url))
        if not self._router.has_listeners(name):
            return False

        logger.debug("[%s] Emitting: %s", context.request_id, name)
        self._emit_safely(name, url, context)
        return True

    def _emit_safely(self, name: str, url: str, context: RequestContext) -> None:
        try:
            self._router.emit(name, url, context.origin, context.sink)
        except Exception:
            logger.exception("[%s] Listener for %s failed", context.request_id, name)

    # ------------------------------------------------------------------
    # Generic pipeline
    # ------------------------------------------------------------------

    def _start_pipeline(self, url: str, context: RequestContext) -> None:
        logger.debug("[%s] Starting fetch: %s", context.request_id, url)
        task = asyncio.create_task(self._run_pipeline(url, context))
        self._pending.add(task)
        task.add_done_callback(lambda t: self._on_pipeline_done(t, context))

    async def _run_pipeline(self, url: str, context: RequestContext) -> str:
        try:
            result = await self._fetcher.fetch(url)
        except Exception as exc:
            logger.exception("[%s] Fetcher failed for %s", context.request_id, url)
            result = FetchResult.failed(str(exc) or type(exc).__name__)

        logger.debug(
            "[%s] Download complete (after %.2fs): %d, %d bytes",
            context.request_id,
            result.elapsed,
            result.status,
            len(result.body),
        )

        short_url = await ShortenRace(
            self._router,
            url,
            timeout=self._shorten_timeout,
            request_id=context.request_id,
        ).result()

        return await self._assembler.deliver(context, url, result, short_url)

    def _on_pipeline_done(self, task: asyncio.Task, context: RequestContext) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "[%s] URL pipeline failed",
                context.request_id,
                exc_info=(type(exc), exc, exc.__traceback__),
            )

    async def wait_idle(self) -> None:
        """Wait until every running pipeline has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        """Cancel running pipelines."""
        for task in list(self._pending):
            task.cancel()
        await self.wait_idle()
