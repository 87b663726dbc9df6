"""MessageAssembler -- turns a finished URL chain into one chat message."""

from __future__ import annotations

import logging

from core.models.context import RequestContext
from core.models.urls import FetchResult, UrlInfo
from core.protocols import UrlHandler
from urlwatch.handler import DefaultUrlHandler

logger = logging.getLogger(__name__)


class MessageAssembler:
    """Combines fetch data and the shorten outcome through a UrlHandler.

    A configured handler that raises is replaced, for that message, by the
    default pattern; the URL is still answered.
    """

    def __init__(self, handler: UrlHandler) -> None:
        self._handler = handler
        self._fallback = DefaultUrlHandler()

    @property
    def handler(self) -> UrlHandler:
        return self._handler

    def assemble(self, url: str, result: FetchResult, short_url: str | None) -> str:
        info = UrlInfo.from_fetch(url, result, short_url)
        if isinstance(self._handler, DefaultUrlHandler):
            return self._handler.handle(info)
        try:
            return self._handler.handle(info)
        except Exception:
            logger.exception(
                "Handler %s failed for %s; using the default format",
                type(self._handler).__name__,
                url,
            )
            return self._fallback.handle(info)

    async def deliver(
        self,
        context: RequestContext,
        url: str,
        result: FetchResult,
        short_url: str | None,
    ) -> str:
        """Assemble the message and send it to the context's sink."""
        text = self.assemble(url, result, short_url)
        logger.debug("[%s] Sending message: %s", context.request_id, text)
        await context.reply(text)
        return text
