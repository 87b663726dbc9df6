"""is.gd shortener -- answers url.shorten.* events with an is.gd link."""

from __future__ import annotations

import logging

import httpx

from core.bus import EventRouter
from urlwatch.host import SHORTEN_ALL_EVENT, host_of, shorten_event
from urlwatch.shorten import ResultAcceptor

logger = logging.getLogger(__name__)

PLUGIN_META = {
    "name": "isgd",
    "display_name": "is.gd",
    "description": "Shorten URLs with the is.gd public API",
    "category": "shortener",
    "protocols": ["shortener"],
    "class_name": "IsGdShortener",
    "pip_dependencies": [],
    "setup_instructions": "No account needed. Enable under shorteners.isgd in config.yaml.",
    "config_fields": [
        {
            "key": "hosts",
            "label": "Hosts",
            "type": "list",
            "required": False,
            "default": [],
            "description": "Only shorten these hosts (empty = all URLs)",
            "placeholder": "example.com, news.example.org",
        },
        {
            "key": "timeout",
            "label": "Request timeout",
            "type": "number",
            "required": False,
            "default": 10,
            "description": "Seconds to wait for is.gd",
            "placeholder": "10",
        },
    ],
}

_API_URL = "https://is.gd/create.php"


class IsGdShortener:
    """Shortener subscriber backed by is.gd."""

    def __init__(
        self,
        hosts: list[str] | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        # Same keys the shorten race looks up: no www., no port, lower case.
        self._hosts = list(dict.fromkeys(filter(None, (host_of(h) for h in hosts or []))))
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @property
    def name(self) -> str:
        return "isgd"

    def subscribe(self, router: EventRouter) -> None:
        """Register for the configured hosts, or for every URL."""
        if not self._hosts:
            router.register(SHORTEN_ALL_EVENT, self.on_shorten)
            return
        for host in self._hosts:
            router.register(shorten_event(host), self.on_shorten)

    async def on_shorten(self, url: str, acceptor: ResultAcceptor) -> None:
        acceptor.accept(await self.shorten(url))

    async def shorten(self, url: str) -> str | None:
        """Return the is.gd link for a URL, or None if is.gd refused."""
        try:
            response = await self._client.get(
                _API_URL, params={"format": "simple", "url": url}
            )
        except httpx.HTTPError as e:
            logger.warning("is.gd request failed for %s: %s", url, e)
            return None

        text = response.text.strip()
        if response.status_code != 200 or not text.startswith("http"):
            logger.info("is.gd refused %s: %d %s", url, response.status_code, text[:100])
            return None
        return text

    async def close(self) -> None:
        await self._client.aclose()
