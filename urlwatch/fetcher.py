"""HTTP fetcher -- default Fetcher implementation on top of httpx."""

from __future__ import annotations

import logging
import time

import httpx

from core.models.urls import FetchResult

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "linkpeek/0.1 (+url preview bot)"


class HttpFetcher:
    """Fetches URLs with a shared httpx.AsyncClient.

    Only the first `max_body_bytes` of a body are kept; that is enough to
    find a page title without downloading large files.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        max_body_bytes: int = 256 * 1024,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._max_body_bytes = max_body_bytes
        self._client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": user_agent},
            transport=transport,
        )

    async def fetch(self, url: str) -> FetchResult:
        start = time.monotonic()
        try:
            async with self._client.stream("GET", url) as response:
                body = await self._read_limited(response)
                headers: dict[str, list[str]] = {}
                for key, value in response.headers.multi_items():
                    headers.setdefault(key.lower(), []).append(value)
                status = response.status_code
        except httpx.HTTPError as exc:
            elapsed = time.monotonic() - start
            logger.info("Fetch failed for %s after %.2fs: %s", url, elapsed, exc)
            return FetchResult.failed(str(exc) or type(exc).__name__, elapsed=elapsed)

        elapsed = time.monotonic() - start
        logger.debug("Fetched %s: %d (%d bytes, %.2fs)", url, status, len(body), elapsed)
        return FetchResult(body=body, headers=headers, status=status, elapsed=elapsed)

    async def _read_limited(self, response: httpx.Response) -> bytes:
        chunks: list[bytes] = []
        size = 0
        async for chunk in response.aiter_bytes():
            chunks.append(chunk)
            size += len(chunk)
            if size >= self._max_body_bytes:
                break
        return b"".join(chunks)[: self._max_body_bytes]

    async def close(self) -> None:
        await self._client.aclose()
