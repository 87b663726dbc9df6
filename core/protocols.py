"""Core protocols -- the extension points of the URL pipeline.

The core imports these protocols. Plugins implement them.
The core NEVER imports concrete implementations.

All protocols use Python's structural subtyping (typing.Protocol):
if your class has the right methods, it implements the protocol.
Configured handlers and filters are checked against them once, when the
configuration is validated.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Coroutine, Protocol, runtime_checkable

if TYPE_CHECKING:
    from core.models.messages import ChatMessage
    from core.models.urls import FetchResult, UrlInfo
    from urlwatch.filters import UrlEvent


# ---------------------------------------------------------------------------
# 1. UrlHandler -- turn fetched URL data into chat text
# ---------------------------------------------------------------------------

@runtime_checkable
class UrlHandler(Protocol):
    """Formats a message describing one URL.

    Default implementation: DefaultUrlHandler (pattern with %placeholders%).
    """

    def handle(self, info: UrlInfo) -> str:
        """Return the chat text for the given URL data."""
        ...


# ---------------------------------------------------------------------------
# 2. UrlFilter -- decide whether a URL is processed at all
# ---------------------------------------------------------------------------

@runtime_checkable
class UrlFilter(Protocol):
    """Optional gate evaluated before dispatch.

    Return False to suppress the URL. True or None let it through.
    """

    def filter(self, event: UrlEvent) -> bool | None:
        ...


# ---------------------------------------------------------------------------
# 3. Fetcher -- retrieve a URL
# ---------------------------------------------------------------------------

@runtime_checkable
class Fetcher(Protocol):
    """Fetches a URL and reports body, headers, status and timing.

    Transport failures are reported as an error-flavored FetchResult,
    never raised.
    """

    async def fetch(self, url: str) -> FetchResult:
        ...


# ---------------------------------------------------------------------------
# 4. OutboundSink -- where replies go
# ---------------------------------------------------------------------------

@runtime_checkable
class OutboundSink(Protocol):
    """Delivers reply text to a chat channel.

    Default implementation: OutputDispatcher (routes through output adapters).
    """

    async def send_text(
        self,
        text: str,
        channel_id: str | None = None,
        adapter: str | None = None,
    ) -> None:
        ...


# ---------------------------------------------------------------------------
# 5. InputAdapter -- receive chat messages
# ---------------------------------------------------------------------------

@runtime_checkable
class InputAdapter(Protocol):
    """Receives chat messages from an external source.

    Examples: Telegram bot, webhook receiver.
    """

    @property
    def name(self) -> str:
        """Unique adapter name, e.g. 'telegram'."""
        ...

    async def start(self) -> None:
        ...

    async def stop(self) -> None:
        ...

    def on_message(self, callback: Callable[[ChatMessage], Coroutine[Any, Any, None]]) -> None:
        """Register a callback invoked for every incoming message."""
        ...


# ---------------------------------------------------------------------------
# 6. OutputAdapter -- send chat messages
# ---------------------------------------------------------------------------

@runtime_checkable
class OutputAdapter(Protocol):
    """Sends plain text to a chat destination."""

    @property
    def name(self) -> str:
        ...

    async def send_text(self, text: str, channel_id: str | None = None) -> None:
        ...
