"""RequestContext -- per-URL processing state."""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import uuid4

from core.models.messages import ChatMessage
from core.protocols import OutboundSink


@dataclass(frozen=True)
class RequestContext:
    """Binds one URL occurrence to the message it came from and the sink
    replies go to.

    A new context is built for every URL, even when one message carries
    several. It lives until the final reply is sent or the chain aborts.
    """

    origin: ChatMessage
    sink: OutboundSink
    request_id: str = field(default_factory=lambda: uuid4().hex[:12])

    async def reply(self, text: str) -> None:
        """Send text back to the channel the origin message came from."""
        await self.sink.send_text(
            text,
            channel_id=self.origin.channel_id,
            adapter=self.origin.source,
        )
