"""Chat message model -- the inbound event handed to the URL plugin."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    """A text message received from a chat integration.

    Integrations translate their native update format into this model so
    the URL plugin never sees transport-specific payloads.
    """

    text: str
    channel_id: str = "default"
    from_user: str = "unknown"
    source: str = "unknown"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
