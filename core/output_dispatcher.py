"""OutputDispatcher -- the OutboundSink that replies go through.

A reply is sent via the output adapter the message came in on. Messages
from sources without a matching output (e.g. the webhook) go to every
registered output.
"""

from __future__ import annotations

import logging

from core.registry import PluginRegistry

logger = logging.getLogger(__name__)


class OutputDispatcher:
    def __init__(self, registry: PluginRegistry) -> None:
        self._registry = registry

    async def send_text(
        self,
        text: str,
        channel_id: str | None = None,
        adapter: str | None = None,
    ) -> None:
        text = (text or "").strip()
        if not text:
            logger.debug("Dropping empty reply for channel %s", channel_id)
            return

        delivered = 0
        for output in self._registry.outputs_for(adapter):
            try:
                await output.send_text(text, channel_id=channel_id)
            except Exception:
                logger.exception("Failed delivering message via %s", output.name)
            else:
                delivered += 1

        if not delivered:
            logger.warning(
                "No output adapters delivered message (adapter=%s channel_id=%s)",
                adapter,
                channel_id,
            )
