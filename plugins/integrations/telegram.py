"""Telegram integration -- chat transport for linkpeek.

Reads group and private chat messages through Bot API long polling and
hands each one, as a ChatMessage, to the URL plugin. Previews are posted
back to the chat the link appeared in.

The integration never looks at message content beyond text/caption.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

import httpx

from core.errors import LinkpeekError
from core.models.messages import ChatMessage

logger = logging.getLogger(__name__)

PLUGIN_META = {
    "name": "telegram",
    "display_name": "Telegram",
    "description": "Preview links posted in Telegram chats",
    "category": "integration",
    "protocols": ["input", "output"],
    "class_name": "TelegramIntegration",
    "pip_dependencies": [],
    "setup_instructions": """
Create a bot with @BotFather (/newbot) and copy its token.
Turn privacy mode off (/setprivacy -> Disable), otherwise the bot only
sees commands in groups. Invite it to the chats to watch.
Chat ids show up in https://api.telegram.org/bot<TOKEN>/getUpdates
after someone writes in the chat.
""",
    "config_fields": [
        {
            "key": "bot_token",
            "label": "Bot token",
            "type": "secret",
            "required": True,
            "env_var": "TELEGRAM_BOT_TOKEN",
            "description": "Token issued by @BotFather",
            "placeholder": "123456789:AAH...",
        },
        {
            "key": "chat_ids",
            "label": "Watched chats",
            "type": "list",
            "required": False,
            "default": [],
            "description": "Only these chat ids are watched; empty watches every chat",
            "placeholder": "-1001234567890",
        },
    ],
}

MessageCallback = Callable[[ChatMessage], Awaitable[None]]

_BOT_API = "https://api.telegram.org/bot{token}/{method}"
_POLL_SECONDS = 30
_RETRY_DELAY = 5.0
# Telegram rejects texts over 4096 characters.
_CHUNK_CHARS = 4000


class TelegramApiError(LinkpeekError):
    """The Bot API answered with ok=false."""

    def __init__(self, method: str, payload: dict) -> None:
        self.method = method
        self.retry_after = (payload.get("parameters") or {}).get("retry_after")
        super().__init__(f"{method}: {payload.get('description', 'unknown error')}")


class TelegramIntegration:
    """InputAdapter + OutputAdapter over the Telegram Bot API."""

    def __init__(
        self,
        bot_token: str,
        chat_ids: list[str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token = bot_token
        self._watched = {str(chat_id) for chat_id in chat_ids or []}
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(10.0, read=_POLL_SECONDS + 10.0),
            transport=transport,
        )
        self._callbacks: list[MessageCallback] = []
        self._offset = 0
        self._poller: asyncio.Task | None = None

    @property
    def name(self) -> str:
        return "telegram"

    # ------------------------------------------------------------------
    # InputAdapter protocol
    # ------------------------------------------------------------------

    def on_message(self, callback: MessageCallback) -> None:
        self._callbacks.append(callback)

    async def start(self) -> None:
        if self._poller is not None:
            return
        self._poller = asyncio.create_task(self._poll_forever())
        logger.info(
            "Telegram polling started (%s)",
            ", ".join(sorted(self._watched)) if self._watched else "all chats",
        )

    async def stop(self) -> None:
        if self._poller is not None:
            self._poller.cancel()
            await asyncio.gather(self._poller, return_exceptions=True)
            self._poller = None
        await self._client.aclose()
        logger.info("Telegram integration stopped")

    async def _poll_forever(self) -> None:
        while True:
            try:
                for update in await self._next_updates():
                    await self.process_update(update)
            except TelegramApiError as e:
                delay = e.retry_after or _RETRY_DELAY
                logger.warning("Telegram %s; retrying in %ss", e, delay)
                await asyncio.sleep(delay)
            except httpx.HTTPError as e:
                logger.warning("Telegram polling failed: %s", e)
                await asyncio.sleep(_RETRY_DELAY)

    async def _next_updates(self) -> list[dict]:
        updates = await self._call(
            "getUpdates",
            offset=self._offset,
            timeout=_POLL_SECONDS,
            allowed_updates=["message"],
        )
        if updates:
            # Acknowledge everything received so far on the next call.
            self._offset = updates[-1]["update_id"] + 1
        return updates

    async def process_update(self, update: dict) -> None:
        """Turn one update into a ChatMessage and run the callbacks."""
        message = update.get("message") or {}
        text = message.get("text") or message.get("caption")
        if not text:
            return

        chat_id = str((message.get("chat") or {}).get("id", ""))
        if self._watched and chat_id not in self._watched:
            logger.debug("Ignoring message from unwatched chat %s", chat_id)
            return

        sender = message.get("from") or {}
        sent = message.get("date")
        chat_message = ChatMessage(
            text=text,
            channel_id=chat_id,
            from_user=sender.get("username") or sender.get("first_name") or "unknown",
            source=self.name,
            timestamp=(
                datetime.fromtimestamp(sent, tz=timezone.utc)
                if sent
                else datetime.now(timezone.utc)
            ),
        )

        for callback in self._callbacks:
            try:
                await callback(chat_message)
            except Exception:
                logger.exception("Error in Telegram message callback")

    # ------------------------------------------------------------------
    # OutputAdapter protocol
    # ------------------------------------------------------------------

    async def send_text(self, text: str, channel_id: str | None = None) -> None:
        """Post text to one chat, or to every watched chat without a target."""
        chats = [channel_id] if channel_id else sorted(self._watched)
        if not chats:
            logger.warning("Telegram reply has no target chat; dropped")
            return

        for chat_id in chats:
            for start in range(0, len(text), _CHUNK_CHARS):
                await self._call(
                    "sendMessage",
                    chat_id=chat_id,
                    text=text[start:start + _CHUNK_CHARS],
                    disable_web_page_preview=True,
                )

    async def _call(self, method: str, **payload: Any) -> Any:
        """POST a Bot API method and return its `result`."""
        response = await self._client.post(
            _BOT_API.format(token=self._token, method=method), json=payload
        )
        data = response.json()
        if not data.get("ok"):
            raise TelegramApiError(method, data)
        return data.get("result")
