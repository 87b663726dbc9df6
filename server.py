"""Lightweight aiohttp server -- health, state and a message webhook.

POST /messages lets any chat bridge hand linkpeek a message without a
dedicated integration plugin. Replies go out through the output dispatcher.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from aiohttp import web

from core.models.messages import ChatMessage

if TYPE_CHECKING:
    from core.bus import EventRouter
    from core.protocols import OutboundSink
    from core.registry import PluginRegistry
    from urlwatch.dispatch import UrlPlugin

logger = logging.getLogger(__name__)


def create_app(
    plugin: UrlPlugin,
    router: EventRouter,
    registry: PluginRegistry,
    sink: OutboundSink,
) -> web.Application:
    """Create and configure the aiohttp application."""
    app = web.Application()

    # Store references for route handlers
    app["plugin"] = plugin
    app["router"] = router
    app["registry"] = registry
    app["sink"] = sink

    # Register routes
    app.router.add_get("/health", handle_health)
    app.router.add_post("/messages", handle_post_message)
    app.router.add_get("/state/plugins", handle_get_plugins)
    app.router.add_get("/state/listeners", handle_get_listeners)

    return app


# ---------------------------------------------------------------------------
# Route handlers
# ---------------------------------------------------------------------------

async def handle_health(request: web.Request) -> web.Response:
    """GET /health -- health check."""
    registry: PluginRegistry = request.app["registry"]
    router: EventRouter = request.app["router"]
    plugin: UrlPlugin = request.app["plugin"]
    return web.json_response({
        "status": "ok",
        "plugins": registry.summary(),
        "listeners": router.summary(),
        "pending": plugin.pending,
    })


async def handle_post_message(request: web.Request) -> web.Response:
    """POST /messages -- process a chat message.

    Body: {"text": "...", "channel_id": "...", "from_user": "...", "adapter": "..."}
    """
    plugin: UrlPlugin = request.app["plugin"]
    sink: OutboundSink = request.app["sink"]

    try:
        body = await request.json()
    except json.JSONDecodeError:
        return web.json_response({"error": "Invalid JSON"}, status=400)

    if not isinstance(body, dict) or not str(body.get("text") or "").strip():
        return web.json_response(
            {"error": "Missing required field: text"},
            status=400,
        )

    message = ChatMessage(
        text=str(body["text"]),
        channel_id=str(body.get("channel_id") or "default"),
        from_user=str(body.get("from_user") or "webhook"),
        source=str(body.get("adapter") or "webhook"),
    )
    accepted = await plugin.handle_message(message, sink)
    logger.info("Webhook message from %s: %d url(s)", message.from_user, accepted)

    return web.json_response({"accepted": accepted}, status=202)


async def handle_get_plugins(request: web.Request) -> web.Response:
    """GET /state/plugins -- list all registered plugins."""
    registry: PluginRegistry = request.app["registry"]
    return web.json_response(registry.summary())


async def handle_get_listeners(request: web.Request) -> web.Response:
    """GET /state/listeners -- listener count per event name."""
    router: EventRouter = request.app["router"]
    return web.json_response(router.summary())
