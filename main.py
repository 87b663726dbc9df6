"""linkpeek entrypoint.

Builds the listener router, the URL plugin and every enabled shortener and
chat integration from config.yaml, freezes the router, then serves until
SIGINT/SIGTERM.

Usage:
    linkpeek
    linkpeek --config ./config.yaml --env ./.env
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from typing import Any, Callable

from aiohttp import web

from core.bus import EventRouter
from core.config import AppConfig, ShortenerConfig, load_config
from core.errors import ConfigError
from core.models.messages import ChatMessage
from core.output_dispatcher import OutputDispatcher
from core.registry import PluginRegistry
from server import create_app
from urlwatch.dispatch import UrlPlugin
from urlwatch.fetcher import HttpFetcher

logger = logging.getLogger("linkpeek")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    # Per-request access lines from the HTTP libraries drown the URL logs.
    for noisy in ("aiohttp.access", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="linkpeek",
        description="Reply to links posted in chat with a title, status and short URL.",
    )
    parser.add_argument(
        "-c", "--config",
        metavar="PATH",
        help="config.yaml to use (default: $LINKPEEK_HOME/config.yaml or ~/.linkpeek/config.yaml)",
    )
    parser.add_argument(
        "--env",
        metavar="PATH",
        help=".env file with secrets (default: next to config.yaml in the home directory)",
    )
    return parser.parse_args(argv)


# ---------------------------------------------------------------------------
# Plugin factories
# ---------------------------------------------------------------------------

def _isgd(options: ShortenerConfig) -> Any:
    from plugins.shorteners.isgd import IsGdShortener

    return IsGdShortener(hosts=options.hosts, timeout=options.timeout)


def _telegram(options: dict[str, Any]) -> Any:
    from plugins.integrations.telegram import TelegramIntegration

    return TelegramIntegration(
        bot_token=options["bot_token"],
        chat_ids=options.get("chat_ids") or [],
    )


SHORTENERS: dict[str, Callable[[ShortenerConfig], Any]] = {"isgd": _isgd}
INTEGRATIONS: dict[str, Callable[[dict[str, Any]], Any]] = {"telegram": _telegram}


def load_shorteners(config: AppConfig, router: EventRouter, registry: PluginRegistry) -> None:
    """Subscribe every enabled shortener to its shorten events."""
    for name, options in config.shorteners.items():
        if not options.enabled:
            continue
        factory = SHORTENERS.get(name)
        if factory is None:
            logger.warning("Unknown shortener '%s' in config; skipped", name)
            continue
        try:
            shortener = factory(options)
            shortener.subscribe(router)
            registry.register("shortener", shortener)
        except Exception:
            logger.exception("Could not load shortener %s", name)


def load_integrations(
    config: AppConfig,
    registry: PluginRegistry,
    plugin: UrlPlugin,
    sink: OutputDispatcher,
) -> None:
    """Register every enabled chat integration as input and output."""

    async def on_chat_message(message: ChatMessage) -> None:
        await plugin.handle_message(message, sink)

    for name, options in config.integrations.items():
        if not isinstance(options, dict) or not options.get("enabled", False):
            continue
        factory = INTEGRATIONS.get(name)
        if factory is None:
            logger.warning("Unknown integration '%s' in config; skipped", name)
            continue
        try:
            integration = factory(options)
            integration.on_message(on_chat_message)
            registry.register("input", integration)
            registry.register("output", integration)
        except Exception:
            logger.exception("Could not load integration %s", name)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

def _stop_on_signals(stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            # No signal handlers on this platform or thread; Ctrl+C still
            # cancels the main task.
            pass


async def run(config_path: str | None = None, env_path: str | None = None) -> None:
    config = load_config(config_path=config_path, env_path=env_path)
    setup_logging(config.logging.level)
    logger.info("linkpeek home: %s", config.home_path)

    router = EventRouter()
    registry = PluginRegistry()
    sink = OutputDispatcher(registry=registry)
    fetcher = HttpFetcher(
        timeout=config.url.fetch.timeout,
        max_body_bytes=config.url.fetch.max_body_bytes,
        user_agent=config.url.fetch.user_agent,
    )
    plugin = UrlPlugin.from_config(config.url, router=router, fetcher=fetcher)
    load_shorteners(config, router, registry)
    load_integrations(config, registry, plugin, sink)

    router.freeze()
    logger.info("Plugins: %s", registry.summary() or "none")
    logger.info("Listeners: %s", router.summary() or "none")

    started = []
    for integration in registry.get_all("input"):
        try:
            await integration.start()
            started.append(integration)
        except Exception:
            logger.exception("Could not start integration %s", integration.name)

    runner: web.AppRunner | None = None
    if config.server.enabled:
        runner = web.AppRunner(create_app(plugin=plugin, router=router, registry=registry, sink=sink))
        await runner.setup()
        await web.TCPSite(runner, config.server.host, config.server.port).start()
        logger.info("HTTP API on http://%s:%d", config.server.host, config.server.port)

    stop = asyncio.Event()
    _stop_on_signals(stop)
    try:
        await stop.wait()
    finally:
        logger.info("Shutting down...")
        await _shutdown(started, plugin, fetcher, registry, runner)
        logger.info("Shutdown complete")


async def _shutdown(
    inputs: list[Any],
    plugin: UrlPlugin,
    fetcher: HttpFetcher,
    registry: PluginRegistry,
    runner: web.AppRunner | None,
) -> None:
    for integration in inputs:
        try:
            await integration.stop()
        except Exception:
            logger.exception("Error stopping integration %s", integration.name)

    await plugin.close()
    await fetcher.close()
    for shortener in registry.get_all("shortener"):
        await shortener.close()
    if runner is not None:
        await runner.cleanup()


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging("INFO")
    try:
        asyncio.run(run(config_path=args.config, env_path=args.env))
    except ConfigError as e:
        logger.error("%s", e)
        raise SystemExit(2) from None
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
