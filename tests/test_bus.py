import asyncio
import logging

import pytest

from core.bus import EventRouter
from core.errors import RegistryFrozenError


def test_emit_calls_listeners_in_registration_order():
    router = EventRouter()
    calls = []
    router.register("url.host.all", lambda url: calls.append(("first", url)))
    router.register("url.host.all", lambda url: calls.append(("second", url)))

    router.emit("url.host.all", "http://example.com/")

    assert calls == [("first", "http://example.com/"), ("second", "http://example.com/")]


def test_has_listeners_and_summary():
    router = EventRouter()
    assert not router.has_listeners("url.host.example.com")

    router.register("url.host.example.com", lambda *a: None)

    assert router.has_listeners("url.host.example.com")
    assert router.summary() == {"url.host.example.com": 1}


def test_emit_without_listeners_is_a_noop():
    assert EventRouter().emit("url.shorten.all", "x") == []


def test_listener_exception_propagates_and_stops_emission():
    router = EventRouter()
    calls = []

    def boom(*args):
        raise RuntimeError("listener broke")

    router.register("evt", boom)
    router.register("evt", lambda *a: calls.append(a))

    with pytest.raises(RuntimeError, match="listener broke"):
        router.emit("evt", 1)
    assert calls == []


def test_frozen_router_rejects_changes():
    router = EventRouter()
    listener = lambda *a: None  # noqa: E731
    router.register("evt", listener)
    router.freeze()

    with pytest.raises(RegistryFrozenError):
        router.register("evt", listener)
    with pytest.raises(RegistryFrozenError):
        router.unregister("evt", listener)
    assert router.has_listeners("evt")


def test_unregister_removes_listener():
    router = EventRouter()
    listener = lambda *a: None  # noqa: E731
    router.register("evt", listener)
    router.unregister("evt", listener)
    assert not router.has_listeners("evt")
    assert router.summary() == {}


def test_async_listeners_are_scheduled_and_returned():
    router = EventRouter()
    seen = []

    async def listener(value):
        seen.append(value)
        return value * 2

    router.register("evt", listener)

    async def scenario():
        tasks = router.emit("evt", 21)
        assert len(tasks) == 1
        assert seen == []  # scheduled, not run inline
        return await tasks[0]

    assert asyncio.run(scenario()) == 42
    assert seen == [21]


def test_async_listener_failure_is_logged(caplog):
    router = EventRouter()

    async def listener():
        raise ValueError("async failure")

    router.register("evt", listener)

    async def scenario():
        tasks = router.emit("evt")
        await asyncio.gather(*tasks, return_exceptions=True)
        await asyncio.sleep(0)

    with caplog.at_level(logging.ERROR, logger="core.bus"):
        asyncio.run(scenario())

    assert "Listener for evt failed" in caplog.text
