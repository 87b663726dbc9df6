import asyncio

from aiohttp import test_utils

from core.bus import EventRouter
from core.registry import PluginRegistry
from server import create_app
from urlwatch.dispatch import UrlPlugin


def _run_with_client(scenario, fetcher, sink):
    router = EventRouter()
    observed = []
    router.register("url.host.all", lambda url, origin, out: observed.append((url, origin)))
    router.freeze()
    plugin = UrlPlugin(router=router, fetcher=fetcher)
    app = create_app(plugin=plugin, router=router, registry=PluginRegistry(), sink=sink)

    async def runner():
        client = test_utils.TestClient(test_utils.TestServer(app))
        await client.start_server()
        try:
            result = await scenario(client)
            await plugin.wait_idle()
            return result
        finally:
            await client.close()

    return asyncio.run(runner()), observed


def test_health(fetcher, sink):
    async def scenario(client):
        response = await client.get("/health")
        return response.status, await response.json()

    (status, body), _ = _run_with_client(scenario, fetcher, sink)

    assert status == 200
    assert body["status"] == "ok"
    assert body["listeners"] == {"url.host.all": 1}
    assert body["pending"] == 0


def test_post_message_processes_urls(fetcher, sink):
    async def scenario(client):
        response = await client.post(
            "/messages",
            json={"text": "look at example.com", "channel_id": "#links", "from_user": "bob"},
        )
        return response.status, await response.json()

    (status, body), observed = _run_with_client(scenario, fetcher, sink)

    assert status == 202
    assert body == {"accepted": 1}
    assert fetcher.urls == ["http://example.com/"]
    assert observed[0][0] == "http://example.com/"
    assert observed[0][1].from_user == "bob"
    assert sink.sent == [("[ http://example.com/ ] Example Page (200, 0.25s)", "#links", "webhook")]


def test_post_message_validation(fetcher, sink):
    async def scenario(client):
        bad_json = await client.post(
            "/messages", data="{not json", headers={"Content-Type": "application/json"}
        )
        missing_text = await client.post("/messages", json={"channel_id": "x"})
        not_a_dict = await client.post("/messages", json=["text"])
        return bad_json.status, missing_text.status, not_a_dict.status

    (statuses, _) = _run_with_client(scenario, fetcher, sink)

    assert statuses == (400, 400, 400)
    assert fetcher.urls == []


def test_state_endpoints(fetcher, sink):
    async def scenario(client):
        plugins = await (await client.get("/state/plugins")).json()
        listeners = await (await client.get("/state/listeners")).json()
        return plugins, listeners

    (plugins, listeners), _ = _run_with_client(scenario, fetcher, sink)

    assert plugins == {}
    assert listeners == {"url.host.all": 1}
