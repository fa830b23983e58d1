import asyncio
import socket

from aiohttp import web

from radio_metadata.http_fetchers import load_from_url, read_icecast_metadata


class StatusServer:
    """Local aiohttp app serving status pages."""

    def __init__(self):
        self.app = web.Application()
        self.app.router.add_get("/status-json.xsl", self.status_json)
        self.app.router.add_get("/slow", self.slow)
        self.user_agents = []
        self.runner = None

    async def status_json(self, request):
        self.user_agents.append(request.headers.get("User-Agent"))
        return web.json_response({"icestats": {"source": {"title": "Local Song"}}})

    async def slow(self, request):
        await asyncio.sleep(1.5)
        return web.Response(text="too late")

    async def __aenter__(self):
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()
        site = web.TCPSite(self.runner, "127.0.0.1", 0)
        await site.start()
        host, port = self.runner.addresses[0][:2]
        self.base = f"http://{host}:{port}"
        return self

    async def __aexit__(self, *exc):
        await self.runner.cleanup()


def unused_port():
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def test_ok_response():
    async def scenario():
        async with StatusServer() as server:
            result = await load_from_url(server.base + "/status-json.xsl", user_agent="Tester/1")
        return result, server.user_agents

    result, user_agents = asyncio.run(scenario())
    assert result.status_code == 200
    assert result.message == "OK"
    assert "Local Song" in result.content
    assert user_agents == ["Tester/1"]


def test_not_found_keeps_status_and_reason():
    async def scenario():
        async with StatusServer() as server:
            return await load_from_url(server.base + "/missing")

    result = asyncio.run(scenario())
    assert result.status_code == 404
    assert result.message == "Not Found"


def test_timeout_is_status_zero():
    async def scenario():
        async with StatusServer() as server:
            return await load_from_url(server.base + "/slow", timeout=0.3)

    result = asyncio.run(scenario())
    assert result == ("", 0, "timed out")


def test_unreachable_port_is_status_zero():
    result = asyncio.run(load_from_url(f"http://127.0.0.1:{unused_port()}/status-json.xsl", timeout=2))
    assert result.content == ""
    assert result.status_code == 0
    assert result.message


def test_unencodable_host_is_status_zero():
    result = asyncio.run(load_from_url("http://" + "a" * 64 + ".example.com/status-json.xsl", timeout=2))
    assert result.status_code == 0
    assert result.message


def test_reader_against_local_server():
    async def scenario():
        async with StatusServer() as server:
            return await read_icecast_metadata(server.base + "/live")

    assert asyncio.run(scenario()) == "Local Song"


def test_unreachable_station_logs_once(log_records):
    port = unused_port()
    url = f"http://127.0.0.1:{port}/live"
    assert asyncio.run(read_icecast_metadata(url)) is None
    assert len(log_records) == 1
    level, message = log_records[0]
    assert level == "debug"
    assert message.startswith(f"Failed to read http://127.0.0.1:{port}/status-json.xsl: 0 ")


def test_unencodable_host_reader_is_none(log_records):
    assert asyncio.run(read_icecast_metadata("http://" + "a" * 64 + ".example.com/stream")) is None
    assert [level for level, _ in log_records] == ["debug"]
