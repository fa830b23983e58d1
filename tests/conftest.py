import asyncio

import pytest

from radio_metadata import log as log_module


class FakeStation:
    """Local TCP server answering each connection with the next canned response."""

    def __init__(self, *responses, hold_open=False):
        self.responses = list(responses)
        self.requests = []
        self.hold_open = hold_open
        self.server = None
        self.port = None

    async def _handle(self, reader, writer):
        try:
            self.requests.append(await reader.readuntil(b"\r\n\r\n"))
            if self.responses:
                writer.write(self.responses.pop(0))
                await writer.drain()
            if self.hold_open:
                await reader.read()
        except (OSError, asyncio.IncompleteReadError):
            pass
        finally:
            writer.close()

    async def __aenter__(self):
        self.server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        self.port = self.server.sockets[0].getsockname()[1]
        return self

    async def __aexit__(self, *exc):
        self.server.close()
        await self.server.wait_closed()

    @property
    def url(self):
        return f"http://127.0.0.1:{self.port}/stream"


def icy_frame(text: bytes) -> bytes:
    blocks = -(-len(text) // 16)
    return bytes([blocks]) + text.ljust(blocks * 16, b"\x00")


@pytest.fixture
def log_records(monkeypatch):
    records = []

    def record(msg, color=None, level="info"):
        records.append((level, msg))

    monkeypatch.setattr("radio_metadata.http_fetchers.log", record)
    monkeypatch.setattr("radio_metadata.icy_reader.log", record)
    return records


@pytest.fixture(autouse=True)
def quiet_log():
    log_module.configure(debug=False, timestamps=False)
    yield
    log_module.configure(debug=False, timestamps=False)
