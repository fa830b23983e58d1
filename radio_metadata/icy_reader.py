"""
In-band ICY metadata.

The stream is requested with `Icy-MetaData: 1`; the server then interleaves
a metadata frame after every `icy-metaint` bytes of audio:

    <interval bytes of audio><1 byte: length / 16><length bytes: StreamTitle='...';StreamUrl='...';>

Only enough of the stream is read to reach the first frame(s) carrying a
StreamTitle, then the connection is dropped.
"""
import asyncio
from dataclasses import dataclass

from .errors import (
    ConnectFailure,
    MetadataError,
    ParseFailure,
    ProtocolOutOfRange,
    ReadTimeout,
    RedirectExhausted,
)
from .http_fetchers import USER_AGENT
from .log import log
from .text import clean_title, decode_text, find_following
from .url import StreamEndpoint, decompose

TIMEOUT = 10
HEAD_CHUNK = 1024
HEAD_LIMIT = 16 * 1024
MAX_INTERVAL = 64 * 1024
SKIP_CHUNK = 4096


@dataclass
class IcyResponse:
    status_line: str
    headers: list
    body: bytes  # audio already pulled off the wire together with the head


class IcyFrameReader:
    """Walks the metadata frames of a stream whose head has been read.

    `consumed` is the number of body bytes that arrived in the same reads as
    the response head. They count towards the first audio interval, so the
    first skip is `interval - consumed`; every later skip is `interval`.
    """

    def __init__(self, reader: asyncio.StreamReader, interval: int, body: bytes, timeout: float = TIMEOUT):
        self._reader = reader
        self._timeout = timeout
        self.interval = interval
        self.consumed = len(body)
        # the first frame may already sit inside the prefetched body
        self._pending = body[interval:]

    def bytes_to_skip(self, attempt: int) -> int:
        if attempt == 0:
            return max(self.interval - self.consumed, 0)
        return self.interval

    async def _read(self, count: int) -> bytes:
        data = self._pending[:count]
        self._pending = self._pending[count:]
        if len(data) < count:
            data += await _with_timeout(self._reader.readexactly(count - len(data)), self._timeout)
        return data

    async def skip_audio(self, attempt: int):
        to_skip = self.bytes_to_skip(attempt)
        if to_skip and self._pending:
            dropped = self._pending[:to_skip]
            self._pending = self._pending[to_skip:]
            to_skip -= len(dropped)
        while to_skip > 0:
            chunk = await _with_timeout(self._reader.read(min(SKIP_CHUNK, to_skip)), self._timeout)
            if not chunk:
                raise ParseFailure("stream ended inside the audio interval")
            to_skip -= len(chunk)

    async def read_metadata_block(self) -> bytes | None:
        meta_length = (await self._read(1))[0] * 16
        if meta_length == 0:
            return None
        return await self._read(meta_length)


async def _with_timeout(awaitable, timeout):
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError as e:
        raise ReadTimeout(f"no data within {timeout}s") from e
    except asyncio.IncompleteReadError as e:
        raise ParseFailure(f"stream ended after {len(e.partial)} of {e.expected} bytes") from e


def parse_stream_title(block: bytes) -> str | None:
    metadatas = decode_text(block).rstrip("\x00").split(";")
    title = find_following(metadatas, "StreamTitle=")
    if title:
        return clean_title(title)
    return None


def parse_interval(headers) -> int:
    value = find_following(headers, "icy-metaint:", ignore_case=True) or "0"
    try:
        interval = int(value.strip())
    except ValueError:
        interval = 0
    if not 0 < interval <= MAX_INTERVAL:
        raise ProtocolOutOfRange(f"icy-metaint {value.strip()!r} outside 1..{MAX_INTERVAL}")
    return interval


def build_request(endpoint: StreamEndpoint, user_agent: str = USER_AGENT) -> bytes:
    request = (
        f"GET {endpoint.pathname} HTTP/1.1\r\n"
        f"Host: {endpoint.hostname}\r\n"
        f"Accept: */*\r\n"
        f"User-Agent: {user_agent}\r\n"
        f"Icy-MetaData: 1\r\n"
        f"Connection: Close\r\n\r\n"
    )
    return request.encode("ascii", errors="ignore")


async def read_response_head(reader: asyncio.StreamReader, timeout: float = TIMEOUT) -> IcyResponse:
    head = b""
    while b"\r\n\r\n" not in head:
        if len(head) >= HEAD_LIMIT:
            raise ParseFailure("response head too long")
        chunk = await _with_timeout(reader.read(HEAD_CHUNK), timeout)
        if not chunk:
            raise ParseFailure("connection closed before the end of the response head")
        head += chunk

    header_block, body = head.split(b"\r\n\r\n", 1)
    headers = header_block.decode("latin1").split("\n")
    return IcyResponse(status_line=headers[0], headers=headers, body=body)


async def _open(endpoint: StreamEndpoint, timeout: float):
    try:
        return await asyncio.wait_for(
            asyncio.open_connection(endpoint.connect_host, endpoint.port, ssl=True if endpoint.use_tls else None),
            timeout,
        )
    except asyncio.TimeoutError as e:
        raise ConnectFailure(f"{endpoint.socket_address}:{endpoint.port}: connect timed out") from e
    except (OSError, ValueError) as e:
        # ValueError: the host name does not survive IDNA encoding
        raise ConnectFailure(f"{endpoint.socket_address}:{endpoint.port}: {e}") from e


async def _close(writer: asyncio.StreamWriter, timeout: float):
    writer.close()
    try:
        await asyncio.wait_for(writer.wait_closed(), timeout)
    except (OSError, asyncio.TimeoutError):
        pass


async def _exchange(endpoint: StreamEndpoint, max_attempts: int, allow_redirect: bool, timeout: float, user_agent: str):
    """One connection: returns (title, None) or (None, redirect location)."""
    reader, writer = await _open(endpoint, timeout)
    try:
        writer.write(build_request(endpoint, user_agent))
        await _with_timeout(writer.drain(), timeout)

        response = await read_response_head(reader, timeout)

        if "200 OK" in response.status_line:
            interval = parse_interval(response.headers)
            frames = IcyFrameReader(reader, interval, response.body, timeout)
            for attempt in range(max_attempts):
                await frames.skip_audio(attempt)
                block = await frames.read_metadata_block()
                if block is None:
                    continue
                title = parse_stream_title(block)
                if title is not None:
                    return title, None
            return None, None

        if "302 Found" in response.status_line:
            if not allow_redirect:
                raise RedirectExhausted(f"{endpoint.hostname}: no redirects left")
            location = find_following(response.headers, "Location: ")
            if location:
                return None, location.rstrip("\r")
            return None, None

        log(f"ICY {endpoint.hostname}: unexpected status {response.status_line.strip()!r}", level="debug")
        return None, None
    finally:
        await _close(writer, timeout)


async def read_icy_title(stream_url: str, max_attempts: int, max_redirect: int, timeout: float = TIMEOUT,
                         user_agent: str = USER_AGENT) -> str | None:
    """Like read_icy_metadata, but an empty StreamTitle comes back as ''."""
    url = stream_url
    redirects_left = max_redirect
    while True:
        try:
            endpoint = decompose(url)
            title, location = await _exchange(endpoint, max_attempts, redirects_left > 0, timeout, user_agent)
        except (MetadataError, OSError) as e:
            log(f"ICY {url}: {e}", level="debug")
            return None

        if location is None:
            return title

        log(f"ICY {url}: redirected to {location}", level="debug")
        url = location
        redirects_left -= 1


async def read_icy_metadata(stream_url: str, max_attempts: int, max_redirect: int, timeout: float = TIMEOUT,
                            user_agent: str = USER_AGENT) -> str | None:
    title = await read_icy_title(stream_url, max_attempts, max_redirect, timeout, user_agent)
    return title or None
