"""
Out-of-band "now playing" lookups.

SHOUTCAST and Icecast servers publish the current title on a status page
living next to the stream mount point. Each reader derives that URL,
fetches it and parses the server-specific body.
"""
import asyncio
import json
import re
import xml.etree.ElementTree as ET
from typing import Awaitable, Callable, NamedTuple

import aiohttp

from . import __version__
from .errors import HttpStatusFailure, ParseFailure
from .log import log
from .url import status_url

HTTP_TIMEOUT = 10
USER_AGENT = f"RadioMetadata/{__version__}"

SHOUTCAST_V1_PAGE = "7.html"
SHOUTCAST_V2_PAGE = "stats"
ICECAST_PAGE = "status-json.xsl"

_TAG_RE = re.compile(r"<[^>]*>")


class HttpResult(NamedTuple):
    content: str
    status_code: int
    message: str


Fetch = Callable[[str], Awaitable[HttpResult]]

# ---------------------------------------------------------
# HTTP fetch service
# ---------------------------------------------------------

async def load_from_url(url: str, timeout: float = HTTP_TIMEOUT, user_agent: str = USER_AGENT) -> HttpResult:
    client_timeout = aiohttp.ClientTimeout(total=timeout)
    try:
        async with aiohttp.ClientSession(timeout=client_timeout, headers={"User-Agent": user_agent}) as session:
            async with session.get(url) as response:
                content = await response.text(errors="replace")
                return HttpResult(content, response.status, response.reason or "")
    except asyncio.TimeoutError:
        return HttpResult("", 0, "timed out")
    except (aiohttp.ClientError, ValueError) as e:
        return HttpResult("", 0, str(e) or e.__class__.__name__)

# ---------------------------------------------------------
# Body parsers
# ---------------------------------------------------------

def parse_shoutcast_v1(content: str) -> str | None:
    # 7.html: <html><body>listeners,status,peak,max,unique,bitrate,title</body></html>
    data = _TAG_RE.sub("", content).split(",")
    if len(data) <= 6:
        return None  # the title field is optional
    return data[6].strip()


def parse_shoutcast_v2(content: str) -> str | None:
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise ParseFailure(f"stats is not valid XML: {e}") from e
    node = root.find("SONGTITLE")
    if node is None:
        return None
    return "".join(node.itertext())


def parse_icecast(content: str) -> str | None:
    try:
        parsed = json.loads(content)
    except ValueError as e:
        raise ParseFailure(f"status-json.xsl is not valid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise ParseFailure("status-json.xsl: top level is not an object")

    stats = parsed.get("icecasts")
    if stats is None:
        stats = parsed.get("icestats")
    if not isinstance(stats, dict):
        return None

    sources = stats.get("source")
    if isinstance(sources, dict):
        sources = [sources]
    if not isinstance(sources, list):
        return None

    sources = [source for source in sources if isinstance(source, dict)]
    for key in ("title", "yp_currently_playing"):
        for source in sources:
            if source.get(key) is not None:
                return str(source[key])
    return None

# ---------------------------------------------------------
# Readers
# ---------------------------------------------------------

async def _read_metadata(meta_url: str, parse_result: Callable[[str], str | None], fetch: Fetch) -> str | None:
    content, status_code, message = await fetch(meta_url)

    if status_code != 200:
        failure = HttpStatusFailure(meta_url, status_code, message)
        log(str(failure), level="debug")
        return None

    try:
        title = parse_result(content)
    except ParseFailure:
        return None
    return title or None


async def read_shoutcast_v1_metadata(stream_url: str, fetch: Fetch = load_from_url) -> str | None:
    return await _read_metadata(status_url(stream_url, SHOUTCAST_V1_PAGE), parse_shoutcast_v1, fetch)


async def read_shoutcast_v2_metadata(stream_url: str, fetch: Fetch = load_from_url) -> str | None:
    return await _read_metadata(status_url(stream_url, SHOUTCAST_V2_PAGE), parse_shoutcast_v2, fetch)


async def read_icecast_metadata(stream_url: str, fetch: Fetch = load_from_url) -> str | None:
    return await _read_metadata(status_url(stream_url, ICECAST_PAGE), parse_icecast, fetch)
