from dataclasses import dataclass
from urllib.parse import urlsplit

from .errors import InvalidUrl

TLS_PREFIX = "ssl://"

DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class StreamEndpoint:
    scheme: str
    hostname: str
    port: int
    pathname: str
    socket_address: str

    @property
    def use_tls(self) -> bool:
        return self.socket_address.startswith(TLS_PREFIX)

    @property
    def connect_host(self) -> str:
        if self.use_tls:
            return self.socket_address[len(TLS_PREFIX):]
        return self.socket_address


def decompose(url: str) -> StreamEndpoint:
    """Split a stream URL into what a raw socket connection needs."""
    try:
        parts = urlsplit(url)
        explicit_port = parts.port
    except ValueError as e:
        raise InvalidUrl(f"{url}: {e}") from e

    scheme = parts.scheme.lower()
    if scheme not in DEFAULT_PORTS or not parts.hostname:
        raise InvalidUrl(f"{url}: expected http(s)://host/...")

    port = explicit_port or DEFAULT_PORTS[scheme]

    pathname = parts.path or "/"
    if parts.query:
        pathname += "?" + parts.query

    if scheme == "https":
        socket_address = TLS_PREFIX + parts.hostname
    else:
        socket_address = parts.hostname

    return StreamEndpoint(
        scheme=scheme,
        hostname=parts.hostname,
        port=port,
        pathname=pathname,
        socket_address=socket_address,
    )


def status_url(stream_url: str, suffix: str) -> str:
    # cut the URL at the last '/' and append the status page name
    return stream_url[: stream_url.rfind("/")] + "/" + suffix
