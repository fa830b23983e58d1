__version__ = "1.0.0"

from .http_fetchers import (  # noqa: E402
    read_icecast_metadata,
    read_shoutcast_v1_metadata,
    read_shoutcast_v2_metadata,
)
from .icy_reader import read_icy_metadata  # noqa: E402

__all__ = [
    "__version__",
    "read_icecast_metadata",
    "read_icy_metadata",
    "read_shoutcast_v1_metadata",
    "read_shoutcast_v2_metadata",
]
