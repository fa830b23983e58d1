class MetadataError(Exception):
    """Base class for everything that can go wrong while reading a title.

    None of these leave the public read_* coroutines; they are converted
    to a missing title there.
    """


class InvalidUrl(MetadataError):
    pass


class ConnectFailure(MetadataError):
    pass


class ReadTimeout(MetadataError):
    pass


class HttpStatusFailure(MetadataError):
    def __init__(self, url, status_code, message):
        super().__init__(f"Failed to read {url}: {status_code} {message}")
        self.url = url
        self.status_code = status_code
        self.message = message


class ParseFailure(MetadataError):
    pass


class ProtocolOutOfRange(MetadataError):
    pass


class RedirectExhausted(MetadataError):
    pass
