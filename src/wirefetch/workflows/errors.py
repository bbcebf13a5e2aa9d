"""Exception taxonomy for the wirefetch pipeline."""

from __future__ import annotations


class WirefetchError(Exception):
    """Base class for every error raised by the fetch pipeline."""


class MalformedIdentifier(WirefetchError, ValueError):
    """The identifier text could not be parsed (bad scheme, host or port)."""

    def __init__(self, message: str, text: str = ""):
        self.text = text
        super().__init__(message)


class TransportError(WirefetchError):
    """A byte-stream operation against the peer failed."""

    def __init__(self, message: str, host: str = "", port: int = 0):
        self.host = host
        self.port = port
        super().__init__(message)


class ConnectFailure(TransportError):
    """Could not open a (plain or TLS) connection to the peer."""


class WriteFailure(TransportError):
    """Could not send the request bytes."""


class ReadFailure(TransportError):
    """Could not read the response (or a local file) to completion."""


class ProtocolViolation(WirefetchError):
    """The peer sent bytes that do not follow the expected framing."""


class MissingLocation(ProtocolViolation):
    """A redirect response arrived without a Location header."""


class TooManyRedirects(WirefetchError):
    """The redirect attempt budget ran out before a terminal response."""

    def __init__(self, message: str, attempts: int):
        self.attempts = attempts
        super().__init__(message)


class EncodingError(WirefetchError):
    """The body could not be decompressed or decoded as UTF-8 text."""


class CacheLookupError(WirefetchError):
    """Recoverable cache outcome: the caller should fetch live instead."""


class NotFound(CacheLookupError, LookupError):
    """No usable cache entry for the fingerprint (absent or expired)."""


class UnsupportedMethod(CacheLookupError):
    """The cache only answers read-style requests."""


__all__ = [
    "WirefetchError",
    "MalformedIdentifier",
    "TransportError",
    "ConnectFailure",
    "WriteFailure",
    "ReadFailure",
    "ProtocolViolation",
    "MissingLocation",
    "TooManyRedirects",
    "EncodingError",
    "CacheLookupError",
    "NotFound",
    "UnsupportedMethod",
]
