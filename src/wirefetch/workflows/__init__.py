"""High-level exports for the wirefetch workflows."""

from .cache import CacheEntry, ResponseCache, fingerprint
from .errors import (
    CacheLookupError,
    ConnectFailure,
    EncodingError,
    MalformedIdentifier,
    MissingLocation,
    NotFound,
    ProtocolViolation,
    ReadFailure,
    TooManyRedirects,
    TransportError,
    UnsupportedMethod,
    WirefetchError,
    WriteFailure,
)
from .fetcher import FetchResult, fetch, open_cache
from .fetcher_config import DEFAULT_POLICY, FetcherPolicy, load_policy
from .identifier import Authority, Identifier, Scheme, parse
from .message import Method, Request, Response, build_request, parse_response
from .redirects import RedirectResult, follow_redirect, resolve
from .render import present, render_text

__all__ = [
    "CacheEntry",
    "ResponseCache",
    "fingerprint",
    "CacheLookupError",
    "ConnectFailure",
    "EncodingError",
    "MalformedIdentifier",
    "MissingLocation",
    "NotFound",
    "ProtocolViolation",
    "ReadFailure",
    "TooManyRedirects",
    "TransportError",
    "UnsupportedMethod",
    "WirefetchError",
    "WriteFailure",
    "FetchResult",
    "fetch",
    "open_cache",
    "DEFAULT_POLICY",
    "FetcherPolicy",
    "load_policy",
    "Authority",
    "Identifier",
    "Scheme",
    "parse",
    "Method",
    "Request",
    "Response",
    "build_request",
    "parse_response",
    "RedirectResult",
    "follow_redirect",
    "resolve",
    "present",
    "render_text",
]
