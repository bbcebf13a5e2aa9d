"""Fetch one identifier end to end: scheme dispatch, cache, redirects."""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..core.keys import (
    K_ATTEMPTS,
    K_CONTENT_TYPE,
    K_FINAL_IDENTIFIER,
    K_FINGERPRINT,
    K_FROM_CACHE,
    K_HEADERS,
    K_IDENTIFIER,
    K_METHOD,
    K_STATUS,
    K_TEXT,
    K_TEXT_LENGTH,
    K_TEXT_SHA256,
    K_VIEW_SOURCE,
    M_CACHE,
    M_DATA,
    M_FILE,
    M_HTTP,
)
from .cache import ResponseCache, expiry_for, fingerprint
from .errors import CacheLookupError, EncodingError, ReadFailure
from .fetcher_config import DEFAULT_POLICY, FetcherPolicy, load_policy
from .identifier import Identifier, Scheme, parse
from .message import Header, build_request, send_request
from .redirects import SendFunc, resolve

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    """Container for a single fetch."""

    identifier: Identifier
    final_identifier: Identifier
    method: str
    body: str
    status: Optional[int] = None
    headers: Dict[str, str] = field(default_factory=dict)
    content_type: Optional[str] = None
    fingerprint: Optional[str] = None
    attempts: int = 0
    from_cache: bool = False

    @property
    def ok(self) -> bool:
        return self.status is None or 200 <= self.status < 300

    def to_dict(self, include_text: bool = True) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            K_IDENTIFIER: str(self.identifier),
            K_FINAL_IDENTIFIER: str(self.final_identifier),
            K_METHOD: self.method,
            K_STATUS: self.status,
            K_CONTENT_TYPE: self.content_type,
            K_FINGERPRINT: self.fingerprint,
            K_ATTEMPTS: self.attempts,
            K_FROM_CACHE: self.from_cache,
            K_VIEW_SOURCE: self.identifier.view_source,
            K_TEXT_SHA256: hashlib.sha256(self.body.encode("utf-8")).hexdigest() if self.body else "",
            K_TEXT_LENGTH: len(self.body),
        }
        if self.headers:
            payload[K_HEADERS] = dict(self.headers)
        if include_text:
            payload[K_TEXT] = self.body
        return payload

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


def open_cache(policy: FetcherPolicy = DEFAULT_POLICY) -> Optional[ResponseCache]:
    """Initialize the process cache, or None when caching is disabled."""

    if policy.cache_disabled:
        return None
    return ResponseCache.initialize(policy.cache_dir, clear_on_start=policy.clear_cache_on_start)


def _fetch_data(identifier: Identifier) -> FetchResult:
    content_type, sep, payload = identifier.path.partition(",")
    return FetchResult(
        identifier=identifier,
        final_identifier=identifier,
        method=M_DATA,
        body=payload if sep else "",
        content_type=content_type or None,
    )


def _fetch_file(identifier: Identifier) -> FetchResult:
    path = Path(identifier.path)
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise ReadFailure(f"Couldn't read {path}: {exc}") from exc
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise EncodingError(f"{path} is not valid UTF-8: {exc}") from exc
    return FetchResult(identifier=identifier, final_identifier=identifier, method=M_FILE, body=text)


def _fetch_network(
    identifier: Identifier,
    policy: FetcherPolicy,
    cache: Optional[ResponseCache],
    send: Optional[SendFunc],
) -> FetchResult:
    request = build_request(identifier, user_agent=policy.user_agent)
    digest = fingerprint(identifier)
    use_cache = cache is not None and not policy.cache_disabled

    if use_cache:
        try:
            body = cache.lookup(digest, request.method)
        except CacheLookupError as exc:
            logger.debug("cache miss for %s: %s", identifier, exc)
        else:
            logger.debug("cache hit for %s (%s)", identifier, digest)
            return FetchResult(
                identifier=identifier,
                final_identifier=identifier,
                method=M_CACHE,
                body=body,
                fingerprint=digest,
                from_cache=True,
            )

    sender = send or (lambda req: send_request(req, timeout=policy.timeout))
    outcome = resolve(request, sender, max_attempts=policy.max_attempts)
    response = outcome.response
    if response.status_code >= 400:
        logger.warning(
            "%s returned %d %s (request: %s)",
            outcome.request.identifier,
            response.status_code,
            response.status_message,
            outcome.request.request_line,
        )

    result = FetchResult(
        identifier=identifier,
        final_identifier=outcome.request.identifier,
        method=M_HTTP,
        body=response.body,
        status=response.status_code,
        headers=dict(response.headers),
        content_type=response.header(Header.CONTENT_TYPE.token),
        fingerprint=digest,
        attempts=outcome.attempts,
    )
    if use_cache and result.ok:
        cache.insert(digest, response.body, expiry_for(policy.cache_ttl))
    return result


def fetch(
    target: Union[str, Identifier],
    *,
    policy: Optional[FetcherPolicy] = None,
    cache: Optional[ResponseCache] = None,
    send: Optional[SendFunc] = None,
) -> FetchResult:
    """Resolve ``target`` and return its decoded body.

    ``target`` is identifier text or an already parsed Identifier. ``policy``
    defaults to :func:`load_policy`. ``send`` performs one request/response
    cycle; it defaults to a live connection via :func:`send_request`.
    """

    identifier = target if isinstance(target, Identifier) else parse(target)
    logger.debug("fetching %s", identifier)
    if identifier.scheme is Scheme.DATA:
        return _fetch_data(identifier)
    if identifier.scheme is Scheme.FILE:
        return _fetch_file(identifier)
    return _fetch_network(identifier, policy or load_policy(), cache, send)


__all__ = ["FetchResult", "open_cache", "fetch"]
