"""Parse resource identifiers (http, https, file, data, view-source) into Identifier values."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import FrozenSet, Optional

from .errors import MalformedIdentifier
from .fetcher_config import DEFAULT_HTTP_PORT, DEFAULT_HTTPS_PORT

VIEW_SOURCE = "view-source"

_SCHEME_RE = re.compile(r"^(\w[\w+\-.]*):")
_PORT_RE = re.compile(r"[0-9]+\Z")


class Scheme(str, Enum):
    HTTP = "http"
    HTTPS = "https"
    FILE = "file"
    DATA = "data"

    @classmethod
    def from_token(cls, token: str) -> "Scheme":
        try:
            return cls(token.lower())
        except ValueError:
            raise MalformedIdentifier(f"Unsupported scheme: {token!r}", token) from None

    @property
    def token(self) -> str:
        return self.value

    @property
    def is_network(self) -> bool:
        return self in (Scheme.HTTP, Scheme.HTTPS)

    @property
    def default_port(self) -> Optional[int]:
        if self is Scheme.HTTP:
            return DEFAULT_HTTP_PORT
        if self is Scheme.HTTPS:
            return DEFAULT_HTTPS_PORT
        return None


@dataclass(frozen=True)
class Authority:
    host: str
    port: int
    userinfo: Optional[str] = None

    def __str__(self) -> str:
        prefix = f"{self.userinfo}@" if self.userinfo is not None else ""
        return f"{prefix}{self.host}:{self.port}"


@dataclass(frozen=True)
class Identifier:
    """Structured form of a resource locator.

    ``authority`` is present exactly when the scheme is http or https. For the
    data scheme ``path`` holds the opaque payload.
    """

    scheme: Scheme
    path: str
    authority: Optional[Authority] = None
    flags: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if self.scheme.is_network and self.authority is None:
            raise MalformedIdentifier(f"{self.scheme.token} identifier requires an authority")
        if not self.scheme.is_network and self.authority is not None:
            raise MalformedIdentifier(f"{self.scheme.token} identifier cannot carry an authority")

    @property
    def view_source(self) -> bool:
        return VIEW_SOURCE in self.flags

    def with_flag(self, flag: str) -> "Identifier":
        return replace(self, flags=self.flags | {flag})

    def with_path(self, path: str) -> "Identifier":
        return replace(self, path=path)

    def __str__(self) -> str:
        prefix = f"{VIEW_SOURCE}:" if self.view_source else ""
        if self.authority is None:
            if self.scheme is Scheme.FILE:
                return f"{prefix}file://{self.path}"
            return f"{prefix}{self.scheme.token}:{self.path}"
        auth = self.authority
        netloc = auth.host
        if auth.userinfo is not None:
            netloc = f"{auth.userinfo}@{netloc}"
        if auth.port != self.scheme.default_port:
            netloc = f"{netloc}:{auth.port}"
        return f"{prefix}{self.scheme.token}://{netloc}{self.path}"


def _strip_slashes(rest: str) -> str:
    return rest[2:] if rest.startswith("//") else rest


def _parse_port(raw: str, text: str) -> int:
    if not _PORT_RE.match(raw):
        raise MalformedIdentifier(f"Invalid port {raw!r} in {text!r}", text)
    port = int(raw)
    if port > 65535:
        raise MalformedIdentifier(f"Port {port} out of range in {text!r}", text)
    return port


def _parse_network(scheme: Scheme, rest: str, text: str) -> Identifier:
    host_part, _, path = _strip_slashes(rest).partition("/")
    userinfo: Optional[str] = None
    if "@" in host_part:
        userinfo, _, host_part = host_part.rpartition("@")
    host, sep, raw_port = host_part.partition(":")
    port = _parse_port(raw_port, text) if sep else scheme.default_port
    if not host:
        raise MalformedIdentifier(f"Missing host in {text!r}", text)
    return Identifier(
        scheme=scheme,
        authority=Authority(host=host, port=port, userinfo=userinfo),
        path=f"/{path}",
    )


def parse(text: str) -> Identifier:
    """Parse ``text`` into an Identifier or raise MalformedIdentifier."""

    match = _SCHEME_RE.match(text or "")
    if match is None:
        raise MalformedIdentifier(f"No scheme found in {text!r}", text or "")
    token = match.group(1)
    rest = text[match.end():]

    if token.lower() == VIEW_SOURCE:
        return parse(rest).with_flag(VIEW_SOURCE)

    scheme = Scheme.from_token(token)
    if scheme.is_network:
        return _parse_network(scheme, rest, text)
    if scheme is Scheme.FILE:
        return Identifier(scheme=scheme, path=_strip_slashes(rest))
    return Identifier(scheme=scheme, path=rest)


__all__ = ["VIEW_SOURCE", "Scheme", "Authority", "Identifier", "parse"]
