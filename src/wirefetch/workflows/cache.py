"""Content-addressed on-disk cache of response bodies.

Layout under the cache root::

    .control        one "<expiry>;<fingerprint>" record per line
    <fingerprint>   raw body bytes (UTF-8)

The control file is rewritten in full after every insert. Nothing is locked,
so two processes must not share a cache root.
"""

from __future__ import annotations

import hashlib
import logging
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .errors import NotFound, UnsupportedMethod
from .fetcher_config import CONTROL_FILE
from .identifier import Identifier
from .message import Method

logger = logging.getLogger(__name__)

READ_METHODS = frozenset({Method.GET})
_FIELD_SEPARATOR = b"\0"


def fingerprint(identifier: Identifier) -> str:
    """SHA-256 over the path, then host and port when there is an authority.

    Fields are NUL-separated so adjacent values cannot run together.
    """

    digest = hashlib.sha256()
    digest.update(identifier.path.encode("utf-8"))
    if identifier.authority is not None:
        digest.update(_FIELD_SEPARATOR)
        digest.update(identifier.authority.host.encode("utf-8"))
        digest.update(_FIELD_SEPARATOR)
        digest.update(str(identifier.authority.port).encode("ascii"))
    return digest.hexdigest()


@dataclass(frozen=True)
class CacheEntry:
    # Epoch seconds; 0 means the entry never expires.
    expiry: int
    fingerprint: str

    def is_expired(self, now: float) -> bool:
        return self.expiry != 0 and self.expiry <= now

    def to_line(self) -> str:
        return f"{self.expiry};{self.fingerprint}"

    @classmethod
    def from_line(cls, line: str) -> "CacheEntry":
        expiry, sep, digest = line.strip().partition(";")
        if not sep or not digest or not expiry.isdigit():
            raise ValueError(f"Malformed cache control line: {line!r}")
        return cls(expiry=int(expiry), fingerprint=digest)


class ResponseCache:
    """In-memory index of CacheEntry backed by a directory of body files."""

    def __init__(self, root: Path, entries: Optional[List[CacheEntry]] = None) -> None:
        self.root = Path(root)
        self.entries: List[CacheEntry] = list(entries or [])

    @property
    def control_path(self) -> Path:
        return self.root / CONTROL_FILE

    @classmethod
    def initialize(cls, root: Path, clear_on_start: bool = False) -> "ResponseCache":
        root = Path(root)
        if not root.is_dir():
            cache = cls(root)
            cache._create()
            return cache
        cache = cls(root)
        if clear_on_start:
            cache.clear()
            return cache
        cache.entries = cache._read_control()
        logger.debug("loaded %d cache entries from %s", len(cache.entries), cache.control_path)
        return cache

    def _create(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        self.control_path.write_text("", encoding="utf-8")

    def clear(self) -> None:
        if self.root.exists():
            shutil.rmtree(self.root)
        self._create()
        self.entries = []
        logger.debug("cleared cache at %s", self.root)

    def _read_control(self) -> List[CacheEntry]:
        if not self.control_path.exists():
            self.control_path.write_text("", encoding="utf-8")
            return []
        entries: List[CacheEntry] = []
        for line in self.control_path.read_text(encoding="utf-8").splitlines():
            if not line.strip():
                continue
            try:
                entries.append(CacheEntry.from_line(line))
            except ValueError:
                logger.warning("skipping malformed cache control line %r in %s", line, self.control_path)
        return entries

    def _write_control(self) -> None:
        data = "\n".join(entry.to_line() for entry in self.entries)
        self.control_path.write_text(data, encoding="utf-8")

    def lookup(self, fingerprint: str, method: Method = Method.GET, *, now: Optional[float] = None) -> str:
        """Return the cached body for ``fingerprint`` or raise NotFound."""

        if method not in READ_METHODS:
            raise UnsupportedMethod(f"Cache does not serve {method.token} requests")
        current = time.time() if now is None else now
        # Newest first: a re-inserted fingerprint supersedes older records.
        for entry in reversed(self.entries):
            if entry.fingerprint != fingerprint:
                continue
            if entry.is_expired(current):
                logger.debug("cache entry %s expired at %d", fingerprint, entry.expiry)
                break
            body_path = self.root / entry.fingerprint
            try:
                return body_path.read_bytes().decode("utf-8")
            except FileNotFoundError:
                logger.warning("cache entry %s has no body file at %s", fingerprint, body_path)
                break
        raise NotFound(f"Value not found in cache: {fingerprint}")

    def insert(self, fingerprint: str, body: str, expiry: int = 0) -> CacheEntry:
        self.root.mkdir(parents=True, exist_ok=True)
        (self.root / fingerprint).write_bytes(body.encode("utf-8"))
        entry = CacheEntry(expiry=int(expiry), fingerprint=fingerprint)
        self.entries.append(entry)
        self._write_control()
        logger.debug("cached %d chars under %s (expiry %d)", len(body), fingerprint, entry.expiry)
        return entry

    def __len__(self) -> int:
        return len(self.entries)


def expiry_for(ttl: int, now: Optional[float] = None) -> int:
    """Expiry timestamp for an entry inserted now; 0 (never) when ttl is 0."""

    if ttl <= 0:
        return 0
    return int(time.time() if now is None else now) + ttl


__all__ = ["READ_METHODS", "fingerprint", "CacheEntry", "ResponseCache", "expiry_for"]
