"""Shared helper functions used by the fetcher workflow."""

from __future__ import annotations

import os
import ssl
from typing import Dict, List

from .fetcher_config import ENV_CACHE_DISABLE, ENV_CACHE_TTL, ENV_TIMEOUT, _env_bool, _env_int


def idna_normalize(host: str) -> str:
    """Return a lowercase, IDNA-normalized host name."""

    h = (host or "").strip().rstrip(".").lower()
    if not h:
        return ""
    try:
        h = h.encode("idna").decode("ascii")
    except UnicodeError:
        pass
    return h


def tls_available() -> bool:
    return bool(getattr(ssl, "OPENSSL_VERSION", ""))


def collect_environment_warnings() -> List[Dict[str, str]]:
    """Return soft configuration problems worth surfacing before a fetch."""

    warnings: List[Dict[str, str]] = []
    if not tls_available():
        warnings.append({
            "code": "tls_unavailable",
            "message": "Python was built without an OpenSSL backend; https identifiers will fail.",
            "remedy": "Install a Python build linked against OpenSSL.",
        })
    if _env_bool(ENV_CACHE_DISABLE, "0"):
        warnings.append({
            "code": "cache_disabled",
            "message": "Response cache is disabled; every fetch goes to the network.",
            "remedy": f"Unset {ENV_CACHE_DISABLE} to re-enable caching.",
        })
    if _env_int(ENV_CACHE_TTL, 0) < 0:
        warnings.append({
            "code": "cache_ttl_negative",
            "message": f"{ENV_CACHE_TTL} is negative.",
            "remedy": f"Set {ENV_CACHE_TTL} to 0 (no expiry) or a positive number of seconds.",
        })
    if not (os.getenv(ENV_TIMEOUT) or "").strip():
        warnings.append({
            "code": "timeout_unset",
            "message": "No socket timeout configured; a hung peer stalls the fetch.",
            "remedy": f"Set {ENV_TIMEOUT} to a number of seconds.",
        })
    return warnings


def sanity_check() -> None:
    assert idna_normalize("ExAmple.COM") == "example.com"
    assert idna_normalize("example.org.") == "example.org"
    assert idna_normalize("") == ""


sanity_check()

__all__ = [
    "idna_normalize",
    "tls_available",
    "collect_environment_warnings",
    "sanity_check",
]
