"""Fetcher defaults (headers, ports, limits, paths) and the env-driven policy.

Centralizes static defaults so the codec and orchestration modules have no
embedded magic strings. ``load_policy()`` turns the environment into a frozen
FetcherPolicy; callers can inject their own policy to override any of it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv(override=True)

# Wire defaults
HTTP_VERSION = "1.1"
DEFAULT_USER_AGENT = "Bored Browser"
DEFAULT_HTTP_PORT = 80
DEFAULT_HTTPS_PORT = 443
CONNECTION_CLOSE = "close"
ENCODING_GZIP = "gzip"
TRANSFER_CHUNKED = "chunked"

# Redirects
MAX_ATTEMPTS = 5
REDIRECT_STATUS_MIN = 300
REDIRECT_STATUS_MAX = 399

# Cache layout
CACHE_DIR = Path(".cache")
CONTROL_FILE = ".control"

# Environment variable names
ENV_CACHE_DIR = "WIREFETCH_CACHE_DIR"
ENV_CACHE_DISABLE = "WIREFETCH_CACHE_DISABLE"
ENV_CACHE_CLEAR = "WIREFETCH_CACHE_CLEAR"
ENV_CACHE_TTL = "WIREFETCH_CACHE_TTL"
ENV_MAX_ATTEMPTS = "WIREFETCH_MAX_ATTEMPTS"
ENV_USER_AGENT = "WIREFETCH_USER_AGENT"
ENV_TIMEOUT = "WIREFETCH_TIMEOUT"


def _env_int(name: str, default: int = 0) -> int:
    try:
        raw = os.getenv(name, "")
        return int(raw) if raw.strip() else default
    except (TypeError, ValueError):
        return default


def _env_bool(name: str, default: str = "0") -> bool:
    raw = os.getenv(name, default)
    return str(raw).strip().lower() not in {"0", "false", "no", "off", ""}


def _env_float(name: str) -> Optional[float]:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if value > 0 else None


@dataclass(frozen=True, slots=True)
class FetcherPolicy:
    cache_dir: Path = CACHE_DIR
    cache_disabled: bool = False
    clear_cache_on_start: bool = False
    # Seconds added to "now" when inserting; 0 stores entries without expiry.
    cache_ttl: int = 0
    max_attempts: int = MAX_ATTEMPTS
    user_agent: str = DEFAULT_USER_AGENT
    timeout: Optional[float] = None


def _sanity_check_policy(policy: FetcherPolicy) -> None:
    if policy.max_attempts <= 0:
        raise ValueError(f"{ENV_MAX_ATTEMPTS} must be positive")
    if policy.cache_ttl < 0:
        raise ValueError(f"{ENV_CACHE_TTL} cannot be negative")
    if not policy.user_agent.strip():
        raise ValueError(f"{ENV_USER_AGENT} cannot be blank")
    try:
        policy.user_agent.encode("iso-8859-1")
    except UnicodeEncodeError as exc:
        raise ValueError(f"{ENV_USER_AGENT} must be Latin-1 text: {exc}") from exc


def load_policy() -> FetcherPolicy:
    """Resolve a FetcherPolicy from the current environment."""

    policy = FetcherPolicy(
        cache_dir=Path(os.getenv(ENV_CACHE_DIR) or CACHE_DIR),
        cache_disabled=_env_bool(ENV_CACHE_DISABLE, "0"),
        clear_cache_on_start=_env_bool(ENV_CACHE_CLEAR, "0"),
        cache_ttl=_env_int(ENV_CACHE_TTL, 0),
        max_attempts=_env_int(ENV_MAX_ATTEMPTS, MAX_ATTEMPTS),
        user_agent=(os.getenv(ENV_USER_AGENT) or DEFAULT_USER_AGENT),
        timeout=_env_float(ENV_TIMEOUT),
    )
    _sanity_check_policy(policy)
    return policy


# Built-in defaults only; the environment is read by load_policy().
DEFAULT_POLICY = FetcherPolicy()
