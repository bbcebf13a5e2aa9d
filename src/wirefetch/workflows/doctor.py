from __future__ import annotations

import os
import ssl
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from .cache import CacheEntry
from .fetcher_config import (
    CONTROL_FILE,
    ENV_CACHE_DIR,
    ENV_CACHE_DISABLE,
    ENV_CACHE_TTL,
    ENV_MAX_ATTEMPTS,
    ENV_TIMEOUT,
    ENV_USER_AGENT,
    FetcherPolicy,
    load_policy,
)
from .fetcher_utils import collect_environment_warnings, tls_available


def _check_writable(path: Path) -> bool:
    try:
        if path.exists():
            return os.access(path, os.W_OK)
        parent = path.parent
        if not parent.exists():
            return False
        return os.access(parent, os.W_OK)
    except OSError:
        return False


def _count_control_entries(root: Path) -> Optional[int]:
    control = root / CONTROL_FILE
    if not control.exists():
        return None
    count = 0
    for line in control.read_text(encoding="utf-8").splitlines():
        try:
            CacheEntry.from_line(line)
        except ValueError:
            continue
        count += 1
    return count


def build_doctor_report(*, policy: Optional[FetcherPolicy] = None) -> Dict[str, Any]:
    report: Dict[str, Any] = {
        "generated_at": datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
        "ok": True,
        "checks": [],
        "environment_warnings": collect_environment_warnings(),
    }

    def add_check(
        name: str,
        status: bool,
        *,
        detail: Optional[str] = None,
        remedy: Optional[str] = None,
        level: str = "warn",
        value: Optional[str] = None,
    ) -> None:
        entry = {
            "name": name,
            "status": "ok" if status else "missing",
            "level": level,
            "detail": detail,
        }
        if remedy:
            entry["remedy"] = remedy
        if value is not None:
            entry["value"] = value
        report["checks"].append(entry)
        if not status and level == "warn":
            report["ok"] = False

    try:
        policy = policy or load_policy()
    except ValueError as exc:
        add_check("policy", False, detail=str(exc), remedy="Fix the WIREFETCH_* environment variables.")
        return report

    tls_ok = tls_available()
    add_check(
        "tls",
        tls_ok,
        detail=getattr(ssl, "OPENSSL_VERSION", "no TLS backend"),
        remedy="Install a Python build linked against OpenSSL to fetch https identifiers.",
        level="warn",
    )

    if policy.cache_disabled:
        add_check(ENV_CACHE_DISABLE, True, detail="Response cache disabled", level="info")
    else:
        writable = _check_writable(policy.cache_dir)
        add_check(
            ENV_CACHE_DIR,
            writable,
            detail=str(policy.cache_dir),
            remedy=f"Create the cache directory's parent or set {ENV_CACHE_DIR} to a writable location.",
            level="warn",
        )
        entries = _count_control_entries(policy.cache_dir)
        add_check(
            "cache_entries",
            entries is not None,
            detail=f"{entries} entries indexed" if entries is not None else "No cache control file yet",
            level="info",
        )

    add_check(
        ENV_CACHE_TTL,
        True,
        detail="Entries never expire" if policy.cache_ttl == 0 else f"Entries expire after {policy.cache_ttl}s",
        level="info",
        value=str(policy.cache_ttl),
    )
    add_check(
        ENV_MAX_ATTEMPTS,
        True,
        detail=f"Up to {policy.max_attempts} fetches per identifier (redirects included)",
        level="info",
        value=str(policy.max_attempts),
    )
    add_check(
        ENV_TIMEOUT,
        policy.timeout is not None,
        detail="Blocking sockets without timeout" if policy.timeout is None else f"{policy.timeout}s socket timeout",
        remedy=f"Set {ENV_TIMEOUT} to bound how long a stalled peer can block a fetch.",
        level="info",
    )
    add_check(ENV_USER_AGENT, True, detail="User-Agent product token", level="info", value=policy.user_agent)

    return report


def format_doctor_report(report: Dict[str, Any]) -> str:
    lines: List[str] = []
    lines.append("wirefetch doctor")
    lines.append(f"Generated: {report.get('generated_at')}")
    lines.append("")
    for check in report.get("checks", []):
        name = check.get("name", "check")
        status = check.get("status", "unknown")
        level = check.get("level", "info")
        detail = check.get("detail")
        value = check.get("value")
        label = f"{name}: {status}"
        if value:
            label = f"{label} ({value})"
        lines.append(f"- [{level}] {label}")
        if detail:
            lines.append(f"  detail: {detail}")
        remedy = check.get("remedy")
        if remedy:
            lines.append(f"  remedy: {remedy}")
    warnings = report.get("environment_warnings") or []
    if warnings:
        lines.append("")
        lines.append("Environment warnings:")
        for warning in warnings:
            code = warning.get("code", "warning")
            message = warning.get("message", "")
            remedy = warning.get("remedy", "")
            lines.append(f"- {code}: {message}")
            if remedy:
                lines.append(f"  remedy: {remedy}")
    return "\n".join(lines).rstrip() + "\n"
