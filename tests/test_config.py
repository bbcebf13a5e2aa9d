from pathlib import Path

import pytest

from wirefetch.workflows.fetcher_config import DEFAULT_POLICY, MAX_ATTEMPTS, FetcherPolicy, load_policy


def test_load_policy_defaults(monkeypatch) -> None:
    for name in (
        "WIREFETCH_CACHE_DIR",
        "WIREFETCH_CACHE_DISABLE",
        "WIREFETCH_CACHE_CLEAR",
        "WIREFETCH_CACHE_TTL",
        "WIREFETCH_MAX_ATTEMPTS",
        "WIREFETCH_USER_AGENT",
        "WIREFETCH_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)

    policy = load_policy()

    assert policy.cache_dir == Path(".cache")
    assert policy.cache_disabled is False
    assert policy.cache_ttl == 0
    assert policy.max_attempts == MAX_ATTEMPTS == 5
    assert policy.user_agent == "Bored Browser"
    assert policy.timeout is None


def test_load_policy_reads_environment(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("WIREFETCH_CACHE_DIR", str(tmp_path))
    monkeypatch.setenv("WIREFETCH_CACHE_DISABLE", "yes")
    monkeypatch.setenv("WIREFETCH_CACHE_CLEAR", "1")
    monkeypatch.setenv("WIREFETCH_CACHE_TTL", "3600")
    monkeypatch.setenv("WIREFETCH_MAX_ATTEMPTS", "3")
    monkeypatch.setenv("WIREFETCH_USER_AGENT", "probe/1.0")
    monkeypatch.setenv("WIREFETCH_TIMEOUT", "2.5")

    policy = load_policy()

    assert policy.cache_dir == tmp_path
    assert policy.cache_disabled is True
    assert policy.clear_cache_on_start is True
    assert policy.cache_ttl == 3600
    assert policy.max_attempts == 3
    assert policy.user_agent == "probe/1.0"
    assert policy.timeout == 2.5


def test_load_policy_ignores_unparseable_numbers(monkeypatch) -> None:
    monkeypatch.setenv("WIREFETCH_MAX_ATTEMPTS", "many")
    monkeypatch.setenv("WIREFETCH_TIMEOUT", "soon")

    policy = load_policy()

    assert policy.max_attempts == MAX_ATTEMPTS
    assert policy.timeout is None


def test_load_policy_rejects_non_positive_attempts(monkeypatch) -> None:
    monkeypatch.setenv("WIREFETCH_MAX_ATTEMPTS", "0")

    with pytest.raises(ValueError):
        load_policy()


def test_load_policy_rejects_non_latin1_user_agent(monkeypatch) -> None:
    monkeypatch.setenv("WIREFETCH_USER_AGENT", "browser ☃")

    with pytest.raises(ValueError):
        load_policy()


def test_default_policy_is_builtin_defaults() -> None:
    assert DEFAULT_POLICY == FetcherPolicy()
    assert DEFAULT_POLICY.max_attempts == MAX_ATTEMPTS
