import json
from pathlib import Path
from typing import List

import pytest

from wirefetch.workflows.cache import ResponseCache, fingerprint
from wirefetch.workflows.errors import EncodingError, MalformedIdentifier, ReadFailure, TooManyRedirects
from wirefetch.workflows.fetcher import fetch, open_cache
from wirefetch.workflows.fetcher_config import FetcherPolicy
from wirefetch.workflows.identifier import parse
from wirefetch.workflows.message import Request, Response


def _policy(tmp_path: Path, **overrides) -> FetcherPolicy:
    return FetcherPolicy(cache_dir=tmp_path / "cache", **overrides)


class FakeSend:
    def __init__(self, responses: List[Response]) -> None:
        self.responses = list(responses)
        self.requests: List[Request] = []

    def __call__(self, request: Request) -> Response:
        self.requests.append(request)
        return self.responses.pop(0)


def _ok(body: str, status: int = 200) -> Response:
    return Response(
        http_version="1.1",
        status_code=status,
        status_message="OK",
        headers={"Content-Type": "text/html"},
        body=body,
    )


def test_fetch_data_identifier() -> None:
    result = fetch("data:text/html,Hello world!")

    assert result.body == "Hello world!"
    assert result.content_type == "text/html"
    assert result.method == "data"
    assert result.status is None


def test_fetch_data_without_comma_has_empty_body() -> None:
    assert fetch("data:text/plain").body == ""


def test_fetch_file_identifier(tmp_path: Path) -> None:
    page = tmp_path / "page.html"
    page.write_text("<p>local</p>", encoding="utf-8")

    result = fetch(f"file://{page}")

    assert result.body == "<p>local</p>"
    assert result.method == "file"


def test_fetch_missing_file_is_read_failure(tmp_path: Path) -> None:
    with pytest.raises(ReadFailure):
        fetch(f"file://{tmp_path / 'absent.txt'}")


def test_fetch_non_utf8_file_is_encoding_error(tmp_path: Path) -> None:
    blob = tmp_path / "blob.bin"
    blob.write_bytes(b"\xff\xfe\x00")

    with pytest.raises(EncodingError):
        fetch(f"file://{blob}")


def test_fetch_malformed_identifier() -> None:
    with pytest.raises(MalformedIdentifier):
        fetch("example.org/no-scheme")


def test_fetch_http_populates_cache_then_hits(tmp_path: Path) -> None:
    policy = _policy(tmp_path)
    cache = open_cache(policy)
    send = FakeSend([_ok("<body>fresh</body>")])

    first = fetch("http://example.org/page", policy=policy, cache=cache, send=send)
    second = fetch("http://example.org/page", policy=policy, cache=cache, send=send)

    assert first.from_cache is False
    assert first.status == 200
    assert first.content_type == "text/html"
    assert second.from_cache is True
    assert second.method == "cache"
    assert second.body == "<body>fresh</body>"
    assert len(send.requests) == 1
    assert first.fingerprint == fingerprint(parse("http://example.org/page"))


def test_fetch_http_cache_persists_across_processes(tmp_path: Path) -> None:
    policy = _policy(tmp_path)
    fetch("http://example.org/a", policy=policy, cache=open_cache(policy), send=FakeSend([_ok("saved")]))

    reopened = ResponseCache.initialize(policy.cache_dir)
    result = fetch("http://example.org/a", policy=policy, cache=reopened, send=FakeSend([]))

    assert result.body == "saved"
    assert result.from_cache


def test_fetch_does_not_cache_error_statuses(tmp_path: Path) -> None:
    policy = _policy(tmp_path)
    cache = open_cache(policy)

    result = fetch("http://example.org/missing", policy=policy, cache=cache, send=FakeSend([_ok("nope", 404)]))

    assert result.status == 404
    assert not result.ok
    assert len(cache) == 0


def test_fetch_follows_redirects_and_caches_under_original(tmp_path: Path) -> None:
    policy = _policy(tmp_path)
    cache = open_cache(policy)
    moved = Response(
        http_version="1.1",
        status_code=301,
        status_message="Moved",
        headers={"Location": "https://other.example/y"},
        body="",
    )
    send = FakeSend([moved, _ok("target")])

    result = fetch("http://example.org/x", policy=policy, cache=cache, send=send)

    assert result.body == "target"
    assert result.attempts == 2
    assert str(result.final_identifier) == "https://other.example/y"
    assert send.requests[1].header("Host") == "other.example"
    assert cache.lookup(fingerprint(parse("http://example.org/x"))) == "target"


def test_fetch_redirect_budget_comes_from_policy(tmp_path: Path) -> None:
    policy = _policy(tmp_path, max_attempts=2, cache_disabled=True)
    moved = Response(
        http_version="1.1",
        status_code=302,
        status_message="Found",
        headers={"Location": "/again"},
        body="",
    )

    with pytest.raises(TooManyRedirects):
        fetch("http://example.org/", policy=policy, send=FakeSend([moved, moved, moved]))


def test_fetch_with_cache_disabled_skips_cache(tmp_path: Path) -> None:
    policy = _policy(tmp_path, cache_disabled=True)
    cache = ResponseCache.initialize(tmp_path / "cache")
    send = FakeSend([_ok("one"), _ok("two")])

    fetch("http://example.org/", policy=policy, cache=cache, send=send)
    second = fetch("http://example.org/", policy=policy, cache=cache, send=send)

    assert second.body == "two"
    assert len(cache) == 0
    assert open_cache(policy) is None


def test_fetch_sets_expiry_from_ttl(tmp_path: Path) -> None:
    policy = _policy(tmp_path, cache_ttl=120)
    cache = open_cache(policy)

    fetch("http://example.org/ttl", policy=policy, cache=cache, send=FakeSend([_ok("x")]))

    assert cache.entries[0].expiry > 0


def test_fetch_uses_configured_user_agent(tmp_path: Path) -> None:
    policy = _policy(tmp_path, user_agent="probe/2.0", cache_disabled=True)
    send = FakeSend([_ok("x")])

    fetch("http://example.org/", policy=policy, send=send)

    assert send.requests[0].header("User-Agent") == "probe/2.0"


def test_fetch_result_to_json(tmp_path: Path) -> None:
    policy = _policy(tmp_path, cache_disabled=True)
    result = fetch("view-source:http://example.org/", policy=policy, send=FakeSend([_ok("<b>hi</b>")]))

    payload = json.loads(result.to_json())

    assert payload["identifier"] == "view-source:http://example.org/"
    assert payload["status"] == 200
    assert payload["view_source"] is True
    assert payload["text"] == "<b>hi</b>"
    assert payload["text_length"] == 9
    assert payload["from_cache"] is False
