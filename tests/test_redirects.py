from typing import List

import pytest

from wirefetch.workflows.errors import MissingLocation, TooManyRedirects
from wirefetch.workflows.identifier import Authority, Identifier, Scheme, parse
from wirefetch.workflows.message import Request, Response, build_request
from wirefetch.workflows.redirects import follow_redirect, resolve, resolve_location


def _redirect(location: str, status: int = 301) -> Response:
    return Response(
        http_version="1.1",
        status_code=status,
        status_message="Moved Permanently",
        headers={"Location": location},
        body="",
    )


def _ok(body: str = "done") -> Response:
    return Response(http_version="1.1", status_code=200, status_message="OK", headers={}, body=body)


def test_absolute_location_replaces_identifier_wholesale() -> None:
    request = build_request(parse("https://www.example.org:8443/this_is_a_redirect"))

    new_request = follow_redirect(request, _redirect("http://other/y"))

    target = new_request.identifier
    assert target.scheme is Scheme.HTTP
    assert target.authority == Authority(host="other", port=80)
    assert target.path == "/y"
    assert new_request.header("Host") == "other"


def test_relative_location_is_directory_relative() -> None:
    current = parse("http://www.example.org/a/b/c")

    assert resolve_location(current, "/y").path == "/a/b/y"


def test_relative_location_at_root() -> None:
    request = build_request(parse("http://www.example.org/this_is_a_redirect"))

    new_request = follow_redirect(request, _redirect("/redirected"))

    assert new_request.identifier == parse("http://www.example.org/redirected")


def test_relative_location_keeps_dot_segments() -> None:
    current = parse("http://h/a/b/c")

    assert resolve_location(current, "/../x").path == "/a/b/../x"


def test_relative_location_without_leading_slash() -> None:
    current = parse("http://h/deep/path/page")

    assert resolve_location(current, "next").path == "/deep/path/next"


def test_relative_location_against_empty_path() -> None:
    current = Identifier(scheme=Scheme.HTTP, path="", authority=Authority(host="h", port=80))

    assert resolve_location(current, "/y").path == "/y"


def test_follow_redirect_does_not_mutate_original_request() -> None:
    request = build_request(parse("http://h/a/b"))

    follow_redirect(request, _redirect("/c"))

    assert request.identifier.path == "/a/b"


def test_missing_location_is_fatal() -> None:
    request = build_request(parse("http://h/"))
    response = Response(http_version="1.1", status_code=302, status_message="Found", headers={}, body="")

    with pytest.raises(MissingLocation):
        follow_redirect(request, response)


def test_resolve_follows_until_terminal() -> None:
    responses = [_redirect("/step2"), _redirect("http://final.example/end", 302), _ok("landed")]
    seen: List[Request] = []

    def fake_send(request: Request) -> Response:
        seen.append(request)
        return responses[len(seen) - 1]

    outcome = resolve(build_request(parse("http://start.example/step1")), fake_send)

    assert outcome.response.body == "landed"
    assert outcome.attempts == 3
    assert [str(ident) for ident in outcome.history] == [
        "http://start.example/step1",
        "http://start.example/step2",
        "http://final.example/end",
    ]
    assert outcome.request.identifier.authority.host == "final.example"


def test_resolve_raises_after_six_consecutive_redirects() -> None:
    calls = {"count": 0}

    def fake_send(request: Request) -> Response:
        calls["count"] += 1
        if calls["count"] > 6:
            raise AssertionError("resolver kept fetching past six responses")
        return _redirect("/again")

    with pytest.raises(TooManyRedirects) as excinfo:
        resolve(build_request(parse("http://h/loop")), fake_send)

    assert excinfo.value.attempts == 5
    assert calls["count"] == 5


def test_resolve_accepts_redirect_on_last_allowed_attempt_then_terminal() -> None:
    responses = [_redirect("/1"), _redirect("/2"), _redirect("/3"), _redirect("/4"), _ok()]

    def fake_send(request: Request) -> Response:
        return responses.pop(0)

    outcome = resolve(build_request(parse("http://h/0")), fake_send)

    assert outcome.attempts == 5
    assert outcome.response.status_code == 200


def test_resolve_returns_error_statuses_as_terminal() -> None:
    def fake_send(request: Request) -> Response:
        return Response(http_version="1.1", status_code=404, status_message="Not Found", headers={}, body="nope")

    outcome = resolve(build_request(parse("http://h/missing")), fake_send, max_attempts=2)

    assert outcome.response.status_code == 404
    assert outcome.attempts == 1
