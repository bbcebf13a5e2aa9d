"""Bounded redirect resolution over repeated request/response cycles."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, List

from .errors import MissingLocation, TooManyRedirects
from .fetcher_config import MAX_ATTEMPTS
from .identifier import Identifier, parse
from .message import Header, Request, Response

logger = logging.getLogger(__name__)

SendFunc = Callable[[Request], Response]

_ABSOLUTE_RE = re.compile(r"^https?:", re.IGNORECASE)


@dataclass(frozen=True)
class RedirectResult:
    request: Request
    response: Response
    attempts: int
    history: List[Identifier] = field(default_factory=list)


def resolve_location(current: Identifier, location: str) -> Identifier:
    """Target identifier for a Location value seen while at ``current``.

    Absolute http(s) values replace the identifier wholesale. Anything else is
    spliced after the directory of the current path, without dot-segment
    normalization.
    """

    if _ABSOLUTE_RE.match(location):
        return parse(location)
    path = current.path
    if not path:
        return current.with_path(location)
    directory = path[: path.rfind("/")]
    if not location.startswith("/"):
        location = f"/{location}"
    return current.with_path(f"{directory}{location}")


def follow_redirect(request: Request, response: Response) -> Request:
    location = response.header(Header.LOCATION.token)
    if location is None:
        raise MissingLocation(f"{response.status_code} redirect from {request.identifier} has no Location header")
    target = resolve_location(request.identifier, location.strip())
    return request.retarget(target)


def resolve(request: Request, send: SendFunc, *, max_attempts: int = MAX_ATTEMPTS) -> RedirectResult:
    """Send ``request``, following redirects for at most ``max_attempts`` fetches."""

    history: List[Identifier] = []
    for attempt in range(1, max_attempts + 1):
        history.append(request.identifier)
        response = send(request)
        if not response.is_redirect:
            return RedirectResult(request=request, response=response, attempts=attempt, history=history)
        if attempt == max_attempts:
            break
        request = follow_redirect(request, response)
        logger.debug("redirect %d -> %s", response.status_code, request.identifier)
    raise TooManyRedirects(f"Exceeded maximum redirect count ({max_attempts} attempts)", max_attempts)


__all__ = ["RedirectResult", "SendFunc", "resolve_location", "follow_redirect", "resolve"]
