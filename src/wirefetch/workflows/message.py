"""HTTP/1.1 message codec: build request bytes, parse status/headers/body.

Only the subset a single ``Connection: close`` GET needs is implemented. The
response body is framed either by ``Transfer-Encoding: chunked`` or by the
peer closing the connection; ``Content-Length`` is not consulted. Parsing is
strict: unexpected transfer or content codings are protocol violations rather
than something to guess around.
"""

from __future__ import annotations

import gzip
import io
import logging
import re
import zlib
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import BinaryIO, Dict, Mapping, Optional, Tuple

from .errors import EncodingError, ProtocolViolation
from .fetcher_config import (
    CONNECTION_CLOSE,
    DEFAULT_USER_AGENT,
    ENCODING_GZIP,
    HTTP_VERSION,
    REDIRECT_STATUS_MAX,
    REDIRECT_STATUS_MIN,
    TRANSFER_CHUNKED,
)
from .fetcher_utils import idna_normalize
from .identifier import Identifier
from .transport import exchange

logger = logging.getLogger(__name__)

CRLF = b"\r\n"
_HEX_RE = re.compile(rb"^[0-9A-Fa-f]+$")
_DIGITS_RE = re.compile(r"[0-9]+\Z")
# Header bytes are ISO-8859-1 on the wire.
_HEADER_CHARSET = "iso-8859-1"


class Method(str, Enum):
    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    CONNECT = "CONNECT"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"

    @classmethod
    def from_token(cls, token: str) -> "Method":
        return cls(token.strip().upper())

    @property
    def token(self) -> str:
        return self.value


class Header(str, Enum):
    ACCEPT_ENCODING = "Accept-Encoding"
    CONNECTION = "Connection"
    CONTENT_ENCODING = "Content-Encoding"
    CONTENT_TYPE = "Content-Type"
    HOST = "Host"
    LOCATION = "Location"
    TRANSFER_ENCODING = "Transfer-Encoding"
    USER_AGENT = "User-Agent"

    @classmethod
    def from_name(cls, name: str) -> "Header":
        lowered = name.strip().lower()
        for member in cls:
            if member.value.lower() == lowered:
                return member
        raise ValueError(f"Unknown header name: {name!r}")

    @property
    def token(self) -> str:
        return self.value


def find_header(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Case-insensitive header lookup; the last matching key wins."""

    wanted = name.lower()
    found: Optional[str] = None
    for key, value in headers.items():
        if key.lower() == wanted:
            found = value
    return found


def _set_header(headers: Dict[str, str], name: str, value: str) -> None:
    for key in [k for k in headers if k.lower() == name.lower()]:
        del headers[key]
    headers[name] = value


def default_headers(identifier: Identifier, user_agent: str = DEFAULT_USER_AGENT) -> Dict[str, str]:
    if identifier.authority is None:
        raise ValueError(f"{identifier.scheme.token} identifiers have no host to address")
    return {
        Header.HOST.token: idna_normalize(identifier.authority.host),
        Header.CONNECTION.token: CONNECTION_CLOSE,
        Header.USER_AGENT.token: user_agent,
        Header.ACCEPT_ENCODING.token: ENCODING_GZIP,
    }


@dataclass
class Request:
    identifier: Identifier
    method: Method = Method.GET
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""
    http_version: str = HTTP_VERSION

    def header(self, name: str) -> Optional[str]:
        return find_header(self.headers, name)

    @property
    def request_line(self) -> str:
        return f"{self.method.token} {self.identifier.path} HTTP/{self.http_version}"

    def build(self) -> bytes:
        lines = [self.request_line]
        lines.extend(f"{key}: {value}" for key, value in self.headers.items())
        head = "\r\n".join(lines) + "\r\n\r\n"
        return head.encode(_HEADER_CHARSET, errors="strict") + self.body.encode("utf-8")

    def retarget(self, identifier: Identifier) -> "Request":
        """Copy of this request aimed at ``identifier``; Host follows the new authority."""

        headers = dict(self.headers)
        if identifier.authority is not None and self.header(Header.HOST.token) is not None:
            _set_header(headers, Header.HOST.token, idna_normalize(identifier.authority.host))
        return replace(self, identifier=identifier, headers=headers)


def build_request(
    identifier: Identifier,
    *,
    method: Method = Method.GET,
    headers: Optional[Mapping[str, str]] = None,
    body: str = "",
    user_agent: str = DEFAULT_USER_AGENT,
) -> Request:
    """Request with the default headers, overridden case-insensitively by ``headers``."""

    merged = default_headers(identifier, user_agent)
    for key, value in (headers or {}).items():
        _set_header(merged, key, value)
    return Request(identifier=identifier, method=method, headers=merged, body=body)


@dataclass(frozen=True)
class Response:
    http_version: str
    status_code: int
    status_message: str
    headers: Mapping[str, str]
    body: str

    def header(self, name: str) -> Optional[str]:
        return find_header(self.headers, name)

    @property
    def is_redirect(self) -> bool:
        return REDIRECT_STATUS_MIN <= self.status_code <= REDIRECT_STATUS_MAX

    @property
    def status_line(self) -> str:
        return f"HTTP/{self.http_version} {self.status_code} {self.status_message}".rstrip()

    def __str__(self) -> str:
        lines = [self.status_line]
        lines.extend(f"{key}: {value}" for key, value in self.headers.items())
        return "\r\n".join(lines) + "\r\n\r\n" + self.body


def parse_status_line(line: bytes) -> Tuple[str, int, str]:
    text = line.decode(_HEADER_CHARSET).rstrip("\r\n")
    parts = text.split(" ", 2)
    if len(parts) < 3:
        raise ProtocolViolation(f"Malformed status line: {text!r}")
    version_token, code_token, message = parts
    if not version_token.startswith("HTTP/"):
        raise ProtocolViolation(f"Status line does not start with HTTP/: {text!r}")
    if not _DIGITS_RE.match(code_token) or int(code_token) > 0xFFFF:
        raise ProtocolViolation(f"Non-numeric status code: {code_token!r}")
    status = int(code_token)
    if not 100 <= status <= 599:
        raise ProtocolViolation(f"Status code out of range: {status}")
    return version_token[len("HTTP/"):], status, message


def read_headers(stream: BinaryIO) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    while True:
        line = stream.readline()
        if not line:
            raise ProtocolViolation("Connection closed before the end of the header block")
        if line in (CRLF, b"\n"):
            return headers
        name, _, value = line.decode(_HEADER_CHARSET).partition(":")
        headers[name.strip()] = value.strip()


def read_chunked(stream: BinaryIO) -> bytes:
    """Concatenate chunk data until the zero-size chunk."""

    data = bytearray()
    while True:
        size_line = stream.readline()
        if not size_line:
            raise ProtocolViolation("Connection closed before the terminating chunk")
        size_token = size_line.split(b";", 1)[0].strip()
        if not _HEX_RE.match(size_token):
            raise ProtocolViolation(f"Malformed chunk size line: {size_line!r}")
        size = int(size_token, 16)
        if size == 0:
            return bytes(data)
        chunk = stream.read(size)
        if len(chunk) != size:
            raise ProtocolViolation(f"Truncated chunk: expected {size} bytes, got {len(chunk)}")
        data += chunk
        terminator = stream.read(2)
        if terminator != CRLF:
            raise ProtocolViolation(f"Missing CRLF after chunk data: {terminator!r}")


def read_body(stream: BinaryIO, headers: Mapping[str, str]) -> bytes:
    transfer = find_header(headers, Header.TRANSFER_ENCODING.token)
    if transfer is None:
        return stream.read()
    if transfer.strip().lower() != TRANSFER_CHUNKED:
        raise ProtocolViolation(f"Unsupported Transfer-Encoding: {transfer!r}")
    return read_chunked(stream)


def decode_content(data: bytes, headers: Mapping[str, str]) -> str:
    encoding = find_header(headers, Header.CONTENT_ENCODING.token)
    if encoding is not None:
        if encoding.strip().lower() != ENCODING_GZIP:
            raise ProtocolViolation(f"Unsupported Content-Encoding: {encoding!r}")
        try:
            data = gzip.decompress(data)
        except (OSError, EOFError, zlib.error) as exc:
            raise EncodingError(f"Could not gunzip response body: {exc}") from exc
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise EncodingError(f"Response body is not valid UTF-8: {exc}") from exc


def parse_response(raw: bytes) -> Response:
    stream = io.BytesIO(raw)
    status_line = stream.readline()
    if not status_line:
        raise ProtocolViolation("Empty response")
    http_version, status_code, status_message = parse_status_line(status_line)
    headers = read_headers(stream)
    body = decode_content(read_body(stream, headers), headers)
    return Response(
        http_version=http_version,
        status_code=status_code,
        status_message=status_message,
        headers=headers,
        body=body,
    )


def send_request(request: Request, *, timeout: Optional[float] = None) -> Response:
    """Run one request/response cycle over a fresh connection."""

    logger.debug("> %s", request.request_line)
    raw = exchange(request.identifier, request.build(), timeout=timeout)
    response = parse_response(raw)
    logger.debug("< %s", response.status_line)
    return response


__all__ = [
    "Method",
    "Header",
    "Request",
    "Response",
    "find_header",
    "default_headers",
    "build_request",
    "parse_status_line",
    "read_headers",
    "read_chunked",
    "read_body",
    "decode_content",
    "parse_response",
    "send_request",
]
