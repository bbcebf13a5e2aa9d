"""Blocking byte-stream transport: plain TCP for http, TLS for https."""

from __future__ import annotations

import logging
import socket
import ssl
from typing import Optional

from .errors import ConnectFailure, ReadFailure, WriteFailure
from .fetcher_utils import idna_normalize
from .identifier import Identifier, Scheme

logger = logging.getLogger(__name__)

READ_CHUNK = 64 * 1024


def open_connection(identifier: Identifier, *, timeout: Optional[float] = None) -> socket.socket:
    """Connect to the identifier's authority, wrapping in TLS for https."""

    if identifier.authority is None or not identifier.scheme.is_network:
        raise ConnectFailure(f"Cannot open a connection for {identifier.scheme.token} identifiers")
    host = idna_normalize(identifier.authority.host)
    port = identifier.authority.port
    try:
        sock = socket.create_connection((host, port), timeout=timeout)
    except OSError as exc:
        raise ConnectFailure(f"Couldn't connect to {host}:{port}: {exc}", host, port) from exc
    if identifier.scheme is Scheme.HTTPS:
        ctx = ssl.create_default_context()
        try:
            sock = ctx.wrap_socket(sock, server_hostname=host)
        except OSError as exc:
            sock.close()
            raise ConnectFailure(f"TLS handshake with {host}:{port} failed: {exc}", host, port) from exc
    logger.debug("connected to %s:%d (%s)", host, port, identifier.scheme.token)
    return sock


def read_to_end(sock: socket.socket) -> bytes:
    chunks = []
    while True:
        chunk = sock.recv(READ_CHUNK)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


def exchange(identifier: Identifier, payload: bytes, *, timeout: Optional[float] = None) -> bytes:
    """Send ``payload`` and return every byte the peer writes before closing."""

    sock = open_connection(identifier, timeout=timeout)
    host = identifier.authority.host if identifier.authority else ""
    port = identifier.authority.port if identifier.authority else 0
    with sock:
        try:
            sock.sendall(payload)
        except OSError as exc:
            raise WriteFailure(f"Couldn't send request to {host}:{port}: {exc}", host, port) from exc
        try:
            raw = read_to_end(sock)
        except OSError as exc:
            raise ReadFailure(f"Couldn't read response from {host}:{port}: {exc}", host, port) from exc
    logger.debug("read %d bytes from %s:%d", len(raw), host, port)
    return raw


__all__ = ["open_connection", "read_to_end", "exchange"]
