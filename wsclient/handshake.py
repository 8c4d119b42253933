"""The HTTP upgrade request and its response status line."""

from __future__ import annotations

import re

from wsclient.errors import HandshakeError, InvalidURLError

MAX_ORIGIN_LENGTH = 200
MAX_LINE_LENGTH = 1023
WEBSOCKET_KEY = "x3JJHMbDL1EzLkh9GBhXDw=="
SWITCHING_PROTOCOLS = 101

_STATUS = re.compile(r"HTTP/1\.1\s*([+-]?\d+)")


def build_request(host: str, port: int, path: str, origin: str, secure: bool) -> bytes:
    """Build the upgrade request sent to open a connection.

    ``path`` is given without its leading slash. Secure connections always
    send a bare Host header and no Origin header.
    """
    if len(origin) >= MAX_ORIGIN_LENGTH:
        raise InvalidURLError(f"origin size limit exceeded: {origin}")
    lines = [f"GET /{path} HTTP/1.1"]
    if secure or port == 80:
        lines.append(f"Host: {host}")
    else:
        lines.append(f"Host: {host}:{port}")
    lines += ["Upgrade: websocket", "Connection: Upgrade"]
    if origin and not secure:
        lines.append(f"Origin: {origin}")
    lines += [f"Sec-WebSocket-Key: {WEBSOCKET_KEY}", "Sec-WebSocket-Version: 13"]
    return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")


def parse_status_line(line: str | bytes, url: str) -> int:
    """Check the response status line and return its status code.

    Raises HandshakeError unless the server answered 101.
    """
    if isinstance(line, bytes):
        line = line.decode("latin-1")
    if len(line) >= MAX_LINE_LENGTH:
        raise HandshakeError(f"Got invalid status line connecting to: {url}")
    match = _STATUS.match(line)
    if match is None or int(match.group(1)) != SWITCHING_PROTOCOLS:
        raise HandshakeError(f"Got bad status connecting to {url}: {line}")
    return SWITCHING_PROTOCOLS