"""Parsing of ws:// and wss:// URLs."""

from __future__ import annotations

import re
from dataclasses import dataclass

from wsclient.errors import InvalidURLError

MAX_URL_LENGTH = 512
DEFAULT_PORTS = {"ws": 80, "wss": 443}

_HOST = r"(?P<host>[^:/]+)"
_PORT = r":\s*(?P<port>[+-]?\d+)"
_PATH = r"/\s*(?P<path>\S+)"

# Tried in order; the first pattern that matches decides the result.
_FORMS = (
    _HOST + _PORT + _PATH,
    _HOST + _PATH,
    _HOST + _PORT,
    _HOST,
)


@dataclass(frozen=True)
class WebSocketURL:
    """The parts of a WebSocket URL needed to open a connection."""

    host: str
    port: int
    path: str
    secure: bool

    @property
    def scheme(self) -> str:
        return "wss" if self.secure else "ws"


def parse_url(url: str) -> WebSocketURL:
    """Split a ``ws://`` or ``wss://`` URL into host, port and path.

    The path is returned without its leading slash and stops at the first
    whitespace character.
    """
    if len(url) >= MAX_URL_LENGTH:
        raise InvalidURLError(f"url size limit exceeded: {url}")

    for scheme in ("ws", "wss"):
        prefix = f"{scheme}://"
        if not url.startswith(prefix):
            continue
        rest = url[len(prefix):]
        for form in _FORMS:
            match = re.match(form, rest)
            if match is None:
                continue
            parts = match.groupdict()
            port = parts.get("port")
            return WebSocketURL(
                host=parts["host"],
                port=int(port) if port is not None else DEFAULT_PORTS[scheme],
                path=parts.get("path") or "",
                secure=scheme == "wss",
            )
    raise InvalidURLError(f"Could not parse WebSocket url: {url}")