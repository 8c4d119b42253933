"""Exceptions raised by the WebSocket client."""


class WebSocketError(Exception):
    """Base class for every error raised by this package."""


class InvalidURLError(WebSocketError, ValueError):
    """A WebSocket URL or origin could not be accepted."""


class HandshakeError(WebSocketError):
    """The opening HTTP upgrade handshake failed."""


class ProtocolError(WebSocketError):
    """The peer sent data that violates the framing protocol."""