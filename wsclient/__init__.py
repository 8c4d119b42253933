"""A small polling WebSocket client: URL parsing, framing, handshake and connections."""

__version__ = "0.1.0"
__all__ = ["client", "errors", "frames", "handshake", "protocol", "url"]