"""A small non-blocking WebSocket client over a plain or TLS socket."""

from __future__ import annotations

import logging
import select
import socket
import ssl
import time
from collections.abc import Callable

from wsclient.errors import HandshakeError, WebSocketError
from wsclient.handshake import MAX_LINE_LENGTH, build_request, parse_status_line
from wsclient.protocol import Protocol, ReadyState
from wsclient.url import parse_url

logger = logging.getLogger(__name__)

_RECV_SIZE = 1500
_WOULD_BLOCK = (
    BlockingIOError,
    InterruptedError,
    ssl.SSLWantReadError,
    ssl.SSLWantWriteError,
)


class WebSocket:
    """An open WebSocket connection driven by repeated calls to :meth:`poll`."""

    def __init__(self, sock: socket.socket, use_mask: bool = True) -> None:
        self._sock = sock
        self._protocol = Protocol(use_mask)

    @property
    def ready_state(self) -> ReadyState:
        return self._protocol.ready_state

    def __enter__(self) -> WebSocket:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
        self.poll()
        if self.ready_state is not ReadyState.CLOSED:
            self._shutdown()

    def _shutdown(self) -> None:
        self._sock.close()
        self._protocol.mark_closed()

    def poll(self, timeout: int = 0) -> None:
        """Read what has arrived and write what is queued.

        ``timeout`` is in milliseconds: 0 does not wait, a negative value
        waits until the socket is ready.
        """
        if self.ready_state is ReadyState.CLOSED:
            if timeout > 0:
                time.sleep(timeout / 1000)
            return
        if timeout != 0:
            writers = [self._sock] if self._protocol.data_to_send() else []
            select.select(
                [self._sock], writers, [], timeout / 1000 if timeout > 0 else None
            )
        self._read()
        self._write()
        if not self._protocol.data_to_send() and self.ready_state is ReadyState.CLOSING:
            self._shutdown()

    def _read(self) -> None:
        while self.ready_state is not ReadyState.CLOSED:
            try:
                chunk = self._sock.recv(_RECV_SIZE)
            except _WOULD_BLOCK:
                return
            except OSError:
                logger.error("Connection error!")
                self._shutdown()
                return
            if not chunk:
                logger.info("Connection closed!")
                self._shutdown()
                return
            self._protocol.receive_data(chunk)

    def _write(self) -> None:
        while self.ready_state is not ReadyState.CLOSED:
            data = self._protocol.data_to_send()
            if not data:
                return
            try:
                count = self._sock.send(data)
            except _WOULD_BLOCK:
                return
            except OSError:
                logger.error("Connection error!")
                self._shutdown()
                return
            if count <= 0:
                logger.info("Connection closed!")
                self._shutdown()
                return
            self._protocol.sent(count)

    def send(self, message: str | bytes) -> None:
        """Queue a text message; it goes out on the next poll."""
        self._protocol.send(message)

    def send_binary(self, message: str | bytes) -> None:
        """Queue a binary message; it goes out on the next poll."""
        self._protocol.send_binary(message)

    def send_ping(self) -> None:
        """Queue a ping."""
        self._protocol.send_ping()

    def close(self) -> None:
        """Queue a close frame; the socket is closed once it has been sent."""
        self._protocol.close()

    def dispatch(self, callback: Callable[[str], object]) -> None:
        """Hand each complete received message to ``callback`` as text."""
        self._protocol.dispatch(callback)

    def dispatch_binary(self, callback: Callable[[bytes], object]) -> None:
        """Hand each complete received message to ``callback`` as bytes."""
        self._protocol.dispatch_binary(callback)


class DummyWebSocket:
    """A connection that is always closed: it sends nothing and receives nothing."""

    def __init__(self) -> None:
        self._protocol = Protocol(use_mask=True)
        self._protocol.mark_closed()

    @property
    def ready_state(self) -> ReadyState:
        return self._protocol.ready_state

    def poll(self, timeout: int = 0) -> None:
        """Discard anything pending; a closed connection has nowhere to send it."""
        pending = len(self._protocol.data_to_send())
        self._protocol.sent(pending)

    def send(self, message: str | bytes) -> None:
        """Ignored, since the connection is closed."""
        self._protocol.send(message)

    def send_binary(self, message: str | bytes) -> None:
        """Ignored, since the connection is closed."""
        self._protocol.send_binary(message)

    def send_ping(self) -> None:
        """Ignored, since the connection is closed."""
        self._protocol.send_ping()

    def close(self) -> None:
        """Already closed; nothing changes."""
        self._protocol.close()

    def dispatch(self, callback: Callable[[str], object]) -> None:
        """Never calls ``callback``: nothing is ever received."""
        self._protocol.dispatch(callback)

    def dispatch_binary(self, callback: Callable[[bytes], object]) -> None:
        """Never calls ``callback``: nothing is ever received."""
        self._protocol.dispatch_binary(callback)


_DUMMY = DummyWebSocket()


def create_dummy() -> DummyWebSocket:
    """Return the shared always-closed connection."""
    return _DUMMY


def _read_line(sock: socket.socket) -> bytes:
    line = bytearray()
    while len(line) < MAX_LINE_LENGTH and not line.endswith(b"\r\n"):
        byte = sock.recv(1)
        if not byte:
            raise HandshakeError("Connection closed during handshake")
        line += byte
    return bytes(line)


def _connect(url: str, use_mask: bool, origin: str) -> WebSocket:
    target = parse_url(url)
    request = build_request(target.host, target.port, target.path, origin, target.secure)
    try:
        sock = socket.create_connection((target.host, target.port))
    except OSError as exc:
        raise WebSocketError(f"Unable to connect to {target.host}:{target.port}") from exc
    try:
        if target.secure:
            context = ssl.create_default_context()
            sock = context.wrap_socket(sock, server_hostname=target.host)
        sock.sendall(request)
        parse_status_line(_read_line(sock), url)
        while _read_line(sock) != b"\r\n":
            pass
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.setblocking(False)
    except BaseException:
        sock.close()
        raise
    return WebSocket(sock, use_mask)


def from_url(url: str, origin: str = "") -> WebSocket:
    """Connect to ``url`` and complete the handshake; outgoing frames are masked."""
    return _connect(url, True, origin)


def from_url_no_mask(url: str, origin: str = "") -> WebSocket:
    """Connect to ``url`` and complete the handshake; outgoing frames are not masked."""
    return _connect(url, False, origin)