import socket
import threading

import pytest

from wsclient.client import (
    DummyWebSocket,
    WebSocket,
    create_dummy,
    from_url,
    from_url_no_mask,
)
from wsclient.errors import HandshakeError, InvalidURLError, WebSocketError
from wsclient.frames import (
    DEFAULT_MASK_KEY,
    Opcode,
    apply_mask,
    encode_close_frame,
    encode_frame,
    parse_header,
)
from wsclient.handshake import build_request
from wsclient.protocol import ReadyState


@pytest.fixture
def pair():
    client, peer = socket.socketpair()
    client.setblocking(False)
    peer.settimeout(5)
    yield client, peer
    client.close()
    peer.close()


def poll_messages(ws, binary=False):
    messages = []
    for _ in range(50):
        ws.poll(100)
        if binary:
            ws.dispatch_binary(messages.append)
        else:
            ws.dispatch(messages.append)
        if messages:
            break
    return messages


def recv_exactly(sock, count):
    data = b""
    while len(data) < count:
        chunk = sock.recv(count - len(data))
        if not chunk:
            break
        data += chunk
    return data


def test_receives_text_message(pair):
    client, peer = pair
    ws = WebSocket(client, use_mask=False)
    peer.sendall(encode_frame(Opcode.TEXT, b"hello", None))
    assert poll_messages(ws) == ["hello"]


def test_receives_binary_message(pair):
    client, peer = pair
    ws = WebSocket(client, use_mask=False)
    peer.sendall(encode_frame(Opcode.BINARY, b"\x00\xff", None))
    assert poll_messages(ws, binary=True) == [b"\x00\xff"]


def test_sends_masked_text(pair):
    client, peer = pair
    ws = WebSocket(client, use_mask=True)
    ws.send("hi")
    ws.poll(100)
    data = recv_exactly(peer, 8)
    header = parse_header(data)
    assert header.masking_key == DEFAULT_MASK_KEY
    assert apply_mask(data[header.header_size:], header.masking_key) == b"hi"


def test_sends_unmasked_binary(pair):
    client, peer = pair
    ws = WebSocket(client, use_mask=False)
    ws.send_binary(b"abc")
    ws.poll()
    expected = encode_frame(Opcode.BINARY, b"abc", None)
    assert recv_exactly(peer, len(expected)) == expected


def test_answers_ping_with_pong(pair):
    client, peer = pair
    ws = WebSocket(client, use_mask=False)
    peer.sendall(encode_frame(Opcode.PING, b"p", None))
    ws.poll(100)
    ws.dispatch(lambda message: None)
    ws.poll(100)
    expected = encode_frame(Opcode.PONG, b"p", None)
    assert recv_exactly(peer, len(expected)) == expected


def test_close_sends_frame_and_closes(pair):
    client, peer = pair
    ws = WebSocket(client, use_mask=True)
    ws.close()
    assert ws.ready_state is ReadyState.CLOSING
    ws.poll(100)
    assert ws.ready_state is ReadyState.CLOSED
    assert recv_exactly(peer, 6) == encode_close_frame()


def test_peer_closing_marks_closed(pair):
    client, peer = pair
    ws = WebSocket(client, use_mask=False)
    peer.close()
    ws.poll(100)
    assert ws.ready_state is ReadyState.CLOSED


def test_context_manager_closes(pair):
    client, peer = pair
    with WebSocket(client, use_mask=False) as ws:
        assert ws.ready_state is ReadyState.OPEN
    assert ws.ready_state is ReadyState.CLOSED
    assert recv_exactly(peer, 6) == encode_close_frame()


def test_dummy_is_shared_and_closed():
    dummy = create_dummy()
    assert dummy is create_dummy()
    assert isinstance(dummy, DummyWebSocket)
    assert dummy.ready_state is ReadyState.CLOSED


def test_dummy_never_dispatches():
    dummy = create_dummy()
    dummy.send("x")
    dummy.send_binary(b"x")
    dummy.send_ping()
    dummy.poll(0)
    dummy.close()
    messages = []
    dummy.dispatch(messages.append)
    dummy.dispatch_binary(messages.append)
    assert messages == []
    assert dummy.ready_state is ReadyState.CLOSED


class FakeServer:
    def __init__(self, response):
        self.response = response
        self.request = b""
        self.listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.listener.bind(("127.0.0.1", 0))
        self.listener.listen(1)
        self.listener.settimeout(5)
        self.port = self.listener.getsockname()[1]
        self.connection = None
        self.thread = threading.Thread(target=self._serve, daemon=True)
        self.thread.start()

    def _serve(self):
        conn, _ = self.listener.accept()
        conn.settimeout(5)
        self.connection = conn
        while b"\r\n\r\n" not in self.request:
            chunk = conn.recv(1024)
            if not chunk:
                break
            self.request += chunk
        if self.response is None:
            conn.close()
        else:
            conn.sendall(self.response)

    def stop(self):
        self.thread.join(5)
        if self.connection is not None:
            self.connection.close()
        self.listener.close()


GOOD_RESPONSE = (
    b"HTTP/1.1 101 Switching Protocols\r\n"
    b"Upgrade: websocket\r\n"
    b"Connection: Upgrade\r\n"
    b"\r\n"
)


def test_from_url_handshake_and_exchange():
    server = FakeServer(GOOD_RESPONSE)
    try:
        ws = from_url_no_mask(f"ws://127.0.0.1:{server.port}/chat")
        server.thread.join(5)
        assert server.request == build_request("127.0.0.1", server.port, "chat", "", False)
        assert ws.ready_state is ReadyState.OPEN
        server.connection.sendall(encode_frame(Opcode.TEXT, b"welcome", None))
        assert poll_messages(ws) == ["welcome"]
        ws.send("reply")
        ws.poll(100)
        expected = encode_frame(Opcode.TEXT, b"reply", None)
        assert recv_exactly(server.connection, len(expected)) == expected
        ws.close()
        ws.poll(100)
        assert ws.ready_state is ReadyState.CLOSED
    finally:
        server.stop()


def test_from_url_sends_origin_and_masks():
    server = FakeServer(GOOD_RESPONSE)
    try:
        ws = from_url(f"ws://127.0.0.1:{server.port}", origin="http://example.com")
        server.thread.join(5)
        assert b"Origin: http://example.com\r\n" in server.request
        ws.send("m")
        ws.poll(100)
        data = recv_exactly(server.connection, 7)
        assert parse_header(data).mask
        ws.close()
        ws.poll(100)
    finally:
        server.stop()


def test_from_url_rejects_bad_status():
    server = FakeServer(b"HTTP/1.1 404 Not Found\r\n\r\n")
    try:
        with pytest.raises(HandshakeError):
            from_url(f"ws://127.0.0.1:{server.port}/")
    finally:
        server.stop()


def test_from_url_fails_when_server_hangs_up():
    server = FakeServer(None)
    try:
        with pytest.raises(HandshakeError):
            from_url(f"ws://127.0.0.1:{server.port}/")
    finally:
        server.stop()


def test_from_url_rejects_unparseable_url():
    with pytest.raises(InvalidURLError):
        from_url("http://example.com/")


def test_from_url_rejects_long_origin():
    with pytest.raises(InvalidURLError):
        from_url("ws://127.0.0.1:1/", origin="o" * 200)


def test_from_url_reports_refused_connection():
    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    with pytest.raises(WebSocketError):
        from_url(f"ws://127.0.0.1:{port}/")