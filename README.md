# wsclient

A small WebSocket client that you drive by polling it. It uses the RFC 6455
framing protocol over a TCP socket. `wss://` URLs are wrapped in TLS with
the standard library's `ssl` module. The package needs nothing outside the
standard library.

## Installation

```
pip install wsclient
```

## Usage

```python
from wsclient.client import from_url
from wsclient.protocol import ReadyState

ws = from_url("ws://localhost:8126/chat")
ws.send("hello")

def on_message(message: str) -> None:
    print("received:", message)
    ws.close()

while ws.ready_state is not ReadyState.CLOSED:
    ws.poll(10)               # timeout in milliseconds
    ws.dispatch(on_message)
```

### Connecting

- `from_url(url, origin="")` connects and completes the HTTP upgrade
  handshake. It returns a non-blocking `WebSocket`. Frames sent by the
  client are masked.
- `from_url_no_mask(url, origin="")` does the same, but sends frames without
  a mask.
- `create_dummy()` returns the shared `DummyWebSocket`. That connection is
  always `CLOSED`. It ignores everything sent to it and never delivers a
  message, so it can stand in where a connection is expected.

The handshake itself blocks. A failure raises an exception:

- a URL that cannot be parsed, or an origin of 200 characters or more, raises
  `InvalidURLError`;
- a failed TCP connection raises `WebSocketError`;
- a response whose status is not `101` raises `HandshakeError`. So does a
  connection that closes during the handshake. Errors from the TLS layer are
  passed on as they are.

### The `WebSocket` object

- `send(message)` and `send_binary(message)` queue a text or binary frame.
  `send_ping()` queues an empty ping. A `str` is encoded as UTF-8. Nothing is
  queued once the connection is closing or closed.
- `poll(timeout=0)` reads whatever has arrived and writes whatever is queued.
  `timeout` is in milliseconds. `0` does not wait. A negative value waits
  until the socket is ready. A closing connection is shut down once its queue
  is empty.
- `dispatch(callback)` calls `callback` with each complete message as a
  `str`. Invalid UTF-8 is replaced. `dispatch_binary(callback)` passes the
  message as `bytes` instead. Fragmented messages are joined before they are
  delivered. A ping is answered with a pong. A close frame from the peer
  starts closing.
- `close()` queues a close frame. The socket is closed after that frame has
  been written by `poll`.
- `ready_state` is one of `ReadyState.OPEN`, `CLOSING`, `CLOSED` or
  `CONNECTING`.
- A `WebSocket` can be used as a context manager. On exit it closes, polls
  once and then shuts the socket down.

### URLs

`wsclient.url.parse_url(url)` returns a `WebSocketURL` with these fields:
`host`, `port`, `path` and `secure`. It also has a `scheme` property.

- The accepted forms are `ws://host`, `ws://host:port`, `ws://host/path` and
  `ws://host:port/path`, and the same four forms for `wss://`.
- The default ports are 80 and 443.
- The path is returned without its leading slash. It ends at the first
  whitespace.
- `InvalidURLError` is raised for any other form. It is also raised for a URL
  of 512 characters or more.

## Lower-level pieces

- `wsclient.frames` reads and writes single frames:
  - `parse_header(data)` returns a `FrameHeader`, or `None` while the header
    is still incomplete;
  - `encode_frame(opcode, payload, mask_key)`;
  - `apply_mask(payload, key)`;
  - `encode_close_frame()`;
  - the `Opcode` enum.
- `wsclient.protocol.Protocol(use_mask=True)` is the framing state machine,
  with no socket attached:
  - feed it bytes with `receive_data`;
  - read outgoing bytes with `data_to_send` and acknowledge them with `sent`;
  - call `mark_closed` when the connection is gone.

  `dispatch_binary` raises `ProtocolError` for a frame whose 64-bit length has
  its top bit set. It then starts closing and ignores further input.
- `wsclient.handshake` has two functions. `build_request(host, port, path,
  origin, secure)` builds the upgrade request. `parse_status_line(line, url)`
  checks the response status line.

All errors derive from `wsclient.errors.WebSocketError`. The subclasses are
`InvalidURLError` (also a `ValueError`), `HandshakeError` and
`ProtocolError`.

## What it does not do

- It is a client only. There is no server and no command-line tool.
- The `Sec-WebSocket-Key` sent in the handshake is a fixed value. Response
  headers after the status line are read and discarded. They are not
  verified.
- Masked frames always use the same masking key, `12 34 56 78`.
- Close frames carry no status code or reason. Extensions and subprotocols
  are not negotiated.
- Secure connections send a bare `Host` header and no `Origin` header.

## Running the tests

```
pip install -e ".[test]"
pytest
```