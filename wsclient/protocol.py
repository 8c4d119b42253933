"""Connection state and frame handling, independent of any socket."""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import IntEnum

from wsclient.errors import ProtocolError
from wsclient.frames import (
    DEFAULT_MASK_KEY,
    Opcode,
    apply_mask,
    encode_close_frame,
    encode_frame,
    parse_header,
)

logger = logging.getLogger(__name__)

_DATA_OPCODES = (Opcode.TEXT, Opcode.BINARY, Opcode.CONTINUATION)


class ReadyState(IntEnum):
    CLOSING = 0
    CLOSED = 1
    CONNECTING = 2
    OPEN = 3


def _as_bytes(message: str | bytes | bytearray) -> bytes:
    if isinstance(message, str):
        return message.encode("utf-8")
    return bytes(message)


class Protocol:
    """Buffers incoming and outgoing bytes and turns them into messages.

    Received bytes are fed in with :meth:`receive_data`; complete messages are
    handed out by :meth:`dispatch`. Bytes waiting to go out are read with
    :meth:`data_to_send` and acknowledged with :meth:`sent`.
    """

    def __init__(self, use_mask: bool = True) -> None:
        self.use_mask = use_mask
        self.ready_state = ReadyState.OPEN
        self._incoming = bytearray()
        self._outgoing = bytearray()
        self._message = bytearray()
        self._incoming_bad = False

    @property
    def _is_closing(self) -> bool:
        return self.ready_state in (ReadyState.CLOSING, ReadyState.CLOSED)

    def _queue(self, opcode: Opcode, payload: bytes) -> None:
        if self._is_closing:
            return
        key = DEFAULT_MASK_KEY if self.use_mask else None
        self._outgoing += encode_frame(opcode, payload, key)

    def send(self, message: str | bytes) -> None:
        """Queue a text message."""
        self._queue(Opcode.TEXT, _as_bytes(message))

    def send_binary(self, message: str | bytes) -> None:
        """Queue a binary message."""
        self._queue(Opcode.BINARY, _as_bytes(message))

    def send_ping(self) -> None:
        """Queue an empty ping."""
        self._queue(Opcode.PING, b"")

    def close(self) -> None:
        """Start closing: queue a close frame and stop accepting messages."""
        if self._is_closing:
            return
        self.ready_state = ReadyState.CLOSING
        self._outgoing += encode_close_frame()

    def receive_data(self, data: bytes) -> None:
        """Append bytes read from the connection."""
        self._incoming += data

    def dispatch(self, callback: Callable[[str], object]) -> None:
        """Call ``callback`` with each complete message, decoded as text."""
        self.dispatch_binary(
            lambda message: callback(message.decode("utf-8", errors="replace"))
        )

    def dispatch_binary(self, callback: Callable[[bytes], object]) -> None:
        """Call ``callback`` with each complete message as bytes.

        Raises ProtocolError, and starts closing, when a frame announces an
        invalid length; after that no more input is processed.
        """
        if self._incoming_bad:
            return
        while True:
            try:
                header = parse_header(self._incoming)
            except ProtocolError:
                self._incoming_bad = True
                self.close()
                raise
            if header is None or len(self._incoming) < header.frame_size:
                return

            payload = bytes(self._incoming[header.header_size:header.frame_size])
            del self._incoming[:header.frame_size]
            if header.mask:
                payload = apply_mask(payload, header.masking_key)

            if header.opcode in _DATA_OPCODES:
                self._message += payload
                if header.fin:
                    message = bytes(self._message)
                    self._message = bytearray()
                    callback(message)
            elif header.opcode == Opcode.PING:
                self._queue(Opcode.PONG, payload)
            elif header.opcode == Opcode.PONG:
                pass
            elif header.opcode == Opcode.CLOSE:
                self.close()
            else:
                logger.error("Got unexpected WebSocket message.")
                self.close()

    def data_to_send(self) -> bytes:
        """The bytes still waiting to be written to the connection."""
        return bytes(self._outgoing)

    def sent(self, count: int) -> None:
        """Drop the first ``count`` bytes, which have been written."""
        if count < 0:
            raise ValueError(f"cannot acknowledge a negative byte count: {count}")
        self._outgoing = self._outgoing[count:]

    def mark_closed(self) -> None:
        """Record that the underlying connection is gone."""
        self.ready_state = ReadyState.CLOSED