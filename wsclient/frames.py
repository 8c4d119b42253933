"""Encoding and decoding of WebSocket frames."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from itertools import cycle

from wsclient.errors import ProtocolError

DEFAULT_MASK_KEY = bytes((0x12, 0x34, 0x56, 0x78))
_NO_MASK = bytes(4)


class Opcode(IntEnum):
    CONTINUATION = 0x0
    TEXT = 0x1
    BINARY = 0x2
    CLOSE = 0x8
    PING = 0x9
    PONG = 0xA


@dataclass(frozen=True)
class FrameHeader:
    """A decoded frame header."""

    fin: bool
    opcode: int
    mask: bool
    payload_length: int
    header_size: int
    masking_key: bytes

    @property
    def frame_size(self) -> int:
        return self.header_size + self.payload_length


def parse_header(data: bytes) -> FrameHeader | None:
    """Decode the frame header at the start of ``data``.

    Returns None while more bytes are needed to complete the header.
    Raises ProtocolError when the 64-bit length has its top bit set.
    """
    if len(data) < 2:
        return None
    first, second = data[0], data[1]
    fin = bool(first & 0x80)
    opcode = first & 0x0F
    masked = bool(second & 0x80)
    short_length = second & 0x7F

    extended = {126: 2, 127: 8}.get(short_length, 0)
    header_size = 2 + extended + (4 if masked else 0)
    if len(data) < header_size:
        return None

    if short_length == 126:
        (length,) = struct.unpack_from("!H", data, 2)
    elif short_length == 127:
        (length,) = struct.unpack_from("!Q", data, 2)
        if length & 0x8000000000000000:
            raise ProtocolError("Frame has invalid frame length")
    else:
        length = short_length

    key_offset = 2 + extended
    key = bytes(data[key_offset:key_offset + 4]) if masked else _NO_MASK
    return FrameHeader(fin, opcode, masked, length, header_size, key)


def apply_mask(payload: bytes, key: bytes) -> bytes:
    """XOR ``payload`` with the four-byte ``key``; applying it twice restores it."""
    if len(key) != 4:
        raise ValueError("masking key must be 4 bytes long")
    return bytes(b ^ k for b, k in zip(payload, cycle(key)))


def encode_frame(opcode: int, payload: bytes, mask_key: bytes | None) -> bytes:
    """Build a complete final frame, masked with ``mask_key`` unless it is None."""
    mask_bit = 0x80 if mask_key is not None else 0
    size = len(payload)
    header = bytearray([0x80 | int(opcode)])
    if size < 126:
        header.append(size | mask_bit)
    elif size < 65536:
        header.append(126 | mask_bit)
        header += struct.pack("!H", size)
    else:
        header.append(127 | mask_bit)
        header += struct.pack("!Q", size)
    if mask_key is None:
        return bytes(header) + bytes(payload)
    header += mask_key
    return bytes(header) + apply_mask(payload, mask_key)


def encode_close_frame() -> bytes:
    """The empty, zero-masked close frame sent when closing a connection."""
    return bytes((0x88, 0x80, 0x00, 0x00, 0x00, 0x00))