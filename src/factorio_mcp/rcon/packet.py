"""RCON wire format encoding and decoding.

Wire format (little-endian throughout):

    [length:i32][id:i32][type:i32][body utf-8][0x00][0x00]

`length` covers everything after itself, so length = 10 + len(body).
No I/O happens here; see reassembler.py for stream handling.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum

from ..errors import CommandError

LENGTH_PREFIX = struct.Struct("<i")
HEADER = struct.Struct("<ii")

# id + type + body terminator + packet terminator
MIN_PACKET_LENGTH = 10

# Factorio sends large replies unsplit; anything past this is a corrupt prefix
MAX_PACKET_LENGTH = 16 * 1024 * 1024


class PacketType(IntEnum):
    """Packet types used by the Factorio RCON server.

    AUTH_RESPONSE and EXECCOMMAND share the value 2 on the wire. IntEnum
    makes EXECCOMMAND an alias of AUTH_RESPONSE; which one a packet means
    depends only on direction and on what the client is waiting for.
    """

    RESPONSE_VALUE = 0
    AUTH_RESPONSE = 2
    EXECCOMMAND = 2
    AUTH = 3


@dataclass(frozen=True)
class Packet:
    """A single decoded RCON frame.

    `type` is kept as a plain int so unknown values from a misbehaving
    server survive decoding and can be reported by the caller.
    """

    id: int
    type: int
    body: str = ""

    def encode(self) -> bytes:
        """Encode this packet into a complete frame."""
        return encode_packet(self.id, self.type, self.body)


def encode_packet(packet_id: int, packet_type: int, body: str) -> bytes:
    """Build a length-prefixed frame.

    The body must not contain NUL characters: the protocol has no escape
    for them, so an embedded NUL yields a frame the server will misread.
    """
    payload = body.encode("utf-8")
    length = HEADER.size + len(payload) + 2
    return (
        LENGTH_PREFIX.pack(length)
        + HEADER.pack(packet_id, int(packet_type))
        + payload
        + b"\x00\x00"
    )


def decode_packet(buffer: bytes | bytearray) -> tuple[Packet, int] | None:
    """Decode the first frame in `buffer`.

    Args:
        buffer: Accumulated bytes, possibly holding a partial frame or
            more than one frame.

    Returns:
        (packet, consumed) when a full frame is available, where
        `consumed` is the number of bytes the frame occupies at the start
        of the buffer. None when more bytes are needed.

    Raises:
        CommandError: If the length prefix is impossible or the body is
            not valid UTF-8.
    """
    if len(buffer) < LENGTH_PREFIX.size:
        return None

    (length,) = LENGTH_PREFIX.unpack_from(buffer, 0)
    if length < HEADER.size or length > MAX_PACKET_LENGTH:
        raise CommandError(f"Malformed packet: invalid length {length}")

    frame_end = LENGTH_PREFIX.size + length
    if len(buffer) < frame_end:
        return None

    packet_id, packet_type = HEADER.unpack_from(buffer, LENGTH_PREFIX.size)
    body_start = LENGTH_PREFIX.size + HEADER.size
    body_length = length - MIN_PACKET_LENGTH

    body = ""
    if body_length > 0:
        try:
            body = bytes(buffer[body_start : body_start + body_length]).decode("utf-8")
        except UnicodeDecodeError as e:
            raise CommandError(f"Malformed packet: body is not valid UTF-8 ({e})") from e

    return Packet(id=packet_id, type=packet_type, body=body), frame_end
