"""Reassemble RCON frames from an unframed TCP byte stream."""

from __future__ import annotations

from .packet import Packet, decode_packet


class PacketReassembler:
    """Accumulates socket reads and yields complete packets.

    TCP gives no message boundaries: a frame can arrive split across
    several reads, and one read can carry several frames. Bytes past the
    last complete frame stay buffered until the next feed().
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet part of a complete frame."""
        return len(self._buffer)

    def feed(self, data: bytes) -> list[Packet]:
        """Append `data` and return every frame that is now complete.

        Raises:
            CommandError: If buffered data holds a malformed frame.
        """
        self._buffer.extend(data)

        packets: list[Packet] = []
        while True:
            decoded = decode_packet(self._buffer)
            if decoded is None:
                break
            packet, consumed = decoded
            del self._buffer[:consumed]
            packets.append(packet)
        return packets

    def clear(self) -> None:
        """Drop any partial frame (used when the connection is reset)."""
        self._buffer.clear()
