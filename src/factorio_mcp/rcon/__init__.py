"""Factorio RCON protocol client.

- packet: wire format encode/decode
- reassembler: frame reassembly over a TCP byte stream
- transport: asyncio TCP connection with a background reader
- client: authentication handshake and serialized command execution
"""

from .client import ConnectionState, FactorioRconClient, is_factorio_error
from .packet import Packet, PacketType, decode_packet, encode_packet
from .reassembler import PacketReassembler
from .transport import RconTransport

__all__ = [
    # Client
    "FactorioRconClient",
    "ConnectionState",
    "is_factorio_error",
    # Wire format
    "Packet",
    "PacketType",
    "encode_packet",
    "decode_packet",
    "PacketReassembler",
    # Transport
    "RconTransport",
]
