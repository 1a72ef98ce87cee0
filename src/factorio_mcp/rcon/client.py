"""Factorio RCON client: authentication handshake and command execution.

Connection state machine:

    DISCONNECTED -> CONNECTING -> AUTHENTICATING -> READY
          ^                                           |
          +------ socket error / close / timeout -----+

Commands are only sent from READY. The connection carries one request at
a time: execute() holds an asyncio.Lock across the send/receive round
trip, and asyncio.Lock wakes waiters in FIFO order, so concurrent callers
are queued and each receives the response to its own command.
"""

from __future__ import annotations

import asyncio
import logging
import re
from enum import Enum
from typing import Any

from ..config import RconConfig
from ..errors import CommandError, RconConnectionError, RconError
from .packet import PacketType, encode_packet
from .transport import RconTransport

logger = logging.getLogger(__name__)

# Wire ids are signed 32-bit; -1 is the server's "bad password" marker
MAX_PACKET_ID = 2_147_483_647
AUTH_PACKET_ID = 0
AUTH_FAILED_ID = -1

_ERROR_LINE = re.compile(r"^Error ", re.MULTILINE)


class ConnectionState(str, Enum):
    """Client connection lifecycle."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    READY = "ready"


def is_factorio_error(text: str) -> bool:
    """Detect error output from the game server.

    The protocol reports success for any command the server received;
    failures only show up as text in the response body.
    """
    return (
        "Cannot execute command" in text
        or "Error:" in text
        or _ERROR_LINE.search(text) is not None
    )


class FactorioRconClient:
    """Async RCON client for a single Factorio server.

    The TCP connection is opened lazily by the first execute() (or an
    explicit connect()) and reused until disconnect() or a transport
    failure. Failed calls are never retried: console commands can change
    game state, so retrying is left to the caller.

    Example:
        async with FactorioRconClient(RconConfig(host="localhost", port=27015,
                                                 password="secret")) as rcon:
            print(await rcon.execute("/time"))
    """

    def __init__(self, config: RconConfig, *, log: logging.Logger | None = None) -> None:
        self.config = config
        self._log = log or logger
        self._transport: RconTransport | None = None
        self._state = ConnectionState.DISCONNECTED
        self._packet_id = AUTH_PACKET_ID
        self._lock = asyncio.Lock()

    @property
    def state(self) -> ConnectionState:
        """Current state; a dead socket always reads as DISCONNECTED."""
        if self._transport is None or not self._transport.is_open:
            return ConnectionState.DISCONNECTED
        return self._state

    @property
    def is_connected(self) -> bool:
        """True when authenticated and ready to send commands."""
        return self.state == ConnectionState.READY

    async def connect(self) -> None:
        """Connect and authenticate if not already READY.

        Raises:
            RconConnectionError: If the connection or handshake fails
        """
        async with self._lock:
            if not self.is_connected:
                await self._connect()

    async def disconnect(self) -> None:
        """Close the connection. Safe to call at any time; never raises.

        A command still waiting for its response fails with
        RconConnectionError.
        """
        transport = self._transport
        self._transport = None
        self._state = ConnectionState.DISCONNECTED
        if transport is not None:
            await transport.disconnect()
            self._log.info("Disconnected from RCON server")

    async def execute(self, command: str) -> str:
        """Run a console command and return its trimmed output.

        Args:
            command: Console text, e.g. "/time" or "/c rcon.print(game.tick)"

        Returns:
            The response body with surrounding whitespace removed; an
            empty string when the command produced no output.

        Raises:
            RconConnectionError: If connecting/authenticating fails or the
                connection drops while waiting
            CommandError: If sending fails, the response does not match
                the request, or the game reports an error
        """
        async with self._lock:
            if not self.is_connected:
                await self._connect()

            transport = self._transport
            if transport is None:
                raise RconConnectionError("RCON client not initialized")

            packet_id = self._next_packet_id()
            self._log.debug(f"Executing command (id={packet_id}): {command}")

            try:
                await transport.send(encode_packet(packet_id, PacketType.EXECCOMMAND, command))
                response = await transport.receive()
            except RconError as e:
                self._log.error(f"Command execution failed: {command!r}: {e}")
                if not transport.is_open:
                    self._drop(transport)
                raise
            except asyncio.CancelledError:
                # A reply may still arrive for this id, so the stream can't be reused
                self._log.warning(f"Command cancelled while in flight: {command!r}")
                await self._reset(transport)
                raise

            if response.id != packet_id:
                await self._reset(transport)
                raise CommandError(
                    f"Response ID mismatch: expected {packet_id}, got {response.id}"
                )
            if response.type != PacketType.RESPONSE_VALUE:
                await self._reset(transport)
                raise CommandError(f"Invalid response type: {response.type}")

            result = response.body.strip()
            if is_factorio_error(result):
                self._log.error(f"Factorio rejected command {command!r}: {result}")
                raise CommandError(f"Factorio error: {result}")

            self._log.debug(f"Command executed successfully (id={packet_id})")
            return result

    def _next_packet_id(self) -> int:
        """Allocate the next command id, wrapping before the int32 limit."""
        self._packet_id += 1
        if self._packet_id >= MAX_PACKET_ID:
            self._packet_id = 0
        return self._packet_id

    async def _connect(self) -> None:
        """Open a fresh connection and authenticate. Caller holds the lock."""
        await self.disconnect()

        host, port = self.config.host, self.config.port
        self._state = ConnectionState.CONNECTING
        self._log.info(f"Connecting to RCON server at {host}:{port}")

        transport = RconTransport(host, port, self.config.timeout, log=self._log)
        # Set before opening so disconnect() can abandon a connect in progress
        self._transport = transport
        try:
            await transport.connect()
        except RconConnectionError as e:
            self._drop(transport)
            self._log.error(f"Failed to connect to RCON server: {e}")
            raise
        except asyncio.CancelledError:
            self._drop(transport)
            raise

        if self._transport is not transport:
            await transport.disconnect()
            raise RconConnectionError("Connection closed")

        self._packet_id = AUTH_PACKET_ID
        self._state = ConnectionState.AUTHENTICATING

        authenticated = False
        try:
            await self._authenticate(transport)
            authenticated = True
        except CommandError as e:
            raise RconConnectionError(f"Authentication failed: {e}") from e
        finally:
            if not authenticated:
                await self.disconnect()

        self._state = ConnectionState.READY
        self._log.info("Successfully authenticated")

    async def _authenticate(self, transport: RconTransport) -> None:
        await transport.send(encode_packet(AUTH_PACKET_ID, PacketType.AUTH, self.config.password))
        response = await transport.receive()

        if response.type != PacketType.AUTH_RESPONSE:
            raise RconConnectionError("Invalid auth response type")
        if response.id == AUTH_FAILED_ID:
            raise RconConnectionError("Invalid password")
        if response.id != AUTH_PACKET_ID:
            raise RconConnectionError("Invalid response ID")

    def _drop(self, transport: RconTransport) -> None:
        if self._transport is transport:
            self._transport = None
            self._state = ConnectionState.DISCONNECTED

    async def _reset(self, transport: RconTransport) -> None:
        # An unmatched response leaves the stream position unknown
        self._drop(transport)
        await transport.disconnect()

    async def __aenter__(self) -> FactorioRconClient:
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.disconnect()
