"""TCP transport for the RCON client.

Owns one asyncio stream connection. A background reader task pushes raw
socket reads through a PacketReassembler and queues complete packets;
receive() hands them out one at a time. Socket errors, EOF and malformed
frames are queued as exceptions so whoever is waiting in receive() fails
instead of hanging, and the connection is torn down.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from ..errors import CommandError, RconConnectionError, RconError
from .packet import Packet
from .reassembler import PacketReassembler

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 4096


class RconTransport:
    """Byte-level connection to an RCON server.

    Every network wait (connect, drain, receive) is bounded by `timeout`
    seconds. A timed-out connection is closed rather than reused, since
    whatever the server sends later can no longer be matched up.
    """

    def __init__(
        self,
        host: str,
        port: int,
        timeout: float = 5.0,
        *,
        log: logging.Logger | None = None,
    ) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout
        self._log = log or logger
        self._writer: asyncio.StreamWriter | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._reassembler = PacketReassembler()
        self._packets: asyncio.Queue[Packet | RconError] = asyncio.Queue()

    @property
    def is_open(self) -> bool:
        """True while the socket is connected and not closing."""
        return self._writer is not None and not self._writer.is_closing()

    async def connect(self) -> None:
        """Open the TCP connection.

        Raises:
            RconConnectionError: On timeout, refusal, or any socket error
        """
        if self.is_open:
            return

        self._reassembler.clear()
        self._packets = asyncio.Queue()

        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self.timeout,
            )
        except TimeoutError as e:
            raise RconConnectionError(
                f"Connection to {self.host}:{self.port} timed out after {self.timeout}s"
            ) from e
        except OSError as e:
            raise RconConnectionError(
                f"Failed to connect to {self.host}:{self.port}: {e}"
            ) from e

        self._writer = writer
        self._reader_task = asyncio.create_task(self._read_loop(reader))
        self._log.debug(f"TCP connection established to {self.host}:{self.port}")

    async def send(self, data: bytes) -> None:
        """Write one encoded frame.

        Raises:
            CommandError: If not connected or the write fails
        """
        if not self.is_open or self._writer is None:
            raise CommandError("Not connected")

        try:
            self._writer.write(data)
            await asyncio.wait_for(self._writer.drain(), timeout=self.timeout)
        except (OSError, TimeoutError) as e:
            await self.disconnect()
            raise CommandError(f"Failed to send packet: {e}") from e

    async def receive(self) -> Packet:
        """Wait for the next complete packet.

        Raises:
            CommandError: On timeout or a malformed frame
            RconConnectionError: If the connection closed or errored
        """
        if not self.is_open and self._packets.empty():
            raise RconConnectionError("Not connected")

        try:
            item = await asyncio.wait_for(self._packets.get(), timeout=self.timeout)
        except TimeoutError as e:
            self._log.warning(f"No response within {self.timeout}s, dropping connection")
            await self.disconnect()
            raise CommandError(f"Receive timeout after {self.timeout}s") from e

        if isinstance(item, RconError):
            raise item
        return item

    async def disconnect(self) -> None:
        """Close the connection. Idempotent and never raises."""
        task = self._reader_task
        self._reader_task = None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        writer = self._writer
        self._writer = None
        self._reassembler.clear()
        if writer is None:
            return

        writer.close()
        with contextlib.suppress(OSError):
            await writer.wait_closed()

        # Wake a receive() that is still waiting on this connection
        self._packets.put_nowait(RconConnectionError("Connection closed"))
        self._log.debug(f"TCP connection to {self.host}:{self.port} closed")

    async def _read_loop(self, reader: asyncio.StreamReader) -> None:
        """Background task feeding socket reads into the packet queue."""
        try:
            while True:
                chunk = await reader.read(READ_CHUNK_SIZE)
                if not chunk:
                    raise RconConnectionError("Connection closed")
                for packet in self._reassembler.feed(chunk):
                    self._packets.put_nowait(packet)
        except asyncio.CancelledError:
            pass
        except RconError as e:
            self._fail(e)
        except OSError as e:
            self._fail(RconConnectionError(f"Socket error: {e}"))

    def _fail(self, error: RconError) -> None:
        """Tear down after a read-side failure and hand the error to receive()."""
        self._log.warning(f"RCON connection lost: {error}")
        if self._writer is not None:
            self._writer.close()
            self._writer = None
        self._reader_task = None
        self._reassembler.clear()
        self._packets.put_nowait(error)
