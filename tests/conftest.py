"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import pytest

from factorio_mcp.config import RconConfig
from factorio_mcp.rcon import Packet, PacketReassembler, PacketType, encode_packet

# Returned by a command handler to make the fake server hang up
CLOSE = object()

CommandHandler = Callable[[Packet], Awaitable[object]]


class FakeRconServer:
    """In-process Factorio RCON server speaking the real wire format.

    By default it accepts `password`, answers commands from `responses`
    (unknown commands get an empty body) and echoes the request id.
    `handler` overrides command replies: return bytes to send, None to
    stay silent, or CLOSE to drop the connection.

    Commands are read as soon as they arrive and answered from separate
    tasks, so `log` shows whether a client pipelined requests.
    """

    def __init__(
        self,
        password: str = "secret",
        responses: dict[str, str] | None = None,
        handler: CommandHandler | None = None,
        auth_reply: Callable[[Packet], bytes] | None = None,
        chunk_size: int | None = None,
    ) -> None:
        self.password = password
        self.responses = responses or {}
        self.handler = handler
        self.auth_reply = auth_reply
        self.chunk_size = chunk_size
        self.port = 0
        self.connections = 0
        self.closed_connections = 0
        self.auth_attempts = 0
        self.commands: list[Packet] = []
        self.log: list[tuple[str, str]] = []
        self._server: asyncio.Server | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._writers: set[asyncio.StreamWriter] = set()

    async def start(self) -> FakeRconServer:
        self._server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        self.port = self._server.sockets[0].getsockname()[1]
        return self

    async def stop(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        for writer in list(self._writers):
            writer.close()
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

    async def __aenter__(self) -> FakeRconServer:
        return await self.start()

    async def __aexit__(self, *args: object) -> None:
        await self.stop()

    def config(self, password: str | None = None, timeout: float = 1.0) -> RconConfig:
        return RconConfig(
            host="127.0.0.1",
            port=self.port,
            password=self.password if password is None else password,
            timeout=timeout,
        )

    async def wait_for_closed(self, count: int = 1, timeout: float = 1.0) -> None:
        """Wait until `count` client connections have been closed."""

        async def _poll() -> None:
            while self.closed_connections < count:
                await asyncio.sleep(0.01)

        await asyncio.wait_for(_poll(), timeout=timeout)

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.connections += 1
        self._writers.add(writer)
        reassembler = PacketReassembler()
        try:
            while True:
                data = await reader.read(4096)
                if not data:
                    break
                for packet in reassembler.feed(data):
                    if packet.type == PacketType.AUTH:
                        await self._write(writer, self._authenticate(packet))
                        continue
                    self.commands.append(packet)
                    self.log.append(("recv", packet.body))
                    task = asyncio.create_task(self._respond(packet, writer))
                    self._tasks.add(task)
                    task.add_done_callback(self._tasks.discard)
        except (ConnectionError, asyncio.CancelledError):
            pass
        finally:
            self.closed_connections += 1
            self._writers.discard(writer)
            writer.close()

    def _authenticate(self, packet: Packet) -> bytes:
        self.auth_attempts += 1
        if self.auth_reply is not None:
            return self.auth_reply(packet)
        reply_id = packet.id if packet.body == self.password else -1
        return encode_packet(reply_id, PacketType.AUTH_RESPONSE, "")

    async def _respond(self, packet: Packet, writer: asyncio.StreamWriter) -> None:
        if self.handler is not None:
            reply = await self.handler(packet)
        else:
            body = self.responses.get(packet.body, "")
            reply = encode_packet(packet.id, PacketType.RESPONSE_VALUE, body)

        if reply is CLOSE:
            writer.close()
            return
        if writer.is_closing():
            return
        if isinstance(reply, bytes):
            self.log.append(("reply", packet.body))
            await self._write(writer, reply)

    async def _write(self, writer: asyncio.StreamWriter, data: bytes) -> None:
        if not data:
            return
        step = self.chunk_size or len(data)
        for start in range(0, len(data), step):
            writer.write(data[start : start + step])
            await writer.drain()
            if self.chunk_size:
                await asyncio.sleep(0)


@pytest.fixture
def fake_server() -> type[FakeRconServer]:
    """The fake server class; tests start it with `async with`."""
    return FakeRconServer


@pytest.fixture
def close_marker() -> object:
    """Sentinel a fake server handler returns to hang up."""
    return CLOSE
