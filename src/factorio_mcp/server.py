"""MCP tool server over stdio.

Publishes the tool registry to an MCP client (an IDE or agent host):
- tools/list returns every registered tool with its input schema
- tools/call runs the named tool against the shared RCON client

stdout carries the protocol, so all logging goes to stderr.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from typing import Any

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from . import __version__
from .config import AppConfig
from .rcon import FactorioRconClient
from .tools import ToolRegistry, create_default_registry

logger = logging.getLogger(__name__)


class ToolCallError(Exception):
    """A tool call failed; the message is what the agent gets to see."""


def tool_specs(registry: ToolRegistry) -> list[types.Tool]:
    """Describe registered tools in MCP form, in registration order."""
    return [
        types.Tool(name=tool.name, description=tool.description, inputSchema=tool.input_schema)
        for tool in registry.list_tools()
    ]


async def run_tool(
    registry: ToolRegistry,
    rcon: FactorioRconClient,
    name: str,
    arguments: dict[str, Any] | None,
) -> str:
    """Run one tool call.

    Raises:
        ToolCallError: For an unknown tool or any handler failure, with a
            message naming the tool and the cause
    """
    if name not in registry:
        raise ToolCallError(f"Unknown tool: {name}")

    try:
        return await registry.call(name, rcon, arguments)
    except Exception as e:
        logger.error(f"Tool {name} failed: {e}")
        raise ToolCallError(f"Error executing {name}: {e}") from e


def create_server(name: str, rcon: FactorioRconClient, registry: ToolRegistry) -> Server:
    """Build an MCP server whose handlers delegate to `registry`."""
    server: Server = Server(name, version=__version__)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return tool_specs(registry)

    @server.call_tool()
    async def call_tool(tool_name: str, arguments: dict[str, Any]) -> list[types.TextContent]:
        text = await run_tool(registry, rcon, tool_name, arguments)
        return [types.TextContent(type="text", text=text)]

    return server


async def run_stdio_server(config: AppConfig, registry: ToolRegistry | None = None) -> None:
    """Serve tools over stdin/stdout until EOF or SIGINT/SIGTERM.

    The RCON connection is opened on the first tool call and always
    closed on the way out.
    """
    rcon = FactorioRconClient(config.rcon)
    registry = registry or create_default_registry()
    server = create_server(config.server_name, rcon, registry)

    main_task = asyncio.current_task()
    if main_task is not None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            # add_signal_handler is unavailable on Windows event loops
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, main_task.cancel)

    logger.info(
        f"Starting {config.server_name} for {config.rcon.host}:{config.rcon.port} "
        f"with {registry.count} tools"
    )
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
    except asyncio.CancelledError:
        logger.info("Shutdown requested")
    finally:
        await rcon.disconnect()
        logger.info("Server stopped")
