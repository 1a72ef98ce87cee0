"""Tool registry for the Factorio tool server.

Tools are plain data: a name, a description, a JSON Schema for the
input, and an async handler. The server looks tools up by name at call
time, so adding a tool means registering one more definition.

Usage:
    from factorio_mcp.tools import ToolDefinition, ToolRegistry

    async def time_handler(rcon, arguments):
        return await rcon.execute("/time")

    registry = ToolRegistry()
    registry.register(ToolDefinition(
        name="get_time",
        description="Get the in-game time",
        input_schema={"type": "object", "properties": {}},
        handler=time_handler,
    ))
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..rcon import FactorioRconClient

logger = logging.getLogger(__name__)

# The actual signature is: (FactorioRconClient, dict[str, Any]) -> Awaitable[str]
ToolHandler = Callable[["FactorioRconClient", dict[str, Any]], Awaitable[str]]


@dataclass(frozen=True)
class ToolDefinition:
    """Definition of a tool exposed to agents.

    Attributes:
        name: Unique identifier for the tool
        description: Human-readable description for the LLM
        input_schema: JSON Schema for the tool's arguments
        handler: Async function producing the tool's text output
    """

    name: str
    description: str
    input_schema: dict[str, Any]
    handler: ToolHandler

    def __post_init__(self) -> None:
        """Validate the tool definition."""
        if not self.name:
            raise ValueError("Tool name cannot be empty")
        if not self.description:
            raise ValueError("Tool description cannot be empty")
        if self.input_schema.get("type") != "object":
            raise ValueError(f"Tool '{self.name}' input schema must be an object schema")
        if not callable(self.handler):
            raise ValueError("Tool handler must be callable")


class ToolRegistry:
    """Ordered name -> tool mapping.

    Tools are listed in registration order, which is the order agents
    see them in.
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolDefinition] = {}

    def register(self, tool: ToolDefinition) -> None:
        """Register a tool.

        Raises:
            ValueError: If a tool with the same name is already registered
        """
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' already registered")
        self._tools[tool.name] = tool
        logger.debug(f"Registered tool: {tool.name}")

    def get(self, name: str) -> ToolDefinition | None:
        """Get a tool definition by name, or None if not found."""
        return self._tools.get(name)

    def list_tools(self) -> list[ToolDefinition]:
        """List all registered tools."""
        return list(self._tools.values())

    def names(self) -> list[str]:
        """List names of all registered tools."""
        return list(self._tools.keys())

    @property
    def count(self) -> int:
        """Number of registered tools."""
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    async def call(
        self,
        name: str,
        rcon: FactorioRconClient,
        arguments: dict[str, Any] | None = None,
    ) -> str:
        """Run a tool by name.

        Args:
            name: Registered tool name
            rcon: Client the handler issues commands through
            arguments: Tool arguments (missing means none)

        Returns:
            The handler's text output

        Raises:
            ValueError: If no tool has this name, or the handler rejects
                its arguments
            RconError: Propagated from the handler's RCON calls
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ValueError(f"Unknown tool: {name}")

        logger.info(f"Tool called: {name}")
        return await tool.handler(rcon, dict(arguments or {}))
