"""Tools exposed to agents.

- registry: ToolDefinition and the name -> tool ToolRegistry
- game: built-in Factorio tools and create_default_registry()
"""

from .game import GAME_TOOLS, NO_OUTPUT, build_lua_command, create_default_registry, docs_tool
from .registry import ToolDefinition, ToolHandler, ToolRegistry

__all__ = [
    "ToolDefinition",
    "ToolHandler",
    "ToolRegistry",
    "GAME_TOOLS",
    "NO_OUTPUT",
    "build_lua_command",
    "create_default_registry",
    "docs_tool",
]
