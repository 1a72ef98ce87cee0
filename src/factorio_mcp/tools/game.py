"""Built-in Factorio tools.

Each handler turns structured arguments into one or more console
commands and formats the replies for an agent to read.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..docs import SOURCES, DocsFetcher
from ..errors import RconError
from .registry import ToolDefinition, ToolRegistry

if TYPE_CHECKING:
    from ..rcon import FactorioRconClient

NO_OUTPUT = "(no output)"

EMPTY_SCHEMA: dict[str, Any] = {"type": "object", "properties": {}}


async def execute_command(rcon: FactorioRconClient, arguments: dict[str, Any]) -> str:
    command = str(arguments.get("command") or "")
    if not command:
        raise ValueError("Command is required")

    result = await rcon.execute(command)
    return result or NO_OUTPUT


async def get_game_info(rcon: FactorioRconClient, arguments: dict[str, Any]) -> str:
    tick = await rcon.execute("/c rcon.print(game.tick)")
    speed = await rcon.execute("/c rcon.print(game.speed)")
    players = await rcon.execute("/players count")

    return (
        "Game Info:\n"
        f"- Tick: {tick or 'Unknown'}\n"
        f"- Speed: {speed or 'Unknown'}\n"
        f"- Players: {players or 'Unknown'}"
    )


async def get_players(rcon: FactorioRconClient, arguments: dict[str, Any]) -> str:
    players_list = await rcon.execute("/players")
    player_count = await rcon.execute("/c rcon.print(#game.players)")
    connected_count = await rcon.execute("/c rcon.print(#game.connected_players)")

    return f"Players:\n- Total: {player_count}\n- Connected: {connected_count}\n\n{players_list}"


def build_lua_command(code: str, print_result: bool = True) -> str:
    """Wrap Lua code as a /c command, printing its value back over RCON."""
    if print_result and "rcon.print" not in code:
        code = f"rcon.print(tostring({code}))"
    return f"/c {code}"


async def run_lua(rcon: FactorioRconClient, arguments: dict[str, Any]) -> str:
    code = str(arguments.get("code") or "")
    if not code:
        raise ValueError("Lua code is required")

    print_result = arguments.get("print_result") is not False
    result = await rcon.execute(build_lua_command(code, print_result))
    return result or NO_OUTPUT


async def get_evolution(rcon: FactorioRconClient, arguments: dict[str, Any]) -> str:
    evolution = await rcon.execute('/c rcon.print(game.forces["enemy"].evolution_factor)')
    kill_count = await rcon.execute(
        '/c rcon.print(game.forces["enemy"].kill_count_statistics.get_input_count("character"))'
    )
    return f"Evolution:\n- Factor: {evolution}\n- Player kills: {kill_count}"


async def get_research(rcon: FactorioRconClient, arguments: dict[str, Any]) -> str:
    current = await rcon.execute(
        '/c local r = game.forces["player"].current_research; rcon.print(r and r.name or "none")'
    )
    progress = await rcon.execute('/c rcon.print(game.forces["player"].research_progress)')
    return f"Research:\n- Current: {current}\n- Progress: {progress}"


async def get_production(rcon: FactorioRconClient, arguments: dict[str, Any]) -> str:
    item = str(arguments.get("item") or "iron-plate")

    # Statistics are not exposed by every game version
    try:
        available = await rcon.execute(
            '/c if game.forces["player"].item_production_statistics then '
            'rcon.print("available") else rcon.print("unavailable") end'
        )

        if available == "unavailable":
            machines = await rcon.execute(
                '/c local count = game.surfaces[1].count_entities_filtered({type="assembling-machine"}); '
                'rcon.print("Factory has " .. count .. " assembling machines")'
            )
            return f"Production statistics not available in this Factorio version.\n{machines}"

        production = await rcon.execute(
            '/c local stats = game.forces["player"].item_production_statistics; '
            f'local input = stats.get_input_count("{item}"); '
            f'local output = stats.get_output_count("{item}"); '
            'rcon.print("Produced: " .. output .. ", Consumed: " .. input)'
        )
        return f"Production stats for '{item}':\n{production}"
    except RconError as e:
        return f"Unable to get production statistics: {e}"


def docs_tool(fetcher: DocsFetcher) -> ToolDefinition:
    """Create the documentation lookup tool around `fetcher`."""

    async def get_factorio_docs(rcon: FactorioRconClient, arguments: dict[str, Any]) -> str:
        topic = str(arguments.get("topic") or "")
        source = str(arguments.get("source") or "api")
        return await fetcher.fetch(topic, source)

    return ToolDefinition(
        name="get_factorio_docs",
        description=(
            "Fetch Factorio documentation from the Lua API docs or wiki. Use this to look "
            "up Factorio APIs, game concepts, or modding tutorials. Examples: "
            '"LuaFlowStatistics", "defines", "Tutorial:Modding_tutorial" (with source="wiki")'
        ),
        input_schema={
            "type": "object",
            "properties": {
                "topic": {
                    "type": "string",
                    "description": (
                        'The topic to look up: class name (e.g., "LuaForce", '
                        '"LuaFlowStatistics"), concept, event, or wiki page name '
                        '(e.g., "Tutorial:Modding_tutorial")'
                    ),
                },
                "source": {
                    "type": "string",
                    "enum": list(SOURCES),
                    "description": (
                        'Source to search: "api" for Lua API docs (default), '
                        '"wiki" for Factorio wiki'
                    ),
                },
            },
            "required": ["topic"],
        },
        handler=get_factorio_docs,
    )


GAME_TOOLS: list[ToolDefinition] = [
    ToolDefinition(
        name="execute_command",
        description="Execute a Factorio console command",
        input_schema={
            "type": "object",
            "properties": {
                "command": {
                    "type": "string",
                    "description": "The console command to execute",
                },
            },
            "required": ["command"],
        },
        handler=execute_command,
    ),
    ToolDefinition(
        name="get_game_info",
        description="Get current game information and statistics",
        input_schema=EMPTY_SCHEMA,
        handler=get_game_info,
    ),
    ToolDefinition(
        name="get_players",
        description="Get list of online players and their status",
        input_schema=EMPTY_SCHEMA,
        handler=get_players,
    ),
    ToolDefinition(
        name="run_lua",
        description="Execute Lua code in the Factorio environment",
        input_schema={
            "type": "object",
            "properties": {
                "code": {
                    "type": "string",
                    "description": "Lua code to execute",
                },
                "print_result": {
                    "type": "boolean",
                    "description": "Whether to return the result via rcon.print (default: true)",
                },
            },
            "required": ["code"],
        },
        handler=run_lua,
    ),
    ToolDefinition(
        name="get_evolution",
        description="Get current evolution factor and enemy statistics",
        input_schema=EMPTY_SCHEMA,
        handler=get_evolution,
    ),
    ToolDefinition(
        name="get_research",
        description="Get current and queued research progress",
        input_schema=EMPTY_SCHEMA,
        handler=get_research,
    ),
    ToolDefinition(
        name="get_production",
        description=(
            "Get production statistics for items "
            "(requires production statistics to be enabled)"
        ),
        input_schema={
            "type": "object",
            "properties": {
                "item": {
                    "type": "string",
                    "description": 'Optional: specific item to get stats for (e.g., "iron-plate")',
                },
            },
        },
        handler=get_production,
    ),
]


def create_default_registry(fetcher: DocsFetcher | None = None) -> ToolRegistry:
    """Registry with every built-in tool, in the order agents see them."""
    registry = ToolRegistry()
    for tool in GAME_TOOLS:
        registry.register(tool)
    registry.register(docs_tool(fetcher or DocsFetcher()))
    return registry
