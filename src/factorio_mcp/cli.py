"""Factorio MCP CLI.

Default mode serves tools over stdio (for MCP hosts such as IDEs and
agent runtimes).

Usage:
    factorio-mcp                    # Stdio tool server (default)
    factorio-mcp serve              # Same, explicitly
    factorio-mcp exec "/time"       # Run one console command and exit
    factorio-mcp tools              # List available tools
    factorio-mcp config             # Show effective configuration

Connection settings come from FACTORIO_RCON_HOST, FACTORIO_RCON_PORT and
FACTORIO_RCON_PASSWORD (a .env file in the working directory is read too).
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys

import click
from dotenv import find_dotenv, load_dotenv

from .config import AppConfig
from .errors import InvalidConfigError, RconError


def configure_logging(level: str) -> None:
    """Send logs to stderr; stdout is reserved for the tool protocol."""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def load_config() -> AppConfig:
    """Load configuration or exit with a usage error."""
    load_dotenv(find_dotenv(usecwd=True))
    try:
        return AppConfig.from_env()
    except InvalidConfigError as e:
        raise click.UsageError(str(e)) from e


@click.group(invoke_without_command=True)
@click.version_option(package_name="factorio-mcp")
@click.pass_context
def main(ctx: click.Context) -> None:
    """Factorio MCP - agent tools for a Factorio server's RCON console.

    Without a subcommand, runs the stdio tool server.
    """
    if ctx.invoked_subcommand is None:
        ctx.invoke(serve)


@main.command()
def serve() -> None:
    """Run the MCP tool server over stdio."""
    from .server import run_stdio_server

    config = load_config()
    configure_logging(config.log_level)
    asyncio.run(run_stdio_server(config))


@main.command("exec")
@click.argument("command")
def exec_command(command: str) -> None:
    """Execute one console COMMAND and print its output.

    Examples:

        factorio-mcp exec "/time"
        factorio-mcp exec "/c rcon.print(game.tick)"
    """
    from .rcon import FactorioRconClient

    config = load_config()
    configure_logging(config.log_level)

    async def _run() -> str:
        async with FactorioRconClient(config.rcon) as rcon:
            return await rcon.execute(command)

    try:
        output = asyncio.run(_run())
    except RconError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(output or "(no output)")


@main.command("tools")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def list_tools(output_json: bool) -> None:
    """List the tools offered to agents.

    Examples:

        factorio-mcp tools
        factorio-mcp tools --json
    """
    from .tools import create_default_registry

    registry = create_default_registry()

    if output_json:
        data = [
            {"name": t.name, "description": t.description, "input_schema": t.input_schema}
            for t in registry.list_tools()
        ]
        click.echo(json.dumps(data, indent=2))
        return

    for tool in registry.list_tools():
        click.echo(f"{tool.name:<20} {tool.description}")


@main.command("config")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def show_config(output_json: bool) -> None:
    """Show current configuration (password masked).

    Examples:

        factorio-mcp config
        factorio-mcp config --json
    """
    data = load_config().masked()

    if output_json:
        click.echo(json.dumps(data, indent=2))
        return

    rcon = data["rcon"]
    click.echo("Factorio MCP Configuration")
    click.echo("-" * 40)
    click.echo(f"RCON server:        {rcon['host']}:{rcon['port']}")
    click.echo(f"RCON password:      {rcon['password']}")
    click.echo(f"Timeout:            {rcon['timeout']}s")
    click.echo(f"Server name:        {data['server_name']}")
    click.echo(f"Log level:          {data['log_level']}")


if __name__ == "__main__":
    main()
