"""Factorio MCP - expose a Factorio server's RCON console as agent tools."""

from .config import AppConfig, RconConfig
from .errors import CommandError, InvalidConfigError, RconConnectionError, RconError
from .rcon import ConnectionState, FactorioRconClient

__version__ = "0.1.0"

__all__ = [
    "AppConfig",
    "RconConfig",
    "FactorioRconClient",
    "ConnectionState",
    "RconError",
    "RconConnectionError",
    "CommandError",
    "InvalidConfigError",
    "__version__",
]
