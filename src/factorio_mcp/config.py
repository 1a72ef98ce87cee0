"""Configuration for the Factorio tool server.

Configuration is an explicit value built once at startup and handed to
the components that need it; nothing reads the environment after that.

Environment variables:
    FACTORIO_RCON_HOST      RCON server host (required)
    FACTORIO_RCON_PORT      RCON server port (required)
    FACTORIO_RCON_PASSWORD  RCON password (required)
    FACTORIO_RCON_TIMEOUT   Network timeout in seconds (default 5)
    MCP_SERVER_NAME         Name reported to tool clients (default factorio-mcp)
    LOG_LEVEL               Logging level (default INFO)
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import InvalidConfigError

REQUIRED_ENV_VARS = ("FACTORIO_RCON_HOST", "FACTORIO_RCON_PORT", "FACTORIO_RCON_PASSWORD")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class RconConfig(BaseModel):
    """Connection settings for one RCON server."""

    host: str = Field(min_length=1)
    port: int = Field(gt=0, lt=65536)
    password: str = Field(min_length=1, repr=False)
    timeout: float = Field(default=5.0, gt=0)


class AppConfig(BaseModel):
    """Top-level configuration for the tool server process."""

    rcon: RconConfig
    server_name: str = "factorio-mcp"
    log_level: str = "INFO"

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: Any) -> str:
        level = str(value or "INFO").upper()
        if level == "WARN":
            level = "WARNING"
        if level not in LOG_LEVELS:
            raise ValueError(f"must be one of {', '.join(LOG_LEVELS)}")
        return level

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AppConfig:
        """Build configuration from environment variables.

        Args:
            environ: Mapping to read instead of os.environ

        Raises:
            InvalidConfigError: If required variables are missing or any
                value fails validation
        """
        env = os.environ if environ is None else environ

        missing = [name for name in REQUIRED_ENV_VARS if not env.get(name)]
        if missing:
            raise InvalidConfigError(
                f"Missing required environment variables: {', '.join(missing)}"
            )

        rcon: dict[str, Any] = {
            "host": env["FACTORIO_RCON_HOST"],
            "port": env["FACTORIO_RCON_PORT"],
            "password": env["FACTORIO_RCON_PASSWORD"],
        }
        if env.get("FACTORIO_RCON_TIMEOUT"):
            rcon["timeout"] = env["FACTORIO_RCON_TIMEOUT"]

        try:
            return cls(
                rcon=rcon,
                server_name=env.get("MCP_SERVER_NAME") or "factorio-mcp",
                log_level=env.get("LOG_LEVEL") or "INFO",
            )
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
                for err in e.errors()
            )
            raise InvalidConfigError(f"Invalid configuration: {problems}") from e

    def masked(self) -> dict[str, Any]:
        """Configuration as a dict with the password hidden, for display."""
        data = self.model_dump()
        data["rcon"]["password"] = "********"
        return data
