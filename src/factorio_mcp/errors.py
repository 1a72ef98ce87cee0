"""Error taxonomy for the RCON client and the surrounding tool server.

- RconError: base class for everything raised by the RCON layer
- RconConnectionError: establishing or keeping the connection failed
- CommandError: a single command round-trip failed
- InvalidConfigError: configuration is missing or malformed
"""

from __future__ import annotations


class RconError(Exception):
    """Base class for RCON failures."""


class RconConnectionError(RconError, ConnectionError):
    """Connect, authentication, or socket-level failure.

    Also a builtin ConnectionError so callers that only know about the
    standard library hierarchy can still catch it.
    """


class CommandError(RconError):
    """A command could not be sent, or its response was rejected."""


class InvalidConfigError(Exception):
    """Raised when configuration cannot be loaded or validated."""
