"""Entry point for `python -m factorio_mcp`."""

from .cli import main

if __name__ == "__main__":
    main()
