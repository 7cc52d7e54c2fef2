"""contextpilot command-line interface."""

from contextpilot.cli.main import cli

__all__ = ["cli"]
