"""Allow ``python -m contextpilot``."""

from contextpilot.cli import cli

if __name__ == "__main__":
    cli()
