#!/usr/bin/env python3
"""
Main CLI entry point using Typer.
"""

import sys

import typer

from shared_volumes.cli.commands import volume

app = typer.Typer(
    name="shared-volumes",
    help="Shared Volumes control tool",
    add_completion=False,
)

# Add command groups
app.add_typer(volume.app, name="volume", help="Volume management commands")


def main() -> int:
    """Main entry point."""
    try:
        app()
        return 0
    except KeyboardInterrupt:
        typer.echo("\nOperation cancelled by user", err=True)
        return 130
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
