"""mnemo command-line interface."""

from mnemo.cli.main import cli, main

__all__ = ["cli", "main"]
