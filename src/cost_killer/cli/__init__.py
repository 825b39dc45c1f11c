"""Command-line interface."""

from cost_killer.cli.main import cli, main

__all__ = ["cli", "main"]
