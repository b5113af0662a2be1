"""CLI for papertrade."""

from papertrade.cli.main import cli, main

__all__ = ["cli", "main"]
