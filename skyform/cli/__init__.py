"""Command-line interface for skyform."""

from skyform.cli.main import cli

__all__ = ["cli"]
