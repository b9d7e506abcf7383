"""Command-line interface."""

from sitegen.cli.click_app import cli

__all__ = ["cli"]
