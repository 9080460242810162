"""droidreview CLI - Command line interface for droidreview."""

from droidreview_cli.main import cli, main

__all__ = ["cli", "main"]
