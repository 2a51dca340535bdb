"""Command-line interface package for vingest."""

from vingest.cli.main import CLIApplication, create_app

__all__ = ["CLIApplication", "create_app"]
