"""CLI package for mrclean.

This package contains the Typer application and all subcommands.
"""

from mrclean.cli.main import app

__all__ = ["app"]
