"""CLI package for particlectl.

This package contains the Typer application and its display helpers.
"""

from particlectl.cli.main import app

__all__ = ["app"]
