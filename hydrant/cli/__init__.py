"""Command line interface for hydrant."""

from .app import app

__all__ = ["app"]
