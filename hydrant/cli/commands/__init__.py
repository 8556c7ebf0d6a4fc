"""CLI commands for hydrant."""

from . import config_cmd, hydrate_cmd, keys

__all__ = ["config_cmd", "hydrate_cmd", "keys"]
