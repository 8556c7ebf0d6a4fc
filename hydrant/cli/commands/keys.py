"""Keys command: list what the registry can hydrate."""

from __future__ import annotations

import json
from typing import Iterable

import typer
from rich.table import Table

from ...config import get_config
from ...errors import DuplicateResolverError
from ...hydration import ResolverRegistry, get_registry
from ..app import app, console, get_json_mode


def discover_modules(registry: ResolverRegistry, extra: Iterable[str] = ()) -> list[str]:
    """Scan configured modules plus ``extra``; exit with an error on failure."""
    modules = [*get_config().registry.discover, *extra]
    if not modules:
        return []
    try:
        return registry.discover(*modules)
    except ImportError as e:
        console.print(f"[red]✗[/red] Could not import resolver module: {e}")
        raise typer.Exit(1)
    except DuplicateResolverError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)


@app.command("keys")
def keys_command(
    discover: list[str] | None = typer.Option(
        None, "--discover", "-d", help="Module to scan for resolvers (repeatable)"
    ),
):
    """List registered hydration keys by strategy kind."""
    registry = get_registry()
    discover_modules(registry, discover or [])
    keys = registry.keys()

    if get_json_mode():
        print(json.dumps(keys))
        return

    total = sum(len(v) for v in keys.values())
    if not total:
        console.print("[dim]No hydration keys registered[/dim]")
        return

    table = Table(title="Hydration keys", show_header=True, header_style="bold")
    table.add_column("Key")
    table.add_column("Strategy")
    table.add_column("Resolver")
    for key in keys["relation"]:
        target = registry.relation_for(key)
        table.add_row(key, "relation", f"{target.name}.{target.primary_key}")
    for key in keys["batch"]:
        fn = registry.batch_resolver_for(key)
        table.add_row(key, "batch", _qualname(fn))
    for key in keys["simple"]:
        fn = registry.simple_resolver_for(key)
        table.add_row(key, "simple", _qualname(fn))
    console.print(table)


def _qualname(fn) -> str:
    module = getattr(fn, "__module__", None) or "?"
    name = getattr(fn, "__qualname__", None) or repr(fn)
    return f"{module}.{name}"
