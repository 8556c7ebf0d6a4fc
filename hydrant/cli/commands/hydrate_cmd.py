"""Hydrate command: load rows from SQLite and hydrate them."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path

import typer
from pydantic import ValidationError

from ...config import get_config
from ...core.models import Target
from ...errors import HydrantError
from ...hydration import get_registry, hydrate, parse_form_string
from ...storage import open_store
from ..app import app, console, get_json_mode, setup_logging
from .keys import discover_modules


def parse_relation_option(value: str) -> tuple[str, Target]:
    """Parse ``key=table`` or ``key=table:pk`` into a relation.

        parse_relation_option("user=users")        -> ("user", Target(name="users"))
        parse_relation_option("owner=people:uid")  -> ("owner", Target(name="people", primary_key="uid"))
    """
    key, sep, rest = value.partition("=")
    if not sep or not key or not rest:
        raise ValueError(f"Expected key=table[:pk], got {value!r}")
    table, _, pk = rest.partition(":")
    return key.strip(), Target(name=table.strip(), primary_key=pk.strip() or "id")


@app.command("hydrate")
def hydrate_command(
    table: str = typer.Argument(..., help="Table to load root records from"),
    forms: list[str] = typer.Argument(
        ...,
        help='Hydration forms: a key (user) or a JSON list (\'["venue", "category"]\')',
    ),
    db: Path | None = typer.Option(
        None, "--db", help="SQLite database (defaults to storage.db_path)"
    ),
    relation: list[str] | None = typer.Option(
        None, "--relation", "-r", help="Relation as key=table[:pk] (repeatable)"
    ),
    discover: list[str] | None = typer.Option(
        None, "--discover", "-d", help="Module to scan for resolvers (repeatable)"
    ),
    limit: int | None = typer.Option(None, "--limit", "-n", min=1),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show info logs"),
    debug: bool = typer.Option(False, "--debug", help="Show debug logs"),
):
    """Load rows of TABLE, hydrate them with FORMS and print them as JSON.

    Examples:
        hydrant hydrate venues category --relation category=categories
        hydrant hydrate checkins user '["venue", "category"]' -r user=users -r venue=venues
    """
    setup_logging(verbose=verbose, debug=debug)

    try:
        parsed = [parse_form_string(form) for form in forms]
    except HydrantError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)

    registry = get_registry()
    discover_modules(registry, discover or [])

    for item in relation or []:
        try:
            key, target = parse_relation_option(item)
        except (ValueError, ValidationError) as e:
            console.print(f"[red]✗[/red] Invalid --relation: {e}")
            raise typer.Exit(1)
        registry.register_relation(key, target, replace=True)

    if db is not None and not db.exists():
        console.print(f"[red]✗[/red] Database not found: {db}")
        raise typer.Exit(3)
    db_path = db if db is not None else get_config().db_path_resolved

    with open_store(db_path) as store:
        try:
            rows = store.select(table, limit=limit)
            hydrated = hydrate(rows, *parsed, registry=registry, backend=store)
        except (sqlite3.Error, ValueError, HydrantError) as e:
            console.print(f"[red]✗[/red] {e}")
            raise typer.Exit(1)

    if get_json_mode():
        print(json.dumps(hydrated, default=str))
        return

    console.print(f"[green]✓[/green] Hydrated {len(hydrated)} {table} row(s)")
    console.print_json(json.dumps(hydrated, default=str))
