"""Config command for viewing and managing hydrant configuration."""

import json

import typer

from ..app import app, console, get_json_mode
from ...config import (
    get_config,
    parse_bool,
    reset_config,
    CONFIG_FILE,
)


VALID_KEYS = {
    "engine.concurrent_keys",
    "engine.max_workers",
    "storage.db_path",
    "storage.fetch_chunk_size",
    "registry.discover",
}

INT_FIELDS = {
    "max_workers",
    "fetch_chunk_size",
}

BOOL_FIELDS = {
    "concurrent_keys",
}


@app.command("config")
def config_command(
    action: str = typer.Argument(
        ...,
        help="Action: show, set, reset",
    ),
    key: str | None = typer.Argument(
        None,
        help="Config key (e.g. storage.db_path, engine.max_workers)",
    ),
    value: str | None = typer.Argument(
        None,
        help="Value to set",
    ),
):
    """View or modify hydrant configuration.

    Examples:
        hydrant config show
        hydrant config set storage.db_path ./app.db
        hydrant config set engine.concurrent_keys true
        hydrant config set registry.discover myapp.models,myapp.hydration
        hydrant config reset
    """
    if action == "show":
        _show_config()
    elif action == "set":
        if not key or value is None:
            console.print("[red]Usage:[/red] hydrant config set <key> <value>")
            console.print()
            console.print("Available keys:")
            for k in sorted(VALID_KEYS):
                console.print(f"  {k}")
            raise typer.Exit(1)
        _set_config(key, value)
    elif action == "reset":
        _reset_config()
    else:
        console.print(f"[red]Unknown action:[/red] {action}")
        console.print("Valid actions: show, set, reset")
        raise typer.Exit(1)


def _show_config():
    """Display current resolved configuration."""
    config = get_config()

    if get_json_mode():
        console.print_json(json.dumps(config.to_dict()))
        return

    console.print()
    console.print("[bold]Hydrant Configuration[/bold]")
    console.print("─" * 40)

    console.print()
    console.print("[bold cyan]Engine[/bold cyan]")
    console.print(f"  concurrent_keys  = {config.engine.concurrent_keys}")
    console.print(f"  max_workers      = {config.engine.max_workers}")

    console.print()
    console.print("[bold cyan]Storage[/bold cyan]")
    console.print(f"  db_path          = {config.storage.db_path}")
    console.print(f"  fetch_chunk_size = {config.storage.fetch_chunk_size}")

    console.print()
    console.print("[bold cyan]Registry[/bold cyan]")
    discover = ", ".join(config.registry.discover) or "[dim](none)[/dim]"
    console.print(f"  discover         = {discover}")

    console.print()
    if CONFIG_FILE.exists():
        console.print(f"Config file: {CONFIG_FILE}")
    else:
        console.print(f"Config file: [dim]not created yet[/dim] ({CONFIG_FILE})")
    console.print()


def _set_config(key: str, value: str):
    """Set a config value and save."""
    if key not in VALID_KEYS:
        console.print(f"[red]Unknown key:[/red] {key}")
        console.print()
        console.print("Available keys:")
        for k in sorted(VALID_KEYS):
            console.print(f"  {k}")
        raise typer.Exit(1)

    config = get_config()

    section, field_name = key.split(".", 1)
    target = getattr(config, section)

    if field_name in INT_FIELDS:
        try:
            number = int(value)
        except ValueError:
            console.print(f"[red]Invalid integer value:[/red] {value}")
            raise typer.Exit(1)
        if number < 1:
            console.print(f"[red]Value must be positive:[/red] {value}")
            raise typer.Exit(1)
        setattr(target, field_name, number)
    elif field_name in BOOL_FIELDS:
        try:
            setattr(target, field_name, parse_bool(value))
        except ValueError:
            console.print(f"[red]Invalid boolean value:[/red] {value}")
            raise typer.Exit(1)
    elif field_name == "discover":
        setattr(target, field_name, [m.strip() for m in value.split(",") if m.strip()])
    else:
        setattr(target, field_name, value)

    config.save()
    reset_config()  # Clear cached singleton so next get_config() reloads

    console.print(f"[green]✓[/green] Set {key} = {value}")
    console.print(f"  Saved to {CONFIG_FILE}")


def _reset_config():
    """Reset config to defaults."""
    if CONFIG_FILE.exists():
        CONFIG_FILE.unlink()
        reset_config()
        console.print("[green]✓[/green] Config reset to defaults")
        console.print(f"  Removed {CONFIG_FILE}")
    else:
        console.print("Config already at defaults (no config file exists)")
