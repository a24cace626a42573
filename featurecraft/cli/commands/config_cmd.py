"""Config command for viewing and managing featurecraft configuration."""

import json

import typer

from ..app import app, console
from ...config import (
    CONFIG_FILE,
    FeatureCraftConfig,
    apply_dict,
    get_config,
    reset_config,
)


VALID_KEYS = {
    "repository",
    "main.features_dir",
    "main.includes",
    "main.excludes",
    "main.skip_add_dependencies",
    "main.skip_add_packaged_unit",
    "main.packaged_unit_start_order",
    "main.packaged_unit_type",
    "main.dependency_scope",
    "test.features_dir",
    "test.includes",
    "test.excludes",
    "test.skip_add_dependencies",
    "test.skip_add_packaged_unit",
    "test.dependency_scope",
}


@app.command("config")
def config_command(
    action: str = typer.Argument(..., help="Action: show, set, reset"),
    key: str | None = typer.Argument(None, help="Config key (e.g. main.features_dir)"),
    value: str | None = typer.Argument(None, help="Value to set"),
):
    """View or modify featurecraft configuration.

    Examples:
        featurecraft config show
        featurecraft config set repository /srv/repository
        featurecraft config set test.skip_add_dependencies true
        featurecraft config reset
    """
    if action == "show":
        _show_config()
    elif action == "set":
        if not key or value is None:
            console.print("[red]Usage:[/red] featurecraft config set <key> <value>")
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

    console.print()
    console.print("[bold]Featurecraft Configuration[/bold]")
    console.print("─" * 40)

    console.print()
    console.print(f"  repository = {config.repository}")

    data = config.to_dict()
    for label in ("Main", "Test"):
        console.print()
        console.print(f"[bold cyan]{label}[/bold cyan]")
        for name, val in data[label.lower()].items():
            console.print(f"  {name:<26} = {json.dumps(val)}")

    if config.default_metadata:
        console.print()
        console.print("[bold cyan]Default metadata[/bold cyan]")
        for extension, properties in config.default_metadata.items():
            console.print(f"  {extension}: {json.dumps(properties)}")

    console.print()
    if CONFIG_FILE.exists():
        console.print(f"[dim]Config file: {CONFIG_FILE}[/dim]")
    else:
        console.print("[dim]No config file (using defaults)[/dim]")
    console.print()


def _set_config(key: str, value: str):
    """Set a config value and save."""
    if key not in VALID_KEYS:
        console.print(f"[red]Unknown key:[/red] {key}")
        console.print(f"Valid keys: {', '.join(sorted(VALID_KEYS))}")
        raise typer.Exit(1)

    config = FeatureCraftConfig.load()
    if "." in key:
        section, field_name = key.split(".", 1)
        data = {section: {field_name: value}}
    else:
        data = {key: value}

    try:
        apply_dict(config, data)
    except ValueError as e:
        console.print(f"[red]Invalid value for {key}:[/red] {e}")
        raise typer.Exit(1)

    config.save()
    reset_config()
    console.print(f"[green]Set {key} = {value}[/green]")


def _reset_config():
    """Reset config to defaults."""
    if CONFIG_FILE.exists():
        CONFIG_FILE.unlink()
        console.print("[green]Config reset to defaults[/green]")
    else:
        console.print("Config already at defaults (no config file)")
    reset_config()
