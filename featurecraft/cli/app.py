"""Core CLI app definition and global state."""

import logging
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler

app = typer.Typer(
    name="featurecraft",
    help="Assemble feature descriptors across a multi-module build.",
    no_args_is_help=True,
)

console = Console()

# Global state for JSON mode (set by callback)
_json_mode = False


def get_json_mode() -> bool:
    """Get current JSON mode state."""
    return _json_mode


def _version_callback(value: bool) -> None:
    if value:
        from .. import __version__

        print(f"featurecraft {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    """Route library logging through rich; debug level with --verbose."""
    root = logging.getLogger("featurecraft")
    root.handlers.clear()
    root.addHandler(
        RichHandler(console=Console(stderr=True), show_path=False, markup=False)
    )
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)
    root.propagate = False


@app.callback()
def main_callback(
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output machine-readable JSON instead of human-friendly text",
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log resolution steps to stderr"),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit",
            callback=_version_callback,
            is_eager=True,
        ),
    ] = False,
):
    """featurecraft: feature assembly for multi-module builds.

    Use --json for machine-readable output suitable for scripting.
    """
    global _json_mode
    _json_mode = json_output
    _configure_logging(verbose)


# Import commands to register them with the app
from .commands import (  # noqa: E402, F401
    assemble,
    validate,
    config_cmd,
)
