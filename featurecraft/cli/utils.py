"""CLI utilities for dual-mode output (human-friendly + machine-readable).

This module provides utilities for CLI commands to support both:
- Human mode (default): Rich formatting with colors and tables
- Machine mode (--json): Structured JSON output for scripts and build tools

Example:
    from ..cli.utils import Output, ExitCode

    @app.command()
    def my_command():
        out = Output(console=console, json_mode=get_json_mode())
        out.success("Assembled features", modules=3)
        out.table("Features", ["Location", "Id"], [["feature.json", "g:a:1.0"]])
        return out.finish()
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, PrivateAttr, ConfigDict, ValidationError
from rich.console import Console
from rich.table import Table

from ..assembly.diagnostics import Diagnostics
from ..core.errors import (
    AssemblyError,
    ExternalResolutionError,
    FatalAssemblyError,
    FeatureCraftError,
)
from ..reactor import Reactor


class ExitCode:
    """Standardized exit codes for CLI commands.

        0 = Success
        1 = Configuration error (duplicate classifiers, ambiguous targets, ...)
        3 = File not found
        4 = Assembly error (unresolvable reference, external artifact failure)
    """

    SUCCESS = 0
    CONFIGURATION_ERROR = 1
    FILE_NOT_FOUND = 3
    ASSEMBLY_ERROR = 4


def exit_code_for(exc: FeatureCraftError) -> int:
    """Map an error family to its exit code."""
    if isinstance(exc, FatalAssemblyError):
        return ExitCode.CONFIGURATION_ERROR
    if isinstance(exc, (AssemblyError, ExternalResolutionError)):
        return ExitCode.ASSEMBLY_ERROR
    return ExitCode.CONFIGURATION_ERROR


class Output(BaseModel):
    """Dual-mode output handler for CLI commands.

    In human mode: Uses Rich for pretty terminal output.
    In JSON mode: Collects structured data and outputs JSON at the end.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    console: Console
    json_mode: bool = False

    _data: dict[str, Any] = PrivateAttr()
    _exit_code: int = PrivateAttr(default=ExitCode.SUCCESS)

    def model_post_init(self, __context: Any) -> None:
        # Ensure _data is a fresh dict for each instance
        self._data = {
            "status": "success",
            "warnings": [],
            "errors": [],
        }

    def success(self, message: str, **data: Any) -> None:
        """Output a success message with optional data."""
        if self.json_mode:
            self._data.update(data)
        else:
            self.console.print(f"[green]✓[/green] {message}")

    def warning(self, message: str, *, module: str | None = None) -> None:
        """Output a warning message."""
        if self.json_mode:
            warning_obj: dict[str, Any] = {"message": message}
            if module:
                warning_obj["module"] = module
            self._data["warnings"].append(warning_obj)
        else:
            self.console.print(f"[yellow]⚠[/yellow] {message}")

    def error(
        self,
        message: str,
        *,
        module: str | None = None,
        suggestion: str | None = None,
        exit_code: int = ExitCode.CONFIGURATION_ERROR,
    ) -> None:
        """Output an error message and set exit code."""
        self._exit_code = exit_code
        self._data["status"] = "error"

        if self.json_mode:
            error_obj: dict[str, Any] = {"message": message}
            if module:
                error_obj["module"] = module
            if suggestion:
                error_obj["suggestion"] = suggestion
            self._data["errors"].append(error_obj)
        else:
            self.console.print(f"[red]✗[/red] {message}")
            if suggestion:
                self.console.print(f"  [dim]→ {suggestion}[/dim]")

    def text(self, message: str) -> None:
        """Output plain text (human mode only)."""
        if not self.json_mode:
            self.console.print(message)

    def table(
        self,
        title: str,
        columns: list[str],
        rows: list[list[str]],
        *,
        data_key: str | None = None,
    ) -> None:
        """Output a formatted table.

        Args:
            title: Table title
            columns: Column headers
            rows: Table rows (list of lists)
            data_key: Key to use in JSON output (defaults to snake_case of title)
        """
        key = data_key or title.lower().replace(" ", "_")

        if self.json_mode:
            self._data[key] = [dict(zip(columns, row)) for row in rows]
        else:
            table = Table(title=title, show_header=True, header_style="bold")
            for col in columns:
                table.add_column(col)
            for row in rows:
                table.add_row(*row)
            self.console.print(table)

    def set_data(self, key: str, value: Any) -> None:
        """Set arbitrary data in JSON output."""
        self._data[key] = value

    def diagnostics(self, diagnostics: Diagnostics) -> None:
        """Output collected diagnostics as warnings (errors stay fatal elsewhere)."""
        if self.json_mode:
            self._data["diagnostics"] = [
                d.model_dump(mode="json") for d in diagnostics
            ]
            return
        for event in diagnostics:
            self.console.print(
                f"[yellow]⚠[/yellow] [dim]{event.kind.value}[/dim] {event.message}"
            )

    def finish(self) -> int:
        """Finalize output and return exit code.

        In JSON mode, prints the accumulated data as JSON to stdout.
        Returns the exit code that should be passed to sys.exit().
        """
        if self.json_mode:
            # Add exit_code to JSON for programmatic access
            self._data["exit_code"] = self._exit_code
            print(json.dumps(self._data, indent=2, default=str))

        return self._exit_code


def load_reactor(reactor_file: Path, out: Output) -> Reactor | None:
    """Load a reactor file, reporting failures through ``out``.

    Returns:
        The Reactor, or None after an error has been recorded.
    """
    if not reactor_file.exists():
        out.error(
            f"File not found: {reactor_file}",
            exit_code=ExitCode.FILE_NOT_FOUND,
            suggestion=f"Check the file path: {reactor_file.absolute()}",
        )
        return None
    try:
        return Reactor.from_yaml(reactor_file)
    except (yaml.YAMLError, ValidationError, ValueError, OSError) as e:
        out.error(
            f"Failed to load reactor file: {e}",
            exit_code=ExitCode.CONFIGURATION_ERROR,
        )
        return None
