"""Validate command: check feature files without assembling them."""

from pathlib import Path

import typer

from ...assembly import Scope
from ...assembly.classifiers import validate_classifiers
from ...config import get_config
from ...core.errors import FeatureCraftError
from ...sources import DirectoryFeatureSource
from ..app import app, console, get_json_mode
from ..utils import Output, exit_code_for, load_reactor


@app.command("validate")
def validate_command(
    reactor_file: Path = typer.Argument(..., help="Reactor description (YAML)"),
):
    """
    Read every module's feature files and check their classifiers.

    Nothing is resolved or merged, so external artifacts are not needed.

    EXIT CODES:
        0 = All modules valid
        1 = Invalid feature file or classifier conflict
        3 = File not found

    EXAMPLES:
        featurecraft validate reactor.yaml
        featurecraft --json validate reactor.yaml
    """
    out = Output(console=console, json_mode=get_json_mode())

    reactor = load_reactor(reactor_file, out)
    if reactor is None:
        raise typer.Exit(out.finish())

    source = DirectoryFeatureSource(get_config())
    rows = []
    failed = 0
    for module in reactor.modules:
        try:
            main = source.read(module, Scope.MAIN)
            test = source.read(module, Scope.TEST)
            validate_classifiers(module, main, test)
        except FeatureCraftError as e:
            failed += 1
            out.error(str(e), module=module.key, exit_code=exit_code_for(e))
            continue
        rows.append([module.key, str(len(main)), str(len(test))])

    out.table(
        "Modules",
        ["Module", "Features", "Test features"],
        rows,
        data_key="modules",
    )

    if failed:
        out.text(f"[red]{failed} of {len(reactor.modules)} modules failed validation[/red]")
    else:
        out.success(
            f"Validated {len(reactor.modules)} modules",
            module_count=len(reactor.modules),
        )
    raise typer.Exit(out.finish())
