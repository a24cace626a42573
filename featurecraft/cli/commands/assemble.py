"""Assemble command: resolve and merge the features of every module."""

import dataclasses
import json
from pathlib import Path

import typer

from ...assembly import AssemblyCoordinator, Scope
from ...assembly.dependencies import ModuleDependencySink
from ...config import get_config
from ...core.errors import FeatureCraftError
from ...reactor import create_session
from ...sources import feature_to_dict
from ..app import app, console, get_json_mode
from ..utils import Output, exit_code_for, load_reactor


_SCOPES = {"main": [Scope.MAIN], "test": [Scope.TEST], "all": [Scope.MAIN, Scope.TEST]}


def _output_name(feature) -> str:
    name = f"{feature.id.name}-{feature.id.version}"
    if feature.id.classifier:
        name += f"-{feature.id.classifier}"
    return f"{name}.json"


@app.command("assemble")
def assemble_command(
    reactor_file: Path = typer.Argument(..., help="Reactor description (YAML)"),
    repository: Path | None = typer.Option(
        None,
        "--repository",
        "-r",
        help="Local repository for external features (overrides config)",
    ),
    scope: str = typer.Option("all", "--scope", help="Scope to assemble: main, test, all"),
    output_dir: Path | None = typer.Option(
        None, "--output", "-o", help="Write assembled features to this directory"
    ),
):
    """
    Assemble the features of every module in a reactor.

    EXIT CODES:
        0 = Success
        1 = Configuration error (duplicate classifiers, ambiguous targets)
        3 = File not found
        4 = Assembly error (unresolvable or cyclic reference)

    EXAMPLES:
        featurecraft assemble reactor.yaml
        featurecraft assemble reactor.yaml --scope main -o target/features
        featurecraft --json assemble reactor.yaml -r ~/.m2/repository
    """
    out = Output(console=console, json_mode=get_json_mode())

    if scope not in _SCOPES:
        out.error(f"Unknown scope: {scope}", suggestion="Use main, test or all")
        raise typer.Exit(out.finish())

    reactor = load_reactor(reactor_file, out)
    if reactor is None:
        raise typer.Exit(out.finish())

    config = get_config()
    if repository is not None:
        config = dataclasses.replace(config, repository=str(repository))

    session = create_session(reactor, config)
    coordinator = AssemblyCoordinator(session)
    try:
        if scope == "all":
            coordinator.process_all()
        else:
            for module in reactor.modules:
                for s in _SCOPES[scope]:
                    coordinator.process(module, s)
    except FeatureCraftError as e:
        out.diagnostics(session.diagnostics)
        out.error(str(e), exit_code=exit_code_for(e))
        raise typer.Exit(out.finish())

    rows = []
    for module in reactor.modules:
        store = session.store(module)
        for s in _SCOPES[scope]:
            for location, feature in store.assembled(s).items():
                rows.append(
                    [
                        module.key,
                        s.value,
                        feature.id.to_coordinate(),
                        str(len(feature.bundles)),
                        location,
                    ]
                )
    out.table(
        "Assembled features",
        ["Module", "Scope", "Feature", "Bundles", "Location"],
        rows,
        data_key="features",
    )

    sink = session.dependency_sink
    if isinstance(sink, ModuleDependencySink) and sink.added:
        out.table(
            "Added dependencies",
            ["Module", "Dependency", "Scope"],
            [
                [key, dep.to_identity().to_coordinate(), dep.scope]
                for key, dep in sink.added
            ],
            data_key="dependencies",
        )

    if output_dir is not None:
        for module in reactor.modules:
            store = session.store(module)
            target = output_dir / module.name
            for s in _SCOPES[scope]:
                for feature in store.assembled(s).values():
                    target.mkdir(parents=True, exist_ok=True)
                    (target / _output_name(feature)).write_text(
                        json.dumps(feature_to_dict(feature), indent=2)
                    )
        out.text(f"[dim]Wrote assembled features to {output_dir}[/dim]")

    if len(session.diagnostics):
        out.diagnostics(session.diagnostics)

    out.success(
        f"Assembled {len(rows)} features in {len(reactor.modules)} modules",
        feature_count=len(rows),
        module_count=len(reactor.modules),
    )
    raise typer.Exit(out.finish())
