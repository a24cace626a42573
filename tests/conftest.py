"""Shared fixtures: isolate the global config and the CLI logging setup."""

import json
import logging

import pytest

from featurecraft import config as config_module
from featurecraft.cli.commands import config_cmd
from featurecraft.core.models import Artifact, Feature
from featurecraft.sources import LocalRepositoryLoader


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the config file at a temp dir and drop env overrides."""
    config_dir = tmp_path / "config"
    config_file = config_dir / "config.json"
    monkeypatch.setattr(config_module, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_file)
    monkeypatch.setattr(config_cmd, "CONFIG_FILE", config_file)
    for var in (
        "FEATURECRAFT_REPOSITORY",
        "FEATURECRAFT_SKIP_ADD_DEPENDENCIES",
        "FEATURECRAFT_SKIP_ADD_PACKAGED_UNIT",
    ):
        monkeypatch.delenv(var, raising=False)
    config_module.reset_config()
    yield config_file
    config_module.reset_config()


@pytest.fixture(autouse=True)
def restore_logging():
    """CLI runs reconfigure the package logger; undo that for caplog."""
    yield
    logger = logging.getLogger("featurecraft")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def sample_reactor(tmp_path):
    """Two-module build with an external prototype in a local repository.

    platform (feature packaging) inherits from org.ext:base:feature:1.0;
    core (bundle packaging) inherits from the platform feature.
    """
    repository = tmp_path / "repository"
    LocalRepositoryLoader(repository).install(
        Feature(
            id="org.ext:base:feature:1.0",
            title="Base",
            bundles=[Artifact(id="org.ext:lib:1.0")],
        )
    )

    build = tmp_path / "build"
    platform = build / "platform" / "src" / "main" / "features"
    platform.mkdir(parents=True)
    (platform / "feature.json").write_text(
        json.dumps(
            {
                "prototype": "org.ext:base:feature:1.0",
                "bundles": ["org.example:api:${project.version}"],
            }
        )
    )
    core = build / "core" / "src" / "main" / "features"
    core.mkdir(parents=True)
    (core / "feature.json").write_text(
        json.dumps({"prototype": "org.example:platform:feature:1.0"})
    )

    reactor_file = build / "reactor.yaml"
    reactor_file.write_text(
        "modules:\n"
        "  - group: org.example\n"
        "    name: platform\n"
        "    version: 1.0\n"
        "    path: platform\n"
        "  - group: org.example\n"
        "    name: core\n"
        "    version: 1.0\n"
        "    packaging: bundle\n"
        "    path: core\n"
        "    config:\n"
        "      main:\n"
        "        packaged_unit_start_order: 20\n"
    )
    return reactor_file, repository
