"""Reactor (build graph) description and one-call assembly.

A reactor file lists the modules of a build in build order:

    modules:
      - group: org.example
        name: platform
        version: "1.0"
        path: platform            # module directory, relative to this file
      - group: org.example
        name: core
        version: "1.0"
        packaging: bundle
        path: core
        config:
          main:
            packaged_unit_start_order: 20
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from .assembly import AssemblyCoordinator, BuildSession, PrototypeMerger
from .assembly.interfaces import ExternalArtifactLoader, FeatureSource, Merger
from .config import FeatureCraftConfig, get_config
from .core.models import Module
from .sources import DirectoryFeatureSource, LocalRepositoryLoader


logger = logging.getLogger(__name__)


class Reactor(BaseModel):
    """Ordered set of modules addressable by group:name."""

    modules: list[Module] = Field(default_factory=list)
    source_path: Path | None = None

    def get(self, key: str) -> Module | None:
        for module in self.modules:
            if module.key == key:
                return module
        return None

    @classmethod
    def from_dict(cls, data: dict[str, Any], base_dir: Path | None = None) -> "Reactor":
        modules = []
        for entry in data.get("modules") or []:
            entry = dict(entry)
            # YAML reads 1.0 as a float
            entry["version"] = str(entry.get("version", ""))
            path = entry.pop("path", None)
            if path is not None:
                entry["base_dir"] = (base_dir or Path.cwd()) / path
            elif base_dir is not None:
                entry.setdefault("base_dir", base_dir)
            modules.append(Module.model_validate(entry))
        return cls(modules=modules)

    @classmethod
    def from_yaml(cls, path: Path | str) -> "Reactor":
        """Load a reactor description from YAML."""
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Reactor file {path} must contain a mapping")
        reactor = cls.from_dict(data, base_dir=path.parent.resolve())
        reactor.source_path = path
        return reactor


def create_session(
    reactor: Reactor,
    config: FeatureCraftConfig | None = None,
    *,
    merger: Merger | None = None,
    loader: ExternalArtifactLoader | None = None,
    source: FeatureSource | None = None,
) -> BuildSession:
    """Wire a BuildSession with the default collaborators."""
    config = config if config is not None else get_config()
    return BuildSession(
        reactor.modules,
        merger=merger if merger is not None else PrototypeMerger(),
        loader=loader if loader is not None else LocalRepositoryLoader(config.repository),
        source=source if source is not None else DirectoryFeatureSource(config),
        config=config,
    )


def assemble_reactor(
    reactor: Reactor,
    config: FeatureCraftConfig | None = None,
    **collaborators: Any,
) -> BuildSession:
    """Assemble every module of the reactor and return the session.

    Raises:
        FatalAssemblyError: On configuration errors.
        AssemblyError: When a required reference cannot be resolved.
        ExternalResolutionError: When an external artifact cannot be loaded.
    """
    session = create_session(reactor, config, **collaborators)
    logger.info("Assembling features of %d modules", len(reactor.modules))
    AssemblyCoordinator(session).process_all()
    return session
