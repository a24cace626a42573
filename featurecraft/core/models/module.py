"""Build-graph modules and their declared dependencies."""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from .identity import DEFAULT_TYPE, Identity


# Packagings whose build produces exactly one packaged unit
PACKAGED_UNIT_PACKAGINGS = frozenset({"jar", "bundle"})

FEATURE_PACKAGING = "feature"


class Dependency(BaseModel):
    """One entry of a module's declared dependency list."""

    group: str
    name: str
    version: str
    type: str = DEFAULT_TYPE
    classifier: str | None = None
    scope: str = "compile"

    @classmethod
    def from_identity(cls, id: Identity, scope: str) -> "Dependency":
        return cls(
            group=id.group,
            name=id.name,
            version=id.version,
            type=id.type,
            classifier=id.classifier,
            scope=scope,
        )

    def to_identity(self) -> Identity:
        return Identity(
            group=self.group,
            name=self.name,
            version=self.version,
            classifier=self.classifier,
            type=self.type,
        )

    def matches(self, id: Identity) -> bool:
        """Whether this entry already covers ``id`` (scope is not compared)."""
        return (
            self.group == id.group
            and self.name == id.name
            and self.version == id.version
            and self.type == id.type
            and self.classifier == id.classifier
        )


class Module(BaseModel):
    """A unit of the build graph.

    A module may define several raw features for its main and test scope.
    ``config`` holds per-module overrides of the scope configuration
    (see featurecraft.config.ModuleConfig); it is kept as a plain mapping
    here so models stay free of config imports.
    """

    group: str
    name: str
    version: str
    packaging: str = FEATURE_PACKAGING
    title: str | None = None
    description: str | None = None
    vendor: str | None = None
    licenses: list[str] = Field(default_factory=list)
    base_dir: Path | None = None
    dependencies: list[Dependency] = Field(default_factory=list)
    config: dict[str, Any] = Field(default_factory=dict)

    @property
    def key(self) -> str:
        """Reactor key ("group:name")."""
        return f"{self.group}:{self.name}"

    @property
    def id(self) -> str:
        """Display id ("group:name:packaging:version")."""
        return f"{self.group}:{self.name}:{self.packaging}:{self.version}"

    @property
    def produces_packaged_unit(self) -> bool:
        return self.packaging in PACKAGED_UNIT_PACKAGINGS

    def owns(self, id: Identity) -> bool:
        """True if ``id`` is an artifact produced by this module."""
        return (
            id.group == self.group
            and id.name == self.name
            and id.version == self.version
        )

    def packaged_unit(self, type_: str = DEFAULT_TYPE) -> Identity:
        """Identity of the module's own packaged artifact."""
        return Identity(
            group=self.group, name=self.name, version=self.version, type=type_
        )

    def has_dependency(self, id: Identity) -> bool:
        return any(dep.matches(id) for dep in self.dependencies)
