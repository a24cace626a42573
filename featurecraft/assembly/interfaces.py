"""Boundary collaborators of the assembly engine.

The engine only depends on these protocols; concrete implementations live
in featurecraft.sources (feature files, local repository) and
featurecraft.assembly.merger (default merger).
"""

from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from ..core.models import Feature, Identity, Module

if TYPE_CHECKING:
    from .resolver import ReferenceResolver
    from .store import Scope


class Merger(Protocol):
    """Combines a base feature and its resolved references into one feature.

    Implementations must not mutate ``base`` and should call
    ``resolver.resolve`` once per distinct identity they need. A NotFound
    result for a required reference must be raised as AssemblyError.
    """

    def assemble(self, base: Feature, resolver: "ReferenceResolver") -> Feature: ...


class ExternalArtifactLoader(Protocol):
    """Loads artifacts that are not produced by the build graph.

    Both methods raise ExternalResolutionError on failure.
    """

    def load(self, id: Identity) -> Feature: ...

    def locate(self, id: Identity) -> Path: ...


class FeatureSource(Protocol):
    """Loader of record for a module's raw features."""

    def read(self, module: Module, scope: "Scope") -> dict[str, Feature]: ...


class DependencySink(Protocol):
    """Receives artifacts that must appear in a module's dependency list."""

    def ensure_dependency(self, module: Module, id: Identity, scope: str) -> None: ...
