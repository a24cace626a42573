"""Reference resolution and assembly coordination.

- store: per-module raw/assembled feature maps
- classifiers: classifier invariants
- resolver: ReferenceResolver, NotFound
- coordinator: BuildSession, AssemblyCoordinator
- merger: default prototype merger
"""

from .store import FeatureStore, Scope
from .diagnostics import Diagnostic, DiagnosticKind, Diagnostics, Severity
from .classifiers import (
    AGGREGATE_PREFIX,
    aggregate_key,
    is_aggregate,
    format_locations,
    validate_classifiers,
    validate_scope,
)
from .interfaces import DependencySink, ExternalArtifactLoader, FeatureSource, Merger
from .dependencies import ModuleDependencySink
from .resolver import InFlight, NotFound, ReferenceResolver
from .coordinator import AssemblyCoordinator, BuildSession
from .merger import PrototypeMerger

__all__ = [
    "FeatureStore",
    "Scope",
    "Diagnostic",
    "DiagnosticKind",
    "Diagnostics",
    "Severity",
    "AGGREGATE_PREFIX",
    "aggregate_key",
    "is_aggregate",
    "format_locations",
    "validate_classifiers",
    "validate_scope",
    "DependencySink",
    "ExternalArtifactLoader",
    "FeatureSource",
    "Merger",
    "ModuleDependencySink",
    "InFlight",
    "NotFound",
    "ReferenceResolver",
    "AssemblyCoordinator",
    "BuildSession",
    "PrototypeMerger",
]
