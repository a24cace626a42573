"""featurecraft: feature assembly for multi-module builds.

Reads feature descriptors from every module of a build graph, resolves
their references to other features (same module, sibling modules or an
external repository) and produces merged, terminal features.

Quick start:
    from featurecraft import Reactor, assemble_reactor

    reactor = Reactor.from_yaml("reactor.yaml")
    session = assemble_reactor(reactor)
    for module in reactor.modules:
        print(module.key, list(session.store(module).assembled_main))
"""

__version__ = "0.3.0"

from .core.models import (  # noqa: E402
    Identity,
    Artifact,
    Extension,
    ExtensionKind,
    ExtensionState,
    Feature,
    Prototype,
    Module,
    Dependency,
)
from .assembly import (  # noqa: E402
    AssemblyCoordinator,
    BuildSession,
    FeatureStore,
    NotFound,
    ReferenceResolver,
    Scope,
)
from .reactor import Reactor, assemble_reactor  # noqa: E402

__all__ = [
    "__version__",
    "Identity",
    "Artifact",
    "Extension",
    "ExtensionKind",
    "ExtensionState",
    "Feature",
    "Prototype",
    "Module",
    "Dependency",
    "AssemblyCoordinator",
    "BuildSession",
    "FeatureStore",
    "NotFound",
    "ReferenceResolver",
    "Scope",
    "Reactor",
    "assemble_reactor",
]
