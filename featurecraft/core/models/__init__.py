"""All Pydantic models for featurecraft, organized by domain.

- identity.py: artifact coordinates
- feature.py: features, artifacts, extensions, prototypes
- module.py: build-graph modules and dependencies
"""

from .identity import Identity, DEFAULT_TYPE, FEATURE_TYPE
from .feature import (
    Artifact,
    ArtifactListContent,
    StructuredContent,
    TextContent,
    ExtensionKind,
    ExtensionState,
    Extension,
    Prototype,
    Feature,
)
from .module import (
    Dependency,
    Module,
    FEATURE_PACKAGING,
    PACKAGED_UNIT_PACKAGINGS,
)

__all__ = [
    # Identity
    "Identity",
    "DEFAULT_TYPE",
    "FEATURE_TYPE",
    # Feature
    "Artifact",
    "ArtifactListContent",
    "StructuredContent",
    "TextContent",
    "ExtensionKind",
    "ExtensionState",
    "Extension",
    "Prototype",
    "Feature",
    # Module
    "Dependency",
    "Module",
    "FEATURE_PACKAGING",
    "PACKAGED_UNIT_PACKAGINGS",
]
