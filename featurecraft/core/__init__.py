"""Core models and errors shared by every featurecraft layer."""

from .errors import (
    FeatureCraftError,
    FatalAssemblyError,
    DuplicateClassifierError,
    MultipleUnclassifiedFeaturesError,
    UnclassifiedTestFeatureError,
    AmbiguousPackagedUnitError,
    EmptyFeatureModuleError,
    FeatureIdMismatchError,
    ExternalResolutionError,
    AssemblyError,
    FeatureReadError,
)

__all__ = [
    "FeatureCraftError",
    "FatalAssemblyError",
    "DuplicateClassifierError",
    "MultipleUnclassifiedFeaturesError",
    "UnclassifiedTestFeatureError",
    "AmbiguousPackagedUnitError",
    "EmptyFeatureModuleError",
    "FeatureIdMismatchError",
    "ExternalResolutionError",
    "AssemblyError",
    "FeatureReadError",
]
