"""Error taxonomy for feature assembly.

Fatal errors abort the whole build. Resolution misses (cycles, unknown
references) are not exceptions: the resolver returns a NotFound value
(see featurecraft.assembly.resolver) and lets the merger decide.
"""

from .models import Identity


class FeatureCraftError(Exception):
    """Base class for all featurecraft errors."""

    pass


class FatalAssemblyError(FeatureCraftError):
    """Configuration error that halts the build."""

    def __init__(self, message: str, module_id: str, locations: list[str] | None = None):
        super().__init__(message)
        self.module_id = module_id
        self.locations = list(locations or [])


class DuplicateClassifierError(FatalAssemblyError):
    """Two features of one module share a classifier."""

    def __init__(
        self, message: str, module_id: str, classifier: str, locations: list[str]
    ):
        super().__init__(message, module_id, locations)
        self.classifier = classifier


class MultipleUnclassifiedFeaturesError(FatalAssemblyError):
    """More than one feature without classifier in one module."""

    pass


class UnclassifiedTestFeatureError(FatalAssemblyError):
    """A test feature has no classifier."""

    pass


class AmbiguousPackagedUnitError(FatalAssemblyError):
    """The packaged unit could be attached to more than one feature."""

    pass


class EmptyFeatureModuleError(FatalAssemblyError):
    """A feature-packaged module defines no feature."""

    pass


class FeatureIdMismatchError(FatalAssemblyError):
    """A feature read from a module does not carry the module's coordinates."""

    pass


class ExternalResolutionError(FeatureCraftError):
    """An external artifact could not be located or read."""

    def __init__(self, identity: Identity, cause: BaseException | str):
        self.identity = identity
        self.cause = cause
        super().__init__(f"Unable to resolve {identity.to_coordinate()}: {cause}")


class AssemblyError(FeatureCraftError):
    """A feature could not be merged because a required reference is missing."""

    def __init__(self, feature_id: Identity, reference: Identity, reason: str = "missing"):
        self.feature_id = feature_id
        self.reference = reference
        self.reason = reason
        super().__init__(
            f"Unable to assemble feature {feature_id.to_coordinate()}: "
            f"reference {reference.to_coordinate()} could not be resolved ({reason})"
        )


class FeatureReadError(FeatureCraftError):
    """A feature source could not be read or parsed."""

    def __init__(self, location: str, cause: BaseException | str):
        self.location = location
        self.cause = cause
        super().__init__(f"Unable to read feature {location}: {cause}")
