"""Assembly coordination across the modules of a build graph.

BuildSession is the explicit context of one build: modules, their feature
stores, collaborators, configuration and diagnostics. AssemblyCoordinator
drives the one-time transition of each module's raw features into
assembled features, per scope:

    Unprocessed -> Processing -> Done

The done flag is set when processing starts, so a module that is reached
again through reference resolution while it is still processing is served
from its partial state instead of being processed twice.
"""

import logging
from collections.abc import Iterable

from ..config import FeatureCraftConfig, ModuleConfig, ScopeConfig, get_config
from ..core.errors import (
    AmbiguousPackagedUnitError,
    DuplicateClassifierError,
    EmptyFeatureModuleError,
    FatalAssemblyError,
)
from ..core.models import FEATURE_PACKAGING, Artifact, Feature, Identity, Module
from .classifiers import validate_classifiers, validate_scope
from .dependencies import ModuleDependencySink
from .diagnostics import DiagnosticKind, Diagnostics
from .interfaces import DependencySink, ExternalArtifactLoader, FeatureSource, Merger
from .resolver import InFlight, ReferenceResolver
from .store import FeatureStore, Scope


logger = logging.getLogger(__name__)


class BuildSession:
    """Context object for one build invocation.

    Holds all per-build state: one FeatureStore per module with its done
    flags, the collaborators and the collected diagnostics.
    """

    def __init__(
        self,
        modules: Iterable[Module],
        merger: Merger,
        loader: ExternalArtifactLoader,
        source: FeatureSource,
        config: FeatureCraftConfig | None = None,
        diagnostics: Diagnostics | None = None,
        dependency_sink: DependencySink | None = None,
    ):
        self.modules: dict[str, Module] = {}
        for module in modules:
            if module.key in self.modules:
                raise ValueError(f"Duplicate module {module.key} in build graph")
            self.modules[module.key] = module
        self.merger = merger
        self.loader = loader
        self.source = source
        self.config = config if config is not None else get_config()
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self.dependency_sink = (
            dependency_sink if dependency_sink is not None else ModuleDependencySink()
        )
        self._stores = {key: FeatureStore(m) for key, m in self.modules.items()}
        self._module_configs: dict[str, ModuleConfig] = {}

    def store(self, module: Module | str) -> FeatureStore:
        key = module if isinstance(module, str) else module.key
        return self._stores[key]

    def module_for(self, id: Identity) -> Module | None:
        """The module of the build graph owning ``id`` (by group:name)."""
        return self.modules.get(id.module_key)

    def module_config(self, module: Module) -> ModuleConfig:
        if module.key not in self._module_configs:
            self._module_configs[module.key] = self.config.for_module(module)
        return self._module_configs[module.key]

    def scope_config(self, module: Module, scope: Scope) -> ScopeConfig:
        cfg = self.module_config(module)
        return cfg.test if scope is Scope.TEST else cfg.main


class AssemblyCoordinator:
    """Turns raw features into assembled features, once per module and scope."""

    def __init__(self, session: BuildSession):
        self.session = session

    # ── entry points ──

    def process(self, module: Module, scope: Scope) -> None:
        """Process one module scope as a top-level call.

        Idempotent: a second call for the same module and scope returns
        immediately and performs no merge.
        """
        self.process_within(module, scope, InFlight())

    def process_all(self) -> None:
        """Process every module of the build graph, main scope first.

        After both scopes of a module are processed, the module's classifiers
        are validated across main and test features.

        Raises:
            FatalAssemblyError: On any configuration error; the build halts.
        """
        for module in self.session.modules.values():
            self.process(module, Scope.MAIN)
            self.process(module, Scope.TEST)

            store = self.session.store(module)
            if module.packaging == FEATURE_PACKAGING and not store.raw(Scope.MAIN):
                raise EmptyFeatureModuleError(
                    f"Feature project has no feature defined: {module.id}", module.id
                )
            self.validate(module)

    def validate(
        self, module: Module, aggregate_classifiers: Iterable[str | None] = ()
    ) -> None:
        """Validate classifiers across all features of a processed module."""
        store = self.session.store(module)
        try:
            validate_classifiers(
                module,
                store.raw(Scope.MAIN),
                store.raw(Scope.TEST),
                aggregate_classifiers,
            )
        except FatalAssemblyError as exc:
            self._report_classifier_error(module, exc)
            raise

    def _report_classifier_error(self, module: Module, exc: FatalAssemblyError) -> None:
        if isinstance(exc, DuplicateClassifierError):
            kind = DiagnosticKind.DUPLICATE_CLASSIFIER
        else:
            kind = DiagnosticKind.MISSING_CLASSIFIER
        self.session.diagnostics.report(kind, module.id, str(exc), locations=exc.locations)

    # ── processing ──

    def process_within(self, module: Module, scope: Scope, in_flight: InFlight) -> None:
        """Process a module scope inside an ongoing top-level call."""
        store = self.session.store(module)
        if store.is_done(scope):
            logger.debug("Return assembled %s for %s", scope.label, module.id)
            return
        store.mark_done(scope)

        # Test features may build on main features of the same module
        if scope is Scope.TEST:
            self.process_within(module, Scope.MAIN, in_flight)

        logger.debug("Processing %s in project %s", scope.label, module.id)
        config = self.session.scope_config(module, scope)

        store.set_raw(scope, self.session.source.read(module, scope))
        if not store.raw(scope):
            logger.debug("No %s found in project %s", scope.label, module.id)
            return

        try:
            validate_scope(module, scope, store.raw(scope))
        except FatalAssemblyError as exc:
            self._report_classifier_error(module, exc)
            raise

        self._attach_packaged_unit(module, scope, config, store)

        for location, feature in list(store.raw(scope).items()):
            if store.is_assembled(scope, location):
                continue
            self.assemble(module, scope, location, feature, in_flight)

        if config.skip_add_dependencies:
            logger.debug("Not adding artifacts from %s as dependencies", scope.label)
            return
        for assembled in store.assembled(scope).values():
            for ref in assembled.artifact_references():
                self.session.dependency_sink.ensure_dependency(
                    module, ref, config.dependency_scope
                )

    def assemble(
        self,
        module: Module,
        scope: Scope,
        location: str,
        feature: Feature,
        in_flight: InFlight,
    ) -> Feature:
        """Merge one raw feature and memoize the result under its location."""
        store = self.session.store(module)
        if store.is_assembled(scope, location):
            return store.assembled(scope)[location]

        if feature.assembled:
            # terminal already, never merged again
            store.store_assembled(scope, location, feature)
            return feature

        pushed = in_flight.push(feature.id)
        try:
            logger.debug("Assembling %s from %s", feature.id, location)
            resolver = ReferenceResolver(self, module, scope, in_flight)
            result = self.session.merger.assemble(feature, resolver)
        finally:
            if pushed:
                in_flight.pop(feature.id)

        if not result.assembled:
            result = result.model_copy(update={"assembled": True})
        store.store_assembled(scope, location, result)
        return result

    def lookup(
        self, module: Module, scope: Scope, id: Identity, in_flight: InFlight
    ) -> Feature | None:
        """Find ``id`` among a module's features, assembling it on demand.

        Precedence for scope S: assembled[S], raw[S]; for the test scope
        additionally assembled[main], raw[main].
        """
        store = self.session.store(module)
        scopes = [scope] if scope is Scope.MAIN else [Scope.TEST, Scope.MAIN]
        for candidate in scopes:
            found = store.find_assembled(candidate, id)
            if found is not None:
                return found
            hit = store.find_raw(candidate, id)
            if hit is not None:
                location, raw = hit
                return self.assemble(module, candidate, location, raw, in_flight)
        return None

    def _attach_packaged_unit(
        self,
        module: Module,
        scope: Scope,
        config: ScopeConfig,
        store: FeatureStore,
    ) -> None:
        if not module.produces_packaged_unit:
            return
        if config.skip_add_packaged_unit:
            logger.debug("Skip adding packaged unit to %s", scope.label)
            return

        raw = store.raw(scope)
        if len(raw) > 1:
            locations = list(raw)
            message = (
                f"Ambiguous target feature for packaged unit of project {module.id}: "
                f"it can only be added if just one feature is defined ({len(raw)} found)"
            )
            self.session.diagnostics.report(
                DiagnosticKind.AMBIGUOUS_PACKAGED_UNIT,
                module.id,
                message,
                locations=locations,
            )
            raise AmbiguousPackagedUnitError(message, module.id, locations)

        location, feature = next(iter(raw.items()))
        unit = module.packaged_unit(config.packaged_unit_type)
        if feature.get_bundle(unit) is not None:
            return
        logger.debug("Adding %s to %s", unit, location)
        artifact = Artifact(id=unit, start_order=config.packaged_unit_start_order)
        store.replace_raw(
            scope,
            location,
            feature.model_copy(update={"bundles": [*feature.bundles, artifact]}),
        )
