"""Tests for reference resolution and assembly coordination."""

from pathlib import Path

import pytest

from featurecraft.assembly import (
    AssemblyCoordinator,
    BuildSession,
    DiagnosticKind,
    Diagnostics,
    NotFound,
    Scope,
    Severity,
)
from featurecraft.config import FeatureCraftConfig
from featurecraft.core.errors import (
    AmbiguousPackagedUnitError,
    DuplicateClassifierError,
    EmptyFeatureModuleError,
    ExternalResolutionError,
    MultipleUnclassifiedFeaturesError,
    UnclassifiedTestFeatureError,
)
from featurecraft.core.models import (
    Artifact,
    Dependency,
    Feature,
    Identity,
    Module,
    Prototype,
)


# =============================================================================
# Test doubles
# =============================================================================


class FakeSource:
    """Serves raw features from memory and records every read."""

    def __init__(self):
        self.features: dict[tuple[str, Scope], dict[str, Feature]] = {}
        self.reads: list[tuple[str, Scope]] = []

    def add(self, module: Module, location: str, feature: Feature, scope: Scope = Scope.MAIN):
        self.features.setdefault((module.key, scope), {})[location] = feature

    def read(self, module, scope):
        self.reads.append((module.key, scope))
        return dict(self.features.get((module.key, scope), {}))


class FakeLoader:
    """External artifacts by identity."""

    def __init__(self, *features: Feature):
        self.features = {f.id: f for f in features}
        self.calls: list[Identity] = []

    def locate(self, id):
        return Path("/repository") / id.to_coordinate()

    def load(self, id):
        self.calls.append(id)
        if id not in self.features:
            raise ExternalResolutionError(id, "not in repository")
        return self.features[id]


class RecordingMerger:
    """Resolves the prototype, if any, and tolerates misses.

    Returns a plain copy of the base so the coordinator has to mark it
    assembled.
    """

    def __init__(self):
        self.calls: list[Identity] = []
        self.resolved: dict[Identity, object] = {}

    def assemble(self, base, resolver):
        self.calls.append(base.id)
        if base.prototype is not None:
            self.resolved[base.id] = resolver.resolve(base.prototype.id)
        return base.copy_for_assembly()


def _module(name: str, packaging: str = "feature") -> Module:
    return Module(group="org.example", name=name, version="1.0", packaging=packaging)


def _id(name: str, classifier: str | None = None) -> Identity:
    return Identity(
        group="org.example", name=name, version="1.0", type="feature", classifier=classifier
    )


def _feature(
    name: str,
    classifier: str | None = None,
    prototype: Identity | None = None,
    bundles: tuple[str, ...] = (),
) -> Feature:
    return Feature(
        id=_id(name, classifier),
        prototype=Prototype(id=prototype) if prototype else None,
        bundles=[Artifact(id=b) for b in bundles],
    )


def _session(modules, source, merger=None, loader=None, config=None) -> BuildSession:
    return BuildSession(
        modules,
        merger=merger if merger is not None else RecordingMerger(),
        loader=loader if loader is not None else FakeLoader(),
        source=source,
        config=config if config is not None else FeatureCraftConfig(),
    )


# =============================================================================
# Processing
# =============================================================================


class TestProcess:
    def test_second_call_is_a_noop(self):
        app = _module("app")
        source = FakeSource()
        source.add(app, "/app/feature.json", _feature("app"))
        merger = RecordingMerger()
        session = _session([app], source, merger)
        coordinator = AssemblyCoordinator(session)

        coordinator.process(app, Scope.MAIN)
        first = dict(session.store(app).assembled(Scope.MAIN))
        coordinator.process(app, Scope.MAIN)

        assert session.store(app).assembled(Scope.MAIN) == first
        assert merger.calls == [_id("app")]
        assert source.reads == [(app.key, Scope.MAIN)]

    def test_assembled_features_are_terminal(self):
        app = _module("app")
        source = FakeSource()
        source.add(app, "/app/feature.json", _feature("app"))
        session = _session([app], source)

        AssemblyCoordinator(session).process(app, Scope.MAIN)

        assembled = session.store(app).assembled(Scope.MAIN)
        assert list(assembled) == ["/app/feature.json"]
        assert assembled["/app/feature.json"].assembled is True
        assert session.store(app).raw(Scope.MAIN)["/app/feature.json"].assembled is False

    def test_shared_prototype_is_merged_once(self):
        app = _module("app")
        source = FakeSource()
        # sorted locations put the prototype last, so it is assembled on demand
        source.add(app, "/app/1-x.json", _feature("app", "x", prototype=_id("app")))
        source.add(app, "/app/2-y.json", _feature("app", "y", prototype=_id("app")))
        source.add(app, "/app/3-base.json", _feature("app"))
        merger = RecordingMerger()
        session = _session([app], source, merger)

        AssemblyCoordinator(session).process(app, Scope.MAIN)

        assert merger.calls.count(_id("app")) == 1
        assert len(merger.calls) == 3
        base = session.store(app).assembled(Scope.MAIN)["/app/3-base.json"]
        assert merger.resolved[_id("app", "x")] is base
        assert merger.resolved[_id("app", "y")] is base

    def test_pre_assembled_feature_is_not_merged(self):
        app = _module("app")
        source = FakeSource()
        terminal = _feature("app").model_copy(update={"assembled": True})
        source.add(app, "/app/feature.json", terminal)
        merger = RecordingMerger()
        session = _session([app], source, merger)

        AssemblyCoordinator(session).process(app, Scope.MAIN)

        assert merger.calls == []
        assert session.store(app).assembled(Scope.MAIN)["/app/feature.json"] is terminal

    def test_empty_scope_is_done(self):
        app = _module("app")
        source = FakeSource()
        session = _session([app], source)
        coordinator = AssemblyCoordinator(session)

        coordinator.process(app, Scope.MAIN)
        coordinator.process(app, Scope.MAIN)

        assert session.store(app).is_done(Scope.MAIN)
        assert source.reads == [(app.key, Scope.MAIN)]


class TestCycles:
    def test_cycle_within_module_terminates(self):
        app = _module("app")
        source = FakeSource()
        source.add(app, "/app/a.json", _feature("app", prototype=_id("app", "b")))
        source.add(app, "/app/b.json", _feature("app", "b", prototype=_id("app")))
        merger = RecordingMerger()
        session = _session([app], source, merger)

        AssemblyCoordinator(session).process(app, Scope.MAIN)

        cycles = session.diagnostics.by_kind(DiagnosticKind.CYCLE_DETECTED)
        assert len(cycles) == 1
        assert cycles[0].identity == _id("app")
        assert sorted(merger.calls) == sorted([_id("app"), _id("app", "b")])
        assert merger.resolved[_id("app", "b")] == NotFound(_id("app"), NotFound.CYCLE)
        assert merger.resolved[_id("app")].id == _id("app", "b")

    def test_cycle_across_modules_terminates(self):
        a = _module("a")
        b = _module("b")
        source = FakeSource()
        source.add(a, "/a/feature.json", _feature("a", prototype=_id("b")))
        source.add(b, "/b/feature.json", _feature("b", prototype=_id("a")))
        merger = RecordingMerger()
        session = _session([a, b], source, merger)

        AssemblyCoordinator(session).process_all()

        assert len(session.diagnostics.by_kind(DiagnosticKind.CYCLE_DETECTED)) == 1
        assert merger.calls.count(_id("a")) == 1
        assert merger.calls.count(_id("b")) == 1
        assert not merger.resolved[_id("b")]
        assert merger.resolved[_id("a")].id == _id("b")

    def test_self_reference_is_a_cycle(self):
        app = _module("app")
        source = FakeSource()
        source.add(app, "/app/feature.json", _feature("app", prototype=_id("app")))
        merger = RecordingMerger()
        session = _session([app], source, merger)

        AssemblyCoordinator(session).process(app, Scope.MAIN)

        assert merger.resolved[_id("app")].reason == NotFound.CYCLE
        assert len(session.diagnostics) == 1


class TestClassifierInvariants:
    def test_duplicate_classifier_halts_before_merging(self):
        app = _module("app")
        source = FakeSource()
        source.add(app, "/app/x1.json", _feature("app", "x"))
        source.add(app, "/app/x2.json", _feature("app", "x"))
        merger = RecordingMerger()
        session = _session([app], source, merger)

        with pytest.raises(DuplicateClassifierError):
            AssemblyCoordinator(session).process(app, Scope.MAIN)

        assert merger.calls == []
        events = session.diagnostics.by_kind(DiagnosticKind.DUPLICATE_CLASSIFIER)
        assert events[0].locations == ["/app/x1.json", "/app/x2.json"]

    def test_two_unclassified_features(self):
        app = _module("app")
        source = FakeSource()
        source.add(app, "/app/a.json", _feature("app"))
        source.add(app, "/app/b.json", _feature("app"))

        session = _session([app], source)

        with pytest.raises(MultipleUnclassifiedFeaturesError):
            AssemblyCoordinator(session).process(app, Scope.MAIN)

        (event,) = session.diagnostics
        assert event.kind is DiagnosticKind.MISSING_CLASSIFIER
        assert event.locations == ["/app/a.json", "/app/b.json"]

    def test_classifier_reused_between_main_and_test(self):
        app = _module("app")
        source = FakeSource()
        source.add(app, "/app/main/x.json", _feature("app", "x"))
        source.add(app, "/app/test/x.json", _feature("app", "x"), Scope.TEST)

        with pytest.raises(DuplicateClassifierError):
            AssemblyCoordinator(_session([app], source)).process_all()

    def test_unclassified_test_feature(self):
        app = _module("app")
        source = FakeSource()
        source.add(app, "/app/main/x.json", _feature("app", "x"))
        source.add(app, "/app/test/feature.json", _feature("app"), Scope.TEST)

        session = _session([app], source)

        with pytest.raises(UnclassifiedTestFeatureError):
            AssemblyCoordinator(session).process_all()

        assert [e.kind for e in session.diagnostics] == [DiagnosticKind.MISSING_CLASSIFIER]
        assert session.diagnostics.by_kind(DiagnosticKind.DUPLICATE_CLASSIFIER) == []


class TestCrossModule:
    def test_sibling_module_processed_once(self):
        a = _module("a")
        lib = _module("lib")
        c = _module("c")
        source = FakeSource()
        source.add(a, "/a/feature.json", _feature("a", prototype=_id("lib")))
        source.add(a, "/a/extra.json", _feature("a", "extra", prototype=_id("lib")))
        source.add(lib, "/lib/feature.json", _feature("lib"))
        source.add(c, "/c/feature.json", _feature("c", prototype=_id("lib")))
        merger = RecordingMerger()
        session = _session([a, lib, c], source, merger)

        AssemblyCoordinator(session).process_all()

        assert source.reads.count((lib.key, Scope.MAIN)) == 1
        # lib is processed while a is, before a's test scope
        assert source.reads.index((lib.key, Scope.MAIN)) < source.reads.index(
            (a.key, Scope.TEST)
        )
        assert merger.calls.count(_id("lib")) == 1
        lib_feature = session.store(lib).assembled(Scope.MAIN)["/lib/feature.json"]
        assert merger.resolved[_id("c")] is lib_feature

    def test_missing_feature_in_sibling(self):
        a = _module("a")
        lib = _module("lib")
        source = FakeSource()
        source.add(a, "/a/feature.json", _feature("a", prototype=_id("lib", "nope")))
        source.add(lib, "/lib/feature.json", _feature("lib"))
        merger = RecordingMerger()
        session = _session([a, lib], source, merger)

        AssemblyCoordinator(session).process(a, Scope.MAIN)

        assert merger.resolved[_id("a")] == NotFound(_id("lib", "nope"), NotFound.MISSING)
        (event,) = session.diagnostics.by_kind(DiagnosticKind.FEATURE_NOT_FOUND)
        assert "Unable to get feature" in event.message

    def test_missing_feature_in_same_module(self):
        app = _module("app")
        source = FakeSource()
        source.add(app, "/app/feature.json", _feature("app", prototype=_id("app", "nope")))
        session = _session([app], source)

        AssemblyCoordinator(session).process(app, Scope.MAIN)

        (event,) = session.diagnostics.by_kind(DiagnosticKind.FEATURE_NOT_FOUND)
        assert "Unable to find included feature" in event.message


class TestExternal:
    def test_external_feature_is_loaded_once_and_left_unchanged(self):
        app = _module("app")
        ext_id = Identity.parse("org.external:base:feature:2.0")
        external = Feature(id=ext_id, bundles=[Artifact(id="org.external:core:2.0")])
        snapshot = external.model_dump()
        source = FakeSource()
        source.add(app, "/app/feature.json", _feature("app", prototype=ext_id))
        source.add(app, "/app/more.json", _feature("app", "more", prototype=ext_id))
        loader = FakeLoader(external)
        merger = RecordingMerger()
        session = _session([app], source, merger, loader)

        AssemblyCoordinator(session).process(app, Scope.MAIN)

        # one load per reference, no caching in the coordinator
        assert loader.calls == [ext_id, ext_id]
        assert merger.resolved[_id("app")] is external
        assert external.model_dump() == snapshot

    def test_external_reference_becomes_dependency(self):
        app = _module("app")
        ext_id = Identity.parse("org.external:base:feature:2.0")
        source = FakeSource()
        source.add(app, "/app/feature.json", _feature("app", prototype=ext_id))
        session = _session([app], source, loader=FakeLoader(Feature(id=ext_id)))

        AssemblyCoordinator(session).process(app, Scope.MAIN)

        assert app.dependencies == [Dependency.from_identity(ext_id, "provided")]

    def test_loader_failure_propagates(self):
        app = _module("app")
        ext_id = Identity.parse("org.external:base:feature:2.0")
        source = FakeSource()
        source.add(app, "/app/feature.json", _feature("app", prototype=ext_id))
        session = _session([app], source)

        with pytest.raises(ExternalResolutionError):
            AssemblyCoordinator(session).process(app, Scope.MAIN)

        (event,) = session.diagnostics.by_kind(DiagnosticKind.EXTERNAL_RESOLUTION_FAILURE)
        assert event.identity == ext_id


class TestTestScope:
    def test_test_features_fall_back_to_main(self):
        app = _module("app")
        source = FakeSource()
        source.add(app, "/app/main/feature.json", _feature("app"))
        source.add(app, "/app/test/it.json", _feature("app", "it", prototype=_id("app")), Scope.TEST)
        merger = RecordingMerger()
        session = _session([app], source, merger)

        AssemblyCoordinator(session).process(app, Scope.TEST)

        assert source.reads == [(app.key, Scope.MAIN), (app.key, Scope.TEST)]
        main_feature = session.store(app).assembled(Scope.MAIN)["/app/main/feature.json"]
        assert merger.resolved[_id("app", "it")] is main_feature
        assert list(session.store(app).assembled(Scope.TEST)) == ["/app/test/it.json"]

    def test_test_references_use_test_dependency_scope(self):
        app = _module("app")
        source = FakeSource()
        source.add(app, "/app/main/x.json", _feature("app", "x"))
        source.add(
            app, "/app/test/it.json", _feature("app", "it", bundles=("org.lib:junit:4.0",)), Scope.TEST
        )
        session = _session([app], source)

        AssemblyCoordinator(session).process_all()

        assert [d.scope for d in app.dependencies] == ["test"]


class TestPackagedUnit:
    def test_packaged_unit_is_attached(self):
        core = _module("core", packaging="bundle")
        source = FakeSource()
        source.add(core, "/core/feature.json", _feature("core"))
        config = FeatureCraftConfig()
        config.main.packaged_unit_start_order = 20
        session = _session([core], source, config=config)

        AssemblyCoordinator(session).process(core, Scope.MAIN)

        feature = session.store(core).assembled(Scope.MAIN)["/core/feature.json"]
        unit = feature.get_bundle(Identity.parse("org.example:core:1.0"))
        assert unit is not None
        assert unit.start_order == 20
        # the module's own artifact is never added as a dependency
        assert core.dependencies == []

    def test_more_than_one_target_is_ambiguous(self):
        core = _module("core", packaging="jar")
        source = FakeSource()
        source.add(core, "/core/a.json", _feature("core"))
        source.add(core, "/core/b.json", _feature("core", "b"))
        session = _session([core], source)

        with pytest.raises(AmbiguousPackagedUnitError):
            AssemblyCoordinator(session).process(core, Scope.MAIN)

        (event,) = session.diagnostics.by_kind(DiagnosticKind.AMBIGUOUS_PACKAGED_UNIT)
        assert event.locations == ["/core/a.json", "/core/b.json"]

    def test_skip_flag_and_feature_packaging(self):
        core = _module("core", packaging="bundle")
        plain = _module("plain")
        source = FakeSource()
        source.add(core, "/core/feature.json", _feature("core"))
        source.add(plain, "/plain/feature.json", _feature("plain"))
        config = FeatureCraftConfig()
        config.main.skip_add_packaged_unit = True
        session = _session([core, plain], source, config=config)
        coordinator = AssemblyCoordinator(session)

        coordinator.process(core, Scope.MAIN)
        coordinator.process(plain, Scope.MAIN)

        assert session.store(core).assembled(Scope.MAIN)["/core/feature.json"].bundles == []
        assert session.store(plain).assembled(Scope.MAIN)["/plain/feature.json"].bundles == []

    def test_not_attached_to_test_features_by_default(self):
        core = _module("core", packaging="bundle")
        source = FakeSource()
        source.add(core, "/core/main/feature.json", _feature("core"))
        source.add(core, "/core/test/a.json", _feature("core", "a"), Scope.TEST)
        source.add(core, "/core/test/b.json", _feature("core", "b"), Scope.TEST)
        session = _session([core], source)

        AssemblyCoordinator(session).process_all()

        assert all(not f.bundles for f in session.store(core).assembled(Scope.TEST).values())


class TestDependencies:
    def test_bundles_become_dependencies_once(self):
        app = _module("app")
        source = FakeSource()
        source.add(app, "/app/a.json", _feature("app", bundles=("org.lib:util:2.0",)))
        source.add(app, "/app/b.json", _feature("app", "b", bundles=("org.lib:util:2.0",)))
        session = _session([app], source)

        AssemblyCoordinator(session).process(app, Scope.MAIN)

        assert app.dependencies == [
            Dependency(group="org.lib", name="util", version="2.0", scope="provided")
        ]
        assert session.dependency_sink.added_for(app) == app.dependencies

    def test_skip_add_dependencies(self):
        app = _module("app")
        source = FakeSource()
        source.add(app, "/app/a.json", _feature("app", bundles=("org.lib:util:2.0",)))
        config = FeatureCraftConfig()
        config.main.skip_add_dependencies = True
        session = _session([app], source, config=config)

        AssemblyCoordinator(session).process(app, Scope.MAIN)

        assert app.dependencies == []

    def test_per_module_config_override(self):
        app = Module(
            group="org.example",
            name="app",
            version="1.0",
            config={"main": {"skip_add_dependencies": "true"}},
        )
        source = FakeSource()
        source.add(app, "/app/a.json", _feature("app", bundles=("org.lib:util:2.0",)))
        session = _session([app], source)

        AssemblyCoordinator(session).process(app, Scope.MAIN)

        assert app.dependencies == []


class TestProcessAll:
    def test_feature_module_without_features(self):
        app = _module("app")
        with pytest.raises(EmptyFeatureModuleError, match="no feature defined"):
            AssemblyCoordinator(_session([app], FakeSource())).process_all()

    def test_jar_module_without_features_is_fine(self):
        lib = _module("lib", packaging="jar")
        session = _session([lib], FakeSource())
        AssemblyCoordinator(session).process_all()
        assert session.store(lib).is_done(Scope.TEST)

    def test_duplicate_module_rejected(self):
        with pytest.raises(ValueError, match="Duplicate module"):
            _session([_module("a"), _module("a")], FakeSource())


def test_cycle_diagnostic_is_logged(caplog):
    app = _module("app")
    source = FakeSource()
    source.add(app, "/app/feature.json", _feature("app", prototype=_id("app")))

    with caplog.at_level("ERROR", logger="featurecraft"):
        AssemblyCoordinator(_session([app], source)).process(app, Scope.MAIN)

    assert "cycle_detected" in caplog.text
    assert "Cyclic reference" in caplog.text


def test_only_error_severity_counts_as_errors(caplog):
    diagnostics = Diagnostics()
    assert not diagnostics.has_errors

    with caplog.at_level("WARNING", logger="featurecraft"):
        diagnostics.report(
            DiagnosticKind.FEATURE_NOT_FOUND,
            "org.example:app:1.0",
            "Unable to find included feature",
            severity=Severity.WARNING,
        )
    assert len(diagnostics) == 1
    assert not diagnostics.has_errors
    assert caplog.records[-1].levelname == "WARNING"

    diagnostics.report(DiagnosticKind.CYCLE_DETECTED, "org.example:app:1.0", "Cyclic reference")
    assert diagnostics.has_errors
