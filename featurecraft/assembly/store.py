"""Per-module feature store.

Each module owns four ordered maps keyed by source location: raw and
assembled features for the main and the test scope. Assembled maps are
append-only for the lifetime of a build session.
"""

from enum import Enum

from ..core.models import Feature, Identity, Module


class Scope(str, Enum):
    MAIN = "main"
    TEST = "test"

    @property
    def other(self) -> "Scope":
        return Scope.TEST if self is Scope.MAIN else Scope.MAIN

    @property
    def label(self) -> str:
        return "test features" if self is Scope.TEST else "features"


class FeatureStore:
    """Raw and assembled features of one module, plus per-scope done flags."""

    def __init__(self, module: Module):
        self.module = module
        self._raw: dict[Scope, dict[str, Feature]] = {Scope.MAIN: {}, Scope.TEST: {}}
        self._assembled: dict[Scope, dict[str, Feature]] = {
            Scope.MAIN: {},
            Scope.TEST: {},
        }
        self._done: set[Scope] = set()

    # ── done flags ──

    def is_done(self, scope: Scope) -> bool:
        return scope in self._done

    def mark_done(self, scope: Scope) -> None:
        self._done.add(scope)

    # ── raw features ──

    def raw(self, scope: Scope) -> dict[str, Feature]:
        return self._raw[scope]

    def set_raw(self, scope: Scope, features: dict[str, Feature]) -> None:
        """Install the raw features of a scope, ordered by location."""
        self._raw[scope] = {loc: features[loc] for loc in sorted(features)}

    def replace_raw(self, scope: Scope, location: str, feature: Feature) -> None:
        if location not in self._raw[scope]:
            raise KeyError(f"No raw feature at {location}")
        self._raw[scope][location] = feature

    # ── assembled features ──

    def assembled(self, scope: Scope) -> dict[str, Feature]:
        return self._assembled[scope]

    def is_assembled(self, scope: Scope, location: str) -> bool:
        return location in self._assembled[scope]

    def store_assembled(self, scope: Scope, location: str, feature: Feature) -> None:
        """Memoize an assembled feature.

        Raises:
            ValueError: If the location already holds an assembled feature.
        """
        if location in self._assembled[scope]:
            raise ValueError(
                f"Feature at {location} already assembled in {self.module.id}"
            )
        self._assembled[scope][location] = feature

    # ── lookups ──

    def find_assembled(self, scope: Scope, id: Identity) -> Feature | None:
        for feature in self._assembled[scope].values():
            if feature.id == id:
                return feature
        return None

    def find_raw(self, scope: Scope, id: Identity) -> tuple[str, Feature] | None:
        for location, feature in self._raw[scope].items():
            if feature.id == id:
                return location, feature
        return None

    # ── read-only views for downstream consumers ──

    @property
    def raw_main(self) -> dict[str, Feature]:
        return dict(self._raw[Scope.MAIN])

    @property
    def raw_test(self) -> dict[str, Feature]:
        return dict(self._raw[Scope.TEST])

    @property
    def assembled_main(self) -> dict[str, Feature]:
        return dict(self._assembled[Scope.MAIN])

    @property
    def assembled_test(self) -> dict[str, Feature]:
        return dict(self._assembled[Scope.TEST])

    @property
    def features(self) -> dict[str, Feature]:
        """All raw features of both scopes."""
        return {**self._raw[Scope.MAIN], **self._raw[Scope.TEST]}
