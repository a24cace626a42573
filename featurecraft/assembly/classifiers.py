"""Classifier invariants for the features of one module.

Classifiers form a flat namespace across the main features, the test
features and any synthesized aggregate features of a module. Features
without classifier share their own bucket; every bucket may hold at most
one feature.
"""

from collections.abc import Iterable, Mapping

from ..core.errors import (
    DuplicateClassifierError,
    MultipleUnclassifiedFeaturesError,
    UnclassifiedTestFeatureError,
)
from ..core.models import Feature, Module
from .store import Scope


AGGREGATE_PREFIX = ":aggregate:"


class _NoClassifier:
    """Bucket key for features without classifier."""

    def __repr__(self) -> str:
        return "<no classifier>"


NO_CLASSIFIER = _NoClassifier()


def aggregate_key(classifier: str | None) -> str:
    """Location key used for a synthesized aggregate feature."""
    return AGGREGATE_PREFIX + classifier if classifier else AGGREGATE_PREFIX


def is_aggregate(key: str) -> bool:
    return key.startswith(AGGREGATE_PREFIX)


def format_locations(keys: list[str]) -> str:
    """Render location keys for error messages.

    Aggregate keys are shown as "aggregate <classifier>" so they can be told
    apart from feature files. Multiple keys are wrapped in brackets.
    """
    rendered = []
    for key in keys:
        if is_aggregate(key):
            suffix = key[len(AGGREGATE_PREFIX):]
            rendered.append(
                f"aggregate {suffix}" if suffix else "aggregate main artifact (no classifier)"
            )
        else:
            rendered.append(key)
    text = ", ".join(rendered)
    return f"[{text}]" if len(keys) > 1 else text


def _bucket(
    buckets: dict[object, list[str]], classifier: str | None, location: str
) -> None:
    key: object = classifier if classifier is not None else NO_CLASSIFIER
    buckets.setdefault(key, []).append(location)


def _check_buckets(module: Module, buckets: dict[object, list[str]]) -> None:
    for key, locations in buckets.items():
        if len(locations) < 2:
            continue
        if key is NO_CLASSIFIER:
            raise MultipleUnclassifiedFeaturesError(
                f"More than one feature file without classifier in project "
                f"{module.id} : {format_locations(locations)}",
                module.id,
                locations,
            )
        raise DuplicateClassifierError(
            f"More than one feature file for classifier {key} in project "
            f"{module.id} : {format_locations(locations)}",
            module.id,
            str(key),
            locations,
        )


def validate_scope(module: Module, scope: Scope, features: Mapping[str, Feature]) -> None:
    """Check the classifiers within one scope of a module.

    Raises:
        MultipleUnclassifiedFeaturesError: Two features without classifier
        DuplicateClassifierError: Two features with the same classifier
    """
    buckets: dict[object, list[str]] = {}
    for location, feature in features.items():
        _bucket(buckets, feature.id.classifier, location)
    _check_buckets(module, buckets)


def validate_classifiers(
    module: Module,
    main: Mapping[str, Feature],
    test: Mapping[str, Feature],
    aggregate_classifiers: Iterable[str | None] = (),
) -> None:
    """Check the classifiers across all features of a module.

    Args:
        module: The module owning the features
        main: Raw main features by location
        test: Raw test features by location
        aggregate_classifiers: Classifiers of synthesized aggregate features,
            None standing for an aggregate without classifier

    Raises:
        UnclassifiedTestFeatureError: A test feature has no classifier
        MultipleUnclassifiedFeaturesError: Two features without classifier
        DuplicateClassifierError: Two features with the same classifier
    """
    buckets: dict[object, list[str]] = {}
    for location, feature in main.items():
        _bucket(buckets, feature.id.classifier, location)
    for location, feature in test.items():
        if feature.id.classifier is None:
            raise UnclassifiedTestFeatureError(
                f"Found test feature without classifier in project {module.id} : {location}",
                module.id,
                [location],
            )
        _bucket(buckets, feature.id.classifier, location)
    for classifier in aggregate_classifiers:
        _bucket(buckets, classifier, aggregate_key(classifier))
    _check_buckets(module, buckets)
