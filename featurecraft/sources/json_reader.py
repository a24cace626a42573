"""Feature documents as JSON.

A feature document is a JSON object (line and block comments allowed):

    {
      "id": "org.example:app:feature:1.0",
      "title": "...",
      "bundles": ["org.example:core:1.0", {"id": "...", "start-order": 5}],
      "variables": {...},
      "framework-properties": {...},
      "prototype": {"id": "...", "removal": {"bundles": [...], "extensions": [...]}},
      "content:ARTIFACTS|required": [...],
      "repoinit:TEXT": "...",
      "api-regions:JSON|optional": {...}
    }

Keys of the form ``name:KIND[|state]`` are extensions.
"""

import json
from typing import Any

from pydantic import ValidationError

from ..core.errors import FeatureReadError
from ..core.models import (
    Artifact,
    Extension,
    ExtensionKind,
    ExtensionState,
    Feature,
    Identity,
    Prototype,
)


_SCALAR_KEYS = ("title", "description", "vendor", "license")
_ARTIFACT_KEYS = {"id", "start-order"}

_STATE_SPELLINGS = {
    "required": ExtensionState.REQUIRED,
    "true": ExtensionState.REQUIRED,
    "optional": ExtensionState.OPTIONAL,
    "false": ExtensionState.OPTIONAL,
}


def strip_json_comments(text: str) -> str:
    """Remove ``//`` and ``/* */`` comments outside of string literals."""
    out: list[str] = []
    i = 0
    n = len(text)
    in_string = False
    while i < n:
        ch = text[i]
        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
            continue
        if ch == '"':
            in_string = True
            out.append(ch)
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = n if end == -1 else end + 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def load_document(text: str, location: str) -> dict[str, Any]:
    """Parse a feature document into a dict."""
    try:
        data = json.loads(strip_json_comments(text))
    except json.JSONDecodeError as exc:
        raise FeatureReadError(location, exc) from exc
    if not isinstance(data, dict):
        raise FeatureReadError(location, "feature document must be a JSON object")
    return data


# =============================================================================
# dict -> Feature
# =============================================================================


def _artifact_from(entry: Any, location: str) -> Artifact:
    if isinstance(entry, str):
        return Artifact(id=Identity.parse(entry))
    if isinstance(entry, dict) and isinstance(entry.get("id"), str):
        metadata = {
            str(k): str(v) for k, v in entry.items() if k not in _ARTIFACT_KEYS
        }
        start_order = entry.get("start-order")
        return Artifact(
            id=Identity.parse(entry["id"]),
            start_order=int(start_order) if start_order is not None else None,
            metadata=metadata,
        )
    raise FeatureReadError(location, f"invalid artifact entry: {entry!r}")


def _parse_extension_key(key: str, location: str) -> tuple[str, ExtensionKind, ExtensionState]:
    name, _, rest = key.partition(":")
    kind_text, _, state_text = rest.partition("|")
    try:
        kind = ExtensionKind(kind_text.lower())
    except ValueError:
        raise FeatureReadError(
            location, f"unknown extension kind {kind_text!r} in key {key!r}"
        ) from None
    state = ExtensionState.REQUIRED
    if state_text:
        if state_text.lower() not in _STATE_SPELLINGS:
            raise FeatureReadError(location, f"invalid extension state in key {key!r}")
        state = _STATE_SPELLINGS[state_text.lower()]
    return name, kind, state


def _extension_from(key: str, value: Any, location: str) -> Extension:
    name, kind, state = _parse_extension_key(key, location)
    if kind is ExtensionKind.ARTIFACTS:
        if not isinstance(value, list):
            raise FeatureReadError(location, f"extension {name!r} must be a list")
        return Extension.of_artifacts(
            name, [_artifact_from(e, location) for e in value], state
        )
    if kind is ExtensionKind.TEXT:
        if isinstance(value, list):
            value = "\n".join(str(line) for line in value)
        if not isinstance(value, str):
            raise FeatureReadError(location, f"extension {name!r} must be text")
        return Extension.of_text(name, value, state)
    return Extension.of_value(name, value, state)


def _prototype_from(data: Any, location: str) -> Prototype:
    if isinstance(data, str):
        return Prototype(id=Identity.parse(data))
    if not isinstance(data, dict) or "id" not in data:
        raise FeatureReadError(location, "prototype must be a coordinate or an object with 'id'")
    removal = data.get("removal") or {}
    return Prototype(
        id=Identity.parse(data["id"]),
        removed_bundles=[Identity.parse(b) for b in removal.get("bundles", [])],
        removed_extensions=list(removal.get("extensions", [])),
    )


def feature_from_dict(data: dict[str, Any], location: str) -> Feature:
    """Build a Feature from a parsed document.

    Raises:
        FeatureReadError: If the document is not a valid feature.
    """
    if "id" not in data:
        raise FeatureReadError(location, "feature has no 'id'")
    try:
        fields: dict[str, Any] = {"id": Identity.parse(str(data["id"]))}
        for key in _SCALAR_KEYS:
            if data.get(key) is not None:
                fields[key] = str(data[key])
        bundles = data.get("bundles", [])
        if not isinstance(bundles, list):
            raise FeatureReadError(location, "'bundles' must be a list")
        fields["bundles"] = [_artifact_from(e, location) for e in bundles]
        fields["variables"] = {
            str(k): str(v) for k, v in (data.get("variables") or {}).items()
        }
        fields["framework_properties"] = {
            str(k): str(v) for k, v in (data.get("framework-properties") or {}).items()
        }
        if data.get("prototype") is not None:
            fields["prototype"] = _prototype_from(data["prototype"], location)
        fields["extensions"] = [
            _extension_from(key, value, location)
            for key, value in data.items()
            if ":" in key
        ]
        fields["assembled"] = data.get("assembled") is True
        return Feature(**fields)
    except (ValueError, TypeError, AttributeError, ValidationError) as exc:
        raise FeatureReadError(location, exc) from exc


def read_feature(text: str, location: str) -> Feature:
    """Parse feature document text."""
    return feature_from_dict(load_document(text, location), location)


# =============================================================================
# Feature -> dict
# =============================================================================


def _artifact_to(artifact: Artifact) -> str | dict[str, Any]:
    if artifact.start_order is None and not artifact.metadata:
        return artifact.id.to_coordinate()
    entry: dict[str, Any] = {"id": artifact.id.to_coordinate()}
    if artifact.start_order is not None:
        entry["start-order"] = artifact.start_order
    entry.update(artifact.metadata)
    return entry


def feature_to_dict(feature: Feature) -> dict[str, Any]:
    """Inverse of feature_from_dict."""
    data: dict[str, Any] = {"id": feature.id.to_coordinate()}
    for key in _SCALAR_KEYS:
        value = getattr(feature, key)
        if value is not None:
            data[key] = value
    if feature.bundles:
        data["bundles"] = [_artifact_to(a) for a in feature.bundles]
    if feature.variables:
        data["variables"] = dict(feature.variables)
    if feature.framework_properties:
        data["framework-properties"] = dict(feature.framework_properties)
    if feature.prototype is not None:
        proto: dict[str, Any] = {"id": feature.prototype.id.to_coordinate()}
        removal: dict[str, Any] = {}
        if feature.prototype.removed_bundles:
            removal["bundles"] = [
                i.to_coordinate() for i in feature.prototype.removed_bundles
            ]
        if feature.prototype.removed_extensions:
            removal["extensions"] = list(feature.prototype.removed_extensions)
        if removal:
            proto["removal"] = removal
        data["prototype"] = proto
    if feature.assembled:
        data["assembled"] = True
    for ext in feature.extensions:
        key = f"{ext.name}:{ext.kind.value.upper()}|{ext.state.value}"
        if ext.kind is ExtensionKind.ARTIFACTS:
            data[key] = [_artifact_to(a) for a in ext.artifacts]
        elif ext.kind is ExtensionKind.TEXT:
            data[key] = ext.text
        else:
            data[key] = ext.value
    return data
