"""External artifacts from a local repository directory.

Artifacts are laid out as

    <root>/<group, dots as slashes>/<name>/<version>/<name>-<version>[-<classifier>].<type>

Feature artifacts are feature documents (see json_reader).
"""

import json
import logging
from pathlib import Path

from ..core.errors import ExternalResolutionError, FeatureReadError
from ..core.models import Feature, Identity
from .json_reader import feature_to_dict, read_feature


logger = logging.getLogger(__name__)


def artifact_path(root: Path, id: Identity) -> Path:
    """Repository path of an artifact."""
    file_name = f"{id.name}-{id.version}"
    if id.classifier:
        file_name += f"-{id.classifier}"
    file_name += f".{id.type}"
    return root.joinpath(*id.group.split("."), id.name, id.version, file_name)


class LocalRepositoryLoader:
    """ExternalArtifactLoader over a local repository.

    Loaded features are cached per identity for the lifetime of the loader.
    """

    def __init__(self, root: Path | str):
        self.root = Path(root).expanduser()
        self._cache: dict[Identity, Feature] = {}

    def locate(self, id: Identity) -> Path:
        path = artifact_path(self.root, id)
        if not path.is_file():
            raise ExternalResolutionError(id, f"artifact not found at {path}")
        return path

    def load(self, id: Identity) -> Feature:
        if id in self._cache:
            return self._cache[id]
        path = self.locate(id)
        logger.debug("Reading external feature %s from %s", id, path)
        try:
            feature = read_feature(path.read_text(encoding="utf-8"), str(path))
        except (OSError, UnicodeDecodeError, FeatureReadError) as exc:
            raise ExternalResolutionError(id, exc) from exc
        self._cache[id] = feature
        return feature

    def install(self, feature: Feature) -> Path:
        """Write a feature into the repository (used to seed repositories)."""
        path = artifact_path(self.root, feature.id)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(feature_to_dict(feature), indent=2), encoding="utf-8")
        self._cache.pop(feature.id, None)
        return path
