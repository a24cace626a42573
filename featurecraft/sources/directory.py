"""Raw features read from a module's features directory.

For each scope the module's ``features_dir`` is scanned with the configured
include/exclude patterns. Every matching file is read as a feature
document after substituting the module coordinates for
``${project.groupId}``, ``${project.artifactId}`` and ``${project.version}``.

A document without ``id`` gets one generated from the module:

    group:name:feature:<file basename>:version

except for ``feature.json`` at the root of the main features directory,
which becomes the module's primary feature and has no classifier.
"""

import fnmatch
import logging
from pathlib import Path

from ..config import FeatureCraftConfig, ScopeConfig, get_config
from ..core.errors import FeatureIdMismatchError, FeatureReadError
from ..core.models import (
    ExtensionKind,
    FEATURE_TYPE,
    Feature,
    Identity,
    Module,
    TextContent,
)
from ..assembly.store import Scope
from .json_reader import feature_from_dict, load_document


logger = logging.getLogger(__name__)

MAIN_FEATURE_FILE = "feature.json"
FILE_PREFIX = "@file"
BUNDLES_KEY = "bundles"


def substitute_module_vars(module: Module, text: str) -> str:
    """Replace the supported ``${project.*}`` placeholders."""
    return (
        text.replace("${project.groupId}", module.group)
        .replace("${project.artifactId}", module.name)
        .replace("${project.version}", module.version)
    )


def scan(directory: Path, includes: list[str], excludes: list[str]) -> list[Path]:
    """Files below ``directory`` matching any include and no exclude."""
    found: set[Path] = set()
    for pattern in includes:
        for path in directory.glob(pattern):
            if path.is_file():
                found.add(path)

    def excluded(path: Path) -> bool:
        rel = path.relative_to(directory).as_posix()
        for pattern in excludes:
            if fnmatch.fnmatch(rel, pattern):
                return True
            if pattern.startswith("**/") and fnmatch.fnmatch(rel, pattern[3:]):
                return True
        return False

    return sorted(p for p in found if not excluded(p))


def generate_id(module: Module, file: Path, features_dir: Path, scope: Scope) -> Identity:
    """Identity for a feature document that carries no ``id``."""
    is_primary = (
        scope is Scope.MAIN
        and file.name == MAIN_FEATURE_FILE
        and file.parent.resolve() == features_dir.resolve()
    )
    return Identity(
        group=module.group,
        name=module.name,
        version=module.version,
        type=FEATURE_TYPE,
        classifier=None if is_primary else file.stem,
    )


def check_feature_id(module: Module, feature: Feature) -> None:
    """The feature must carry the module's group, name and version."""
    for label, expected, actual in (
        ("group id", module.group, feature.id.group),
        ("artifact id", module.name, feature.id.name),
        ("version", module.version, feature.id.version),
    ):
        if expected != actual:
            raise FeatureIdMismatchError(
                f"Wrong {label} for feature. It should be {expected} but is {actual}",
                module.id,
            )


def set_feature_info(module: Module, feature: Feature) -> None:
    """Fill missing title/description/vendor/license from the module."""
    if feature.title is None:
        feature.title = module.title
    if feature.description is None:
        feature.description = module.description
    if feature.vendor is None:
        feature.vendor = module.vendor
    if feature.license is None and module.licenses:
        feature.license = ", ".join(module.licenses)


def handle_file_extensions(feature: Feature, file: Path) -> None:
    """Load text extensions written as ``@file`` or ``@file:<name>``.

    ``@file`` reads ``<basename>-<extension name>.txt`` next to the feature
    file, ``@file:<name>`` reads ``<basename>-<name>``.
    """
    for ext in feature.extensions:
        if ext.kind is not ExtensionKind.TEXT or not ext.text.startswith(FILE_PREFIX):
            continue
        if ext.text == FILE_PREFIX:
            file_name = f"{file.stem}-{ext.name}.txt"
        else:
            rest = ext.text[len(FILE_PREFIX):]
            if not rest.startswith(":"):
                raise FeatureReadError(str(file), f"Invalid file reference: {ext.text}")
            file_name = f"{file.stem}-{rest[1:]}"
        txt_file = file.parent / file_name
        if not txt_file.is_file():
            raise FeatureReadError(
                str(file), f"Extension text file {txt_file.resolve()} not found."
            )
        try:
            text = txt_file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise FeatureReadError(str(txt_file), exc) from exc
        ext.content = TextContent(text=text)


def apply_default_metadata(
    feature: Feature, defaults: dict[str, dict[str, str]]
) -> None:
    """Add default metadata to artifacts that do not define the key yet."""
    for extension_name, properties in defaults.items():
        if extension_name == BUNDLES_KEY:
            artifacts = feature.bundles
        else:
            ext = feature.get_extension(extension_name)
            if ext is None or ext.kind is not ExtensionKind.ARTIFACTS:
                continue
            artifacts = ext.artifacts
        for artifact in artifacts:
            for key, value in properties.items():
                artifact.metadata.setdefault(key, value)


class DirectoryFeatureSource:
    """FeatureSource reading feature files from each module's base directory."""

    def __init__(self, config: FeatureCraftConfig | None = None):
        self.config = config if config is not None else get_config()

    def features_dir(self, module: Module, scope_config: ScopeConfig) -> Path:
        base = module.base_dir if module.base_dir is not None else Path.cwd()
        return base / scope_config.features_dir

    def read(self, module: Module, scope: Scope) -> dict[str, Feature]:
        module_config = self.config.for_module(module)
        scope_config = module_config.test if scope is Scope.TEST else module_config.main
        directory = self.features_dir(module, scope_config)
        if not directory.is_dir():
            logger.debug(
                "Feature directory %s does not exist in project %s",
                scope_config.features_dir,
                module.id,
            )
            return {}

        features: dict[str, Feature] = {}
        for file in scan(directory, scope_config.includes, scope_config.excludes):
            location = str(file.resolve())
            logger.debug("Reading feature file %s in project %s", file, module.id)
            try:
                text = file.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                raise FeatureReadError(location, exc) from exc

            data = load_document(substitute_module_vars(module, text), location)
            if "id" not in data:
                generated = generate_id(module, file, directory, scope)
                logger.debug("Generating id %s for feature file %s", generated, file)
                data = {"id": generated.to_coordinate(), **data}

            feature = feature_from_dict(data, location)
            check_feature_id(module, feature)
            set_feature_info(module, feature)
            handle_file_extensions(feature, file)
            apply_default_metadata(feature, module_config.default_metadata)
            features[location] = feature
        return features
