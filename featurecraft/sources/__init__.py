"""Concrete feature sources and external loaders."""

from .json_reader import (
    feature_from_dict,
    feature_to_dict,
    load_document,
    read_feature,
    strip_json_comments,
)
from .directory import DirectoryFeatureSource, generate_id, scan, substitute_module_vars
from .repository import LocalRepositoryLoader, artifact_path

__all__ = [
    "feature_from_dict",
    "feature_to_dict",
    "load_document",
    "read_feature",
    "strip_json_comments",
    "DirectoryFeatureSource",
    "generate_id",
    "scan",
    "substitute_module_vars",
    "LocalRepositoryLoader",
    "artifact_path",
]
