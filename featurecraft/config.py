"""Configuration management for featurecraft.

Two scopes share one config shape:
- main: features shipped with the module
- test: features used only by the module's tests

Config resolution order (highest priority first):
1. Per-module overrides (the ``config`` mapping of a reactor module),
   applied on top of whichever global config is in effect
2. Programmatic (FeatureCraftConfig constructed in code)
3. Environment variables (FEATURECRAFT_REPOSITORY, etc.)
4. Config file (~/.config/featurecraft/config.json)
5. Hardcoded defaults
"""

import copy
import json
import logging
import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any

from .core.models import DEFAULT_TYPE, Module


logger = logging.getLogger(__name__)


# =============================================================================
# Config file location
# =============================================================================

CONFIG_DIR = Path.home() / ".config" / "featurecraft"
CONFIG_FILE = CONFIG_DIR / "config.json"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def parse_bool(value: str) -> bool:
    """Parse a boolean flag from env/config text.

    Raises:
        ValueError: If the value is not a recognized boolean spelling.
    """
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean value: {value!r}")


# =============================================================================
# Config dataclasses
# =============================================================================


@dataclass
class ScopeConfig:
    """Settings for one scope (main or test) of a module.

    - features_dir: directory scanned for feature files, relative to the module
    - includes/excludes: glob patterns relative to features_dir
    - skip_add_dependencies: do not add referenced artifacts to the module's
      dependency list
    - skip_add_packaged_unit: do not attach the module's own packaged unit
      (jar/bundle packagings) to its feature
    """

    features_dir: str = "src/main/features"
    includes: list[str] = field(default_factory=lambda: ["**/*.json"])
    excludes: list[str] = field(default_factory=list)
    skip_add_dependencies: bool = False
    skip_add_packaged_unit: bool = False
    packaged_unit_start_order: int | None = None
    packaged_unit_type: str = DEFAULT_TYPE
    dependency_scope: str = "provided"


def _default_main() -> ScopeConfig:
    return ScopeConfig()


def _default_test() -> ScopeConfig:
    return ScopeConfig(
        features_dir="src/test/features",
        skip_add_packaged_unit=True,
        dependency_scope="test",
    )


@dataclass
class ModuleConfig:
    """Resolved configuration for one module."""

    main: ScopeConfig = field(default_factory=_default_main)
    test: ScopeConfig = field(default_factory=_default_test)
    # extension name ("bundles" for the bundle list) -> metadata defaults
    default_metadata: dict[str, dict[str, str]] = field(default_factory=dict)


@dataclass
class FeatureCraftConfig:
    """Top-level featurecraft configuration.

    Construct programmatically for package use, or load from config file for CLI use.

    Examples:
        # Package use, no files needed
        config = FeatureCraftConfig(repository="/tmp/repo")

        # CLI use, loads from ~/.config/featurecraft/config.json
        config = FeatureCraftConfig.load()
    """

    main: ScopeConfig = field(default_factory=_default_main)
    test: ScopeConfig = field(default_factory=_default_test)
    default_metadata: dict[str, dict[str, str]] = field(default_factory=dict)
    repository: str = str(Path.home() / ".m2" / "repository")

    @classmethod
    def load(cls) -> "FeatureCraftConfig":
        """Load config from file + env vars.

        Priority: env var values > config.json values > defaults.
        """
        config = cls()

        # Layer 1: Load from config file if it exists
        if CONFIG_FILE.exists():
            try:
                with open(CONFIG_FILE) as f:
                    data = json.load(f)
                apply_dict(config, data)
            except (json.JSONDecodeError, OSError, ValueError) as exc:
                logger.warning("Failed to load config from %s: %s", CONFIG_FILE, exc)

        # Layer 2: Env var overrides
        if val := os.environ.get("FEATURECRAFT_REPOSITORY"):
            config.repository = val
        if val := os.environ.get("FEATURECRAFT_SKIP_ADD_DEPENDENCIES"):
            try:
                flag = parse_bool(val)
                config.main.skip_add_dependencies = flag
                config.test.skip_add_dependencies = flag
            except ValueError:
                logger.warning(
                    "Invalid FEATURECRAFT_SKIP_ADD_DEPENDENCIES=%r, ignoring", val
                )
        if val := os.environ.get("FEATURECRAFT_SKIP_ADD_PACKAGED_UNIT"):
            try:
                config.main.skip_add_packaged_unit = parse_bool(val)
            except ValueError:
                logger.warning(
                    "Invalid FEATURECRAFT_SKIP_ADD_PACKAGED_UNIT=%r, ignoring", val
                )

        return config

    def save(self) -> None:
        """Save config to ~/.config/featurecraft/config.json."""
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        with open(CONFIG_FILE, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for display."""
        result: dict[str, Any] = {
            "main": asdict(self.main),
            "test": asdict(self.test),
            "repository": self.repository,
        }
        if self.default_metadata:
            result["default_metadata"] = copy.deepcopy(self.default_metadata)
        return result

    def for_module(self, module: Module) -> ModuleConfig:
        """Resolve the configuration of one module.

        The module's own ``config`` mapping overrides the global values.
        """
        resolved = ModuleConfig(
            main=copy.deepcopy(self.main),
            test=copy.deepcopy(self.test),
            default_metadata=copy.deepcopy(self.default_metadata),
        )
        if module.config:
            _apply_scope_dict(resolved.main, module.config.get("main"))
            _apply_scope_dict(resolved.test, module.config.get("test"))
            metadata = module.config.get("default_metadata")
            if isinstance(metadata, dict):
                resolved.default_metadata.update(metadata)
        return resolved


# =============================================================================
# Config dict application
# =============================================================================

_BOOL_FIELDS = {"skip_add_dependencies", "skip_add_packaged_unit"}
_LIST_FIELDS = {"includes", "excludes"}


def _apply_scope_dict(scope: ScopeConfig, data: Any) -> None:
    """Apply a dict of values onto a ScopeConfig, coercing simple types."""
    if not isinstance(data, dict):
        return
    for k, v in data.items():
        if not hasattr(scope, k):
            logger.warning("Unknown scope config key %r, ignoring", k)
            continue
        if k in _BOOL_FIELDS and isinstance(v, str):
            v = parse_bool(v)
        elif k in _LIST_FIELDS and isinstance(v, str):
            v = [part.strip() for part in v.split(",") if part.strip()]
        elif k == "packaged_unit_start_order" and v is not None:
            v = int(v)
        setattr(scope, k, v)


def apply_dict(config: FeatureCraftConfig, data: dict) -> None:
    """Apply a dict of values onto a FeatureCraftConfig."""
    _apply_scope_dict(config.main, data.get("main"))
    _apply_scope_dict(config.test, data.get("test"))
    if isinstance(data.get("default_metadata"), dict):
        config.default_metadata = data["default_metadata"]
    if "repository" in data:
        config.repository = str(data["repository"])


# =============================================================================
# Global config singleton
# =============================================================================

_config: FeatureCraftConfig | None = None


def get_config() -> FeatureCraftConfig:
    """Get the global FeatureCraftConfig instance.

    First call loads from file + env vars. Subsequent calls return cached instance.
    Use configure() to replace the global config programmatically.
    """
    global _config
    if _config is None:
        _config = FeatureCraftConfig.load()
    return _config


def configure(config: FeatureCraftConfig) -> None:
    """Set the global FeatureCraftConfig programmatically."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global config (forces reload on next get_config())."""
    global _config
    _config = None
