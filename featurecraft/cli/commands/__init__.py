"""CLI commands for featurecraft."""

from . import (
    assemble,
    validate,
    config_cmd,
)

__all__ = [
    "assemble",
    "validate",
    "config_cmd",
]
