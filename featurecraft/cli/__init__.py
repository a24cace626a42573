"""Command-line interface for featurecraft."""

from .app import app

__all__ = ["app"]
