"""CLI interface for activitysync.

This package is the home for all Click commands.
"""

from .__main__ import cli
from .sync import sync

__all__ = ["cli", "sync"]
