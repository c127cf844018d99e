"""
activitysync package initializer.

This package incrementally syncs a remote activity list into local JSON files
and fetches per-activity detail documents, pacing requests so the remote
service does not throttle the session.

The package exposes a ``__version__`` attribute indicating the installed
version. The version is read from pyproject.toml via importlib.metadata – this
is the single source of truth.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("activitysync")
except PackageNotFoundError:
    # Package is not installed (running from source without pip install -e .)
    __version__ = "0.0.0.dev"

__all__: list[str] = ["__version__"]
