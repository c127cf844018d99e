"""Infrastructure layer for activitysync.

Holds adapters for the browser, HTTP endpoints, file persistence and logging.
"""

from . import browser, http, observability, persistence

__all__ = ["browser", "http", "observability", "persistence"]
