"""HTTP helpers for activitysync.

The remote service is only reached through the browser session; this package
holds the endpoint constants and query-string building.
"""

from .urls import ACTIVITY_SEARCH_URL, CONNECT_BASE_URL, SIGNIN_URL, build_url

__all__ = ["ACTIVITY_SEARCH_URL", "CONNECT_BASE_URL", "SIGNIN_URL", "build_url"]
