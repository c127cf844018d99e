"""Service layer modules for activitysync."""

from .sync import (  # noqa: F401
    ActivityFetcher,
    ActivitySync,
    RemoteResponseError,
    RequestThrottle,
    SyncResult,
)
from .sync_service import SyncRunSummary, SyncService  # noqa: F401

__all__ = [
    "ActivityFetcher",
    "ActivitySync",
    "RemoteResponseError",
    "RequestThrottle",
    "SyncResult",
    "SyncRunSummary",
    "SyncService",
]
