"""Sync services for fetching and persisting activity data.

Public API:
  - ActivitySync – incremental pagination and detail fan-out
  - SyncResult – outcome of one sync cycle
  - RequestThrottle – FIFO pacing of outbound requests
  - RemoteResponseError – unexpected payload from the remote service
"""

from .engine import ActivityFetcher, ActivitySync, RemoteResponseError, SyncResult
from .throttle import QueueEntry, RequestThrottle

__all__ = [
    "ActivityFetcher",
    "ActivitySync",
    "QueueEntry",
    "RemoteResponseError",
    "RequestThrottle",
    "SyncResult",
]
