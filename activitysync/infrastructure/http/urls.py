"""URL helpers for the remote activity service."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import urlencode

CONNECT_BASE_URL = "https://connect.garmin.com"
SIGNIN_URL = f"{CONNECT_BASE_URL}/signin"
ACTIVITY_SEARCH_URL = (
    f"{CONNECT_BASE_URL}/modern/proxy/activitylist-service/activities/search/activities"
)


def _query_value(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


def build_url(base_url: str, query: Mapping[str, Any], sep: str = "?") -> str:
    """Join ``base_url`` and the urlencoded ``query``.

    Sequence values repeat the key (``a=1&a=2``); ``None`` encodes as an empty
    value and booleans as ``true``/``false``.
    """
    params: list[tuple[str, Any]] = []
    for key, value in query.items():
        if isinstance(value, (list, tuple)):
            params.extend((key, _query_value(item)) for item in value)
        else:
            params.append((key, _query_value(value)))
    return sep.join([base_url, urlencode(params)])


__all__ = ["ACTIVITY_SEARCH_URL", "CONNECT_BASE_URL", "SIGNIN_URL", "build_url"]
