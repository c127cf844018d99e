"""Incremental activity sync.

:class:`ActivitySync` pages through the remote activity search newest first
and stops as soon as it reaches the newest activity already stored locally
(the high-water mark). Only when new activities were found does it write the
updated summary file and fan out one detail fetch per new activity and
configured fetch descriptor.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from activitysync.app.config import ActivitiesConfig, FetchConfig, validate_activities
from activitysync.domain.paths import compile_template, evaluate_template
from activitysync.domain.projection import ACTIVITY_ID, PickAll, PickPolicy, Record
from activitysync.infrastructure.http import ACTIVITY_SEARCH_URL, build_url
from activitysync.infrastructure.observability import (
    ProgressLog,
    log_context,
    logged,
)
from activitysync.infrastructure.persistence import read_json_default, write_json_path

DEFAULT_START = 0
DEFAULT_LIMIT = 20


class ActivityFetcher(Protocol):
    """Anything able to GET a URL and return the decoded JSON body."""

    async def fetch_json(self, url: str, hint: str = "") -> Any:
        ...


class RemoteResponseError(Exception):
    """Raised when the remote service returns an unexpected payload."""


@dataclass
class SyncResult:
    """Outcome of one sync cycle."""

    new_activities: list[Record]
    summary_path: Path
    summary_written: bool = False
    detail_paths: list[Path] = field(default_factory=list)


class ActivitySync:
    """Run sync cycles against one fetcher."""

    def __init__(
        self,
        fetcher: ActivityFetcher,
        *,
        log: ProgressLog | None = None,
        search_url: str = ACTIVITY_SEARCH_URL,
    ) -> None:
        self._fetcher = fetcher
        self._log = log or ProgressLog()
        self._search_url = search_url

    # -------------------- summary pagination --------------------
    @logged("Updating activities...", error="Updating activities failed: {error}")
    async def update_activities(
        self,
        parameters: Mapping[str, Any],
        old_activities: Sequence[Record] = (),
        pick: PickPolicy = PickAll(),
        finish: int | None = None,
    ) -> list[Record]:
        """Return the activities newer than ``old_activities[0]``, newest first.

        Pages of ``limit`` records are requested from ``start`` onwards. Paging
        stops on an empty page, when ``start`` reaches ``finish``, or at the
        first record matching the stored high-water mark; that record and the
        rest of its page are discarded.
        """
        high_water_mark = old_activities[0].get(ACTIVITY_ID) if old_activities else None
        query = {"start": DEFAULT_START, "limit": DEFAULT_LIMIT, **parameters}
        start, limit = int(query["start"]), int(query["limit"])
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")

        new_activities: list[Record] = []
        while finish is None or start < finish:
            page = await self._fetch_page({**query, "start": start, "limit": limit})
            if not page:
                break
            reached_known = False
            for activity in page:
                if high_water_mark is not None and activity.get(ACTIVITY_ID) == high_water_mark:
                    reached_known = True
                    break
                new_activities.append(pick(activity))
            if reached_known:
                break
            start += limit

        self._log.info("Activities updated, got %d new activities.", len(new_activities))
        return new_activities

    async def _fetch_page(self, query: Mapping[str, Any]) -> list[Record]:
        url = build_url(self._search_url, query)
        page = await self._fetcher.fetch_json(url)
        if not isinstance(page, list):
            raise RemoteResponseError(
                f"Expected a list of activities from {url}, got {type(page).__name__}"
            )
        return page

    # -------------------- persistence --------------------
    @logged("Reading {args[0]}...", "{args[0]} read.")
    async def read_activities(self, path: Path) -> list[Record]:
        data = await asyncio.to_thread(read_json_default, path, [])
        return validate_activities(data, path)

    @logged("Writing {args[0]}...", "{args[0]} written.")
    async def write_activities(self, path: Path, activities: list[Record]) -> Path:
        return await asyncio.to_thread(write_json_path, path, activities)

    @logged("Writing {args[0]}...", "{args[0]} written.")
    async def write_details(self, path: Path, details: Any) -> Path:
        return await asyncio.to_thread(write_json_path, path, details)

    # -------------------- detail fan-out --------------------
    async def fetch_details(
        self,
        activities: Sequence[Record],
        descriptor: FetchConfig,
        env: Mapping[str, Any],
        default_policy: str = "all",
    ) -> list[Path]:
        """Fetch, project and write one detail document per activity."""
        resolve_url = compile_template(descriptor.url)
        resolve_path = compile_template(descriptor.path)
        pick = descriptor.pick_policy(default_policy)
        total = len(activities)

        async def fetch_one(position: int, activity: Record) -> Path:
            data = {**env, **activity}
            hint = f"({position} of {total})" if total > 1 else ""
            details = await self._fetcher.fetch_json(resolve_url(data), hint)
            return await self.write_details(Path(resolve_path(data)), pick(details))

        with log_context(descriptor=descriptor.label):
            return list(
                await asyncio.gather(
                    *(fetch_one(position, activity)
                      for position, activity in enumerate(activities, start=1))
                )
            )

    async def fetch_details_all(
        self,
        activities: Sequence[Record],
        descriptors: Sequence[FetchConfig],
        env: Mapping[str, Any],
        default_policy: str = "all",
    ) -> list[Path]:
        if not descriptors:
            return []
        return await self._fetch_details_all(activities, descriptors, env, default_policy)

    @logged("Fetching activity details...", "Activity details fetched.")
    async def _fetch_details_all(
        self,
        activities: Sequence[Record],
        descriptors: Sequence[FetchConfig],
        env: Mapping[str, Any],
        default_policy: str,
    ) -> list[Path]:
        batches = await asyncio.gather(
            *(self.fetch_details(activities, descriptor, env, default_policy)
              for descriptor in descriptors)
        )
        return [path for batch in batches for path in batch]

    # -------------------- full cycle --------------------
    async def update_all(
        self,
        activities: ActivitiesConfig,
        env: Mapping[str, Any],
        default_policy: str = "all",
    ) -> SyncResult:
        """Run one sync cycle.

        The summary write and the detail fan-out run concurrently; the first
        failure propagates and fails the cycle. When no new activity is found
        neither runs.
        """
        search = activities.search
        parameters = search.parameters.as_query()
        summary_path = Path(evaluate_template(search.path, {**env, **parameters}))

        old_activities = await self.read_activities(summary_path)
        new_activities = await self.update_activities(
            parameters,
            old_activities,
            search.pick_policy(default_policy),
            search.finish,
        )
        if not new_activities:
            return SyncResult(new_activities=[], summary_path=summary_path)

        _, detail_paths = await asyncio.gather(
            self.write_activities(summary_path, new_activities + old_activities),
            self.fetch_details_all(new_activities, activities.fetch, env, default_policy),
        )
        return SyncResult(
            new_activities=new_activities,
            summary_path=summary_path,
            summary_written=True,
            detail_paths=detail_paths,
        )


__all__ = [
    "ActivityFetcher",
    "ActivitySync",
    "RemoteResponseError",
    "SyncResult",
]
