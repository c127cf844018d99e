from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import asdict, dataclass
from typing import Any

from activitysync.app.config import AppConfig, Credentials, create_env
from activitysync.infrastructure.browser import BrowserSession
from activitysync.infrastructure.observability import (
    ProgressLog,
    get_logger,
    log_context,
    log_exception,
)
from activitysync.services.sync import ActivitySync, RequestThrottle, SyncResult

SessionFactory = Callable[
    [RequestThrottle, Mapping[str, Any], ProgressLog], Awaitable[BrowserSession]
]


async def launch_browser_session(
    throttle: RequestThrottle,
    launch_options: Mapping[str, Any],
    log: ProgressLog,
) -> BrowserSession:
    return await BrowserSession.launch(throttle, dict(launch_options), log)


@dataclass(frozen=True)
class SyncRunSummary:
    """Structured result for a sync execution."""

    status: str
    new_activities: int = 0
    summary_path: str | None = None
    summary_written: bool = False
    detail_files: int = 0
    error: str | None = None

    @classmethod
    def from_result(cls, result: SyncResult) -> "SyncRunSummary":
        return cls(
            status="success",
            new_activities=len(result.new_activities),
            summary_path=str(result.summary_path),
            summary_written=result.summary_written,
            detail_files=len(result.detail_paths),
        )

    def to_dict(self) -> dict[str, object]:
        payload = asdict(self)
        return {key: value for key, value in payload.items() if value is not None}


class SyncService:
    """Coordinate one sync run: browser, sign-in, sync cycle, shutdown."""

    def __init__(
        self,
        config: AppConfig,
        *,
        log: ProgressLog | None = None,
        session_factory: SessionFactory = launch_browser_session,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._config = config
        self._log = log or ProgressLog()
        self._session_factory = session_factory
        self._env = dict(env) if env is not None else None
        self._logger = get_logger(__name__)

    async def run_sync(
        self, credentials: Credentials, *, remember: bool = False
    ) -> SyncRunSummary:
        """Sign in and run one sync cycle.

        The throttle is cancelled and the browser closed whatever the outcome;
        failures are reported in the returned summary.
        """
        general = self._config.general
        env = self._env if self._env is not None else create_env(general)
        throttle = RequestThrottle(general.request_delay_seconds)

        with log_context(user=credentials.username):
            try:
                session = await self._session_factory(
                    throttle, self._config.browser.launch_options, self._log
                )
                try:
                    await session.signin(credentials, remember=remember)
                    engine = ActivitySync(session, log=self._log)
                    result = await engine.update_all(
                        self._config.activities, env, general.default_pick_policy
                    )
                finally:
                    throttle.cancel()
                    await session.close()
            except Exception as exc:
                log_exception(self._logger, "Sync failed", exc)
                return SyncRunSummary(status="error", error=str(exc))

        summary = SyncRunSummary.from_result(result)
        self._logger.debug("Sync finished: %s", summary.to_dict())
        return summary


__all__ = ["SessionFactory", "SyncRunSummary", "SyncService", "launch_browser_session"]
