"""Browser session used to reach the remote activity service.

All remote calls run inside a real Chromium page so the session cookies set by
the login flow apply. JSON endpoints are fetched with ``fetch()`` from the page
context. Those requests carry a ``queued`` marker header that the route
handler intercepts to pace them through the shared
:class:`~activitysync.services.sync.throttle.RequestThrottle`; the marker
headers are stripped before the request leaves the browser.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TYPE_CHECKING, Any

from playwright.async_api import (
    Browser,
    Page,
    Playwright,
    Response,
    Route,
    async_playwright,
)

from activitysync.infrastructure.http import SIGNIN_URL
from activitysync.infrastructure.observability import ProgressLog, logged

if TYPE_CHECKING:
    from activitysync.app.config import Credentials
    from activitysync.services.sync.throttle import RequestThrottle

QUEUED_HEADER = "queued"
HINT_HEADER = "hint"

LOGIN_FRAME_SELECTOR = "#gauth-widget-frame-gauth-widget"
USERNAME_SELECTOR = "#username"
PASSWORD_SELECTOR = "#password"
REMEMBER_SELECTOR = "#login-remember"
SUBMIT_SELECTOR = "#login-btn-signin"

_FETCH_JSON_SCRIPT = """
async ([url, hint]) => {
    const response = await fetch(url, {
        headers: { queued: 'true', hint }
    });
    return await response.json();
}
"""


class AuthenticationError(Exception):
    """Raised when the sign-in flow does not succeed."""


class BrowserSession:
    """A single Chromium page shared by every remote call of a run."""

    def __init__(
        self,
        page: Page,
        *,
        throttle: RequestThrottle,
        log: ProgressLog | None = None,
        browser: Browser | None = None,
        playwright: Playwright | None = None,
    ) -> None:
        self._page = page
        self._throttle = throttle
        self._log = log or ProgressLog()
        self._browser = browser
        self._playwright = playwright
        self._tasks: set[asyncio.Future[Any]] = set()

    @classmethod
    async def launch(
        cls,
        throttle: RequestThrottle,
        launch_options: dict[str, Any] | None = None,
        log: ProgressLog | None = None,
    ) -> "BrowserSession":
        """Start Chromium, open a page and install the pacing route handler."""
        log = log or ProgressLog()
        log.info("Launching browser...")
        playwright = await async_playwright().start()
        try:
            browser = await playwright.chromium.launch(**(launch_options or {}))
            page = await browser.new_page()
        except Exception:
            await playwright.stop()
            raise
        session = cls(
            page, throttle=throttle, log=log, browser=browser, playwright=playwright
        )
        await page.route("**/*", session.handle_route)
        log.info("Browser launched.")
        return session

    @property
    def page(self) -> Page:
        return self._page

    # -------------------- request interception --------------------
    async def handle_route(self, route: Route) -> None:
        """Continue unmarked requests; queue marked ones on the throttle."""
        request = route.request
        headers = await request.all_headers()
        if QUEUED_HEADER not in headers:
            await route.continue_()
            return

        hint = headers.pop(HINT_HEADER, "")
        headers.pop(QUEUED_HEADER, None)
        url = request.url

        def dispatch() -> None:
            self._log.info("Fetching %s%s...", url, f" {hint}" if hint else "")
            self._spawn(route.continue_(headers=headers))

        def cancel() -> None:
            self._spawn(route.abort())

        self._throttle.enqueue(dispatch, cancel)

    def _spawn(self, awaitable: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # -------------------- page helpers --------------------
    async def navigate(self, url: str, wait_until: str = "networkidle") -> Response | None:
        return await self._page.goto(url, wait_until=wait_until)

    async def fetch_json(self, url: str, hint: str = "") -> Any:
        """GET ``url`` from the page context, paced by the throttle."""
        result = await self._page.evaluate(_FETCH_JSON_SCRIPT, [url, hint])
        self._log.info("%s fetched.", url)
        return result

    # -------------------- authentication --------------------
    async def signin(self, credentials: Credentials, remember: bool = False) -> None:
        """Sign in through the login widget.

        Raises:
            AuthenticationError: If the form is missing or the login response
                is not successful.
        """
        self._log.info("Signing in as %s...", credentials.username)
        await self.navigate(SIGNIN_URL)

        element = await self._page.query_selector(LOGIN_FRAME_SELECTOR)
        frame = await element.content_frame() if element is not None else None
        if frame is None:
            raise AuthenticationError("Sign in form not found")

        await frame.fill(USERNAME_SELECTOR, credentials.username)
        await frame.fill(PASSWORD_SELECTOR, credentials.password)
        if remember:
            await frame.click(REMEMBER_SELECTOR)

        async with self._page.expect_navigation(wait_until="networkidle"):
            async with frame.expect_navigation(wait_until="networkidle") as navigation:
                await frame.click(SUBMIT_SELECTOR)
            response = await navigation.value
            if response is None or not response.ok:
                status = response.status if response is not None else "none"
                raise AuthenticationError(f"Sign in failed, response code: {status}")
        self._log.info("Signed in.")

    # -------------------- shutdown --------------------
    @logged("Closing browser...", "Browser closed.")
    async def close(self) -> None:
        # Pending continue/abort calls settle before the browser goes away.
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
            self._tasks.clear()
        if self._browser is not None:
            await self._browser.close()
        if self._playwright is not None:
            await self._playwright.stop()


__all__ = ["AuthenticationError", "BrowserSession", "HINT_HEADER", "QUEUED_HEADER"]
