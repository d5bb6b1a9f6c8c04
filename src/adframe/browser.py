"""Shared headless browser session.

One Chromium process is launched lazily and reused by every request. Each
request gets its own browser context and page through :meth:`BrowserSession.page`,
which always tears both down on exit.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from playwright.async_api import Browser, Page, Playwright, Route, async_playwright
from playwright.async_api import Error as PlaywrightError

from .logging import jlog
from .models import DESKTOP, MOBILE
from .playwright import chromium_launch_args, close_quietly

DESKTOP_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)
MOBILE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) "
    "Version/17.0 Mobile/15E148 Safari/604.1"
)
BLOCKED_RESOURCE_TYPES = frozenset({"media", "font"})
LAUNCH_TIMEOUT_MS = 30000


@dataclass(frozen=True)
class DeviceProfile:
    width: int
    height: int
    user_agent: str
    is_mobile: bool = False
    has_touch: bool = False


DEVICE_PROFILES: dict[str, DeviceProfile] = {
    DESKTOP: DeviceProfile(1440, 900, DESKTOP_UA),
    MOBILE: DeviceProfile(390, 844, MOBILE_UA, is_mobile=True, has_touch=True),
}


async def _block_heavy_resources(route: Route) -> None:
    if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
        await route.abort()
    else:
        await route.continue_()


class BrowserSession:
    """Lazily launched, reconnect-on-disconnect Chromium shared across requests."""

    def __init__(self, *, headless: bool = True, executable_path: str | None = None) -> None:
        self.headless = headless
        self.executable_path = executable_path or os.getenv("CHROMIUM_EXECUTABLE_PATH") or None
        self._pw: Playwright | None = None
        self._browser: Browser | None = None
        self._lock: asyncio.Lock | None = None

    @property
    def connected(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    async def browser(self) -> Browser:
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            if self.connected:
                return self._browser  # type: ignore[return-value]
            if self._pw is None:
                self._pw = await async_playwright().start()
            kwargs: dict[str, Any] = {
                "headless": self.headless,
                "args": chromium_launch_args(),
                "timeout": LAUNCH_TIMEOUT_MS,
            }
            if self.executable_path:
                kwargs["executable_path"] = self.executable_path
            browser = await self._pw.chromium.launch(**kwargs)
            browser.on("disconnected", self._on_disconnected)
            self._browser = browser
            jlog("info", event="browser_launched", version=browser.version)
            return browser

    def _on_disconnected(self, browser: Browser) -> None:
        if self._browser is browser:
            self._browser = None
        jlog("warning", event="browser_disconnected")

    @asynccontextmanager
    async def page(
        self,
        device: str = DESKTOP,
        *,
        viewport: dict[str, int] | None = None,
        block_resources: bool = True,
    ) -> AsyncIterator[Page]:
        """Yield a fresh page in its own context; both are closed on exit."""

        profile = DEVICE_PROFILES[device]
        options: dict[str, Any] = {
            "viewport": viewport or {"width": profile.width, "height": profile.height},
            "user_agent": profile.user_agent,
            "is_mobile": profile.is_mobile,
            "has_touch": profile.has_touch,
            "device_scale_factor": 1,
        }
        browser = await self.browser()
        try:
            context = await browser.new_context(**options)
        except PlaywrightError as exc:
            # the process may have died between the connectivity check and here
            jlog("warning", event="browser_restarted", reason=str(exc))
            self._browser = None
            browser = await self.browser()
            context = await browser.new_context(**options)
        page = None
        try:
            if block_resources:
                await context.route("**/*", _block_heavy_resources)
            page = await context.new_page()
            yield page
        finally:
            await close_quietly(page, context)

    async def close(self) -> None:
        browser, self._browser = self._browser, None
        await close_quietly(browser)
        if self._pw is not None:
            pw, self._pw = self._pw, None
            try:
                await pw.stop()
            except Exception as exc:
                jlog("debug", event="playwright_stop_failed", error=str(exc))


__all__ = ["DEVICE_PROFILES", "BrowserSession", "DeviceProfile"]
