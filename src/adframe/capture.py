"""Page capture: navigation with a relaxed retry, lazy-load trigger, full-page raster."""

from __future__ import annotations

from dataclasses import dataclass

from playwright.async_api import Error as PlaywrightError

from .automation import PageAutomation
from .config import Timeouts
from .errors import PageLoadTimeout
from .logging import jlog
from .models import PageDimensions
from .playwright import error_line

SCROLL_STEP_PX = 400
SCROLL_INTERVAL_MS = 150
SCROLL_MAX_PX = 8000
SETTLE_AFTER_SCROLL_MS = 1000


@dataclass(frozen=True)
class Capture:
    screenshot: bytes
    dimensions: PageDimensions


async def load_page(automation: PageAutomation, url: str, timeouts: Timeouts) -> str:
    """Navigate to ``url``; returns the wait condition that finally succeeded.

    Full network idle is tried first. On failure the load is retried once with
    the looser ``domcontentloaded`` condition before giving up.
    """

    try:
        await automation.navigate(url, wait_until="networkidle", timeout_ms=timeouts.navigation_ms)
        return "networkidle"
    except PlaywrightError as exc:
        jlog("warning", event="navigation_retry", url=url, error=error_line(exc))
    try:
        await automation.navigate(url, wait_until="domcontentloaded", timeout_ms=timeouts.retry_ms)
        return "domcontentloaded"
    except PlaywrightError as exc:
        raise PageLoadTimeout(url, str(exc)) from exc


async def settle_lazy_content(automation: PageAutomation) -> None:
    """Scroll through the page to trigger lazy loading, then return to the top."""

    await automation.auto_scroll(step_px=SCROLL_STEP_PX, interval_ms=SCROLL_INTERVAL_MS, max_px=SCROLL_MAX_PX)
    await automation.scroll_to(0)
    await automation.wait(SETTLE_AFTER_SCROLL_MS)


async def take_capture(automation: PageAutomation) -> Capture:
    await automation.scroll_to(0)
    screenshot = await automation.screenshot()
    dimensions = await automation.dimensions()
    return Capture(screenshot=screenshot, dimensions=dimensions)


__all__ = ["Capture", "load_page", "settle_lazy_content", "take_capture"]
