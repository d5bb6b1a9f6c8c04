"""Playwright helpers shared by the capture, consent and render stages."""

from __future__ import annotations

from playwright.async_api import ElementHandle, Page

from .errors import is_production
from .logging import jlog


async def element_is_visibly_displayed(handle: ElementHandle | None) -> bool:
    if not handle:
        return False
    try:
        return await handle.evaluate(
            """
            (el) => {
                if (!el) return false;
                const rect = el.getBoundingClientRect();
                if (rect.width <= 1 || rect.height <= 1) return false;
                const style = window.getComputedStyle(el);
                if (style.display === 'none' || style.visibility === 'hidden' || style.opacity === '0') {
                    return false;
                }
                return el.offsetHeight > 0;
            }
            """
        )
    except Exception:
        return False


async def wait_assets_ready(page: Page, timeout_ms: int = 5000) -> None:
    """Wait (bounded) for fonts and images to settle before taking screenshots."""

    try:
        await page.evaluate(
            """
            (timeoutMs) => Promise.race([
                new Promise(res => setTimeout(res, timeoutMs)),
                Promise.all([
                    (document.fonts && document.fonts.ready) ? document.fonts.ready : Promise.resolve(),
                    Promise.all(
                        Array.from(document.images || []).map(img => {
                            if (img.complete) return Promise.resolve();
                            return new Promise(res => {
                                img.addEventListener('load', () => res(), { once: true });
                                img.addEventListener('error', () => res(), { once: true });
                            });
                        })
                    )
                ])
            ])
            """,
            timeout_ms,
        )
    except Exception:
        pass


async def close_quietly(*resources) -> None:
    """Close pages, contexts or browsers, ignoring teardown errors."""

    for resource in resources:
        if resource is None:
            continue
        try:
            await resource.close()
        except Exception as exc:
            jlog("debug", event="close_failed", resource=type(resource).__name__, error=str(exc))


def error_line(exc: BaseException) -> str:
    """First line of a Playwright error; the rest is a call log."""

    text = str(exc)
    return text.splitlines()[0] if text else type(exc).__name__


CHROMIUM_LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-first-run",
    "--no-zygote",
    "--disable-extensions",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
]


def chromium_launch_args() -> list[str]:
    if is_production():
        return [*CHROMIUM_LAUNCH_ARGS, "--single-process"]
    return list(CHROMIUM_LAUNCH_ARGS)


__all__ = [
    "CHROMIUM_LAUNCH_ARGS",
    "chromium_launch_args",
    "close_quietly",
    "element_is_visibly_displayed",
    "error_line",
    "wait_assets_ready",
]
