"""Render an HTML/script ad tag in an isolated page and clip it to the ad size."""

from __future__ import annotations

import re
import urllib.parse

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from .browser import BrowserSession
from .config import DEFAULT_TAG_RENDER_TIMEOUT_MS
from .logging import jlog
from .models import DESKTOP

TAG_IFRAME = "iframe"
TAG_SCRIPT = "script"
TAG_HTML = "html"

_IFRAME_SRC_RE = re.compile(r"""<iframe[^>]+src\s*=\s*["']([^"']+)["']""", re.IGNORECASE)
_SCRIPT_RE = re.compile(r"<script[\s>]", re.IGNORECASE)

IFRAME_SETTLE_MS = 2000
SCRIPT_SETTLE_MS = 3000
HTML_SETTLE_MS = 2000
MIN_VISIBLE_PX = 10

_HAS_CONTENT_JS = """
(minPx) => {
    const body = document.body;
    if (!body) return false;
    for (const child of body.querySelectorAll('img, canvas, video, svg, div, iframe')) {
        const rect = child.getBoundingClientRect();
        if (rect.width > minPx && rect.height > minPx) return true;
    }
    return false;
}
"""


def classify_tag(tag: str) -> tuple[str, str | None]:
    """Return ``(kind, iframe_src)`` where kind is iframe, script or html."""

    trimmed = tag.strip()
    m = _IFRAME_SRC_RE.search(trimmed)
    if m:
        return TAG_IFRAME, m.group(1)
    if _SCRIPT_RE.search(trimmed):
        return TAG_SCRIPT, None
    return TAG_HTML, None


def creative_document(tag: str, width: int, height: int) -> str:
    """Wrap a tag in a minimal document sized exactly to the ad."""

    return (
        "<!DOCTYPE html>\n"
        '<html><head><meta charset="utf-8">\n'
        f"<style>*{{margin:0;padding:0;box-sizing:border-box}}"
        f"body{{width:{width}px;height:{height}px;overflow:hidden;background:#fff}}</style>\n"
        "</head><body>\n"
        f'<div id="ad" style="width:{width}px;height:{height}px;overflow:hidden;">{tag}</div>\n'
        "</body></html>"
    )


class TagRenderer:
    """Tag renders never raise: any failure yields ``None`` so callers fall back to a placeholder."""

    def __init__(self, session: BrowserSession, *, timeout_ms: int = DEFAULT_TAG_RENDER_TIMEOUT_MS) -> None:
        self.session = session
        self.timeout_ms = timeout_ms

    async def render(self, tag: str, width: int, height: int) -> bytes | None:
        kind, src = classify_tag(tag)
        try:
            async with self.session.page(
                DESKTOP,
                viewport={"width": width + 20, "height": height + 20},
                block_resources=False,
            ) as page:
                return await self._render(page, tag, kind, src, width, height)
        except PlaywrightError as exc:
            jlog("warning", event="tag_render_failed", kind=kind, error=str(exc))
            return None

    async def _render(self, page: Page, tag: str, kind: str, src: str | None, width: int, height: int) -> bytes | None:
        if kind == TAG_IFRAME and src:
            jlog("info", event="tag_render", kind=kind, src=src[:80])
            await page.goto(src, wait_until="networkidle", timeout=self.timeout_ms)
            await page.wait_for_timeout(IFRAME_SETTLE_MS)
        elif kind == TAG_SCRIPT:
            jlog("info", event="tag_render", kind=kind)
            data_url = "data:text/html;charset=utf-8," + urllib.parse.quote(creative_document(tag, width, height))
            await page.goto(data_url, wait_until="networkidle", timeout=self.timeout_ms)
            await page.wait_for_timeout(SCRIPT_SETTLE_MS)
        else:
            jlog("info", event="tag_render", kind=kind)
            await page.set_content(creative_document(tag, width, height), wait_until="networkidle", timeout=self.timeout_ms)
            await page.wait_for_timeout(HTML_SETTLE_MS)
        if kind != TAG_IFRAME and not await page.evaluate(_HAS_CONTENT_JS, MIN_VISIBLE_PX):
            jlog("warning", event="tag_render_failed", kind=kind, error="no visible content")
            return None
        return await page.screenshot(type="png", clip={"x": 0, "y": 0, "width": width, "height": height})


__all__ = ["TAG_HTML", "TAG_IFRAME", "TAG_SCRIPT", "TagRenderer", "classify_tag", "creative_document"]
