"""Debug artifact helpers for mockup runs."""

from __future__ import annotations

import os
from typing import Any

from playwright.async_api import Page

from .automation import SLOT_ATTR
from .logging import jlog

DEBUG_DIR = os.path.join(os.getenv("ADFRAME_OUTPUT_DIR", "output"), "debug")


def ensure_debug_dir() -> str:
    os.makedirs(DEBUG_DIR, exist_ok=True)
    return DEBUG_DIR


async def dump_page_html(page: Page, name: str) -> str | None:
    """Persist the current page HTML (best effort); returns the written path."""

    try:
        path = os.path.join(ensure_debug_dir(), f"page_{name}.html")
        html = await page.content()
        with open(path, "w", encoding="utf-8") as fh:
            fh.write(html)
        return path
    except Exception as exc:  # pragma: no cover - logging only
        jlog("error", event="debug_save_html_error", name=name, error=str(exc))
        return None


async def dump_slot_inventory(page: Page) -> list[dict[str, Any]]:
    """Describe every iframe and every element tagged with a slot id."""

    try:
        return await page.evaluate(
            """
            (attr) => {
              const out = [];
              const seen = new Set();
              const els = [...document.querySelectorAll('iframe'), ...document.querySelectorAll('[' + attr + ']')];
              for (const el of els) {
                if (seen.has(el)) continue;
                seen.add(el);
                const rect = el.getBoundingClientRect();
                out.push({
                  tag: el.tagName.toLowerCase(),
                  id: el.id || '',
                  slot: el.getAttribute(attr),
                  src: el.getAttribute('src') || '',
                  rect: { x: rect.x + window.scrollX, y: rect.y + window.scrollY, width: rect.width, height: rect.height },
                });
              }
              return out;
            }
            """,
            SLOT_ATTR,
        )
    except Exception as exc:
        jlog("warning", event="debug_slot_inventory_error", error=str(exc))
        return []


__all__ = ["DEBUG_DIR", "dump_page_html", "dump_slot_inventory", "ensure_debug_dir"]
