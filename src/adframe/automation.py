"""Typed page-automation interface.

Detection and injection only talk to a :class:`PageAutomation`: discrete
operations such as collect-slots, inspect, replace-iframe, insert-creative and
measure. :class:`PlaywrightAutomation` implements them against a live page; the
test-suite implements them against an in-memory DOM model.
"""

from __future__ import annotations

from typing import Any, Protocol

from playwright.async_api import Page

from .config import DEFAULT_LIMITS, DetectionLimits
from .models import ElementState, PageDimensions, Rect
from .playwright import wait_assets_ready

SLOT_ATTR = "data-adframe-slot"

KNOWN_AD_SELECTORS = [
    '[id*="ad-"][id*="container"]',
    '[id*="ad_"][id*="container"]',
    '[class*="ad-"][class*="container"]',
    '[class*="ad_"][class*="container"]',
    '[id*="ad-slot"]',
    '[class*="ad-slot"]',
    '[class*="adslot"]',
    "[data-ad]",
    "[data-ad-slot]",
    "[data-google-query-id]",
    '[id*="billboard"]',
    '[id*="leaderboard"]',
    '[id*="skyscraper"]',
    '[class*="billboard"]',
    '[class*="leaderboard"]',
    '[class*="skyscraper"]',
    ".ad-wrapper",
    ".ad-container",
    ".ad-unit",
    ".ad-placement",
    "ins.adsbygoogle",
    '[id^="google_ads_"]',
    '[id*="iqadtile"]',
    '[class*="iqadtile"]',
    '[id*="adtile"]',
    '[class*="adtile"]',
    '[id^="pb-slot"]',
]

AD_NETWORK_HINTS = [
    "doubleclick",
    "googlesyndication",
    "googleadservices",
    "amazon-adsystem",
    "flashtalking",
    "adform",
    "adnxs",
    "criteo",
    "rubiconproject",
    "pubmatic",
    "smartadserver",
    "yieldlab",
    "adserver",
    "adservice",
]

# Token-level ad naming hints; plain substrings like "ad" would match "header" or "shadow".
AD_HINT_PATTERN = (
    r"(^|[^a-z0-9])(ad|ads|advert|advertisement|banner|gpt|sponsor|sponsored|anzeige|werbung)([^a-z0-9]|$)"
    r"|ad[-_]?slot|ad[-_]?unit|adtile|div-gpt-ad|doubleclick|googlesyndication|adform"
    r"|billboard|leaderboard|skyscraper"
)

_PRELUDE = """
    const hint = new RegExp(opts.hintPattern, 'i');
    const attr = opts.attr;
    const naming = (el) => [
        el.id || '',
        typeof el.className === 'string' ? el.className : (el.getAttribute('class') || ''),
        el.getAttribute('aria-label') || '',
    ].join(' ').toLowerCase();
    const frameSource = (el) => (el.getAttribute('src') || el.getAttribute('data-src') || '').toLowerCase();
    const networkHit = (src) => (opts.networkHints || []).some(n => src.includes(n));
    const visibleStyle = (el) => {
        const style = window.getComputedStyle(el);
        if (style.display === 'none' || style.visibility === 'hidden') return false;
        let node = el;
        for (let depth = 0; node && depth < 12; depth++, node = node.parentElement) {
            const op = parseFloat(window.getComputedStyle(node).opacity);
            if (!Number.isNaN(op) && op < 0.05) return false;
        }
        return true;
    };
    const describe = (el) => {
        const rect = el.getBoundingClientRect();
        const isFrame = el.tagName === 'IFRAME';
        const vw = window.innerWidth, vh = window.innerHeight;
        const visW = Math.max(0, Math.min(rect.right, vw) - Math.max(rect.left, 0));
        const visH = Math.max(0, Math.min(rect.bottom, vh) - Math.max(rect.top, 0));
        const area = rect.width * rect.height;
        const text = isFrame ? '' : (el.innerText || '').replace(/\\s+/g, ' ').trim();
        return {
            tag: el.tagName.toLowerCase(),
            x: Math.round(rect.left + window.scrollX),
            y: Math.round(rect.top + window.scrollY),
            width: Math.round(rect.width),
            height: Math.round(rect.height),
            visible: visibleStyle(el) && rect.width >= 2 && rect.height >= 2,
            viewport_fraction: area > 0 ? (visW * visH) / area : 0,
            text_length: text.length,
            heading_count: isFrame ? 0 : el.querySelectorAll('h1, h2, h3, h4, h5, h6').length + (/^H[1-6]$/.test(el.tagName) ? 1 : 0),
            paragraph_count: isFrame ? 0 : el.querySelectorAll('p').length,
            in_article: !!el.closest('article, main, [role="main"]'),
            ad_hint: hint.test(naming(el)) || (isFrame && (networkHit(frameSource(el)) || hint.test(frameSource(el)))),
        };
    };
    const findSlot = (slotId) => {
        const matches = document.querySelectorAll('[' + attr + '="' + CSS.escape(slotId) + '"]');
        return matches.length === 1 ? matches[0] : null;
    };
"""

COLLECT_SLOTS_JS = (
    "(opts) => {"
    + _PRELUDE
    + """
    const seqKey = '__adframeSlotSeq';
    const slotId = (el) => {
        let id = el.getAttribute(attr);
        if (id && document.querySelectorAll('[' + attr + '="' + CSS.escape(id) + '"]').length === 1) return id;
        do {
            window[seqKey] = (window[seqKey] || 0) + 1;
            id = 'adframe-slot-' + window[seqKey];
        } while (document.querySelector('[' + attr + '="' + id + '"]'));
        el.setAttribute(attr, id);
        return id;
    };
    const out = [];
    const push = (el, kind, adLikely) => {
        out.push(Object.assign(describe(el), { slot_id: slotId(el), kind, ad_likely: !!adLikely }));
    };

    for (const frame of document.querySelectorAll('iframe')) {
        const rect = frame.getBoundingClientRect();
        const w = rect.width || parseInt(frame.getAttribute('width'), 10) || 0;
        const h = rect.height || parseInt(frame.getAttribute('height'), 10) || 0;
        if (w < opts.minIframe || h < opts.minIframe) continue;
        const src = frameSource(frame);
        push(frame, 'iframe', networkHit(src) || hint.test(src) || hint.test(naming(frame)));
    }

    for (const sel of opts.knownSelectors) {
        let els;
        try {
            els = document.querySelectorAll(sel);
        } catch (e) {
            continue;
        }
        for (const el of els) {
            const rect = el.getBoundingClientRect();
            if (rect.width < 50 || rect.height < 30) continue;
            push(el, 'known-ad-div', true);
        }
    }

    for (const el of document.querySelectorAll('[id^="div-gpt-ad"]')) {
        const rect = el.getBoundingClientRect();
        if (rect.width < 50 || rect.height < 10) continue;
        push(el, 'gpt-div', true);
    }

    const tolW = Math.max(opts.tolerancePx, opts.tw * opts.toleranceRatio);
    const tolH = Math.max(opts.tolerancePx, opts.th * opts.toleranceRatio);
    const nodes = document.querySelectorAll('div, section, aside, ins, figure');
    const limit = Math.min(nodes.length, opts.scanCap);
    for (let i = 0; i < limit; i++) {
        const el = nodes[i];
        const rect = el.getBoundingClientRect();
        if (Math.abs(rect.width - opts.tw) > tolW || Math.abs(rect.height - opts.th) > tolH) continue;
        const label = (el.innerText || '').trim();
        const contentHint = !!el.querySelector('iframe, ins.adsbygoogle, [data-ad-slot], [data-google-query-id]')
            || (label.length <= 30 && /^(advertisement|anzeige|werbung|ad|ads|sponsored)\\b/i.test(label));
        push(el, 'size-matched-generic', hint.test(naming(el)) || contentHint);
    }
    return out;
}"""
)

INSPECT_SLOT_JS = (
    "(opts) => {"
    + _PRELUDE
    + """
    const el = findSlot(opts.slotId);
    if (!el) return null;
    return Object.assign(describe(el), { slot_id: opts.slotId });
}"""
)

REPLACE_IFRAME_JS = (
    "(opts) => {"
    + _PRELUDE
    + """
    const el = findSlot(opts.slotId);
    if (!el || el.tagName !== 'IFRAME') return false;
    const rect = el.getBoundingClientRect();
    const cs = window.getComputedStyle(el);
    const div = document.createElement('div');
    div.setAttribute(attr, opts.slotId);
    if (el.id) div.id = el.id;
    if (el.className) div.className = el.className;
    div.style.width = Math.round(rect.width) + 'px';
    div.style.height = Math.round(rect.height) + 'px';
    div.style.display = cs.display === 'inline' ? 'inline-block' : cs.display;
    div.style.margin = cs.margin;
    div.style.verticalAlign = cs.verticalAlign;
    el.replaceWith(div);
    return true;
}"""
)

_PREPARE_SLOT = """
    const el = findSlot(opts.slotId);
    if (!el) return false;
    while (el.firstChild) el.removeChild(el.firstChild);
    if (window.getComputedStyle(el).position === 'static') el.style.position = 'relative';
    el.style.display = 'block';
    el.style.overflow = 'hidden';
    el.style.width = opts.width + 'px';
    el.style.height = opts.height + 'px';
    el.style.minHeight = '0';
    el.style.maxWidth = 'none';
"""

INSERT_IMAGE_JS = (
    "(opts) => {"
    + _PRELUDE
    + _PREPARE_SLOT
    + """
    const img = document.createElement('img');
    img.src = opts.src;
    img.alt = 'Advertisement';
    img.style.cssText = 'display:block;width:100%;height:100%;object-fit:fill;border:0;margin:0;padding:0;';
    el.appendChild(img);
    return true;
}"""
)

INSERT_TAG_JS = (
    "(opts) => {"
    + _PRELUDE
    + _PREPARE_SLOT
    + """
    const frame = document.createElement('iframe');
    frame.setAttribute('data-adframe-creative', '1');
    frame.setAttribute('sandbox', 'allow-scripts allow-same-origin');
    frame.setAttribute('scrolling', 'no');
    frame.width = String(opts.width);
    frame.height = String(opts.height);
    frame.style.cssText = 'display:block;width:100%;height:100%;border:0;margin:0;padding:0;';
    frame.__adframeLoaded = new Promise(res => frame.addEventListener('load', () => res(true), { once: true }));
    frame.srcdoc = opts.html;
    el.appendChild(frame);
    return true;
}"""
)

ADD_BADGE_JS = (
    "(opts) => {"
    + _PRELUDE
    + """
    const el = findSlot(opts.slotId);
    if (!el) return false;
    const badge = document.createElement('span');
    badge.textContent = 'AD';
    badge.setAttribute('data-adframe-badge', '1');
    badge.style.cssText = 'position:absolute;top:0;right:0;z-index:2147483647;pointer-events:none;'
        + 'background:#FF6B35;color:#fff;font:bold 10px/14px Arial,sans-serif;padding:0 4px;';
    el.appendChild(badge);
    return true;
}"""
)

WAIT_CREATIVE_JS = (
    "(opts) => {"
    + _PRELUDE
    + """
    const el = findSlot(opts.slotId);
    const frame = el && el.querySelector('iframe[data-adframe-creative]');
    if (!frame || !frame.__adframeLoaded) return false;
    return Promise.race([
        frame.__adframeLoaded,
        new Promise(res => setTimeout(() => res(false), opts.timeoutMs)),
    ]);
}"""
)

MEASURE_JS = (
    "(opts) => {"
    + _PRELUDE
    + """
    const el = findSlot(opts.slotId);
    if (!el) return null;
    const rect = el.getBoundingClientRect();
    return {
        x: Math.round(rect.left + window.scrollX),
        y: Math.round(rect.top + window.scrollY),
        width: Math.round(rect.width),
        height: Math.round(rect.height),
    };
}"""
)

AUTO_SCROLL_JS = """
(opts) => new Promise((resolve) => {
    let total = 0;
    const timer = setInterval(() => {
        const scrollHeight = document.documentElement.scrollHeight;
        window.scrollBy(0, opts.step);
        total += opts.step;
        if (total >= scrollHeight || total > opts.maxPx) {
            clearInterval(timer);
            resolve(total);
        }
    }, opts.intervalMs);
})
"""

DIMENSIONS_JS = """
() => ({
    width: document.documentElement.scrollWidth,
    height: document.documentElement.scrollHeight,
    viewport_height: window.innerHeight,
})
"""


class PageAutomation(Protocol):
    """Discrete page operations used by capture, detection and injection."""

    async def navigate(self, url: str, *, wait_until: str, timeout_ms: int) -> None: ...

    async def auto_scroll(self, *, step_px: int = 400, interval_ms: int = 150, max_px: int = 8000) -> None: ...

    async def scroll_to(self, y: int) -> None: ...

    async def wait(self, ms: int) -> None: ...

    async def viewport_height(self) -> int: ...

    async def collect_slots(self, target_width: int, target_height: int, limits: DetectionLimits) -> list[dict[str, Any]]: ...

    async def inspect(self, slot_id: str) -> ElementState | None: ...

    async def replace_iframe(self, slot_id: str) -> bool: ...

    async def insert_image(self, slot_id: str, src: str, width: int, height: int) -> bool: ...

    async def insert_tag(self, slot_id: str, html: str, width: int, height: int) -> bool: ...

    async def add_badge(self, slot_id: str) -> bool: ...

    async def wait_for_creative(self, slot_id: str, timeout_ms: int) -> bool: ...

    async def measure(self, slot_id: str) -> Rect | None: ...

    async def screenshot(self) -> bytes: ...

    async def dimensions(self) -> PageDimensions: ...

    async def settle_assets(self, timeout_ms: int = 5000) -> None: ...


class PlaywrightAutomation:
    """:class:`PageAutomation` backed by a live Playwright page."""

    def __init__(self, page: Page, *, known_selectors: list[str] | None = None) -> None:
        self.page = page
        self.known_selectors = known_selectors if known_selectors is not None else KNOWN_AD_SELECTORS

    def _opts(self, **extra: Any) -> dict[str, Any]:
        return {"attr": SLOT_ATTR, "hintPattern": AD_HINT_PATTERN, "networkHints": AD_NETWORK_HINTS, **extra}

    async def navigate(self, url: str, *, wait_until: str, timeout_ms: int) -> None:
        await self.page.goto(url, wait_until=wait_until, timeout=timeout_ms)

    async def auto_scroll(self, *, step_px: int = 400, interval_ms: int = 150, max_px: int = 8000) -> None:
        await self.page.evaluate(AUTO_SCROLL_JS, {"step": step_px, "intervalMs": interval_ms, "maxPx": max_px})

    async def scroll_to(self, y: int) -> None:
        await self.page.evaluate("(y) => window.scrollTo(0, y)", y)

    async def wait(self, ms: int) -> None:
        await self.page.wait_for_timeout(ms)

    async def viewport_height(self) -> int:
        return int(await self.page.evaluate("() => window.innerHeight"))

    async def collect_slots(
        self,
        target_width: int,
        target_height: int,
        limits: DetectionLimits = DEFAULT_LIMITS,
    ) -> list[dict[str, Any]]:
        return await self.page.evaluate(
            COLLECT_SLOTS_JS,
            self._opts(
                tw=target_width,
                th=target_height,
                knownSelectors=self.known_selectors,
                scanCap=limits.scan_cap,
                minIframe=limits.min_iframe_px,
                tolerancePx=limits.tolerance_px,
                toleranceRatio=limits.tolerance_ratio,
            ),
        )

    async def inspect(self, slot_id: str) -> ElementState | None:
        record = await self.page.evaluate(INSPECT_SLOT_JS, self._opts(slotId=slot_id))
        return ElementState.from_record(record) if record else None

    async def replace_iframe(self, slot_id: str) -> bool:
        return bool(await self.page.evaluate(REPLACE_IFRAME_JS, self._opts(slotId=slot_id)))

    async def insert_image(self, slot_id: str, src: str, width: int, height: int) -> bool:
        return bool(
            await self.page.evaluate(INSERT_IMAGE_JS, self._opts(slotId=slot_id, src=src, width=width, height=height))
        )

    async def insert_tag(self, slot_id: str, html: str, width: int, height: int) -> bool:
        return bool(
            await self.page.evaluate(INSERT_TAG_JS, self._opts(slotId=slot_id, html=html, width=width, height=height))
        )

    async def add_badge(self, slot_id: str) -> bool:
        return bool(await self.page.evaluate(ADD_BADGE_JS, self._opts(slotId=slot_id)))

    async def wait_for_creative(self, slot_id: str, timeout_ms: int) -> bool:
        return bool(await self.page.evaluate(WAIT_CREATIVE_JS, self._opts(slotId=slot_id, timeoutMs=timeout_ms)))

    async def measure(self, slot_id: str) -> Rect | None:
        r = await self.page.evaluate(MEASURE_JS, self._opts(slotId=slot_id))
        if not r:
            return None
        return Rect(float(r["x"]), float(r["y"]), float(r["width"]), float(r["height"]))

    async def screenshot(self) -> bytes:
        return await self.page.screenshot(type="png", full_page=True)

    async def dimensions(self) -> PageDimensions:
        d = await self.page.evaluate(DIMENSIONS_JS)
        return PageDimensions(width=int(d["width"]), height=int(d["height"]), viewport_height=int(d["viewport_height"]))

    async def settle_assets(self, timeout_ms: int = 5000) -> None:
        await wait_assets_ready(self.page, timeout_ms)


__all__ = [
    "AD_HINT_PATTERN",
    "AD_NETWORK_HINTS",
    "KNOWN_AD_SELECTORS",
    "SLOT_ATTR",
    "PageAutomation",
    "PlaywrightAutomation",
]
