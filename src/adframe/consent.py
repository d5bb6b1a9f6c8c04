"""Consent banner handling for European publisher sites.

Layers run in order: pre-seeded consent cookies, container-aware CMP strategies,
shadow-DOM hosts, brute-force selector and text clicks, and finally forced
removal of whatever overlay is left. Every step is best effort.
"""

from __future__ import annotations

import urllib.parse
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from playwright.async_api import BrowserContext, Page

from .logging import jlog
from .playwright import element_is_visibly_displayed
from .strategies import Outcome, first_success

UTC = getattr(datetime, "UTC", timezone.utc)

INITIAL_SETTLE_MS = 2000


@dataclass(frozen=True)
class CmpStrategy:
    name: str
    container: str
    accept: tuple[str, ...]
    shadow: bool = False
    frames: bool = False


CMP_STRATEGIES = [
    CmpStrategy("OneTrust", "#onetrust-banner-sdk", ("#onetrust-accept-btn-handler",)),
    CmpStrategy("Didomi", "#didomi-host", ("#didomi-notice-agree-button",)),
    CmpStrategy(
        "SourcePoint",
        "[id^='sp_message_container']",
        ("button[title='Agree']", "button[title='Akzeptieren']", "button.sp_choice_type_11"),
        frames=True,
    ),
    CmpStrategy("Cookiebot", "#CybotCookiebotDialog", ("#CybotCookiebotDialogBodyLevelButtonLevelOptinAllowAll",)),
    CmpStrategy(
        "Usercentrics",
        "#usercentrics-root",
        ("button[data-testid='uc-accept-all-button']", "#uc-btn-accept-banner", ".uc-list-button__accept-all"),
        shadow=True,
    ),
    CmpStrategy("Quantcast", ".qc-cmp2-container", ("button[mode='primary']",)),
]

EUCONSENT_V2 = (
    "CPzqYkAPzqYkAAGABCENB-CoAP_AAH_AAAAAHftf_X_fb3_j-_59__t0eY1f9_7_v-0zjhfdt-8N2f_X_L8X_2M7vF36pq4KuR4Eu3LBIQdlHOHcTUmw6ok"
    "VrzPsbk2Mr7NKJ7PEmnMbO2dYGH9_n93TuZKY7______z_v-v_v____f_7-3_3__5_X---_e_V399zLv9____39nP___9v-_9_____4IhgEmGpeQBdiWOD"
    "JtGlUKIEYVhIdAKACigGFoisIHVwU7K4CfUELABCagJwIgQYgowYBAAIJAEhEQEgB4IBEARAIAAQAqQEIACNgEFgBYGAQACgGhYARRBKBIQZHBUcpgQFSLR"
    "QT2ViCUHexphCGWeBFAo_oqEBGs0ks2BySsmRpKJSIKmnkpIBO"
)
DIDOMI_TOKEN = (
    "eyJ1c2VyX2lkIjoiMThhMTRiY2ItZWMzNy02YWNlLWJhNTgtMjcyYTFlMDBiODQ1IiwiY3JlYXRlZCI6IjIwMjQtMDEtMDFUMDA6MDA6MDAuMDAwWiIsInVw"
    "ZGF0ZWQiOiIyMDI0LTAxLTAxVDAwOjAwOjAwLjAwMFoiLCJ2ZW5kb3JzIjp7ImVuYWJsZWQiOlsiZ29vZ2xlIl19LCJwdXJwb3NlcyI6eyJlbmFibGVkIjpb"
    "ImNvb2tpZXMiXX19"
)

CONSENT_CLICK_SELECTORS = [
    # SourcePoint
    'button[title="Alle akzeptieren"]',
    'button[title="Accept All"]',
    'button[title="Zustimmen und weiter"]',
    'button[title="AGREE"]',
    ".sp_choice_type_11",
    ".message-button.sp_choice_type_11",
    # OneTrust
    "#onetrust-accept-btn-handler",
    ".onetrust-close-btn-handler",
    # Didomi
    "#didomi-notice-agree-button",
    ".didomi-continue-without-agreeing",
    # Quantcast / TCF
    '.qc-cmp2-summary-buttons button[mode="primary"]',
    "button.css-47sehv",
    # Usercentrics
    "#uc-btn-accept-banner",
    'button[data-testid="uc-accept-all-button"]',
    # Cookiebot
    "#CybotCookiebotDialogBodyLevelButtonLevelOptinAllowAll",
    "#CybotCookiebotDialogBodyButtonAccept",
    # Generic
    'button[id*="accept"]',
    'button[class*="accept"]',
    'button[class*="agree"]',
    'button[id*="agree"]',
    '[data-testid*="accept"]',
    '[data-testid*="consent"]',
    'button[aria-label*="accept" i]',
    'button[aria-label*="Akzeptieren"]',
    'button[aria-label*="Zustimmen"]',
    'button[aria-label*="agree" i]',
]

ACCEPT_TEXTS = [
    "Accept All",
    "Accept all",
    "Alle akzeptieren",
    "Alles akzeptieren",
    "Tout accepter",
    "Aceptar todo",
    "Accetta tutto",
    "Alle accepteren",
    "Zaakceptuj wszystko",
    "AGREE",
    "Agree",
    "I Accept",
    "OK",
    "Zustimmen",
    "Einverstanden",
    "Akzeptieren",
]

OVERLAY_SELECTORS = [
    '[class*="consent"]',
    '[id*="consent"]',
    '[class*="cookie-banner"]',
    '[id*="cookie-banner"]',
    '[id*="cookie"]',
    ".cmp-modal",
    ".cmp-overlay",
    '[class*="privacy-wall"]',
    '[class*="gdpr"]',
    '[id*="gdpr"]',
    "#usercentrics-root",
    '[id*="sp_message"]',
    ".message-overlay",
    '[class*="cookie-notice"]',
    '[id*="cookie-notice"]',
]

_SHADOW_CLICK_JS = """
(opts) => {
    const hosts = document.querySelectorAll(opts.hosts);
    for (const host of hosts) {
        const roots = host.shadowRoot ? [host.shadowRoot, document] : [document];
        for (const root of roots) {
            for (const sel of opts.accept) {
                const btn = root.querySelector(sel);
                if (btn) { btn.click(); return true; }
            }
        }
    }
    return false;
}
"""

_TEXT_CLICK_JS = """
(texts) => {
    const buttons = document.querySelectorAll('button, a[role="button"], [role="button"]');
    for (const btn of buttons) {
        const text = (btn.textContent || '').trim();
        if (texts.some(t => text === t || text.startsWith(t))) {
            btn.click();
            return true;
        }
    }
    return false;
}
"""

_REMOVE_OVERLAYS_JS = """
(selectors) => {
    let removed = 0;
    for (const sel of selectors) {
        let els;
        try {
            els = document.querySelectorAll(sel);
        } catch (e) {
            continue;
        }
        els.forEach(el => {
            if (el === document.body || el === document.documentElement) return;
            const style = getComputedStyle(el);
            const isOverlay = el.offsetHeight > 200 || style.position === 'fixed'
                || style.position === 'absolute' || parseInt(style.zIndex, 10) > 999;
            if (isOverlay) {
                el.remove();
                removed++;
            }
        });
    }
    document.querySelectorAll('div, section, aside').forEach(el => {
        const style = getComputedStyle(el);
        if ((style.position === 'fixed' || style.position === 'sticky')
            && parseInt(style.zIndex, 10) > 9000 && el.offsetHeight > 100) {
            el.remove();
            removed++;
        }
    });
    for (const root of [document.body, document.documentElement]) {
        if (!root) continue;
        root.style.overflow = '';
        root.style.overflowY = '';
    }
    if (document.body) document.body.classList.remove('sp-message-open', 'modal-open', 'no-scroll');
    return removed;
}
"""


def consent_cookies(url: str, *, now: datetime | None = None) -> list[dict[str, Any]]:
    """Consent cookies for the registrable host of ``url``, in ``add_cookies`` form."""

    host = (urllib.parse.urlparse(url).hostname or "").lower()
    if not host:
        return []
    if host.startswith("www."):
        host = host[4:]
    stamp = (now or datetime.now(UTC)).strftime("%Y-%m-%dT%H:%M:%S.000Z")
    values = [
        ("euconsent-v2", EUCONSENT_V2),
        ("OptanonAlertBoxClosed", stamp),
        (
            "OptanonConsent",
            "isGpcEnabled=0&datestamp="
            + urllib.parse.quote(stamp, safe="")
            + "&version=202309.1.0&groups=C0001:1,C0002:1,C0003:1,C0004:1",
        ),
        ("didomi_token", DIDOMI_TOKEN),
        (".AspNet.Consent", "yes"),
        ("cookieconsent_status", "dismiss"),
        ("cookie_consent", "accepted"),
        ("gdpr_consent", "1"),
    ]
    return [
        {
            "name": name,
            "value": value,
            "domain": f".{host}",
            "path": "/",
            "httpOnly": False,
            "secure": True,
            "sameSite": "Lax",
        }
        for name, value in values
    ]


class KnownCmpLayer:
    """Detect a named CMP container first, then click that vendor's accept button."""

    name = "known-cmp"

    def __init__(self, strategies: list[CmpStrategy] | None = None) -> None:
        self.strategies = strategies or CMP_STRATEGIES

    async def attempt(self, page: Page) -> Outcome:
        for cmp in self.strategies:
            try:
                if not await page.query_selector(cmp.container):
                    continue
                if await self._accept(page, cmp):
                    return Outcome.ok(cmp.name)
            except Exception as exc:
                jlog("debug", event="consent_cmp_error", cmp=cmp.name, error=str(exc))
        return Outcome.fail("no known CMP accepted")

    async def _accept(self, page: Page, cmp: CmpStrategy) -> bool:
        if cmp.shadow:
            return bool(await page.evaluate(_SHADOW_CLICK_JS, {"hosts": cmp.container, "accept": list(cmp.accept)}))
        for sel in cmp.accept:
            btn = await page.query_selector(sel)
            if btn and await element_is_visibly_displayed(btn):
                await btn.click()
                return True
        if cmp.frames:
            # SourcePoint renders its dialog inside an iframe
            for frame in page.frames:
                for sel in cmp.accept:
                    try:
                        btn = await frame.query_selector(sel)
                        if btn:
                            await btn.click()
                            return True
                    except Exception:
                        continue
        return False


class ShadowDomLayer:
    name = "shadow-dom"
    hosts = '#usercentrics-root, [id*="usercentrics"], #shadow-root-container'
    accept = ['button[data-testid="uc-accept-all-button"]', "button.accept-all"]

    async def attempt(self, page: Page) -> Outcome:
        try:
            clicked = await page.evaluate(_SHADOW_CLICK_JS, {"hosts": self.hosts, "accept": self.accept})
        except Exception as exc:
            return Outcome.fail(str(exc))
        return Outcome.ok() if clicked else Outcome.fail("no shadow host accepted")


class ClickSelectorLayer:
    name = "click-selectors"

    def __init__(self, selectors: list[str] | None = None) -> None:
        self.selectors = selectors or CONSENT_CLICK_SELECTORS

    async def attempt(self, page: Page) -> Outcome:
        for sel in self.selectors:
            try:
                el = await page.query_selector(sel)
                if el and await element_is_visibly_displayed(el):
                    await el.click()
                    return Outcome.ok(sel)
            except Exception:
                continue
        return Outcome.fail("no consent selector matched")


class TextButtonLayer:
    name = "text-buttons"

    async def attempt(self, page: Page) -> Outcome:
        try:
            clicked = await page.evaluate(_TEXT_CLICK_JS, ACCEPT_TEXTS)
        except Exception as exc:
            return Outcome.fail(str(exc))
        return Outcome.ok() if clicked else Outcome.fail("no accept text matched")


class ConsentHandler:
    """Runs the layered dismissal pipeline; ``handle`` reports whether a CMP was dealt with."""

    def __init__(self, layers: list[Any] | None = None, *, settle_ms: int = INITIAL_SETTLE_MS) -> None:
        self.layers = layers or [KnownCmpLayer(), ShadowDomLayer(), ClickSelectorLayer(), TextButtonLayer()]
        self.settle_ms = settle_ms

    async def seed_cookies(self, context: BrowserContext, url: str) -> None:
        cookies = consent_cookies(url)
        if not cookies:
            return
        try:
            await context.add_cookies(cookies)  # type: ignore[arg-type]
        except Exception as exc:
            jlog("warning", event="consent_cookies_failed", url=url, error=str(exc))

    async def remove_overlays(self, page: Page) -> int:
        try:
            return int(await page.evaluate(_REMOVE_OVERLAYS_JS, OVERLAY_SELECTORS))
        except Exception as exc:
            jlog("warning", event="consent_overlay_removal_failed", error=str(exc))
            return 0

    async def handle(self, page: Page, url: str) -> bool:
        await page.wait_for_timeout(self.settle_ms)
        outcome, _ = await first_success(self.layers, page, chain="consent")
        if outcome is not None:
            await page.wait_for_timeout(1000)
        removed = await self.remove_overlays(page)
        await page.wait_for_timeout(500)
        handled = outcome is not None or removed > 0
        jlog("info", event="consent_handled", url=url, handled=handled, layer_value=outcome.value if outcome else None, overlays_removed=removed)
        return handled


__all__ = [
    "CMP_STRATEGIES",
    "ClickSelectorLayer",
    "CmpStrategy",
    "ConsentHandler",
    "KnownCmpLayer",
    "ShadowDomLayer",
    "TextButtonLayer",
    "consent_cookies",
]
