"""DOM injection engine.

Walks the ranked candidates and swaps the first one that still qualifies for
the caller's creative inside the live page. Every candidate is re-inspected at
injection time because the DOM may have changed since detection. Failure is
never fatal: the caller falls back to compositing on the plain screenshot.
"""

from __future__ import annotations

from collections.abc import Sequence

from playwright.async_api import Error as PlaywrightError

from .automation import PageAutomation
from .config import DEFAULT_CREATIVE_LOAD_TIMEOUT_MS, DEFAULT_INJECTION_LIMITS, DEFAULT_WEIGHTS, InjectionLimits, ScoringWeights
from .imaging import png_data_url
from .logging import jlog
from .models import (
    ALL_CANDIDATES_FAILED,
    CONTENT_LIKE_SLOT,
    KIND_GPT,
    KIND_IFRAME,
    NO_ELIGIBLE_SLOT,
    NO_SLOT,
    PAGE_ERROR,
    SLOT_NOT_FOUND,
    SLOT_NOT_VISIBLE,
    AdSize,
    Creative,
    ElementState,
    InjectionResult,
    SlotCandidate,
)
from .playwright import error_line
from .render import creative_document
from .strategies import Outcome, first_success


def is_eligible(candidate: SlotCandidate, size: AdSize, limits: InjectionLimits = DEFAULT_INJECTION_LIMITS) -> bool:
    """Large enough for the creative, and either ad-named or an iframe/GPT slot."""

    if candidate.width < size.width * limits.min_width_ratio:
        return False
    if candidate.height < size.height * limits.min_height_ratio:
        return False
    return candidate.ad_likely or candidate.kind in (KIND_IFRAME, KIND_GPT)


def looks_editorial(state: ElementState, weights: ScoringWeights = DEFAULT_WEIGHTS) -> bool:
    if state.text_length > weights.text_long_chars:
        return True
    if state.heading_count > 0 or state.paragraph_count >= 2:
        return True
    return state.in_article and state.text_length > weights.text_medium_chars


class SlotInjection:
    """Inject the creative into one candidate; ``attempt`` returns the final rect on success."""

    def __init__(
        self,
        candidate: SlotCandidate,
        size: AdSize,
        creative: Creative,
        *,
        image_src: str | None = None,
        limits: InjectionLimits = DEFAULT_INJECTION_LIMITS,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
        creative_load_ms: int = DEFAULT_CREATIVE_LOAD_TIMEOUT_MS,
    ) -> None:
        self.candidate = candidate
        self.size = size
        self.creative = creative
        self.image_src = image_src
        self.limits = limits
        self.weights = weights
        self.creative_load_ms = creative_load_ms
        self.name = candidate.slot_id

    async def attempt(self, automation: PageAutomation) -> Outcome:
        try:
            return await self._inject(automation)
        except PlaywrightError as exc:
            # e.g. the page navigated away and destroyed the execution context
            jlog("warning", event="slot_injection_page_error", slot_id=self.candidate.slot_id, error=error_line(exc))
            return Outcome.fail(PAGE_ERROR)

    async def _inject(self, automation: PageAutomation) -> Outcome:
        slot_id = self.candidate.slot_id
        state = await automation.inspect(slot_id)
        if state is None:
            return Outcome.fail(SLOT_NOT_FOUND)
        if state.is_iframe:
            if not await automation.replace_iframe(slot_id):
                return Outcome.fail(SLOT_NOT_FOUND)
            state = await automation.inspect(slot_id)
            if state is None:
                return Outcome.fail(SLOT_NOT_FOUND)

        if (
            not state.visible
            or state.rect.width < self.size.width * self.limits.min_width_ratio
            or state.rect.height < self.size.height * self.limits.min_height_ratio
        ):
            return Outcome.fail(SLOT_NOT_VISIBLE)
        if looks_editorial(state, self.weights) and not state.ad_hint:
            return Outcome.fail(CONTENT_LIKE_SLOT)

        w, h = self.size.width, self.size.height
        if self.creative.is_tag:
            inserted = await automation.insert_tag(slot_id, creative_document(self.creative.tag or "", w, h), w, h)
        else:
            inserted = await automation.insert_image(slot_id, self.image_src or "", w, h)
        if not inserted:
            return Outcome.fail(SLOT_NOT_FOUND)
        await automation.add_badge(slot_id)

        if self.creative.is_tag and not await automation.wait_for_creative(slot_id, self.creative_load_ms):
            jlog("info", event="creative_load_timeout", slot_id=slot_id, timeout_ms=self.creative_load_ms)

        rect = await automation.measure(slot_id)
        if rect is None:
            return Outcome.fail(SLOT_NOT_FOUND)
        return Outcome.ok((slot_id, rect))


async def inject_creative(
    automation: PageAutomation,
    candidates: Sequence[SlotCandidate],
    size: AdSize,
    creative: Creative,
    *,
    limits: InjectionLimits = DEFAULT_INJECTION_LIMITS,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    creative_load_ms: int = DEFAULT_CREATIVE_LOAD_TIMEOUT_MS,
) -> InjectionResult:
    """Try candidates in rank order until one accepts the creative."""

    if not candidates:
        return InjectionResult.failure(NO_SLOT)
    eligible = [c for c in candidates if is_eligible(c, size, limits)]
    if not eligible:
        return InjectionResult.failure(NO_ELIGIBLE_SLOT)

    image_src = png_data_url(creative.image) if creative.image is not None else None
    attempts = [
        SlotInjection(
            c,
            size,
            creative,
            image_src=image_src,
            limits=limits,
            weights=weights,
            creative_load_ms=creative_load_ms,
        )
        for c in eligible
    ]
    winner, failures = await first_success(attempts, automation, chain="dom-injection")
    tried = tuple((name, outcome.reason or "") for name, outcome in failures)
    for name, reason in tried:
        jlog("info", event="slot_injection_failed", slot_id=name, reason=reason)
    if winner is None:
        return InjectionResult.failure(ALL_CANDIDATES_FAILED, tried)

    slot_id, rect = winner.value
    jlog(
        "info",
        event="dom_injection_succeeded",
        slot_id=slot_id,
        x=rect.x,
        y=rect.y,
        width=rect.width,
        height=rect.height,
        failed_before=len(tried),
    )
    return InjectionResult(succeeded=True, slot_id=slot_id, rect=rect, attempts=tried)


__all__ = ["SlotInjection", "inject_creative", "is_eligible", "looks_editorial"]
