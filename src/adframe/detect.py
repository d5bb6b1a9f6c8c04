"""Ad-slot detection and ranking.

Raw element records come from :meth:`PageAutomation.collect_slots` (iframes,
curated ad-container selectors, and a bounded size-matching scan). This module
turns them into scored :class:`SlotCandidate` objects:

* invisible or degenerate elements are dropped,
* each survivor is scored on size fit, viewport visibility, ad-likelihood and
  element type, minus penalties for editorial-content signals,
* duplicates (same stable id found by several pools) collapse to one entry,
  preferring the ad-likely variant,
* survivors at or above the acceptance threshold are returned best first,
  capped at ``DetectionLimits.max_candidates``.

Editorial penalties are sized so that article text always outweighs a perfect
size match for elements without ad naming.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from playwright.async_api import Error as PlaywrightError

from .automation import PageAutomation
from .config import DEFAULT_LIMITS, DEFAULT_WEIGHTS, DetectionLimits, ScoringWeights
from .logging import jlog
from .models import KIND_GPT, KIND_IFRAME, KIND_KNOWN_AD, SlotCandidate
from .playwright import error_line
from .strategies import Outcome, first_success

SCROLL_SETTLE_MS = 500


def _fit(actual: float, target: float) -> float:
    if target <= 0:
        return 0.0
    return max(0.0, 1.0 - abs(actual - target) / target)


def _ratio_fit(a: float, b: float) -> float:
    if a <= 0 or b <= 0:
        return 0.0
    return min(a, b) / max(a, b)


def type_bonus(kind: str, weights: ScoringWeights = DEFAULT_WEIGHTS) -> float:
    return {
        KIND_GPT: weights.gpt_bonus,
        KIND_IFRAME: weights.iframe_bonus,
        KIND_KNOWN_AD: weights.known_ad_bonus,
    }.get(kind, 0.0)


def editorial_penalty(candidate: SlotCandidate, weights: ScoringWeights = DEFAULT_WEIGHTS) -> float:
    penalty = 0.0
    if candidate.text_length > weights.text_long_chars:
        penalty += weights.text_long_penalty
    elif candidate.text_length > weights.text_medium_chars:
        penalty += weights.text_medium_penalty
    if candidate.heading_count > 0:
        penalty += weights.heading_penalty
    if candidate.paragraph_count >= 2:
        penalty += weights.paragraph_penalty
    if candidate.in_article:
        penalty += weights.article_penalty
    return penalty


def score_slot(
    candidate: SlotCandidate,
    target_width: int,
    target_height: int,
    *,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    limits: DetectionLimits = DEFAULT_LIMITS,
) -> float:
    """Composite score of one candidate against the requested ad size."""

    w, h = candidate.width, candidate.height
    area_ratio = (w * h) / float(target_width * target_height)
    score = (
        weights.width_fit * _fit(w, target_width)
        + weights.height_fit * _fit(h, target_height)
        + weights.aspect_fit * _ratio_fit(w / h if h else 0.0, target_width / target_height)
        + weights.area_fit * _ratio_fit(area_ratio, 1.0)
        + weights.viewport_visibility * min(1.0, max(0.0, candidate.viewport_fraction))
        + (weights.ad_likely if candidate.ad_likely else 0.0)
        + type_bonus(candidate.kind, weights)
    )
    score -= editorial_penalty(candidate, weights)
    if candidate.y > limits.deep_page_px:
        score -= weights.deep_page_penalty
    if area_ratio < weights.min_area_ratio or area_ratio > weights.max_area_ratio:
        score -= weights.area_mismatch_penalty
    return score


def _is_usable(candidate: SlotCandidate) -> bool:
    return candidate.visible and candidate.width >= 2 and candidate.height >= 2


def _preferred(current: SlotCandidate, other: SlotCandidate) -> SlotCandidate:
    if current.ad_likely != other.ad_likely:
        return current if current.ad_likely else other
    return other if other.score > current.score else current


def _dedupe(candidates: Iterable[SlotCandidate]) -> dict[str, SlotCandidate]:
    by_id: dict[str, SlotCandidate] = {}
    for c in candidates:
        existing = by_id.get(c.slot_id)
        by_id[c.slot_id] = c if existing is None else _preferred(existing, c)
    return by_id


def _rank_key(c: SlotCandidate) -> tuple[Any, ...]:
    return (-c.score, not c.ad_likely, c.y, c.x, c.slot_id)


def score_candidates(
    records: Iterable[dict[str, Any] | SlotCandidate],
    target_width: int,
    target_height: int,
    *,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    limits: DetectionLimits = DEFAULT_LIMITS,
) -> list[SlotCandidate]:
    """Score every usable record and collapse duplicates; no threshold applied."""

    scored = []
    for record in records:
        c = record if isinstance(record, SlotCandidate) else SlotCandidate.from_record(record)
        if not _is_usable(c):
            continue
        scored.append(c.with_score(score_slot(c, target_width, target_height, weights=weights, limits=limits)))
    return sorted(_dedupe(scored).values(), key=_rank_key)


def select_accepted(
    candidates: Iterable[SlotCandidate],
    *,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    limits: DetectionLimits = DEFAULT_LIMITS,
) -> list[SlotCandidate]:
    accepted = [c for c in candidates if c.score >= weights.accept_threshold]
    accepted.sort(key=_rank_key)
    return accepted[: limits.max_candidates]


def rank_candidates(
    records: Iterable[dict[str, Any] | SlotCandidate],
    target_width: int,
    target_height: int,
    *,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    limits: DetectionLimits = DEFAULT_LIMITS,
) -> list[SlotCandidate]:
    """Score, dedupe, threshold and cap raw records into the accepted candidate list."""

    scored = score_candidates(records, target_width, target_height, weights=weights, limits=limits)
    return select_accepted(scored, weights=weights, limits=limits)


def merge_candidates(
    *pools: Iterable[SlotCandidate],
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    limits: DetectionLimits = DEFAULT_LIMITS,
) -> list[SlotCandidate]:
    """Union scored pools from several passes, keeping the higher score per id."""

    best: dict[str, SlotCandidate] = {}
    for pool in pools:
        for c in pool:
            existing = best.get(c.slot_id)
            if existing is None or c.score > existing.score:
                best[c.slot_id] = c
    return select_accepted(best.values(), weights=weights, limits=limits)


class ViewportPass:
    """Score whatever is laid out at the current scroll position."""

    name = "viewport"

    def __init__(
        self,
        target_width: int,
        target_height: int,
        *,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
        limits: DetectionLimits = DEFAULT_LIMITS,
    ) -> None:
        self.target_width = target_width
        self.target_height = target_height
        self.weights = weights
        self.limits = limits

    async def _score(self, automation: PageAutomation) -> Outcome:
        records = await automation.collect_slots(self.target_width, self.target_height, self.limits)
        scored = score_candidates(
            records, self.target_width, self.target_height, weights=self.weights, limits=self.limits
        )
        accepted = select_accepted(scored, weights=self.weights, limits=self.limits)
        if accepted:
            return Outcome.ok(scored)
        return Outcome(False, f"{len(records)} raw, none above threshold", scored)

    def _page_error(self, exc: PlaywrightError) -> Outcome:
        jlog("warning", event="detection_page_error", detection_pass=self.name, error=error_line(exc))
        return Outcome(False, f"page error: {error_line(exc)}", [])

    async def attempt(self, automation: PageAutomation) -> Outcome:
        try:
            return await self._score(automation)
        except PlaywrightError as exc:
            return self._page_error(exc)


class ScrolledPass(ViewportPass):
    """Re-scan after scrolling part of the way down, for slots that only render once approached."""

    name = "scrolled"

    async def attempt(self, automation: PageAutomation) -> Outcome:
        try:
            viewport = await automation.viewport_height()
            await automation.scroll_to(int(viewport * self.limits.second_pass_viewports))
            await automation.wait(SCROLL_SETTLE_MS)
            outcome = await self._score(automation)
        except PlaywrightError as exc:
            outcome = self._page_error(exc)
        try:
            await automation.scroll_to(0)
        except PlaywrightError as exc:
            jlog("warning", event="scroll_reset_failed", error=error_line(exc))
        return outcome


async def detect_slots(
    automation: PageAutomation,
    target_width: int,
    target_height: int,
    *,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    limits: DetectionLimits = DEFAULT_LIMITS,
) -> list[SlotCandidate]:
    """Run the detection passes in order and return the merged, ranked candidate list."""

    passes = [
        ViewportPass(target_width, target_height, weights=weights, limits=limits),
        ScrolledPass(target_width, target_height, weights=weights, limits=limits),
    ]
    winner, failures = await first_success(passes, automation, chain="slot-detection")
    pools = [outcome.value or [] for _, outcome in failures]
    if winner is not None:
        pools.append(winner.value or [])
    ranked = merge_candidates(*pools, weights=weights, limits=limits)
    jlog(
        "info",
        event="slots_detected",
        count=len(ranked),
        passes=len(pools),
        top_score=ranked[0].score if ranked else None,
        top_kind=ranked[0].kind if ranked else None,
    )
    return ranked


__all__ = [
    "ScrolledPass",
    "ViewportPass",
    "detect_slots",
    "editorial_penalty",
    "merge_candidates",
    "rank_candidates",
    "score_candidates",
    "score_slot",
    "select_accepted",
    "type_bonus",
]
