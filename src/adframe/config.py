"""Tunable constants for detection, injection and capture.

Scoring weights and the acceptance threshold were tuned empirically against
sampled publisher pages. They are kept as plain dataclass fields so callers can
swap them without touching the ranking code.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_NAVIGATION_TIMEOUT_MS = int(os.getenv("ADFRAME_NAVIGATION_TIMEOUT_MS", "30000"))
DEFAULT_RETRY_TIMEOUT_MS = int(os.getenv("ADFRAME_RETRY_TIMEOUT_MS", "20000"))  # relaxed "domcontentloaded" retry
DEFAULT_TAG_RENDER_TIMEOUT_MS = int(os.getenv("ADFRAME_TAG_RENDER_TIMEOUT_MS", "15000"))
DEFAULT_CREATIVE_LOAD_TIMEOUT_MS = int(os.getenv("ADFRAME_CREATIVE_LOAD_TIMEOUT_MS", "3000"))
DEFAULT_REQUEST_TIMEOUT_S = int(os.getenv("ADFRAME_REQUEST_TIMEOUT_S", "120"))
DEFAULT_CONCURRENCY = int(os.getenv("ADFRAME_CONCURRENCY", "3"))


@dataclass(frozen=True)
class ScoringWeights:
    width_fit: float = 20.0
    height_fit: float = 20.0
    aspect_fit: float = 10.0
    area_fit: float = 15.0
    viewport_visibility: float = 15.0
    ad_likely: float = 28.0
    gpt_bonus: float = 12.0
    iframe_bonus: float = 10.0
    known_ad_bonus: float = 6.0
    text_medium_chars: int = 80
    text_medium_penalty: float = 25.0
    text_long_chars: int = 220
    text_long_penalty: float = 45.0
    heading_penalty: float = 30.0
    paragraph_penalty: float = 25.0
    article_penalty: float = 35.0
    deep_page_penalty: float = 20.0
    area_mismatch_penalty: float = 20.0
    min_area_ratio: float = 0.5
    max_area_ratio: float = 4.0
    accept_threshold: float = 55.0


@dataclass(frozen=True)
class DetectionLimits:
    scan_cap: int = 1800
    max_candidates: int = 8
    min_iframe_px: int = 50
    tolerance_px: int = 80
    tolerance_ratio: float = 0.35
    deep_page_px: int = 6500
    second_pass_viewports: float = 1.2


@dataclass(frozen=True)
class InjectionLimits:
    min_width_ratio: float = 0.55
    min_height_ratio: float = 0.5


@dataclass(frozen=True)
class Timeouts:
    navigation_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS
    retry_ms: int = DEFAULT_RETRY_TIMEOUT_MS
    tag_render_ms: int = DEFAULT_TAG_RENDER_TIMEOUT_MS
    creative_load_ms: int = DEFAULT_CREATIVE_LOAD_TIMEOUT_MS
    request_s: int = DEFAULT_REQUEST_TIMEOUT_S


DEFAULT_WEIGHTS = ScoringWeights()
DEFAULT_LIMITS = DetectionLimits()
DEFAULT_INJECTION_LIMITS = InjectionLimits()


__all__ = [
    "DEFAULT_CONCURRENCY",
    "DEFAULT_INJECTION_LIMITS",
    "DEFAULT_LIMITS",
    "DEFAULT_WEIGHTS",
    "DetectionLimits",
    "InjectionLimits",
    "ScoringWeights",
    "Timeouts",
]
