"""generate_mockup.py

Ad mockup generator: shows how a creative would look inside a live publisher page.

This module wires the stages together:
- Validates the request (ad size, device, creative, image dimensions, blocked domains)
  before any browser work starts.
- Optionally swaps a bare site root for a topic-relevant section URL.
- Loads the page in the shared Chromium session, handles consent banners and
  scrolls once to trigger lazy-loaded slots.
- Detects and ranks ad-slot candidates, then tries to inject the creative into
  the live DOM (method ``dom-injected``).
- When injection fails, composites the creative onto the plain screenshot at the
  best detected slot (``detected``) or a heuristic position (``heuristic``), unless
  heuristic fallback is disabled, in which case ``NoReliableSlot`` is raised.
- Stores the PNG with an ordered JSON sidecar and optionally mirrors it to GCS.

Usage (examples)
----------------
# Image creative on a desktop page
python scripts/generate_mockup.py --url spiegel.de --ad-size 300x250 --image banner.png

# Ad tag on mobile, placing heuristically if no real slot is found
python scripts/generate_mockup.py --url https://www.kicker.de --ad-size 300x250 \
  --device mobile --tag-file tag.html --allow-heuristic-fallback

# Topic-aware section lookup and a GCS mirror
python scripts/generate_mockup.py --url heise.de --topic tech --ad-size 728x90 \
  --image leaderboard.png --gcs-bucket your-mockup-bucket --project-id your-gcp-project
"""

from __future__ import annotations

import argparse
import asyncio
import os
import shutil
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from google.cloud import storage  # type: ignore[attr-defined]
from playwright.async_api import Page

from ..automation import PageAutomation, PlaywrightAutomation
from ..browser import BrowserSession
from ..capture import load_page, settle_lazy_content, take_capture
from ..composite import CreativeRenderer, composite_mockup
from ..config import (
    DEFAULT_CONCURRENCY,
    DEFAULT_CREATIVE_LOAD_TIMEOUT_MS,
    DEFAULT_INJECTION_LIMITS,
    DEFAULT_LIMITS,
    DEFAULT_NAVIGATION_TIMEOUT_MS,
    DEFAULT_REQUEST_TIMEOUT_S,
    DEFAULT_RETRY_TIMEOUT_MS,
    DEFAULT_TAG_RENDER_TIMEOUT_MS,
    DEFAULT_WEIGHTS,
    DetectionLimits,
    InjectionLimits,
    ScoringWeights,
    Timeouts,
)
from ..consent import ConsentHandler
from ..debug import dump_page_html, dump_slot_inventory
from ..detect import detect_slots
from ..errors import PageLoadTimeout, RequestValidationError
from ..imaging import ALLOWED_FORMATS, MAX_IMAGE_BYTES, image_info
from ..inject import inject_creative
from ..limiter import ConcurrencyLimiter
from ..logging import jlog, logging_context, mockup_log, timed
from ..models import AD_SIZES, DESKTOP, DEVICES, METHOD_DOM_INJECTED, Creative, MockupRequest, MockupResult, Placement
from ..render import TagRenderer
from ..storage import DEFAULT_OUTPUT_DIR, MockupStore
from ..urls import is_blocked_domain, normalize_target_url, resolve_topic_aware_url

SCRIPT_NAME = "mockup"
DIMENSION_TOLERANCE_PX = 2
BLOCKED_DOMAIN_MESSAGE = (
    "This domain is not supported for mockups (social platforms, search engines, ecommerce, and video sites "
    "are excluded). Please use a publisher website."
)


# ============================
# Request validation
# ============================


def validate_request(request: MockupRequest) -> MockupRequest:
    """Reject bad input before any browser work; returns the request with a normalized URL."""

    if not (request.url or "").strip():
        raise RequestValidationError("Website URL is required")
    if not request.ad_size:
        raise RequestValidationError("Ad size is required")
    if request.ad_size not in AD_SIZES:
        raise RequestValidationError(f"Invalid ad size. Valid sizes: {', '.join(AD_SIZES)}")
    if request.device not in DEVICES:
        raise RequestValidationError('Device must be "desktop" or "mobile"')
    size = AD_SIZES[request.ad_size]
    if request.device != DESKTOP and size.desktop_only:
        raise RequestValidationError(f"{request.ad_size} is a desktop-only ad size")
    if request.creative.is_empty:
        raise RequestValidationError("Either an ad tag or ad image is required")

    if request.creative.image is not None:
        data = request.creative.image
        if len(data) > MAX_IMAGE_BYTES:
            raise RequestValidationError("Ad image exceeds the 10 MB limit")
        try:
            fmt, width, height = image_info(data)
        except OSError as exc:
            raise RequestValidationError("Could not read uploaded image") from exc
        if fmt not in ALLOWED_FORMATS:
            raise RequestValidationError("Only JPG, PNG, and GIF images are allowed")
        if abs(width - size.width) > DIMENSION_TOLERANCE_PX or abs(height - size.height) > DIMENSION_TOLERANCE_PX:
            raise RequestValidationError(
                f"Image dimensions ({width}x{height}) don't match selected ad size ({request.ad_size}). "
                "Please upload an image with the correct dimensions."
            )

    url = normalize_target_url(request.url)
    if is_blocked_domain(url):
        raise RequestValidationError(BLOCKED_DOMAIN_MESSAGE)
    return request.with_url(url)


# ============================
# Generation
# ============================


class MockupGenerator:
    """Runs one mockup request end to end inside the shared browser session."""

    def __init__(
        self,
        session: BrowserSession,
        *,
        limiter: ConcurrencyLimiter | None = None,
        consent: ConsentHandler | None = None,
        renderer: CreativeRenderer | None = None,
        automation_factory: Callable[[Page], PageAutomation] = PlaywrightAutomation,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
        limits: DetectionLimits = DEFAULT_LIMITS,
        injection_limits: InjectionLimits = DEFAULT_INJECTION_LIMITS,
        timeouts: Timeouts | None = None,
        resolve_topics: bool = True,
        debug_html: bool = False,
    ) -> None:
        self.session = session
        self.limiter = limiter or ConcurrencyLimiter(DEFAULT_CONCURRENCY)
        self.consent = consent
        self.timeouts = timeouts or Timeouts()
        self.renderer = renderer if renderer is not None else TagRenderer(session, timeout_ms=self.timeouts.tag_render_ms)
        self.automation_factory = automation_factory
        self.weights = weights
        self.limits = limits
        self.injection_limits = injection_limits
        self.resolve_topics = resolve_topics
        self.debug_html = debug_html

    async def generate(self, request: MockupRequest) -> MockupResult:
        request = validate_request(request)
        if request.topic and self.resolve_topics:
            url = await resolve_topic_aware_url(request.url, request.topic)
            if is_blocked_domain(url):
                raise RequestValidationError(BLOCKED_DOMAIN_MESSAGE)
            request = request.with_url(url)
        try:
            return await asyncio.wait_for(self.limiter.run(self._generate, request), timeout=self.timeouts.request_s)
        except asyncio.TimeoutError as exc:
            raise PageLoadTimeout(request.url, f"request exceeded {self.timeouts.request_s}s") from exc

    async def _generate(self, request: MockupRequest) -> MockupResult:
        size = request.size
        with logging_context(url=request.url, ad_size=request.ad_size, device=request.device):
            mockup_log("mockup_start", url=request.url, ad_size=request.ad_size, device=request.device)
            async with self.session.page(request.device) as page:
                automation = self.automation_factory(page)
                if self.consent is not None:
                    await self.consent.seed_cookies(page.context, request.url)
                with timed("page_load") as stage:
                    stage["wait_until"] = await load_page(automation, request.url, self.timeouts)
                consent_handled = await self.consent.handle(page, request.url) if self.consent is not None else False
                await settle_lazy_content(automation)

                with timed("slot_detection") as stage:
                    candidates = await detect_slots(
                        automation, size.width, size.height, weights=self.weights, limits=self.limits
                    )
                    stage["count"] = len(candidates)
                plain = await take_capture(automation)
                injection = await inject_creative(
                    automation,
                    candidates,
                    size,
                    request.creative,
                    limits=self.injection_limits,
                    weights=self.weights,
                    creative_load_ms=self.timeouts.creative_load_ms,
                )
                if self.debug_html:
                    await self._dump_debug(page, request)

                if injection.succeeded and injection.rect is not None:
                    await automation.settle_assets()
                    final = await take_capture(automation)
                    placement = Placement(
                        x=round(injection.rect.x),
                        y=round(injection.rect.y),
                        ad_size=size.token,
                        ad_size_name=size.name,
                        method=METHOD_DOM_INJECTED,
                        tag_rendered=request.creative.is_tag,
                    )
                    mockup_log(
                        "mockup_done",
                        url=request.url,
                        ad_size=request.ad_size,
                        device=request.device,
                        method=placement.method,
                    )
                    return MockupResult(final.screenshot, placement, consent_handled, request.url, tuple(candidates))

            image, placement = await composite_mockup(
                plain.screenshot,
                plain.dimensions,
                request.device,
                size,
                request.creative,
                candidates[0] if candidates else None,
                allow_heuristic_fallback=request.allow_heuristic_fallback,
                renderer=self.renderer,
                fallback_reason=injection.reason,
            )
            mockup_log(
                "mockup_done",
                url=request.url,
                ad_size=request.ad_size,
                device=request.device,
                method=placement.method,
                fallback_reason=injection.reason,
            )
            return MockupResult(image, placement, consent_handled, request.url, tuple(candidates))

    async def _dump_debug(self, page: Page, request: MockupRequest) -> None:
        name = f"{request.ad_size}_{request.device}"
        await dump_page_html(page, name)
        jlog("info", event="slot_inventory", slots=await dump_slot_inventory(page))


# ============================
# CLI
# ============================


@dataclass(frozen=True)
class CliArgs:
    url: str
    ad_size: str
    device: str
    image_path: str | None
    tag: str | None
    tag_file: str | None
    topic: str | None
    allow_heuristic_fallback: bool
    output: str | None
    output_dir: str
    gcs_bucket: str | None
    project_id: str | None
    navigation_timeout_ms: int
    retry_timeout_ms: int
    tag_render_timeout_ms: int
    creative_load_timeout_ms: int
    request_timeout_s: int
    concurrency: int
    debug_html: bool
    dry_run: bool


def parse_args(argv: list[str] | None = None) -> CliArgs:
    p = argparse.ArgumentParser(description="Render an ad creative into a live publisher page")
    p.add_argument("--url", required=True, help="Publisher page; https:// is assumed when no scheme is given")
    p.add_argument("--ad-size", default="300x250", choices=list(AD_SIZES))
    p.add_argument("--device", default=DESKTOP, choices=list(DEVICES))
    creative = p.add_mutually_exclusive_group(required=True)
    creative.add_argument("--image", dest="image_path", help="JPEG/PNG/GIF creative matching the ad size (+/-2px)")
    creative.add_argument("--tag", help="HTML/script ad tag")
    creative.add_argument("--tag-file", help="File containing the HTML/script ad tag")
    p.add_argument("--topic", help="Prefer a topic-relevant section when --url is a site root")
    p.add_argument("--allow-heuristic-fallback", action="store_true")
    p.add_argument("--output", help="Also copy the final PNG to this path")
    p.add_argument("--output-dir", default=DEFAULT_OUTPUT_DIR)
    p.add_argument("--gcs-bucket", default=os.getenv("ADFRAME_GCS_BUCKET"))
    p.add_argument("--project-id", default=os.getenv("GOOGLE_CLOUD_PROJECT"))
    p.add_argument("--navigation-timeout-ms", type=int, default=DEFAULT_NAVIGATION_TIMEOUT_MS)
    p.add_argument("--retry-timeout-ms", type=int, default=DEFAULT_RETRY_TIMEOUT_MS)
    p.add_argument("--tag-render-timeout-ms", type=int, default=DEFAULT_TAG_RENDER_TIMEOUT_MS)
    p.add_argument("--creative-load-timeout-ms", type=int, default=DEFAULT_CREATIVE_LOAD_TIMEOUT_MS)
    p.add_argument("--request-timeout-s", type=int, default=DEFAULT_REQUEST_TIMEOUT_S)
    p.add_argument("--concurrency", type=int, default=DEFAULT_CONCURRENCY)
    p.add_argument("--debug-html", action="store_true", help="Dump page HTML and slot inventory to the debug dir")
    p.add_argument("--dry-run", action="store_true", help="Skip the GCS upload")
    a = p.parse_args(argv)
    return CliArgs(
        url=a.url,
        ad_size=a.ad_size,
        device=a.device,
        image_path=a.image_path,
        tag=a.tag,
        tag_file=a.tag_file,
        topic=a.topic,
        allow_heuristic_fallback=a.allow_heuristic_fallback,
        output=a.output,
        output_dir=a.output_dir,
        gcs_bucket=a.gcs_bucket,
        project_id=a.project_id,
        navigation_timeout_ms=a.navigation_timeout_ms,
        retry_timeout_ms=a.retry_timeout_ms,
        tag_render_timeout_ms=a.tag_render_timeout_ms,
        creative_load_timeout_ms=a.creative_load_timeout_ms,
        request_timeout_s=a.request_timeout_s,
        concurrency=a.concurrency,
        debug_html=a.debug_html,
        dry_run=a.dry_run,
    )


def build_request(args: CliArgs) -> MockupRequest:
    image = None
    tag = args.tag
    if args.image_path:
        with open(args.image_path, "rb") as fh:
            image = fh.read()
    if args.tag_file:
        with open(args.tag_file, encoding="utf-8") as fh:
            tag = fh.read()
    return MockupRequest(
        url=args.url,
        ad_size=args.ad_size,
        device=args.device,
        creative=Creative(image=image, tag=tag),
        topic=args.topic,
        allow_heuristic_fallback=args.allow_heuristic_fallback,
    )


def _summary(stored_id: str, path: str, result: MockupResult, request: MockupRequest, store: MockupStore) -> dict[str, Any]:
    out: dict[str, Any] = {
        "mockupId": stored_id,
        "mockupPath": path,
        "metadata": {
            "websiteUrl": result.url,
            "adSize": request.ad_size,
            "adSizeName": result.placement.ad_size_name,
            "device": request.device,
            "placement": result.placement.as_dict(),
            "consentHandled": result.consent_handled,
        },
    }
    preview = store.ad_tag_preview_html(stored_id)
    if preview is not None:
        preview_path = os.path.join(store.output_dir, f"{stored_id}.adtag.html")
        with open(preview_path, "w", encoding="utf-8") as fh:
            fh.write(preview)
        out["adTagPreviewPath"] = preview_path
    return out


async def run(args: CliArgs, *, session: BrowserSession | None = None, storage_client: Any = None) -> dict[str, Any]:
    """Generate one mockup for the CLI arguments and return a JSON-ready summary."""

    request = build_request(args)
    if storage_client is None and args.gcs_bucket:
        storage_client = storage.Client(project=args.project_id)
    store = MockupStore(args.output_dir, storage_client=storage_client, bucket_name=args.gcs_bucket, dry_run=args.dry_run)
    timeouts = Timeouts(
        navigation_ms=args.navigation_timeout_ms,
        retry_ms=args.retry_timeout_ms,
        tag_render_ms=args.tag_render_timeout_ms,
        creative_load_ms=args.creative_load_timeout_ms,
        request_s=args.request_timeout_s,
    )
    owns_session = session is None
    session = session or BrowserSession()
    generator = MockupGenerator(
        session,
        limiter=ConcurrencyLimiter(args.concurrency),
        consent=ConsentHandler(),
        timeouts=timeouts,
        debug_html=args.debug_html,
    )
    try:
        result = await generator.generate(request)
    finally:
        if owns_session:
            await session.close()

    stored = store.save(result, request.with_url(result.url))
    if args.output:
        shutil.copyfile(stored.path, args.output)
    return _summary(stored.mockup_id, stored.path, result, request, store)


__all__ = ["CliArgs", "MockupGenerator", "build_request", "parse_args", "run", "validate_request"]
