import asyncio
from io import BytesIO

import pytest
from PIL import Image
from playwright.async_api import Error as PlaywrightError

from adframe.config import Timeouts
from adframe.errors import NoReliableSlot, PageLoadTimeout, RequestValidationError
from adframe.mockup import MockupGenerator
from adframe.models import Creative, MockupRequest
from fakes import FakeConsent, FakeDom, FakeElement, FakeRenderer, FakeSession, png_bytes, slot_record


def _generator(dom: FakeDom, session: FakeSession | None = None, **kw) -> tuple[MockupGenerator, FakeSession, FakeConsent]:
    session = session or FakeSession()
    consent = FakeConsent()
    generator = MockupGenerator(
        session,
        consent=consent,
        renderer=kw.pop("renderer", FakeRenderer(None)),
        automation_factory=lambda page: dom,
        resolve_topics=False,
        **kw,
    )
    return generator, session, consent


def _request(ad_size: str = "300x250", **kw) -> MockupRequest:
    size = tuple(int(v) for v in ad_size.split("x"))
    kw.setdefault("creative", Creative(image=png_bytes(*size, color=(0, 0, 255))))
    return MockupRequest(url=kw.pop("url", "example-news.de"), ad_size=ad_size, **kw)


def test_single_gpt_slot_gets_creative_injected():
    gpt = FakeElement(slot_record("adframe-slot-1", 300, 250, kind="gpt-div", ad_likely=True, x=120, y=420))
    dom = FakeDom([gpt])
    generator, session, consent = _generator(dom)

    result = asyncio.run(generator.generate(_request()))

    assert len(result.candidates) == 1
    assert result.candidates[0].ad_likely
    assert result.candidates[0].score >= 55
    assert result.placement.method == "dom-injected"
    assert (result.placement.x, result.placement.y) == (120, 420)
    assert result.placement.fallback_reason is None
    assert result.url == "https://example-news.de"
    assert result.consent_handled
    assert consent.seeded == ["https://example-news.de"]
    assert session.opened == ["desktop"]
    assert ("settle_assets", 5000) in dom.calls
    assert Image.open(BytesIO(result.image)).getpixel((5, 5))[:3] == (200, 230, 200)


def test_page_without_ads_falls_back_to_heuristic_placement():
    dom = FakeDom(page_size=(1280, 2000))
    generator, _, _ = _generator(dom)

    result = asyncio.run(generator.generate(_request("728x90", allow_heuristic_fallback=True)))

    assert result.candidates == ()
    assert result.placement.method == "heuristic"
    assert result.placement.fallback_reason == "no-slot"
    assert (result.placement.x, result.placement.y) == (276, 150)
    assert result.placement.as_dict()["domInjectionFallbackReason"] == "no-slot"


def test_page_without_ads_and_no_fallback_produces_no_image():
    dom = FakeDom(page_size=(1280, 2000))
    generator, _, _ = _generator(dom)

    with pytest.raises(NoReliableSlot) as exc_info:
        asyncio.run(generator.generate(_request("728x90")))
    assert exc_info.value.status == 422


def test_mismatched_image_is_rejected_before_browser_work():
    dom = FakeDom()
    generator, session, consent = _generator(dom)
    request = _request(creative=Creative(image=png_bytes(320, 250)))

    with pytest.raises(RequestValidationError, match="dimensions"):
        asyncio.run(generator.generate(request))
    assert session.opened == []
    assert consent.seeded == []
    assert dom.calls == []


def test_detected_slot_that_cannot_take_the_creative_is_composited():
    # a plain size-matched box ranks but is not eligible for injection
    box = FakeElement(slot_record("adframe-slot-3", 300, 250, x=600, y=500))
    dom = FakeDom([box], page_size=(1280, 2000))
    generator, _, _ = _generator(dom)

    result = asyncio.run(generator.generate(_request()))

    assert result.placement.method == "detected"
    assert result.placement.fallback_reason == "no-eligible-slot"
    assert (result.placement.x, result.placement.y) == (600, 500)
    im = Image.open(BytesIO(result.image)).convert("RGB")
    assert im.getpixel((750, 625)) == (0, 0, 255)
    # untouched page outside the overlay comes from the plain capture
    assert im.getpixel((5, 5)) == (255, 255, 255)


def test_failed_tag_injection_uses_renderer_in_composite():
    gone = FakeElement(slot_record("adframe-slot-1", 300, 250, kind="gpt-div", ad_likely=True), present=False)
    dom = FakeDom([gone], page_size=(1280, 2000))
    renderer = FakeRenderer(png_bytes(300, 250, color=(255, 0, 0)))
    generator, _, _ = _generator(dom, renderer=renderer)

    result = asyncio.run(generator.generate(_request(creative=Creative(tag="<div>ad</div>"))))

    assert result.placement.method == "detected"
    assert result.placement.fallback_reason == "all-candidates-failed"
    assert result.placement.tag_rendered
    assert renderer.calls == [("<div>ad</div>", 300, 250)]


def test_unreachable_page_surfaces_page_load_timeout():
    dom = FakeDom(navigation_failures=2)
    generator, _, _ = _generator(dom)

    with pytest.raises(PageLoadTimeout):
        asyncio.run(generator.generate(_request()))


def test_overall_request_timeout():
    class SlowDom(FakeDom):
        async def navigate(self, url, *, wait_until, timeout_ms):
            await asyncio.sleep(1)

    generator, _, _ = _generator(SlowDom(), timeouts=Timeouts(request_s=0.05))

    with pytest.raises(PageLoadTimeout, match="request exceeded"):
        asyncio.run(generator.generate(_request()))


def test_page_error_during_injection_falls_back_to_composite():
    class NavigatingDom(FakeDom):
        async def insert_image(self, slot_id, src, width, height):
            raise PlaywrightError("Execution context was destroyed, most likely because of a navigation")

    gpt = FakeElement(slot_record("adframe-slot-1", 300, 250, kind="gpt-div", ad_likely=True, x=120, y=420))
    dom = NavigatingDom([gpt], page_size=(1280, 2000))
    generator, _, _ = _generator(dom)

    result = asyncio.run(generator.generate(_request()))

    assert result.placement.method == "detected"
    assert result.placement.fallback_reason == "all-candidates-failed"
    assert (result.placement.x, result.placement.y) == (120, 420)
    assert Image.open(BytesIO(result.image)).convert("RGB").getpixel((270, 545)) == (0, 0, 255)
