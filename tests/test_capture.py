import asyncio

import pytest

from adframe.capture import load_page, settle_lazy_content, take_capture
from adframe.config import Timeouts
from adframe.errors import PageLoadTimeout
from adframe.models import PageDimensions
from fakes import FakeDom

TIMEOUTS = Timeouts(navigation_ms=30000, retry_ms=20000)


def test_load_page_prefers_network_idle():
    dom = FakeDom()
    assert asyncio.run(load_page(dom, "https://example.de", TIMEOUTS)) == "networkidle"
    assert dom.calls == [("navigate", "https://example.de", "networkidle", 30000)]


def test_load_page_retries_with_relaxed_condition():
    dom = FakeDom(navigation_failures=1)
    assert asyncio.run(load_page(dom, "https://example.de", TIMEOUTS)) == "domcontentloaded"
    assert dom.calls[-1] == ("navigate", "https://example.de", "domcontentloaded", 20000)


def test_load_page_gives_up_after_retry():
    dom = FakeDom(navigation_failures=2)
    with pytest.raises(PageLoadTimeout) as exc_info:
        asyncio.run(load_page(dom, "https://example.de", TIMEOUTS))
    assert exc_info.value.status == 504
    assert exc_info.value.url == "https://example.de"


def test_settle_lazy_content_scrolls_then_returns_to_top():
    dom = FakeDom()
    asyncio.run(settle_lazy_content(dom))
    assert dom.calls == [("auto_scroll", 400, 150, 8000), ("scroll_to", 0)]
    assert dom.waits == [1000]


def test_take_capture_returns_full_page_raster():
    dom = FakeDom(page_size=(1280, 2400), viewport=800)
    capture = asyncio.run(take_capture(dom))
    assert capture.dimensions == PageDimensions(1280, 2400, 800)
    assert capture.screenshot.startswith(b"\x89PNG")
