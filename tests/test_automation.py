"""Slot collection and iframe replacement against a real headless Chromium.

Pages are loaded with ``set_content`` and every network request is aborted, so
nothing leaves the machine. The module skips when Chromium cannot be launched.
"""

import asyncio
import re

import pytest
from playwright.async_api import Error as PlaywrightError

from adframe.automation import AD_HINT_PATTERN, SLOT_ATTR, PlaywrightAutomation
from adframe.browser import BrowserSession
from adframe.detect import detect_slots, rank_candidates
from adframe.inject import inject_creative
from adframe.models import AD_SIZES, Creative
from adframe.playwright import error_line
from fakes import png_bytes

GPT_PAGE = """<!DOCTYPE html>
<html><body style="margin:0">
<header style="height:120px">Site header</header>
<div id="div-gpt-ad-123" style="width:300px;height:250px;margin-left:40px"></div>
</body></html>"""

IFRAME_PAGE = """<!DOCTYPE html>
<html><body style="margin:0">
<div style="padding:20px">
<iframe id="google_ads_iframe_1" src="https://tpc.googlesyndication.com/safeframe/1-0-40/html/container.html"
        width="300" height="250" style="border:0;display:block"></iframe>
</div>
</body></html>"""


async def _abort(route):
    await route.abort()


def _run(html, check, **automation_kw):
    """Load ``html`` into a fresh desktop page and await ``check(automation, page, session)``."""

    async def go():
        session = BrowserSession()
        try:
            try:
                await session.browser()
            except PlaywrightError as exc:
                return exc, None
            async with session.page("desktop", block_resources=False) as page:
                await page.route("**/*", _abort)
                await page.set_content(html)
                return None, await check(PlaywrightAutomation(page, **automation_kw), page, session)
        finally:
            await session.close()

    unavailable, result = asyncio.run(go())
    if unavailable is not None:
        pytest.skip(f"chromium unavailable: {error_line(unavailable)}")
    return result


def test_gpt_div_is_found_with_stable_ids():
    async def check(automation, page, session):
        first = await automation.collect_slots(300, 250)
        second = await automation.collect_slots(300, 250)
        detected = [await detect_slots(automation, 300, 250) for _ in range(2)]
        return first, second, detected, session.connected

    first, second, detected, connected = _run(GPT_PAGE, check)

    assert connected
    ranked = rank_candidates(first, 300, 250)
    assert len(ranked) == 1
    assert ranked[0].kind == "gpt-div"
    assert ranked[0].ad_likely
    assert ranked[0].score >= 55
    assert (ranked[0].x, ranked[0].y, ranked[0].width, ranked[0].height) == (40, 120, 300, 250)
    assert {r["slot_id"] for r in first} == {r["slot_id"] for r in second}
    assert detected[0] == detected[1]
    assert [c.slot_id for c in detected[0]] == [ranked[0].slot_id]


def test_ad_network_iframe_is_replaced_by_a_sized_div():
    async def check(automation, page, session):
        records = await automation.collect_slots(300, 250)
        frame = next(r for r in records if r["kind"] == "iframe")
        replaced = await automation.replace_iframe(frame["slot_id"])
        remaining = await page.locator('iframe[src*="googlesyndication"]').count()
        state = await automation.inspect(frame["slot_id"])
        again = await automation.replace_iframe(frame["slot_id"])
        return frame, replaced, remaining, state, again

    frame, replaced, remaining, state, again = _run(IFRAME_PAGE, check)

    assert frame["ad_likely"]
    assert replaced
    assert remaining == 0
    assert state.tag == "div"
    assert (state.rect.width, state.rect.height) == (300, 250)
    assert not again


def test_creative_lands_in_ad_network_iframe_slot():
    async def check(automation, page, session):
        candidates = rank_candidates(await automation.collect_slots(300, 250), 300, 250)
        creative = Creative(image=png_bytes(300, 250, color=(0, 0, 255)))
        result = await inject_creative(automation, candidates, AD_SIZES["300x250"], creative)
        slot = page.locator(f'[{SLOT_ATTR}="{result.slot_id}"]')
        return (
            candidates,
            result,
            await page.locator("iframe").count(),
            await slot.locator("img").count(),
            await slot.locator("[data-adframe-badge]").count(),
        )

    candidates, result, frames, images, badges = _run(IFRAME_PAGE, check)

    assert candidates[0].kind == "iframe"
    assert result.succeeded
    assert result.slot_id == candidates[0].slot_id
    assert (result.rect.width, result.rect.height) == (300, 250)
    assert (frames, images, badges) == (0, 1, 1)


def test_invalid_known_selector_is_skipped():
    html = '<html><body style="margin:0"><div class="ad-container" style="width:320px;height:100px"></div></body></html>'

    async def check(automation, page, session):
        return await automation.collect_slots(300, 250)

    records = _run(html, check, known_selectors=["div[", ".ad-container"])
    assert [r["kind"] for r in records] == ["known-ad-div"]
    assert records[0]["ad_likely"]


def test_fully_transparent_ancestor_hides_slot():
    html = """<html><body style="margin:0">
    <div style="opacity:0"><div id="div-gpt-ad-9" style="width:300px;height:250px"></div></div>
    </body></html>"""

    async def check(automation, page, session):
        return await automation.collect_slots(300, 250)

    records = _run(html, check)
    gpt = [r for r in records if r["kind"] == "gpt-div"]
    assert len(gpt) == 1
    assert not gpt[0]["visible"]
    assert rank_candidates(records, 300, 250) == []


def test_duplicate_preset_slot_ids_are_made_unique():
    html = f"""<html><body style="margin:0">
    <div id="div-gpt-ad-1" {SLOT_ATTR}="dup" style="width:300px;height:250px"></div>
    <div id="div-gpt-ad-2" {SLOT_ATTR}="dup" style="width:300px;height:250px"></div>
    </body></html>"""

    async def check(automation, page, session):
        first = await automation.collect_slots(300, 250)
        second = await automation.collect_slots(300, 250)
        return first, second

    first, second = _run(html, check)
    ids = {r["slot_id"] for r in first}
    assert len(ids) == 2
    assert ids == {r["slot_id"] for r in second}
    assert len(rank_candidates(first, 300, 250)) == 2


def test_session_reports_disconnect_after_close():
    async def go():
        session = BrowserSession()
        try:
            await session.browser()
        except PlaywrightError as exc:
            await session.close()
            return exc, None, None
        before = session.connected
        await session.close()
        return None, before, session.connected

    unavailable, before, after = asyncio.run(go())
    if unavailable is not None:
        pytest.skip(f"chromium unavailable: {error_line(unavailable)}")
    assert before
    assert not after


def test_ad_hint_pattern_matches_whole_tokens():
    hint = re.compile(AD_HINT_PATTERN, re.I)
    assert hint.search("sidebar-ad")
    assert hint.search("advertisement")
    assert hint.search("leaderboard-top")
    assert hint.search("div-gpt-ad-123")
    assert not hint.search("site-header shadow")
    assert not hint.search("download-button")
