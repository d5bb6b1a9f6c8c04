import asyncio

from playwright.async_api import Error as PlaywrightError

from adframe.config import ScoringWeights
from adframe.detect import detect_slots, editorial_penalty, merge_candidates, rank_candidates, score_slot, type_bonus
from adframe.models import SlotCandidate
from fakes import FakeDom, FakeElement, slot_record


def _candidate(**kw) -> SlotCandidate:
    record = slot_record(kw.pop("slot_id", "adframe-slot-1"), kw.pop("width", 300), kw.pop("height", 250), **kw)
    return SlotCandidate.from_record(record)


def test_exact_fit_gpt_slot_in_viewport_scores_full_marks():
    c = _candidate(kind="gpt-div", ad_likely=True)
    assert score_slot(c, 300, 250) == 120


def test_article_text_outweighs_perfect_size_match_without_ad_naming():
    c = _candidate(text_length=400, in_article=True)
    assert score_slot(c, 300, 250) <= 0
    assert rank_candidates([slot_record("adframe-slot-1", 300, 250, text_length=400, in_article=True)], 300, 250) == []


def test_editorial_penalty_tiers():
    assert editorial_penalty(_candidate(text_length=81)) == 25
    assert editorial_penalty(_candidate(text_length=221)) == 45
    assert editorial_penalty(_candidate(heading_count=1, paragraph_count=2)) == 55
    assert editorial_penalty(_candidate(in_article=True)) == 35


def test_type_bonus_by_kind():
    assert type_bonus("gpt-div") == 12
    assert type_bonus("iframe") == 10
    assert type_bonus("known-ad-div") == 6
    assert type_bonus("size-matched-generic") == 0


def test_deep_page_and_area_mismatch_penalties():
    base = score_slot(_candidate(kind="gpt-div", ad_likely=True), 300, 250)
    deep = score_slot(_candidate(kind="gpt-div", ad_likely=True, y=7000), 300, 250)
    assert base - deep == 20
    huge = _candidate(width=700, height=600, ad_likely=True)
    assert score_slot(huge, 300, 250) < 55


def test_threshold_is_inclusive():
    # 80 for a perfect generic fit, minus 25 for medium text, lands exactly on the threshold
    ranked = rank_candidates([slot_record("adframe-slot-1", 300, 250, text_length=100)], 300, 250)
    assert [c.score for c in ranked] == [55]
    strict = rank_candidates(
        [slot_record("adframe-slot-1", 300, 250, text_length=100)], 300, 250, weights=ScoringWeights(accept_threshold=55.5)
    )
    assert strict == []


def test_invisible_and_degenerate_records_are_dropped():
    records = [
        slot_record("adframe-slot-1", 300, 250, visible=False, ad_likely=True),
        slot_record("adframe-slot-2", 1, 250, ad_likely=True),
    ]
    assert rank_candidates(records, 300, 250) == []


def test_duplicate_ids_collapse_to_ad_likely_variant():
    records = [
        slot_record("adframe-slot-1", 300, 250, kind="iframe"),
        slot_record("adframe-slot-1", 300, 250, kind="gpt-div", ad_likely=True),
    ]
    ranked = rank_candidates(records, 300, 250)
    assert len(ranked) == 1
    assert ranked[0].ad_likely
    assert ranked[0].kind == "gpt-div"


def test_ranking_order_and_cap():
    records = [slot_record(f"adframe-slot-{i}", 300, 250, ad_likely=True, y=1000 - i * 50) for i in range(12)]
    records.append(slot_record("adframe-slot-best", 300, 250, ad_likely=True, kind="gpt-div", y=2000))
    ranked = rank_candidates(records, 300, 250)
    assert len(ranked) == 8
    assert ranked[0].slot_id == "adframe-slot-best"
    # equal scores fall back to page order
    ys = [c.y for c in ranked[1:]]
    assert ys == sorted(ys)


def test_merge_candidates_keeps_higher_score_per_id():
    low = _candidate(ad_likely=True, viewport_fraction=0.0).with_score(105)
    high = _candidate(ad_likely=True, viewport_fraction=1.0).with_score(120)
    other = _candidate(slot_id="adframe-slot-2", ad_likely=True).with_score(90)
    merged = merge_candidates([low, other], [high])
    assert [(c.slot_id, c.score) for c in merged] == [("adframe-slot-1", 120), ("adframe-slot-2", 90)]


def test_detect_slots_uses_first_pass_when_it_finds_a_slot():
    dom = FakeDom([FakeElement(slot_record("adframe-slot-1", 300, 250, kind="gpt-div", ad_likely=True))])
    ranked = asyncio.run(detect_slots(dom, 300, 250))
    assert [c.slot_id for c in ranked] == ["adframe-slot-1"]
    assert ranked[0].score == 120
    assert ("scroll_to", 1080) not in dom.calls


def test_detect_slots_rescans_after_scrolling_and_returns_to_top():
    lazy = slot_record("adframe-slot-7", 728, 90, kind="iframe", ad_likely=True, y=1400)
    dom = FakeDom([], scrolled_records=[lazy])
    ranked = asyncio.run(detect_slots(dom, 728, 90))
    assert [c.slot_id for c in ranked] == ["adframe-slot-7"]
    scrolls = [call[1] for call in dom.calls if call[0] == "scroll_to"]
    assert scrolls == [1080, 0]
    assert 500 in dom.waits


def test_detect_slots_returns_empty_for_pages_without_ads():
    dom = FakeDom([FakeElement(slot_record("adframe-slot-1", 640, 480, text_length=900, in_article=True))])
    assert asyncio.run(detect_slots(dom, 728, 90)) == []


def test_ranked_ids_are_unique_and_scores_non_increasing():
    records = [
        slot_record("adframe-slot-1", 300, 250, kind="iframe", y=2600),
        slot_record("adframe-slot-2", 300, 250, text_length=100),
        slot_record("adframe-slot-1", 300, 250, kind="gpt-div", ad_likely=True, y=2600),
        slot_record("adframe-slot-3", 320, 260, kind="known-ad-div", ad_likely=True, viewport_fraction=0.4),
        slot_record("adframe-slot-4", 300, 250, ad_likely=True, y=7000),
        slot_record("adframe-slot-3", 320, 260, kind="known-ad-div", ad_likely=True, viewport_fraction=0.4),
        slot_record("adframe-slot-5", 970, 250, ad_likely=True),
    ]
    ranked = rank_candidates(records, 300, 250)
    ids = [c.slot_id for c in ranked]
    assert len(ids) == len(set(ids))
    assert "adframe-slot-1" in ids
    scores = [c.score for c in ranked]
    assert scores == sorted(scores, reverse=True)


def test_detect_slots_is_idempotent_on_an_unchanged_page():
    dom = FakeDom(
        [
            FakeElement(slot_record("adframe-slot-1", 300, 250, kind="gpt-div", ad_likely=True)),
            FakeElement(slot_record("adframe-slot-2", 300, 250, kind="iframe", y=1200)),
        ]
    )
    first = asyncio.run(detect_slots(dom, 300, 250))
    second = asyncio.run(detect_slots(dom, 300, 250))
    assert first
    assert first == second


class _BrokenDom(FakeDom):
    async def collect_slots(self, target_width, target_height, limits):
        self.calls.append(("collect_slots", self.scroll_y))
        raise PlaywrightError("Execution context was destroyed, most likely because of a navigation")


def test_detect_slots_survives_page_errors_and_resets_scroll():
    dom = _BrokenDom([FakeElement(slot_record("adframe-slot-1", 300, 250, kind="gpt-div", ad_likely=True))])
    assert asyncio.run(detect_slots(dom, 300, 250)) == []
    scrolls = [call[1] for call in dom.calls if call[0] == "scroll_to"]
    assert scrolls[-1] == 0
    assert dom.scroll_y == 0
