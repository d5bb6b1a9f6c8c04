from adframe.models import AD_SIZES, Creative, ElementState, MockupRequest, Placement, SlotCandidate, ad_size_name


def test_ad_size_table():
    assert AD_SIZES["300x250"].name == "Medium Rectangle"
    assert AD_SIZES["728x90"].desktop_only
    assert not AD_SIZES["300x600"].desktop_only
    assert ad_size_name("970x250") == "Billboard"
    assert ad_size_name("1x1") == "1x1"


def test_creative_kinds():
    assert Creative(tag="<div></div>").is_tag
    assert not Creative(image=b"x", tag="<div></div>").is_tag
    assert Creative().is_empty
    assert Creative(tag=" \n").is_empty
    assert not Creative(image=b"x").is_empty


def test_request_with_url_keeps_other_fields():
    req = MockupRequest(url="a.de", ad_size="300x250", topic="News")
    moved = req.with_url("https://a.de/news")
    assert moved.url == "https://a.de/news"
    assert moved.topic == "News"
    assert moved.size.width == 300


def test_slot_candidate_from_sparse_record():
    c = SlotCandidate.from_record({"slot_id": "adframe-slot-4", "width": "300", "height": 250})
    assert c.kind == "size-matched-generic"
    assert c.visible
    assert not c.ad_likely
    assert c.rect.area == 75000
    assert c.with_score(71.4567).score == 71.46


def test_element_state_iframe_detection():
    state = ElementState.from_record({"slot_id": "s", "tag": "IFRAME", "visible": True, "width": 10, "height": 10})
    assert state.is_iframe


def test_placement_as_dict_uses_wire_names():
    placement = Placement(1, 2, "300x250", "Medium Rectangle", "dom-injected", True)
    assert placement.as_dict() == {
        "x": 1,
        "y": 2,
        "adSize": "300x250",
        "adSizeName": "Medium Rectangle",
        "method": "dom-injected",
        "adTagRendered": True,
    }
    fallback = Placement(1, 2, "300x250", "Medium Rectangle", "heuristic", False, "no-slot")
    assert fallback.as_dict()["domInjectionFallbackReason"] == "no-slot"
