import asyncio
from datetime import datetime, timezone

from adframe.consent import CMP_STRATEGIES, ConsentHandler, consent_cookies
from adframe.strategies import Outcome


def test_consent_cookies_target_registrable_host():
    now = datetime(2026, 10, 19, 8, 30, tzinfo=timezone.utc)
    cookies = consent_cookies("https://www.spiegel.de/sport", now=now)
    names = [c["name"] for c in cookies]
    assert names[:3] == ["euconsent-v2", "OptanonAlertBoxClosed", "OptanonConsent"]
    assert "didomi_token" in names
    assert {c["domain"] for c in cookies} == {".spiegel.de"}
    by_name = {c["name"]: c["value"] for c in cookies}
    assert by_name["OptanonAlertBoxClosed"] == "2026-10-19T08:30:00.000Z"
    assert "groups=C0001:1,C0002:1,C0003:1,C0004:1" in by_name["OptanonConsent"]
    assert all(c["secure"] and c["path"] == "/" for c in cookies)


def test_consent_cookies_empty_without_host():
    assert consent_cookies("not a url") == []


def test_cmp_strategies_cover_major_vendors():
    names = {s.name for s in CMP_STRATEGIES}
    assert {"OneTrust", "Didomi", "SourcePoint"} <= names


class _Page:
    def __init__(self, overlays_removed: int = 0) -> None:
        self.overlays_removed = overlays_removed
        self.waited: list[int] = []

    async def wait_for_timeout(self, ms):
        self.waited.append(ms)

    async def evaluate(self, script, arg=None):
        return self.overlays_removed


class _Layer:
    def __init__(self, name: str, succeed: bool) -> None:
        self.name = name
        self.succeed = succeed
        self.tried = 0

    async def attempt(self, page):
        self.tried += 1
        return Outcome.ok(self.name) if self.succeed else Outcome.fail("nothing here")


def test_handle_stops_at_first_successful_layer():
    first, second, third = _Layer("a", False), _Layer("b", True), _Layer("c", True)
    handler = ConsentHandler([first, second, third], settle_ms=0)
    assert asyncio.run(handler.handle(_Page(), "https://example.de"))
    assert (first.tried, second.tried, third.tried) == (1, 1, 0)


def test_handle_counts_removed_overlays_as_handled():
    handler = ConsentHandler([_Layer("a", False)], settle_ms=0)
    assert asyncio.run(handler.handle(_Page(overlays_removed=2), "https://example.de"))
    assert not asyncio.run(handler.handle(_Page(), "https://example.de"))
