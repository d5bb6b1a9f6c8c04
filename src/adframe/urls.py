"""URL helpers: target normalization, blocked-domain policy, topic-aware section lookup."""

from __future__ import annotations

import asyncio
import re
import urllib.parse
from dataclasses import dataclass

import requests

from .logging import jlog

BLOCKED_DOMAINS = [
    # Social platforms
    "facebook.com",
    "twitter.com",
    "x.com",
    "instagram.com",
    "tiktok.com",
    "linkedin.com",
    "reddit.com",
    "pinterest.com",
    # Search engines
    "google.com",
    "bing.com",
    "yahoo.com",
    "duckduckgo.com",
    # Aggregators
    "news.google.com",
    "flipboard.com",
    "feedly.com",
    "apple.news",
    # Ecommerce
    "amazon.*",
    "ebay.*",
    "aliexpress.com",
    # Other excluded
    "wikipedia.org",
    "youtube.com",
    "vimeo.com",
]

TOPIC_PATH_HINTS = {
    "sports": ["sport", "sports", "soccer", "football", "fussball"],
    "soccer": ["soccer", "football", "fussball", "sport"],
    "finance": ["finance", "money", "wirtschaft", "boerse", "business"],
    "news": ["news", "politik", "world", "nachrichten"],
    "tech": ["tech", "technology", "it", "digital", "ki", "ai"],
    "automotive": ["auto", "automotive", "cars", "mobilitaet"],
    "travel": ["travel", "reisen", "urlaub"],
    "cooking": ["cooking", "rezepte", "food", "recipe", "essen"],
    "lifestyle": ["lifestyle", "leben", "style"],
}

PROBE_USER_AGENT = "Mozilla/5.0 (compatible; AdFrame/1.0; +https://adframe.local)"
PROBE_TIMEOUT_S = 4.5
MAX_TOPIC_CANDIDATES = 16
MIN_TOPIC_SCORE = 8

_TOKEN_RE = re.compile(r"[^a-z0-9]+")


def normalize_target_url(url: str) -> str:
    url = (url or "").strip()
    if url and not (url.startswith("http://") or url.startswith("https://")):
        url = "https://" + url
    return url


def _hostname(url: str) -> str:
    return (urllib.parse.urlparse(url).hostname or "").lower()


def is_blocked_domain(url: str) -> bool:
    try:
        host = _hostname(url)
    except ValueError:
        return False
    if host.startswith("www."):
        host = host[4:]
    for blocked in BLOCKED_DOMAINS:
        if blocked.endswith(".*"):
            if f".{blocked[:-2]}." in f".{host}":
                return True
        elif host == blocked or host.endswith("." + blocked):
            return True
    return False


def _unique(items: list[str]) -> list[str]:
    seen: dict[str, None] = {}
    for item in items:
        if item:
            seen.setdefault(item, None)
    return list(seen)


def topic_keywords(topic: str | None) -> list[str]:
    if not topic:
        return []
    tokens = [t for t in _TOKEN_RE.split(topic.strip().lower()) if t]
    expanded = list(tokens)
    for token in tokens:
        expanded.extend(TOPIC_PATH_HINTS.get(token, []))
    if "ai" in tokens:
        expanded.extend(["ki", "artificial-intelligence"])
    return _unique(expanded)[:8]


def _is_site_root(parsed: urllib.parse.ParseResult) -> bool:
    return (parsed.path or "/") == "/"


def build_topic_candidates(base_url: str, keywords: list[str]) -> list[str]:
    parsed = urllib.parse.urlparse(base_url)
    if not _is_site_root(parsed):
        return [base_url]
    host = (parsed.hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    labels = host.split(".")
    base_domain = ".".join(labels[-2:]) if len(labels) >= 2 else host
    scheme = parsed.scheme or "https"
    candidates = [base_url]
    for kw in keywords:
        candidates.extend(
            [
                f"{scheme}://{host}/{kw}",
                f"{scheme}://{host}/{kw}/",
                f"{scheme}://{host}/topic/{kw}",
                f"{scheme}://{host}/tag/{kw}",
                f"{scheme}://{host}/thema/{kw}",
                f"{scheme}://{host}/rubrik/{kw}",
                f"{scheme}://{kw}.{base_domain}/",
            ]
        )
    return _unique(candidates)


@dataclass(frozen=True)
class TopicProbe:
    url: str
    score: int


def score_topic_candidate(session: requests.Session, candidate_url: str, keywords: list[str]) -> TopicProbe | None:
    try:
        resp = session.get(candidate_url, timeout=PROBE_TIMEOUT_S, allow_redirects=True)
        if not resp.ok:
            return None
        final_url = resp.url or candidate_url
        final_path = urllib.parse.urlparse(final_url).path.lower()
        head = resp.text.lower()[:4000]
    except requests.RequestException:
        return None
    score = 0
    for kw in keywords:
        if f"/{kw}" in final_path:
            score += 10
        if kw in final_path:
            score += 5
        if kw in head:
            score += 2
    if final_path not in ("", "/"):
        score += 6
    return TopicProbe(url=final_url, score=score)


def _make_probe_session() -> requests.Session:
    s = requests.Session()
    s.headers.update({"User-Agent": PROBE_USER_AGENT, "Accept": "text/html,application/xhtml+xml"})
    return s


async def resolve_topic_aware_url(url: str, topic: str | None, *, session: requests.Session | None = None) -> str:
    """Swap a bare site root for its best topic section, if one scores well enough."""

    keywords = topic_keywords(topic)
    if not keywords or not _is_site_root(urllib.parse.urlparse(url)):
        return url
    http = session or _make_probe_session()
    candidates = build_topic_candidates(url, keywords)[:MAX_TOPIC_CANDIDATES]
    try:
        probes = await asyncio.gather(*(asyncio.to_thread(score_topic_candidate, http, c, keywords) for c in candidates))
    finally:
        if session is None:
            http.close()
    valid = [p for p in probes if p is not None]
    if not valid:
        return url
    best = max(valid, key=lambda p: p.score)
    jlog("info", event="topic_url_probe", url=url, topic=topic, best_url=best.url, best_score=best.score, probed=len(candidates))
    return best.url if best.score >= MIN_TOPIC_SCORE else url


__all__ = [
    "BLOCKED_DOMAINS",
    "TopicProbe",
    "build_topic_candidates",
    "is_blocked_domain",
    "normalize_target_url",
    "resolve_topic_aware_url",
    "score_topic_candidate",
    "topic_keywords",
]
