"""Publisher website suggestions for a topic and target country.

Asks Gemini (REST ``generateContent``) for exactly three publisher URLs with
standard display placements, drops blocked or incomplete entries, and falls
back to a static per-country table whenever the model call fails or returns
nothing usable.

Usage
-----
    GEMINI_API_KEY=... python scripts/suggest_websites.py --topic Sports --country Germany
"""

from __future__ import annotations

import argparse
import json
import os
import re
from dataclasses import dataclass
from typing import Any

import requests

from ..errors import RequestValidationError
from ..logging import jlog
from ..urls import BLOCKED_DOMAINS, is_blocked_domain
from .fallback import Publisher, fallback_publishers

GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
DEFAULT_GEMINI_MODEL = os.getenv("ADFRAME_GEMINI_MODEL", "gemini-2.0-flash")
GEMINI_TIMEOUT_S = 30
MAX_SUGGESTIONS = 3

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")

PROMPT_TEMPLATE = """You are a digital media planning assistant. Given a topic/vertical and a target country, suggest exactly 3 real, active publisher websites that:
1. Are major, well-known publishers in that country for the given topic
2. Have standard IAB display ad placements
3. Are freely accessible (no hard paywall blocking all content)
4. Have a desktop and mobile version
5. URL should point to a topic-relevant section/subdomain/path whenever possible (not generic homepage unless no section URL exists)

IMPORTANT: Do NOT suggest any of the following domains (social platforms, search engines, aggregators, ecommerce, video platforms):
{blocked}

Topic: {topic}
Country: {country}

Respond ONLY in this exact JSON format, no other text:
{{
  "suggestions": [
    {{
      "url": "https://www.example.com/topic-or-section",
      "name": "Example Publisher",
      "reason": "Brief reason why this fits the topic/country"
    }}
  ]
}}"""


def build_prompt(topic: str, country: str) -> str:
    return PROMPT_TEMPLATE.format(blocked=", ".join(BLOCKED_DOMAINS), topic=topic, country=country)


def parse_suggestions(text: str) -> list[Publisher]:
    """Parse the model reply (code fences tolerated); raises ``ValueError`` when nothing usable remains."""

    m = _FENCE_RE.search(text)
    payload = json.loads(m.group(1).strip() if m else text)
    raw = payload.get("suggestions") if isinstance(payload, dict) else None
    if not isinstance(raw, list) or not raw:
        raise ValueError("invalid response structure from Gemini")
    valid = [
        Publisher(str(s["url"]), str(s["name"]), str(s["reason"]))
        for s in raw
        if isinstance(s, dict) and s.get("url") and s.get("name") and s.get("reason") and not is_blocked_domain(str(s["url"]))
    ]
    if not valid:
        raise ValueError("no usable suggestions in Gemini response")
    return valid[:MAX_SUGGESTIONS]


def call_gemini(
    prompt: str,
    *,
    api_key: str,
    model: str = DEFAULT_GEMINI_MODEL,
    session: requests.Session | None = None,
    timeout: float = GEMINI_TIMEOUT_S,
) -> str:
    http = session or requests.Session()
    resp = http.post(
        GEMINI_ENDPOINT.format(model=model),
        params={"key": api_key},
        json={
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": 0.2, "maxOutputTokens": 1024},
        },
        timeout=timeout,
    )
    resp.raise_for_status()
    data: dict[str, Any] = resp.json()
    parts = data["candidates"][0]["content"]["parts"]
    return "".join(part.get("text", "") for part in parts)


def suggest_websites(
    topic: str,
    country: str,
    *,
    api_key: str | None = None,
    model: str = DEFAULT_GEMINI_MODEL,
    session: requests.Session | None = None,
) -> list[Publisher]:
    if not (topic or "").strip() or not (country or "").strip():
        raise RequestValidationError("Topic and country are required")
    key = api_key or os.getenv("GEMINI_API_KEY")
    try:
        if not key:
            raise ValueError("GEMINI_API_KEY environment variable is not set")
        text = call_gemini(build_prompt(topic, country), api_key=key, model=model, session=session)
        suggestions = parse_suggestions(text)
    except (requests.RequestException, ValueError, KeyError, IndexError, TypeError) as exc:
        jlog("warning", event="suggest_fallback", topic=topic, country=country, error=str(exc))
        return fallback_publishers(topic, country)
    jlog("info", event="suggest_ok", topic=topic, country=country, count=len(suggestions), model=model)
    return suggestions


# ============================
# CLI
# ============================


@dataclass(frozen=True)
class CliArgs:
    topic: str
    country: str
    model: str


def parse_args(argv: list[str] | None = None) -> CliArgs:
    p = argparse.ArgumentParser(description="Suggest publisher websites for an ad mockup")
    p.add_argument("--topic", required=True)
    p.add_argument("--country", required=True)
    p.add_argument("--model", default=DEFAULT_GEMINI_MODEL)
    a = p.parse_args(argv)
    return CliArgs(topic=a.topic, country=a.country, model=a.model)


def run(args: CliArgs) -> list[dict[str, str]]:
    return [s.as_dict() for s in suggest_websites(args.topic, args.country, model=args.model)]


__all__ = [
    "CliArgs",
    "build_prompt",
    "call_gemini",
    "parse_args",
    "parse_suggestions",
    "run",
    "suggest_websites",
]
