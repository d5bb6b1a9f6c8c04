"""Value types passed between the capture, detection, injection and compositing stages."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

DESKTOP = "desktop"
MOBILE = "mobile"
DEVICES = (DESKTOP, MOBILE)

# Slot candidate kinds
KIND_IFRAME = "iframe"
KIND_KNOWN_AD = "known-ad-div"
KIND_GPT = "gpt-div"
KIND_GENERIC = "size-matched-generic"

# Injection failure reasons
NO_SLOT = "no-slot"
NO_ELIGIBLE_SLOT = "no-eligible-slot"
SLOT_NOT_FOUND = "slot-not-found"
SLOT_NOT_VISIBLE = "slot-not-visible"
CONTENT_LIKE_SLOT = "content-like-slot"
PAGE_ERROR = "page-error"
ALL_CANDIDATES_FAILED = "all-candidates-failed"

# Placement methods
METHOD_DOM_INJECTED = "dom-injected"
METHOD_DETECTED = "detected"
METHOD_HEURISTIC = "heuristic"


@dataclass(frozen=True)
class AdSize:
    token: str
    width: int
    height: int
    name: str
    desktop_only: bool = False


AD_SIZES: dict[str, AdSize] = {
    "728x90": AdSize("728x90", 728, 90, "Leaderboard", desktop_only=True),
    "970x250": AdSize("970x250", 970, 250, "Billboard", desktop_only=True),
    "300x250": AdSize("300x250", 300, 250, "Medium Rectangle"),
    "300x600": AdSize("300x600", 300, 600, "Half Page"),
    "160x600": AdSize("160x600", 160, 600, "Wide Skyscraper", desktop_only=True),
}


def ad_size_name(token: str) -> str:
    size = AD_SIZES.get(token)
    return size.name if size else token


@dataclass(frozen=True)
class Creative:
    """Either raster image bytes or an HTML/script ad tag."""

    image: bytes | None = None
    tag: str | None = None

    @property
    def is_tag(self) -> bool:
        return self.image is None and bool(self.tag and self.tag.strip())

    @property
    def is_empty(self) -> bool:
        return self.image is None and not (self.tag and self.tag.strip())


@dataclass(frozen=True)
class MockupRequest:
    url: str
    ad_size: str
    device: str = DESKTOP
    creative: Creative = field(default_factory=Creative)
    topic: str | None = None
    allow_heuristic_fallback: bool = False

    @property
    def size(self) -> AdSize:
        return AD_SIZES[self.ad_size]

    def with_url(self, url: str) -> MockupRequest:
        return replace(self, url=url)


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)


@dataclass(frozen=True)
class PageDimensions:
    width: int
    height: int
    viewport_height: int


@dataclass(frozen=True)
class SlotCandidate:
    """One ranked ad-slot candidate; ``slot_id`` is also set as a DOM attribute."""

    slot_id: str
    x: float
    y: float
    width: float
    height: float
    kind: str
    ad_likely: bool
    visible: bool = True
    viewport_fraction: float = 0.0
    text_length: int = 0
    heading_count: int = 0
    paragraph_count: int = 0
    in_article: bool = False
    score: float = 0.0

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> SlotCandidate:
        return cls(
            slot_id=str(record["slot_id"]),
            x=float(record.get("x") or 0),
            y=float(record.get("y") or 0),
            width=float(record.get("width") or 0),
            height=float(record.get("height") or 0),
            kind=str(record.get("kind") or KIND_GENERIC),
            ad_likely=bool(record.get("ad_likely")),
            visible=bool(record.get("visible", True)),
            viewport_fraction=float(record.get("viewport_fraction") or 0),
            text_length=int(record.get("text_length") or 0),
            heading_count=int(record.get("heading_count") or 0),
            paragraph_count=int(record.get("paragraph_count") or 0),
            in_article=bool(record.get("in_article")),
        )

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    def with_score(self, score: float) -> SlotCandidate:
        return replace(self, score=round(score, 2))


@dataclass(frozen=True)
class ElementState:
    """Live re-inspection of a candidate element at injection time."""

    slot_id: str
    tag: str
    rect: Rect
    visible: bool
    text_length: int = 0
    heading_count: int = 0
    paragraph_count: int = 0
    in_article: bool = False
    ad_hint: bool = False

    @property
    def is_iframe(self) -> bool:
        return self.tag.lower() == "iframe"

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> ElementState:
        return cls(
            slot_id=str(record["slot_id"]),
            tag=str(record.get("tag") or ""),
            rect=Rect(
                float(record.get("x") or 0),
                float(record.get("y") or 0),
                float(record.get("width") or 0),
                float(record.get("height") or 0),
            ),
            visible=bool(record.get("visible")),
            text_length=int(record.get("text_length") or 0),
            heading_count=int(record.get("heading_count") or 0),
            paragraph_count=int(record.get("paragraph_count") or 0),
            in_article=bool(record.get("in_article")),
            ad_hint=bool(record.get("ad_hint")),
        )


@dataclass(frozen=True)
class InjectionResult:
    succeeded: bool
    slot_id: str | None = None
    rect: Rect | None = None
    reason: str | None = None
    attempts: tuple[tuple[str, str], ...] = ()

    @classmethod
    def failure(cls, reason: str, attempts: tuple[tuple[str, str], ...] = ()) -> InjectionResult:
        return cls(succeeded=False, reason=reason, attempts=attempts)


@dataclass(frozen=True)
class Placement:
    x: int
    y: int
    ad_size: str
    ad_size_name: str
    method: str
    tag_rendered: bool
    fallback_reason: str | None = None

    def as_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "x": self.x,
            "y": self.y,
            "adSize": self.ad_size,
            "adSizeName": self.ad_size_name,
            "method": self.method,
            "adTagRendered": self.tag_rendered,
        }
        if self.fallback_reason:
            out["domInjectionFallbackReason"] = self.fallback_reason
        return out


@dataclass(frozen=True)
class MockupResult:
    image: bytes
    placement: Placement
    consent_handled: bool
    url: str
    candidates: tuple[SlotCandidate, ...] = ()


__all__ = [
    "AD_SIZES",
    "ALL_CANDIDATES_FAILED",
    "CONTENT_LIKE_SLOT",
    "DESKTOP",
    "DEVICES",
    "KIND_GENERIC",
    "KIND_GPT",
    "KIND_IFRAME",
    "KIND_KNOWN_AD",
    "METHOD_DETECTED",
    "METHOD_DOM_INJECTED",
    "METHOD_HEURISTIC",
    "MOBILE",
    "NO_ELIGIBLE_SLOT",
    "NO_SLOT",
    "PAGE_ERROR",
    "SLOT_NOT_FOUND",
    "SLOT_NOT_VISIBLE",
    "AdSize",
    "Creative",
    "ElementState",
    "InjectionResult",
    "MockupRequest",
    "MockupResult",
    "PageDimensions",
    "Placement",
    "Rect",
    "SlotCandidate",
    "ad_size_name",
]
