"""Metadata helpers for stored mockups."""

from __future__ import annotations

from collections import OrderedDict
from typing import OrderedDict as OrderedDictType

from .models import Placement


def build_mockup_metadata(
    *,
    mockup_id: str,
    website_url: str,
    ad_size: str,
    device: str,
    placement: Placement,
    consent_handled: bool,
    created_at: str,
    sha256: str,
    generator_version: str,
    topic: str | None = None,
    has_ad_tag: bool = False,
) -> OrderedDictType[str, str]:
    """Return string-valued metadata with deterministic ordering for auditability."""

    md: OrderedDictType[str, str] = OrderedDict()
    md["mockup_id"] = mockup_id
    md["website_url"] = website_url
    md["ad_size"] = ad_size
    md["ad_size_name"] = placement.ad_size_name
    md["device"] = device
    md["placement_method"] = placement.method
    md["placement_x"] = str(placement.x)
    md["placement_y"] = str(placement.y)
    md["ad_tag_rendered"] = "true" if placement.tag_rendered else "false"
    md["consent_handled"] = "true" if consent_handled else "false"
    md["created_at"] = created_at
    md["sha256"] = sha256
    md["generator_version"] = generator_version
    if placement.fallback_reason:
        md["dom_injection_fallback_reason"] = placement.fallback_reason
    if topic:
        md["topic"] = topic
    if has_ad_tag:
        md["has_ad_tag"] = "true"
    return md


__all__ = ["build_mockup_metadata"]
