"""Mockup storage: local PNG + JSON sidecar, bounded index, optional Google Cloud Storage mirror."""

from __future__ import annotations

import json
import os
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from google.cloud import storage  # type: ignore[attr-defined]

from .imaging import sha256_hex
from .logging import jlog
from .metadata import build_mockup_metadata
from .models import MockupRequest, MockupResult
from .versioning import get_generator_version

UTC = getattr(datetime, "UTC", timezone.utc)

DEFAULT_OUTPUT_DIR = os.getenv("ADFRAME_OUTPUT_DIR", "output")
MAX_ENTRIES = 100
KEEP_ENTRIES = 50
AD_TAG_PREFIX = "adtag-"

AD_TAG_PREVIEW_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Ad Tag Preview</title>
  <style>
    body {{ margin: 0; padding: 20px; font-family: Arial, sans-serif; background: #f5f5f5; }}
    .ad-container {{ display: inline-block; border: 1px solid #ddd; background: white; }}
  </style>
</head>
<body>
  <div class="ad-container">
    {tag}
  </div>
</body>
</html>"""


def canonical_mockup_path(bucket: str, mockup_id: str) -> str:
    return f"gs://{bucket}/mockups/{mockup_id[:2]}/{mockup_id}.png"


def upload_png(
    storage_client: storage.Client,
    bucket_name: str,
    blob_path: str,
    png_bytes: bytes,
    metadata: dict[str, str],
    *,
    dry_run: bool = False,
) -> None:
    if not blob_path.startswith(f"gs://{bucket_name}/"):
        raise ValueError("blob_path must start with gs://<bucket>/")
    if dry_run:
        jlog("info", event="dry_run_upload", path=blob_path)
        return
    bucket = storage_client.bucket(bucket_name)
    name = blob_path.split(f"gs://{bucket_name}/", 1)[1]
    blob = bucket.blob(name)
    blob.cache_control = "public, max-age=3600"
    blob.metadata = dict(metadata or {})
    blob.upload_from_string(png_bytes, content_type="image/png")


@dataclass(frozen=True)
class StoredMockup:
    mockup_id: str
    path: str
    metadata: dict[str, Any]
    gcs_path: str | None = None

    @property
    def download_filename(self) -> str:
        return f"adframe-mockup-{self.metadata.get('ad_size', 'ad')}-{int(time.time() * 1000)}.png"


class MockupStore:
    """In-process index of generated mockups backed by files in ``output_dir``.

    Ad tags are remembered under ``adtag-<id>`` so they can be downloaded as an
    HTML preview. When the index holds more than ``max_entries`` items, the
    oldest are dropped (files included) until ``keep_entries`` remain.
    """

    def __init__(
        self,
        output_dir: str = DEFAULT_OUTPUT_DIR,
        *,
        storage_client: storage.Client | None = None,
        bucket_name: str | None = None,
        dry_run: bool = False,
        max_entries: int = MAX_ENTRIES,
        keep_entries: int = KEEP_ENTRIES,
    ) -> None:
        self.output_dir = output_dir
        self.storage_client = storage_client
        self.bucket_name = bucket_name
        self.dry_run = dry_run
        self.max_entries = max_entries
        self.keep_entries = keep_entries
        self._entries: OrderedDict[str, Any] = OrderedDict()
        os.makedirs(self.output_dir, exist_ok=True)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def save(
        self,
        result: MockupResult,
        request: MockupRequest,
        *,
        mockup_id: str | None = None,
        created_at: str | None = None,
    ) -> StoredMockup:
        mockup_id = mockup_id or str(uuid.uuid4())
        created_at = created_at or datetime.now(UTC).isoformat()
        path = os.path.join(self.output_dir, f"{mockup_id}.png")
        with open(path, "wb") as fh:
            fh.write(result.image)

        metadata = build_mockup_metadata(
            mockup_id=mockup_id,
            website_url=result.url,
            ad_size=request.ad_size,
            device=request.device,
            placement=result.placement,
            consent_handled=result.consent_handled,
            created_at=created_at,
            sha256=sha256_hex(result.image),
            generator_version=get_generator_version(),
            topic=request.topic,
            has_ad_tag=request.creative.is_tag,
        )
        sidecar = {**metadata, "placement": result.placement.as_dict()}
        with open(os.path.join(self.output_dir, f"{mockup_id}.json"), "w", encoding="utf-8") as fh:
            json.dump(sidecar, fh, indent=2)

        gcs_path = None
        if self.storage_client is not None and self.bucket_name:
            gcs_path = canonical_mockup_path(self.bucket_name, mockup_id)
            upload_png(self.storage_client, self.bucket_name, gcs_path, result.image, dict(metadata), dry_run=self.dry_run)

        stored = StoredMockup(mockup_id=mockup_id, path=path, metadata=sidecar, gcs_path=gcs_path)
        self._entries[mockup_id] = stored
        if request.creative.is_tag:
            self._entries[AD_TAG_PREFIX + mockup_id] = request.creative.tag
        jlog("info", event="mockup_stored", mockup_id=mockup_id, path=path, gcs_path=gcs_path, bytes=len(result.image))
        self._evict()
        return stored

    def get(self, mockup_id: str) -> StoredMockup | None:
        entry = self._entries.get(mockup_id)
        return entry if isinstance(entry, StoredMockup) else None

    def read_png(self, mockup_id: str) -> bytes | None:
        entry = self.get(mockup_id)
        if entry is None or not os.path.exists(entry.path):
            return None
        with open(entry.path, "rb") as fh:
            return fh.read()

    def ad_tag(self, mockup_id: str) -> str | None:
        return self._entries.get(AD_TAG_PREFIX + mockup_id)

    def ad_tag_preview_html(self, mockup_id: str) -> str | None:
        tag = self.ad_tag(mockup_id)
        if tag is None:
            return None
        return AD_TAG_PREVIEW_TEMPLATE.format(tag=tag)

    def _evict(self) -> None:
        """Drop oldest mockups, with their ad tag and files, until at most ``keep_entries`` remain."""

        if len(self._entries) <= self.max_entries:
            return
        dropped = 0
        for key in list(self._entries):
            if len(self._entries) <= self.keep_entries:
                break
            entry = self._entries.get(key)
            if not isinstance(entry, StoredMockup):
                continue
            del self._entries[key]
            self._entries.pop(AD_TAG_PREFIX + key, None)
            for path in (entry.path, os.path.splitext(entry.path)[0] + ".json"):
                if os.path.exists(path):
                    os.unlink(path)
            dropped += 1
        jlog("info", event="mockup_store_evicted", dropped=dropped, remaining=len(self._entries))


__all__ = [
    "AD_TAG_PREFIX",
    "MockupStore",
    "StoredMockup",
    "canonical_mockup_path",
    "upload_png",
]
