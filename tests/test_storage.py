import json
import os

import pytest

from adframe.models import Creative, MockupRequest, MockupResult, Placement
from adframe.storage import MockupStore, canonical_mockup_path, upload_png
from fakes import png_bytes


class _Blob:
    def __init__(self, name: str, uploads: list) -> None:
        self.name = name
        self.uploads = uploads
        self.metadata = None
        self.cache_control = None

    def upload_from_string(self, data, content_type=None):
        self.uploads.append((self.name, len(data), content_type, dict(self.metadata or {})))


class _Bucket:
    def __init__(self, uploads: list) -> None:
        self.uploads = uploads

    def blob(self, name):
        return _Blob(name, self.uploads)


class _StorageClient:
    def __init__(self) -> None:
        self.uploads: list = []

    def bucket(self, name):
        return _Bucket(self.uploads)


def _result(method: str = "dom-injected") -> MockupResult:
    placement = Placement(5, 6, "300x250", "Medium Rectangle", method, False)
    return MockupResult(png_bytes(40, 30), placement, True, "https://example.de")


def _request(tag: str | None = None) -> MockupRequest:
    creative = Creative(tag=tag) if tag else Creative(image=b"img")
    return MockupRequest(url="https://example.de", ad_size="300x250", creative=creative)


def test_canonical_mockup_path_prefix():
    assert canonical_mockup_path("bucket", "abcdef") == "gs://bucket/mockups/ab/abcdef.png"


def test_upload_png_validates_prefix_and_honours_dry_run():
    client = _StorageClient()
    with pytest.raises(ValueError):
        upload_png(client, "bucket", "gs://other/x.png", b"png", {})
    upload_png(client, "bucket", "gs://bucket/x.png", b"png", {}, dry_run=True)
    assert client.uploads == []
    upload_png(client, "bucket", "gs://bucket/mockups/x.png", b"png", {"a": "b"})
    assert client.uploads == [("mockups/x.png", 3, "image/png", {"a": "b"})]


def test_save_writes_png_and_sidecar(tmp_path):
    store = MockupStore(str(tmp_path))
    stored = store.save(_result(), _request(), mockup_id="m-1", created_at="2026-10-19T00:00:00+00:00")
    assert os.path.exists(stored.path)
    with open(tmp_path / "m-1.json", encoding="utf-8") as fh:
        sidecar = json.load(fh)
    assert sidecar["mockup_id"] == "m-1"
    assert sidecar["placement"]["method"] == "dom-injected"
    assert sidecar["placement_method"] == "dom-injected"
    assert store.read_png("m-1") == _result().image
    assert stored.download_filename.startswith("adframe-mockup-300x250-")
    assert stored.gcs_path is None


def test_save_mirrors_to_gcs_when_configured(tmp_path):
    client = _StorageClient()
    store = MockupStore(str(tmp_path), storage_client=client, bucket_name="bucket")
    stored = store.save(_result(), _request(), mockup_id="ab12")
    assert stored.gcs_path == "gs://bucket/mockups/ab/ab12.png"
    assert client.uploads[0][0] == "mockups/ab/ab12.png"
    assert client.uploads[0][3]["mockup_id"] == "ab12"


def test_ad_tag_is_kept_for_preview(tmp_path):
    store = MockupStore(str(tmp_path))
    store.save(_result(), _request(tag="<div id='ad'>hi</div>"), mockup_id="m-2")
    assert "adtag-m-2" in store
    assert store.ad_tag("m-2") == "<div id='ad'>hi</div>"
    assert "<div id='ad'>hi</div>" in store.ad_tag_preview_html("m-2")
    assert store.ad_tag_preview_html("missing") is None


def test_eviction_drops_oldest_entries_and_files(tmp_path):
    store = MockupStore(str(tmp_path), max_entries=3, keep_entries=2)
    for i in range(4):
        store.save(_result(), _request(), mockup_id=f"m-{i}")
    assert len(store) == 2
    assert store.get("m-0") is None
    assert not os.path.exists(tmp_path / "m-0.png")
    assert not os.path.exists(tmp_path / "m-1.json")
    assert store.get("m-3") is not None


def test_eviction_removes_ad_tags_with_their_mockups(tmp_path):
    store = MockupStore(str(tmp_path), max_entries=5, keep_entries=3)
    for i in range(3):
        store.save(_result(), _request(tag=f"<div>ad {i}</div>"), mockup_id=f"m-{i}")
    assert store.get("m-0") is None
    assert "adtag-m-0" not in store
    assert "adtag-m-1" not in store
    assert store.get("m-2") is not None
    assert store.ad_tag("m-2") == "<div>ad 2</div>"
    for key in list(store._entries):
        if key.startswith("adtag-"):
            assert store.get(key[len("adtag-"):]) is not None
