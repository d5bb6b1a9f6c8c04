"""High-level utilities shared across the AdFrame mockup pipelines."""

from .browser import BrowserSession
from .errors import MockupError, NoReliableSlot, PageLoadTimeout, RequestValidationError, error_payload
from .imaging import png_data_url, sha256_hex, to_png
from .logging import jlog, mockup_log
from .metadata import build_mockup_metadata
from .models import AD_SIZES, AdSize, Creative, MockupRequest, MockupResult, Placement
from .playwright import CHROMIUM_LAUNCH_ARGS, element_is_visibly_displayed, wait_assets_ready
from .storage import MockupStore, canonical_mockup_path, upload_png
from .urls import BLOCKED_DOMAINS, is_blocked_domain, normalize_target_url
from .versioning import get_generator_version

__all__ = [
    "AD_SIZES",
    "AdSize",
    "BLOCKED_DOMAINS",
    "BrowserSession",
    "build_mockup_metadata",
    "canonical_mockup_path",
    "Creative",
    "error_payload",
    "get_generator_version",
    "is_blocked_domain",
    "jlog",
    "MockupError",
    "MockupRequest",
    "MockupResult",
    "MockupStore",
    "mockup_log",
    "normalize_target_url",
    "NoReliableSlot",
    "PageLoadTimeout",
    "Placement",
    "png_data_url",
    "RequestValidationError",
    "sha256_hex",
    "to_png",
    "upload_png",
    "wait_assets_ready",
    "element_is_visibly_displayed",
    "CHROMIUM_LAUNCH_ARGS",
]
