"""Error taxonomy for mockup generation."""

from __future__ import annotations

import os
from typing import Any

GENERIC_FAILURE_MESSAGE = "Failed to generate mockup. Please try again."


class MockupError(Exception):
    """Base class for classified failures carrying a user-facing message."""

    status = 500
    code = "MOCKUP_FAILED"

    def __init__(self, message: str, *, user_message: str | None = None) -> None:
        super().__init__(message)
        self.user_message = user_message or message


class RequestValidationError(MockupError):
    """The request was rejected before any browser work started."""

    status = 400
    code = "INVALID_REQUEST"


class PageLoadTimeout(MockupError):
    """The target page could not be loaded, even with the relaxed wait condition."""

    status = 504
    code = "PAGE_LOAD_TIMEOUT"

    def __init__(self, url: str, reason: str = "") -> None:
        super().__init__(
            f"page load timed out for {url}: {reason}".rstrip(": "),
            user_message="Page load timed out. Try a different website or check the URL.",
        )
        self.url = url


class NoReliableSlot(MockupError):
    """No injectable or detected slot exists and heuristic placement is disabled."""

    status = 422
    code = "NO_RELIABLE_SLOT"

    def __init__(self, ad_size: str) -> None:
        super().__init__(
            f"No reliable {ad_size} ad slot was found on this page. "
            "Enable heuristic fallback to place the creative at a typical position instead."
        )
        self.ad_size = ad_size


def is_production() -> bool:
    return os.getenv("ADFRAME_ENV", "development").lower() == "production"


def error_payload(exc: BaseException) -> dict[str, Any]:
    """Map any exception to a safe response body; raw detail only outside production."""

    if isinstance(exc, MockupError):
        payload: dict[str, Any] = {"error": exc.user_message, "code": exc.code, "status": exc.status}
    else:
        payload = {"error": GENERIC_FAILURE_MESSAGE, "code": MockupError.code, "status": MockupError.status}
    if not is_production() and str(exc) != payload["error"]:
        payload["details"] = str(exc)
    return payload


__all__ = [
    "GENERIC_FAILURE_MESSAGE",
    "MockupError",
    "NoReliableSlot",
    "PageLoadTimeout",
    "RequestValidationError",
    "error_payload",
    "is_production",
]
