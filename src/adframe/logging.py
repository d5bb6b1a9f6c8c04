"""Structured logging helpers shared by the mockup and suggestion entrypoints.

Records are single-line JSON objects under the ``adframe`` logger. Scoped
fields live in a :class:`contextvars.ContextVar` so concurrent generation
tasks on one event loop never see each other's URL or ad size.
"""

from __future__ import annotations

import json
import logging
import os
import time
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Iterator

UTC = getattr(datetime, "UTC", timezone.utc)
_LOGGER_NAME = "adframe"
_configured = False
_base_context: dict[str, Any] = {}
_scoped_context: ContextVar[dict[str, Any]] = ContextVar("adframe_log_context", default={})


def configure_logging(level: int | str | None = None) -> None:
    """Configure the root formatter once; ``ADFRAME_LOG_LEVEL`` wins when no level is passed."""

    global _configured
    if _configured:
        return
    if level is None:
        level = os.getenv("ADFRAME_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(message)s")
    _configured = True


def set_global_context(**fields: Any) -> None:
    _base_context.update({k: v for k, v in fields.items() if v is not None})


@contextmanager
def logging_context(**fields: Any) -> Iterator[None]:
    """Merge ``fields`` into the current task's context for the duration of the block."""

    merged = {**_scoped_context.get(), **{k: v for k, v in fields.items() if v is not None}}
    token = _scoped_context.set(merged)
    try:
        yield
    finally:
        _scoped_context.reset(token)


def _utcnow_iso() -> str:
    return datetime.now(UTC).isoformat()


def jlog(level: str, /, **fields: Any) -> None:
    log = logging.getLogger(_LOGGER_NAME)
    record = {"ts": _utcnow_iso(), **_base_context, **_scoped_context.get(), **fields}
    getattr(log, level.lower())(json.dumps(record, ensure_ascii=False, sort_keys=True, default=str))


@contextmanager
def timed(event: str, **fields: Any) -> Iterator[dict[str, Any]]:
    """Log ``event`` with ``elapsed_ms`` when the block exits; callers may add fields to the yielded dict."""

    extra: dict[str, Any] = {}
    start = time.perf_counter()
    try:
        yield extra
    finally:
        jlog("info", event=event, elapsed_ms=round((time.perf_counter() - start) * 1000), **fields, **extra)


def mockup_log(event: str, *, url: str, ad_size: str, device: str, **kw: Any) -> None:
    jlog("info", event=event, url=url, ad_size=ad_size, device=device, **kw)


__all__ = ["configure_logging", "jlog", "logging_context", "mockup_log", "set_global_context", "timed"]
