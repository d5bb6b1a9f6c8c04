"""Generator version stamped into mockup metadata."""

from __future__ import annotations

import os
from importlib import metadata

GENERATOR_NAME = "adframe"
FALLBACK_VERSION = "0+unknown"


def _installed_version() -> str:
    try:
        return metadata.version(GENERATOR_NAME)
    except metadata.PackageNotFoundError:
        return FALLBACK_VERSION


def get_generator_version() -> str:
    """``adframe:<installed version>``, or ``ADFRAME_VERSION`` verbatim when set."""

    return os.getenv("ADFRAME_VERSION") or f"{GENERATOR_NAME}:{_installed_version()}"


__all__ = ["get_generator_version"]
