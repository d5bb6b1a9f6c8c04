"""Website suggestion pipeline exports."""

from __future__ import annotations

from .fallback import Publisher, fallback_publishers
from .pipeline import CliArgs, parse_args, run, suggest_websites

__all__ = ["CliArgs", "Publisher", "fallback_publishers", "parse_args", "run", "suggest_websites"]
