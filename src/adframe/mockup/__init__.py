"""Mockup generation pipeline exports."""

from __future__ import annotations

from .pipeline import CliArgs, MockupGenerator, build_request, parse_args, run, validate_request

__all__ = ["CliArgs", "MockupGenerator", "build_request", "parse_args", "run", "validate_request"]
