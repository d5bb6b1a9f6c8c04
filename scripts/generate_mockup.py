#!/usr/bin/env python3
"""CLI shim for the ad mockup generator."""
from __future__ import annotations

import asyncio
import json
import sys

from adframe.errors import error_payload
from adframe.logging import configure_logging, jlog, logging_context, set_global_context
from adframe.mockup import CliArgs, parse_args, run
from adframe.versioning import get_generator_version

SCRIPT_NAME = "mockup"


def main() -> None:
    configure_logging()
    set_global_context(app="adframe", pipeline=SCRIPT_NAME)
    version = get_generator_version()
    with logging_context(script=SCRIPT_NAME, generator_version=version):
        args: CliArgs = parse_args()
        try:
            summary = asyncio.run(run(args))
        except Exception as exc:
            jlog("error", event="mockup_failed", error=str(exc), error_type=type(exc).__name__)
            print(json.dumps(error_payload(exc), indent=2))
            sys.exit(1)
        print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    main()
