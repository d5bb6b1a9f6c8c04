#!/usr/bin/env python3
"""CLI shim for publisher website suggestions."""
from __future__ import annotations

import json
import sys

from adframe.errors import MockupError, error_payload
from adframe.logging import configure_logging, logging_context, set_global_context
from adframe.suggest import CliArgs, parse_args, run
from adframe.versioning import get_generator_version

SCRIPT_NAME = "suggest"


def main() -> None:
    configure_logging()
    set_global_context(app="adframe", pipeline=SCRIPT_NAME)
    with logging_context(script=SCRIPT_NAME, generator_version=get_generator_version()):
        args: CliArgs = parse_args()
        try:
            suggestions = run(args)
        except MockupError as exc:
            print(json.dumps(error_payload(exc), indent=2))
            sys.exit(2)
        print(json.dumps({"suggestions": suggestions}, indent=2))


if __name__ == "__main__":
    main()
