"""
Module: cli
-----------
``latticelab`` console script: run one engine operation on a JSON request.

Usage::

    latticelab crystal request.json
    latticelab tb < request.json
    latticelab health

The response JSON is written to stdout. On an engine failure the error body
``{"error", "details", "field"}`` is written instead and the exit status is 2.
Malformed JSON exits with status 1.
"""

import argparse
import json
import sys

from beartype.typing import List, Optional

from latticelab import config
from latticelab.engine import OPERATIONS, health
from latticelab.errors import EngineError
from latticelab.logging_config import setup_logging


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="latticelab",
        description="Crystal builder, Ewald diffraction and tight-binding engine.",
    )
    p.add_argument(
        "operation",
        choices=sorted(OPERATIONS) + ["health"],
        help="Engine operation to run",
    )
    p.add_argument(
        "request",
        nargs="?",
        default="-",
        help="Request JSON file, '-' or omitted reads stdin",
    )
    p.add_argument(
        "--log-level",
        default=config.env_log_level(),
        choices=config.LOG_LEVELS,
        type=str.upper,
        help="Logging level (default: $LATTICELAB_LOG_LEVEL or INFO)",
    )
    p.add_argument("--log-file", default=None, help="Also write logs to this file")
    p.add_argument("--indent", type=int, default=None, help="Indent the output JSON")
    return p


def _read_payload(source: str):
    if source == "-":
        return json.load(sys.stdin)
    with open(source, encoding="utf-8") as handle:
        return json.load(handle)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logger = setup_logging(args.log_level, args.log_file)

    if args.operation == "health":
        json.dump(health(), sys.stdout)
        sys.stdout.write("\n")
        return 0

    try:
        payload = _read_payload(args.request)
    except (OSError, ValueError) as err:
        logger.error("Cannot read request %s: %s", args.request, err)
        return 1

    try:
        response = OPERATIONS[args.operation](payload)
    except EngineError as err:
        json.dump(err.to_payload(), sys.stdout, indent=args.indent)
        sys.stdout.write("\n")
        return 2

    json.dump(response, sys.stdout, indent=args.indent)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
