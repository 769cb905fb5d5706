"""
memsync/dispatch.py
Per-event hook dispatcher: forwards one JSON payload from stdin to the running service.
Usage: memsync-hook <before|after|thought> < payload.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Sequence, TextIO

import httpx

from memsync.discovery import HOOK_TOKEN_HEADER, read_discovery_file
from memsync.shared import discovery_file_path

logger = logging.getLogger("memsync.dispatch")

EVENT_TYPES = ("before", "after", "thought")
DISPATCH_TIMEOUT_SECONDS = 5.0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="memsync-hook",
        description="Forward a hook event payload from stdin to the memsync service.",
    )
    parser.add_argument("event", help="Event type: before, after or thought.")
    return parser


def dispatch_event(
    event: str,
    raw_payload: str,
    *,
    discovery_path: Path,
    transport: httpx.BaseTransport | None = None,
) -> bool:
    """
    POST one event payload to the service named in the discovery file.

    Args:
        event: One of EVENT_TYPES.
        raw_payload: JSON text read from stdin.
        discovery_path: Location of the discovery file.
        transport: Optional httpx transport (tests).
    Returns:
        True when the service answered 200.
    """
    if event not in EVENT_TYPES:
        logger.error("Unknown hook event type: %s", event)
        return False
    if not raw_payload.strip():
        logger.error("Empty hook payload on stdin for %s.", event)
        return False
    try:
        json.loads(raw_payload)
    except json.JSONDecodeError:
        logger.error("Hook payload for %s is not valid JSON.", event)
        return False
    try:
        discovery = read_discovery_file(discovery_path)
    except RuntimeError as exc:
        logger.error("%s Is the memsync service running?", exc)
        return False

    url = f"http://127.0.0.1:{discovery['port']}/hook/{event}"
    try:
        with httpx.Client(timeout=DISPATCH_TIMEOUT_SECONDS, transport=transport) as client:
            response = client.post(
                url,
                content=raw_payload.encode("utf-8"),
                headers={
                    "Content-Type": "application/json",
                    HOOK_TOKEN_HEADER: discovery["token"],
                },
            )
    except httpx.HTTPError as exc:
        logger.error("Failed to deliver %s event: %s", event, exc)
        return False
    if response.status_code != 200:
        logger.error("Service rejected %s event with HTTP %d.", event, response.status_code)
        return False
    return True


def main(argv: Sequence[str] | None = None, stdin: TextIO | None = None) -> int:
    """Entry point for `memsync-hook`; returns the process exit code."""
    logging.basicConfig(stream=sys.stderr, level=logging.WARNING, format="memsync-hook: %(message)s")
    args = _build_parser().parse_args(argv)
    raw_payload = (stdin or sys.stdin).read()
    ok = dispatch_event(args.event, raw_payload, discovery_path=discovery_file_path())
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
