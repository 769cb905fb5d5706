"""
memsync/discovery.py
Hook discovery file shared by the running service and the per-event dispatcher.
Kept free of server imports so the dispatcher starts fast.
Exports: HOOK_TOKEN_HEADER, write_discovery_file, read_discovery_file
"""

import contextlib
import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

HOOK_TOKEN_HEADER = "X-Hook-Token"


def write_discovery_file(path: Path, port: int, token: str) -> None:
    """
    Atomically write `{port, token, updatedAt}` for the dispatcher.

    The file is created owner-readable only since it carries the token.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "port": port,
        "token": token,
        "updatedAt": datetime.now(timezone.utc).isoformat(),
    }
    fd, tmp_name = tempfile.mkstemp(prefix=".hook-config-", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2)
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise


def read_discovery_file(path: Path) -> dict[str, Any]:
    """
    Load and validate a discovery file.

    Raises:
        RuntimeError: File missing, unreadable, malformed, or without port/token.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RuntimeError(f"Hook discovery file not readable: {path}") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise RuntimeError(f"Hook discovery file is not valid JSON: {path}") from exc
    if not isinstance(data, dict):
        raise RuntimeError(f"Hook discovery file must contain an object: {path}")
    port = data.get("port")
    token = data.get("token")
    if not isinstance(port, int) or isinstance(port, bool) or port <= 0:
        raise RuntimeError(f"Hook discovery file has no valid port: {path}")
    if not isinstance(token, str) or not token:
        raise RuntimeError(f"Hook discovery file has no token: {path}")
    return data
