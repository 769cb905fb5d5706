"""Best-effort git metadata (branch, ticket) attached to recorded interactions."""

import asyncio
import logging
import re
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

TICKET_PATTERN = re.compile(r"([A-Z]+-\d+)")
GIT_TIMEOUT_SECONDS = 5.0


def ticket_from_branch(branch: str) -> str | None:
    """Return a ticket key such as `PROJ-123` embedded in a branch name."""
    match = TICKET_PATTERN.search(branch or "")
    return match.group(1) if match else None


async def current_branch(workspace: Path) -> str | None:
    """Return the checked-out git branch of `workspace`, or None outside a repo."""
    try:
        process = await asyncio.create_subprocess_exec(
            "git",
            "rev-parse",
            "--abbrev-ref",
            "HEAD",
            cwd=str(workspace),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except OSError:
        logger.debug("git is not available for %s.", workspace, exc_info=True)
        return None
    try:
        stdout, _ = await asyncio.wait_for(process.communicate(), timeout=GIT_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        logger.debug("git branch lookup timed out for %s.", workspace)
        return None
    if process.returncode != 0:
        return None
    branch = stdout.decode("utf-8", errors="replace").strip()
    return branch or None


async def collect_git_metadata(workspace: Path) -> dict[str, Any]:
    """
    Collect branch and ticket metadata for a workspace.

    Returns:
        Dict with `branch` and `ticket` keys when available; empty otherwise.
    """
    metadata: dict[str, Any] = {}
    branch = await current_branch(workspace)
    if branch:
        metadata["branch"] = branch
        ticket = ticket_from_branch(branch)
        if ticket:
            metadata["ticket"] = ticket
    return metadata
