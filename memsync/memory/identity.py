"""Stable identifiers shared with the remote memory store."""

import hashlib
import os
from pathlib import Path

SESSION_ID_LENGTH = 16
CHUNK_ID_LENGTH = 32


def derive_session_id(workspace: str | Path) -> str:
    """
    Derive the store session id for a host context.

    The same workspace path always maps to the same id so the store groups
    interactions from one logical workspace together.

    Args:
        workspace: Host context path.
    Returns:
        First 16 hex characters of sha256 over the path string.
    """
    digest = hashlib.sha256(os.fspath(workspace).encode("utf-8")).hexdigest()
    return digest[:SESSION_ID_LENGTH]


def derive_chunk_id(identifier: str, path: str | None = None) -> str:
    """
    Derive a chunk id for an artifact that does not carry one.

    The id is the first 32 hex characters of sha256 over "identifier:path"
    (an absent path hashes as the empty string), UTF-8 encoded.
    """
    source = f"{identifier}:{path or ''}"
    return hashlib.sha256(source.encode("utf-8")).hexdigest()[:CHUNK_ID_LENGTH]
