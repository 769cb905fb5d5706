"""
memsync/shared.py
Shared environment-backed settings for the memsync service.
Exports: memory_api_url, memory_api_key, memory_user_id, workspace_path,
context_file_relpath, discovery_file_path, settle_delay_seconds, cache_ttl_seconds,
refresh_interval_seconds, http_timeout_seconds, stats_after_sync_enabled, configure_logging
"""

import logging
import os
from pathlib import Path

DEFAULT_API_URL = "https://api.odam.dev"
DEFAULT_USER_ID = "default"
DEFAULT_CONTEXT_FILE = ".cursor/rules/memory-context.mdc"
DEFAULT_DISCOVERY_FILE = Path.home() / ".memsync" / "hook-config.json"
DEFAULT_SETTLE_DELAY_SECONDS = 2.0
DEFAULT_CACHE_TTL_SECONDS = 60.0
DEFAULT_REFRESH_INTERVAL_SECONDS = 0.0
DEFAULT_HTTP_TIMEOUT_SECONDS = 60.0

_FALSY = {"0", "false", "no", "off"}


def _float_env(name: str, default: float, *, allow_zero: bool) -> float:
    """
    Read a non-negative (or strictly positive) float from the environment.

    Args:
        name: Environment variable name.
        default: Value used when the variable is unset or blank.
        allow_zero: Whether 0 is an accepted value.
    Returns:
        Parsed float.
    Raises:
        RuntimeError: When the value is not a number or out of range.
    """
    raw_value = os.getenv(name, "").strip()
    if not raw_value:
        return default
    expectation = "a non-negative number" if allow_zero else "a positive number"
    try:
        value = float(raw_value)
    except ValueError as exc:
        raise RuntimeError(f"Invalid {name}: expected {expectation}.") from exc
    if value < 0 or (value == 0 and not allow_zero):
        raise RuntimeError(f"Invalid {name}: expected {expectation}.")
    return value


def _flag_env(name: str, default: bool) -> bool:
    value = os.getenv(name, "").strip().lower()
    if not value:
        return default
    return value not in _FALSY


def memory_api_url() -> str:
    """Return the remote memory store base URL without a trailing slash."""
    return os.getenv("MEMSYNC_API_URL", DEFAULT_API_URL).strip().rstrip("/") or DEFAULT_API_URL


def memory_api_key() -> str:
    """Return the remote memory store API key (may be empty)."""
    return os.getenv("MEMSYNC_API_KEY", "").strip()


def memory_user_id() -> str:
    """Return configured memory user id with default fallback."""
    return os.getenv("MEMSYNC_USER_ID", "").strip() or DEFAULT_USER_ID


def workspace_path() -> Path:
    """Return the host context (workspace) path, defaulting to the current directory."""
    raw_value = os.getenv("MEMSYNC_WORKSPACE", "").strip()
    return Path(raw_value).expanduser().resolve() if raw_value else Path.cwd().resolve()


def context_file_relpath() -> str:
    """Return the context artifact path relative to the workspace."""
    return os.getenv("MEMSYNC_CONTEXT_FILE", "").strip() or DEFAULT_CONTEXT_FILE


def discovery_file_path() -> Path:
    """Return the hook discovery file path shared with the dispatcher."""
    raw_value = os.getenv("MEMSYNC_HOOK_CONFIG", "").strip()
    return Path(raw_value).expanduser() if raw_value else DEFAULT_DISCOVERY_FILE


def settle_delay_seconds() -> float:
    """Return the wait between a remote write and the follow-up read."""
    return _float_env("MEMSYNC_SETTLE_DELAY_SECONDS", DEFAULT_SETTLE_DELAY_SECONDS, allow_zero=True)


def cache_ttl_seconds() -> float:
    """Return the local context cache TTL."""
    return _float_env("MEMSYNC_CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS, allow_zero=False)


def refresh_interval_seconds() -> float:
    """Return the periodic refresh interval; 0 disables periodic refresh."""
    return _float_env(
        "MEMSYNC_REFRESH_INTERVAL_SECONDS", DEFAULT_REFRESH_INTERVAL_SECONDS, allow_zero=True
    )


def http_timeout_seconds() -> float:
    """Return the remote store request timeout."""
    return _float_env("MEMSYNC_HTTP_TIMEOUT_SECONDS", DEFAULT_HTTP_TIMEOUT_SECONDS, allow_zero=False)


def stats_after_sync_enabled() -> bool:
    """Return whether project stats are fetched and logged after each sync."""
    return _flag_env("MEMSYNC_STATS_AFTER_SYNC", False)


def configure_logging() -> None:
    """Configure root logging from MEMSYNC_LOG_LEVEL and quiet uvicorn access logs."""
    level_name = os.getenv("MEMSYNC_LOG_LEVEL", "INFO").strip().upper() or "INFO"
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
