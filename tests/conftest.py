"""Shared pytest fixtures for the memsync test suite."""

import pytest


@pytest.fixture(autouse=True)
def _isolate_memsync_env(monkeypatch, tmp_path):
    """Keep tests independent of developer shell env vars and the real home directory."""
    for name in (
        "MEMSYNC_API_URL",
        "MEMSYNC_API_KEY",
        "MEMSYNC_USER_ID",
        "MEMSYNC_WORKSPACE",
        "MEMSYNC_CONTEXT_FILE",
        "MEMSYNC_SETTLE_DELAY_SECONDS",
        "MEMSYNC_CACHE_TTL_SECONDS",
        "MEMSYNC_REFRESH_INTERVAL_SECONDS",
        "MEMSYNC_STATS_AFTER_SYNC",
        "MEMSYNC_HTTP_TIMEOUT_SECONDS",
        "MEMSYNC_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("MEMSYNC_HOOK_CONFIG", str(tmp_path / "hook-config.json"))
