"""
tests/test_shared.py
Unit tests for memsync/shared.py environment helpers.
"""

from pathlib import Path

import pytest


def test_defaults():
    from memsync.shared import (
        cache_ttl_seconds,
        context_file_relpath,
        http_timeout_seconds,
        memory_api_key,
        memory_api_url,
        memory_user_id,
        refresh_interval_seconds,
        settle_delay_seconds,
        stats_after_sync_enabled,
    )

    assert memory_api_url() == "https://api.odam.dev"
    assert memory_api_key() == ""
    assert memory_user_id() == "default"
    assert context_file_relpath() == ".cursor/rules/memory-context.mdc"
    assert settle_delay_seconds() == 2.0
    assert cache_ttl_seconds() == 60.0
    assert refresh_interval_seconds() == 0.0
    assert http_timeout_seconds() == 60.0
    assert stats_after_sync_enabled() is False


def test_api_url_strips_trailing_slash(monkeypatch):
    from memsync.shared import memory_api_url

    monkeypatch.setenv("MEMSYNC_API_URL", "http://localhost:8000/")
    assert memory_api_url() == "http://localhost:8000"


def test_settle_delay_accepts_zero_but_ttl_does_not(monkeypatch):
    from memsync.shared import cache_ttl_seconds, settle_delay_seconds

    monkeypatch.setenv("MEMSYNC_SETTLE_DELAY_SECONDS", "0")
    monkeypatch.setenv("MEMSYNC_CACHE_TTL_SECONDS", "0")
    assert settle_delay_seconds() == 0.0
    with pytest.raises(RuntimeError, match="MEMSYNC_CACHE_TTL_SECONDS"):
        cache_ttl_seconds()


def test_invalid_number_raises(monkeypatch):
    from memsync.shared import settle_delay_seconds

    monkeypatch.setenv("MEMSYNC_SETTLE_DELAY_SECONDS", "soon")
    with pytest.raises(RuntimeError, match="non-negative"):
        settle_delay_seconds()


@pytest.mark.parametrize("value,expected", [("true", True), ("1", True), ("off", False), ("No", False)])
def test_stats_flag(monkeypatch, value, expected):
    from memsync.shared import stats_after_sync_enabled

    monkeypatch.setenv("MEMSYNC_STATS_AFTER_SYNC", value)
    assert stats_after_sync_enabled() is expected


def test_paths_from_env(monkeypatch, tmp_path):
    from memsync.shared import discovery_file_path, workspace_path

    monkeypatch.setenv("MEMSYNC_WORKSPACE", str(tmp_path))
    monkeypatch.setenv("MEMSYNC_HOOK_CONFIG", str(tmp_path / "hooks.json"))
    assert workspace_path() == tmp_path.resolve()
    assert discovery_file_path() == tmp_path / "hooks.json"


def test_discovery_default_under_home(monkeypatch):
    from memsync.shared import DEFAULT_DISCOVERY_FILE, discovery_file_path

    monkeypatch.delenv("MEMSYNC_HOOK_CONFIG", raising=False)
    assert discovery_file_path() == DEFAULT_DISCOVERY_FILE
    assert DEFAULT_DISCOVERY_FILE.parent == Path.home() / ".memsync"
