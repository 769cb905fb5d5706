"""
tests/test_discovery.py
Unit tests for memsync/discovery.py: the hook discovery file.
"""

import json

import pytest


def test_write_and_read_discovery_file(tmp_path):
    from memsync.discovery import read_discovery_file, write_discovery_file

    path = tmp_path / "nested" / "hook-config.json"
    write_discovery_file(path, 51234, "abc")

    data = read_discovery_file(path)
    assert data["port"] == 51234
    assert data["token"] == "abc"
    assert data["updatedAt"].endswith("+00:00")
    assert [p.name for p in path.parent.iterdir()] == ["hook-config.json"]


@pytest.mark.parametrize(
    "content",
    ["not json", "[]", json.dumps({"port": 0, "token": "t"}), json.dumps({"port": 8000, "token": ""})],
)
def test_read_discovery_file_rejects_bad_content(tmp_path, content):
    from memsync.discovery import read_discovery_file

    path = tmp_path / "hook-config.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(RuntimeError):
        read_discovery_file(path)


def test_read_discovery_file_missing(tmp_path):
    from memsync.discovery import read_discovery_file

    with pytest.raises(RuntimeError, match="not readable"):
        read_discovery_file(tmp_path / "missing.json")


def test_header_name_matches_intake_check():
    from memsync import main
    from memsync.discovery import HOOK_TOKEN_HEADER

    assert HOOK_TOKEN_HEADER == "X-Hook-Token"
    assert main.HOOK_TOKEN_HEADER is HOOK_TOKEN_HEADER
