"""
tests/test_main.py
Unit tests for memsync/main.py: hook intake endpoints.
"""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from memsync.correlator import InteractionCorrelator
from memsync.memory.types import SyncResult

TOKEN = "test-token"
HEADERS = {"X-Hook-Token": TOKEN}


@pytest.fixture
def processor():
    from memsync.processor import HookEventProcessor

    sequencer = MagicMock()
    sequencer.sync_interaction = AsyncMock(return_value=SyncResult(status="synced"))
    sequencer.refresh_context = AsyncMock(return_value=True)
    return HookEventProcessor(InteractionCorrelator(), sequencer, Path("/work/project"))


@pytest.fixture
def client(processor):
    from memsync.main import create_app

    return TestClient(create_app(processor, TOKEN))


def test_before_then_after_schedules_one_sync(client, processor):
    response = client.post(
        "/hook/before",
        json={"prompt": "Fix login", "conversation_id": "c1", "generation_id": "g1"},
        headers=HEADERS,
    )
    assert response.status_code == 200
    assert response.json() == {"ok": True}
    processor.sequencer.refresh_context.assert_awaited_once_with("Fix login", Path("/work/project"))

    response = client.post("/hook/after", json={"text": "Done", "generation_id": "g1"}, headers=HEADERS)
    assert response.status_code == 200
    interaction = processor.sequencer.sync_interaction.await_args.args[0]
    assert interaction.query == "Fix login"
    assert interaction.response == "Done"

    again = client.post("/hook/after", json={"text": "Done", "generation_id": "g1"}, headers=HEADERS)
    assert again.status_code == 200
    assert processor.sequencer.sync_interaction.await_count == 1


def test_after_without_pending_returns_ok_and_skips_sync(client, processor):
    response = client.post("/hook/after", json={"text": "orphan", "conversation_id": "c9"}, headers=HEADERS)
    assert response.status_code == 200
    assert response.json() == {"ok": True}
    processor.sequencer.sync_interaction.assert_not_awaited()


def test_empty_prompt_does_not_refresh(client, processor):
    response = client.post("/hook/before", json={"prompt": "   "}, headers=HEADERS)
    assert response.status_code == 200
    processor.sequencer.refresh_context.assert_not_awaited()


def test_thought_is_accepted(client):
    response = client.post(
        "/hook/thought",
        json={"text": "thinking", "duration_ms": 120, "generation_id": "g1"},
        headers=HEADERS,
    )
    assert response.status_code == 200


@pytest.mark.parametrize("path", ["/hook/before", "/hook/after", "/hook/thought"])
@pytest.mark.parametrize("headers", [{}, {"X-Hook-Token": "wrong"}])
def test_bad_token_rejected_without_side_effects(client, processor, path, headers):
    response = client.post(path, json={"prompt": "Q", "text": "R", "generation_id": "g1"}, headers=headers)
    assert response.status_code == 401
    assert processor.correlator.pending_count() == 0
    processor.sequencer.refresh_context.assert_not_awaited()
    processor.sequencer.sync_interaction.assert_not_awaited()


def test_bad_token_does_not_consume_pending(client, processor):
    client.post("/hook/before", json={"prompt": "Q", "generation_id": "g1"}, headers=HEADERS)

    response = client.post("/hook/after", json={"text": "R", "generation_id": "g1"}, headers={"X-Hook-Token": "x"})
    assert response.status_code == 401
    assert processor.correlator.pending_count() == 1


@pytest.mark.parametrize(
    "content",
    [b"", b"   ", b"{not json", b"[1, 2, 3]", b'"text"', b'{"prompt": 42}'],
)
def test_invalid_bodies_rejected(client, content):
    response = client.post(
        "/hook/before",
        content=content,
        headers={**HEADERS, "Content-Type": "application/json"},
    )
    assert response.status_code == 400


def test_wrong_field_type_on_after_rejected(client):
    response = client.post("/hook/after", json={"text": ["not", "a", "string"]}, headers=HEADERS)
    assert response.status_code == 400


def test_unknown_path_returns_404(client):
    response = client.post("/hook/unknown", json={}, headers=HEADERS)
    assert response.status_code == 404


def test_non_post_returns_405(client):
    response = client.get("/hook/before", headers=HEADERS)
    assert response.status_code == 405
