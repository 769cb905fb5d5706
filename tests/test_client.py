"""
tests/test_client.py
Unit tests for memsync/memory/client.py using httpx.MockTransport.
"""

import json

import httpx
import pytest

from memsync.common.retry import RetryPolicy
from memsync.memory.types import Artifact, MemoryRecordRequest


def _client(handler):
    from memsync.memory.client import MemoryStoreClient

    http_client = httpx.AsyncClient(base_url="https://store.test", transport=httpx.MockTransport(handler))
    return MemoryStoreClient("https://store.test/", http_client=http_client)


@pytest.mark.asyncio
async def test_record_posts_payload_and_parses_result():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True, "stored_artifacts": 1, "memories_created": 2})

    client = _client(handler)
    request = MemoryRecordRequest(
        user_id="u1",
        session_id="s1",
        query="Q",
        response="R",
        artifacts=[Artifact(identifier="login", path="src/auth.py", chunk_id="abc")],
        metadata={"branch": "feature/ABC-1"},
    )

    result = await client.record(request)

    assert seen["path"] == "/api/v1/code-memory/record"
    assert seen["body"]["session_id"] == "s1"
    assert seen["body"]["artifacts"][0] == {
        "identifier": "login",
        "path": "src/auth.py",
        "status": "draft",
        "tags": [],
        "chunk_id": "abc",
    }
    assert result.success is True
    assert result.memories_created == 2
    await client.aclose()


@pytest.mark.asyncio
async def test_record_wraps_http_errors():
    from memsync.errors import RemoteWriteFailure

    client = _client(lambda request: httpx.Response(500, json={"detail": "boom"}))
    with pytest.raises(RemoteWriteFailure):
        await client.record(MemoryRecordRequest(user_id="u1", session_id=None, query="Q", response="R"))


@pytest.mark.asyncio
async def test_context_sends_flags_and_default_query():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "user_id": "u1",
                "stats": {"entities_total": 4, "memories_total": 9},
                "sections": [{"title": "Technical Profile", "items": [{"label": "py", "values": ["x"]}]}],
                "entities": [{"id": "e1", "name": "A", "confidence": 0.5}],
                "context_text": "facts",
            },
        )

    client = _client(handler)
    response = await client.context("   ", "u1")

    assert seen["body"]["query"] == "Get user memory context"
    assert seen["body"]["limit"] == 40
    assert seen["body"]["include_search_hits"] is True
    assert "session_id" not in seen["body"]
    assert response.memories_found == 4
    assert response.sections[0].items[0].values == ["x"]
    assert response.entities[0].confidence == 0.5


@pytest.mark.asyncio
async def test_context_rejects_non_object_body():
    from memsync.errors import RemoteReadFailure

    client = _client(lambda request: httpx.Response(200, json=["not", "an", "object"]))
    with pytest.raises(RemoteReadFailure):
        await client.context("Q", "u1", "s1")


@pytest.mark.asyncio
async def test_context_wraps_transport_errors():
    from memsync.errors import RemoteReadFailure

    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = _client(handler)
    with pytest.raises(RemoteReadFailure):
        await client.context("Q", "u1", "s1")


@pytest.mark.asyncio
async def test_memory_stats_retries_until_indexed():
    calls = []

    def handler(request):
        body = json.loads(request.content)
        calls.append(body)
        if len(calls) < 2:
            return httpx.Response(200, json={"user_id": "u1"})
        return httpx.Response(200, json={"stats": {"entities_total": 3, "graph_nodes": 8}})

    client = _client(handler)

    stats = await client.memory_stats("u1", "s1", policy=RetryPolicy(attempts=3, delay_seconds=0))

    assert stats.entities_total == 3
    assert stats.graph_nodes == 8
    assert len(calls) == 2
    assert calls[0]["limit"] == 100
    assert calls[0]["include_search_hits"] is False
    assert calls[0]["query"] == "Get all project memory statistics and context"


@pytest.mark.asyncio
async def test_health_check():
    ok_client = _client(lambda request: httpx.Response(200, json={"status": "ok"}))
    assert await ok_client.health_check() is True

    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    assert await _client(handler).health_check() is False


def test_auth_header_only_when_key_set():
    from memsync.memory.client import MemoryStoreClient

    with_key = MemoryStoreClient("https://store.test", "secret")._ensure_client()
    without_key = MemoryStoreClient("https://store.test")._ensure_client()

    assert with_key.headers["Authorization"] == "Bearer secret"
    assert "Authorization" not in without_key.headers


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{"success": True, "memory_stats": 5}, {"success": True, "memory_stats": [1, 2]}])
async def test_record_wraps_malformed_fields(body):
    from memsync.errors import RemoteWriteFailure

    client = _client(lambda request: httpx.Response(200, json=body))
    with pytest.raises(RemoteWriteFailure):
        await client.record(MemoryRecordRequest(user_id="u1", session_id="s1", query="Q", response="R"))


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"sections": [{"title": "X", "items": [{"label": "l", "values": 5}]}]},
        {"entities": [{"name": "A", "properties": "x"}]},
    ],
)
async def test_context_wraps_malformed_fields(body):
    from memsync.errors import RemoteReadFailure

    client = _client(lambda request: httpx.Response(200, json=body))
    with pytest.raises(RemoteReadFailure):
        await client.context("Q", "u1", "s1")
