"""
memsync/memory/client.py
Async HTTP client for the remote memory store's `record` and `context` operations.
Exports: MemoryStoreClient, RECORD_PATH, CONTEXT_PATH
"""

import logging
from typing import Any

import httpx

from memsync.common.retry import RetryPolicy, retry_until_present
from memsync.errors import RemoteReadFailure, RemoteWriteFailure
from memsync.memory.types import MemoryContextResponse, MemoryRecordRequest, MemoryStats, RecordResult

logger = logging.getLogger(__name__)

RECORD_PATH = "/api/v1/code-memory/record"
CONTEXT_PATH = "/api/v1/code-memory/context"
HEALTH_PATH = "/health"
DEFAULT_CONTEXT_QUERY = "Get user memory context"
DEFAULT_CONTEXT_LIMIT = 40
STATS_CONTEXT_LIMIT = 100
STATS_RETRY_POLICY = RetryPolicy(attempts=3, delay_seconds=1.0)


class MemoryStoreClient:
    """Thin async wrapper over the store's REST surface."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        *,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Args:
            base_url: Store base URL; a trailing slash is ignored.
            api_key: Optional bearer key.
            timeout: Per-request timeout in seconds.
            http_client: Preconfigured client (tests pass one with a mock transport).
        """
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._client = http_client

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Content-Type": "application/json"}
            if self._api_key:
                headers["Authorization"] = f"Bearer {self._api_key}"
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self._timeout, headers=headers)
        return self._client

    async def _post_json(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        response = await self._ensure_client().post(path, json=payload)
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object from {path}.")
        return data

    async def record(self, request: MemoryRecordRequest) -> RecordResult:
        """
        Persist one interaction.

        Returns:
            Parsed record result (may carry `success=False`).
        Raises:
            RemoteWriteFailure: On transport, HTTP status or body errors.
        """
        logger.info(
            "Recording interaction: session_id=%s query_len=%d response_len=%d artifacts=%d",
            request.session_id,
            len(request.query),
            len(request.response),
            len(request.artifacts),
        )
        try:
            data = await self._post_json(RECORD_PATH, request.to_payload())
            result = RecordResult.from_dict(data)
        except (httpx.HTTPError, ValueError, TypeError) as exc:
            raise RemoteWriteFailure(f"Memory record failed: {exc}") from exc
        logger.info(
            "Record result: success=%s stored_artifacts=%d memories_created=%d",
            result.success,
            result.stored_artifacts,
            result.memories_created,
        )
        return result

    async def context(
        self,
        query: str,
        user_id: str,
        session_id: str | None = None,
        *,
        limit: int = DEFAULT_CONTEXT_LIMIT,
        include_graph: bool = True,
        include_entities: bool = True,
        include_memories: bool = True,
        include_search_hits: bool = True,
    ) -> MemoryContextResponse:
        """
        Fetch structured context for a query.

        An empty query is replaced by a generic one; the store returns nothing
        without a query.

        Raises:
            RemoteReadFailure: On transport, HTTP status or body errors.
        """
        effective_query = (query or "").strip() or DEFAULT_CONTEXT_QUERY
        payload: dict[str, Any] = {
            "user_id": user_id,
            "query": effective_query,
            "limit": limit,
            "include_graph": include_graph,
            "include_entities": include_entities,
            "include_memories": include_memories,
            "include_search_hits": include_search_hits,
        }
        if session_id:
            payload["session_id"] = session_id
        try:
            data = await self._post_json(CONTEXT_PATH, payload)
            return MemoryContextResponse.from_dict(data)
        except (httpx.HTTPError, ValueError, TypeError) as exc:
            raise RemoteReadFailure(f"Memory context fetch failed: {exc}") from exc

    async def memory_stats(
        self,
        user_id: str,
        session_id: str | None = None,
        *,
        policy: RetryPolicy = STATS_RETRY_POLICY,
    ) -> MemoryStats | None:
        """
        Fetch project (or global) memory statistics.

        The store may not have indexed a fresh write yet and then answers
        without stats; that case is retried per `policy`.

        Returns:
            Stats, or None when the store never reported them.
        Raises:
            RemoteReadFailure: On transport, HTTP status or body errors.
        """
        query = (
            "Get all project memory statistics and context"
            if session_id
            else "Get all user memory statistics"
        )

        async def _fetch() -> MemoryStats | None:
            response = await self.context(
                query,
                user_id,
                session_id,
                limit=STATS_CONTEXT_LIMIT,
                include_search_hits=False,
            )
            return response.stats

        return await retry_until_present(_fetch, policy=policy, logger=logger, label="Memory stats")

    async def health_check(self) -> bool:
        """Return True when the store answers its health endpoint with 200."""
        try:
            response = await self._ensure_client().get(HEALTH_PATH)
        except httpx.HTTPError:
            logger.warning("Memory store health check failed.", exc_info=True)
            return False
        return response.status_code == 200

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
