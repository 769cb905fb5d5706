"""
memsync/memory/provider.py
Read-only memory context lookups with a local TTL cache in front of the store.
Exports: ContextProvider
"""

import logging
from pathlib import Path

from memsync.errors import RemoteReadFailure
from memsync.memory.cache import ContextCache
from memsync.memory.client import MemoryStoreClient
from memsync.memory.enhancer import enhance_context
from memsync.memory.identity import derive_session_id
from memsync.memory.render import format_context_body
from memsync.memory.types import MemoryContextResponse

logger = logging.getLogger(__name__)


class ContextProvider:
    """Serves rendered context bodies, hitting the store only on cache misses."""

    def __init__(self, client: MemoryStoreClient, cache: ContextCache, user_id: str) -> None:
        self.client = client
        self.cache = cache
        self.user_id = user_id

    @staticmethod
    def render(response: MemoryContextResponse, *, notice: str | None = None) -> str:
        """Enhance a raw store response and format it as an artifact body."""
        return format_context_body(enhance_context(response), notice=notice)

    async def get_memory_context(self, query: str, workspace: Path | None = None) -> str | None:
        """
        Return the rendered context body for `query`.

        Args:
            query: Latest user query.
            workspace: Host context; None uses the global (session-less) scope.
        Returns:
            Context body, or None when the store could not be read.
        """
        session_id = derive_session_id(workspace) if workspace is not None else None
        cached = self.cache.get(self.user_id, session_id, query)
        if cached is not None:
            logger.debug("Context cache hit for session %s.", session_id or "global")
            return cached
        try:
            response = await self.client.context(query, self.user_id, session_id)
        except RemoteReadFailure:
            logger.exception("Failed to fetch memory context for session %s.", session_id or "global")
            return None
        body = self.render(response)
        self.cache.put(self.user_id, session_id, query, body)
        return body

    def prime(self, query: str, workspace: Path | None, body: str) -> None:
        """Store a freshly rendered body so the next lookup skips the store."""
        session_id = derive_session_id(workspace) if workspace is not None else None
        self.cache.put(self.user_id, session_id, query, body)

    def clear_cache(self) -> None:
        self.cache.clear()
