"""
memsync/sync.py
Synchronization sequencer: record an interaction, wait for indexing, read back, publish.
Exports: SyncSequencer
"""

import asyncio
import logging
from collections import defaultdict
from dataclasses import replace
from pathlib import Path
from typing import Any, Awaitable, Callable

from memsync.errors import ArtifactWriteFailure, RemoteReadFailure, RemoteWriteFailure
from memsync.memory.client import MemoryStoreClient
from memsync.memory.identity import derive_chunk_id, derive_session_id
from memsync.memory.metadata import collect_git_metadata
from memsync.memory.provider import ContextProvider
from memsync.memory.render import (
    MEMORY_UNAVAILABLE_NOTICE,
    MEMORY_WRITE_FAILED_NOTICE,
    context_file_path,
    format_context_body,
    wrap_document,
    write_context_file,
)
from memsync.memory.types import Artifact, CorrelatedInteraction, MemoryRecordRequest, SyncResult

logger = logging.getLogger(__name__)

INITIAL_REFRESH_QUERY = "Fetch memory context"

MetadataProvider = Callable[[Path], Awaitable[dict[str, Any]]]


def _with_chunk_ids(artifacts: list[Artifact]) -> list[Artifact]:
    return [
        artifact
        if artifact.chunk_id
        else replace(artifact, chunk_id=derive_chunk_id(artifact.identifier, artifact.path))
        for artifact in artifacts
    ]


class SyncSequencer:
    """
    Runs one write/settle/read/publish cycle per completed interaction.

    At most one cycle runs per workspace; an attempt that arrives while one is
    in progress is dropped. Read-only refreshes share the artifact but never
    overwrite output of a cycle that started after them.
    """

    def __init__(
        self,
        client: MemoryStoreClient,
        provider: ContextProvider,
        *,
        user_id: str,
        context_file: str,
        settle_delay_seconds: float = 2.0,
        stats_after_sync: bool = False,
        metadata_provider: MetadataProvider = collect_git_metadata,
    ) -> None:
        self.client = client
        self.provider = provider
        self.user_id = user_id
        self.context_file = context_file
        self.settle_delay_seconds = settle_delay_seconds
        self.stats_after_sync = stats_after_sync
        self._metadata_provider = metadata_provider
        self._in_progress: set[str] = set()
        self._generation: dict[str, int] = defaultdict(int)
        self._last_query: dict[str, str] = {}
        self._periodic: dict[str, asyncio.Task] = {}
        self._alive = True
        self._disposed = asyncio.Event()

    @staticmethod
    def _key(workspace: Path) -> str:
        return str(workspace)

    def is_in_progress(self, workspace: Path) -> bool:
        return self._key(workspace) in self._in_progress

    def artifact_path(self, workspace: Path) -> Path:
        return context_file_path(workspace, self.context_file)

    def _publish(self, workspace: Path, body: str) -> Path:
        return write_context_file(self.artifact_path(workspace), wrap_document(body))

    async def _settle(self) -> None:
        """Wait out remote indexing latency; returns early when disposed."""
        if self.settle_delay_seconds <= 0:
            return
        try:
            await asyncio.wait_for(self._disposed.wait(), timeout=self.settle_delay_seconds)
        except asyncio.TimeoutError:
            pass

    async def sync_interaction(self, interaction: CorrelatedInteraction, workspace: Path) -> SyncResult:
        """
        Persist a correlated interaction and republish the context artifact.

        Args:
            interaction: Query/response pair resolved by the correlator.
            workspace: Host context the artifact belongs to.
        Returns:
            SyncResult describing what happened; failures never raise.
        """
        key = self._key(workspace)
        if not self._alive:
            return SyncResult(status="discarded")
        if key in self._in_progress:
            logger.info("Sync already in progress for %s; dropping this attempt.", workspace)
            return SyncResult(status="skipped")
        self._in_progress.add(key)
        self._generation[key] += 1
        self._last_query[key] = interaction.query
        try:
            return await self._run_cycle(interaction, workspace)
        finally:
            self._in_progress.discard(key)

    async def _run_cycle(self, interaction: CorrelatedInteraction, workspace: Path) -> SyncResult:
        session_id = derive_session_id(workspace)
        metadata = await self._metadata_provider(workspace)
        if interaction.model:
            metadata["model"] = interaction.model
        request = MemoryRecordRequest(
            user_id=self.user_id,
            session_id=session_id,
            query=interaction.query,
            response=interaction.response,
            artifacts=_with_chunk_ids(interaction.artifacts),
            metadata=metadata,
        )

        recorded = False
        try:
            result = await self.client.record(request)
            recorded = result.success
            if not recorded:
                logger.error("Memory store rejected the interaction for session %s.", session_id)
        except RemoteWriteFailure:
            logger.exception("Failed to record interaction for session %s.", session_id)

        if not recorded:
            return self._finish(
                workspace,
                format_context_body(None, notice=MEMORY_WRITE_FAILED_NOTICE),
                SyncResult(status="write_failed"),
            )

        await self._settle()
        if not self._alive:
            return SyncResult(status="discarded", recorded=True)

        try:
            response = await self.client.context(interaction.query, self.user_id, session_id)
        except RemoteReadFailure:
            logger.exception("Failed to read memory context after recording for session %s.", session_id)
            return self._finish(
                workspace,
                format_context_body(None, notice=MEMORY_UNAVAILABLE_NOTICE),
                SyncResult(status="read_failed", recorded=True),
            )

        body = self.provider.render(response)
        self.provider.prime(interaction.query, workspace, body)
        outcome = self._finish(
            workspace,
            body,
            SyncResult(status="synced", recorded=True, memories_found=response.memories_found),
        )
        if outcome.status == "synced" and self.stats_after_sync:
            await self._log_stats(session_id)
        return outcome

    def _finish(self, workspace: Path, body: str, result: SyncResult) -> SyncResult:
        if not self._alive:
            logger.info("Sequencer disposed during sync; discarding result for %s.", workspace)
            result.status = "discarded"
            return result
        try:
            result.artifact_path = str(self._publish(workspace, body))
        except ArtifactWriteFailure:
            logger.exception("Failed to write context artifact for %s.", workspace)
            result.status = "artifact_failed"
        return result

    async def _log_stats(self, session_id: str) -> None:
        try:
            stats = await self.client.memory_stats(self.user_id, session_id)
        except RemoteReadFailure:
            logger.warning("Could not fetch memory stats for session %s.", session_id, exc_info=True)
            return
        if stats is None:
            return
        logger.info(
            "Project memory stats: session_id=%s memories=%d entities=%d graph_nodes=%d",
            session_id,
            stats.memories_total,
            stats.entities_total,
            stats.graph_nodes,
        )

    async def refresh_context(self, query: str, workspace: Path) -> bool:
        """
        Republish the artifact for `query` without recording anything.

        Returns:
            True when the artifact was written.
        """
        key = self._key(workspace)
        if not self._alive or key in self._in_progress:
            return False
        query = (query or "").strip() or self._last_query.get(key) or INITIAL_REFRESH_QUERY
        self._last_query[key] = query
        generation = self._generation[key]
        body = await self.provider.get_memory_context(query, workspace)
        if not self._alive or key in self._in_progress or self._generation[key] != generation:
            logger.debug("Refresh for %s superseded by a sync; discarding.", workspace)
            return False
        if body is None:
            if self.artifact_path(workspace).exists():
                return False
            body = format_context_body(None)
        try:
            self._publish(workspace, body)
        except ArtifactWriteFailure:
            logger.exception("Failed to write refreshed context artifact for %s.", workspace)
            return False
        return True

    def start_periodic_refresh(self, workspace: Path, interval_seconds: float) -> asyncio.Task | None:
        """Start a cooperative task that refreshes the artifact every `interval_seconds`."""
        if interval_seconds <= 0 or not self._alive:
            return None
        key = self._key(workspace)
        existing = self._periodic.get(key)
        if existing and not existing.done():
            return existing
        task = asyncio.create_task(self._periodic_loop(workspace, interval_seconds))
        self._periodic[key] = task
        return task

    async def _periodic_loop(self, workspace: Path, interval_seconds: float) -> None:
        key = self._key(workspace)
        while self._alive:
            try:
                await asyncio.wait_for(self._disposed.wait(), timeout=interval_seconds)
                return
            except asyncio.TimeoutError:
                pass
            query = self._last_query.get(key)
            if not query:
                continue
            try:
                await self.refresh_context(query, workspace)
            except Exception:
                logger.exception("Periodic refresh failed for %s.", workspace)

    def dispose(self) -> None:
        """Stop acting on results: wake waits, cancel periodic refresh."""
        self._alive = False
        self._disposed.set()
        for task in self._periodic.values():
            task.cancel()
        self._periodic.clear()
