"""
memsync/processor.py
Hook event handling: correlate before/after events and hand work to the sequencer.
Exports: HookBeforePayload, HookAfterPayload, HookThoughtPayload, HookEventProcessor
"""

import logging
from pathlib import Path

from pydantic import BaseModel

from memsync.correlator import InteractionCorrelator, PendingInteraction
from memsync.memory.types import CorrelatedInteraction, SyncResult
from memsync.sync import SyncSequencer

logger = logging.getLogger(__name__)


class HookBeforePayload(BaseModel):
    prompt: str = ""
    conversation_id: str | None = None
    generation_id: str | None = None
    model: str | None = None


class HookAfterPayload(BaseModel):
    text: str = ""
    conversation_id: str | None = None
    generation_id: str | None = None


class HookThoughtPayload(BaseModel):
    text: str = ""
    duration_ms: float | None = None
    conversation_id: str | None = None
    generation_id: str | None = None


class HookEventProcessor:
    """Binds the correlator and the sequencer to one workspace."""

    def __init__(
        self,
        correlator: InteractionCorrelator,
        sequencer: SyncSequencer,
        workspace: Path,
    ) -> None:
        self.correlator = correlator
        self.sequencer = sequencer
        self.workspace = workspace

    def handle_before(self, payload: HookBeforePayload) -> PendingInteraction | None:
        """
        Register a submitted prompt.

        Returns:
            The pending interaction, or None when the prompt was empty.
        """
        interaction = self.correlator.record_before(
            payload.prompt,
            conversation_id=payload.conversation_id,
            generation_id=payload.generation_id,
            model=payload.model,
        )
        if interaction is not None:
            logger.info(
                "before: conversation_id=%s generation_id=%s query_len=%d",
                payload.conversation_id,
                payload.generation_id,
                len(interaction.query),
            )
        return interaction

    def handle_after(self, payload: HookAfterPayload) -> CorrelatedInteraction | None:
        """
        Pair a produced response with its pending prompt.

        Misses and empty responses are logged and dropped, never raised: the
        event source must not retry them.

        Returns:
            The correlated interaction, or None when there is nothing to sync.
        """
        response_text = (payload.text or "").strip()
        pending = self.correlator.resolve_after(
            conversation_id=payload.conversation_id,
            generation_id=payload.generation_id,
        )
        if pending is None or not response_text:
            logger.info(
                "after: nothing to sync (has_interaction=%s, has_response=%s, "
                "conversation_id=%s, generation_id=%s).",
                pending is not None,
                bool(response_text),
                payload.conversation_id,
                payload.generation_id,
            )
            return None
        logger.info(
            "after: correlated query_len=%d response_len=%d",
            len(pending.query),
            len(response_text),
        )
        return CorrelatedInteraction(query=pending.query, response=response_text, model=pending.model)

    def handle_thought(self, payload: HookThoughtPayload) -> None:
        logger.debug(
            "thought: conversation_id=%s generation_id=%s length=%d duration_ms=%s",
            payload.conversation_id,
            payload.generation_id,
            len(payload.text or ""),
            payload.duration_ms,
        )

    async def run_sync(self, interaction: CorrelatedInteraction) -> SyncResult | None:
        """Background entry point for a sync cycle; logs and swallows unexpected failures."""
        try:
            result = await self.sequencer.sync_interaction(interaction, self.workspace)
        except Exception:
            logger.exception("Background sync failed for %s.", self.workspace)
            return None
        logger.info("Sync finished for %s: %s", self.workspace, result.status)
        return result

    async def run_refresh(self, query: str) -> bool:
        """Background entry point for a read-only refresh."""
        try:
            return await self.sequencer.refresh_context(query, self.workspace)
        except Exception:
            logger.exception("Background refresh failed for %s.", self.workspace)
            return False

    def clear(self) -> None:
        self.correlator.clear()
