"""
memsync/correlator.py
Pairs "before" hook events with their eventual "after" events.
Exports: PendingInteraction, InteractionCorrelator
"""

import logging
import threading
import time
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class PendingInteraction:
    """A submitted prompt waiting for its response."""

    query: str
    conversation_id: str | None = None
    generation_id: str | None = None
    model: str | None = None
    created_at: float = field(default_factory=time.time)


class InteractionCorrelator:
    """
    Owns pending interactions indexed by generation id and conversation id.

    A newer "before" for a key replaces the older pending entry for that key.
    A resolved entry is removed from both indexes, so it is consumed once.
    """

    def __init__(self) -> None:
        self._by_generation: dict[str, PendingInteraction] = {}
        self._by_conversation: dict[str, PendingInteraction] = {}
        self._lock = threading.Lock()

    def record_before(
        self,
        query: str,
        conversation_id: str | None = None,
        generation_id: str | None = None,
        model: str | None = None,
    ) -> PendingInteraction | None:
        """
        Store a pending interaction under every key that is present.

        Args:
            query: Prompt text; trimmed before storing.
            conversation_id: Optional conversation-scoped key.
            generation_id: Optional generation-scoped key.
            model: Optional model name reported by the host.
        Returns:
            The stored interaction, or None when the trimmed query is empty.
        """
        text = (query or "").strip()
        if not text:
            logger.info("before: skipping empty prompt.")
            return None
        interaction = PendingInteraction(
            query=text,
            conversation_id=conversation_id or None,
            generation_id=generation_id or None,
            model=model or None,
        )
        with self._lock:
            if interaction.generation_id:
                self._by_generation[interaction.generation_id] = interaction
            if interaction.conversation_id:
                self._by_conversation[interaction.conversation_id] = interaction
        if not interaction.generation_id and not interaction.conversation_id:
            logger.warning("before: prompt has no correlation keys; it can never be resolved.")
        return interaction

    def resolve_after(
        self,
        conversation_id: str | None = None,
        generation_id: str | None = None,
    ) -> PendingInteraction | None:
        """
        Consume the pending interaction matching an "after" event.

        The generation id is tried first, then the conversation id.

        Returns:
            The matched interaction, or None when neither key resolves.
        """
        with self._lock:
            interaction = None
            if generation_id:
                interaction = self._by_generation.get(generation_id)
            if interaction is None and conversation_id:
                interaction = self._by_conversation.get(conversation_id)
            if interaction is None:
                return None
            self._discard(interaction)
            return interaction

    def _discard(self, interaction: PendingInteraction) -> None:
        # Only drop index slots that still point at this entry; a newer
        # "before" may already own the other key.
        if interaction.generation_id and self._by_generation.get(interaction.generation_id) is interaction:
            del self._by_generation[interaction.generation_id]
        if (
            interaction.conversation_id
            and self._by_conversation.get(interaction.conversation_id) is interaction
        ):
            del self._by_conversation[interaction.conversation_id]

    def pending_count(self) -> int:
        """Return the number of distinct pending interactions."""
        with self._lock:
            pending = {id(item) for item in self._by_generation.values()}
            pending.update(id(item) for item in self._by_conversation.values())
            return len(pending)

    def clear(self) -> None:
        """Drop every pending interaction."""
        with self._lock:
            self._by_generation.clear()
            self._by_conversation.clear()
        logger.info("Cleared pending interactions.")
