"""Short-TTL memo of rendered memory context, keyed by user, session and query prefix."""

import time
from dataclasses import dataclass
from typing import Callable

DEFAULT_TTL_SECONDS = 60.0
QUERY_PREFIX_LENGTH = 50
GLOBAL_SESSION = "global"

CacheKey = tuple[str, str, str]


@dataclass
class CacheEntry:
    context: str
    timestamp: float


class ContextCache:
    """
    In-memory `query -> context` cache with lazy expiry.

    Expired entries read as misses but stay in the map until overwritten or
    `clear()` runs; there is no background sweep.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive.")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[CacheKey, CacheEntry] = {}

    @staticmethod
    def make_key(user_id: str, session_id: str | None, query: str) -> CacheKey:
        return (user_id, session_id or GLOBAL_SESSION, query[:QUERY_PREFIX_LENGTH])

    def get(self, user_id: str, session_id: str | None, query: str) -> str | None:
        """Return the cached context, or None on a miss or an expired entry."""
        entry = self._entries.get(self.make_key(user_id, session_id, query))
        if entry is None:
            return None
        if self._clock() - entry.timestamp >= self.ttl_seconds:
            return None
        return entry.context

    def put(
        self,
        user_id: str,
        session_id: str | None,
        query: str,
        context: str,
        timestamp: float | None = None,
    ) -> None:
        self._entries[self.make_key(user_id, session_id, query)] = CacheEntry(
            context=context,
            timestamp=self._clock() if timestamp is None else timestamp,
        )

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
