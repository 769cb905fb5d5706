"""Dataclasses exchanged with the remote memory store and the enhancer."""

from dataclasses import asdict, dataclass, field
from typing import Any

ARTIFACT_STATUSES = {"success", "failed", "draft"}


@dataclass
class Artifact:
    """One code artifact attached to an interaction."""

    identifier: str
    path: str | None = None
    language: str | None = None
    summary: str | None = None
    status: str = "draft"
    outcome: str | None = None
    tags: list[str] = field(default_factory=list)
    test_status: str | None = None
    diff: str | None = None
    chunk_id: str | None = None

    def __post_init__(self) -> None:
        if self.status not in ARTIFACT_STATUSES:
            raise ValueError(f"Unsupported artifact status: {self.status!r}")

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the store's JSON shape, dropping unset optional fields."""
        payload = asdict(self)
        return {key: value for key, value in payload.items() if value is not None}


@dataclass
class CorrelatedInteraction:
    """A prompt paired with its response, ready for synchronization."""

    query: str
    response: str
    artifacts: list[Artifact] = field(default_factory=list)
    model: str | None = None


@dataclass
class MemoryRecordRequest:
    """Body of the remote `record` operation."""

    user_id: str
    session_id: str | None
    query: str
    response: str
    artifacts: list[Artifact] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "user_id": self.user_id,
            "query": self.query,
            "response": self.response,
            "artifacts": [artifact.to_payload() for artifact in self.artifacts],
            "metadata": dict(self.metadata),
        }
        if self.session_id:
            payload["session_id"] = self.session_id
        return payload


@dataclass
class RecordResult:
    """Parsed response of the remote `record` operation."""

    success: bool
    stored_artifacts: int = 0
    memories_created: int = 0
    memory_stats: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecordResult":
        return cls(
            success=bool(data.get("success", False)),
            stored_artifacts=_as_int(data.get("stored_artifacts")),
            memories_created=_as_int(data.get("memories_created")),
            memory_stats=dict(data.get("memory_stats") or {}),
        )


@dataclass
class SectionItem:
    label: str
    values: list[str] = field(default_factory=list)


@dataclass
class Section:
    """Titled group of labeled fact lists rendered into the context artifact."""

    title: str
    items: list[SectionItem] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Section":
        items = [
            SectionItem(
                label=str(item.get("label", "")),
                values=[str(value) for value in item.get("values") or []],
            )
            for item in data.get("items") or []
            if isinstance(item, dict)
        ]
        return cls(title=str(data.get("title", "")), items=items)


@dataclass
class Entity:
    """Historical fact returned by the store; `properties` drives classification."""

    id: str = ""
    name: str = ""
    type: str = ""
    category: str | None = None
    properties: dict[str, Any] = field(default_factory=dict)
    confidence: float | None = None
    source: str | None = None
    last_seen: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.id or "Unknown"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Entity":
        confidence = data.get("confidence")
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            type=str(data.get("type") or ""),
            category=data.get("category") or None,
            properties=dict(data.get("properties") or {}),
            confidence=float(confidence) if isinstance(confidence, (int, float)) else None,
            source=data.get("source"),
            last_seen=data.get("last_seen"),
        )


@dataclass
class MemoryStats:
    entities_total: int = 0
    memories_total: int = 0
    search_hits: int = 0
    graph_nodes: int = 0
    has_session: bool | None = None
    generated_at: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MemoryStats":
        has_session = data.get("has_session")
        return cls(
            entities_total=_as_int(data.get("entities_total")),
            memories_total=_as_int(data.get("memories_total")),
            search_hits=_as_int(data.get("search_hits")),
            graph_nodes=_as_int(data.get("graph_nodes")),
            has_session=bool(has_session) if has_session is not None else None,
            generated_at=data.get("generated_at"),
        )


@dataclass
class MemoryContextResponse:
    """Parsed response of the remote `context` operation."""

    user_id: str = ""
    generated_at: str | None = None
    stats: MemoryStats | None = None
    sections: list[Section] = field(default_factory=list)
    entities: list[Entity] = field(default_factory=list)
    context_text: str = ""

    @property
    def memories_found(self) -> int:
        if self.stats and self.stats.entities_total:
            return self.stats.entities_total
        return len(self.entities)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MemoryContextResponse":
        stats = data.get("stats")
        return cls(
            user_id=str(data.get("user_id") or ""),
            generated_at=data.get("generated_at"),
            stats=MemoryStats.from_dict(stats) if isinstance(stats, dict) else None,
            sections=[
                Section.from_dict(section)
                for section in data.get("sections") or []
                if isinstance(section, dict)
            ],
            entities=[
                Entity.from_dict(entity)
                for entity in data.get("entities") or []
                if isinstance(entity, dict)
            ],
            context_text=str(data.get("context_text") or ""),
        )


@dataclass
class SyncResult:
    """Outcome of one synchronization cycle."""

    status: str
    recorded: bool = False
    memories_found: int = 0
    artifact_path: str | None = None


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0
