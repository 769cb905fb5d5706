"""
memsync/memory/enhancer.py
Turns historical entities into "what worked / what broke" sections and guidance.
Exports: is_successful, is_problematic, is_effective_solution, classify_entities,
format_entity, enhance_sections, enhance_context_text, enhance_context
"""

from dataclasses import dataclass, field, replace

from memsync.memory.types import Entity, MemoryContextResponse, Section, SectionItem

TECHNICAL_PROFILE_TITLE = "Technical Profile"
PROVEN_SOLUTIONS_TITLE = "Proven Solutions"
KNOWN_ISSUES_TITLE = "Known Issues"
EFFECTIVE_OUTCOMES = {"implemented", "bug_fixed", "optimized"}
GUIDANCE_NAME_LIMIT = 3


@dataclass
class EntityBuckets:
    """Classification of entities; one entity may land in several buckets."""

    successful: list[Entity] = field(default_factory=list)
    problematic: list[Entity] = field(default_factory=list)
    effective: list[Entity] = field(default_factory=list)


def is_successful(entity: Entity) -> bool:
    props = entity.properties
    return props.get("status") == "success" and props.get("test_status") in (None, "", "passed")


def is_problematic(entity: Entity) -> bool:
    props = entity.properties
    return (
        props.get("status") == "failed"
        or props.get("outcome") == "regression"
        or props.get("test_status") == "failed"
    )


def is_effective_solution(entity: Entity) -> bool:
    return is_successful(entity) and entity.properties.get("outcome") in EFFECTIVE_OUTCOMES


def classify_entities(entities: list[Entity]) -> EntityBuckets:
    """Split entities into successful, problematic and effective-solution buckets."""
    buckets = EntityBuckets()
    for entity in entities:
        if is_successful(entity):
            buckets.successful.append(entity)
        if is_problematic(entity):
            buckets.problematic.append(entity)
        if is_effective_solution(entity):
            buckets.effective.append(entity)
    return buckets


def format_entity(entity: Entity) -> str:
    """
    Render one entity as a single context line.

    Example: `retry_client [success] (status: success, outcome: bug_fixed, conf=0.92)`.
    Absent fields are omitted.
    """
    props = entity.properties
    parts = [entity.display_name]
    status = props.get("status")
    if status:
        parts.append(f"[{status}]")
    details = [
        f"{key}: {props[key]}"
        for key in ("status", "outcome", "test_status", "path", "language")
        if props.get(key)
    ]
    if entity.confidence is not None:
        details.append(f"conf={entity.confidence:.2f}")
    if details:
        parts.append(f"({', '.join(details)})")
    return " ".join(parts)


def _category_of(entity: Entity) -> str:
    return (
        entity.category
        or entity.properties.get("category")
        or entity.properties.get("language")
        or "Other"
    )


def _group_by_category(entities: list[Entity]) -> dict[str, list[Entity]]:
    grouped: dict[str, list[Entity]] = {}
    for entity in entities:
        grouped.setdefault(str(_category_of(entity)), []).append(entity)
    return grouped


def _copy_section(section: Section) -> Section:
    return Section(
        title=section.title,
        items=[SectionItem(label=item.label, values=list(item.values)) for item in section.items],
    )


def enhance_sections(existing: list[Section], buckets: EntityBuckets) -> list[Section]:
    """
    Rebuild the section list around the classified entities.

    Order: technical profile (reused case-insensitively, successful entities
    appended per category), proven solutions, known issues, then the remaining
    input sections in their original order. Titles never repeat.

    Args:
        existing: Sections returned by the store; not mutated.
        buckets: Result of `classify_entities`.
    Returns:
        New section list.
    """
    profile_source = next(
        (s for s in existing if s.title.strip().lower() == TECHNICAL_PROFILE_TITLE.lower()),
        None,
    )
    profile = _copy_section(profile_source) if profile_source else Section(title=TECHNICAL_PROFILE_TITLE)
    for category, entities in _group_by_category(buckets.successful).items():
        profile.items.append(SectionItem(label=category, values=[format_entity(e) for e in entities]))

    sections = [profile]
    if buckets.effective:
        sections.append(
            Section(
                title=PROVEN_SOLUTIONS_TITLE,
                items=[SectionItem(label="Solutions", values=[format_entity(e) for e in buckets.effective])],
            )
        )
    if buckets.problematic:
        sections.append(
            Section(
                title=KNOWN_ISSUES_TITLE,
                items=[SectionItem(label="Problems", values=[format_entity(e) for e in buckets.problematic])],
            )
        )

    emitted = {section.title.strip().lower() for section in sections}
    for section in existing:
        key = section.title.strip().lower()
        if key in emitted:
            continue
        emitted.add(key)
        sections.append(_copy_section(section))
    return sections


def _names(entities: list[Entity]) -> str:
    return ", ".join(entity.display_name for entity in entities[:GUIDANCE_NAME_LIMIT])


def enhance_context_text(context_text: str, buckets: EntityBuckets) -> str:
    """Append history-based recommendations and warnings to the store's context text."""
    parts: list[str] = []
    if context_text.strip():
        parts.append(context_text.rstrip())
    if buckets.effective:
        parts.append("\n### Recommendations from history:")
        parts.append("- Prefer approaches that already proved effective.")
        parts.append(f"- Use {_names(buckets.effective)} as references for successful implementation.")
    if buckets.problematic:
        parts.append("\n### Warnings:")
        parts.append(
            f"- Avoid approaches similar to {_names(buckets.problematic)} that previously caused issues."
        )
    return "\n".join(parts).strip("\n")


def enhance_context(response: MemoryContextResponse) -> MemoryContextResponse:
    """
    Return a copy of `response` with enhanced sections and guidance text.

    Responses without entities are returned unchanged.
    """
    if not response.entities:
        return response
    buckets = classify_entities(response.entities)
    return replace(
        response,
        sections=enhance_sections(response.sections, buckets),
        context_text=enhance_context_text(response.context_text, buckets),
    )
