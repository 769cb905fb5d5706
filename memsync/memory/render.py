"""
memsync/memory/render.py
Formats the context artifact read by the host and writes it atomically.
Exports: format_context_body, wrap_document, context_file_path, write_context_file
"""

import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from memsync.errors import ArtifactWriteFailure
from memsync.memory.types import MemoryContextResponse

logger = logging.getLogger(__name__)

DOCUMENT_TITLE = "# Memory Context"
EMPTY_MEMORY_PLACEHOLDER = (
    "Memory is empty for now. After the first chats with the assistant, "
    "long-term memory will populate automatically."
)
MEMORY_UNAVAILABLE_NOTICE = (
    "Memory not yet available: the latest interaction was saved but the memory "
    "store has not returned its context yet. It will appear on the next update."
)
MEMORY_WRITE_FAILED_NOTICE = (
    "The latest interaction could not be saved to long-term memory. "
    "Context below may be out of date."
)
INSTRUCTIONS = [
    "- Treat these facts as ground truth about the user and the project.",
    "- Ask clarifying questions before making changes if the context is incomplete.",
    "- Do not contradict the stored facts even if the current request suggests otherwise.",
    "- Prefer solutions that already worked in this project.",
    "- Use this information when answering questions or generating code.",
    "- Avoid repeating mistakes that were previously fixed.",
    "- Follow the user's coding style and architectural preferences.",
]


def format_context_body(
    response: MemoryContextResponse | None,
    *,
    notice: str | None = None,
) -> str:
    """
    Build the artifact body from an (already enhanced) context response.

    Args:
        response: Enhanced store response, or None when nothing could be read.
        notice: Optional status line shown right under the memory count.
    Returns:
        Markdown text without the document title and footer.
    """
    memories_found = response.memories_found if response else 0
    lines = ["## Long-Term Memory Context", ""]
    lines.append(f"{memories_found} relevant memories found in long-term storage.")
    lines.append("")
    if notice:
        lines.extend([f"> {notice}", ""])

    if response and response.sections:
        lines.extend(["### Structured Memory Facts:", ""])
        for section in response.sections:
            lines.append(f"#### {section.title}")
            for item in section.items:
                lines.append(f"- {item.label}: {', '.join(item.values)}")
            lines.append("")

    if response and response.stats:
        stats = response.stats
        lines.extend(["### Memory statistics:", ""])
        lines.append(f"- Total entities: {stats.entities_total}")
        lines.append(f"- Total memories/dialogues: {stats.memories_total}")
        lines.append(f"- Graph nodes: {stats.graph_nodes}")
        lines.append(f"- Relevant hits for the query: {stats.search_hits}")
        if stats.has_session is not None:
            lines.append(f"- Active session: {'yes' if stats.has_session else 'no'}")
        if stats.generated_at:
            lines.append(f"- Generated at: {stats.generated_at}")
        lines.append("")

    lines.extend(["### Key facts:", ""])
    context_text = response.context_text.strip() if response else ""
    lines.append(context_text or EMPTY_MEMORY_PLACEHOLDER)
    lines.append("")

    lines.extend(["## Instructions for AI / IDE", ""])
    lines.extend(INSTRUCTIONS)
    return "\n".join(lines)


def wrap_document(body: str, updated_at: datetime | None = None) -> str:
    """Add the document title and the auto-generated footer to a body."""
    stamp = (updated_at or datetime.now(timezone.utc)).isoformat(timespec="seconds")
    return (
        f"{DOCUMENT_TITLE}\n\n"
        f"{body.strip()}\n\n"
        "---\n\n"
        "*Automatically updated by memsync. Do not edit manually.*\n"
        f"*Last update: {stamp}*\n"
    )


def context_file_path(workspace: Path, relpath: str) -> Path:
    return Path(workspace) / relpath


def write_context_file(path: Path, content: str) -> Path:
    """
    Replace the context artifact with `content` in one step.

    The text goes to a temporary file in the target directory first and is then
    moved over the artifact, so readers never see a partial file.

    Raises:
        ArtifactWriteFailure: When the directory or file cannot be written.
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as exc:
        raise ArtifactWriteFailure(f"Failed to write context file {path}: {exc}") from exc
    logger.info("Context file written: %s (%d chars).", path, len(content))
    return path
