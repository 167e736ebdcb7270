from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

from strata.app.assembly.contracts import HIT_SEPARATOR
from strata.app.assembly.rendering import (
    TRUNCATION_MARKER,
    preview_content,
    relative_origin,
    wrap_context,
)
from strata.app.retrieval.contracts import TieredHit
from strata.app.search.contracts import ExpandedChunk, SearchHit

COMPACT_OPEN_TAG = "<strata-compact-context>"
COMPACT_CLOSE_TAG = "</strata-compact-context>"
COMPACTION_HEADER = "Relevant memories to assist in session summarization:"
SEARCH_PREVIEW_LIMIT = 240

_WHITESPACE_PATTERN = re.compile(r"\s+")


def _heading_line(item: TieredHit) -> str:
    heading = item.hit.metadata.get("heading")
    return f"\nHeading: {heading}" if heading else ""


def render_tiered_block(hits: Sequence[TieredHit], scope_path: str) -> str | None:
    if not hits:
        return None
    entries = [
        (
            f"Source: {relative_origin(item.hit.source_origin, scope_path)}"
            f"{_heading_line(item)}\n"
            f"Chunk Hash: {item.chunk_hash}\n"
            f"Confidence: {item.score:.2f}\n"
            f"Content: {preview_content(item.hit.content)}"
        )
        for item in hits
    ]
    return wrap_context(HIT_SEPARATOR.join(entries))


def render_compaction_listing(
    hits: Sequence[TieredHit], scope_path: str
) -> str | None:
    if not hits:
        return None
    entries = [
        (
            f"Source: {relative_origin(item.hit.source_origin, scope_path)}"
            f"{_heading_line(item)}\n"
            f"Content: {item.hit.content.strip()}"
        )
        for item in hits
    ]
    body = f"{COMPACTION_HEADER}\n{HIT_SEPARATOR.join(entries)}"
    return wrap_context(body, COMPACT_OPEN_TAG, COMPACT_CLOSE_TAG)


def render_expanded_markdown(chunks: Sequence[ExpandedChunk]) -> str:
    segments: list[str] = []
    total = len(chunks)
    for index, chunk in enumerate(chunks, start=1):
        heading = f"**Heading:** {chunk.heading}\n\n" if chunk.heading else ""
        segments.append(
            f"---\n**Segment {index}/{total}**\n\n"
            f"### Source: {chunk.source_origin}\n"
            f"{heading}"
            f"**Chunk Hash:** {chunk.chunk_hash}\n\n"
            f"````text\n{chunk.content}\n````"
        )
    return "\n\n".join(segments)


def collapse_preview(content: str, limit: int = SEARCH_PREVIEW_LIMIT) -> str:
    collapsed = _WHITESPACE_PATTERN.sub(" ", content).strip()
    if len(collapsed) <= limit:
        return collapsed
    return collapsed[:limit] + TRUNCATION_MARKER


def format_search_results(hits: Sequence[SearchHit]) -> list[dict[str, Any]]:
    return [
        {
            "source": {
                "name": hit.source_name or "unknown",
                "uri": hit.source_origin,
                "id": hit.source_id,
            },
            "preview": collapse_preview(hit.content),
            "chunk_hash": hit.chunk_hash,
            "score": hit.score,
            "chunk_index": hit.chunk_index,
            "metadata": dict(hit.metadata),
        }
        for hit in hits
    ]
