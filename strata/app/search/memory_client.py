from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field, replace

from strata.app.search.contracts import (
    ExpandedChunk,
    SearchHit,
    SearchOptions,
    SearchOutcome,
)

_FILTER_PATTERN = re.compile(
    r'^\s*(?:origin|source)\s+starts_with\s+"(?P<prefix>[^"]*)"\s*$'
)


def tokenize(text: str) -> set[str]:
    return set(re.findall(r"[a-zA-Z0-9_]+", text.lower()))


def overlap_score(query: str, candidate: str) -> float:
    query_tokens = tokenize(query)
    if not query_tokens:
        return 0.0
    candidate_tokens = tokenize(candidate)
    hits = len(query_tokens.intersection(candidate_tokens))
    return hits / len(query_tokens)


def parse_origin_filter(expression: str) -> str | None:
    match = _FILTER_PATTERN.match(expression)
    if match is None:
        return None
    return match.group("prefix")


@dataclass
class InMemorySearchClient:
    """Token-overlap search over named collections held in process memory."""

    default_collection: str = "strata_project"
    collections: dict[str, list[SearchHit]] = field(default_factory=dict)

    def add(self, collection: str, hit: SearchHit) -> None:
        self.collections.setdefault(collection, []).append(hit)

    async def search(self, query: str, options: SearchOptions) -> SearchOutcome:
        name = options.collection or self.default_collection
        documents = self.collections.get(name)
        if documents is None:
            return SearchOutcome.not_found(f"collection not found: {name}")

        prefix: str | None = None
        if options.filter is not None:
            prefix = parse_origin_filter(options.filter)
            if prefix is None:
                return SearchOutcome.failed(f"unsupported filter: {options.filter}")

        min_score = options.min_score if options.min_score is not None else 0.0
        scored: list[SearchHit] = []
        for document in documents:
            if prefix is not None and not document.source_origin.startswith(prefix):
                continue
            score = overlap_score(query, document.content)
            if score <= 0 or score < min_score:
                continue
            scored.append(replace(document, score=round(score, 6)))

        ranked = sorted(scored, key=lambda hit: hit.score, reverse=True)
        if options.top_k is not None:
            ranked = ranked[: options.top_k]
        return SearchOutcome.ok(ranked)

    async def expand(self, chunk_hash: str) -> list[ExpandedChunk]:
        chunks: list[ExpandedChunk] = []
        for documents in self.collections.values():
            for document in documents:
                if document.chunk_hash != chunk_hash:
                    continue
                chunks.append(
                    ExpandedChunk(
                        chunk_hash=document.chunk_hash,
                        content=document.content,
                        source_origin=document.source_origin,
                        heading=document.metadata.get("heading"),
                    )
                )
        return chunks

    async def watch(self, path: str) -> None:
        """Hold the watch open until cancelled; collections here never go stale."""
        _ = path
        await asyncio.Event().wait()
