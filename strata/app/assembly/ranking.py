from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, TypeVar

from strata.app.search.contracts import SearchHit


class Ranked(Protocol):
    @property
    def chunk_hash(self) -> str: ...

    @property
    def score(self) -> float: ...


T = TypeVar("T", bound=Ranked)


def group_hits_by_origin(
    hits: Sequence[SearchHit],
    max_groups: int,
    max_per_group: int,
) -> list[SearchHit]:
    groups: dict[str, list[SearchHit]] = {}
    for hit in hits:
        groups.setdefault(hit.source_origin, []).append(hit)

    ranked_groups = sorted(
        groups.values(),
        key=lambda members: max(member.score for member in members),
        reverse=True,
    )

    selected: list[SearchHit] = []
    for members in ranked_groups[:max_groups]:
        ordered = sorted(members, key=lambda member: member.score, reverse=True)
        selected.extend(ordered[:max_per_group])
    return selected


def dedupe_by_chunk_hash(items: Sequence[T]) -> list[T]:
    seen: set[str] = set()
    unique_items: list[T] = []
    for item in items:
        dedupe_key = item.chunk_hash
        if dedupe_key in seen:
            continue
        seen.add(dedupe_key)
        unique_items.append(item)
    return unique_items


def rank_by_score(items: Sequence[T], limit: int | None = None) -> list[T]:
    ranked = sorted(items, key=lambda item: item.score, reverse=True)
    return ranked if limit is None else ranked[:limit]
