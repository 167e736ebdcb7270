from strata.app.assembly.ranking import (
    dedupe_by_chunk_hash,
    group_hits_by_origin,
    rank_by_score,
)
from strata.app.retrieval.contracts import Tier, TieredHit
from strata.app.search.contracts import SearchHit


def _hit(chunk_hash: str, origin: str, score: float) -> SearchHit:
    return SearchHit(
        content=f"content {chunk_hash}",
        score=score,
        source_origin=origin,
        chunk_hash=chunk_hash,
    )


def test_group_hits_ranks_groups_by_best_member() -> None:
    hits = [
        _hit("a1", "a.md", 0.9),
        _hit("b1", "b.md", 0.8),
        _hit("a2", "a.md", 0.7),
        _hit("c1", "c.md", 0.6),
        _hit("b2", "b.md", 0.5),
        _hit("a3", "a.md", 0.4),
    ]

    selected = group_hits_by_origin(hits, max_groups=2, max_per_group=2)

    assert [hit.chunk_hash for hit in selected] == ["a1", "a2", "b1", "b2"]


def test_group_hits_orders_members_within_group() -> None:
    hits = [
        _hit("low", "a.md", 0.2),
        _hit("high", "a.md", 0.9),
        _hit("mid", "a.md", 0.5),
    ]

    selected = group_hits_by_origin(hits, max_groups=1, max_per_group=2)

    assert [hit.chunk_hash for hit in selected] == ["high", "mid"]


def test_group_hits_respects_bounds() -> None:
    hits = [_hit(f"h{i}", f"file{i % 4}.md", 1.0 - i / 20) for i in range(20)]

    selected = group_hits_by_origin(hits, max_groups=3, max_per_group=2)

    origins = [hit.source_origin for hit in selected]
    assert len(set(origins)) <= 3
    assert all(origins.count(origin) <= 2 for origin in origins)
    assert len(selected) <= 6


def test_group_hits_handles_empty_input() -> None:
    assert group_hits_by_origin([], max_groups=3, max_per_group=2) == []


def test_dedupe_keeps_first_occurrence() -> None:
    first = _hit("same", "a.md", 0.3)
    second = _hit("same", "b.md", 0.9)

    assert dedupe_by_chunk_hash([first, _hit("other", "a.md", 0.1), second]) == [
        first,
        _hit("other", "a.md", 0.1),
    ]


def test_rank_by_score_sorts_descending_and_caps() -> None:
    hits = [_hit("a", "x", 0.2), _hit("b", "x", 0.9), _hit("c", "x", 0.5)]

    assert [hit.chunk_hash for hit in rank_by_score(hits)] == ["b", "c", "a"]
    assert [hit.chunk_hash for hit in rank_by_score(hits, limit=2)] == ["b", "c"]


def test_dedupe_and_rank_accept_tiered_hits() -> None:
    primary = TieredHit(hit=_hit("shared", "a.md", 0.3), tier=Tier.PRIMARY)
    duplicate = TieredHit(hit=_hit("shared", "b.md", 0.9), tier=Tier.GLOBAL)
    other = TieredHit(hit=_hit("other", "c.md", 0.6), tier=Tier.GLOBAL)

    ranked = rank_by_score(dedupe_by_chunk_hash([primary, duplicate, other]))

    assert ranked == [other, primary]
