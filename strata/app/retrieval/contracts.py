from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from strata.app.search.contracts import SearchHit


class Tier(str, Enum):
    PRIMARY = "primary"
    GLOBAL = "global"


@dataclass(frozen=True)
class TieredHit:
    hit: SearchHit
    tier: Tier

    @property
    def chunk_hash(self) -> str:
        return self.hit.chunk_hash

    @property
    def score(self) -> float:
        return self.hit.score


@dataclass(frozen=True)
class TieredSettings:
    min_score: float = 0.01
    fallback_min_primary_hits: int = 3
    min_global_top_k: int = 3
