from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol


class SearchStatus(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"
    FAILED = "failed"


@dataclass(frozen=True)
class SearchHit:
    content: str
    score: float
    source_origin: str
    chunk_hash: str
    source_name: str | None = None
    chunk_index: int | None = None
    source_id: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class SearchOptions:
    collection: str | None = None
    top_k: int | None = None
    min_score: float | None = None
    filter: str | None = None


@dataclass(frozen=True)
class SearchOutcome:
    """Result of one backend call.

    Absence of a collection, an unreachable backend and a rejected query are
    reported as statuses rather than raised, so callers branch on `status`.
    """

    status: SearchStatus
    hits: tuple[SearchHit, ...] = tuple()
    error_message: str | None = None

    @classmethod
    def ok(cls, hits: list[SearchHit] | tuple[SearchHit, ...]) -> SearchOutcome:
        return cls(status=SearchStatus.OK, hits=tuple(hits))

    @classmethod
    def not_found(cls, message: str | None = None) -> SearchOutcome:
        return cls(status=SearchStatus.NOT_FOUND, error_message=message)

    @classmethod
    def unavailable(cls, message: str | None = None) -> SearchOutcome:
        return cls(status=SearchStatus.UNAVAILABLE, error_message=message)

    @classmethod
    def failed(cls, message: str | None = None) -> SearchOutcome:
        return cls(status=SearchStatus.FAILED, error_message=message)

    @property
    def is_ok(self) -> bool:
        return self.status == SearchStatus.OK


@dataclass(frozen=True)
class ExpandedChunk:
    chunk_hash: str
    content: str
    source_origin: str
    heading: str | None = None


class SearchClient(Protocol):
    async def search(self, query: str, options: SearchOptions) -> SearchOutcome: ...

    async def expand(self, chunk_hash: str) -> list[ExpandedChunk]: ...
