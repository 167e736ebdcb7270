from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SourceTrace:
    source_id: str
    status: str
    hit_count: int
    rendered_count: int
    latency_ms: int
    error_message: str | None = None
