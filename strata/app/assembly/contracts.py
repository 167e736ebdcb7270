from __future__ import annotations

from dataclasses import dataclass

from strata.app.assembly.rendering import wrap_context

HIT_SEPARATOR = "\n---\n"
BLOCK_SEPARATOR = "\n\n"


@dataclass(frozen=True)
class AssemblySettings:
    group_overfetch_multiplier: int = 5
    default_min_score: float = 0.01


@dataclass(frozen=True)
class InjectionBlock:
    source_id: str
    source_name: str
    text: str
    hit_count: int


@dataclass(frozen=True)
class AssembledContext:
    blocks: tuple[InjectionBlock, ...]

    @property
    def text(self) -> str:
        return wrap_context(BLOCK_SEPARATOR.join(block.text for block in self.blocks))
