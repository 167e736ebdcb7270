from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_TEMPLATE = "{{content}}"

_MODEL_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    frozen=True,
    extra="ignore",
)


class SourceSearch(BaseModel):
    model_config = _MODEL_CONFIG

    max_results: int = Field(default=5, gt=0)
    min_score: float | None = Field(default=None, ge=0.0, le=1.0)
    filter: str | None = None
    group_by_source: bool = False
    max_chunks_per_source: int = Field(default=1, gt=0)


class SourceInjection(BaseModel):
    model_config = _MODEL_CONFIG

    template: str = DEFAULT_TEMPLATE
    max_content_length: int = Field(default=500, gt=0)
    include_source: bool = True


class Source(BaseModel):
    model_config = _MODEL_CONFIG

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    path_or_collection: str = Field(min_length=1)
    collection: str | None = None
    enabled: bool = True
    search: SourceSearch = Field(default_factory=SourceSearch)
    injection: SourceInjection = Field(default_factory=SourceInjection)

    @property
    def target_collection(self) -> str:
        return self.collection or self.path_or_collection


DEFAULT_SOURCES: tuple[Source, ...] = (
    Source(
        id="memory",
        name="Project Memory",
        path_or_collection="strata_project",
        search=SourceSearch(max_results=5),
        injection=SourceInjection(
            template="## {{name}}\nSource: {{source}}\n{{content}}\n(Score: {{score}})",
            max_content_length=500,
        ),
    ),
    Source(
        id="docs",
        name="Documentation",
        path_or_collection="strata_docs",
        search=SourceSearch(
            max_results=3,
            group_by_source=True,
            max_chunks_per_source=2,
        ),
        injection=SourceInjection(
            template="## {{name}}: {{source}}\n{{content}}",
            max_content_length=800,
        ),
    ),
    Source(
        id="global",
        name="Global Memory",
        path_or_collection="strata_global",
        enabled=False,
        search=SourceSearch(max_results=3),
        injection=SourceInjection(
            template="## {{name}}\n{{content}}\n(Score: {{score}})",
            max_content_length=300,
        ),
    ),
)
