import pytest

from strata.app.hooks.service import (
    COMPACTION_QUERY,
    extract_query,
    inject_compaction_context,
    inject_system_context,
    inject_tiered_system_context,
)
from strata.app.observability.contracts import SourceTrace
from strata.app.search.contracts import (
    ExpandedChunk,
    SearchHit,
    SearchOptions,
    SearchOutcome,
)
from strata.app.sources.contracts import Source, SourceInjection


class _RecordingSearchClient:
    def __init__(
        self,
        outcome: SearchOutcome | None = None,
        error: Exception | None = None,
    ) -> None:
        self.outcome = outcome or SearchOutcome.ok([])
        self.error = error
        self.queries: list[tuple[str, SearchOptions]] = []

    async def search(self, query: str, options: SearchOptions) -> SearchOutcome:
        self.queries.append((query, options))
        if self.error is not None:
            raise self.error
        return self.outcome

    async def expand(self, chunk_hash: str) -> list[ExpandedChunk]:
        return []


def _hit(chunk_hash: str, score: float) -> SearchHit:
    return SearchHit(
        content=f"remembered {chunk_hash}",
        score=score,
        source_origin=f"/proj/{chunk_hash}.md",
        chunk_hash=chunk_hash,
    )


def test_extract_query_reads_last_user_message() -> None:
    messages = [
        {"role": "user", "content": "first question"},
        {"role": "assistant", "content": "answer"},
        {
            "role": "user",
            "parts": [
                {"type": "text", "text": "second"},
                {"type": "file", "url": "x"},
                {"type": "text", "text": "question"},
            ],
        },
        {"role": "assistant", "content": "pending"},
    ]

    assert extract_query(messages) == "second\nquestion"


def test_extract_query_handles_missing_user_text() -> None:
    assert extract_query([]) == ""
    assert extract_query([{"role": "assistant", "content": "hi"}]) == ""
    assert extract_query([{"role": "user", "parts": "bad"}]) == ""
    assert extract_query(["not a message"]) == ""


@pytest.mark.asyncio
async def test_inject_system_context_appends_assembled_block(app_config) -> None:
    client = _RecordingSearchClient(SearchOutcome.ok([_hit("a", 0.7)]))
    source = Source(
        id="notes",
        name="Notes",
        path_or_collection="notes",
        injection=SourceInjection(template="{{content}}"),
    )
    output: list[str] = ["base prompt"]
    traces: list[SourceTrace] = []

    injected = await inject_system_context(
        [{"role": "user", "content": "what do we remember?"}],
        output,
        "/proj",
        client,
        app_config,
        sources=[source],
        traces=traces,
    )

    assert injected is True
    assert output == ["base prompt", "<strata-context>\nremembered a\n</strata-context>"]
    assert client.queries[0][0] == "what do we remember?"
    assert client.queries[0][1].min_score == app_config.default_min_score
    assert [trace.source_id for trace in traces] == ["notes"]


@pytest.mark.asyncio
async def test_inject_system_context_skips_without_query(app_config) -> None:
    client = _RecordingSearchClient()
    output: list[str] = []

    injected = await inject_system_context([], output, "/proj", client, app_config)

    assert injected is False
    assert output == []
    assert client.queries == []


@pytest.mark.asyncio
async def test_inject_system_context_never_raises(app_config) -> None:
    duplicate = Source(id="dup", name="Dup", path_or_collection="dup")
    output: list[str] = []

    injected = await inject_system_context(
        [{"role": "user", "content": "q"}],
        output,
        "/proj",
        _RecordingSearchClient(),
        app_config,
        sources=[duplicate, duplicate],
    )

    assert injected is False
    assert output == []


@pytest.mark.asyncio
async def test_inject_tiered_system_context_renders_listing(app_config) -> None:
    client = _RecordingSearchClient(
        SearchOutcome.ok([_hit("a", 0.9), _hit("b", 0.8), _hit("c", 0.7)])
    )
    output: list[str] = []

    injected = await inject_tiered_system_context(
        [{"role": "user", "content": "auth"}], output, "/proj", client, app_config
    )

    assert injected is True
    assert output[0].startswith("<strata-context>\nSource: a.md\nChunk Hash: a")
    assert client.queries[0][1].top_k == app_config.top_k
    assert len(client.queries) == 1


@pytest.mark.asyncio
async def test_inject_tiered_system_context_skips_when_nothing_found(app_config) -> None:
    output: list[str] = []

    injected = await inject_tiered_system_context(
        [{"role": "user", "content": "auth"}],
        output,
        "/proj",
        _RecordingSearchClient(error=RuntimeError("down")),
        app_config,
    )

    assert injected is False
    assert output == []


@pytest.mark.asyncio
async def test_inject_compaction_context_uses_fixed_query(app_config) -> None:
    client = _RecordingSearchClient(
        SearchOutcome.ok([_hit(f"m{i}", 0.9 - i / 10) for i in range(8)])
    )
    output: list[str] = []

    injected = await inject_compaction_context(output, "/proj", client, app_config)

    assert injected is True
    assert client.queries[0][0] == COMPACTION_QUERY
    assert client.queries[0][1].top_k == app_config.compaction_limit
    assert output[0].startswith("<strata-compact-context>\n")
    assert output[0].count("Source: ") == app_config.compaction_limit
