from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence
from uuid import uuid4

from strata.app.assembly.contracts import (
    HIT_SEPARATOR,
    AssembledContext,
    AssemblySettings,
    InjectionBlock,
)
from strata.app.assembly.ranking import group_hits_by_origin
from strata.app.assembly.rendering import RenderInput, render_template
from strata.app.observability.contracts import SourceTrace
from strata.app.observability.service import emit_assembly_telemetry, source_trace
from strata.app.search.contracts import (
    SearchClient,
    SearchHit,
    SearchOptions,
    SearchOutcome,
    SearchStatus,
)
from strata.app.sources.contracts import Source
from strata.app.sources.service import ensure_unique_ids

LOGGER = logging.getLogger(__name__)

DEFAULT_ASSEMBLY_SETTINGS = AssemblySettings()


def query_budget(source: Source, settings: AssemblySettings) -> int:
    if source.search.group_by_source:
        return source.search.max_results * settings.group_overfetch_multiplier
    return source.search.max_results


def search_options_for(source: Source, settings: AssemblySettings) -> SearchOptions:
    min_score = source.search.min_score
    return SearchOptions(
        collection=source.target_collection,
        top_k=query_budget(source, settings),
        min_score=min_score if min_score is not None else settings.default_min_score,
        filter=source.search.filter,
    )


def select_hits(hits: Sequence[SearchHit], source: Source) -> list[SearchHit]:
    if source.search.group_by_source:
        return group_hits_by_origin(
            hits,
            max_groups=source.search.max_results,
            max_per_group=source.search.max_chunks_per_source,
        )
    return list(hits[: source.search.max_results])


def render_block(
    hits: Sequence[SearchHit],
    source: Source,
    scope_path: str,
) -> InjectionBlock | None:
    rendered = [
        render_template(
            source.injection.template,
            RenderInput(
                hit=hit,
                source_name=source.name,
                scope_path=scope_path,
                max_content_length=source.injection.max_content_length,
            ),
        )
        for hit in hits
    ]
    text = HIT_SEPARATOR.join(rendered)
    if not text.strip():
        return None
    return InjectionBlock(
        source_id=source.id,
        source_name=source.name,
        text=text,
        hit_count=len(rendered),
    )


def _log_source_failure(source: Source, outcome: SearchOutcome) -> None:
    extra = {
        "source_id": source.id,
        "collection": source.target_collection,
        "status": outcome.status.value,
        "error_message": outcome.error_message,
    }
    if outcome.status == SearchStatus.NOT_FOUND:
        LOGGER.info("Source collection not found; skipping source", extra=extra)
    else:
        LOGGER.warning("Source query failed; skipping source", extra=extra)


async def _assemble_source(
    query: str,
    scope_path: str,
    source: Source,
    client: SearchClient,
    settings: AssemblySettings,
) -> tuple[InjectionBlock | None, SourceTrace]:
    started_at = time.perf_counter()
    try:
        outcome = await client.search(query, search_options_for(source, settings))
    except Exception as exc:  # noqa: BLE001
        outcome = SearchOutcome.failed(f"{exc.__class__.__name__}: {exc}")

    if not outcome.is_ok:
        _log_source_failure(source, outcome)
        return None, source_trace(
            source.id,
            started_at,
            status=outcome.status.value,
            error_message=outcome.error_message,
        )

    if not outcome.hits:
        LOGGER.debug("Source returned no hits", extra={"source_id": source.id})
        return None, source_trace(source.id, started_at, status="empty")

    block = render_block(select_hits(outcome.hits, source), source, scope_path)
    return block, source_trace(
        source.id,
        started_at,
        status=SearchStatus.OK.value,
        hit_count=len(outcome.hits),
        rendered_count=block.hit_count if block else 0,
    )


async def assemble_context(
    query: str,
    scope_path: str,
    sources: Sequence[Source],
    client: SearchClient,
    *,
    settings: AssemblySettings = DEFAULT_ASSEMBLY_SETTINGS,
    timeout: float | None = None,
    traces: list[SourceTrace] | None = None,
    request_id: str | None = None,
) -> AssembledContext | None:
    """Query every enabled source concurrently and render their blocks.

    Blocks are emitted in source-list order regardless of completion order.
    Sources still running when `timeout` expires are cancelled and omitted.
    Returns None when no source produced output.
    """
    ensure_unique_ids(sources)
    enabled = [source for source in sources if source.enabled]
    results: list[tuple[InjectionBlock | None, SourceTrace] | None] = [None] * len(
        enabled
    )

    async def _run(index: int, source: Source) -> None:
        results[index] = await _assemble_source(
            query, scope_path, source, client, settings
        )

    tasks = [
        asyncio.create_task(_run(index, source), name=f"assemble-source:{source.id}")
        for index, source in enumerate(enabled)
    ]
    started_at = time.perf_counter()
    try:
        if tasks:
            _, pending = await asyncio.wait(tasks, timeout=timeout)
            if pending:
                LOGGER.warning(
                    "Context assembly timed out; dropping unfinished sources",
                    extra={"pending_sources": len(pending), "timeout": timeout},
                )
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    blocks: list[InjectionBlock] = []
    collected: list[SourceTrace] = []
    for source, result in zip(enabled, results):
        if result is None:
            collected.append(source_trace(source.id, started_at, status="timeout"))
            continue
        block, trace = result
        collected.append(trace)
        if block is not None:
            blocks.append(block)

    emit_assembly_telemetry(collected, request_id or uuid4().hex)
    if traces is not None:
        traces.extend(collected)
    if not blocks:
        return None
    return AssembledContext(blocks=tuple(blocks))


def append_context(output: list[str], context: AssembledContext | None) -> bool:
    if context is None:
        return False
    output.append(context.text)
    return True
