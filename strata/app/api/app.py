from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from strata.app.hooks.service import (
    inject_compaction_context,
    inject_system_context,
    inject_tiered_system_context,
)
from strata.app.observability.contracts import SourceTrace
from strata.app.retrieval.formatting import (
    format_search_results,
    render_expanded_markdown,
)
from strata.app.search.contracts import (
    SearchClient,
    SearchOptions,
    SearchOutcome,
    SearchStatus,
)
from strata.app.search.http_client import HttpSearchClient
from strata.app.search.memory_client import InMemorySearchClient
from strata.app.session.service import SessionLifecycle, WatcherSupervisor
from strata.app.sources.service import SourceConfigurationError, build_sources
from strata.core.config import AppConfig, load_config

LOGGER = logging.getLogger(__name__)


class ContextRequest(BaseModel):
    directory: str = Field(min_length=1)
    query: str | None = None
    messages: list[dict[str, Any]] = Field(default_factory=list)
    overrides: list[Any] | None = None


class CompactionRequest(BaseModel):
    directory: str = Field(min_length=1)


class SearchRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    query: str = Field(min_length=1)
    top_k: int | None = Field(default=None, gt=0)
    min_score: float | None = Field(default=None, ge=0.0, le=1.0)
    filter: str | None = None
    collection: str | None = None


class SessionCreatedRequest(BaseModel):
    directory: str = Field(min_length=1)


def _build_search_client(config: AppConfig) -> SearchClient:
    if config.search_backend == "http":
        if config.search_url:
            return HttpSearchClient(
                url=config.search_url,
                api_key=config.search_api_key,
                timeout_seconds=config.search_timeout_seconds,
            )
        LOGGER.warning(
            "HTTP search backend selected without STRATA_SEARCH_URL; using in-memory backend"
        )
    return InMemorySearchClient(default_collection=config.default_collection)


def _messages_for(payload: ContextRequest) -> list[dict[str, Any]]:
    if payload.query and payload.query.strip():
        return [{"role": "user", "content": payload.query}]
    return payload.messages


def _trace_rows(traces: list[SourceTrace]) -> list[dict[str, Any]]:
    return [asdict(trace) for trace in traces]


_SEARCH_ERROR_STATUS = {
    SearchStatus.NOT_FOUND: 404,
    SearchStatus.FAILED: 400,
    SearchStatus.UNAVAILABLE: 502,
}


def create_app(
    search_client: SearchClient | None = None,
    config: AppConfig | None = None,
) -> FastAPI:
    config = config or load_config()
    logging.getLogger("strata").setLevel(config.log_level)
    client = search_client or _build_search_client(config)
    lifecycle = SessionLifecycle(
        WatcherSupervisor(getattr(client, "watch", None))
    )

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        try:
            yield
        finally:
            await lifecycle.watcher.stop()

    app = FastAPI(title=config.app_name, version=config.app_version, lifespan=lifespan)

    @app.get("/health")
    async def health() -> dict[str, bool]:
        return {"ok": True}

    @app.get("/api/v1/status")
    async def status() -> dict[str, str]:
        return {
            "app": config.app_name,
            "version": config.app_version,
            "environment": config.environment,
            "backend": type(client).__name__,
        }

    @app.get("/api/v1/sources")
    async def sources() -> list[dict[str, Any]]:
        return [source.model_dump(by_alias=True) for source in build_sources()]

    @app.post("/api/v1/context")
    async def context(payload: ContextRequest) -> dict[str, Any]:
        try:
            effective_sources = build_sources(payload.overrides)
        except SourceConfigurationError as exc:
            raise HTTPException(
                status_code=422, detail=list(exc.problems) or str(exc)
            ) from exc

        output: list[str] = []
        traces: list[SourceTrace] = []
        await inject_system_context(
            _messages_for(payload),
            output,
            payload.directory,
            client,
            config,
            sources=effective_sources,
            traces=traces,
        )
        return {
            "context": output[0] if output else None,
            "sources": _trace_rows(traces),
        }

    @app.post("/api/v1/context/tiered")
    async def tiered_context(payload: ContextRequest) -> dict[str, str | None]:
        output: list[str] = []
        await inject_tiered_system_context(
            _messages_for(payload), output, payload.directory, client, config
        )
        return {"context": output[0] if output else None}

    @app.post("/api/v1/context/compaction")
    async def compaction_context(payload: CompactionRequest) -> dict[str, str | None]:
        output: list[str] = []
        await inject_compaction_context(output, payload.directory, client, config)
        return {"context": output[0] if output else None}

    @app.post("/api/v1/search")
    async def search(payload: SearchRequest) -> dict[str, Any]:
        options = SearchOptions(
            collection=payload.collection,
            top_k=payload.top_k,
            min_score=payload.min_score,
            filter=payload.filter,
        )
        started_at = time.perf_counter()
        try:
            outcome = await client.search(payload.query, options)
        except Exception as exc:  # noqa: BLE001
            outcome = SearchOutcome.unavailable(f"{exc.__class__.__name__}: {exc}")
        if not outcome.is_ok:
            LOGGER.warning(
                "Direct search failed",
                extra={
                    "status": outcome.status.value,
                    "error_message": outcome.error_message,
                },
            )
            raise HTTPException(
                status_code=_SEARCH_ERROR_STATUS[outcome.status],
                detail=outcome.error_message or outcome.status.value,
            )
        results = format_search_results(outcome.hits)
        return {
            "ok": True,
            "query": payload.query,
            "options": asdict(options),
            "duration_ms": int((time.perf_counter() - started_at) * 1000),
            "count": len(results),
            "results": results,
        }

    @app.get("/api/v1/chunks/{chunk_hash}")
    async def expand_chunk(chunk_hash: str) -> dict[str, Any]:
        try:
            chunks = await client.expand(chunk_hash)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning(
                "Chunk expansion failed",
                extra={"chunk_hash": chunk_hash},
                exc_info=exc,
            )
            raise HTTPException(
                status_code=502, detail="search backend unavailable"
            ) from exc
        if not chunks:
            raise HTTPException(status_code=404, detail="chunk not found")
        return {
            "count": len(chunks),
            "results": [asdict(chunk) for chunk in chunks],
            "markdown": render_expanded_markdown(chunks),
        }

    @app.post("/api/v1/sessions/{session_id}/created")
    async def session_created(
        session_id: str, payload: SessionCreatedRequest
    ) -> dict[str, Any]:
        started = lifecycle.on_session_created(session_id, payload.directory)
        return {
            "started": started,
            "watcher_running": lifecycle.watcher.is_running(),
            "path": lifecycle.watcher.path,
        }

    @app.post("/api/v1/sessions/{session_id}/deleted")
    async def session_deleted(session_id: str) -> dict[str, bool]:
        await lifecycle.on_session_deleted(session_id)
        return {"watcher_running": lifecycle.watcher.is_running()}

    return app
