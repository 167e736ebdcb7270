from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from strata.app.search.contracts import (
    ExpandedChunk,
    SearchHit,
    SearchOptions,
    SearchOutcome,
)

LOGGER = logging.getLogger(__name__)


def _search_payload(query: str, options: SearchOptions) -> dict[str, Any]:
    payload: dict[str, Any] = {"query": query}
    if options.top_k is not None:
        payload["top_k"] = options.top_k
    if options.min_score is not None:
        payload["min_score"] = options.min_score
    if options.filter is not None:
        payload["filter"] = options.filter
    if options.collection is not None:
        payload["collection"] = options.collection
    return payload


def _source_fields(row: dict[str, Any]) -> tuple[str, str | None, str | None]:
    source = row.get("source")
    if not isinstance(source, dict):
        return "unknown", None, None
    name = source.get("name") if isinstance(source.get("name"), str) else None
    uri = source.get("uri") if isinstance(source.get("uri"), str) else None
    source_id = source.get("id") if isinstance(source.get("id"), str) else None
    return uri or name or "unknown", name, source_id


def _string_metadata(value: Any) -> dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {
        str(key): item for key, item in value.items() if isinstance(item, str)
    }


def parse_search_hits(payload: Any) -> list[SearchHit]:
    rows = payload.get("results") if isinstance(payload, dict) else None
    if not isinstance(rows, list):
        return []

    hits: list[SearchHit] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        content = row.get("content")
        chunk_hash = row.get("chunk_hash")
        score = row.get("score")
        if not isinstance(content, str) or not isinstance(chunk_hash, str):
            continue
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            continue
        origin, name, source_id = _source_fields(row)
        chunk_index = row.get("chunk_index")
        hits.append(
            SearchHit(
                content=content,
                score=float(score),
                source_origin=origin,
                chunk_hash=chunk_hash,
                source_name=name,
                source_id=source_id,
                chunk_index=chunk_index if isinstance(chunk_index, int) else None,
                metadata=_string_metadata(row.get("metadata")),
            )
        )
    return hits


def parse_expanded_chunks(payload: Any) -> list[ExpandedChunk]:
    rows = payload if isinstance(payload, list) else []
    chunks: list[ExpandedChunk] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        content = row.get("content")
        chunk_hash = row.get("chunk_hash")
        if not isinstance(content, str) or not isinstance(chunk_hash, str):
            continue
        origin, _, _ = _source_fields(row)
        heading = row.get("heading")
        chunks.append(
            ExpandedChunk(
                chunk_hash=chunk_hash,
                content=content,
                source_origin=origin,
                heading=heading if isinstance(heading, str) and heading else None,
            )
        )
    return chunks


@dataclass(frozen=True)
class HttpSearchClient:
    url: str
    api_key: str | None = None
    timeout_seconds: float = 20.0
    transport: httpx.AsyncBaseTransport | None = None

    def _endpoint(self, path: str) -> str:
        return f"{self.url.rstrip('/')}/{path.lstrip('/')}"

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _client(self, timeout: float | None) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self.transport)

    async def search(self, query: str, options: SearchOptions) -> SearchOutcome:
        try:
            async with self._client(self.timeout_seconds) as client:
                response = await client.post(
                    self._endpoint("search"),
                    headers=self._headers(),
                    json=_search_payload(query, options),
                )
        except httpx.TransportError as exc:
            return SearchOutcome.unavailable(f"{exc.__class__.__name__}: {exc}")

        if response.status_code == 404:
            return SearchOutcome.not_found(
                f"collection not found: {options.collection or 'default'}"
            )
        if response.is_error:
            return SearchOutcome.failed(
                f"search rejected with status {response.status_code}"
            )
        try:
            payload = response.json()
        except ValueError:
            return SearchOutcome.failed("search response was not valid JSON")
        return SearchOutcome.ok(parse_search_hits(payload))

    async def expand(self, chunk_hash: str) -> list[ExpandedChunk]:
        async with self._client(self.timeout_seconds) as client:
            response = await client.get(
                self._endpoint(f"chunks/{chunk_hash}"),
                headers=self._headers(),
            )
        if response.status_code == 404:
            return []
        response.raise_for_status()
        return parse_expanded_chunks(response.json())

    async def watch(self, path: str) -> None:
        async with self._client(None) as client:
            async with client.stream(
                "POST",
                self._endpoint("watch"),
                headers=self._headers(),
                json={"path": path},
            ) as response:
                response.raise_for_status()
                async for line in response.aiter_lines():
                    if line:
                        LOGGER.debug("Watcher event", extra={"event_line": line})
