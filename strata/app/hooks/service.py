from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from strata.app.assembly.contracts import AssemblySettings
from strata.app.assembly.service import append_context, assemble_context
from strata.app.observability.contracts import SourceTrace
from strata.app.retrieval.contracts import TieredSettings
from strata.app.retrieval.formatting import (
    render_compaction_listing,
    render_tiered_block,
)
from strata.app.retrieval.service import retrieve_tiered
from strata.app.search.contracts import SearchClient
from strata.app.sources.contracts import Source
from strata.app.sources.service import build_sources
from strata.core.config import AppConfig

LOGGER = logging.getLogger(__name__)

COMPACTION_QUERY = "what were the main goals and achievements of this session?"


def assembly_settings(config: AppConfig) -> AssemblySettings:
    return AssemblySettings(
        group_overfetch_multiplier=config.group_overfetch_multiplier,
        default_min_score=config.default_min_score,
    )


def tiered_settings(config: AppConfig) -> TieredSettings:
    return TieredSettings(
        min_score=config.default_min_score,
        fallback_min_primary_hits=config.fallback_min_primary_hits,
    )


def _message_text(message: Mapping[str, Any]) -> str:
    content = message.get("content")
    if isinstance(content, str):
        return content
    parts = message.get("parts")
    if not isinstance(parts, list):
        return ""
    texts = [
        part["text"]
        for part in parts
        if isinstance(part, Mapping)
        and part.get("type") == "text"
        and isinstance(part.get("text"), str)
    ]
    return "\n".join(texts).strip()


def extract_query(messages: Sequence[Any]) -> str:
    user_messages = [
        message
        for message in messages
        if isinstance(message, Mapping) and message.get("role") == "user"
    ]
    if not user_messages:
        return ""
    return _message_text(user_messages[-1]).strip()


async def inject_system_context(
    messages: Sequence[Any],
    output: list[str],
    directory: str,
    client: SearchClient,
    config: AppConfig,
    *,
    sources: Sequence[Source] | None = None,
    traces: list[SourceTrace] | None = None,
) -> bool:
    query = extract_query(messages)
    if not query:
        return False
    try:
        effective_sources = sources if sources is not None else build_sources()
        context = await assemble_context(
            query,
            directory,
            effective_sources,
            client,
            settings=assembly_settings(config),
            timeout=config.assembly_timeout_seconds,
            traces=traces,
        )
    except Exception as exc:  # noqa: BLE001
        LOGGER.warning("System context injection failed", exc_info=exc)
        return False
    return append_context(output, context)


async def inject_tiered_system_context(
    messages: Sequence[Any],
    output: list[str],
    directory: str,
    client: SearchClient,
    config: AppConfig,
) -> bool:
    query = extract_query(messages)
    if not query:
        return False
    try:
        hits = await retrieve_tiered(
            query,
            directory,
            client,
            primary_limit=config.top_k,
            global_limit=config.top_k // 2,
            global_collection_name=config.global_collection,
            settings=tiered_settings(config),
        )
    except Exception as exc:  # noqa: BLE001
        LOGGER.warning("Tiered context injection failed", exc_info=exc)
        return False
    rendered = render_tiered_block(hits, directory)
    if rendered is None:
        return False
    output.append(rendered)
    return True


async def inject_compaction_context(
    output: list[str],
    directory: str,
    client: SearchClient,
    config: AppConfig,
) -> bool:
    try:
        hits = await retrieve_tiered(
            COMPACTION_QUERY,
            directory,
            client,
            primary_limit=config.compaction_limit,
            global_limit=config.compaction_global_limit,
            global_collection_name=config.global_collection,
            total_limit=config.compaction_limit,
            settings=tiered_settings(config),
        )
    except Exception as exc:  # noqa: BLE001
        LOGGER.warning("Compaction context injection failed", exc_info=exc)
        return False
    rendered = render_compaction_listing(hits, directory)
    if rendered is None:
        return False
    output.append(rendered)
    return True
