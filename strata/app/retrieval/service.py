from __future__ import annotations

import logging

from strata.app.assembly.ranking import dedupe_by_chunk_hash, rank_by_score
from strata.app.retrieval.contracts import Tier, TieredHit, TieredSettings
from strata.app.search.contracts import SearchClient, SearchOptions, SearchOutcome

LOGGER = logging.getLogger(__name__)

DEFAULT_TIERED_SETTINGS = TieredSettings()


def origin_filter(scope_path: str) -> str:
    return f'origin starts_with "{scope_path}"'


async def _search_tier(
    client: SearchClient,
    query: str,
    options: SearchOptions,
    tier: Tier,
) -> list[TieredHit]:
    try:
        outcome = await client.search(query, options)
    except Exception as exc:  # noqa: BLE001
        outcome = SearchOutcome.failed(f"{exc.__class__.__name__}: {exc}")

    if not outcome.is_ok:
        LOGGER.info(
            "Tier search returned no usable results",
            extra={
                "tier": tier.value,
                "status": outcome.status.value,
                "error_message": outcome.error_message,
            },
        )
        return []
    return [TieredHit(hit=hit, tier=tier) for hit in outcome.hits]


async def retrieve_tiered(
    query: str,
    primary_scope: str,
    client: SearchClient,
    primary_limit: int,
    global_limit: int,
    global_collection_name: str,
    *,
    total_limit: int | None = None,
    settings: TieredSettings = DEFAULT_TIERED_SETTINGS,
) -> list[TieredHit]:
    """Search the primary scope, widening to the global collection when sparse.

    Results are deduplicated by chunk hash with primary hits taking precedence,
    ranked by score and capped to `total_limit` (defaults to `primary_limit`).
    """
    results = await _search_tier(
        client,
        query,
        SearchOptions(
            top_k=primary_limit,
            min_score=settings.min_score,
            filter=origin_filter(primary_scope),
        ),
        Tier.PRIMARY,
    )

    if len(results) < settings.fallback_min_primary_hits:
        results.extend(
            await _search_tier(
                client,
                query,
                SearchOptions(
                    collection=global_collection_name,
                    top_k=max(settings.min_global_top_k, global_limit),
                    min_score=settings.min_score,
                ),
                Tier.GLOBAL,
            )
        )

    limit = total_limit if total_limit is not None else primary_limit
    return rank_by_score(dedupe_by_chunk_hash(results), limit=limit)
