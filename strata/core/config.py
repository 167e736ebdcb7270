from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class AppConfig:
    app_name: str
    app_version: str
    environment: str
    log_level: str
    search_backend: str
    search_url: str | None
    search_api_key: str | None
    search_timeout_seconds: float
    assembly_timeout_seconds: float | None
    top_k: int
    group_overfetch_multiplier: int
    fallback_min_primary_hits: int
    default_min_score: float
    default_collection: str
    global_collection: str
    compaction_limit: int
    compaction_global_limit: int
    host: str = "127.0.0.1"
    port: int = 8000


def _read_optional_env(name: str) -> str | None:
    value = os.getenv(name)
    if not value:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _read_int_env(name: str, default: int) -> int:
    value = _read_optional_env(name)
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_float_env(name: str, default: float) -> float:
    value = _read_optional_env(name)
    if value is None:
        return default
    try:
        parsed = float(value)
    except ValueError:
        return default
    if parsed < 0:
        return default
    if parsed > 1:
        return 1.0
    return parsed


def _read_seconds_env(name: str, default: float | None) -> float | None:
    value = _read_optional_env(name)
    if value is None:
        return default
    try:
        parsed = float(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_choice_env(name: str, choices: set[str], default: str) -> str:
    value = _read_optional_env(name)
    if value is None:
        return default
    normalized = value.lower()
    return normalized if normalized in choices else default


def load_config() -> AppConfig:
    return AppConfig(
        app_name=os.getenv("STRATA_APP_NAME", "Strata Context Assembly"),
        app_version=os.getenv("STRATA_APP_VERSION", "0.1.0"),
        environment=os.getenv("STRATA_ENV", "development"),
        log_level=_read_choice_env(
            "STRATA_LOG_LEVEL",
            {"debug", "info", "warning", "error", "critical"},
            "info",
        ).upper(),
        search_backend=_read_choice_env(
            "STRATA_SEARCH_BACKEND", {"http", "memory"}, "memory"
        ),
        search_url=_read_optional_env("STRATA_SEARCH_URL"),
        search_api_key=_read_optional_env("STRATA_SEARCH_API_KEY"),
        search_timeout_seconds=_read_seconds_env(
            "STRATA_SEARCH_TIMEOUT_SECONDS", 20.0
        )
        or 20.0,
        assembly_timeout_seconds=_read_seconds_env(
            "STRATA_ASSEMBLY_TIMEOUT_SECONDS", None
        ),
        top_k=_read_int_env("STRATA_TOP_K", default=10),
        group_overfetch_multiplier=_read_int_env(
            "STRATA_GROUP_OVERFETCH_MULTIPLIER", default=5
        ),
        fallback_min_primary_hits=_read_int_env(
            "STRATA_FALLBACK_MIN_PRIMARY_HITS", default=3
        ),
        default_min_score=_read_float_env("STRATA_DEFAULT_MIN_SCORE", default=0.01),
        default_collection=os.getenv(
            "STRATA_DEFAULT_COLLECTION", "strata_project"
        ).strip()
        or "strata_project",
        global_collection=os.getenv("STRATA_GLOBAL_COLLECTION", "strata_global").strip()
        or "strata_global",
        compaction_limit=_read_int_env("STRATA_COMPACTION_LIMIT", default=5),
        compaction_global_limit=_read_int_env(
            "STRATA_COMPACTION_GLOBAL_LIMIT", default=3
        ),
        host=os.getenv("STRATA_HOST", "127.0.0.1").strip() or "127.0.0.1",
        port=_read_int_env("STRATA_PORT", default=8000),
    )
