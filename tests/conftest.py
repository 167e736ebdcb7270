from __future__ import annotations

import pytest

from strata.core.config import AppConfig


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(
        app_name="Strata Test",
        app_version="0.0.0-test",
        environment="test",
        log_level="INFO",
        search_backend="memory",
        search_url=None,
        search_api_key=None,
        search_timeout_seconds=5.0,
        assembly_timeout_seconds=None,
        top_k=10,
        group_overfetch_multiplier=5,
        fallback_min_primary_hits=3,
        default_min_score=0.01,
        default_collection="strata_project",
        global_collection="strata_global",
        compaction_limit=5,
        compaction_global_limit=3,
    )
