import pytest

from strata.core.config import load_config

STRATA_ENV_VARS = [
    "STRATA_APP_NAME",
    "STRATA_APP_VERSION",
    "STRATA_ENV",
    "STRATA_LOG_LEVEL",
    "STRATA_SEARCH_BACKEND",
    "STRATA_SEARCH_URL",
    "STRATA_SEARCH_API_KEY",
    "STRATA_SEARCH_TIMEOUT_SECONDS",
    "STRATA_ASSEMBLY_TIMEOUT_SECONDS",
    "STRATA_TOP_K",
    "STRATA_GROUP_OVERFETCH_MULTIPLIER",
    "STRATA_FALLBACK_MIN_PRIMARY_HITS",
    "STRATA_DEFAULT_MIN_SCORE",
    "STRATA_GLOBAL_COLLECTION",
    "STRATA_DEFAULT_COLLECTION",
    "STRATA_COMPACTION_LIMIT",
    "STRATA_COMPACTION_GLOBAL_LIMIT",
    "STRATA_HOST",
    "STRATA_PORT",
]


@pytest.fixture(autouse=True)
def clear_strata_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in STRATA_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_load_config_defaults_match_heuristic_constants() -> None:
    config = load_config()

    assert config.search_backend == "memory"
    assert config.top_k == 10
    assert config.group_overfetch_multiplier == 5
    assert config.fallback_min_primary_hits == 3
    assert config.default_min_score == 0.01
    assert config.global_collection == "strata_global"
    assert config.assembly_timeout_seconds is None
    assert config.log_level == "INFO"


def test_load_config_reads_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STRATA_SEARCH_BACKEND", "HTTP")
    monkeypatch.setenv("STRATA_SEARCH_URL", " http://search.local ")
    monkeypatch.setenv("STRATA_GROUP_OVERFETCH_MULTIPLIER", "8")
    monkeypatch.setenv("STRATA_ASSEMBLY_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("STRATA_LOG_LEVEL", "debug")

    config = load_config()

    assert config.search_backend == "http"
    assert config.search_url == "http://search.local"
    assert config.group_overfetch_multiplier == 8
    assert config.assembly_timeout_seconds == 2.5
    assert config.log_level == "DEBUG"


def test_load_config_ignores_invalid_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STRATA_TOP_K", "-4")
    monkeypatch.setenv("STRATA_FALLBACK_MIN_PRIMARY_HITS", "three")
    monkeypatch.setenv("STRATA_SEARCH_BACKEND", "grpc")
    monkeypatch.setenv("STRATA_DEFAULT_MIN_SCORE", "7")

    config = load_config()

    assert config.top_k == 10
    assert config.fallback_min_primary_hits == 3
    assert config.search_backend == "memory"
    assert config.default_min_score == 1.0


def test_load_config_reads_server_address(monkeypatch: pytest.MonkeyPatch) -> None:
    assert (load_config().host, load_config().port) == ("127.0.0.1", 8000)

    monkeypatch.setenv("STRATA_HOST", "0.0.0.0")
    monkeypatch.setenv("STRATA_PORT", "9100")

    config = load_config()

    assert config.host == "0.0.0.0"
    assert config.port == 9100
