from fastapi.testclient import TestClient

import main
from main import app


def test_health_returns_ok() -> None:
    with TestClient(app) as client:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"ok": True}


def test_status_reports_backend() -> None:
    with TestClient(app) as client:
        response = client.get("/api/v1/status")

        assert response.status_code == 200
        body = response.json()
        assert body["app"]
        assert body["backend"] in {"InMemorySearchClient", "HttpSearchClient"}


def test_sources_lists_builtin_defaults() -> None:
    with TestClient(app) as client:
        response = client.get("/api/v1/sources")

        assert response.status_code == 200
        rows = response.json()
        assert [row["id"] for row in rows] == ["memory", "docs", "global"]
        assert rows[1]["search"]["groupBySource"] is True
        assert rows[2]["enabled"] is False


def test_serve_runs_app_on_configured_address(monkeypatch) -> None:
    calls: list[tuple[object, dict[str, object]]] = []
    monkeypatch.setattr(
        main.uvicorn, "run", lambda target, **kwargs: calls.append((target, kwargs))
    )

    main.serve()

    assert calls == [
        (
            app,
            {
                "host": main.config.host,
                "port": main.config.port,
                "log_level": main.config.log_level.lower(),
            },
        )
    ]
