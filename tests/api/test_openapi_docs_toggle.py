from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from app import main as app_main


def _client(monkeypatch, *, docs_enabled: bool) -> TestClient:
    monkeypatch.setattr(
        app_main,
        "get_settings",
        lambda: SimpleNamespace(log_level="INFO", enable_openapi_docs=docs_enabled),
    )
    return TestClient(app_main.create_app())


def test_openapi_schema_lists_redemption_routes(monkeypatch) -> None:
    client = _client(monkeypatch, docs_enabled=True)

    response = client.get("/openapi.json")

    assert response.status_code == 200
    paths = response.json()["paths"]
    assert "/internal/redemptions/validate" in paths
    assert "/internal/redemptions/redeem" in paths
    assert "/internal/points/{user_id}/balance" in paths
    assert "/internal/vouchers" in paths
    assert client.get("/docs").status_code == 200


@pytest.mark.parametrize("path", ["/docs", "/redoc", "/openapi.json"])
def test_openapi_docs_can_be_disabled(monkeypatch, path: str) -> None:
    client = _client(monkeypatch, docs_enabled=False)
    assert client.get(path).status_code == 404
