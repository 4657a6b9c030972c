from __future__ import annotations

from fastapi.testclient import TestClient

from app.main import REQUEST_ID_HEADER, app


def test_request_id_is_generated_when_missing() -> None:
    response = TestClient(app).get("/live")

    assert response.status_code == 200
    assert len(response.headers[REQUEST_ID_HEADER]) == 32


def test_incoming_request_id_is_echoed() -> None:
    response = TestClient(app).get("/live", headers={REQUEST_ID_HEADER: "shop-42-scan"})

    assert response.headers[REQUEST_ID_HEADER] == "shop-42-scan"


def test_oversized_request_id_is_replaced() -> None:
    response = TestClient(app).get("/live", headers={REQUEST_ID_HEADER: "x" * 200})

    assert response.headers[REQUEST_ID_HEADER] != "x" * 200
