"""
E2E tests for the prescription matching API.
"""
from __future__ import annotations

import asyncio
import time

import pytest
from fastapi.testclient import TestClient

from RXMATCH.server.app import app
from RXMATCH.server.routes.prescription import endpoint
from RXMATCH.server.utils.services.matching.catalog import CatalogSearchResult
from RXMATCH.server.utils.services.matching.errors import CatalogSearchError


# -----------------------------------------------------------------------------
@pytest.fixture
def client(monkeypatch, catalog) -> TestClient:
    monkeypatch.setattr(endpoint, "catalog_provider", lambda: catalog)
    return TestClient(app)


# -----------------------------------------------------------------------------
def test_root_redirects_to_docs(client: TestClient):
    response = client.get("/")
    assert response.status_code == 200
    assert str(response.url).endswith("/docs")


# -----------------------------------------------------------------------------
def test_openapi_contains_prescription_routes(client: TestClient):
    paths = client.get("/openapi.json").json().get("paths", {})
    assert "/prescriptions/match" in paths
    assert "/prescriptions/alternatives" in paths


# -----------------------------------------------------------------------------
def test_match_returns_summary_and_validation(client: TestClient):
    response = client.post(
        "/prescriptions/match",
        json={
            "medicineNames": ["Paracetamol 500mg", "Aspirin 100mg"],
            "confidence": 90,
            "rawText": "Paracetamol 500mg\nAspirin 100mg",
        },
    )
    assert response.status_code == 200
    payload = response.json()
    result = payload["result"]
    assert result["summary"]["match_rate"] == 100
    assert result["unmatched_medicines"] == []
    assert [entry["match_type"] for entry in result["matched_medicines"]] == ["exact", "exact"]
    assert result["prescription_id"].startswith("rx_")
    assert payload["validation"]["is_valid"] is True


# -----------------------------------------------------------------------------
def test_match_rejects_empty_prescription(client: TestClient):
    response = client.post("/prescriptions/match", json={"medicine_names": [], "confidence": 80})
    assert response.status_code == 422
    assert response.json()["detail"]["kind"] == "empty_input"


# -----------------------------------------------------------------------------
def test_match_rejects_prescription_without_valid_names(client: TestClient):
    response = client.post(
        "/prescriptions/match", json={"medicine_names": ["AB", "patient name"]}
    )
    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["kind"] == "no_valid_names"
    assert detail["suggestions"]


# -----------------------------------------------------------------------------
def test_match_rejects_out_of_range_confidence(client: TestClient):
    response = client.post(
        "/prescriptions/match", json={"medicine_names": ["Crocin"], "confidence": 150}
    )
    assert response.status_code == 422


# -----------------------------------------------------------------------------
def test_catalog_outage_maps_to_service_unavailable(monkeypatch, client: TestClient):
    def offline(query: str) -> CatalogSearchResult:
        return CatalogSearchResult.failure(
            CatalogSearchError("catalog offline at db-01", retryable=False)
        )

    monkeypatch.setattr(endpoint, "catalog_provider", lambda: offline)
    response = client.post(
        "/prescriptions/match", json={"medicine_names": ["Paracetamol 500mg"]}
    )
    assert response.status_code == 503
    detail = response.json()["detail"]
    assert detail["type"] == "network_error"
    assert detail["retryable"] is True
    assert "db-01" not in response.text


# -----------------------------------------------------------------------------
def test_slow_catalog_maps_to_gateway_timeout(monkeypatch, client: TestClient):
    def slow(query: str) -> CatalogSearchResult:
        time.sleep(0.3)
        return CatalogSearchResult.success(())

    monkeypatch.setattr(endpoint, "catalog_provider", lambda: slow)
    monkeypatch.setattr(endpoint, "timeout", 0.05)
    response = client.post(
        "/prescriptions/match", json={"medicine_names": ["Paracetamol 500mg"]}
    )
    assert response.status_code == 504
    assert response.json()["detail"]["kind"] == "timeout"


# -----------------------------------------------------------------------------
def test_alternatives_endpoint(client: TestClient):
    response = client.post(
        "/prescriptions/alternatives",
        json={"medicine_names": ["Crocin Advance", "Zzzzzz"]},
    )
    assert response.status_code == 200
    entries = response.json()["alternatives"]
    assert entries[0]["alternatives_found"] is True
    assert [item["id"] for item in entries[0]["alternatives"]] == ["p1"]
    assert entries[1]["alternatives"] == []


# -----------------------------------------------------------------------------
def test_alternatives_endpoint_requires_names(client: TestClient):
    response = client.post("/prescriptions/alternatives", json={"medicine_names": []})
    assert response.status_code == 422


# -----------------------------------------------------------------------------
def test_catalog_is_opened_outside_the_event_loop(monkeypatch, client: TestClient, catalog):
    loop_running: list[bool] = []

    def provider():
        try:
            asyncio.get_running_loop()
            loop_running.append(True)
        except RuntimeError:
            loop_running.append(False)
        return catalog

    monkeypatch.setattr(endpoint, "catalog_provider", provider)
    match = client.post(
        "/prescriptions/match", json={"medicine_names": ["Aspirin 100mg"], "confidence": 80}
    )
    alternatives = client.post(
        "/prescriptions/alternatives", json={"medicine_names": ["Crocin Advance"]}
    )
    assert match.status_code == 200
    assert alternatives.status_code == 200
    assert loop_running == [False, False]
