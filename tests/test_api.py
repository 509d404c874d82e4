from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from api.main import app, get_session


@pytest.fixture
def client(session):
    app.dependency_overrides[get_session] = lambda: session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def flaky_client(flaky_session):
    app.dependency_overrides[get_session] = lambda: flaky_session
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_meta(client):
    assert client.get("/meta/regions").json() == {"regions": ["Ashanti", "Greater Accra", "Volta"]}
    assert client.get("/meta/years").status_code == 200


def test_overview(client):
    body = client.post("/overview", json={"year": 2025, "sort": {"field": "region", "direction": "asc"}}).json()
    assert body["kpis"]["total_taxpayers"] == 4200
    assert body["kpis"]["average_tax"] == pytest.approx(350.0)
    assert [r["region"] for r in body["rows"]] == ["Ashanti", "Greater Accra", "Volta"]
    assert "taxpayers_by_region" in body["charts"]


def test_overview_search_keeps_national_kpis(client):
    body = client.post("/overview", json={"year": 2025, "query": "volta"}).json()
    assert body["row_count"] == 1
    assert body["kpis"]["total_taxpayers"] == 4200


def test_regional_tiers_and_detail(client):
    body = client.post("/regional?selected_region=Volta", json={"year": 2025, "tier": "high"}).json()
    assert body["tier_counts"] == {"all": 3, "high": 1, "medium": 1, "low": 1}
    assert [r["region"] for r in body["rows"]] == ["Ashanti"]
    assert body["selected"]["taxpayers"] == 200


def test_sources(client):
    body = client.get("/sources").json()
    assert body["totals"] == {"salary": 2550, "e_vat": 1500, "other": 670}
    assert body["charts"]["source_distribution"] is not None


def test_edit_flow(client):
    staged = client.post("/edits/stage", json={"region": "Volta", "year": 2025, "field": "complianceRate", "value": "85"})
    assert staged.status_code == 200
    assert staged.json()["status"] == "staged"
    assert client.get("/edits", params={"year": 2025}).json()["edits"][0]["region"] == "Volta"

    committed = client.post("/edits/commit", json={"region": "Volta", "year": 2025})
    assert committed.status_code == 200
    assert committed.json()["record"]["compliance_rate"] == pytest.approx(0.85)
    assert client.get("/edits").json() == {"edits": []}


def test_commit_validation_error(client):
    client.post("/edits/stage", json={"region": "Volta", "year": 2025, "field": "taxpayers", "value": "-3"})
    resp = client.post("/edits/commit", json={"region": "Volta", "year": 2025})
    assert resp.status_code == 422
    assert "Taxpayers cannot be negative." in resp.json()["messages"]


def test_commit_store_down(flaky_client, flaky_store):
    flaky_client.post("/edits/stage", json={"region": "Volta", "year": 2025, "field": "taxpayers", "value": "210"})
    flaky_store.down = True
    resp = flaky_client.post("/edits/commit", json={"region": "Volta", "year": 2025})
    assert resp.status_code == 503
    assert resp.json()["retryable"] is True
    assert flaky_client.get("/edits").json()["edits"][0]["status"] == "failed"


def test_refresh_store_down(flaky_client, flaky_store):
    flaky_store.down = True
    assert flaky_client.post("/refresh").status_code == 502


def test_unknown_region_and_discard(client):
    assert client.post("/edits/stage", json={"region": "Atlantis", "year": 2025, "field": "taxpayers", "value": 1}).status_code == 404
    assert client.post("/edits/discard", json={"region": "Volta", "year": 2025}).json()["discarded"] is False


def test_export_csv(client):
    resp = client.post("/export/taxpayer_data", json={"year": 2025, "sort": {"field": "region", "direction": "asc"}})
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert "taxpayer_data_2025_" in resp.headers["content-disposition"]
    assert resp.text.split("\n")[1].startswith('"Ashanti",2025,1000')


def test_export_nothing_matches(client):
    resp = client.post("/export/regional_tax_data", json={"year": 2025, "query": "zzz"})
    assert resp.status_code == 404
    assert resp.json()["error"] == "No data to export!"
