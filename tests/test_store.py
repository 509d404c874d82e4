from __future__ import annotations

import json
from dataclasses import replace
from unittest import mock

import pytest
from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as google_auth_exceptions

from core.config import DATA_DIR, Settings
from core.data import load_static_dataset
from core.edits import EditStatus
from core.errors import PersistFailure, StoreUnavailable
from core.firestore_store import FirestoreRegionStore
from core.models import Region, YearRecord
from core.session import DashboardSession
from core.store import InMemoryRegionStore, build_store, load_region_documents, load_static_regions


def test_memory_store_roundtrip_is_isolated(store):
    region = store.fetch_region("Volta")
    updated = region.with_record(YearRecord(2026, taxpayers=5))
    assert store.fetch_region("Volta").years == [2024, 2025]
    store.put_region(updated)
    assert store.fetch_region("Volta").years == [2024, 2025, 2026]
    assert store.fetch_region("Nowhere") is None


def test_memory_store_lists_by_name():
    store = InMemoryRegionStore([{"region": "Western"}, {"region": "Ahafo"}])
    assert [r.name for r in store.fetch_all()] == ["Ahafo", "Western"]


def test_region_document_mapping():
    doc = {"region": "Oti", "yearlyData": [{"year": 2025, "taxpayers": "12", "eVatTaxpayers": 3, "complianceRate": 0.5}]}
    region = Region.from_document(doc)
    assert region.record_for(2025) == YearRecord(2025, taxpayers=12, e_vat_taxpayers=3, compliance_rate=0.5)
    assert region.to_document()["yearlyData"][0]["eVatTaxpayers"] == 3


def test_build_store_memory_without_seed(settings):
    assert build_store(settings).fetch_all() == []


def test_build_store_unknown_backend(settings):
    with pytest.raises(ValueError):
        build_store(replace(settings, store_backend="sqlite"))


def test_bundled_seed_dataset():
    docs = load_region_documents(DATA_DIR / "regions_seed.json")
    assert len(docs) == 16
    assert all(len(d["yearlyData"]) == 6 for d in docs)


def test_static_dataset_has_one_year(tmp_path):
    path = tmp_path / "static.json"
    path.write_text(json.dumps({"regions": [{"region": "Oti", "taxpayers": 10, "complianceRate": 0.6}]}), encoding="utf-8")
    regions = load_static_regions(path, 2025)
    assert regions == [Region("Oti", [YearRecord(2025, taxpayers=10, compliance_rate=0.6)])]
    assert load_static_dataset(path, 2025) == regions
    assert load_static_dataset(tmp_path / "missing.json", 2025) == []


def _firestore_client():
    client = mock.MagicMock()
    collection = client.collection.return_value
    snap = mock.MagicMock(id="Volta", exists=True)
    snap.to_dict.return_value = {"region": "Volta", "yearlyData": [{"year": 2025, "taxpayers": 7}]}
    collection.stream.return_value = [snap]
    collection.document.return_value.get.return_value = snap
    return client, collection


def test_firestore_store_reads_and_writes():
    client, collection = _firestore_client()
    store = FirestoreRegionStore(client, collection="regions")

    assert [r.name for r in store.fetch_all()] == ["Volta"]
    assert store.fetch_region("Volta").record_for(2025).taxpayers == 7
    store.put_region(Region("Volta", [YearRecord(2025, taxpayers=8)]))

    client.collection.assert_called_with("regions")
    collection.document.assert_called_with("Volta")
    written = collection.document.return_value.set.call_args.args[0]
    assert written["yearlyData"][0]["taxpayers"] == 8


def test_firestore_missing_document():
    client, collection = _firestore_client()
    collection.document.return_value.get.return_value = mock.MagicMock(exists=False)
    assert FirestoreRegionStore(client).fetch_region("Oti") is None


def test_firestore_errors_become_store_unavailable():
    client, collection = _firestore_client()
    collection.stream.side_effect = google_exceptions.ServiceUnavailable("down")
    collection.document.return_value.set.side_effect = google_exceptions.ServiceUnavailable("down")
    store = FirestoreRegionStore(client)
    with pytest.raises(StoreUnavailable):
        store.fetch_all()
    with pytest.raises(StoreUnavailable):
        store.put_region(Region("Volta"))


def test_firestore_auth_errors_become_store_unavailable():
    client, collection = _firestore_client()
    collection.document.return_value.get.side_effect = google_auth_exceptions.RefreshError("token expired")
    collection.document.return_value.set.side_effect = google_auth_exceptions.TransportError("no route")
    store = FirestoreRegionStore(client)
    with pytest.raises(StoreUnavailable):
        store.fetch_region("Volta")
    with pytest.raises(StoreUnavailable):
        store.put_region(Region("Volta"))


def test_commit_through_firestore_auth_failure_is_retryable():
    client, collection = _firestore_client()
    collection.document.return_value.set.side_effect = google_auth_exceptions.TransportError("no route")
    session = DashboardSession(FirestoreRegionStore(client), Settings(first_year=2025, last_year=2025))
    session.refresh()
    session.edits.stage("Volta", 2025, "taxpayers", "9")

    with pytest.raises(PersistFailure):
        session.commit("Volta", 2025)
    assert session.edits.status("Volta", 2025) is EditStatus.FAILED
