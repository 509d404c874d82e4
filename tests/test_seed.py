from __future__ import annotations

import json
import logging

import pytest

from core.store import InMemoryRegionStore
from scripts.seed_regions import main


def test_seed_uploads_every_region(tmp_path, sample_docs, caplog):
    path = tmp_path / "seed.json"
    path.write_text(json.dumps({"regions": sample_docs}), encoding="utf-8")
    store = InMemoryRegionStore()

    with caplog.at_level(logging.INFO, logger="seed_regions"):
        assert main(["--data", str(path)], store=store) == 3

    assert [r.name for r in store.fetch_all()] == ["Ashanti", "Greater Accra", "Volta"]
    assert "Uploaded data for Volta" in caplog.text


def test_seed_is_idempotent(tmp_path, sample_docs):
    path = tmp_path / "seed.json"
    path.write_text(json.dumps({"regions": sample_docs}), encoding="utf-8")
    store = InMemoryRegionStore()
    main(["--data", str(path)], store=store)
    main(["--data", str(path)], store=store)
    assert len(store.fetch_all()) == 3


def test_seed_failure_is_logged_and_raised(tmp_path, caplog):
    with caplog.at_level(logging.ERROR, logger="seed_regions"):
        with pytest.raises(FileNotFoundError):
            main(["--data", str(tmp_path / "missing.json")], store=InMemoryRegionStore())
    assert "Error uploading data" in caplog.text


def test_memory_backend_warns_nothing_is_persisted(tmp_path, sample_docs, caplog):
    path = tmp_path / "seed.json"
    path.write_text(json.dumps({"regions": sample_docs}), encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="seed_regions"):
        assert main(["--data", str(path), "--backend", "memory"]) == 3
    assert "nothing is persisted" in caplog.text


def test_unknown_backend_rejected(tmp_path):
    with pytest.raises(SystemExit):
        main(["--data", str(tmp_path / "seed.json"), "--backend", "sqlite"], store=InMemoryRegionStore())
