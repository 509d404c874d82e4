"""Dataset store adapters.

The store is the system of record: one document per region, keyed by region
name, holding ``{"region": ..., "yearlyData": [...]}``. Writes overwrite the
whole document; there are no field-level or transactional updates.
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from core.config import Settings
from core.models import Region, YearRecord

logger = logging.getLogger(__name__)


class RegionStore:
    """Interface shared by the Firestore adapter and the in-memory store."""

    def fetch_all(self) -> List[Region]:
        raise NotImplementedError

    def fetch_region(self, name: str) -> Optional[Region]:
        raise NotImplementedError

    def put_region(self, region: Region) -> None:
        raise NotImplementedError


class InMemoryRegionStore(RegionStore):
    """Keeps serialized documents in a dict; used for local runs and tests."""

    def __init__(self, documents: Optional[Iterable[Mapping[str, Any]]] = None) -> None:
        self._docs: Dict[str, Dict[str, Any]] = {}
        for doc in documents or []:
            region = Region.from_document(doc)
            self._docs[region.name] = region.to_document()

    def fetch_all(self) -> List[Region]:
        return [Region.from_document(copy.deepcopy(self._docs[k])) for k in sorted(self._docs)]

    def fetch_region(self, name: str) -> Optional[Region]:
        doc = self._docs.get(name)
        if doc is None:
            return None
        return Region.from_document(copy.deepcopy(doc))

    def put_region(self, region: Region) -> None:
        self._docs[region.name] = region.to_document()
        logger.debug("Stored region %s (%d years)", region.name, len(region.yearly_data))


# ---------------- Local dataset files ----------------
def read_json(path: Path) -> Dict[str, Any]:
    with Path(path).open("r", encoding="utf-8") as f:
        return json.load(f)


def load_region_documents(path: Path) -> List[Dict[str, Any]]:
    """Seed dataset: ``{"regions": [{"region": ..., "yearlyData": [...]}]}``."""
    payload = read_json(path)
    docs = payload.get("regions", []) if isinstance(payload, dict) else payload
    return [d for d in docs if isinstance(d, dict)]


def load_static_regions(path: Path, year: int) -> List[Region]:
    """Static fallback dataset with one flat record per region and no ``yearlyData``.

    Each entry becomes a Region with a single YearRecord for ``year`` so the
    same aggregation code can run over it.
    """
    payload = read_json(path)
    regions: List[Region] = []
    for entry in payload.get("regions", []):
        if not isinstance(entry, dict) or not entry.get("region"):
            continue
        record = YearRecord.from_document({**entry, "year": entry.get("year", year)})
        regions.append(Region(name=str(entry["region"]), yearly_data=[record]))
    return regions


def build_store(settings: Settings) -> RegionStore:
    backend = settings.store_backend
    if backend == "firestore":
        from core.firestore_store import FirestoreRegionStore

        return FirestoreRegionStore(project=settings.firestore_project or None, collection=settings.firestore_collection)
    if backend == "memory":
        docs: List[Dict[str, Any]] = []
        if settings.seed_data_path.exists():
            docs = load_region_documents(settings.seed_data_path)
        else:
            logger.warning("Seed dataset %s not found; starting with an empty store", settings.seed_data_path)
        return InMemoryRegionStore(docs)
    raise ValueError(f"Unknown store backend: {backend!r}")
