from __future__ import annotations

from typing import Dict, List

import pytest

from core.config import Settings
from core.errors import StoreUnavailable
from core.models import Region
from core.session import DashboardSession
from core.store import InMemoryRegionStore


def region_doc(name: str, *records: Dict[str, object]) -> Dict[str, object]:
    return {"region": name, "yearlyData": list(records)}


def year_doc(year: int, taxpayers: int, average_tax: float, compliance: float, salary: int = 0, e_vat: int = 0, other: int = 0):
    return {
        "year": year,
        "taxpayers": taxpayers,
        "averageTax": average_tax,
        "totalTax": taxpayers * average_tax,
        "salaryTaxpayers": salary,
        "eVatTaxpayers": e_vat,
        "otherTaxpayers": other,
        "complianceRate": compliance,
    }


@pytest.fixture
def sample_docs() -> List[Dict[str, object]]:
    return [
        region_doc(
            "Ashanti",
            year_doc(2024, 900, 200.0, 0.7, salary=400, e_vat=200, other=100),
            year_doc(2025, 1000, 250.0, 0.9, salary=500, e_vat=300, other=200),
        ),
        region_doc(
            "Greater Accra",
            year_doc(2025, 3000, 400.0, 0.5, salary=1500, e_vat=900, other=300),
        ),
        region_doc(
            "Volta",
            year_doc(2024, 150, 80.0, 0.3, salary=50, e_vat=50, other=50),
            year_doc(2025, 200, 100.0, 0.4, salary=100, e_vat=50, other=20),
        ),
    ]


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        store_backend="memory",
        seed_data_path=tmp_path / "missing_seed.json",
        static_data_path=tmp_path / "static.json",
        first_year=2024,
        last_year=2025,
        default_year=2025,
        log_level="DEBUG",
    )


@pytest.fixture
def store(sample_docs) -> InMemoryRegionStore:
    return InMemoryRegionStore(sample_docs)


class FlakyStore(InMemoryRegionStore):
    """In-memory store that raises StoreUnavailable while ``down`` is set."""

    def __init__(self, documents=None) -> None:
        super().__init__(documents)
        self.down = False
        self.writes = 0

    def _check(self) -> None:
        if self.down:
            raise StoreUnavailable("store offline")

    def fetch_all(self) -> List[Region]:
        self._check()
        return super().fetch_all()

    def fetch_region(self, name: str):
        self._check()
        return super().fetch_region(name)

    def put_region(self, region: Region) -> None:
        self._check()
        self.writes += 1
        super().put_region(region)


@pytest.fixture
def flaky_store(sample_docs) -> FlakyStore:
    return FlakyStore(sample_docs)


@pytest.fixture
def session(store, settings) -> DashboardSession:
    s = DashboardSession(store, settings)
    s.refresh()
    return s


@pytest.fixture
def flaky_session(flaky_store, settings) -> DashboardSession:
    s = DashboardSession(flaky_store, settings)
    s.refresh()
    return s
