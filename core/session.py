from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, List, Optional

from core.config import Settings, get_settings
from core.data import prepare_context
from core.edits import CommitResult, EditReconciler
from core.errors import FetchFailure, StoreUnavailable
from core.filters import ViewFilters, normalize_filters
from core.models import Region
from core.store import RegionStore

logger = logging.getLogger(__name__)


class RegionSnapshot:
    """Session cache of the store's regions, replaced wholesale on refresh."""

    def __init__(self, regions: Iterable[Region] = ()) -> None:
        self._regions: Dict[str, Region] = {r.name: r for r in regions}
        self.loaded = bool(self._regions)

    def all(self) -> List[Region]:
        return list(self._regions.values())

    def names(self) -> List[str]:
        return list(self._regions)

    def get(self, name: str) -> Optional[Region]:
        return self._regions.get(name)

    def replace(self, region: Region) -> None:
        self._regions[region.name] = region

    def reset(self, regions: Iterable[Region]) -> None:
        self._regions = {r.name: r for r in regions}
        self.loaded = True


class DashboardSession:
    """Everything one dashboard user holds: the region snapshot and pending edits."""

    def __init__(self, store: RegionStore, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()
        self.store = store
        self.snapshot = RegionSnapshot()
        self.edits = EditReconciler(store, self.snapshot)
        self.lock = threading.RLock()

    def refresh(self) -> List[Region]:
        """Re-fetch every region; on failure the last good snapshot stays in place."""
        with self.lock:
            try:
                regions = self.store.fetch_all()
            except StoreUnavailable as exc:
                logger.error("Fetching regions failed: %s", exc)
                raise FetchFailure("Failed to load data from the dataset store. Please try again.") from exc
            self.snapshot.reset(regions)
            logger.info("Loaded %d regions", len(regions))
            return regions

    def ensure_loaded(self) -> None:
        if not self.snapshot.loaded:
            self.refresh()

    def context(self, filters: dict | ViewFilters) -> Dict[str, object]:
        with self.lock:
            self.ensure_loaded()
            filt = filters
            if not isinstance(filt, ViewFilters):
                filt = normalize_filters(
                    filters,
                    available_years=self.settings.available_years,
                    default_year=self.settings.default_year,
                )
            return prepare_context(filt, self.snapshot.all(), self.edits.overrides(filt.year))

    def commit(self, region: str, year: int) -> CommitResult:
        with self.lock:
            return self.edits.commit(region, year)
