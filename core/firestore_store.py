from __future__ import annotations

import logging
from typing import List, Optional

from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import firestore

from core.errors import StoreUnavailable
from core.models import Region
from core.store import RegionStore

logger = logging.getLogger(__name__)

# API errors plus credential and token-refresh failures
TRANSPORT_ERRORS = (google_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError)


class FirestoreRegionStore(RegionStore):
    """Region documents in a Firestore collection, document id = region name."""

    def __init__(
        self,
        client: Optional[firestore.Client] = None,
        *,
        project: Optional[str] = None,
        collection: str = "regions",
    ) -> None:
        self._client = client or firestore.Client(project=project)
        self.collection = collection

    def _collection(self):
        return self._client.collection(self.collection)

    def fetch_all(self) -> List[Region]:
        try:
            snapshots = list(self._collection().stream())
        except TRANSPORT_ERRORS as exc:
            raise StoreUnavailable(f"Could not read collection {self.collection!r}: {exc}") from exc
        return [Region.from_document(s.to_dict() or {}, key=s.id) for s in snapshots]

    def fetch_region(self, name: str) -> Optional[Region]:
        try:
            snapshot = self._collection().document(name).get()
        except TRANSPORT_ERRORS as exc:
            raise StoreUnavailable(f"Could not read region {name!r}: {exc}") from exc
        if not snapshot.exists:
            return None
        return Region.from_document(snapshot.to_dict() or {}, key=snapshot.id)

    def put_region(self, region: Region) -> None:
        try:
            self._collection().document(region.name).set(region.to_document())
        except TRANSPORT_ERRORS as exc:
            raise StoreUnavailable(f"Could not write region {region.name!r}: {exc}") from exc
        logger.info("Wrote region %s to %s", region.name, self.collection)
