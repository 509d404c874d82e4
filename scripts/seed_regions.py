"""Upload the local regions dataset to the dataset store, one document per region.

Overwrites existing documents, so running it twice is harmless. The first
failure aborts the run.

    python -m scripts.seed_regions --backend firestore --data data/regions_seed.json
"""

from __future__ import annotations

import argparse
from dataclasses import replace
import logging
from pathlib import Path
from typing import List, Optional

from core.config import get_settings
from core.logging_config import configure_logging
from core.models import Region, regions_from_documents
from core.store import RegionStore, build_store, load_region_documents

logger = logging.getLogger("seed_regions")


def seed(store: RegionStore, regions: List[Region]) -> int:
    for region in regions:
        store.put_region(region)
        logger.info("Uploaded data for %s", region.name)
    logger.info("All data uploaded successfully! (%d regions)", len(regions))
    return len(regions)


def main(argv: Optional[List[str]] = None, store: Optional[RegionStore] = None) -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--data", type=Path, default=settings.seed_data_path, help="Seed dataset (JSON with a 'regions' list)")
    parser.add_argument(
        "--backend",
        choices=["firestore", "memory"],
        default=settings.store_backend,
        help="Store to upload to (default: TAX_DASHBOARD_STORE_BACKEND)",
    )
    args = parser.parse_args(argv)

    configure_logging(settings.log_level)
    try:
        regions = regions_from_documents(load_region_documents(args.data))
        if store is None:
            if args.backend == "memory":
                logger.warning("Seeding the in-memory store; nothing is persisted. Pass --backend firestore to upload.")
            store = build_store(replace(settings, store_backend=args.backend))
        return seed(store, regions)
    except Exception:
        logger.exception("Error uploading data")
        raise


if __name__ == "__main__":
    main()
