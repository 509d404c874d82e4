from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import List


ROOT_DIR = Path(__file__).resolve().parents[1]
DATA_DIR = ROOT_DIR / "data"
ENV_PREFIX = "TAX_DASHBOARD_"


def _env(name: str, default: str) -> str:
    return os.environ.get(ENV_PREFIX + name, default)


def _env_int(name: str, default: int) -> int:
    raw = _env(name, str(default))
    try:
        return int(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.environ.get(ENV_PREFIX + name)
    if raw is None:
        return list(default)
    return [x.strip() for x in raw.split(",") if x.strip()]


@dataclass(frozen=True)
class Settings:
    # Dataset store: "firestore" in production, "memory" for local runs and tests
    store_backend: str = "memory"
    firestore_project: str = ""
    firestore_collection: str = "regions"

    seed_data_path: Path = DATA_DIR / "regions_seed.json"
    static_data_path: Path = DATA_DIR / "static_regions.json"
    static_data_year: int = 2025

    default_year: int = 2025
    first_year: int = 2020
    last_year: int = 2025

    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"])

    @property
    def available_years(self) -> List[int]:
        return list(range(self.first_year, self.last_year + 1))


def load_settings() -> Settings:
    defaults = Settings()
    return Settings(
        store_backend=_env("STORE_BACKEND", defaults.store_backend).lower(),
        firestore_project=_env("FIRESTORE_PROJECT", defaults.firestore_project),
        firestore_collection=_env("FIRESTORE_COLLECTION", defaults.firestore_collection),
        seed_data_path=Path(_env("SEED_DATA_PATH", str(defaults.seed_data_path))),
        static_data_path=Path(_env("STATIC_DATA_PATH", str(defaults.static_data_path))),
        static_data_year=_env_int("STATIC_DATA_YEAR", defaults.static_data_year),
        default_year=_env_int("DEFAULT_YEAR", defaults.default_year),
        first_year=_env_int("FIRST_YEAR", defaults.first_year),
        last_year=_env_int("LAST_YEAR", defaults.last_year),
        log_level=_env("LOG_LEVEL", defaults.log_level),
        cors_origins=_env_list("CORS_ORIGINS", defaults.cors_origins),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
