from __future__ import annotations

import locale
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

import pandas as pd

logger = logging.getLogger(__name__)


TIERS = ("all", "high", "medium", "low")
HIGH_COMPLIANCE = 0.8
MEDIUM_COMPLIANCE = 0.5

SORT_FIELDS = (
    "region",
    "taxpayers",
    "average_tax",
    "total_tax",
    "salary_taxpayers",
    "e_vat_taxpayers",
    "other_taxpayers",
    "compliance_rate",
)
TEXT_SORT_FIELDS = ("region",)
DIRECTIONS = ("asc", "desc")


@dataclass(frozen=True)
class SortState:
    field: str = "taxpayers"
    direction: str = "desc"


@dataclass(frozen=True)
class ViewFilters:
    year: int = 2025
    query: str = ""
    tier: str = "all"
    sort: SortState = field(default_factory=SortState)


def _as_int_list(values: Optional[Iterable[object]]) -> List[int]:
    if not values:
        return []
    out: List[int] = []
    for v in values:
        try:
            out.append(int(v))
        except (TypeError, ValueError):
            continue
    return out


def normalize_filters(raw: dict, *, available_years: Optional[List[int]] = None, default_year: int = 2025) -> ViewFilters:
    available_years = sorted(_as_int_list(available_years))

    try:
        year = int(raw.get("year", default_year))
    except (TypeError, ValueError):
        year = default_year
    if available_years and year not in available_years:
        year = default_year if default_year in available_years else available_years[-1]

    query = str(raw.get("query") or "").strip()

    tier = str(raw.get("tier") or "all").lower()
    if tier not in TIERS:
        tier = "all"

    sort_raw = raw.get("sort") or {}
    sort_field = str(sort_raw.get("field") or "taxpayers")
    if sort_field not in SORT_FIELDS:
        sort_field = "taxpayers"
    direction = str(sort_raw.get("direction") or "desc").lower()
    if direction not in DIRECTIONS:
        direction = "desc"

    return ViewFilters(year=year, query=query, tier=tier, sort=SortState(field=sort_field, direction=direction))


def tier_mask(rates: pd.Series, tier: Optional[str]) -> pd.Series:
    if tier == "high":
        return rates >= HIGH_COMPLIANCE
    if tier == "medium":
        return (rates >= MEDIUM_COMPLIANCE) & (rates < HIGH_COMPLIANCE)
    if tier == "low":
        return rates < MEDIUM_COMPLIANCE
    return pd.Series(True, index=rates.index)


def filter_regions(rows: pd.DataFrame, query: str = "", tier: Optional[str] = None) -> pd.DataFrame:
    """Case-insensitive name match AND compliance tier; no filter keeps every row in order."""
    if rows.empty:
        return rows
    mask = pd.Series(True, index=rows.index)
    q = (query or "").strip().lower()
    if q:
        mask &= rows["region"].astype(str).str.lower().str.contains(q, regex=False, na=False)
    if tier and tier != "all":
        mask &= tier_mask(rows["compliance_rate"], tier)
    return rows[mask]


def use_system_collation() -> str:
    """Adopt the environment's collation for region-name sorting; stays on "C" if it is unusable."""
    try:
        return locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as exc:
        logger.warning("Could not set collation locale, using code-point order: %s", exc)
        return locale.setlocale(locale.LC_COLLATE)


def _collation_key(values: pd.Series) -> pd.Series:
    return values.astype(str).map(locale.strxfrm)


def sort_regions(rows: pd.DataFrame, field: str, direction: str = "asc") -> pd.DataFrame:
    if rows.empty or field not in rows.columns:
        return rows
    key = _collation_key if field in TEXT_SORT_FIELDS else None
    return rows.sort_values(field, ascending=(direction != "desc"), kind="stable", key=key)


def next_sort(current: SortState, field: str, *, reset_direction: str = "asc") -> SortState:
    """Clicking the active column flips its direction; a new column starts at ``reset_direction``."""
    if current.field == field:
        return SortState(field=field, direction="desc" if current.direction == "asc" else "asc")
    return SortState(field=field, direction=reset_direction)
