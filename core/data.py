from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd

from core.filters import ViewFilters, filter_regions, normalize_filters, sort_regions
from core.models import EDITABLE_FIELDS, SOURCE_FIELDS, Region, YearRecord
from core.store import load_static_regions


YEAR_COLUMNS = ["region", "year", *EDITABLE_FIELDS]
SOURCE_COLUMNS = ["region", *SOURCE_FIELDS]


def year_record(region: Region, year: int) -> YearRecord:
    """The region's record for ``year``, or an all-zero record when it has none."""
    return region.record_for(year) or YearRecord.zero(year)


def add_source_shares(df: pd.DataFrame) -> pd.DataFrame:
    out = df.copy()
    taxpayers = out["taxpayers"].where(out["taxpayers"] != 0)
    out["salary_share"] = (out["salary_taxpayers"] / taxpayers).fillna(0.0)
    out["e_vat_share"] = (out["e_vat_taxpayers"] / taxpayers).fillna(0.0)
    return out


def year_frame(
    regions: Iterable[Region],
    year: int,
    overrides: Optional[Mapping[str, YearRecord]] = None,
) -> pd.DataFrame:
    """One row per region for ``year``; ``overrides`` replaces a region's record (pending edits)."""
    overrides = overrides or {}
    rows: List[Dict[str, object]] = []
    for region in regions:
        record = overrides.get(region.name) or year_record(region, year)
        row = {"region": region.name, "year": int(year)}
        row.update({f: getattr(record, f) for f in EDITABLE_FIELDS})
        rows.append(row)
    if not rows:
        return add_source_shares(pd.DataFrame(columns=YEAR_COLUMNS))
    return add_source_shares(pd.DataFrame(rows, columns=YEAR_COLUMNS))


def source_frame(regions: Iterable[Region]) -> pd.DataFrame:
    """Per-region source counts summed over every year on record."""
    rows: List[Dict[str, object]] = []
    for region in regions:
        row: Dict[str, object] = {"region": region.name}
        for f in SOURCE_FIELDS:
            row[f] = sum(getattr(r, f) for r in region.yearly_data)
        rows.append(row)
    return pd.DataFrame(rows, columns=SOURCE_COLUMNS)


# ---------------- Formatting ----------------
def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def format_plain_number(value: object, max_decimals: int = 3) -> str:
    """Locale-invariant number with no grouping separators, e.g. ``1234567.5``."""
    if value is None or pd.isna(value):
        return "0"
    rounded = round_half_up(value, max_decimals)
    if float(rounded).is_integer():
        return str(int(rounded))
    return f"{rounded:.{max_decimals}f}".rstrip("0").rstrip(".")


def format_percent_1(value: object) -> str:
    """Fraction to a percentage with one decimal, without the sign: ``0.853`` -> ``85.3``."""
    if value is None or pd.isna(value):
        return "0.0"
    return f"{float(value) * 100:.1f}"


def format_ghs_0(value: object) -> str:
    if value is None or pd.isna(value):
        return "N/A"
    return f"GHS {float(value):,.0f}"


def format_percent_columns(df: pd.DataFrame, cols: Iterable[str], decimals: int = 1) -> pd.DataFrame:
    formatted = df.copy()
    for c in cols:
        if c in formatted.columns:
            formatted[c] = formatted[c].apply(lambda v: f"{float(v)*100:.{decimals}f}%" if pd.notna(v) else "")
    return formatted


# ---------------- Static fallback dataset ----------------
def file_signature(path: Path) -> Tuple[str, float]:
    return (str(path), path.stat().st_mtime)


@lru_cache(maxsize=4)
def _load_static_cached(signature: Tuple[str, float], year: int) -> Tuple[Region, ...]:
    return tuple(load_static_regions(Path(signature[0]), year))


def load_static_dataset(path: Path, year: int) -> List[Region]:
    """Static regions, re-read only when the file changes on disk."""
    if not path.exists():
        return []
    return list(_load_static_cached(file_signature(path), year))


# ---------------- Page context ----------------
def prepare_context(
    filters: dict | ViewFilters,
    regions: List[Region],
    overrides: Optional[Mapping[str, YearRecord]] = None,
    *,
    available_years: Optional[List[int]] = None,
) -> Dict[str, object]:
    filt = filters if isinstance(filters, ViewFilters) else normalize_filters(filters, available_years=available_years)

    year_rows = year_frame(regions, filt.year, overrides)
    filtered_rows = filter_regions(year_rows, filt.query, filt.tier)
    sorted_rows = sort_regions(filtered_rows, filt.sort.field, filt.sort.direction)

    return {
        "filters": filt,
        "regions": regions,
        "year_rows": year_rows,
        "filtered_rows": sorted_rows,
        "source_rows": source_frame(regions),
        "edited_regions": sorted(overrides or {}),
    }
