from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

import pandas as pd

from core.aggregate import aggregate_frame
from core.charts import taxpayers_bar, to_vega_spec
from core.filters import ViewFilters


def compute_overview(filters: ViewFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    """National dashboard: headline KPIs for the year plus the region table."""
    year_rows: pd.DataFrame = ctx.get("year_rows", pd.DataFrame())
    rows: pd.DataFrame = ctx.get("filtered_rows", pd.DataFrame())
    edited: List[str] = list(ctx.get("edited_regions", []) or [])

    # KPIs cover every region, not only those matching the search box.
    kpis = aggregate_frame(year_rows, filters.year)

    charts: Dict[str, Any] = {}
    if not year_rows.empty:
        charts["taxpayers_by_region"] = to_vega_spec(taxpayers_bar(year_rows, filters.year))

    table = rows.assign(edited=rows["region"].isin(edited)) if not rows.empty else rows
    return {
        "filters": asdict(filters),
        "kpis": asdict(kpis),
        "charts": charts,
        "rows": table.to_dict(orient="records"),
        "row_count": int(len(rows)),
        "region_count": int(len(year_rows)),
    }
