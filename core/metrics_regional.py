from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Optional

import pandas as pd

from core.charts import regional_comparison_bars, to_vega_spec
from core.filters import ViewFilters, tier_mask


def compute_regional(filters: ViewFilters, ctx: Dict[str, Any], *, selected_region: Optional[str] = None) -> Dict[str, Any]:
    year_rows: pd.DataFrame = ctx.get("year_rows", pd.DataFrame())
    rows: pd.DataFrame = ctx.get("filtered_rows", pd.DataFrame())

    tier_counts = {"all": int(len(year_rows))}
    for tier in ("high", "medium", "low"):
        tier_counts[tier] = int(tier_mask(year_rows["compliance_rate"], tier).sum()) if not year_rows.empty else 0

    charts: Dict[str, Any] = {}
    if not year_rows.empty:
        charts["average_tax_vs_compliance"] = to_vega_spec(regional_comparison_bars(year_rows, filters.year))

    selected = None
    if selected_region and not year_rows.empty:
        match = year_rows[year_rows["region"] == selected_region]
        if not match.empty:
            selected = match.iloc[0].to_dict()

    return {
        "filters": asdict(filters),
        "tier_counts": tier_counts,
        "charts": charts,
        "rows": rows.to_dict(orient="records"),
        "selected": selected,
    }
