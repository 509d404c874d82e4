from __future__ import annotations

from typing import Any, Dict, List

from core.aggregate import aggregate_by_source
from core.charts import source_pie, to_vega_spec
from core.data import source_frame
from core.filters import filter_regions
from core.models import Region


SOURCE_LABELS = {
    "salary": "Salary Taxpayers",
    "e_vat": "E-VAT Taxpayers",
    "other": "Other Taxpayers",
}


def compute_source_breakdown(regions: List[Region], *, query: str = "") -> Dict[str, Any]:
    """Taxpayers by source, summed over all years on record (not the selected year)."""
    breakdown = aggregate_by_source(regions)
    totals = {"salary": breakdown.salary, "e_vat": breakdown.e_vat, "other": breakdown.other}
    shares = {k: (v / breakdown.total if breakdown.total else 0.0) for k, v in totals.items()}

    rows = filter_regions(source_frame(regions), query)
    chart = to_vega_spec(source_pie({SOURCE_LABELS[k]: v for k, v in totals.items()})) if breakdown.total else None

    return {
        "query": query,
        "totals": totals,
        "total": breakdown.total,
        "shares": shares,
        "charts": {"source_distribution": chart},
        "rows": rows.to_dict(orient="records"),
    }
