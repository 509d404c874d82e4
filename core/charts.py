from __future__ import annotations

from typing import Any, Dict

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()

NAVY = "#1e3a8a"
TEAL = "#14b8a6"
SLATE = "#64748b"


def to_vega_spec(chart: alt.TopLevelMixin) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def taxpayers_bar(rows: pd.DataFrame, year: int) -> alt.Chart:
    return (
        alt.Chart(rows[["region", "taxpayers"]])
        .mark_bar(color=NAVY, cornerRadiusTopLeft=6, cornerRadiusTopRight=6)
        .encode(
            x=alt.X("region:N", title=None, sort=None),
            y=alt.Y("taxpayers:Q", title=f"Taxpayers ({year})", axis=alt.Axis(format="~s")),
            tooltip=["region", alt.Tooltip("taxpayers:Q", format=",")],
        )
        .properties(height=320)
    )


def regional_comparison_bars(rows: pd.DataFrame, year: int) -> alt.Chart:
    """Average tax (GHS) and compliance (%) side by side per region."""
    src = rows[["region", "average_tax", "compliance_rate"]].assign(compliance_pct=lambda d: d["compliance_rate"] * 100)
    long_df = src.melt(id_vars="region", value_vars=["average_tax", "compliance_pct"], var_name="metric", value_name="value")
    long_df["metric"] = long_df["metric"].map(
        {
            "average_tax": f"Average Tax Paid (GHS) {year}",
            "compliance_pct": f"Compliance Rate (%) {year}",
        }
    )
    return (
        alt.Chart(long_df)
        .mark_bar(cornerRadiusTopLeft=6, cornerRadiusTopRight=6)
        .encode(
            x=alt.X("region:N", title=None, sort=None),
            xOffset="metric:N",
            y=alt.Y("value:Q", title=None),
            color=alt.Color("metric:N", title=None, scale=alt.Scale(range=[NAVY, TEAL])),
            tooltip=["region:N", "metric:N", alt.Tooltip("value:Q", format=",.1f")],
        )
        .properties(height=320)
    )


def source_pie(totals: Dict[str, int]) -> alt.Chart:
    src = pd.DataFrame({"source": list(totals.keys()), "taxpayers": list(totals.values())})
    return (
        alt.Chart(src)
        .mark_arc(outerRadius=120)
        .encode(
            theta=alt.Theta("taxpayers:Q"),
            color=alt.Color("source:N", title=None, sort=None, scale=alt.Scale(range=[NAVY, TEAL, SLATE])),
            tooltip=["source:N", alt.Tooltip("taxpayers:Q", format=",")],
        )
    )
