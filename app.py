import datetime as dt
from contextlib import contextmanager
from typing import List, Optional

import altair as alt
import pandas as pd
import streamlit as st

from core.charts import regional_comparison_bars, source_pie, taxpayers_bar
from core.config import get_settings
from core.data import format_ghs_0, format_percent_columns, load_static_dataset
from core.errors import DashboardError, EmptyExportFailure, FetchFailure, PersistFailure, ValidationFailure
from core.export import export_report
from core.filters import SortState, ViewFilters, next_sort, use_system_collation
from core.logging_config import configure_logging
from core.metrics_overview import compute_overview
from core.metrics_regional import compute_regional
from core.metrics_sources import SOURCE_LABELS, compute_source_breakdown
from core.models import EDITABLE_FIELDS
from core.session import DashboardSession
from core.store import build_store

alt.data_transformers.disable_max_rows()

settings = get_settings()

FIELD_TITLES = {
    "taxpayers": "Taxpayers",
    "average_tax": "Avg. Tax (GHS)",
    "total_tax": "Total Tax (GHS)",
    "salary_taxpayers": "Salary Taxpayers",
    "e_vat_taxpayers": "eVAT Taxpayers",
    "other_taxpayers": "Other Taxpayers",
    "compliance_rate": "Compliance (%)",
}


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def render_page_header(title: str, breadcrumb: str, report: str, rows, year: Optional[int]):
    inject_base_styles()
    c1, c2 = st.columns([7, 3])
    with c1:
        st.markdown(
            f"<div class='app-top-bar'><div class='breadcrumb'>{breadcrumb}</div><div class='page-title'>{title}</div></div>",
            unsafe_allow_html=True,
        )
    with c2:
        btn_cols = st.columns(2)
        if btn_cols[0].button("Refresh", key=f"refresh_{report}"):
            load_regions(force=True)
        try:
            filename, content = export_report(report, rows, year=year, today=dt.date.today())
        except EmptyExportFailure as exc:
            btn_cols[1].button("Export CSV", key=f"export_{report}", disabled=True, help=str(exc))
        else:
            btn_cols[1].download_button("Export CSV", data=content.encode("utf-8"), file_name=filename, mime="text/csv")


def get_session() -> DashboardSession:
    if "dashboard_session" not in st.session_state:
        st.session_state["dashboard_session"] = DashboardSession(build_store(settings), settings)
    return st.session_state["dashboard_session"]


def load_regions(force: bool = False) -> None:
    session = get_session()
    try:
        if force:
            session.refresh()
        else:
            session.ensure_loaded()
    except FetchFailure as exc:
        st.error(str(exc))


def show_edit_error(exc: DashboardError) -> None:
    if isinstance(exc, ValidationFailure):
        st.error(" ".join(exc.messages))
    elif isinstance(exc, PersistFailure):
        st.error(f"{exc} Your changes are kept.")
    else:
        st.error(str(exc))


def display_value(field: str, value) -> str:
    if field == "compliance_rate":
        return f"{float(value) * 100:.1f}"
    if field in ("average_tax", "total_tax"):
        return f"{float(value):,.2f}"
    return f"{int(value):,}"


# ---------- UI setup ----------
configure_logging(settings.log_level)
use_system_collation()
st.set_page_config(page_title="Regional Tax Dashboard", layout="wide")
inject_base_styles()
st.title("Regional Tax Dashboard")
st.caption("Taxpayers, revenue and compliance by region.")

session = get_session()
load_regions()

with st.sidebar:
    st.markdown("### Navigate")
    page = st.radio("Navigate", ["Dashboard", "Regional Analysis", "Tax Sources"], index=0)
    st.markdown("---")
    years = settings.available_years
    year = st.selectbox("Year", years, index=years.index(settings.default_year) if settings.default_year in years else len(years) - 1)
    query = st.text_input("Search regions", "")

if "sort_state" not in st.session_state:
    st.session_state["sort_state"] = SortState("taxpayers", "desc")


def render_dashboard_page():
    sort_cols = st.columns([3, 1])
    sort_field = sort_cols[0].selectbox("Sort by", ["region", *EDITABLE_FIELDS], format_func=lambda f: FIELD_TITLES.get(f, "Region"))
    if sort_cols[1].button("Sort"):
        st.session_state["sort_state"] = next_sort(st.session_state["sort_state"], sort_field)
    sort_state: SortState = st.session_state["sort_state"]

    filters = ViewFilters(year=year, query=query, tier="all", sort=sort_state)
    ctx = session.context(filters)
    payload = compute_overview(filters, ctx)
    rows: pd.DataFrame = ctx["filtered_rows"]
    render_page_header("Tax Dashboard", "Home / Dashboard", "taxpayer_data", rows, year)

    kpis = payload["kpis"]
    cols = st.columns(4)
    cols[0].metric("Total Taxpayers", f"{kpis['total_taxpayers']:,}")
    cols[1].metric("Total Tax", format_ghs_0(kpis["total_tax"]))
    cols[2].metric("Average Tax", f"GHS {kpis['average_tax']:,.2f}")
    cols[3].metric("Compliance Rate", f"{kpis['compliance_rate']:.1%}", help="Weighted by taxpayer count.")

    with card(f"Taxpayers by Region ({year})"):
        if ctx["year_rows"].empty:
            st.info("No regions loaded.")
        else:
            st.altair_chart(taxpayers_bar(ctx["year_rows"], year), use_container_width=True)

    with card(f"Regions ({sort_state.field}, {sort_state.direction})"):
        table = format_percent_columns(rows.drop(columns=["salary_share", "e_vat_share"]), ["compliance_rate"])
        st.dataframe(table.rename(columns=FIELD_TITLES), hide_index=True, use_container_width=True)

    with card("Edit a value"):
        names = list(rows["region"]) if not rows.empty else []
        if not names:
            st.info("No regions match the search.")
            return
        c1, c2, c3 = st.columns(3)
        region = c1.selectbox("Region", names)
        field = c2.selectbox("Field", list(EDITABLE_FIELDS), format_func=FIELD_TITLES.get)
        current = session.edits.merged_record(region, year)
        raw = c3.text_input("New value", display_value(field, getattr(current, field)), key=f"raw_{region}_{field}_{year}")
        b1, b2, b3 = st.columns(3)
        if b1.button("Stage"):
            session.edits.stage(region, year, field, raw)
            st.rerun()
        if b2.button("Save", type="primary"):
            session.edits.stage(region, year, field, raw)
            try:
                session.commit(region, year)
                st.success(f"Saved {region} {year}.")
            except DashboardError as exc:
                show_edit_error(exc)
        if b3.button("Discard"):
            session.edits.discard(region, year)
            st.rerun()
        pending = session.edits.pending(year)
        if pending:
            st.caption("Unsaved: " + ", ".join(f"{e.region} ({e.status.value})" for e in pending))


def render_regional_page():
    tier = st.radio("Compliance tier", ["all", "high", "medium", "low"], horizontal=True, format_func=str.title)
    filters = ViewFilters(year=year, query=query, tier=tier, sort=SortState("region", "asc"))
    ctx = session.context(filters)
    rows: pd.DataFrame = ctx["filtered_rows"]
    render_page_header("Regional Analysis", "Home / Regional Analysis", "regional_tax_data", rows, year)

    names = list(rows["region"]) if not rows.empty else []
    selected = st.selectbox("Region details", ["(none)", *names])
    payload = compute_regional(filters, ctx, selected_region=None if selected == "(none)" else selected)
    counts = payload["tier_counts"]
    st.caption(f"High: {counts['high']} | Medium: {counts['medium']} | Low: {counts['low']}")

    with card(f"Average Tax vs Compliance ({year})"):
        if ctx["year_rows"].empty:
            st.info("No regions loaded.")
        else:
            st.altair_chart(regional_comparison_bars(ctx["year_rows"], year), use_container_width=True)

    with card("Regions"):
        table = format_percent_columns(rows, ["compliance_rate", "salary_share", "e_vat_share"])
        st.dataframe(table, hide_index=True, use_container_width=True)

    detail = payload["selected"]
    if not detail:
        return
    with card(f"{selected} ({year})"):
        d = st.columns(4)
        d[0].metric("Taxpayers", f"{int(detail['taxpayers']):,}")
        d[1].metric("Avg. Tax", f"GHS {detail['average_tax']:,.2f}")
        d[2].metric("Total Tax", format_ghs_0(detail["total_tax"]))
        d[3].metric("Compliance", f"{detail['compliance_rate']:.1%}")
        with st.form(f"edit_{selected}_{year}"):
            values = {}
            for f in EDITABLE_FIELDS:
                values[f] = st.number_input(FIELD_TITLES[f] if f != "compliance_rate" else "Compliance (0-1)", value=float(detail[f]))
            submitted = st.form_submit_button("Save changes")
        if submitted:
            session.edits.stage_record(selected, year, values)
            try:
                session.commit(selected, year)
                st.success("Saved.")
            except DashboardError as exc:
                show_edit_error(exc)


def render_sources_page():
    source = st.radio("Data source", ["store", "static"], horizontal=True, format_func=lambda s: "Live data" if s == "store" else "Static dataset")
    regions = session.snapshot.all() if source == "store" else load_static_dataset(settings.static_data_path, settings.static_data_year)
    payload = compute_source_breakdown(regions, query=query)
    rows: List[dict] = payload["rows"]
    render_page_header("Tax Source Breakdown", "Home / Tax Sources", "tax_source_breakdown", rows, None)
    st.caption("Totals cover every year on record.")

    cols = st.columns(3)
    for col, key in zip(cols, ("salary", "e_vat", "other")):
        col.metric(SOURCE_LABELS[key], f"{payload['totals'][key]:,}", delta=f"{payload['shares'][key]:.1%} of total", delta_color="off")

    with card("Distribution"):
        if payload["total"]:
            st.altair_chart(source_pie({SOURCE_LABELS[k]: v for k, v in payload["totals"].items()}), use_container_width=True)
        else:
            st.info("No source data.")
    with card("By Region"):
        st.dataframe(pd.DataFrame(rows), hide_index=True, use_container_width=True)


if page == "Dashboard":
    render_dashboard_page()
elif page == "Regional Analysis":
    render_regional_page()
else:
    render_sources_page()
