from __future__ import annotations

from dataclasses import asdict
import logging
import math
from typing import Literal, Optional

import numpy as np
import pandas as pd
from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.responses import Response
from fastapi.encoders import jsonable_encoder

from api.schemas import EditKeyModel, PendingEditModel, PendingListResponse, StageFieldModel, StageRecordModel, ViewFiltersModel
from core.config import get_settings
from core.data import load_static_dataset
from core.edits import PendingEdit
from core.errors import DashboardError, EmptyExportFailure, FetchFailure, PersistFailure, ValidationFailure
from core.export import export_report
from core.filters import ViewFilters, normalize_filters, use_system_collation
from core.logging_config import configure_logging
from core.metrics_overview import compute_overview
from core.metrics_regional import compute_regional
from core.metrics_sources import compute_source_breakdown
from core.session import DashboardSession
from core.store import build_store


settings = get_settings()
configure_logging(settings.log_level)
use_system_collation()

app = FastAPI(title="Regional Tax Dashboard API", version="0.1.0")
app.state.session = None
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_session(request: Request) -> DashboardSession:
    if request.app.state.session is None:
        request.app.state.session = DashboardSession(build_store(settings), settings)
    return request.app.state.session


def _filters_from_model(model: ViewFiltersModel) -> ViewFilters:
    return normalize_filters(model.model_dump(), available_years=settings.available_years, default_year=settings.default_year)


def _json(data: object, status_code: int = 200) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
            },
        ),
    )


def _error(exc: Exception, where: str) -> JSONResponse:
    if isinstance(exc, ValidationFailure):
        return JSONResponse(status_code=422, content={"error": str(exc), "messages": exc.messages, "type": "ValidationFailure"})
    if isinstance(exc, PersistFailure):
        return JSONResponse(status_code=503, content={"error": str(exc), "retryable": True, "type": "PersistFailure"})
    if isinstance(exc, FetchFailure):
        return JSONResponse(status_code=502, content={"error": str(exc), "retryable": True, "type": "FetchFailure"})
    if isinstance(exc, EmptyExportFailure):
        return JSONResponse(status_code=404, content={"error": str(exc), "type": "EmptyExportFailure"})
    if isinstance(exc, DashboardError):
        return JSONResponse(status_code=400, content={"error": str(exc), "type": type(exc).__name__})
    if isinstance(exc, KeyError):
        return JSONResponse(status_code=404, content={"error": str(exc.args[0]) if exc.args else "Not found", "type": "KeyError"})
    if isinstance(exc, ValueError):
        return JSONResponse(status_code=400, content={"error": str(exc), "type": "ValueError"})
    logger.exception("%s failed", where)
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


def _edit_payload(session: DashboardSession, edit: PendingEdit) -> dict:
    record = session.edits.merged_record(edit.region, edit.year)
    return PendingEditModel(
        region=edit.region,
        year=edit.year,
        status=edit.status.value,
        error=edit.error,
        changes=edit.changes,
        record={k: v for k, v in asdict(record).items() if k != "year"},
    ).model_dump()


@app.get("/meta/years")
def meta_years():
    return _json({"years": settings.available_years, "default": settings.default_year})


@app.get("/meta/regions")
def meta_regions(session: DashboardSession = Depends(get_session)):
    try:
        session.ensure_loaded()
        return _json({"regions": session.snapshot.names()})
    except Exception as exc:
        return _error(exc, "meta_regions")


@app.post("/refresh")
def refresh(session: DashboardSession = Depends(get_session)):
    try:
        regions = session.refresh()
        return _json({"regions": len(regions)})
    except Exception as exc:
        return _error(exc, "refresh")


@app.post("/overview")
def overview(filters: ViewFiltersModel, session: DashboardSession = Depends(get_session)):
    try:
        f = _filters_from_model(filters)
        ctx = session.context(f)
        return _json(compute_overview(f, ctx))
    except Exception as exc:
        return _error(exc, "overview")


@app.post("/regional")
def regional(
    filters: ViewFiltersModel,
    selected_region: Optional[str] = Query(default=None),
    session: DashboardSession = Depends(get_session),
):
    try:
        f = _filters_from_model(filters)
        ctx = session.context(f)
        return _json(compute_regional(f, ctx, selected_region=selected_region or None))
    except Exception as exc:
        return _error(exc, "regional")


def _source_regions(session: DashboardSession, source: str):
    if source == "static":
        return load_static_dataset(settings.static_data_path, settings.static_data_year)
    session.ensure_loaded()
    return session.snapshot.all()


@app.get("/sources")
def sources(
    source: Literal["store", "static"] = Query(default="store"),
    q: str = Query(default=""),
    session: DashboardSession = Depends(get_session),
):
    try:
        return _json(compute_source_breakdown(_source_regions(session, source), query=q.strip()))
    except Exception as exc:
        return _error(exc, "sources")


@app.get("/edits")
def list_edits(year: Optional[int] = Query(default=None), session: DashboardSession = Depends(get_session)):
    with session.lock:
        edits = [_edit_payload(session, e) for e in session.edits.pending(year)]
    return _json(PendingListResponse(edits=edits).model_dump())


@app.post("/edits/begin")
def begin_edit(body: EditKeyModel, session: DashboardSession = Depends(get_session)):
    try:
        session.ensure_loaded()
        with session.lock:
            edit = session.edits.begin(body.region, body.year)
            return _json(_edit_payload(session, edit))
    except Exception as exc:
        return _error(exc, "begin_edit")


@app.post("/edits/stage")
def stage_edit(body: StageFieldModel, session: DashboardSession = Depends(get_session)):
    try:
        session.ensure_loaded()
        with session.lock:
            edit = session.edits.stage(body.region, body.year, body.field, body.value)
            return _json(_edit_payload(session, edit))
    except Exception as exc:
        return _error(exc, "stage_edit")


@app.post("/edits/record")
def stage_record(body: StageRecordModel, session: DashboardSession = Depends(get_session)):
    try:
        session.ensure_loaded()
        with session.lock:
            edit = session.edits.stage_record(body.region, body.year, body.values)
            return _json(_edit_payload(session, edit))
    except Exception as exc:
        return _error(exc, "stage_record")


@app.post("/edits/commit")
def commit_edit(body: EditKeyModel, session: DashboardSession = Depends(get_session)):
    try:
        result = session.commit(body.region, body.year)
        return _json(
            {
                "region": body.region,
                "year": body.year,
                "record": asdict(result.record),
                "kpis": asdict(result.aggregate),
            }
        )
    except Exception as exc:
        return _error(exc, "commit_edit")


@app.post("/edits/discard")
def discard_edit(body: EditKeyModel, session: DashboardSession = Depends(get_session)):
    with session.lock:
        removed = session.edits.discard(body.region, body.year)
    return _json({"region": body.region, "year": body.year, "discarded": removed})


@app.post("/export/{report}")
def export(
    report: Literal["taxpayer_data", "regional_tax_data", "tax_source_breakdown"],
    filters: ViewFiltersModel,
    source: Literal["store", "static"] = Query(default="store"),
    session: DashboardSession = Depends(get_session),
):
    try:
        f = _filters_from_model(filters)
        if report == "tax_source_breakdown":
            payload = compute_source_breakdown(_source_regions(session, source), query=f.query)
            rows = payload["rows"]
        else:
            rows = session.context(f)["filtered_rows"]
        filename, content = export_report(report, rows, year=f.year)
    except Exception as exc:
        return _error(exc, "export")
    return Response(
        content=content.encode("utf-8"),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
