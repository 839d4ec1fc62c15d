from __future__ import annotations

from dataclasses import asdict
import logging
import math
import threading
from typing import Optional

import numpy as np
import pandas as pd
from fastapi import FastAPI, File, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder

from api.schemas import AnalysisFiltersModel, LoadResponse, NoticeModel, PreviewResponse
from core.charts import analysis_chart, dashboard_charts, to_vega_spec
from core.data import PREVIEW_LIMIT
from core.filters import AnalysisFilters, normalize_filters
from core.metrics_analysis import ANALYSIS_MODES
from core.session import DashboardSession, Notice


app = FastAPI(title="COVID-19 Testing Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_session: Optional[DashboardSession] = None
_session_lock = threading.Lock()


def get_session() -> DashboardSession:
    """Return the process-wide session, loading the sample dataset on first use."""
    global _session
    with _session_lock:
        if _session is None:
            session = DashboardSession()
            notice = session.load_sample()
            if not notice.ok:
                logger.warning(notice.message)
            _session = session
        return _session


def _filters_from_model(model: Optional[AnalysisFiltersModel]) -> AnalysisFilters:
    raw = model.model_dump() if model is not None else {}
    return normalize_filters(raw)


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _error(exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


def _load_response(notice: Notice, session: DashboardSession) -> JSONResponse:
    body = LoadResponse(notice=NoticeModel(**asdict(notice)), record_count=session.record_count)
    return _json(body.model_dump())


@app.get("/meta/test-types")
def meta_test_types():
    try:
        return _json({"test_types": get_session().test_types()})
    except Exception as exc:
        logger.exception("meta_test_types failed")
        return _error(exc)


@app.get("/meta/residences")
def meta_residences():
    try:
        return _json({"residences": get_session().residences()})
    except Exception as exc:
        logger.exception("meta_residences failed")
        return _error(exc)


@app.get("/meta/analysis-modes")
def meta_analysis_modes():
    return _json({"modes": ANALYSIS_MODES})


@app.get("/dashboard")
def dashboard(include_charts: bool = Query(default=False)):
    try:
        payload = get_session().dashboard()
        if include_charts:
            payload["charts"] = dashboard_charts(payload)
        return _json(payload)
    except Exception as exc:
        logger.exception("dashboard failed")
        return _error(exc)


@app.post("/analysis")
def analysis(
    filters: Optional[AnalysisFiltersModel] = None,
    mode: str = Query(default="temporal"),
    include_chart: bool = Query(default=False),
):
    try:
        f = _filters_from_model(filters)
        payload = get_session().analysis(mode, f)
        if include_chart:
            chart = analysis_chart(payload)
            payload["chart"] = to_vega_spec(chart) if chart is not None else None
        return _json(payload)
    except Exception as exc:
        logger.exception("analysis failed")
        return _error(exc)


@app.post("/upload")
def upload(file: Optional[UploadFile] = File(default=None)):
    try:
        session = get_session()
        content = file.file.read() if file is not None else None
        return _load_response(session.load_upload(content), session)
    except Exception as exc:
        logger.exception("upload failed")
        return _error(exc)


@app.post("/reload")
def reload_sample():
    try:
        session = get_session()
        return _load_response(session.load_sample(), session)
    except Exception as exc:
        logger.exception("reload failed")
        return _error(exc)


@app.get("/preview")
def preview(limit: int = Query(default=PREVIEW_LIMIT, ge=0, le=500)):
    try:
        session = get_session()
        body = PreviewResponse(records=session.preview(limit), record_count=session.record_count)
        return _json(body.model_dump())
    except Exception as exc:
        logger.exception("preview failed")
        return _error(exc)
