from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Callable

import numpy as np
import pandas as pd
from bson import ObjectId
from fastapi import Depends, FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pymongo.collection import Collection

from api.schemas import AnalyticsResponse, ErrorResponse
from core.analytics import build_analytics, valid_records
from core.config import Settings, get_settings
from core.formatting import records_frame
from core.storage import fetch_results, get_collection


app = FastAPI(title="Usability Study Analytics API", version="0.1.0")
logger = logging.getLogger(__name__)

ERROR_MESSAGE = "Failed to fetch analytics"

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:8501", "http://127.0.0.1:8501"],
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)


def get_collection_provider(settings: Settings = Depends(get_settings)) -> Callable[[], Collection]:
    # Deferred so that connection and config errors land in the handler's error envelope.
    return lambda: get_collection(settings)


def _json(data: object, status_code: int = 200) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy/bson objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
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
                pd.Timestamp: lambda ts: ts.isoformat(),
                datetime: lambda dt: dt.isoformat(),
                ObjectId: str,
            },
        ),
    )


def _error() -> JSONResponse:
    return _json(ErrorResponse(error=ERROR_MESSAGE).model_dump(), status_code=500)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get(
    "/api/analytics",
    response_model=AnalyticsResponse,
    responses={500: {"model": ErrorResponse}},
)
def analytics(
    settings: Settings = Depends(get_settings),
    collection_provider: Callable[[], Collection] = Depends(get_collection_provider),
):
    try:
        documents = fetch_results(collection_provider())
        payload = build_analytics(documents, percent_for_all=settings.percent_for_all_metrics)
        return _json({"success": True, **payload})
    except Exception:
        logger.exception("analytics failed")
        return _error()


@app.get("/api/analytics/export")
def export_records(collection_provider: Callable[[], Collection] = Depends(get_collection_provider)):
    try:
        records = valid_records(fetch_results(collection_provider()))
        csv_bytes = records_frame(records).to_csv(index=False).encode("utf-8")
    except Exception:
        logger.exception("export failed")
        return _error()
    return Response(
        content=csv_bytes,
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=results.csv"},
    )
