"""Exportación de datos en JSON o CSV."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from ..export import CSV_FILENAME, readings_to_csv
from ..service import RelayService
from .deps import date_range_ms, get_service

router = APIRouter(prefix="/api", tags=["export"])
logger = logging.getLogger(__name__)


@router.get("/export")
def export_data(
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    format: str = Query("json"),
    service: RelayService = Depends(get_service),
):
    """Exporta todo el conjunto coincidente (sin paginar).

    Sin fechas se exporta todo el historial; con solo una de ellas es 400.
    """
    fmt = format.strip().lower()
    if fmt not in ("json", "csv"):
        raise HTTPException(status_code=400, detail=f"format must be json or csv, got {format!r}")

    if startDate is None and endDate is None:
        readings = service.store.range_query()
    else:
        start, end = date_range_ms(service, startDate, endDate)
        readings = service.store.range_query(start, end)

    logger.info("[API] Export format=%s rows=%d", fmt, len(readings))

    if fmt == "csv":
        return Response(
            content=readings_to_csv(readings, service.tz),
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": f'attachment; filename="{CSV_FILENAME}"'},
        )
    return [r.to_dict() for r in readings]
