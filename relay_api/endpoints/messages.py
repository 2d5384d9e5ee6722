"""Consultas de historial: últimas N, rango de fechas y dato en tiempo real."""

from __future__ import annotations

import logging
import time
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ..schemas import ReadingOut, RealtimeOut
from ..service import RelayService
from .deps import date_range_ms, get_service

router = APIRouter(prefix="/api", tags=["messages"])
logger = logging.getLogger(__name__)


@router.get("/messages", response_model=List[ReadingOut])
def latest_messages(
    limit: int = Query(10, ge=0),
    date: Optional[str] = Query(None, description="YYYY-MM-DD; filtra un único día"),
    service: RelayService = Depends(get_service),
):
    limit = min(limit, service.settings.table_row_limit)
    if date:
        start, end = date_range_ms(service, date, date)
        readings = service.store.range_query(start, end, limit=limit)
    else:
        readings = service.store.latest(limit)
    return [r.to_dict() for r in readings]


@router.get("/messages/range", response_model=List[ReadingOut])
def messages_in_range(
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    limit: int = Query(100, ge=0),
    offset: int = Query(0, ge=0),
    service: RelayService = Depends(get_service),
):
    """Lecturas entre el inicio de ``startDate`` y el final de ``endDate``.

    Un rango invertido devuelve lista vacía.
    """
    limit = min(limit, service.settings.table_row_limit)
    start, end = date_range_ms(service, startDate, endDate)
    readings = service.store.range_query(start, end, limit=limit, offset=offset)
    logger.debug(
        "[API] Range query %s..%s (%d..%d) limit=%d offset=%d -> %d rows",
        startDate,
        endDate,
        start,
        end,
        limit,
        offset,
        len(readings),
    )
    return [r.to_dict() for r in readings]


@router.get("/realtime", response_model=RealtimeOut)
def realtime(service: RelayService = Depends(get_service)):
    last = service.store.last()
    return RealtimeOut(
        data=last.to_dict() if last is not None else None,
        timestamp=int(time.time() * 1000),
    )
