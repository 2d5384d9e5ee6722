"""Dependencias compartidas por los routers."""

from __future__ import annotations

from fastapi import HTTPException, Request
from starlette.requests import HTTPConnection

from ..core.domain.dates import day_bounds_ms, parse_day
from ..errors import InvalidQueryError
from ..service import RelayService


def get_service(conn: HTTPConnection) -> RelayService:
    service = getattr(conn.app.state, "service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="service not initialized")
    return service


def date_range_ms(service: RelayService, start_date: str | None, end_date: str | None) -> tuple[int, int]:
    """[startOfDay(start), endOfDay(end)] en la zona configurada; 400 si falta o es inválido."""
    try:
        start_day = parse_day(start_date, "startDate")
        end_day = parse_day(end_date, "endDate")
    except InvalidQueryError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return day_bounds_ms(start_day, end_day, service.tz)


def client_label(request: Request) -> str:
    if request.client is None:
        return "unknown"
    return f"{request.client.host}:{request.client.port}"
