"""Vistas de gráfico del lado servidor (una por dashboard abierto).

Cada vista se siembra con las últimas lecturas del historial y desde
ahí recibe cada lectura aceptada. El cliente solo mueve el offset.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException

from ..core.chart import SlidingWindowView
from ..errors import ViewNotFoundError
from ..schemas import ChartViewOut, PanIn
from ..service import RelayService
from .deps import get_service

router = APIRouter(prefix="/api/chart", tags=["chart"])


def _render(view_id: str, view: SlidingWindowView, service: RelayService) -> ChartViewOut:
    window = view.visible_slice()
    return ChartViewOut(
        view_id=view_id,
        state=view.state.value,
        labels=[
            datetime.fromtimestamp(ts / 1000, tz=service.tz).strftime("%H:%M:%S")
            for ts in window.labels
        ],
        timestamps=window.labels,
        series=window.series,
        start_index=window.start_index,
        end_index=window.end_index,
        total=window.total,
        pan_enabled=window.total > view.window_size,
    )


def _get_view(service: RelayService, view_id: str) -> SlidingWindowView:
    try:
        return service.views.get(view_id)
    except ViewNotFoundError:
        raise HTTPException(status_code=404, detail=f"chart view {view_id} not found")


@router.post("/views", response_model=ChartViewOut, status_code=201)
def create_view(service: RelayService = Depends(get_service)):
    view_id, view = service.pipeline.open_view(service.settings.chart_seed_size)
    return _render(view_id, view, service)


@router.get("/views/{view_id}", response_model=ChartViewOut)
def get_view(view_id: str, service: RelayService = Depends(get_service)):
    return _render(view_id, _get_view(service, view_id), service)


@router.post("/views/{view_id}/pan", response_model=ChartViewOut)
def pan_view(view_id: str, body: PanIn, service: RelayService = Depends(get_service)):
    view = _get_view(service, view_id)
    view.pan(body.start_index)
    return _render(view_id, view, service)


@router.post("/views/{view_id}/latest", response_model=ChartViewOut)
def jump_to_latest(view_id: str, service: RelayService = Depends(get_service)):
    view = _get_view(service, view_id)
    view.jump_to_latest()
    return _render(view_id, view, service)


@router.delete("/views/{view_id}", status_code=204)
def delete_view(view_id: str, service: RelayService = Depends(get_service)):
    try:
        service.views.delete(view_id)
    except ViewNotFoundError:
        raise HTTPException(status_code=404, detail=f"chart view {view_id} not found")
