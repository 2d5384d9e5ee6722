"""Estadísticas del sistema para la cabecera del dashboard."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ..schemas import StatsBody, StatsOut
from ..service import RelayService
from .deps import get_service

router = APIRouter(prefix="/api", tags=["stats"])


@router.get("/stats", response_model=StatsOut)
def stats(service: RelayService = Depends(get_service)):
    last = service.store.last()
    avg = last.sample.average_temperature() if last is not None else None

    return StatsOut(
        stats=StatsBody(
            totalRecords=service.store.count(),
            lastUpdate=last.timestamp if last is not None else None,
            avgTemperature=round(avg) if avg is not None else None,
            systemStatus="online" if service.mqtt_connected else "offline",
            uptime=round(service.stats.uptime_seconds, 3),
            duplicatesSuppressed=service.deduplicator.stats["rejected_total"],
            observers=service.fanout.observer_count,
            mqttConnected=service.mqtt_connected,
        )
    )
