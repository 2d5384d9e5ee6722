"""Health, readiness and metrics endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ..service import RelayService
from .deps import get_service

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    """Liveness probe: ok mientras el proceso esté vivo."""
    return {"status": "ok"}


@router.get("/ready")
def ready(service: RelayService = Depends(get_service)):
    """Readiness probe: servicio arrancado y BD accesible (si hay persistencia)."""
    if not service.ready:
        raise HTTPException(status_code=503, detail="not ready")
    if service.repository is not None:
        try:
            service.repository.count()
        except Exception:
            raise HTTPException(status_code=503, detail="not ready")
    return {"status": "ready", "mqtt_connected": service.mqtt_connected}


@router.get("/metrics")
def metrics():
    """Métricas Prometheus en formato texto."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get("/health/pipeline")
def pipeline_health(service: RelayService = Depends(get_service)):
    """Contadores internos de cada componente del pipeline."""
    return service.snapshot()
