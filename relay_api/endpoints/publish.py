"""Publicación de acciones de operador hacia el dispositivo."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from ..schemas import PublishIn, PublishResult
from ..service import RelayService
from .deps import get_service

router = APIRouter(prefix="/api", tags=["publish"])


@router.post("/publish", response_model=PublishResult)
def publish(body: PublishIn, service: RelayService = Depends(get_service)):
    if body.payload == "":
        raise HTTPException(status_code=400, detail="payload is required")
    topic = body.topic or service.settings.pub_topic
    if not service.publish_back(body.payload, topic=topic):
        raise HTTPException(status_code=503, detail="MQTT broker not connected")
    return PublishResult(success=True, topic=topic)
