"""Canales push: Server-Sent Events y WebSocket.

Cada conexión es un observador del fan-out con su propia cola. Sin
replay: el cliente que reconecta rellena el hueco con /api/messages.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator

import orjson
from fastapi import APIRouter, Depends, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import StreamingResponse

from ..core.broadcast import QueueObserver
from ..errors import ObserverClosedError
from ..service import RelayService
from .deps import client_label, get_service

router = APIRouter(tags=["stream"])
logger = logging.getLogger(__name__)


def _sse_event(data: dict) -> bytes:
    return b"data: " + orjson.dumps(data) + b"\n\n"


async def _sse_events(
    request: Request,
    service: RelayService,
    observer: QueueObserver,
) -> AsyncIterator[bytes]:
    keepalive = service.settings.sse_keepalive_seconds
    try:
        yield _sse_event({"type": "connected", "clientId": observer.observer_id})
        while True:
            if await request.is_disconnected():
                break
            try:
                reading = await observer.get(timeout=keepalive)
            except ObserverClosedError:
                break
            if reading is None:
                yield b": keepalive\n\n"
                continue
            yield _sse_event(reading.to_dict())
    finally:
        service.fanout.unsubscribe(observer)
        logger.info("[SSE] Client disconnected id=%s", observer.observer_id)


@router.get("/api/stream")
async def stream(request: Request, service: RelayService = Depends(get_service)):
    observer = service.fanout.subscribe(loop=asyncio.get_running_loop())
    logger.info("[SSE] Client connected id=%s from=%s", observer.observer_id, client_label(request))
    return StreamingResponse(
        _sse_events(request, service, observer),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


async def _ws_sender(websocket: WebSocket, observer: QueueObserver, keepalive: float) -> None:
    while True:
        try:
            reading = await observer.get(timeout=keepalive)
        except ObserverClosedError:
            return
        if reading is None:
            continue
        await websocket.send_text(
            orjson.dumps({"event": "mqtt_message", "data": reading.to_dict()}).decode("utf-8")
        )


async def _ws_receiver(websocket: WebSocket, service: RelayService) -> None:
    while True:
        raw = await websocket.receive_text()
        try:
            message = orjson.loads(raw)
        except orjson.JSONDecodeError:
            logger.warning("[WS] Ignoring non-JSON message len=%d", len(raw))
            continue
        if not isinstance(message, dict) or message.get("event") != "publish":
            continue

        payload = message.get("payload")
        if payload is None or payload == "":
            await websocket.send_text(
                orjson.dumps({"event": "publish_result", "success": False, "error": "payload is required"}).decode("utf-8")
            )
            continue
        topic = message.get("topic") or service.settings.pub_topic
        ok = service.publish_back(payload, topic=topic)
        await websocket.send_text(
            orjson.dumps({"event": "publish_result", "success": ok, "topic": topic}).decode("utf-8")
        )


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, service: RelayService = Depends(get_service)):
    await websocket.accept()
    observer = service.fanout.subscribe(loop=asyncio.get_running_loop())
    logger.info("[WS] Client connected id=%s", observer.observer_id)

    tasks = [
        asyncio.create_task(_ws_sender(websocket, observer, service.settings.sse_keepalive_seconds)),
        asyncio.create_task(_ws_receiver(websocket, service)),
    ]
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.warning("[WS] Connection error id=%s: %s", observer.observer_id, exc)
    finally:
        for task in tasks:
            task.cancel()
        service.fanout.unsubscribe(observer)
        logger.info("[WS] Client disconnected id=%s", observer.observer_id)
