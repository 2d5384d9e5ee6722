"""Contexto de servicio del relay.

Un único ``RelayService`` construye y posee todos los componentes
(deduplicador, historial, fan-out, vistas, persistencia, transporte).
Los endpoints lo reciben vía ``app.state``; no hay estado mutable a
nivel de módulo.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union

import orjson
from sqlalchemy.engine import Engine

from common.config import Settings, get_settings
from common.db import build_engine

from .core.broadcast import BroadcastFanout
from .core.chart import ChartViewRegistry
from .core.domain.dates import resolve_zone
from .core.monitoring import Stats
from .core.pipeline import ConsecutiveDeduplicator, ReadingPipeline
from .core.storage import BoundedHistoryStore
from .core.transport import MessageHandler, MQTTClient
from .persistence import MessageRepository, PersistenceWriter

logger = logging.getLogger(__name__)


class RelayService:
    """Cablea el pipeline de lecturas y gestiona su ciclo de vida."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        engine: Optional[Engine] = None,
        mqtt_client: Optional[MQTTClient] = None,
    ) -> None:
        self.settings = settings or get_settings()
        s = self.settings
        self.tz = resolve_zone(s.time_zone)

        self._engine = engine
        self._owns_engine = engine is None
        self.repository: Optional[MessageRepository] = None
        self.writer: Optional[PersistenceWriter] = None
        if s.persist_enabled:
            if self._engine is None:
                self._engine = build_engine(s.database_url)
            self.repository = MessageRepository(self._engine)
            self.writer = PersistenceWriter(
                self.repository,
                max_queue_size=s.persist_queue_size,
                batch_size=s.persist_batch_size,
            )

        self.stats = Stats()
        self.deduplicator = ConsecutiveDeduplicator()
        self.store = BoundedHistoryStore(capacity=s.history_capacity, sink=self.writer)
        self.fanout = BroadcastFanout(queue_size=s.observer_queue_size)
        self.views = ChartViewRegistry(
            window_size=s.chart_window_size,
            buffer_capacity=s.chart_buffer_capacity,
            max_views=s.chart_max_views,
        )
        self.pipeline = ReadingPipeline(
            self.deduplicator,
            self.store,
            self.fanout,
            views=self.views,
        )
        self.handler = MessageHandler(self.pipeline, self.stats)

        self.mqtt: Optional[MQTTClient] = mqtt_client
        if self.mqtt is None and s.mqtt_enabled:
            self.mqtt = MQTTClient(
                broker_host=s.mqtt_host,
                broker_port=s.mqtt_port,
                topics=s.sub_topics,
                username=s.mqtt_username,
                password=s.mqtt_password,
                client_prefix=s.mqtt_client_prefix,
            )
        if self.mqtt is not None:
            self.mqtt.set_message_handler(self.handler.handle)

        self._started = False

    # ------------------------------------------------------------------
    # Ciclo de vida
    # ------------------------------------------------------------------

    def start(self, *, connect_wait_seconds: float = 5.0) -> None:
        if self._started:
            return

        if self.repository is not None:
            self.repository.ensure_schema()
            self._warm_start()
        if self.writer is not None:
            self.writer.start()

        if self.mqtt is not None:
            if not self.mqtt.connect(wait_seconds=connect_wait_seconds):
                logger.warning("[RELAY] MQTT not connected yet, serving history only")
        else:
            logger.info("[RELAY] MQTT ingest disabled")

        self._started = True
        logger.info(
            "[RELAY] Started history=%d/%d observers_queue=%d",
            self.store.count(),
            self.store.capacity,
            self.settings.observer_queue_size,
        )

    def _warm_start(self) -> None:
        try:
            restored = self.repository.fetch_latest(self.settings.history_capacity)
        except Exception as e:
            logger.error("[RELAY] Warm start failed, starting empty: %s", e)
            return
        if not restored:
            return
        self.store.extend_restored(restored)
        self.pipeline.restore_last_timestamp(restored[-1].timestamp)
        logger.info("[RELAY] Restored %d readings from storage", len(restored))

    def stop(self) -> None:
        """Apagado: MQTT → persistencia (drain) → observadores → BD."""
        if self.mqtt is not None:
            self.mqtt.disconnect()
        if self.writer is not None:
            self.writer.stop(drain=True)
        self.fanout.close_all()
        if self._owns_engine and self._engine is not None:
            self._engine.dispose()
        self._started = False
        logger.info("[RELAY] Stopped. %s", self.stats)

    @property
    def ready(self) -> bool:
        return self._started

    # ------------------------------------------------------------------
    # Operaciones
    # ------------------------------------------------------------------

    def publish_back(self, payload: Union[Mapping[str, Any], str], topic: Optional[str] = None) -> bool:
        """Publica una acción de operador hacia el dispositivo."""
        target = topic or self.settings.pub_topic
        if isinstance(payload, str):
            body = payload
        else:
            body = orjson.dumps(payload).decode("utf-8")
        if self.mqtt is None:
            logger.warning("[RELAY] Publish-back skipped, MQTT disabled topic=%s", target)
            return False
        return self.mqtt.publish(target, body)

    @property
    def mqtt_connected(self) -> bool:
        return self.mqtt is not None and self.mqtt.is_connected

    def snapshot(self) -> dict:
        return {
            "handler": self.stats.to_dict(),
            "deduplicator": self.deduplicator.stats,
            "history": {
                "count": self.store.count(),
                "capacity": self.store.capacity,
                "evicted": self.store.evicted_total,
            },
            "fanout": self.fanout.stats,
            "chart_views": len(self.views),
            "persistence": self.writer.metrics if self.writer is not None else None,
            "mqtt": self.mqtt.stats if self.mqtt is not None else None,
        }
