"""Handler de mensajes MQTT."""

from __future__ import annotations

import logging
import time
from typing import Optional

from ..domain.payload import decode_message
from ..monitoring.metrics import READINGS_PROCESSED, READINGS_RECEIVED
from ..monitoring.stats import Stats
from ..pipeline.processor import PipelineResult, ReadingPipeline

logger = logging.getLogger(__name__)


class MessageHandler:
    """Maneja mensajes MQTT y los procesa a través del pipeline.

    Responsabilidades:
    - Decodificación del payload (JSON u opaco, nunca se descarta)
    - Delegación al pipeline
    - Tracking de estadísticas

    Nunca lanza excepciones hacia el hilo de red de paho.
    """

    def __init__(self, pipeline: ReadingPipeline, stats: Optional[Stats] = None):
        self._pipeline = pipeline
        self._stats = stats or Stats()

    def handle(self, topic: str, payload: bytes) -> Optional[PipelineResult]:
        """Procesa un mensaje MQTT."""
        self._stats.received += 1
        self._stats.last_message_at = time.time()
        READINGS_RECEIVED.inc()

        try:
            data = decode_message(payload)
            result = self._pipeline.process(topic, data)

            if result.accepted:
                self._stats.accepted += 1
            else:
                self._stats.duplicates += 1

            # Log periódico
            if result.accepted and self._stats.accepted % 100 == 0:
                logger.info("[HANDLER] %s", self._stats)
            return result

        except Exception as e:
            logger.exception("[HANDLER] Error processing topic=%s: %s", topic, e)
            self._stats.failed += 1
            READINGS_PROCESSED.labels(status="failed").inc()
            return None

    @property
    def stats(self) -> Stats:
        return self._stats
