"""Pipeline de lecturas: Deduplicación → Historial → Fan-out → Vistas.

Un único productor (el handler MQTT) alimenta el pipeline. Toda la
secuencia dedup + append + publish de UNA lectura es una sección crítica:
si dos lecturas se intercalaran, un observador podría verlas en distinto
orden que el historial.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from ..broadcast.fanout import BroadcastFanout
from ..chart.registry import ChartViewRegistry
from ..chart.sliding_window import SlidingWindowView
from ..domain.reading import Payload, Reading
from ..monitoring.metrics import READINGS_PROCESSED
from ..storage.history_store import BoundedHistoryStore
from .deduplication import ConsecutiveDeduplicator

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class PipelineResult:
    accepted: bool
    reading: Optional[Reading] = None
    duplicate_run_length: int = 0
    delivered: int = 0


class ReadingPipeline:
    """Procesa payloads normalizados de forma serializada."""

    def __init__(
        self,
        deduplicator: ConsecutiveDeduplicator,
        store: BoundedHistoryStore,
        fanout: BroadcastFanout,
        views: Optional[ChartViewRegistry] = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._dedup = deduplicator
        self._store = store
        self._fanout = fanout
        self._views = views
        self._clock = clock
        self._lock = threading.Lock()
        self._last_timestamp = 0

    def process(self, topic: str, payload: Payload) -> PipelineResult:
        """Procesa un payload ya desanidado.

        Returns:
            PipelineResult con ``accepted=False`` si era duplicado.
        """
        with self._lock:
            if not self._dedup.should_accept(payload):
                READINGS_PROCESSED.labels(status="deduplicated").inc()
                return PipelineResult(
                    accepted=False,
                    duplicate_run_length=self._dedup.duplicate_run_length,
                )

            # Timestamps no decrecientes aunque el reloj de pared retroceda
            timestamp = max(int(self._clock()), self._last_timestamp)
            self._last_timestamp = timestamp

            reading = Reading.create(timestamp, topic, payload)
            self._store.append(reading)
            delivered = self._fanout.publish(reading)

            if self._views is not None:
                try:
                    self._views.on_append(reading)
                except Exception as e:
                    logger.exception("[PIPELINE] Chart view update failed: %s", e)

            READINGS_PROCESSED.labels(status="accepted").inc()
            logger.debug(
                "[PIPELINE] Accepted ts=%d topic=%s delivered=%d",
                timestamp,
                topic,
                delivered,
            )
            return PipelineResult(
                accepted=True,
                reading=reading,
                duplicate_run_length=0,
                delivered=delivered,
            )

    def open_view(self, seed_size: int) -> Tuple[str, SlidingWindowView]:
        """Abre una vista de gráfico sembrada con las últimas ``seed_size`` lecturas.

        Siembra y registro ocurren bajo el lock del pipeline: ninguna lectura
        puede quedar entre la semilla y la primera notificación de la vista.
        """
        if self._views is None:
            raise RuntimeError("pipeline has no chart view registry")
        with self._lock:
            # latest() viene en orden descendente; la vista se siembra de antigua a nueva
            seed = list(reversed(self._store.latest(seed_size)))
            return self._views.create(seed)

    def restore_last_timestamp(self, timestamp: int) -> None:
        """Tras el arranque en caliente, continúa desde el último timestamp."""
        with self._lock:
            self._last_timestamp = max(self._last_timestamp, int(timestamp))
