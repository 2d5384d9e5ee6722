"""Escritor de persistencia asíncrono respecto al pipeline.

Desacopla el callback de paho de la escritura en BD:

- ``submit()`` encola y retorna al instante (nunca bloquea)
- Un hilo worker vacía la cola en batches (executemany)
- Cola acotada: si se llena, se descarta la lectura y se loguea
- Un fallo de BD se loguea; la lectura se pierde del almacenamiento
  duradero pero ya llegó a los observadores en vivo
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import List, Optional, Protocol

from ..core.domain.reading import Reading
from ..core.monitoring.metrics import PERSIST_OPERATIONS

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 10000
DEFAULT_BATCH_SIZE = 100


class BatchRepository(Protocol):
    def insert_many(self, readings: List[Reading]) -> int:
        ...


class PersistenceWriter:
    """Cola acotada + hilo worker que escribe lecturas en batch."""

    def __init__(
        self,
        repository: BatchRepository,
        max_queue_size: int = DEFAULT_QUEUE_SIZE,
        batch_size: int = DEFAULT_BATCH_SIZE,
        poll_interval: float = 0.5,
    ):
        self._repository = repository
        self._queue: "queue.Queue[Reading]" = queue.Queue(maxsize=max_queue_size)
        self._batch_size = batch_size
        self._poll_interval = poll_interval
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

        # Métricas
        self._enqueued = 0
        self._written = 0
        self._failed = 0
        self._dropped = 0
        self._lock = threading.Lock()

    def start(self) -> None:
        """Inicia el hilo worker."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._worker_loop,
            daemon=True,
            name="persist-writer",
        )
        self._thread.start()
        logger.info(
            "[PERSIST] Started queue_max=%d batch=%d",
            self._queue.maxsize,
            self._batch_size,
        )

    def stop(self, drain: bool = True) -> None:
        """Detiene el worker. Con drain=True escribe lo pendiente antes."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=10.0)
            self._thread = None
        if drain:
            self.flush()
        logger.info("[PERSIST] Stopped. %s", self.metrics)

    def submit(self, reading: Reading) -> bool:
        """Encola una lectura. False si se descartó por cola llena."""
        try:
            self._queue.put_nowait(reading)
        except queue.Full:
            with self._lock:
                self._dropped += 1
            PERSIST_OPERATIONS.labels(status="dropped").inc()
            logger.warning("[PERSIST] Queue full, dropped reading ts=%d", reading.timestamp)
            return False
        with self._lock:
            self._enqueued += 1
        return True

    def flush(self) -> int:
        """Escribe todo lo pendiente en el hilo actual."""
        total = 0
        while True:
            batch = self._drain_batch(self._batch_size)
            if not batch:
                return total
            total += self._write(batch)

    def _drain_batch(self, max_items: int) -> List[Reading]:
        batch: List[Reading] = []
        while len(batch) < max_items:
            try:
                batch.append(self._queue.get_nowait())
            except queue.Empty:
                break
        return batch

    def _worker_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                first = self._queue.get(timeout=self._poll_interval)
            except queue.Empty:
                continue
            batch = [first] + self._drain_batch(self._batch_size - 1)
            self._write(batch)

    def _write(self, batch: List[Reading]) -> int:
        try:
            written = self._repository.insert_many(batch)
        except Exception as e:
            with self._lock:
                self._failed += len(batch)
            PERSIST_OPERATIONS.labels(status="failed").inc(len(batch))
            logger.error("[PERSIST] Write failed, %d readings lost: %s", len(batch), e)
            return 0

        with self._lock:
            self._written += written
        PERSIST_OPERATIONS.labels(status="written").inc(written)
        logger.debug("[PERSIST] Wrote %d readings", written)
        return written

    @property
    def metrics(self) -> dict:
        with self._lock:
            return {
                "queue_depth": self._queue.qsize(),
                "queue_max": self._queue.maxsize,
                "enqueued": self._enqueued,
                "written": self._written,
                "failed": self._failed,
                "dropped": self._dropped,
            }
