"""Historial acotado de lecturas en memoria.

- Orden lógico = orden de inserción (dos lecturas pueden compartir
  timestamp; el orden de inserción desempata).
- Capacidad fija; al desbordar se expulsa la más antigua (FIFO).
- La persistencia duradera es un efecto lateral delegado: sus fallos se
  loguean y se tragan, nunca llegan al llamador de ``append``.
- Thread-safe: el callback MQTT escribe mientras HTTP consulta.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Deque, Iterable, List, Optional, Protocol

from ..domain.reading import Reading
from ..monitoring.metrics import HISTORY_SIZE

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 10000


class ReadingSink(Protocol):
    """Colaborador de persistencia. Debe ser no bloqueante."""

    def submit(self, reading: Reading) -> bool:
        ...


class BoundedHistoryStore:
    """Buffer FIFO acotado con consultas por rango de timestamp."""

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        sink: Optional[ReadingSink] = None,
    ) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._sink = sink
        # deque(maxlen) expulsa el extremo izquierdo en el mismo append
        self._items: Deque[Reading] = deque(maxlen=capacity)
        self._lock = threading.RLock()
        self._evicted_total = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def evicted_total(self) -> int:
        return self._evicted_total

    def append(self, reading: Reading) -> Optional[Reading]:
        """Añade una lectura. Devuelve la expulsada, si hubo."""
        evicted: Optional[Reading] = None
        with self._lock:
            if len(self._items) == self._capacity:
                evicted = self._items[0]
                self._evicted_total += 1
            self._items.append(reading)
            size = len(self._items)
        HISTORY_SIZE.set(size)

        if self._sink is not None:
            try:
                self._sink.submit(reading)
            except Exception as e:
                logger.warning("[HISTORY] Persistence submit failed: %s", e)

        return evicted

    def extend_restored(self, readings: Iterable[Reading]) -> int:
        """Carga lecturas ya persistidas (más antigua primero) sin re-persistir."""
        with self._lock:
            before = len(self._items)
            for reading in readings:
                self._items.append(reading)
            size = len(self._items)
        HISTORY_SIZE.set(size)
        return size - before

    def range_query(
        self,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Reading]:
        """Lecturas con timestamp en [start_time, end_time], más reciente primero.

        Args:
            start_time: cota inferior inclusiva (ms) o None
            end_time: cota superior inclusiva (ms) o None
            limit: máximo de filas (None = todas)
            offset: filas coincidentes a saltar antes de aplicar limit

        Returns:
            Lista (posiblemente vacía) ordenada descendente por timestamp;
            empates: la insertada más tarde va primero.
        """
        if offset < 0:
            raise ValueError("offset must be >= 0")
        if limit is not None and limit < 0:
            raise ValueError("limit must be >= 0")

        with self._lock:
            snapshot = list(self._items)

        matches = [
            r for r in reversed(snapshot)
            if (start_time is None or r.timestamp >= start_time)
            and (end_time is None or r.timestamp <= end_time)
        ]
        # sort estable: conserva "insertada más tarde primero" en empates
        matches.sort(key=lambda r: r.timestamp, reverse=True)

        if limit is None:
            return matches[offset:]
        return matches[offset:offset + limit]

    def latest(self, n: int) -> List[Reading]:
        return self.range_query(limit=n)

    def last(self) -> Optional[Reading]:
        with self._lock:
            return self._items[-1] if self._items else None

    def count(self) -> int:
        with self._lock:
            return len(self._items)

    def __len__(self) -> int:
        return self.count()
