"""Ventana deslizante para el gráfico de temperaturas por zona.

Proyección de solo lectura sobre un buffer propio acotado (por defecto
1000 puntos). Expone una ventana contigua de ``window_size`` puntos con:

- pan a un offset absoluto,
- salto a lo más reciente,
- auto-seguimiento: si el usuario estaba mirando "el final" (a una
  posición o menos del máximo) la ventana avanza con cada lectura nueva;
  si había retrocedido para inspeccionar historia, se queda quieta,
- corrección de índice al expulsar el punto más antiguo, para que la
  ventana siga apuntando a los mismos puntos.

Los valores nulos se propagan tal cual (hueco en el gráfico).
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from enum import Enum
from itertools import islice
from typing import Deque, Iterable, List, Optional, Tuple

from ..domain.reading import TEMPERATURE_ZONES, Reading

DEFAULT_WINDOW_SIZE = 8
DEFAULT_BUFFER_CAPACITY = 1000

ChartPoint = Tuple[int, Tuple[Optional[float], ...]]


class ViewState(str, Enum):
    EMPTY = "empty"      # total == 0
    PARTIAL = "partial"  # 0 < total <= window_size, pan deshabilitado
    FULL = "full"        # total > window_size, pan habilitado


@dataclass(frozen=True)
class WindowSlice:
    labels: List[int]
    series: List[List[Optional[float]]]
    start_index: int
    end_index: int
    total: int


class SlidingWindowView:
    """Ventana visible sobre un buffer circular de puntos de gráfico."""

    def __init__(
        self,
        window_size: int = DEFAULT_WINDOW_SIZE,
        buffer_capacity: int = DEFAULT_BUFFER_CAPACITY,
        series_count: int = TEMPERATURE_ZONES,
    ) -> None:
        if window_size <= 0:
            raise ValueError("window_size must be positive")
        if buffer_capacity < window_size:
            raise ValueError("buffer_capacity must be >= window_size")
        self._window_size = window_size
        self._capacity = buffer_capacity
        self._series_count = series_count
        self._points: Deque[ChartPoint] = deque()
        self._start = 0
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Estado derivado
    # ------------------------------------------------------------------

    @property
    def window_size(self) -> int:
        return self._window_size

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def total(self) -> int:
        return len(self._points)

    @property
    def start_index(self) -> int:
        return self._start

    @property
    def max_start(self) -> int:
        return self._max_start(len(self._points))

    @property
    def end_index(self) -> int:
        return min(self._start + self._window_size, len(self._points))

    @property
    def state(self) -> ViewState:
        total = len(self._points)
        if total == 0:
            return ViewState.EMPTY
        if total <= self._window_size:
            return ViewState.PARTIAL
        return ViewState.FULL

    def _max_start(self, total: int) -> int:
        return max(0, total - self._window_size)

    # ------------------------------------------------------------------
    # Mutaciones
    # ------------------------------------------------------------------

    def on_append(self, reading: Reading) -> None:
        """Añade el punto de una lectura nueva y aplica auto-seguimiento."""
        values = tuple(reading.sample.temperatures[: self._series_count])
        with self._lock:
            self._append_point((reading.timestamp, values))

    def _append_point(self, point: ChartPoint) -> None:
        # El seguimiento se decide con el estado ANTERIOR al append
        following = self._start >= self._max_start(len(self._points)) - 1

        self._points.append(point)
        if len(self._points) > self._capacity:
            self._points.popleft()
            if self._start > 0:
                self._start -= 1

        total = len(self._points)
        if following or total <= self._window_size:
            self._start = self._max_start(total)

    def seed(self, readings: Iterable[Reading]) -> None:
        """Precarga historia (más antigua primero); la vista queda al final."""
        with self._lock:
            for reading in readings:
                values = tuple(reading.sample.temperatures[: self._series_count])
                self._append_point((reading.timestamp, values))
            self._start = self._max_start(len(self._points))

    def pan(self, new_start: int) -> int:
        """Fija el offset absoluto, acotado a [0, max_start]."""
        with self._lock:
            self._start = min(max(0, int(new_start)), self._max_start(len(self._points)))
            return self._start

    def jump_to_latest(self) -> int:
        with self._lock:
            self._start = self._max_start(len(self._points))
            return self._start

    # ------------------------------------------------------------------
    # Lectura
    # ------------------------------------------------------------------

    def visible_slice(self) -> WindowSlice:
        with self._lock:
            total = len(self._points)
            start = self._start
            end = min(start + self._window_size, total)
            window = list(islice(self._points, start, end))

        labels = [ts for ts, _ in window]
        series = [
            [values[i] if i < len(values) else None for _, values in window]
            for i in range(self._series_count)
        ]
        return WindowSlice(
            labels=labels,
            series=series,
            start_index=start,
            end_index=end,
            total=total,
        )

    def position_info(self) -> dict:
        """Texto de posición tipo "mostrando 3-10 de 42"."""
        with self._lock:
            total = len(self._points)
            start = self._start
        end = min(start + self._window_size, total)
        return {
            "first": start + 1 if total else 0,
            "last": end,
            "total": total,
            "max_start": self._max_start(total),
            "pan_enabled": total > self._window_size,
        }
