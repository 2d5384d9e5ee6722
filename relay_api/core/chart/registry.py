"""Registro de vistas de gráfico abiertas (una por dashboard)."""

from __future__ import annotations

import logging
import threading
import uuid
from collections import OrderedDict
from typing import Iterable, List

from ..domain.reading import Reading
from ...errors import ViewNotFoundError
from .sliding_window import SlidingWindowView

logger = logging.getLogger(__name__)


class ChartViewRegistry:
    """Mantiene las vistas vivas y las alimenta con cada lectura aceptada.

    Cuando se supera ``max_views`` se descarta la vista creada hace más
    tiempo; el cliente que la usaba recibe 404 y abre otra.
    """

    def __init__(
        self,
        window_size: int,
        buffer_capacity: int,
        max_views: int = 64,
    ) -> None:
        self._window_size = window_size
        self._buffer_capacity = buffer_capacity
        self._max_views = max_views
        self._views: "OrderedDict[str, SlidingWindowView]" = OrderedDict()
        self._lock = threading.Lock()

    def create(self, seed: Iterable[Reading] = ()) -> tuple[str, SlidingWindowView]:
        view = SlidingWindowView(
            window_size=self._window_size,
            buffer_capacity=self._buffer_capacity,
        )
        view.seed(seed)
        view_id = uuid.uuid4().hex

        with self._lock:
            self._views[view_id] = view
            while len(self._views) > self._max_views:
                dropped_id, _ = self._views.popitem(last=False)
                logger.info("[CHART] View limit reached, dropped view=%s", dropped_id)

        logger.debug("[CHART] View created id=%s points=%d", view_id, view.total)
        return view_id, view

    def get(self, view_id: str) -> SlidingWindowView:
        with self._lock:
            view = self._views.get(view_id)
        if view is None:
            raise ViewNotFoundError(view_id)
        return view

    def delete(self, view_id: str) -> None:
        with self._lock:
            if self._views.pop(view_id, None) is None:
                raise ViewNotFoundError(view_id)

    def on_append(self, reading: Reading) -> None:
        with self._lock:
            views: List[SlidingWindowView] = list(self._views.values())
        for view in views:
            view.on_append(reading)

    def __len__(self) -> int:
        with self._lock:
            return len(self._views)
