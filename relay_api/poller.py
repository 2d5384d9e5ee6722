"""Cliente de polling HTTP (modo "tail" de la CLI).

Consulta /api/messages a intervalo fijo y entrega solo las lecturas
nuevas, de la más antigua a la más nueva. Si un poll sigue en vuelo
cuando llega el siguiente tick, ese tick se salta.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Set

import httpx

from .core.pipeline.deduplication import payload_hash

logger = logging.getLogger(__name__)

ReadingCallback = Callable[[Dict[str, Any]], None]


class MessagePoller:
    def __init__(
        self,
        client: httpx.AsyncClient,
        on_reading: ReadingCallback,
        *,
        interval_seconds: float = 5.0,
        batch_limit: int = 50,
    ) -> None:
        self._client = client
        self._on_reading = on_reading
        self._interval = interval_seconds
        self._limit = batch_limit
        self._in_flight = False
        self._last_ts: Optional[int] = None
        self._seen_at_last_ts: Set[str] = set()
        self._stop = asyncio.Event()

        # Stats
        self.polls = 0
        self.skipped = 0
        self.errors = 0
        self.emitted = 0

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def tick(self) -> int:
        """Un poll. Devuelve cuántas lecturas nuevas entregó (0 si se saltó)."""
        if self._in_flight:
            self.skipped += 1
            logger.debug("[POLL] Previous poll still in flight, skipping tick")
            return 0

        self._in_flight = True
        try:
            resp = await self._client.get("/api/messages", params={"limit": self._limit})
            resp.raise_for_status()
            rows = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            self.errors += 1
            logger.warning("[POLL] Poll failed: %s", e)
            return 0
        finally:
            self._in_flight = False

        self.polls += 1
        fresh = self._select_new(rows)
        for row in fresh:
            self._on_reading(row)
        self.emitted += len(fresh)
        return len(fresh)

    def _select_new(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        # /api/messages responde descendente; se entrega ascendente
        fresh: List[Dict[str, Any]] = []
        for row in reversed(rows):
            ts = int(row.get("timestamp", 0))
            key = payload_hash(row.get("payload", ""))
            if self._last_ts is not None:
                if ts < self._last_ts:
                    continue
                if ts == self._last_ts and key in self._seen_at_last_ts:
                    continue
            if self._last_ts is None or ts > self._last_ts:
                self._last_ts = ts
                self._seen_at_last_ts = set()
            self._seen_at_last_ts.add(key)
            fresh.append(row)
        return fresh

    async def run(self) -> None:
        """Dispara un tick por intervalo hasta ``stop()``."""
        logger.info("[POLL] Polling every %.1fs", self._interval)
        pending: Set[asyncio.Task] = set()
        while not self._stop.is_set():
            task = asyncio.create_task(self.tick())
            pending.add(task)
            task.add_done_callback(pending.discard)
            try:
                await asyncio.wait_for(self._stop.wait(), self._interval)
            except asyncio.TimeoutError:
                pass
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def stop(self) -> None:
        self._stop.set()
