"""Fan-out de lecturas a observadores push (SSE / WebSocket).

"Best-effort fan-out con membresía auto-reparable":

- Cada observador recibe, en orden de publicación y como mucho una vez,
  toda lectura publicada después de suscribirse. Sin replay: un cliente
  que reconecta rellena el hueco con una consulta de historial.
- ``publish`` nunca bloquea: cada observador tiene una cola acotada. Una
  cola llena, un observador cerrado o cualquier excepción de entrega
  elimina a ESE observador y no afecta al resto.
- Las publicaciones concurrentes se serializan.

El productor es el hilo de red de paho; los consumidores viven en el
event loop de asyncio. ``QueueObserver`` hace de puente entre ambos.
"""

from __future__ import annotations

import asyncio
import logging
import queue
import threading
import uuid
from typing import Dict, List, Optional, Protocol

from ..domain.reading import Reading
from ..monitoring.metrics import OBSERVERS_CONNECTED, OBSERVERS_DROPPED
from ...errors import ObserverClosedError

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 256


class Observer(Protocol):
    """Destino de entrega. ``deliver`` debe ser no bloqueante y lanzar si falla."""

    observer_id: str

    def deliver(self, reading: Reading) -> None:
        ...

    def close(self) -> None:
        ...


class QueueObserver:
    """Observador con cola acotada consumible desde asyncio o síncronamente."""

    def __init__(
        self,
        maxsize: int = DEFAULT_QUEUE_SIZE,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        observer_id: Optional[str] = None,
    ) -> None:
        self.observer_id = observer_id or uuid.uuid4().hex[:12]
        self._queue: "queue.Queue[Reading]" = queue.Queue(maxsize=maxsize)
        self._loop = loop
        self._event = asyncio.Event()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def deliver(self, reading: Reading) -> None:
        if self._closed:
            raise ObserverClosedError(f"observer {self.observer_id} is closed")
        try:
            self._queue.put_nowait(reading)
        except queue.Full:
            raise ObserverClosedError(f"observer {self.observer_id} queue full")
        self._notify()

    def _notify(self) -> None:
        if self._loop is not None:
            # RuntimeError si el loop ya está cerrado: se trata como desconexión
            self._loop.call_soon_threadsafe(self._event.set)
        else:
            self._event.set()

    def get_nowait(self) -> Optional[Reading]:
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    async def get(self, timeout: Optional[float] = None) -> Optional[Reading]:
        """Siguiente lectura; None si vence el timeout.

        Raises:
            ObserverClosedError: si el observador se cerró y no quedan lecturas.
        """
        while True:
            reading = self.get_nowait()
            if reading is not None:
                return reading
            if self._closed:
                raise ObserverClosedError(f"observer {self.observer_id} is closed")

            self._event.clear()
            # Re-chequeo tras clear: una entrega entre ambos pasos ya hizo set()
            reading = self.get_nowait()
            if reading is not None:
                return reading
            if self._closed:
                raise ObserverClosedError(f"observer {self.observer_id} is closed")

            try:
                await asyncio.wait_for(self._event.wait(), timeout)
            except asyncio.TimeoutError:
                return None

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._notify()
        except RuntimeError:
            pass


class BroadcastFanout:
    """Conjunto de observadores con entrega best-effort."""

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self._queue_size = queue_size
        self._observers: Dict[str, Observer] = {}
        self._lock = threading.Lock()
        self._publish_lock = threading.Lock()

        # Stats
        self._published = 0
        self._dropped = 0

    def subscribe(
        self,
        observer: Optional[Observer] = None,
        *,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> Observer:
        """Registra un observador (por defecto un ``QueueObserver`` nuevo)."""
        if observer is None:
            if loop is None:
                try:
                    loop = asyncio.get_running_loop()
                except RuntimeError:
                    loop = None
            observer = QueueObserver(maxsize=self._queue_size, loop=loop)

        with self._lock:
            self._observers[observer.observer_id] = observer
            count = len(self._observers)
        OBSERVERS_CONNECTED.set(count)
        logger.info("[FANOUT] Observer subscribed id=%s total=%d", observer.observer_id, count)
        return observer

    def unsubscribe(self, observer: Observer) -> bool:
        removed = self._remove(observer)
        if removed:
            logger.info(
                "[FANOUT] Observer unsubscribed id=%s total=%d",
                observer.observer_id,
                self.observer_count,
            )
        return removed

    def _remove(self, observer: Observer) -> bool:
        with self._lock:
            removed = self._observers.pop(observer.observer_id, None) is not None
            count = len(self._observers)
        OBSERVERS_CONNECTED.set(count)
        try:
            observer.close()
        except Exception as e:
            logger.debug("[FANOUT] Error closing observer id=%s: %s", observer.observer_id, e)
        return removed

    def publish(self, reading: Reading) -> int:
        """Entrega la lectura a todos. Devuelve cuántos la recibieron."""
        with self._publish_lock:
            with self._lock:
                targets: List[Observer] = list(self._observers.values())

            delivered = 0
            failed: List[Observer] = []
            for observer in targets:
                try:
                    observer.deliver(reading)
                    delivered += 1
                except Exception as e:
                    logger.warning(
                        "[FANOUT] Delivery failed, dropping observer id=%s: %s",
                        observer.observer_id,
                        e,
                    )
                    failed.append(observer)

            for observer in failed:
                if self._remove(observer):
                    self._dropped += 1
                    OBSERVERS_DROPPED.inc()

            self._published += 1
            return delivered

    def close_all(self) -> None:
        """Cierra todas las conexiones (apagado)."""
        with self._lock:
            observers = list(self._observers.values())
        for observer in observers:
            self._remove(observer)
        logger.info("[FANOUT] Closed %d observers", len(observers))

    @property
    def observer_count(self) -> int:
        with self._lock:
            return len(self._observers)

    @property
    def stats(self) -> dict:
        return {
            "observers": self.observer_count,
            "published": self._published,
            "dropped": self._dropped,
        }
