"""Supresión de duplicados consecutivos.

El dispositivo republica el mismo paquete varias veces seguidas cuando
nada cambia en el horno. Solo se compara contra la ÚLTIMA lectura
aceptada (memoria O(1)): la secuencia A, B, A acepta las tres lecturas.
Es una limitación conocida, no un bug; no se trata de un set de
deduplicación completo.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from typing import Any, Mapping, Optional

import orjson

from ..domain.reading import Payload

logger = logging.getLogger(__name__)


def payload_hash(payload: Payload) -> str:
    """MD5 estable del payload con claves ordenadas.

    FORMATO: MD5(json con OPT_SORT_KEYS). El orden de claves de origen no
    afecta al hash; el texto opaco se hashea tal cual.
    """
    if isinstance(payload, Mapping):
        data = orjson.dumps(dict(payload), option=orjson.OPT_SORT_KEYS, default=_fallback)
    else:
        data = str(payload).encode("utf-8")
    return hashlib.md5(data).hexdigest()


def _fallback(value: Any) -> Any:
    if isinstance(value, Mapping):
        return dict(value)
    return str(value)


class ConsecutiveDeduplicator:
    """Deduplicador de lecturas consecutivas por hash de contenido.

    Attributes:
        last_hash: hash de la última lectura aceptada (None al inicio)
        duplicate_run_length: duplicados rechazados desde la última aceptada
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last_hash: Optional[str] = None
        self._duplicate_run_length = 0

        # Stats
        self._accepted_total = 0
        self._rejected_total = 0

    def should_accept(self, payload: Payload) -> bool:
        """True si la lectura es nueva; False si repite la anterior."""
        current = payload_hash(payload)

        with self._lock:
            if current == self._last_hash:
                self._duplicate_run_length += 1
                self._rejected_total += 1
                logger.debug(
                    "[DEDUP] Duplicate skipped (consecutive=%d)",
                    self._duplicate_run_length,
                )
                return False

            if self._duplicate_run_length > 0:
                logger.info(
                    "[DEDUP] Payload changed, %d consecutive duplicates filtered",
                    self._duplicate_run_length,
                )
            self._last_hash = current
            self._duplicate_run_length = 0
            self._accepted_total += 1
            return True

    @property
    def last_hash(self) -> Optional[str]:
        return self._last_hash

    @property
    def duplicate_run_length(self) -> int:
        return self._duplicate_run_length

    @property
    def stats(self) -> dict:
        with self._lock:
            return {
                "accepted_total": self._accepted_total,
                "rejected_total": self._rejected_total,
                "duplicate_run_length": self._duplicate_run_length,
            }

    def reset(self) -> None:
        """Olvida la última lectura (la siguiente siempre se acepta)."""
        with self._lock:
            self._last_hash = None
            self._duplicate_run_length = 0
