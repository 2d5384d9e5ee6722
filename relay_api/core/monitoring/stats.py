"""Estadísticas de procesamiento."""

from __future__ import annotations

import time
from dataclasses import dataclass, field


@dataclass
class Stats:
    """Estadísticas de procesamiento de mensajes."""

    received: int = 0
    accepted: int = 0
    duplicates: int = 0
    failed: int = 0
    last_message_at: float = 0
    started_at: float = field(default_factory=time.time)

    def __str__(self) -> str:
        return (
            f"Stats: received={self.received} accepted={self.accepted} "
            f"duplicates={self.duplicates} failed={self.failed}"
        )

    @property
    def uptime_seconds(self) -> float:
        return time.time() - self.started_at

    def to_dict(self) -> dict:
        """Convierte a diccionario."""
        return {
            "received": self.received,
            "accepted": self.accepted,
            "duplicates": self.duplicates,
            "failed": self.failed,
            "last_message_at": self.last_message_at,
            "uptime_seconds": round(self.uptime_seconds, 3),
        }
