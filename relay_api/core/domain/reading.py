"""Modelo de dominio para lecturas del horno."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple, Union

TEMPERATURE_ZONES = 4
POWER_ZONES = 4
WORK_ITEM_ZONES = 3

Payload = Union[Mapping[str, Any], str]


@dataclass(frozen=True)
class FurnaceSample:
    """Vista tipada de un payload normalizado.

    Los campos ausentes o no numéricos quedan en ``None``; nunca se
    sustituyen por cero (un 0 falso en un gráfico de temperatura se lee
    como "horno apagado").
    """

    temperatures: Tuple[Optional[float], ...] = (None,) * TEMPERATURE_ZONES
    powers: Tuple[Optional[float], ...] = (None,) * POWER_ZONES
    process_temperature: Optional[float] = None
    work_items: Tuple[Optional[str], ...] = (None,) * WORK_ITEM_ZONES
    extra: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    raw_text: Optional[str] = None

    @property
    def is_opaque(self) -> bool:
        return self.raw_text is not None

    def average_temperature(self) -> Optional[float]:
        values = [t for t in self.temperatures if t is not None]
        if not values:
            return None
        return sum(values) / len(values)


@dataclass(frozen=True)
class Reading:
    """Lectura de telemetría - unidad atómica del pipeline.

    MQTT → Deduplicación → Historial → Fan-out / Ventanas de gráfico.
    Una vez creada es inmutable: el payload se congela en un
    ``MappingProxyType``.
    """

    timestamp: int  # epoch en milisegundos
    topic: str
    payload: Payload
    sample: FurnaceSample = field(default_factory=FurnaceSample, compare=False)

    @classmethod
    def create(cls, timestamp: int, topic: str, payload: Payload) -> "Reading":
        # Import local para evitar ciclo domain.reading <-> domain.payload
        from .payload import normalize_payload

        if isinstance(payload, Mapping):
            frozen: Payload = MappingProxyType(dict(payload))
        else:
            frozen = str(payload)
        return cls(
            timestamp=int(timestamp),
            topic=str(topic),
            payload=frozen,
            sample=normalize_payload(frozen),
        )

    def payload_dict(self) -> Union[Dict[str, Any], str]:
        if isinstance(self.payload, Mapping):
            return dict(self.payload)
        return self.payload

    def to_dict(self) -> dict:
        """Formato de salida compartido por HTTP, SSE y WebSocket."""
        return {
            "timestamp": self.timestamp,
            "topic": self.topic,
            "payload": self.payload_dict(),
        }
