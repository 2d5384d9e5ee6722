"""Normalización de payloads MQTT del horno de recocido.

El dispositivo publica a veces el payload plano y a veces anidado bajo
``data``. El desanidado se hace UNA sola vez aquí, en la frontera de
ingesta; aguas abajo nadie vuelve a mirar la forma del payload.

Claves reconocidas:
- ``{i}wd``  temperatura de zona i (1..4)
- ``{i}gl``  potencia de zona i en % (1..4)
- ``0wd``    temperatura de proceso
- ``{i}bh``  identificador de pieza de zona i (1..3)
"""

from __future__ import annotations

import logging
import math
from types import MappingProxyType
from typing import Any, Mapping, Optional

import orjson

from .reading import (
    POWER_ZONES,
    TEMPERATURE_ZONES,
    WORK_ITEM_ZONES,
    FurnaceSample,
    Payload,
)

logger = logging.getLogger(__name__)

TEMPERATURE_KEYS = tuple(f"{i}wd" for i in range(1, TEMPERATURE_ZONES + 1))
POWER_KEYS = tuple(f"{i}gl" for i in range(1, POWER_ZONES + 1))
PROCESS_TEMPERATURE_KEY = "0wd"
WORK_ITEM_KEYS = tuple(f"{i}bh" for i in range(1, WORK_ITEM_ZONES + 1))

KNOWN_KEYS = frozenset(
    TEMPERATURE_KEYS + POWER_KEYS + (PROCESS_TEMPERATURE_KEY,) + WORK_ITEM_KEYS
)


def decode_message(raw: bytes) -> Payload:
    """Convierte bytes MQTT en payload.

    JSON objeto → dict (desanidado de ``data``). Cualquier otra cosa
    (JSON inválido, número, lista...) se conserva como texto opaco: el
    mensaje nunca se descarta.
    """
    text = raw.decode("utf-8", errors="replace")
    try:
        parsed = orjson.loads(raw)
    except orjson.JSONDecodeError:
        logger.debug("[PAYLOAD] Not JSON, keeping opaque text len=%d", len(text))
        return text

    if not isinstance(parsed, dict):
        return text
    return unwrap_payload(parsed)


def unwrap_payload(payload: Mapping[str, Any]) -> Mapping[str, Any]:
    """Extrae ``data`` cuando el payload viene anidado un nivel."""
    nested = payload.get("data")
    if isinstance(nested, Mapping) and nested:
        return nested
    return payload


def _as_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    text = str(value).strip()
    return text or None


def normalize_payload(payload: Payload) -> FurnaceSample:
    """Devuelve el registro tipado para un payload ya desanidado."""
    if not isinstance(payload, Mapping):
        return FurnaceSample(raw_text=str(payload))

    return FurnaceSample(
        temperatures=tuple(_as_number(payload.get(k)) for k in TEMPERATURE_KEYS),
        powers=tuple(_as_number(payload.get(k)) for k in POWER_KEYS),
        process_temperature=_as_number(payload.get(PROCESS_TEMPERATURE_KEY)),
        work_items=tuple(_as_text(payload.get(k)) for k in WORK_ITEM_KEYS),
        extra=MappingProxyType({k: v for k, v in payload.items() if k not in KNOWN_KEYS}),
    )
