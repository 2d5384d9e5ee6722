"""Conversión de fechas de consulta a rangos de timestamps (ms)."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone, tzinfo
from functools import lru_cache
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ...errors import InvalidQueryError

logger = logging.getLogger(__name__)


@lru_cache(maxsize=8)
def resolve_zone(name: str) -> tzinfo:
    """ZoneInfo por nombre; UTC si la zona no existe en el sistema."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("[DATES] Unknown time zone %r, falling back to UTC", name)
        return timezone.utc


def parse_day(value: Optional[str], name: str) -> date:
    if value is None or not value.strip():
        raise InvalidQueryError(f"{name} is required")
    raw = value.strip()
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        raise InvalidQueryError(f"{name} must be YYYY-MM-DD, got {raw!r}")


def day_bounds_ms(start_day: date, end_day: date, tz: tzinfo) -> Tuple[int, int]:
    """[inicio del día de start_day, fin del día de end_day] en ms, inclusivo.

    Un rango invertido no es error: simplemente no casa ninguna lectura.
    """
    start = datetime.combine(start_day, time.min, tzinfo=tz)
    end = datetime.combine(end_day, time.max, tzinfo=tz)
    return int(start.timestamp() * 1000), int(end.timestamp() * 1000)


def format_timestamp(timestamp_ms: int, tz: tzinfo) -> str:
    dt = datetime.fromtimestamp(timestamp_ms / 1000, tz=tz)
    return dt.strftime("%Y-%m-%d %H:%M:%S")
