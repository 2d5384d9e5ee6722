"""Excepciones de dominio del relay.

Los endpoints las traducen a ``HTTPException``; el pipeline de ingesta
nunca las deja escapar hacia el callback MQTT.
"""

from __future__ import annotations


class RelayError(Exception):
    """Base de errores del relay."""


class InvalidQueryError(RelayError, ValueError):
    """Parámetros de consulta ausentes o mal formados (HTTP 400)."""


class ObserverClosedError(RelayError):
    """Entrega a un observador ya cerrado o desbordado."""


class ViewNotFoundError(RelayError, KeyError):
    """Vista de gráfico inexistente o expirada (HTTP 404)."""
