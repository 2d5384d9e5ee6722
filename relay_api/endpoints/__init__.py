"""Módulo de endpoints HTTP.

Contiene todos los endpoints del relay organizados por función.
"""

from .health import router as health_router
from .messages import router as messages_router
from .stats import router as stats_router
from .export import router as export_router
from .publish import router as publish_router
from .stream import router as stream_router
from .chart import router as chart_router

__all__ = [
    "health_router",
    "messages_router",
    "stats_router",
    "export_router",
    "publish_router",
    "stream_router",
    "chart_router",
]
