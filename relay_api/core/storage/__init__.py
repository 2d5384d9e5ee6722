"""Storage - historial acotado en memoria."""

from .history_store import BoundedHistoryStore, ReadingSink

__all__ = ["BoundedHistoryStore", "ReadingSink"]
