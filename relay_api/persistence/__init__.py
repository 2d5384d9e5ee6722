"""Persistence - almacenamiento duradero de lecturas (SQLAlchemy)."""

from .repository import MessageRepository, messages_table, metadata
from .writer import PersistenceWriter

__all__ = ["MessageRepository", "PersistenceWriter", "messages_table", "metadata"]
