"""Repositorio SQL de lecturas (tabla ``messages``).

Esquema: messages(id, timestamp BIGINT ms, topic, payload JSON-texto).
Los payloads opacos se guardan como string JSON para distinguirlos de
los objetos al recargarlos.
"""

from __future__ import annotations

import logging
from typing import Iterable, List

import orjson
from sqlalchemy import BigInteger, Column, Index, Integer, MetaData, String, Table, Text, text
from sqlalchemy.engine import Engine

from ..core.domain.reading import Reading

logger = logging.getLogger(__name__)

metadata = MetaData()

messages_table = Table(
    "messages",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("timestamp", BigInteger, nullable=False),
    Column("topic", String(255), nullable=False),
    Column("payload", Text, nullable=False),
    Index("ix_messages_timestamp", "timestamp"),
)


class MessageRepository:
    """Acceso a la tabla ``messages`` vía SQLAlchemy."""

    def __init__(self, engine: Engine):
        self._engine = engine

    def ensure_schema(self) -> None:
        metadata.create_all(self._engine, checkfirst=True)
        logger.info("[DB] Schema ready (messages)")

    def insert_many(self, readings: Iterable[Reading]) -> int:
        """Inserta lecturas en batch usando executemany."""
        values = [
            {
                "timestamp": r.timestamp,
                "topic": r.topic,
                "payload": orjson.dumps(r.payload_dict()).decode("utf-8"),
            }
            for r in readings
        ]
        if not values:
            return 0

        with self._engine.begin() as conn:
            conn.execute(
                text("""
                    INSERT INTO messages (timestamp, topic, payload)
                    VALUES (:timestamp, :topic, :payload)
                """),
                values,
            )
        return len(values)

    def fetch_latest(self, limit: int) -> List[Reading]:
        """Últimas ``limit`` lecturas, devueltas de la más antigua a la más nueva."""
        with self._engine.connect() as conn:
            rows = conn.execute(
                text("""
                    SELECT timestamp, topic, payload
                    FROM messages
                    ORDER BY timestamp DESC, id DESC
                    LIMIT :limit
                """),
                {"limit": int(limit)},
            ).fetchall()

        readings: List[Reading] = []
        for row in reversed(rows):
            try:
                payload = orjson.loads(row.payload)
            except orjson.JSONDecodeError:
                payload = row.payload
            if not isinstance(payload, (dict, str)):
                payload = row.payload
            readings.append(Reading.create(int(row.timestamp), row.topic, payload))
        return readings

    def count(self) -> int:
        with self._engine.connect() as conn:
            return int(conn.execute(text("SELECT COUNT(*) FROM messages")).scalar_one())
