from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url


logger = logging.getLogger(__name__)


def build_engine(database_url: str) -> Engine:
    url = make_url(database_url)

    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        # Crea ./data/ si usamos el fichero por defecto
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    # Log básico de parámetros de conexión (sin contraseña)
    logger.info(
        "[DB] Creating engine backend=%s host=%s db=%s",
        url.get_backend_name(),
        url.host,
        url.database,
    )

    engine = create_engine(url, pool_pre_ping=True, future=True)

    # Test de conexión: ayuda a ver en logs si el servicio realmente llega a la BD
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("[DB] Connection test OK")
    except Exception:
        logger.exception("[DB] Connection test FAILED")

    return engine
