from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from dotenv import load_dotenv


DEFAULT_SUB_TOPICS = (
    "/dxiot/4q/get/danzhan/tuihuolu",
    "/dxiot/4q/pub/danzhan/tuihuolu",
)
DEFAULT_PUB_TOPIC = "/dxiot/4q/pub/danzhan/tuihuolu"


def _default_env_file() -> str:
    repo_root = Path(__file__).resolve().parents[1]
    return str(repo_root / ".env")


def _default_database_url() -> str:
    repo_root = Path(__file__).resolve().parents[1]
    return f"sqlite:///{repo_root / 'data' / 'furnace_relay.sqlite3'}"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int, *, minimum: int = 1) -> int:
    raw = os.getenv(name, str(default))
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, str(default))
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be > 0, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    database_url: str

    mqtt_enabled: bool
    mqtt_host: str
    mqtt_port: int
    mqtt_username: str | None
    mqtt_password: str | None
    mqtt_client_prefix: str
    sub_topics: Tuple[str, ...]
    pub_topic: str

    # Capacidades del núcleo: buffer crudo, buffer del gráfico y ventana visible.
    history_capacity: int = 10000
    chart_buffer_capacity: int = 1000
    chart_window_size: int = 8
    chart_seed_size: int = 100
    chart_max_views: int = 64
    table_row_limit: int = 500
    observer_queue_size: int = 256

    persist_enabled: bool = True
    persist_queue_size: int = 10000
    persist_batch_size: int = 100

    time_zone: str = "Asia/Shanghai"
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    sse_keepalive_seconds: float = 15.0
    poll_interval_seconds: float = 5.0


def get_settings() -> Settings:
    # Carga .env (si existe) sin pisar variables reales del entorno.
    env_file = os.getenv("RELAY_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    topics_raw = os.getenv("MQTT_SUB_TOPICS", "")
    sub_topics = tuple(t.strip() for t in topics_raw.split(",") if t.strip()) or DEFAULT_SUB_TOPICS

    return Settings(
        database_url=os.getenv("DATABASE_URL", "") or _default_database_url(),
        mqtt_enabled=_env_bool("FF_MQTT_INGEST_ENABLED", "true"),
        mqtt_host=os.getenv("MQTT_BROKER_HOST", "localhost"),
        mqtt_port=_env_int("MQTT_BROKER_PORT", 1883),
        mqtt_username=os.getenv("MQTT_USERNAME") or None,
        mqtt_password=os.getenv("MQTT_PASSWORD") or None,
        mqtt_client_prefix=os.getenv("MQTT_CLIENT_PREFIX", "furnace-relay"),
        sub_topics=sub_topics,
        pub_topic=os.getenv("MQTT_PUB_TOPIC", DEFAULT_PUB_TOPIC),
        history_capacity=_env_int("HISTORY_CAPACITY", 10000),
        chart_buffer_capacity=_env_int("CHART_BUFFER_CAPACITY", 1000),
        chart_window_size=_env_int("CHART_WINDOW_SIZE", 8),
        chart_seed_size=_env_int("CHART_SEED_SIZE", 100, minimum=0),
        chart_max_views=_env_int("CHART_MAX_VIEWS", 64),
        table_row_limit=_env_int("TABLE_ROW_LIMIT", 500),
        observer_queue_size=_env_int("OBSERVER_QUEUE_SIZE", 256),
        persist_enabled=_env_bool("PERSIST_ENABLED", "true"),
        persist_queue_size=_env_int("PERSIST_QUEUE_SIZE", 10000),
        persist_batch_size=_env_int("PERSIST_BATCH_SIZE", 100),
        time_zone=os.getenv("RELAY_TIME_ZONE", "Asia/Shanghai"),
        host=os.getenv("RELAY_HOST", "0.0.0.0"),
        port=_env_int("RELAY_PORT", 3000),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        sse_keepalive_seconds=_env_float("SSE_KEEPALIVE_SECONDS", 15.0),
        poll_interval_seconds=_env_float("POLL_INTERVAL_SECONDS", 5.0),
    )
