"""Métricas Prometheus del relay."""

from __future__ import annotations

from prometheus_client import Counter, Gauge

READINGS_RECEIVED = Counter(
    "furnace_relay_readings_received_total",
    "Total MQTT messages received by the relay",
)
READINGS_PROCESSED = Counter(
    "furnace_relay_readings_processed_total",
    "Readings processed by the ingestion pipeline",
    ["status"],  # accepted, deduplicated, failed
)
HISTORY_SIZE = Gauge(
    "furnace_relay_history_size",
    "Readings currently held in the in-memory history",
)
PERSIST_OPERATIONS = Counter(
    "furnace_relay_persist_readings_total",
    "Readings handled by the persistence writer",
    ["status"],  # written, failed, dropped
)
OBSERVERS_CONNECTED = Gauge(
    "furnace_relay_observers_connected",
    "Live push observers (SSE and WebSocket)",
)
OBSERVERS_DROPPED = Counter(
    "furnace_relay_observers_dropped_total",
    "Observers removed after a failed delivery",
)
