"""Relay de telemetría del horno de recocido (MQTT → historial → dashboards)."""

__version__ = "0.1.0"
