"""Core module - núcleo del relay de telemetría del horno.

Estructura:
- domain/      → Lectura, normalización de payload, fechas
- pipeline/    → Deduplicación y procesamiento serializado
- storage/     → Historial acotado en memoria
- chart/       → Ventanas deslizantes del gráfico
- broadcast/   → Fan-out a observadores push
- transport/   → Cliente y handler MQTT
- monitoring/  → Estadísticas y métricas
"""
