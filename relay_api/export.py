"""Exportación CSV de lecturas.

Una fila por lectura, 14 columnas fijas. Un valor ausente es celda
vacía; un 0 real se escribe como 0.
"""

from __future__ import annotations

import csv
import io
from datetime import tzinfo
from typing import Iterable, List, Optional

from .core.domain.dates import format_timestamp
from .core.domain.reading import Reading

CSV_COLUMNS = (
    "timestamp",
    "time",
    "zone1_temp",
    "zone2_temp",
    "zone3_temp",
    "zone4_temp",
    "zone1_power",
    "zone2_power",
    "zone3_power",
    "zone4_power",
    "process_temp",
    "work_item1",
    "work_item2",
    "work_item3",
)

CSV_FILENAME = "furnace-data.csv"


def _cell(value: Optional[object]) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def reading_row(reading: Reading, tz: tzinfo) -> List[str]:
    sample = reading.sample
    return [
        str(reading.timestamp),
        format_timestamp(reading.timestamp, tz),
        *(_cell(t) for t in sample.temperatures),
        *(_cell(p) for p in sample.powers),
        _cell(sample.process_temperature),
        *(_cell(w) for w in sample.work_items),
    ]


def readings_to_csv(readings: Iterable[Reading], tz: tzinfo) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for reading in readings:
        writer.writerow(reading_row(reading, tz))
    return buf.getvalue()
