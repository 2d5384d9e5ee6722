from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class ReadingOut(BaseModel):
    timestamp: int
    topic: str
    payload: Union[Dict[str, Any], str]


class RealtimeOut(BaseModel):
    success: bool = True
    data: Optional[ReadingOut] = None
    timestamp: int


class StatsBody(BaseModel):
    totalRecords: int
    lastUpdate: Optional[int] = None
    avgTemperature: Optional[int] = None
    systemStatus: str
    uptime: float
    duplicatesSuppressed: int
    observers: int
    mqttConnected: bool


class StatsOut(BaseModel):
    success: bool = True
    stats: StatsBody


class PublishIn(BaseModel):
    # Solo se valida la presencia del payload; su contenido es libre
    topic: Optional[str] = None
    payload: Union[Dict[str, Any], str]


class PublishResult(BaseModel):
    success: bool
    topic: str


class PanIn(BaseModel):
    start_index: int = Field(..., ge=0)


class ChartViewOut(BaseModel):
    view_id: str
    state: str
    labels: List[str]
    timestamps: List[int]
    series: List[List[Optional[float]]]
    start_index: int
    end_index: int
    total: int
    pan_enabled: bool
