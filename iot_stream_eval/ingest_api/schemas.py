from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from ..evaluation.measurement import MeasurementState
from ..evaluation.session import SessionState
from ..evaluation.thresholds import TemperatureBand


class DashboardOut(BaseModel):
    current_temp: float
    status: str
    band: TemperatureBand
    min_temp: float
    max_temp: float
    chart_labels: List[str] = Field(default_factory=list)
    chart_values: List[float] = Field(default_factory=list)


class HistoryEntryOut(BaseModel):
    index: int
    temperature: float
    alarm_status: str
    band: TemperatureBand
    message_id: Optional[int] = None
    timestamp: Optional[int] = None
    read_interval: Optional[float] = None


class HistoryOut(BaseModel):
    entries: List[HistoryEntryOut] = Field(default_factory=list)


class LatencyOut(BaseModel):
    series_ms: List[int] = Field(default_factory=list)
    average_ms: int
    expected_ms: List[float] = Field(default_factory=list)


class MeasurementOut(BaseModel):
    state: MeasurementState
    remaining_seconds: int
    running_count: int
    result: Optional[int] = None
    started_at: Optional[int] = None
    deadline: Optional[int] = None
    duration_ms: int


class EvaluationOut(BaseModel):
    connected: bool
    session_state: SessionState
    current_interval: float
    session_count: int
    session_start: int
    throughput_series: List[int] = Field(default_factory=list)
    projected_rate_per_min: float
    latency: LatencyOut
    measurement: MeasurementOut


class IntervalIn(BaseModel):
    read_interval: float = Field(..., gt=0, allow_inf_nan=False)


class IntervalResult(BaseModel):
    read_interval: float
    updated_at: int
    projected_rate_per_min: float
