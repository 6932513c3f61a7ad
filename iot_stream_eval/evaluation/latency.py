"""Latencia entre llegadas (jitter) derivada del buffer.

Funciones puras: se recalculan a demanda desde el snapshot actual, sin
estado memoizado.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from statistics import mean
from typing import List, Sequence, Tuple

from ..ingest_api.mqtt.validators import Packet


@dataclass(frozen=True)
class LatencyReport:
    series_ms: Tuple[int, ...]  # más viejo primero
    average_ms: int
    expected_ms: Tuple[float, ...]


def inter_arrival_latencies(packets: Sequence[Packet]) -> List[int]:
    """Diferencias entre paquetes consecutivos.

    `packets` viene del buffer (más nuevo primero); el resultado se entrega
    en orden cronológico (intervalo más viejo primero).
    """
    if len(packets) < 2:
        return []
    diffs = [
        packets[i].timestamp - packets[i + 1].timestamp
        for i in range(len(packets) - 1)
    ]
    diffs.reverse()
    return diffs


def average_latency(latencies: Sequence[int]) -> int:
    """Media redondeada al ms más cercano (.5 hacia arriba); 0 si no hay datos."""
    if not latencies:
        return 0
    return math.floor(mean(latencies) + 0.5)


def expected_interval_line(latencies: Sequence[int], current_interval: float) -> List[float]:
    return [current_interval * 1000 for _ in latencies]


def projected_rate(interval: float) -> float:
    """Mensajes por minuto esperados para un intervalo (s)."""
    return 60 / (interval or 1)


def latency_report(packets: Sequence[Packet], current_interval: float) -> LatencyReport:
    series = inter_arrival_latencies(packets)
    return LatencyReport(
        series_ms=tuple(series),
        average_ms=average_latency(series),
        expected_ms=tuple(expected_interval_line(series, current_interval)),
    )
