from __future__ import annotations

from enum import Enum
from typing import Optional


class TemperatureBand(str, Enum):
    """Clasificación de una temperatura contra los umbrales min/max."""
    HOT = "hot"
    COLD = "cold"
    IDEAL = "ideal"
    UNKNOWN = "unknown"


def evaluate_temperature(
    temperature: Optional[float],
    min_temp: float,
    max_temp: float,
) -> TemperatureBand:
    if temperature is None:
        return TemperatureBand.UNKNOWN
    if temperature > max_temp:
        return TemperatureBand.HOT
    if temperature < min_temp:
        return TemperatureBand.COLD
    return TemperatureBand.IDEAL
