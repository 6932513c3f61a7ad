"""Validadores de payloads MQTT del stream de temperatura.

Convierte los bytes recibidos en el topic a un `Packet` inmutable.
Un payload inválido NUNCA lanza excepción hacia el receptor: se devuelve
un `ValidationResult` con el error para que el caller lo loguee y lo descarte.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Optional

import orjson
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator


class Packet(BaseModel):
    """Muestra de telemetría publicada por el dispositivo.

    Formato esperado:
    {
        "temperature": 23.5,
        "msg_id": 812,
        "timestamp": 1706688000123,
        "interval": 2
    }

    `timestamp` viene del reloj del dispositivo (epoch ms), no del receptor.
    `interval` es el periodo de lectura (segundos) que el dispositivo declara
    estar aplicando; puede faltar en firmwares antiguos.
    """

    model_config = ConfigDict(frozen=True)

    temperature: float
    msg_id: int
    timestamp: int
    interval: Optional[float] = None

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, v):
        if math.isnan(v):
            raise ValueError("temperature is NaN")
        if math.isinf(v):
            raise ValueError("temperature is infinite")
        return v

    @field_validator("interval")
    @classmethod
    def validate_interval(cls, v):
        if v is None:
            return v
        if not math.isfinite(v) or v < 0:
            raise ValueError("interval must be a finite, non-negative number")
        return v


@dataclass
class ValidationResult:
    """Resultado de validación."""

    valid: bool
    packet: Optional[Packet] = None
    error: Optional[str] = None
    warnings: list[str] = field(default_factory=list)


def validate_packet(data: Any) -> ValidationResult:
    """Valida un payload ya parseado (dict) contra el contrato de `Packet`."""
    if not isinstance(data, dict):
        return ValidationResult(
            valid=False,
            error=f"payload must be a JSON object, got: {type(data).__name__}",
        )

    warnings = []
    if "msg_id" not in data and "msgId" in data:
        data = dict(data)
        data["msg_id"] = data.pop("msgId")
        warnings.append("Used camelCase msgId instead of msg_id")

    try:
        packet = Packet(**data)
    except ValidationError as e:
        return ValidationResult(valid=False, error=str(e))

    return ValidationResult(valid=True, packet=packet, warnings=warnings)


def decode_packet(payload: bytes) -> ValidationResult:
    """Parsea bytes JSON (orjson) y valida el resultado."""
    try:
        data = orjson.loads(payload)
    except orjson.JSONDecodeError as e:
        return ValidationResult(valid=False, error=f"Invalid JSON: {e}")

    return validate_packet(data)
