"""Documento de configuración del dispositivo (`settings`).

Campos: min_temp, max_temp, read_interval, updated_at (epoch ms).
Las escrituras son merges parciales sobre un HASH de Redis. El dispositivo
lee este documento y aplica los cambios en su próximo ciclo; el
controlador de evaluación NUNCA lo lee para decidir resets de sesión,
solo observa el `interval` que declaran los paquetes.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Optional

import redis
from pydantic import BaseModel, ConfigDict, field_validator

from ..errors import SettingsWriteError

logger = logging.getLogger(__name__)

DEFAULT_MIN_TEMP = 21.0
DEFAULT_MAX_TEMP = 27.0
DEFAULT_READ_INTERVAL = 1.0


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class DeviceSettings:
    min_temp: float = DEFAULT_MIN_TEMP
    max_temp: float = DEFAULT_MAX_TEMP
    read_interval: float = DEFAULT_READ_INTERVAL
    updated_at: Optional[int] = None


class SettingsUpdate(BaseModel):
    """Merge parcial validado antes de escribir."""

    model_config = ConfigDict(extra="forbid")

    min_temp: Optional[float] = None
    max_temp: Optional[float] = None
    read_interval: Optional[float] = None

    @field_validator("min_temp", "max_temp", "read_interval")
    @classmethod
    def validate_finite(cls, v):
        if v is not None and not math.isfinite(v):
            raise ValueError("value must be a finite number")
        return v

    @field_validator("read_interval")
    @classmethod
    def validate_read_interval(cls, v):
        if v is not None and v <= 0:
            raise ValueError("read_interval must be > 0")
        return v


def _parse_float(raw, default: float) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default
    return value if math.isfinite(value) else default


class SettingsStore:
    """Lectura/escritura del documento `settings` en Redis."""

    def __init__(
        self,
        client: redis.Redis,
        key: str = "settings",
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._client = client
        self._key = key
        self._clock = clock
        self._last = DeviceSettings()

    @property
    def key(self) -> str:
        return self._key

    def get(self) -> DeviceSettings:
        """Lee el documento. Si Redis no responde devuelve el último conocido."""
        try:
            data = self._client.hgetall(self._key)
        except redis.RedisError as e:
            logger.warning("[SETTINGS] Read failed, using last known values: %s", e)
            return self._last

        if not data:
            return self._last

        updated_at = data.get("updated_at")
        settings = DeviceSettings(
            min_temp=_parse_float(data.get("min_temp"), DEFAULT_MIN_TEMP),
            max_temp=_parse_float(data.get("max_temp"), DEFAULT_MAX_TEMP),
            # read_interval ausente o 0 → 1s
            read_interval=_parse_float(data.get("read_interval"), 0.0) or DEFAULT_READ_INTERVAL,
            updated_at=int(float(updated_at)) if updated_at else None,
        )
        self._last = settings
        return settings

    def update(self, **fields) -> int:
        """Merge parcial de campos; estampa `updated_at`.

        Raises:
            pydantic.ValidationError: si algún valor es inválido.
            SettingsWriteError: si la escritura en Redis falla. No se reintenta.

        Returns:
            El `updated_at` escrito (epoch ms).
        """
        update = SettingsUpdate(**fields)
        mapping = {k: v for k, v in update.model_dump().items() if v is not None}
        updated_at = self._clock()
        mapping["updated_at"] = updated_at

        try:
            self._client.hset(self._key, mapping=mapping)
        except redis.RedisError as e:
            logger.error("[SETTINGS] Write failed for %s: %s", sorted(mapping), e)
            raise SettingsWriteError(self._key, sorted(mapping), e) from e

        logger.info("[SETTINGS] Updated %s", mapping)
        return updated_at
