"""Ventana de medición one-shot acotada por reloj de pared.

INACTIVE → RUNNING → COMPLETED → (start) RUNNING

La duración real es exacta: el cierre se decide comparando `now` contra un
deadline absoluto, no contando ticks, así que la granularidad del check o
los ticks perdidos no acumulan deriva.
"""

from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Callable, Optional

from ..errors import MeasurementAlreadyRunning
from .session import now_ms

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MS = 60_000


class MeasurementState(str, Enum):
    INACTIVE = "inactive"
    RUNNING = "running"
    COMPLETED = "completed"


class MeasurementWindow:
    """Cuenta msg_id distintos observados en [start, deadline)."""

    def __init__(
        self,
        duration_ms: int = DEFAULT_DURATION_MS,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        if duration_ms <= 0:
            raise ValueError(f"duration_ms must be > 0, got: {duration_ms}")
        self._duration_ms = int(duration_ms)
        self._clock = clock

        self._state = MeasurementState.INACTIVE
        self._started_at: Optional[int] = None
        self._deadline: Optional[int] = None
        self._running_count = 0
        self._last_seen_msg_id: Optional[int] = None
        self._result: Optional[int] = None

    def start(self, head_msg_id: Optional[int] = None) -> int:
        """Arma la ventana y devuelve el deadline (epoch ms).

        `head_msg_id` es el paquete que ya está en la cabeza del buffer: se
        marca como visto para no contarlo en T=0.

        Una ventana con el deadline vencido se cierra antes de re-armar,
        aunque el ticker todavía no la haya chequeado.

        Raises:
            MeasurementAlreadyRunning: si hay una ventana en curso. No
                modifica ningún estado.
        """
        self.check()
        if self._state == MeasurementState.RUNNING:
            raise MeasurementAlreadyRunning(self.remaining_seconds())

        now = self._clock()
        self._started_at = now
        self._deadline = now + self._duration_ms
        self._running_count = 0
        self._result = None
        self._last_seen_msg_id = head_msg_id
        self._state = MeasurementState.RUNNING

        logger.info("[EVAL] Measurement window started (%d ms)", self._duration_ms)
        return self._deadline

    def observe(self, msg_id: int) -> bool:
        """Cuenta `msg_id` si es nuevo y la ventana sigue abierta."""
        if self._state != MeasurementState.RUNNING:
            return False
        if self._clock() >= self._deadline:
            return False
        if msg_id == self._last_seen_msg_id:
            return False

        self._running_count += 1
        self._last_seen_msg_id = msg_id
        return True

    def check(self) -> Optional[int]:
        """Cierra la ventana si se alcanzó el deadline.

        Solo el PRIMER check con `now >= deadline` devuelve el resultado;
        cualquier otro devuelve None.
        """
        if self._state != MeasurementState.RUNNING:
            return None
        if self._clock() < self._deadline:
            return None

        self._result = self._running_count
        self._state = MeasurementState.COMPLETED
        logger.info("[EVAL] Measurement window completed: %d messages", self._result)
        return self._result

    def remaining_seconds(self) -> int:
        if self._state != MeasurementState.RUNNING:
            return 0
        remaining_ms = self._deadline - self._clock()
        return max(0, math.ceil(remaining_ms / 1000))

    @property
    def state(self) -> MeasurementState:
        return self._state

    @property
    def duration_ms(self) -> int:
        return self._duration_ms

    @property
    def started_at(self) -> Optional[int]:
        return self._started_at

    @property
    def deadline(self) -> Optional[int]:
        return self._deadline

    @property
    def running_count(self) -> int:
        return self._running_count

    @property
    def result(self) -> Optional[int]:
        return self._result
