"""Tracking de sesión (escenario) sobre el stream de paquetes.

Una sesión es válida mientras el intervalo declarado por el dispositivo no
cambie. La única forma de saber que el dispositivo aplicó un intervalo
nuevo es verlo en el stream, así que se compara SOLO contra la cabeza del
buffer (último paquete llegado); los paquetes intermedios no se revisan.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Optional

from ..ingest_api.mqtt.validators import Packet

logger = logging.getLogger(__name__)

DEFAULT_READ_INTERVAL = 2.0


def now_ms() -> int:
    return int(time.time() * 1000)


class SessionState(str, Enum):
    IDLE = "idle"
    TRACKING = "tracking"


class SessionUpdate(str, Enum):
    """Efecto de observar un paquete."""
    RESET = "reset"
    COUNTED = "counted"
    DUPLICATE = "duplicate"


@dataclass
class Session:
    current_interval: float
    session_count: int = 0
    session_start: int = 0
    last_seen_msg_id: Optional[int] = None


class SessionTracker:
    """Cuenta mensajes por sesión y detecta cambios de intervalo.

    - Intervalo distinto al actual → sesión nueva (count=1, start=now).
    - Mismo intervalo y msg_id nuevo → count += 1.
    - msg_id repetido (duplicado o retained) → no-op.
    """

    def __init__(
        self,
        default_interval: float = DEFAULT_READ_INTERVAL,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._default_interval = float(default_interval)
        self._clock = clock
        self._state = SessionState.IDLE
        self._session = Session(
            current_interval=self._default_interval,
            session_start=clock(),
        )

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def default_interval(self) -> float:
        return self._default_interval

    def observe(self, packet: Packet) -> SessionUpdate:
        declared = packet.interval or self._default_interval
        session = self._session
        self._state = SessionState.TRACKING

        if declared != session.current_interval:
            logger.info(
                "[EVAL] New scenario detected: interval %.3gs -> %.3gs, resetting session",
                session.current_interval,
                declared,
            )
            self._session = Session(
                current_interval=declared,
                session_count=1,
                session_start=self._clock(),
                last_seen_msg_id=packet.msg_id,
            )
            return SessionUpdate.RESET

        if packet.msg_id == session.last_seen_msg_id:
            return SessionUpdate.DUPLICATE

        session.session_count += 1
        session.last_seen_msg_id = packet.msg_id
        return SessionUpdate.COUNTED

    def reset_counters(self) -> None:
        """Vuelve el contador a 0 conservando el intervalo actual."""
        self._session.session_count = 0
        self._session.session_start = self._clock()

    def snapshot(self) -> Session:
        return replace(self._session)
