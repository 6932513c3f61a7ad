"""Feed agregado en vivo (últimos N registros del store).

Por cada snapshot recalcula:
- current_value: temperatura del registro más reciente
- status_label: alarm_status del mismo registro
- history: snapshot invertido (más nuevo primero)
- chart_labels / chart_values: serie en orden natural del feed

Un snapshot vacío NO resetea nada: se conservan los últimos valores para
evitar parpadeos ante lecturas vacías transitorias.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError

from ..ingest_api.metrics import AGGREGATE_SNAPSHOTS
from .live_query import LiveQuerySource

logger = logging.getLogger(__name__)


class AggregateRecord(BaseModel):
    """Registro persistido por el dispositivo en el store."""

    model_config = ConfigDict(frozen=True)

    temperature: float
    alarm_status: str
    message_id: Optional[int] = None
    timestamp: Optional[int] = None
    read_interval: Optional[float] = None


@dataclass(frozen=True)
class AggregateView:
    """Estado derivado de un snapshot, listo para exponer."""

    current_value: float
    status_label: str
    history: Tuple[AggregateRecord, ...]
    chart_labels: Tuple[str, ...]
    chart_values: Tuple[float, ...]
    updated_at: Optional[float]


class LiveAggregateFeed:
    INITIAL_VALUE = 0.0
    INITIAL_STATUS = "Loading..."

    def __init__(self, source: LiveQuerySource, name: str = "aggregate") -> None:
        self._source = source
        self._name = name
        self._lock = threading.Lock()
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._view = AggregateView(
            current_value=self.INITIAL_VALUE,
            status_label=self.INITIAL_STATUS,
            history=(),
            chart_labels=(),
            chart_values=(),
            updated_at=None,
        )

    def start(self) -> None:
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self._source.subscribe(self.apply_snapshot)
        logger.info("[FEED] %s feed started", self._name)

    def stop(self) -> None:
        """Libera la suscripción exactamente una vez."""
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is None:
            return
        unsubscribe()
        logger.info("[FEED] %s feed stopped", self._name)

    def apply_snapshot(self, records: Optional[Sequence[Mapping]]) -> bool:
        """Aplica un snapshot completo. Devuelve False si se ignoró por vacío."""
        parsed = []
        for raw in records or ():
            try:
                parsed.append(AggregateRecord(**raw))
            except (ValidationError, TypeError) as e:
                logger.warning("[FEED] %s: skipping invalid record: %s", self._name, e)

        if not parsed:
            AGGREGATE_SNAPSHOTS.labels(result="empty").inc()
            logger.debug("[FEED] %s: empty snapshot, keeping previous values", self._name)
            return False

        latest = parsed[-1]
        view = AggregateView(
            current_value=latest.temperature,
            status_label=latest.alarm_status,
            history=tuple(reversed(parsed)),
            chart_labels=tuple(str(i + 1) for i in range(len(parsed))),
            chart_values=tuple(r.temperature for r in parsed),
            updated_at=time.time(),
        )
        with self._lock:
            self._view = view
        AGGREGATE_SNAPSHOTS.labels(result="applied").inc()
        return True

    def view(self) -> AggregateView:
        with self._lock:
            return self._view

    @property
    def current_value(self) -> float:
        return self.view().current_value

    @property
    def status_label(self) -> str:
        return self.view().status_label

    @property
    def history(self) -> Tuple[AggregateRecord, ...]:
        return self.view().history

    @property
    def is_running(self) -> bool:
        return self._unsubscribe is not None
