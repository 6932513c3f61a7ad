"""Controlador de sesión y medición sobre el buffer de ingesta.

Flujo:
  StreamIngestionClient (dueño del buffer)
  → on_buffer_change(snapshot)   [thread de paho]
  → SessionTracker + MeasurementWindow (solo la cabeza del buffer)

  PeriodicTicker (≤100 ms)       [thread propio]
  → tick() → cierre de la ventana de medición

El controlador NUNCA modifica el buffer directamente salvo `reset_defaults`,
que lo vacía a través del propio cliente.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from ..feeds.settings_store import SettingsStore
from ..ingest_api.metrics import MEASUREMENT_WINDOWS_COMPLETED
from ..ingest_api.mqtt.ingestion_client import StreamIngestionClient
from ..ingest_api.mqtt.validators import Packet
from .latency import LatencyReport, latency_report, projected_rate
from .measurement import DEFAULT_DURATION_MS, MeasurementState, MeasurementWindow
from .session import DEFAULT_READ_INTERVAL, SessionState, SessionTracker, now_ms
from .ticker import PeriodicTicker

logger = logging.getLogger(__name__)

CompletionListener = Callable[[int], None]


@dataclass(frozen=True)
class MeasurementView:
    state: MeasurementState
    remaining_seconds: int
    running_count: int
    result: Optional[int]
    started_at: Optional[int]
    deadline: Optional[int]
    duration_ms: int


@dataclass(frozen=True)
class EvaluationView:
    connected: bool
    session_state: SessionState
    current_interval: float
    session_count: int
    session_start: int
    throughput_series: Tuple[int, ...]
    projected_rate_per_min: float
    latency: LatencyReport
    measurement: MeasurementView


class SessionMeasurementController:
    """Sesión continua + ventana de medición one-shot sobre un stream."""

    def __init__(
        self,
        client: StreamIngestionClient,
        settings_store: SettingsStore,
        default_interval: float = DEFAULT_READ_INTERVAL,
        duration_ms: int = DEFAULT_DURATION_MS,
        tick_seconds: float = 0.1,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._client = client
        self._settings_store = settings_store
        self._default_interval = float(default_interval)

        self._session = SessionTracker(default_interval=default_interval, clock=clock)
        self._measurement = MeasurementWindow(duration_ms=duration_ms, clock=clock)
        self._ticker = PeriodicTicker(self.tick, interval_seconds=tick_seconds)
        self._completion_listeners: List[CompletionListener] = []
        self._lock = threading.RLock()
        self._started = False

    # ------------------------------------------------------------------
    # Ciclo de vida
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._started:
            return
        self._client.add_listener(self.on_buffer_change)
        self._ticker.start()
        self._started = True
        logger.info("[EVAL] Controller started (default interval=%.3gs)", self._default_interval)

    def stop(self) -> None:
        """Desengancha el listener y cancela el ticker. Idempotente."""
        if not self._started:
            return
        self._client.remove_listener(self.on_buffer_change)
        self._ticker.stop()
        self._started = False
        logger.info("[EVAL] Controller stopped")

    def add_completion_listener(self, listener: CompletionListener) -> None:
        self._completion_listeners.append(listener)

    # ------------------------------------------------------------------
    # Eventos
    # ------------------------------------------------------------------

    def on_buffer_change(self, snapshot: Sequence[Packet]) -> None:
        """Procesa la cabeza del buffer tras cada push/clear."""
        if not snapshot:
            return
        head = snapshot[0]

        with self._lock:
            self._session.observe(head)
            self._measurement.observe(head.msg_id)
            result = self._measurement.check()

        self._report_completion(result)

    def tick(self) -> Optional[int]:
        """Check periódico del deadline; devuelve el resultado si cerró ahora."""
        with self._lock:
            result = self._measurement.check()
        self._report_completion(result)
        return result

    def _report_completion(self, result: Optional[int]) -> None:
        if result is None:
            return
        MEASUREMENT_WINDOWS_COMPLETED.inc()
        for listener in list(self._completion_listeners):
            try:
                listener(result)
            except Exception as e:
                logger.exception("[EVAL] Completion listener failed: %s", e)

    # ------------------------------------------------------------------
    # Operaciones
    # ------------------------------------------------------------------

    def start_measurement(self) -> int:
        """Arma una ventana de medición. Lanza MeasurementAlreadyRunning.

        Si la ventana anterior venció sin que el ticker la cerrara, se
        reporta su resultado antes de re-armar.
        """
        head = self._client.buffer.head()
        with self._lock:
            previous = self._measurement.check()
            deadline = self._measurement.start(head.msg_id if head is not None else None)
        self._report_completion(previous)
        return deadline

    def apply_interval(self, read_interval: float) -> int:
        """Escribe `read_interval` en settings. La sesión cambia recién cuando
        el dispositivo publique paquetes con el intervalo nuevo."""
        return self._settings_store.update(read_interval=read_interval)

    def reset_defaults(self) -> None:
        """Restaura el intervalo por defecto, reinicia contadores y vacía el buffer.

        Si la escritura falla (SettingsWriteError) no se toca nada local.
        """
        self._settings_store.update(read_interval=self._default_interval)
        with self._lock:
            self._session.reset_counters()
        self._client.clear()
        logger.info("[EVAL] Scenario reset to defaults (interval=%.3gs)", self._default_interval)

    # ------------------------------------------------------------------
    # Lectura
    # ------------------------------------------------------------------

    def latency(self) -> LatencyReport:
        with self._lock:
            interval = self._session.snapshot().current_interval
        return latency_report(self._client.buffer.snapshot(), interval)

    def measurement_view(self) -> MeasurementView:
        with self._lock:
            window = self._measurement
            return MeasurementView(
                state=window.state,
                remaining_seconds=window.remaining_seconds(),
                running_count=window.running_count,
                result=window.result,
                started_at=window.started_at,
                deadline=window.deadline,
                duration_ms=window.duration_ms,
            )

    def view(self) -> EvaluationView:
        with self._lock:
            session = self._session.snapshot()
            state = self._session.state
        return EvaluationView(
            connected=self._client.is_connected,
            session_state=state,
            current_interval=session.current_interval,
            session_count=session.session_count,
            session_start=session.session_start,
            throughput_series=tuple(range(1, session.session_count + 1)),
            projected_rate_per_min=projected_rate(session.current_interval),
            latency=self.latency(),
            measurement=self.measurement_view(),
        )

    @property
    def session(self) -> SessionTracker:
        return self._session

    @property
    def measurement(self) -> MeasurementWindow:
        return self._measurement

    @property
    def ticker(self) -> PeriodicTicker:
        return self._ticker
