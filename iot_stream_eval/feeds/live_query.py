"""Live query "últimos N registros" sobre Redis.

Los registros viven como JSON en una lista (`RPUSH <key>`), en orden de
inserción (el más viejo primero). Quien escribe notifica en el canal
`<key>:events`; cada notificación dispara un `LRANGE key -N -1` y se
entrega el snapshot COMPLETO al callback. No hay diffs incrementales.

La suscripción vive hasta que se cancela: si Redis no responde al
suscribir, o el worker de pub/sub pierde la conexión, se reintenta cada
`retry_seconds` y al volver se entrega otra vez el snapshot completo.
Mientras tanto el último snapshot entregado queda "stale".
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, List, Optional, Protocol

import orjson
import redis

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[Optional[List[dict]]], None]


class LiveQuerySource(Protocol):
    """Fuente push de snapshots completos.

    `subscribe` entrega el snapshot actual y luego uno nuevo por cada
    cambio. Devuelve la función para cancelar la suscripción.
    """

    def subscribe(self, callback: SnapshotCallback) -> Callable[[], None]:
        ...


class RedisLiveQuery:
    """Implementación de `LiveQuerySource` con lista + pub/sub de Redis."""

    EVENTS_SUFFIX = ":events"

    def __init__(
        self,
        client: redis.Redis,
        key: str,
        limit: int,
        sleep_time: float = 0.1,
        retry_seconds: float = 1.0,
    ) -> None:
        self._client = client
        self._key = key
        self._limit = int(limit)
        self._sleep_time = sleep_time
        self._retry_seconds = retry_seconds

    @property
    def key(self) -> str:
        return self._key

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def channel(self) -> str:
        return f"{self._key}{self.EVENTS_SUFFIX}"

    def fetch(self) -> List[dict]:
        """Lee los últimos N registros en orden de clave (más viejo primero)."""
        raw_items = self._client.lrange(self._key, -self._limit, -1)
        records = []
        for raw in raw_items:
            try:
                data = orjson.loads(raw)
            except orjson.JSONDecodeError as e:
                logger.warning("[FEED] Skipping undecodable record in %s: %s", self._key, e)
                continue
            if isinstance(data, dict):
                records.append(data)
        return records

    def open_pubsub(self, handler: Callable[[Any], None], exception_handler) -> redis.client.PubSubWorkerThread:
        """Suscribe `handler` al canal y arranca el worker de pub/sub."""
        pubsub = self._client.pubsub(ignore_subscribe_messages=True)
        try:
            pubsub.subscribe(**{self.channel: handler})
            return pubsub.run_in_thread(
                sleep_time=self._sleep_time,
                daemon=True,
                exception_handler=exception_handler,
            )
        except redis.RedisError:
            pubsub.close()
            raise

    def subscribe(self, callback: SnapshotCallback) -> Callable[[], None]:
        subscription = _LiveSubscription(self, callback, self._retry_seconds)
        subscription.open()
        return subscription.close


class _LiveSubscription:
    """Una suscripción de `RedisLiveQuery`, con reintentos hasta `close()`."""

    def __init__(self, query: RedisLiveQuery, callback: SnapshotCallback, retry_seconds: float):
        self._query = query
        self._callback = callback
        self._retry_seconds = retry_seconds

        # Las entregas van bajo el lock: tras close() no sale ningún callback más
        self._lock = threading.RLock()
        self._active = True
        self._worker: Optional[redis.client.PubSubWorkerThread] = None
        self._retry: Optional[threading.Timer] = None

    def open(self) -> None:
        """Suscribe al canal y entrega el snapshot actual; si falla, reintenta."""
        if not self._active:
            return

        try:
            worker = self._query.open_pubsub(self._on_message, self._on_worker_error)
        except redis.RedisError as e:
            logger.warning(
                "[FEED] Live query on %s unavailable, retrying in %.1fs: %s",
                self._query.key,
                self._retry_seconds,
                e,
            )
            self._schedule(self.open)
            return

        with self._lock:
            if self._active:
                self._worker = worker
                worker = None
        if worker is not None:
            # close() llegó mientras se suscribía
            worker.stop()
            return

        logger.info("[FEED] Live query on %s (last %d)", self._query.key, self._query.limit)
        self._refresh_until_delivered()

    def close(self) -> None:
        """Cancela la suscripción. Idempotente."""
        with self._lock:
            if not self._active:
                return
            self._active = False
            worker, self._worker = self._worker, None
            retry, self._retry = self._retry, None

        if retry is not None:
            retry.cancel()
        if worker is not None:
            # El worker cierra su conexión de pub/sub al salir del loop
            worker.stop()
        logger.info("[FEED] Live query on %s released", self._query.key)

    def refresh(self) -> bool:
        """LRANGE + entrega del snapshot completo. False si Redis falló."""
        try:
            records = self._query.fetch()
        except redis.RedisError as e:
            logger.warning("[FEED] Snapshot fetch failed for %s, keeping last snapshot: %s", self._query.key, e)
            return False
        with self._lock:
            if self._active:
                self._callback(records)
        return True

    def _refresh_until_delivered(self) -> None:
        if not self.refresh():
            self._schedule(self._refresh_until_delivered)

    def _on_message(self, _message: Any) -> None:
        self.refresh()

    def _on_worker_error(self, exc: BaseException, pubsub, thread) -> None:
        """exception_handler de run_in_thread: el worker muere y se resuscribe."""
        logger.warning(
            "[FEED] Live query on %s lost its connection, resubscribing in %.1fs: %s",
            self._query.key,
            self._retry_seconds,
            exc,
        )
        thread.stop()
        with self._lock:
            if self._worker is thread:
                self._worker = None
        self._schedule(self.open)

    def _schedule(self, action: Callable[[], None]) -> None:
        with self._lock:
            if not self._active or self._retry is not None:
                return
            timer = threading.Timer(self._retry_seconds, self._run_scheduled, args=(action,))
            timer.daemon = True
            self._retry = timer
        timer.start()

    def _run_scheduled(self, action: Callable[[], None]) -> None:
        with self._lock:
            self._retry = None
        action()
