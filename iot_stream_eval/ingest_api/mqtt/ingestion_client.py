"""Cliente de ingesta del stream MQTT.

Dueño del ciclo de vida de la suscripción a UN topic:
  topic (p.ej. sensor_data/temp)
  → decode (orjson + pydantic)
  → BoundedStreamBuffer (más nuevo primero)
  → listeners (controlador de sesión/medición, solo lectura)

La reconexión la hace paho (backoff fijo de 1s); aquí solo se refleja
el estado en `is_connected` y se siguen empujando paquetes al volver.
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
from typing import Callable, List, Optional, Tuple

import paho.mqtt.client as mqtt

from ..buffer.stream_buffer import BoundedStreamBuffer
from ..metrics import STREAM_BUFFER_SIZE, STREAM_CONNECTED, STREAM_PACKETS
from .ingestion_stats import IngestionStats
from .validators import Packet, decode_packet

logger = logging.getLogger(__name__)

BufferListener = Callable[[Tuple[Packet, ...]], None]


class StreamIngestionClient:
    """Cliente MQTT que alimenta un buffer acotado de paquetes.

    `limit` es inmutable durante la vida del cliente: para cambiarlo se
    crea otro cliente. `connected` solo pasa a True cuando el broker
    confirma la suscripción (SUBACK), no con el CONNACK.
    """

    def __init__(
        self,
        broker_host: str = "localhost",
        broker_port: int = 1883,
        topic: str = "sensor_data/temp",
        limit: int = 50,
        username: Optional[str] = None,
        password: Optional[str] = None,
        client_id_prefix: str = "stream_eval",
        transport: str = "tcp",
        ws_path: str = "/mqtt",
        use_tls: bool = False,
        keepalive: int = 60,
        reconnect_delay_seconds: float = 1.0,
    ):
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.topic = topic
        self.username = username
        self.password = password
        self.client_id = f"{client_id_prefix}_{secrets.token_hex(3)}"
        self.transport = transport
        self.ws_path = ws_path
        self.use_tls = use_tls
        self.keepalive = keepalive
        self.reconnect_delay_seconds = reconnect_delay_seconds

        self._buffer: BoundedStreamBuffer[Packet] = BoundedStreamBuffer(limit)
        self._listeners: List[BufferListener] = []

        self._client: Optional[mqtt.Client] = None
        self._running = False
        self._connected = False
        self._ever_connected = False
        self._subscribe_mid: Optional[int] = None
        # Serializa entregas contra stop(): tras stop() no entra ningún paquete más
        self._lock = threading.RLock()

        self._stats = IngestionStats()

    # ------------------------------------------------------------------
    # Ciclo de vida
    # ------------------------------------------------------------------

    def start(self, wait_seconds: float = 5.0) -> bool:
        """Inicia la conexión y el loop de red de paho.

        Si ya había una sesión activa se detiene primero, para que nunca
        haya dos suscripciones escribiendo en el mismo buffer.
        Devuelve True si la suscripción quedó confirmada dentro de
        `wait_seconds`; si no, paho sigue reintentando en segundo plano.
        """
        if self._client is not None:
            self.stop()

        client = self._create_client()

        logger.info(
            "[MQTT] Connecting to %s:%d (transport=%s topic=%s)",
            self.broker_host,
            self.broker_port,
            self.transport,
            self.topic,
        )

        with self._lock:
            self._client = client
            self._running = True

        client.connect_async(self.broker_host, self.broker_port, keepalive=self.keepalive)
        client.loop_start()

        deadline = time.monotonic() + wait_seconds
        while time.monotonic() < deadline:
            if self._connected:
                break
            time.sleep(0.1)

        if self._connected:
            logger.info("[MQTT] Started successfully")
        else:
            logger.warning("[MQTT] Subscription not confirmed yet, transport keeps retrying")
        return self._connected

    def stop(self) -> None:
        """Cancela la suscripción y libera la conexión.

        Idempotente y nunca lanza. Al volver, ningún callback de paho puede
        modificar ya el buffer.
        """
        with self._lock:
            client = self._client
            self._client = None
            self._running = False
            self._set_connected(False)

        if client is None:
            return

        try:
            client.unsubscribe(self.topic)
            client.disconnect()
            client.loop_stop()
        except Exception as e:
            logger.warning("[MQTT] Error stopping: %s", e)

        logger.info("[MQTT] Stopped. %s", self._stats.summary())

    def _create_client(self) -> mqtt.Client:
        client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=self.client_id,
            protocol=mqtt.MQTTv311,
            transport=self.transport,
        )

        client.on_connect = self._on_connect
        client.on_connect_fail = self._on_connect_fail
        client.on_subscribe = self._on_subscribe
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message

        if self.transport == "websockets":
            client.ws_set_options(path=self.ws_path)
        if self.use_tls:
            client.tls_set()
        if self.username and self.password:
            client.username_pw_set(self.username, self.password)

        delay = self._reconnect_delay()
        client.reconnect_delay_set(min_delay=delay, max_delay=delay)
        return client

    def _reconnect_delay(self) -> int:
        """paho espera segundos enteros, mínimo 1."""
        delay = max(1, int(round(self.reconnect_delay_seconds)))
        if delay != self.reconnect_delay_seconds:
            logger.warning(
                "[MQTT] Reconnect delay %ss adjusted to %ds (whole seconds, min 1)",
                self.reconnect_delay_seconds,
                delay,
            )
        return delay

    # ------------------------------------------------------------------
    # Callbacks de paho
    # ------------------------------------------------------------------

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        """Callback de conexión: suscribe, pero aún NO marca conectado."""
        if reason_code.is_failure:
            self._set_connected(False)
            logger.error("[MQTT] Connection failed: %s", reason_code)
            return

        if self._ever_connected:
            reconnects = self._stats.record_reconnect()
            logger.info("[MQTT] Reconnected (count=%d)", reconnects)
        else:
            logger.info("[MQTT] Connected to broker")
        self._ever_connected = True

        result, mid = client.subscribe(self.topic, qos=1)
        self._subscribe_mid = mid
        if result != mqtt.MQTT_ERR_SUCCESS:
            logger.error("[MQTT] Subscribe request failed: rc=%s", result)

    def _on_subscribe(self, client, userdata, mid, reason_code_list, properties=None):
        if mid != self._subscribe_mid or not self._running:
            return
        if any(rc.is_failure for rc in reason_code_list):
            self._set_connected(False)
            logger.error("[MQTT] Subscribe rejected for %s: %s", self.topic, reason_code_list)
            return
        self._set_connected(True)
        logger.info("[MQTT] Subscribed to %s", self.topic)

    def _on_connect_fail(self, client, userdata):
        self._set_connected(False)
        logger.warning("[MQTT] Connect attempt failed, transport will retry")

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        """Callback de desconexión."""
        self._set_connected(False)
        logger.warning("[MQTT] Disconnected (%s)", reason_code)

    def _on_message(self, client, userdata, msg):
        self.handle_payload(msg.topic, msg.payload)

    # ------------------------------------------------------------------
    # Ingesta
    # ------------------------------------------------------------------

    def handle_payload(self, topic: str, payload: bytes) -> Optional[Packet]:
        """Decodifica y empuja un payload al buffer.

        Un payload inválido se descarta y se loguea; jamás se propaga.
        Devuelve el paquete aceptado o None.
        """
        with self._lock:
            if not self._running:
                return None

            self._stats.record_received()

            result = decode_packet(payload)
            if not result.valid:
                self._stats.record_invalid()
                STREAM_PACKETS.labels(status="invalid").inc()
                logger.warning("[MQTT] Dropped invalid packet: %s (topic=%s)", result.error, topic)
                return None

            for warning in result.warnings:
                logger.debug("[MQTT] %s (topic=%s)", warning, topic)

            packet = result.packet
            self._buffer.push(packet)
            self._stats.record_accepted()
            STREAM_PACKETS.labels(status="accepted").inc()
            logger.debug(
                "[MQTT] Received: msg_id=%d temperature=%.2f interval=%s",
                packet.msg_id,
                packet.temperature,
                packet.interval,
            )

            if self._stats.accepted % 50 == 0:
                logger.info("[MQTT] %s", self._stats.summary())

            self._notify_listeners()
            return packet

    def clear(self) -> None:
        """Vacía el buffer (p.ej. al resetear el escenario de evaluación)."""
        with self._lock:
            self._buffer.clear()
            self._notify_listeners()

    def add_listener(self, listener: BufferListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: BufferListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _notify_listeners(self) -> None:
        snapshot = self._buffer.snapshot()
        STREAM_BUFFER_SIZE.set(len(snapshot))
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.exception("[MQTT] Buffer listener failed: %s", e)

    def _set_connected(self, value: bool) -> None:
        self._connected = value
        STREAM_CONNECTED.set(1 if value else 0)

    # ------------------------------------------------------------------
    # Estado
    # ------------------------------------------------------------------

    @property
    def buffer(self) -> BoundedStreamBuffer[Packet]:
        return self._buffer

    @property
    def limit(self) -> int:
        return self._buffer.limit

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def stats(self) -> dict:
        return {
            "running": self._running,
            "connected": self._connected,
            "broker": f"{self.broker_host}:{self.broker_port}",
            "topic": self.topic,
            "buffer_size": len(self._buffer),
            "buffer_limit": self._buffer.limit,
            **self._stats.as_dict(),
        }

    def health_check(self) -> dict:
        return {
            "healthy": self._running and self._connected,
            "running": self._running,
            "connected": self._connected,
            "packets_accepted": self._stats.accepted,
            "packets_invalid": self._stats.invalid,
        }
