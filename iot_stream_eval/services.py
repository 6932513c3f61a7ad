"""Contenedor de servicios del proceso.

Se construye UNA vez al arrancar y se pasa explícitamente (vía
`app.state`) a quien lo necesite; no hay singletons de módulo.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .common.config import Settings
from .evaluation.controller import SessionMeasurementController
from .feeds.aggregate_feed import LiveAggregateFeed
from .feeds.live_query import RedisLiveQuery
from .feeds.redis_connection import RedisConnection
from .feeds.settings_store import SettingsStore
from .ingest_api.mqtt.ingestion_client import StreamIngestionClient

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    redis: RedisConnection
    ingestion: StreamIngestionClient
    settings_store: SettingsStore
    controller: SessionMeasurementController
    dashboard_feed: LiveAggregateFeed
    history_feed: LiveAggregateFeed

    def start(self) -> None:
        self.redis.connect()
        self.controller.start()
        self.ingestion.start()

        # Los feeds no fallan si Redis no responde: reintentan en segundo plano
        self.dashboard_feed.start()
        self.history_feed.start()

        logger.info("[SERVICES] Started")

    def stop(self) -> None:
        self.history_feed.stop()
        self.dashboard_feed.stop()
        self.ingestion.stop()
        self.controller.stop()
        self.redis.disconnect()
        logger.info("[SERVICES] Stopped")


def build_services(settings: Settings) -> Services:
    """Arma el grafo de servicios sin abrir conexiones."""
    redis_conn = RedisConnection(settings.redis_url)

    ingestion = StreamIngestionClient(
        broker_host=settings.mqtt_broker_host,
        broker_port=settings.mqtt_broker_port,
        topic=settings.mqtt_topic,
        limit=settings.stream_buffer_limit,
        username=settings.mqtt_username,
        password=settings.mqtt_password,
        client_id_prefix=settings.mqtt_client_id_prefix,
        transport=settings.mqtt_transport,
        ws_path=settings.mqtt_ws_path,
        use_tls=settings.mqtt_use_tls,
        keepalive=settings.mqtt_keepalive,
        reconnect_delay_seconds=settings.mqtt_reconnect_delay_seconds,
    )

    settings_store = SettingsStore(redis_conn.client, key=settings.settings_key)

    controller = SessionMeasurementController(
        ingestion,
        settings_store,
        default_interval=settings.default_read_interval,
        duration_ms=settings.measurement_duration_ms,
        tick_seconds=settings.measurement_tick_seconds,
    )

    dashboard_feed = LiveAggregateFeed(
        RedisLiveQuery(
            redis_conn.client,
            settings.aggregate_key,
            settings.dashboard_limit,
            retry_seconds=settings.feed_retry_seconds,
        ),
        name="dashboard",
    )
    history_feed = LiveAggregateFeed(
        RedisLiveQuery(
            redis_conn.client,
            settings.aggregate_key,
            settings.history_limit,
            retry_seconds=settings.feed_retry_seconds,
        ),
        name="history",
    )

    return Services(
        settings=settings,
        redis=redis_conn,
        ingestion=ingestion,
        settings_store=settings_store,
        controller=controller,
        dashboard_feed=dashboard_feed,
        history_feed=history_feed,
    )
