from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _default_env_file() -> str:
    repo_root = Path(__file__).resolve().parents[2]
    return str(repo_root / ".env")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    mqtt_broker_host: str
    mqtt_broker_port: int
    mqtt_transport: str
    mqtt_ws_path: str
    mqtt_use_tls: bool
    mqtt_username: Optional[str]
    mqtt_password: Optional[str]
    mqtt_topic: str
    mqtt_client_id_prefix: str
    mqtt_keepalive: int
    mqtt_reconnect_delay_seconds: float

    redis_url: str
    aggregate_key: str
    settings_key: str

    stream_buffer_limit: int
    dashboard_limit: int
    history_limit: int
    feed_retry_seconds: float

    default_read_interval: float
    measurement_duration_ms: int
    measurement_tick_seconds: float

    api_host: str
    api_port: int
    log_level: str


def get_settings() -> Settings:
    # Carga el .env (si existe) sin pisar variables reales del entorno.
    env_file = os.getenv("IOT_EVAL_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    return Settings(
        mqtt_broker_host=os.getenv("MQTT_BROKER_HOST", "localhost"),
        mqtt_broker_port=int(os.getenv("MQTT_BROKER_PORT", "1883")),
        # "tcp" o "websockets" (HiveMQ Cloud expone wss en 8884/mqtt)
        mqtt_transport=os.getenv("MQTT_TRANSPORT", "tcp"),
        mqtt_ws_path=os.getenv("MQTT_WS_PATH", "/mqtt"),
        mqtt_use_tls=_env_bool("MQTT_USE_TLS", "false"),
        mqtt_username=os.getenv("MQTT_USERNAME") or None,
        mqtt_password=os.getenv("MQTT_PASSWORD") or None,
        mqtt_topic=os.getenv("MQTT_TOPIC", "sensor_data/temp"),
        mqtt_client_id_prefix=os.getenv("MQTT_CLIENT_ID_PREFIX", "stream_eval"),
        mqtt_keepalive=int(os.getenv("MQTT_KEEPALIVE", "60")),
        # Segundos enteros (paho); valores < 1 se llevan a 1
        mqtt_reconnect_delay_seconds=float(os.getenv("MQTT_RECONNECT_DELAY_SECONDS", "1")),
        redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        aggregate_key=os.getenv("AGGREGATE_KEY", "thermistor_sensor_data"),
        settings_key=os.getenv("SETTINGS_KEY", "settings"),
        stream_buffer_limit=int(os.getenv("STREAM_BUFFER_LIMIT", "100")),
        dashboard_limit=int(os.getenv("DASHBOARD_LIMIT", "20")),
        history_limit=int(os.getenv("HISTORY_LIMIT", "50")),
        feed_retry_seconds=float(os.getenv("FEED_RETRY_SECONDS", "1.0")),
        default_read_interval=float(os.getenv("DEFAULT_READ_INTERVAL", "2")),
        measurement_duration_ms=int(os.getenv("MEASUREMENT_DURATION_MS", "60000")),
        measurement_tick_seconds=float(os.getenv("MEASUREMENT_TICK_SECONDS", "0.1")),
        api_host=os.getenv("API_HOST", "0.0.0.0"),
        api_port=int(os.getenv("API_PORT", "8000")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
