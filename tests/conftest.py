"""Fixtures compartidas: reloj controlable, paho falso, fuentes de snapshots."""

import time
from types import SimpleNamespace
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock, patch

import orjson
import pytest

from iot_stream_eval.feeds.settings_store import DeviceSettings
from iot_stream_eval.ingest_api.mqtt.ingestion_client import StreamIngestionClient

TOPIC = "sensor_data/temp"
SUBSCRIBE_MID = 7

RC_OK = SimpleNamespace(is_failure=False)
RC_FAIL = SimpleNamespace(is_failure=True)


class FakeClock:
    """Reloj en epoch ms que solo avanza cuando el test lo pide."""

    def __init__(self, start: int = 1_706_688_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeLiveQuery:
    """LiveQuerySource en memoria; el test empuja snapshots a mano."""

    def __init__(self):
        self.callback = None
        self.unsubscribe_calls = 0

    def subscribe(self, callback):
        self.callback = callback
        return self._unsubscribe

    def _unsubscribe(self):
        self.unsubscribe_calls += 1

    def push(self, records: Optional[List[Dict[str, Any]]]) -> None:
        self.callback(records)


def packet_bytes(msg_id: int, timestamp: int, interval: Optional[float] = 2, temperature: float = 23.5) -> bytes:
    data: Dict[str, Any] = {
        "temperature": temperature,
        "msg_id": msg_id,
        "timestamp": timestamp,
    }
    if interval is not None:
        data["interval"] = interval
    return orjson.dumps(data)


def wait_until(predicate, timeout: float = 2.0, interval: float = 0.01) -> bool:
    """Espera a que un thread de fondo cumpla `predicate` (o vence el timeout)."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def confirm_subscription(client: StreamIngestionClient, paho: MagicMock) -> None:
    """Simula CONNACK + SUBACK del broker."""
    client._on_connect(paho, None, None, RC_OK)
    client._on_subscribe(paho, None, SUBSCRIBE_MID, [RC_OK])


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_paho():
    """Reemplaza paho.mqtt.client.Client por un MagicMock."""
    with patch("iot_stream_eval.ingest_api.mqtt.ingestion_client.mqtt.Client") as client_cls:
        instance = client_cls.return_value
        instance.subscribe.return_value = (0, SUBSCRIBE_MID)
        yield instance


@pytest.fixture
def ingestion_client(fake_paho):
    """Cliente iniciado (sin broker real) con buffer de 100."""
    client = StreamIngestionClient(topic=TOPIC, limit=100)
    client.start(wait_seconds=0)
    yield client
    client.stop()


@pytest.fixture
def settings_store():
    store = MagicMock()
    store.get.return_value = DeviceSettings()
    store.update.return_value = 1_706_688_000_000
    return store


@pytest.fixture
def fake_live_query() -> FakeLiveQuery:
    return FakeLiveQuery()
