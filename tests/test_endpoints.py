"""
Tests de la API HTTP.

La app se arma con un Services de prueba (paho y Redis mockeados) y se usa
TestClient sin context manager para no disparar el lifespan.
"""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from iot_stream_eval.errors import SettingsWriteError
from iot_stream_eval.evaluation.controller import SessionMeasurementController
from iot_stream_eval.feeds.aggregate_feed import LiveAggregateFeed
from iot_stream_eval.ingest_api.main import create_app
from iot_stream_eval.ingest_api.schemas import IntervalIn
from iot_stream_eval.services import Services
from conftest import TOPIC, FakeLiveQuery, confirm_subscription, packet_bytes


@pytest.fixture
def services(ingestion_client, settings_store, clock):
    redis_conn = MagicMock()
    redis_conn.ping.return_value = True

    controller = SessionMeasurementController(
        ingestion_client,
        settings_store,
        default_interval=2,
        duration_ms=60_000,
        tick_seconds=3600,
        clock=clock,
    )
    controller.start()

    dashboard_source = FakeLiveQuery()
    history_source = FakeLiveQuery()
    dashboard_feed = LiveAggregateFeed(dashboard_source, name="dashboard")
    history_feed = LiveAggregateFeed(history_source, name="history")
    dashboard_feed.start()
    history_feed.start()

    services = Services(
        settings=MagicMock(),
        redis=redis_conn,
        ingestion=ingestion_client,
        settings_store=settings_store,
        controller=controller,
        dashboard_feed=dashboard_feed,
        history_feed=history_feed,
    )
    yield services
    controller.stop()


@pytest.fixture
def api(services):
    return TestClient(create_app(services))


# ===== TEST 1: Health =====

class TestHealthEndpoints:

    def test_health(self, api):
        response = api.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_not_ready_without_subscription(self, api):
        assert api.get("/ready").status_code == 503

    def test_ready_when_subscribed(self, api, services, fake_paho):
        confirm_subscription(services.ingestion, fake_paho)

        assert api.get("/ready").status_code == 200

    def test_not_ready_without_redis(self, api, services, fake_paho):
        confirm_subscription(services.ingestion, fake_paho)
        services.redis.ping.return_value = False

        assert api.get("/ready").status_code == 503

    def test_stream_stats(self, api, services):
        services.ingestion.handle_payload(TOPIC, packet_bytes(1, 1000))

        body = api.get("/health/stream").json()

        assert body["accepted"] == 1
        assert body["buffer_size"] == 1
        assert body["buffer_limit"] == 100

    def test_metrics(self, api, services):
        services.ingestion.handle_payload(TOPIC, packet_bytes(1, 1000))

        response = api.get("/metrics")

        assert response.status_code == 200
        assert "stream_ingest_packets_total" in response.text


# ===== TEST 2: Dashboard e histórico =====

class TestDashboardEndpoints:

    def test_dashboard_before_data(self, api):
        body = api.get("/dashboard").json()

        assert body["current_temp"] == 0.0
        assert body["status"] == "Loading..."
        assert body["chart_values"] == []

    def test_dashboard_with_snapshot(self, api, services):
        services.dashboard_feed.apply_snapshot([
            {"temperature": 22.0, "alarm_status": "NORMAL"},
            {"temperature": 28.5, "alarm_status": "HIGH"},
        ])

        body = api.get("/dashboard").json()

        assert body["current_temp"] == 28.5
        assert body["status"] == "HIGH"
        assert body["band"] == "hot"
        assert body["chart_labels"] == ["1", "2"]
        assert body["min_temp"] == 21.0

    def test_history_newest_first(self, api, services):
        services.history_feed.apply_snapshot([
            {"temperature": 20.0, "alarm_status": "LOW", "message_id": 1},
            {"temperature": 24.0, "alarm_status": "NORMAL", "message_id": 2},
        ])

        entries = api.get("/history").json()["entries"]

        assert [e["message_id"] for e in entries] == [2, 1]
        assert [e["band"] for e in entries] == ["ideal", "cold"]
        assert entries[0]["index"] == 1


# ===== TEST 3: Evaluación =====

class TestEvaluationEndpoints:

    def test_evaluation_view(self, api, services):
        for msg_id, ts in enumerate([1000, 1300, 1600]):
            services.ingestion.handle_payload(TOPIC, packet_bytes(msg_id, ts))

        body = api.get("/evaluation").json()

        assert body["session_state"] == "tracking"
        assert body["session_count"] == 3
        assert body["throughput_series"] == [1, 2, 3]
        assert body["projected_rate_per_min"] == 30
        assert body["latency"]["series_ms"] == [300, 300]
        assert body["latency"]["average_ms"] == 300
        assert body["measurement"]["state"] == "inactive"

    def test_start_measurement(self, api):
        response = api.post("/evaluation/measurement")

        assert response.status_code == 201
        body = response.json()
        assert body["state"] == "running"
        assert body["remaining_seconds"] == 60

    def test_measurement_already_running(self, api):
        api.post("/evaluation/measurement")

        response = api.post("/evaluation/measurement")

        assert response.status_code == 409
        assert "Completes in 60s" in response.json()["detail"]

    def test_apply_interval(self, api, settings_store):
        response = api.put("/evaluation/interval", json={"read_interval": 5})

        assert response.status_code == 200
        assert response.json()["projected_rate_per_min"] == 12
        settings_store.update.assert_called_once_with(read_interval=5.0)

    def test_apply_interval_rejects_zero(self, api, settings_store):
        response = api.put("/evaluation/interval", json={"read_interval": 0})

        assert response.status_code == 422
        settings_store.update.assert_not_called()

    @pytest.mark.parametrize("literal", [b"Infinity", b"-Infinity", b"NaN"])
    def test_apply_interval_rejects_non_finite(self, api, settings_store, literal):
        response = api.put(
            "/evaluation/interval",
            content=b'{"read_interval": ' + literal + b"}",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 422
        assert all("input" not in error for error in response.json()["detail"])
        settings_store.update.assert_not_called()

    def test_apply_interval_store_validation_error(self, api, settings_store):
        """Un rechazo de validación en el store también es error del cliente."""
        with pytest.raises(ValidationError) as exc_info:
            IntervalIn(read_interval=float("inf"))
        settings_store.update.side_effect = exc_info.value

        response = api.put("/evaluation/interval", json={"read_interval": 5})

        assert response.status_code == 422

    def test_apply_interval_write_failure(self, api, settings_store):
        settings_store.update.side_effect = SettingsWriteError("settings", ["read_interval"], OSError("down"))

        response = api.put("/evaluation/interval", json={"read_interval": 5})

        assert response.status_code == 502

    def test_reset(self, api, services, settings_store):
        services.ingestion.handle_payload(TOPIC, packet_bytes(1, 1000))

        response = api.post("/evaluation/reset")

        assert response.status_code == 200
        assert response.json()["session_count"] == 0
        assert len(services.ingestion.buffer) == 0
        settings_store.update.assert_called_once_with(read_interval=2.0)

    def test_reset_write_failure(self, api, services, settings_store):
        services.ingestion.handle_payload(TOPIC, packet_bytes(1, 1000))
        settings_store.update.side_effect = SettingsWriteError("settings", ["read_interval"], OSError("down"))

        response = api.post("/evaluation/reset")

        assert response.status_code == 502
        assert len(services.ingestion.buffer) == 1
