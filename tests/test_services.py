"""Tests del orden de arranque y parada del contenedor de servicios."""

from unittest.mock import MagicMock, call

import pytest

from iot_stream_eval.services import Services


@pytest.fixture
def manager():
    """Padre común para registrar el orden de las llamadas entre servicios."""
    parent = MagicMock()
    for name in ("redis", "ingestion", "controller", "dashboard_feed", "history_feed"):
        parent.attach_mock(MagicMock(), name)
    return parent


@pytest.fixture
def services(manager):
    return Services(
        settings=MagicMock(),
        redis=manager.redis,
        ingestion=manager.ingestion,
        settings_store=MagicMock(),
        controller=manager.controller,
        dashboard_feed=manager.dashboard_feed,
        history_feed=manager.history_feed,
    )


class TestServicesLifecycle:

    def test_start_order(self, services, manager):
        services.start()

        # El controlador escucha el buffer antes de que llegue el primer paquete
        assert manager.mock_calls == [
            call.redis.connect(),
            call.controller.start(),
            call.ingestion.start(),
            call.dashboard_feed.start(),
            call.history_feed.start(),
        ]

    def test_stop_order(self, services, manager):
        services.stop()

        assert manager.mock_calls == [
            call.history_feed.stop(),
            call.dashboard_feed.stop(),
            call.ingestion.stop(),
            call.controller.stop(),
            call.redis.disconnect(),
        ]

    def test_start_does_not_wait_for_feeds(self, services, manager):
        """Los feeds reintentan solos; su arranque no corta el de la ingesta."""
        services.start()

        manager.ingestion.start.assert_called_once_with()
        manager.history_feed.start.assert_called_once_with()
