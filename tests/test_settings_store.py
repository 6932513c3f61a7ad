"""Tests del documento `settings` sobre un hash de Redis."""

from unittest.mock import MagicMock

import pytest
import redis
from pydantic import ValidationError

from iot_stream_eval.errors import SettingsWriteError
from iot_stream_eval.feeds.settings_store import DeviceSettings, SettingsStore


@pytest.fixture
def mock_redis():
    return MagicMock()


@pytest.fixture
def store(mock_redis, clock):
    return SettingsStore(mock_redis, key="settings", clock=clock)


class TestSettingsRead:

    def test_reads_hash(self, store, mock_redis):
        mock_redis.hgetall.return_value = {
            "min_temp": "20",
            "max_temp": "30",
            "read_interval": "5",
            "updated_at": "1706688000000",
        }

        settings = store.get()

        assert settings == DeviceSettings(min_temp=20.0, max_temp=30.0, read_interval=5.0, updated_at=1706688000000)

    def test_empty_document_uses_defaults(self, store, mock_redis):
        mock_redis.hgetall.return_value = {}

        settings = store.get()

        assert settings.min_temp == 21.0
        assert settings.max_temp == 27.0
        assert settings.read_interval == 1.0

    def test_zero_read_interval_becomes_one(self, store, mock_redis):
        mock_redis.hgetall.return_value = {"read_interval": "0"}

        assert store.get().read_interval == 1.0

    def test_redis_error_returns_last_known(self, store, mock_redis):
        mock_redis.hgetall.return_value = {"min_temp": "18", "max_temp": "25", "read_interval": "3"}
        store.get()
        mock_redis.hgetall.side_effect = redis.ConnectionError("down")

        settings = store.get()

        assert settings.min_temp == 18.0
        assert settings.read_interval == 3.0


class TestSettingsWrite:

    def test_partial_merge(self, store, mock_redis, clock):
        updated_at = store.update(read_interval=5)

        assert updated_at == clock.now
        mock_redis.hset.assert_called_once_with(
            "settings",
            mapping={"read_interval": 5.0, "updated_at": clock.now},
        )

    def test_write_error(self, store, mock_redis):
        mock_redis.hset.side_effect = redis.ConnectionError("down")

        with pytest.raises(SettingsWriteError) as exc_info:
            store.update(read_interval=5)

        assert exc_info.value.key == "settings"
        assert "read_interval" in exc_info.value.fields

    def test_rejects_non_positive_interval(self, store, mock_redis):
        with pytest.raises(ValidationError):
            store.update(read_interval=0)

        mock_redis.hset.assert_not_called()

    def test_rejects_unknown_fields(self, store, mock_redis):
        with pytest.raises(ValidationError):
            store.update(sample_rate=10)
