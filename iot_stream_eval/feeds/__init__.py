"""Feeds del store (Redis): registros agregados en vivo y settings."""

from .aggregate_feed import AggregateRecord, AggregateView, LiveAggregateFeed
from .live_query import LiveQuerySource, RedisLiveQuery
from .redis_connection import RedisConnection
from .settings_store import DeviceSettings, SettingsStore

__all__ = [
    "AggregateRecord",
    "AggregateView",
    "LiveAggregateFeed",
    "LiveQuerySource",
    "RedisLiveQuery",
    "RedisConnection",
    "DeviceSettings",
    "SettingsStore",
]
