"""Métricas Prometheus del servicio de evaluación."""

from __future__ import annotations

from prometheus_client import Counter, Gauge

STREAM_PACKETS = Counter(
    "stream_ingest_packets_total",
    "Packets received on the sensor topic",
    ["status"],  # accepted, invalid
)
STREAM_CONNECTED = Gauge(
    "stream_ingest_connected",
    "1 while the MQTT subscription is acknowledged",
)
STREAM_BUFFER_SIZE = Gauge(
    "stream_ingest_buffer_size",
    "Packets currently held in the bounded stream buffer",
)
AGGREGATE_SNAPSHOTS = Counter(
    "aggregate_feed_snapshots_total",
    "Snapshots delivered by the live aggregate feed",
    ["result"],  # applied, empty
)
MEASUREMENT_WINDOWS_COMPLETED = Counter(
    "measurement_windows_completed_total",
    "Time-boxed measurement windows that reached their deadline",
)
