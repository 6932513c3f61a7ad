"""Evaluación en tiempo real de un stream de sensores (MQTT + feed agregado)."""

__version__ = "0.1.0"
