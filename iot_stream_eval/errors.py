"""Excepciones del dominio de evaluación."""

from __future__ import annotations

from typing import Iterable


class MeasurementAlreadyRunning(Exception):
    """Se intentó iniciar una ventana de medición con otra en curso."""

    def __init__(self, remaining_seconds: int):
        self.remaining_seconds = remaining_seconds
        super().__init__(
            "A measurement window is already running. "
            f"Completes in {remaining_seconds}s"
        )


class SettingsWriteError(Exception):
    """Falló la escritura del documento de configuración."""

    def __init__(self, key: str, fields: Iterable[str], cause: Exception):
        self.key = key
        self.fields = tuple(fields)
        self.cause = cause
        super().__init__(
            f"Failed to write {', '.join(self.fields) or 'settings'} "
            f"to '{key}': {cause}"
        )
