"""Ingesta MQTT del stream de temperatura.

Estructura modular:
- validators.py: Packet + decode/validación de payloads
- ingestion_stats.py: Contadores del cliente (paquetes, inválidos, reconexiones)
- ingestion_client.py: Suscripción, decode y push al buffer
"""

from .ingestion_client import StreamIngestionClient
from .ingestion_stats import IngestionStats
from .validators import Packet, ValidationResult, decode_packet, validate_packet

__all__ = [
    "StreamIngestionClient",
    "IngestionStats",
    "Packet",
    "ValidationResult",
    "decode_packet",
    "validate_packet",
]
