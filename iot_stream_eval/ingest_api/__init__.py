"""API de ingesta y evaluación.

Estructura:
- mqtt/       → Cliente de ingesta del stream y validación de paquetes
- buffer/     → Buffer acotado de paquetes (más nuevo primero)
- endpoints/  → Endpoints HTTP
- metrics.py  → Métricas Prometheus
"""
