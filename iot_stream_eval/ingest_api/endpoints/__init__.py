"""Módulo de endpoints HTTP.

Contiene los endpoints de la API de evaluación organizados por función.
"""

from .health import router as health_router
from .dashboard import router as dashboard_router
from .evaluation import router as evaluation_router

__all__ = [
    "health_router",
    "dashboard_router",
    "evaluation_router",
]
