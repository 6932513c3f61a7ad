"""Health, readiness and Prometheus endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ...services import Services
from .deps import get_services

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    """Liveness: ok mientras el proceso esté vivo."""
    return {"status": "ok"}


@router.get("/ready")
def ready(services: Services = Depends(get_services)):
    """Readiness: suscripción MQTT confirmada y Redis accesible."""
    mqtt_health = services.ingestion.health_check()
    redis_ok = services.redis.ping()
    if not (mqtt_health["healthy"] and redis_ok):
        raise HTTPException(status_code=503, detail="not ready")
    return {"status": "ready"}


@router.get("/health/stream")
def stream_health(services: Services = Depends(get_services)):
    """Estadísticas del cliente de ingesta (conectividad, contadores)."""
    return services.ingestion.stats


@router.get("/metrics")
def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
