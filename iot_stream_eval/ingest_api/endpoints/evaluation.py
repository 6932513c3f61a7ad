"""Endpoints de evaluación del stream (sesión, latencia, medición)."""

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError

from ...errors import MeasurementAlreadyRunning, SettingsWriteError
from ...evaluation.latency import projected_rate
from ...services import Services
from ..schemas import EvaluationOut, IntervalIn, IntervalResult, MeasurementOut
from .deps import get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/evaluation", tags=["evaluation"])


@router.get("", response_model=EvaluationOut)
def get_evaluation(services: Services = Depends(get_services)):
    return EvaluationOut.model_validate(asdict(services.controller.view()))


@router.post("/measurement", response_model=MeasurementOut, status_code=201)
def start_measurement(services: Services = Depends(get_services)):
    """Arranca una ventana de medición one-shot (60 s por defecto)."""
    controller = services.controller
    try:
        controller.start_measurement()
    except MeasurementAlreadyRunning as e:
        raise HTTPException(status_code=409, detail=str(e))
    return MeasurementOut.model_validate(asdict(controller.measurement_view()))


@router.put("/interval", response_model=IntervalResult)
def apply_interval(body: IntervalIn, services: Services = Depends(get_services)):
    """Publica un nuevo read_interval para el dispositivo.

    La sesión se resetea recién cuando llegan paquetes con el intervalo nuevo.
    """
    try:
        updated_at = services.controller.apply_interval(body.read_interval)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False, include_input=False))
    except SettingsWriteError as e:
        logger.error("[EVAL] Interval update failed: %s", e)
        raise HTTPException(status_code=502, detail="settings write failed")

    return IntervalResult(
        read_interval=body.read_interval,
        updated_at=updated_at,
        projected_rate_per_min=projected_rate(body.read_interval),
    )


@router.post("/reset", response_model=EvaluationOut)
def reset_defaults(services: Services = Depends(get_services)):
    """Intervalo por defecto + contadores a cero + buffer vacío."""
    try:
        services.controller.reset_defaults()
    except SettingsWriteError as e:
        logger.error("[EVAL] Reset failed: %s", e)
        raise HTTPException(status_code=502, detail="settings write failed")
    return EvaluationOut.model_validate(asdict(services.controller.view()))
