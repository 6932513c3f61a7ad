"""Endpoints de lectura del feed agregado (dashboard e histórico)."""

from fastapi import APIRouter, Depends

from ...evaluation.thresholds import evaluate_temperature
from ...services import Services
from ..schemas import DashboardOut, HistoryEntryOut, HistoryOut
from .deps import get_services

router = APIRouter(tags=["dashboard"])


@router.get("/dashboard", response_model=DashboardOut)
def get_dashboard(services: Services = Depends(get_services)):
    """Temperatura actual, estado de alarma y serie para el gráfico."""
    view = services.dashboard_feed.view()
    thresholds = services.settings_store.get()

    return DashboardOut(
        current_temp=view.current_value,
        status=view.status_label,
        band=evaluate_temperature(view.current_value, thresholds.min_temp, thresholds.max_temp),
        min_temp=thresholds.min_temp,
        max_temp=thresholds.max_temp,
        chart_labels=list(view.chart_labels),
        chart_values=list(view.chart_values),
    )


@router.get("/history", response_model=HistoryOut)
def get_history(services: Services = Depends(get_services)):
    """Últimos registros, más nuevo primero, con su evaluación HOT/COLD/IDEAL."""
    thresholds = services.settings_store.get()
    entries = [
        HistoryEntryOut(
            index=i + 1,
            temperature=record.temperature,
            alarm_status=record.alarm_status,
            band=evaluate_temperature(record.temperature, thresholds.min_temp, thresholds.max_temp),
            message_id=record.message_id,
            timestamp=record.timestamp,
            read_interval=record.read_interval,
        )
        for i, record in enumerate(services.history_feed.history)
    ]
    return HistoryOut(entries=entries)
