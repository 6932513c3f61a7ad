from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..common.config import get_settings
from ..services import Services, build_services
from .endpoints import dashboard_router, evaluation_router, health_router

logger = logging.getLogger(__name__)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """422 sin `input`: un Infinity/NaN del body no es serializable a JSON."""
    errors = [{k: v for k, v in error.items() if k not in ("input", "ctx")} for error in exc.errors()]
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(errors)})


def create_app(services: Optional[Services] = None) -> FastAPI:
    """Construye la app. Sin `services` se arma el grafo desde el entorno."""
    if services is None:
        services = build_services(get_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        services.start()
        try:
            yield
        finally:
            services.stop()

    app = FastAPI(title="IoT Stream Evaluation Service", version="0.1.0", lifespan=lifespan)
    app.state.services = services
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(health_router)
    app.include_router(dashboard_router)
    app.include_router(evaluation_router)
    return app
