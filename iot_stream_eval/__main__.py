"""Punto de entrada: python -m iot_stream_eval"""

from __future__ import annotations

import logging

import uvicorn

from .common.config import get_settings
from .ingest_api.main import create_app
from .services import build_services

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

    logger.info(
        "[MAIN] Starting stream evaluation (broker=%s:%d topic=%s buffer=%d)",
        settings.mqtt_broker_host,
        settings.mqtt_broker_port,
        settings.mqtt_topic,
        settings.stream_buffer_limit,
    )

    app = create_app(build_services(settings))
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_config=None)


if __name__ == "__main__":
    main()
