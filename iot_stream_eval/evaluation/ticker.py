from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTicker:
    """Thread que invoca `callback` cada `interval_seconds` hasta `stop()`."""

    def __init__(
        self,
        callback: Callable[[], object],
        interval_seconds: float = 0.1,
        name: str = "measurement-ticker",
    ):
        self._callback = callback
        self._interval = interval_seconds
        self._name = name
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self):
        """Inicia el thread del ticker."""
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name=self._name, daemon=True)
        self._thread.start()
        logger.debug("[EVAL] %s started (%.3fs)", self._name, self._interval)

    def stop(self):
        """Detiene el ticker; al volver no habrá más invocaciones."""
        self._stop_event.set()

        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=5.0)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _loop(self):
        while not self._stop_event.wait(self._interval):
            try:
                self._callback()
            except Exception as e:
                logger.exception("[EVAL] %s callback failed: %s", self._name, e)
