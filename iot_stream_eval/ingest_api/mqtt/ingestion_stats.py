from __future__ import annotations

import time
from dataclasses import asdict, dataclass
from typing import Optional


@dataclass
class IngestionStats:
    """Contadores del cliente de ingesta.

    Se mutan solo bajo el lock del cliente; `as_dict()` es la vista que se
    expone en /health/stream.
    """

    received: int = 0
    accepted: int = 0
    invalid: int = 0
    reconnects: int = 0
    last_packet_at: Optional[float] = None

    def record_received(self) -> None:
        self.received += 1
        self.last_packet_at = time.time()

    def record_accepted(self) -> None:
        self.accepted += 1

    def record_invalid(self) -> None:
        self.invalid += 1

    def record_reconnect(self) -> int:
        self.reconnects += 1
        return self.reconnects

    @property
    def invalid_ratio(self) -> float:
        return self.invalid / self.received if self.received else 0.0

    def summary(self) -> str:
        return (
            f"packets={self.received} accepted={self.accepted} "
            f"invalid={self.invalid} ({self.invalid_ratio:.1%}) reconnects={self.reconnects}"
        )

    def as_dict(self) -> dict:
        data = asdict(self)
        data["invalid_ratio"] = round(self.invalid_ratio, 4)
        return data
