from __future__ import annotations

import threading
from collections import deque
from typing import Deque, Generic, Optional, Tuple, TypeVar

T = TypeVar("T")


class BoundedStreamBuffer(Generic[T]):
    """Buffer acotado de paquetes, el más reciente en el índice 0.

    - `push` inserta al frente en O(1); si se supera `limit` se descarta
      el elemento más viejo (la cola).
    - El orden es el de LLEGADA. Nunca se reordena por timestamp: el
      timestamp lo pone el reloj del dispositivo y no es confiable.
    - Un único escritor (el cliente de ingesta) y N lectores vía `snapshot()`.
    """

    def __init__(self, limit: int) -> None:
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got: {limit}")
        self._limit = int(limit)
        # deque con maxlen: appendleft sobre deque lleno descarta por la derecha
        self._items: Deque[T] = deque(maxlen=self._limit)
        self._lock = threading.Lock()

    @property
    def limit(self) -> int:
        return self._limit

    def push(self, item: T) -> None:
        with self._lock:
            self._items.appendleft(item)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def snapshot(self) -> Tuple[T, ...]:
        """Copia inmutable del contenido actual (más nuevo primero)."""
        with self._lock:
            return tuple(self._items)

    def head(self) -> Optional[T]:
        with self._lock:
            return self._items[0] if self._items else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
