"""Bounded rolling price history used for technical indicators."""
from collections import deque
from datetime import datetime
from typing import Deque, List, Optional

from es_signals.domain.models import PricePoint

DEFAULT_CAPACITY = 100


class PriceHistoryBuffer:
    """Time-ascending FIFO of price points; the oldest entry is evicted first."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("Capacity must be at least 1")
        self._points: Deque[PricePoint] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._points.maxlen or 0

    def append(self, timestamp: datetime, price: float) -> None:
        self._points.append(PricePoint(timestamp=timestamp, price=price))

    def prices(self) -> List[float]:
        return [p.price for p in self._points]

    def last(self) -> Optional[PricePoint]:
        return self._points[-1] if self._points else None

    def __len__(self) -> int:
        return len(self._points)
