"""Price History and Weighted Moving Average
==========================================

PriceHistory is the append-only record of closed bars that every
indicator reads from. WeightedMovingAverage keeps a derived series
aligned index-for-index with it:

    WMA[i] = sum(price[i-k] * (P-k) for k in 0..P-1) / (P * (P+1) / 2)

The newest bar weighs P, the oldest bar in the window weighs 1.
Values before index P-1 are undefined.

Author: SURIOTA Team
"""
from collections import deque
from datetime import datetime
from typing import Deque, List, Optional

from loguru import logger

from ..core import PriceBar
from ..errors import InsufficientDataError


class PriceHistory:
    """Append-only ordered sequence of closed bars"""

    def __init__(self):
        self._bars: List[PriceBar] = []

    def append(self, bar: PriceBar):
        """Append a closed bar

        Raises:
            ValueError: bar is older than the newest stored bar
        """
        if self._bars and bar.timestamp < self._bars[-1].timestamp:
            raise ValueError(
                f"Bar {bar.timestamp} is older than last bar {self._bars[-1].timestamp}"
            )
        self._bars.append(bar)

    def close_at_lag(self, k: int) -> float:
        if k < 0 or k >= len(self._bars):
            raise InsufficientDataError(k + 1, len(self._bars))
        return self._bars[-1 - k].close

    @property
    def last_timestamp(self) -> Optional[datetime]:
        return self._bars[-1].timestamp if self._bars else None

    def __len__(self) -> int:
        return len(self._bars)

    def __getitem__(self, index: int) -> PriceBar:
        return self._bars[index]


class WeightedMovingAverage:
    """Linearly weighted moving average with lag queries"""

    def __init__(self, period: int, name: str = "WMA"):
        """Initialize WMA

        Args:
            period: Number of bars in the window (>= 1)
            name: Label used in logs and status
        """
        if period < 1:
            raise ValueError(f"WMA period must be >= 1, got {period}")

        self.period = period
        self.name = name
        self.weight_sum = period * (period + 1) / 2

        self._window: Deque[float] = deque(maxlen=period)
        self._values: List[Optional[float]] = []

    def update(self, price: float) -> Optional[float]:
        """Add the close of a new bar

        The window holds at most `period` prices, so each update costs
        O(period) and never revisits older parts of the series.

        Args:
            price: Close price of the new bar

        Returns:
            Current WMA value, None while fewer than `period` bars seen
        """
        self._window.append(price)

        if len(self._window) < self.period:
            self._values.append(None)
            return None

        weighted = 0.0
        for weight, p in enumerate(self._window, start=1):
            weighted += p * weight
        value = weighted / self.weight_sum

        self._values.append(value)
        return value

    def value_at_lag(self, k: int = 0) -> float:
        """Get WMA value k bars back from the newest

        Args:
            k: Lag (0 = newest bar)

        Returns:
            WMA value at index count-1-k

        Raises:
            InsufficientDataError: fewer than period + k bars appended
        """
        required = self.period + k
        if k < 0 or len(self._values) < required:
            raise InsufficientDataError(required, len(self._values))
        return self._values[-1 - k]

    def is_ready(self, lag: int = 0) -> bool:
        return len(self._values) >= self.period + lag

    @property
    def current(self) -> Optional[float]:
        return self._values[-1] if self._values else None

    @property
    def count(self) -> int:
        return len(self._values)

    def reset(self):
        """Reset indicator state"""
        self._window.clear()
        self._values = []
        logger.debug(f"{self.name}({self.period}) reset")

    def __repr__(self) -> str:
        return f"WeightedMovingAverage(name={self.name!r}, period={self.period}, count={self.count})"
